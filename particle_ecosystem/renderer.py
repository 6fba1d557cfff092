"""
Snapshot renderer.

``render`` is a pure consumer of a ``Snapshot``: it never touches the engine.
Draw order is background, connection lines, then glyphs, so links sit
underneath the particles they join.
"""

import math

import pygame

# ── Glyph sizing ──────────────────────────────────────────────────────────────
MIN_RADIUS = 2
MAX_RADIUS = 9
RING_WIDTH = 1
FADE = 0.55                 # brightness lost over a full lifespan

_SIDES  = {"triangle": 3, "square": 4, "diamond": 4, "pentagon": 5, "hexagon": 6}
_OFFSET = {"triangle": -math.pi / 2, "square": -math.pi / 4,
           "diamond":   0.0,          "pentagon": -math.pi / 2,
           "hexagon":   0.0}


def draw_shape(surface: pygame.Surface, shape: str, color: tuple,
               center: tuple, radius: int, width: int = 0) -> None:
    """Render one of 6 distinct shapes at the given pixel centre."""
    cx, cy = center
    if shape not in _SIDES:
        pygame.draw.circle(surface, color, (cx, cy), radius, width)
        return
    n_sides = _SIDES[shape]
    offset  = _OFFSET[shape]
    pts = [(int(cx + radius * math.cos(2 * math.pi * i / n_sides + offset)),
            int(cy + radius * math.sin(2 * math.pi * i / n_sides + offset)))
           for i in range(n_sides)]
    pygame.draw.polygon(surface, color, pts, width)


def glyph_radius(energy: float, max_energy: float) -> int:
    frac = energy / max_energy if max_energy > 0 else 0.0
    frac = min(1.0, max(0.0, frac))
    return int(round(MIN_RADIUS + (MAX_RADIUS - MIN_RADIUS) * frac))


def _dim(color: tuple, factor: float) -> tuple:
    return tuple(int(c * factor) for c in color)


def render(surface: pygame.Surface, snapshot, theme) -> None:
    """Draw ``snapshot`` onto ``surface`` using ``theme``'s palette and glyphs."""
    surface.fill(theme.background)
    if not snapshot.entities:
        return

    positions = {ev.id: (int(ev.position[0]), int(ev.position[1]))
                 for ev in snapshot.entities}
    for a, b in snapshot.connections:
        if a in positions and b in positions:
            pygame.draw.line(surface, theme.link_color, positions[a], positions[b], 1)

    for ev in snapshot.entities:
        color = theme.mutant_color if ev.mutant else theme.color_for(ev.category)
        # Fading entities darken as they approach the end of their lifespan.
        remaining = 1.0 - ev.age / ev.lifespan if ev.lifespan > 0 else 1.0
        color = _dim(color, 1.0 - FADE * (1.0 - min(1.0, max(0.0, remaining))))
        radius = glyph_radius(ev.energy, ev.max_energy)
        center = positions[ev.id]
        draw_shape(surface, theme.shape_for(ev.category), color, center, radius)
        if ev.generation > 1:
            ring = radius + 1 + min(ev.generation - 1, 4)
            pygame.draw.circle(surface, theme.color_for(ev.category), center, ring, RING_WIDTH)
