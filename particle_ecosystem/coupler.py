"""
Pointer input coupling.

Turns raw pointer events into either spawn requests or transient force
injections.  Output is rate-limited to one item per ``spawn_interval_ms``;
events that arrive inside a window are coalesced so only the latest position
is used when the window closes.  The population cap is enforced by the engine
when spawn requests are merged, the same check organic replication goes
through.
"""

import math
from typing import NamedTuple, Optional

import numpy as np


class PointerEvent(NamedTuple):
    x: float
    y: float
    timestamp: Optional[float] = None   # ms; stamped by the engine clock when None
    pressed: bool = True                # hover events only update velocity tracking


class SpawnRequest(NamedTuple):
    x: float
    y: float
    category: object
    pointer_speed: float                # px/ms at the time of the request


class ForceInjection:
    """
    A decaying impulse painted by the pointer.

    Entities inside ``radius`` are pushed along the pointer's motion
    direction, or radially outwards when the pointer was still.  The push
    falls off linearly towards the brush edge and the strength decays
    exponentially with ``decay`` per second.
    """

    CUTOFF = 1.0     # strength below which the injection is discarded

    def __init__(self, x: float, y: float, radius: float, strength: float,
                 direction: tuple, decay: float) -> None:
        self.x: float = x
        self.y: float = y
        self.radius: float = radius
        self.strength: float = strength
        self.decay: float = decay
        dx, dy = direction
        norm = math.hypot(dx, dy)
        self.direction = (dx / norm, dy / norm) if norm > 0 else None

    def force_at(self, x: float, y: float) -> tuple:
        ox, oy = x - self.x, y - self.y
        dist = math.hypot(ox, oy)
        if dist > self.radius:
            return (0.0, 0.0)
        falloff = self.strength * (1.0 - dist / self.radius)
        if self.direction is not None:
            ux, uy = self.direction
        elif dist > 0.0:
            ux, uy = ox / dist, oy / dist
        else:
            return (0.0, 0.0)
        return (ux * falloff, uy * falloff)

    def step(self, dt: float) -> bool:
        """Decay by ``dt`` seconds.  Returns False once the impulse has faded out."""
        self.strength *= math.exp(-self.decay * dt)
        return self.strength >= self.CUTOFF

    def __repr__(self) -> str:
        return (f"ForceInjection(x={self.x:.1f}, y={self.y:.1f}, "
                f"r={self.radius:.1f}, strength={self.strength:.1f})")


class InputCoupler:
    """Rate-limited pointer → engine adapter."""

    def __init__(self, config: dict, rng: np.random.Generator) -> None:
        self.config = config
        self.rng = rng
        self.categories: list = list(config["categories"])
        self.interval: float = config["spawn_interval_ms"]
        self._last_emit: Optional[float] = None
        self._pending: Optional[PointerEvent] = None
        self._last_event: Optional[PointerEvent] = None
        self._pending_speed: float = 0.0
        self._pending_direction: tuple = (0.0, 0.0)
        self.coalesced: int = 0

    def on_pointer_event(self, event: PointerEvent):
        """Return a ``SpawnRequest`` / ``ForceInjection``, or None when rate-limited."""
        if event.timestamp is None:
            raise ValueError("pointer events need a timestamp; stamp them with the engine clock")
        speed, direction = self._track(event)
        if not event.pressed:
            return None
        if self._window_open(event.timestamp):
            if self._pending is not None:
                self.coalesced += 1
            self._pending = event
            self._pending_speed = speed
            self._pending_direction = direction
            return None
        # A fresh event supersedes anything still pending from the old window.
        if self._pending is not None:
            self.coalesced += 1
            self._pending = None
        return self._emit(event, speed, direction)

    def flush(self, now_ms: float):
        """Emit the coalesced event once its window has elapsed."""
        if self._pending is None or self._window_open(now_ms):
            return None
        event, self._pending = self._pending, None
        return self._emit(event, self._pending_speed, self._pending_direction,
                          at=now_ms)

    # ── Internals ────────────────────────────────────────────────────────────
    def _window_open(self, now_ms: float) -> bool:
        return self._last_emit is not None and now_ms - self._last_emit < self.interval

    def _track(self, event: PointerEvent) -> tuple:
        prev, self._last_event = self._last_event, event
        if prev is None:
            return 0.0, (0.0, 0.0)
        dx, dy = event.x - prev.x, event.y - prev.y
        elapsed = event.timestamp - prev.timestamp
        speed = math.hypot(dx, dy) / elapsed if elapsed > 0 else 0.0
        return speed, (dx, dy)

    def _emit(self, event: PointerEvent, speed: float, direction: tuple, at: float = None):
        self._last_emit = event.timestamp if at is None else at
        cfg = self.config
        if cfg["input_mode"] == "inject":
            return ForceInjection(event.x, event.y, cfg["brush_radius"],
                                  cfg["injection_strength"], direction,
                                  cfg["injection_decay"])
        return SpawnRequest(event.x, event.y, self._pick_category(speed), speed)

    def _pick_category(self, speed: float):
        """
        Uniform choice, or a choice biased by pointer speed.

        In velocity mode categories are treated as ordered from calm to
        energetic; fast pointer movement centres a Gaussian weight on the
        energetic end of the list.
        """
        n = len(self.categories)
        if self.config["category_bias"] == "uniform" or n == 1:
            return self.categories[int(self.rng.integers(n))]
        s = min(1.0, speed / self.config["fast_pointer_speed"])
        centre = s * (n - 1)
        weights = np.exp(-0.5 * ((np.arange(n) - centre) / 1.0) ** 2)
        return self.categories[int(self.rng.choice(n, p=weights / weights.sum()))]
