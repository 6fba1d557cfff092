"""
Pairwise forces, integration and boundary containment.

Numerical policy
----------------
Integration is explicit Euler with per-step damping::

    v += F * dt
    v *= damping
    p += v * dt

This is good enough for a decorative system with a small, fixed ``dt`` (one
display frame).  Euler blows up when ``dt`` grows, so the clock clamps
``dt`` to ``max_dt`` before it gets here, forces are clamped to ``max_force``
and speeds to ``max_speed``.  Non-finite values are reset rather than
propagated and every reset is counted.
"""

import math
from typing import NamedTuple

import numpy as np

# Speeds are kept strictly below max_speed.
SPEED_CEILING = 1.0 - 1e-9


class ForceReport(NamedTuple):
    """Result of one force pass.

    ``connections`` is reporting state for the renderer only; it is never
    read back by the force computation.
    """
    forces: dict             # id -> (fx, fy)
    connections: tuple       # ((id_a, id_b), ...) with id_a < id_b
    corrections: int         # non-finite or over-limit forces that were clamped


class ForceField:
    """Computes per-tick forces and advances entity kinematics."""

    def __init__(self, config: dict, rng: np.random.Generator) -> None:
        self.config = config
        self.rng = rng
        self.radius: float = config["interaction_radius"]
        self.threshold: float = config["connection_threshold"]
        self.force_scale: float = config["force_scale"]
        self.epsilon: float = config["epsilon"]
        self.noise: float = config["noise"]
        self.max_force: float = config["max_force"]
        self.jitter_by_trait: dict = {
            trait: effect["jitter"]
            for trait, effect in config["trait_effects"].items()
            if effect["jitter"] > 0
        }
        self.attract_by_trait: dict = {
            trait: effect["affinity_bonus"]
            for trait, effect in config["trait_effects"].items()
            if effect["affinity_bonus"] != 0.0
        }

    # ── Forces ───────────────────────────────────────────────────────────────
    def compute_forces(self, entities: list, model, bounds: dict,
                       injections=()) -> ForceReport:
        """
        Net force on every entity for this tick.

        Pair (i, j) within ``interaction_radius`` pushes i along the line to j
        with magnitude ``force_scale * affinity(i, j) * ef_i * ef_j / max(d^2, eps)``.
        For a symmetric model the pair forces are equal and opposite.
        A carrier of an ``affinity_bonus`` trait adds the bonus to every
        neighbour's affinity towards it, which breaks that symmetry.
        Positions are read only, so the result does not depend on entity order.
        """
        n = len(entities)
        if n == 0:
            return ForceReport({}, (), 0)

        pos = np.array([(e.x, e.y) for e in entities], dtype=np.float64)
        cat = np.array([model.index_of(e.category) for e in entities], dtype=np.intp)
        ef = np.array([e.energy_factor for e in entities], dtype=np.float64)
        ids = [e.id for e in entities]

        delta = pos[np.newaxis, :, :] - pos[:, np.newaxis, :]   # delta[i, j] = p_j - p_i
        dist2 = np.einsum("ijk,ijk->ij", delta, delta)
        dist = np.sqrt(dist2)
        in_range = (dist < self.radius) & ~np.eye(n, dtype=bool)

        affinity = model.as_matrix()[cat[:, np.newaxis], cat[np.newaxis, :]]
        pull = affinity
        if self.attract_by_trait:
            bonus = np.array([sum(self.attract_by_trait.get(t, 0.0) for t in e.genome)
                              for e in entities])
            if bonus.any():
                # An attracting entity draws its neighbours towards itself.
                pull = affinity + bonus[np.newaxis, :]
        magnitude = (self.force_scale * pull * ef[:, np.newaxis] * ef[np.newaxis, :]
                     / np.maximum(dist2, self.epsilon))
        magnitude = np.where(in_range, magnitude, 0.0)
        # Coincident entities have no defined direction and exert nothing.
        unit = delta / np.where(dist > 0.0, dist, 1.0)[:, :, np.newaxis]
        force = np.einsum("ij,ijk->ik", magnitude, unit)

        if self.noise > 0.0:
            force += self.rng.uniform(-self.noise, self.noise, size=(n, 2))
        if self.jitter_by_trait:
            jitter = np.array([sum(self.jitter_by_trait.get(t, 0.0) for t in e.genome)
                               for e in entities])
            if jitter.any():
                force += jitter[:, np.newaxis] * self.rng.uniform(-1.0, 1.0, size=(n, 2))

        for injection in injections:
            for k, e in enumerate(entities):
                fx, fy = injection.force_at(e.x, e.y)
                force[k, 0] += fx
                force[k, 1] += fy

        corrections = 0
        bad = ~np.isfinite(force).all(axis=1)
        if bad.any():
            corrections += int(bad.sum())
            force[bad] = 0.0
        norm = np.hypot(force[:, 0], force[:, 1])
        over = norm > self.max_force
        if over.any():
            corrections += int(over.sum())
            force[over] *= (self.max_force / norm[over])[:, np.newaxis]

        # Connections use the mean of both directions so asymmetric models
        # still report each unordered pair once.
        mean_affinity = (affinity + affinity.T) / 2.0
        linked = np.triu(in_range & (mean_affinity > self.threshold), k=1)
        connections = tuple(
            (min(ids[i], ids[j]), max(ids[i], ids[j]))
            for i, j in zip(*np.nonzero(linked))
        )
        forces = {ids[k]: (float(force[k, 0]), float(force[k, 1])) for k in range(n)}
        return ForceReport(forces, connections, corrections)

    # ── Integration ──────────────────────────────────────────────────────────
    def integrate(self, entities: list, forces: dict, dt: float, bounds: dict) -> int:
        """Euler step, speed clamp and containment.  Returns the number of corrections."""
        damping   = self.config["damping"]
        max_speed = self.config["max_speed"]
        min_speed = self.config["min_speed"]
        W, H = bounds["width"], bounds["height"]
        corrections = 0

        for e in entities:
            fx, fy = forces.get(e.id, (0.0, 0.0))
            vx = (e.vx + fx * dt) * damping
            vy = (e.vy + fy * dt) * damping
            if not (math.isfinite(vx) and math.isfinite(vy)):
                vx = vy = 0.0
                corrections += 1
            speed = math.hypot(vx, vy)
            if speed >= max_speed:
                vx *= max_speed * SPEED_CEILING / speed
                vy *= max_speed * SPEED_CEILING / speed
            e.vx, e.vy = vx, vy

            e.x += e.vx * dt
            e.y += e.vy * dt
            if not (math.isfinite(e.x) and math.isfinite(e.y)):
                e.x, e.y = W / 2.0, H / 2.0
                corrections += 1
            self.contain(e, W, H)
            self._enforce_min_speed(e, min_speed)
        return corrections

    def contain(self, e, width: float, height: float) -> None:
        """Reflect and damp the normal velocity component at the walls."""
        wall = self.config["wall_damping"]
        if e.x < 0.0:
            e.x = 0.0
            e.vx = abs(e.vx) * wall
        elif e.x > width:
            e.x = width
            e.vx = -abs(e.vx) * wall
        if e.y < 0.0:
            e.y = 0.0
            e.vy = abs(e.vy) * wall
        elif e.y > height:
            e.y = height
            e.vy = -abs(e.vy) * wall

    def _enforce_min_speed(self, e, min_speed: float) -> None:
        if min_speed <= 0.0:
            return
        speed = e.speed
        if speed >= min_speed:
            return
        if speed > 0.0:
            e.vx *= min_speed / speed
            e.vy *= min_speed / speed
        else:
            angle = self.rng.uniform(0.0, 2.0 * math.pi)
            e.vx = min_speed * math.cos(angle)
            e.vy = min_speed * math.sin(angle)
