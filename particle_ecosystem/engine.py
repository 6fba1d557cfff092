"""
Engine facade, simulation clock and snapshots.

One ``SimulationEngine`` per widget instance.  The host owns the per-frame
scheduling: it calls ``tick(dt)`` once per display frame and hands the
returned snapshot to the renderer.  Within a tick the order is always

    ForceField → integration / containment → LifecycleManager → input merge

and the snapshot is published only after removal and replication are both
resolved, so a consumer never sees an entity that has been flagged dead.
"""

import logging
import math
from collections import Counter
from enum import Enum
from typing import NamedTuple

import numpy as np

from .compatibility import CompatibilityModel
from .config import build_config
from .coupler import ForceInjection, InputCoupler, PointerEvent, SpawnRequest
from .entity import Entity, IdAllocator
from .errors import ConfigurationError, InvalidStateError
from .forces import SPEED_CEILING, ForceField
from .lifecycle import LifecycleManager

logger = logging.getLogger(__name__)


class EngineState(Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    DISPOSED = "disposed"


# ── Snapshot types ────────────────────────────────────────────────────────────
class EntityView(NamedTuple):
    id: int
    position: tuple
    category: object
    energy: float
    age: float
    generation: int
    velocity: tuple
    max_energy: float
    lifespan: float
    genome: tuple
    mutant: bool
    parent_id: object


class Diagnostics(NamedTuple):
    """Cumulative counters since ``init``."""
    births: int = 0
    deaths: int = 0
    spawned: int = 0
    mutations: int = 0
    feed_hits: int = 0
    replication_refused: int = 0
    spawn_refused: int = 0
    seed_truncated: int = 0
    coalesced_events: int = 0
    numeric_corrections: int = 0
    stalled_frames: int = 0
    injections_dropped: int = 0

    @property
    def saturation(self) -> int:
        return self.replication_refused + self.spawn_refused + self.seed_truncated


class Snapshot(NamedTuple):
    """Immutable, renderer-facing view of one tick."""
    tick: int
    time: float
    entities: tuple
    connections: tuple
    diagnostics: Diagnostics

    @property
    def population(self) -> int:
        return len(self.entities)

    def is_finite(self) -> bool:
        for ev in self.entities:
            values = (*ev.position, *ev.velocity, ev.energy, ev.age)
            if not all(math.isfinite(v) for v in values):
                return False
        return True

    def category_counts(self) -> Counter:
        return Counter(ev.category for ev in self.entities)


EMPTY_SNAPSHOT = Snapshot(0, 0.0, (), (), Diagnostics())


# ── Clock ─────────────────────────────────────────────────────────────────────
class SimulationClock:
    """
    Converts host frame intervals into simulation steps.

    ``now_ms`` follows the raw host time so pointer timestamps and the input
    rate limit share one timeline; the step handed to the integrator is
    clamped to ``max_dt`` so a backgrounded tab does not explode the Euler
    step on resume.
    """

    def __init__(self, max_dt: float) -> None:
        self.max_dt: float = max_dt
        self.tick_count: int = 0
        self.time: float = 0.0
        self.now_ms: float = 0.0
        self.stalled_frames: int = 0

    def advance(self, dt: float) -> float:
        if not math.isfinite(dt) or dt < 0.0:
            dt = 0.0
        self.now_ms += dt * 1000.0
        step = dt
        if step > self.max_dt:
            step = self.max_dt
            self.stalled_frames += 1
        self.tick_count += 1
        self.time += step
        return step


# ── Engine ────────────────────────────────────────────────────────────────────
class SimulationEngine:
    """
    Addressable engine unit: ``init`` / ``tick`` / ``handle_input`` /
    ``get_snapshot`` / ``dispose``.

    The population list is owned here and mutated only inside ``tick``.
    All randomness flows from one injectable ``numpy.random.Generator`` so
    two engines with the same config, seed and event sequence produce equal
    snapshots.
    """

    def __init__(self) -> None:
        self.state: EngineState = EngineState.UNINITIALIZED
        self._clear()

    def _clear(self) -> None:
        self.config: dict = None
        self.model: CompatibilityModel = None
        self.rng: np.random.Generator = None
        self.clock: SimulationClock = None
        self.forces: ForceField = None
        self.lifecycle: LifecycleManager = None
        self.coupler: InputCoupler = None
        self._ids: IdAllocator = None
        self._entities: list = []
        self._pending: list = []
        self._injections: list = []
        self._counters: Counter = Counter()
        self._snapshot: Snapshot = EMPTY_SNAPSHOT

    @property
    def running(self) -> bool:
        return self.state is EngineState.RUNNING

    # ── Lifecycle of the engine itself ───────────────────────────────────────
    def init(self, config: dict, seed: dict = None,
             rng: np.random.Generator = None) -> Snapshot:
        """
        Validate ``config``, build the components and create seed entities.

        ``seed`` maps category → initial count.  It is treated as opaque
        numeric input (theme adapters derive it from profile statistics).
        Raises ``ConfigurationError`` without changing the current state.
        """
        cfg = build_config(config)
        model = CompatibilityModel(cfg["categories"], cfg["compatibility"],
                                   asymmetric=cfg["asymmetric"])
        counts = self._validate_seed(seed or {}, cfg["categories"])
        if rng is None:
            rng = np.random.default_rng(cfg["rng_seed"])

        self._clear()
        self.config = cfg
        self.model = model
        self.rng = rng
        self.clock = SimulationClock(cfg["max_dt"])
        self._ids = IdAllocator()
        self.forces = ForceField(cfg, rng)
        self.lifecycle = LifecycleManager(cfg, rng, self._ids)
        self.coupler = InputCoupler(cfg, rng)

        self._create_seed_entities(counts)
        self.state = EngineState.RUNNING
        self._snapshot = self._build_snapshot(())
        logger.info("engine initialised: %d seed entities, %d categories, cap=%d",
                    len(self._entities), len(cfg["categories"]), cfg["population_cap"])
        return self._snapshot

    def dispose(self) -> None:
        """Stop the engine and drop every retained reference.  Idempotent."""
        if self.state is EngineState.DISPOSED:
            return
        was_running = self.running
        self._clear()
        self.state = EngineState.DISPOSED
        if was_running:
            logger.info("engine disposed")

    # ── Per-frame API ────────────────────────────────────────────────────────
    def tick(self, dt: float) -> Snapshot:
        """Advance one frame and return the new snapshot."""
        self._require_running("tick")
        step = self.clock.advance(dt)
        entities = self._entities

        report = self.forces.compute_forces(entities, self.model,
                                            self.config["bounds"], self._injections)
        self._counters["numeric_corrections"] += report.corrections
        self._counters["numeric_corrections"] += self.forces.integrate(
            entities, report.forces, step, self.config["bounds"])
        self._injections = [inj for inj in self._injections if inj.step(step)]

        result = self.lifecycle.advance(entities, step)
        self._entities = result.survivors + result.offspring
        self._counters["births"] += len(result.offspring)
        self._counters["deaths"] += len(result.removed_ids)
        self._counters["mutations"] += result.mutations
        self._counters["feed_hits"] += result.feed_hits
        self._counters["replication_refused"] += result.replication_refused

        removed = set(result.removed_ids)
        connections = tuple(pair for pair in report.connections
                            if pair[0] not in removed and pair[1] not in removed)
        self._apply_connections(connections)

        flushed = self.coupler.flush(self.clock.now_ms)
        if flushed is not None:
            self._pending.append(flushed)
        self._merge_input()

        self._snapshot = self._build_snapshot(connections)
        return self._snapshot

    def handle_input(self, event: PointerEvent) -> None:
        """Queue a pointer event; its effect lands at the end of the next tick."""
        self._require_running("handle_input")
        if event.timestamp is None:
            event = event._replace(timestamp=self.clock.now_ms)
        out = self.coupler.on_pointer_event(event)
        if out is not None:
            self._pending.append(out)

    def get_snapshot(self) -> Snapshot:
        return self._snapshot

    def diagnostics(self) -> Diagnostics:
        return self._snapshot.diagnostics

    # ── Internals ────────────────────────────────────────────────────────────
    def _require_running(self, operation: str) -> None:
        if self.state is not EngineState.RUNNING:
            raise InvalidStateError(operation, self.state)

    @staticmethod
    def _validate_seed(seed: dict, categories: list) -> list:
        counts = []
        for cat, n in dict(seed).items():
            if cat not in categories:
                raise ConfigurationError(f"seed names unknown category {cat!r}")
            if isinstance(n, bool) or not isinstance(n, (int, float)) \
                    or not math.isfinite(n) or n < 0:
                raise ConfigurationError(
                    f"seed count for {cat!r} must be a finite number >= 0, got {n!r}")
        # Category order, not dict order, so seeding is deterministic.
        for cat in categories:
            if cat in seed:
                counts.append((cat, int(seed[cat])))
        return counts

    def _create_seed_entities(self, counts: list) -> None:
        cap = self.config["population_cap"]
        for cat, n in counts:
            for _ in range(n):
                if len(self._entities) >= cap:
                    self._counters["seed_truncated"] += 1
                    continue
                x = self.rng.uniform(0.0, self.config["bounds"]["width"])
                y = self.rng.uniform(0.0, self.config["bounds"]["height"])
                self._entities.append(self._new_entity(cat, x, y, origin="seed"))

    def _new_entity(self, category, x: float, y: float, origin: str,
                    speed_scale: float = 1.0) -> Entity:
        cfg = self.config
        angle = self.rng.uniform(0.0, 2.0 * math.pi)
        speed = cfg["initial_speed"] * self.rng.uniform(0.5, 1.0) * speed_scale
        speed = min(cfg["max_speed"] * SPEED_CEILING, max(cfg["min_speed"], speed))
        lo, hi = cfg["initial_energy"]
        energy = self.rng.uniform(lo, hi)
        lo, hi = cfg["lifespan"]
        lifespan = self.rng.uniform(lo, hi)
        return Entity(
            self._ids.next(), category, (x, y),
            (speed * math.cos(angle), speed * math.sin(angle)),
            energy=energy, max_energy=cfg["max_energy"], lifespan=lifespan,
            genome=cfg["initial_genomes"].get(category, ()),
            generation=1, origin=origin,
        )

    def _merge_input(self) -> None:
        """Materialise queued spawns and injections.  They act from the next tick."""
        cap = self.config["population_cap"]
        W = self.config["bounds"]["width"]
        H = self.config["bounds"]["height"]
        for item in self._pending:
            if isinstance(item, ForceInjection):
                self._injections.append(item)
                overflow = len(self._injections) - self.config["max_injections"]
                if overflow > 0:
                    del self._injections[:overflow]
                    self._counters["injections_dropped"] += overflow
            elif isinstance(item, SpawnRequest):
                if len(self._entities) >= cap:
                    self._counters["spawn_refused"] += 1
                    continue
                x = min(W, max(0.0, item.x))
                y = min(H, max(0.0, item.y))
                # Fast pointer strokes launch spawned entities faster.
                scale = 1.0 + min(1.0, item.pointer_speed / self.config["fast_pointer_speed"])
                self._entities.append(self._new_entity(item.category, x, y,
                                                       origin="spawn", speed_scale=scale))
                self._counters["spawned"] += 1
        self._pending = []

    def _apply_connections(self, connections: tuple) -> None:
        by_id = {e.id: e for e in self._entities}
        for e in self._entities:
            e.connections = set()
        for a, b in connections:
            if a in by_id and b in by_id:
                by_id[a].connections.add(b)
                by_id[b].connections.add(a)

    def _build_snapshot(self, connections: tuple) -> Snapshot:
        counters = dict(self._counters)
        counters["coalesced_events"] = self.coupler.coalesced
        counters["stalled_frames"] = self.clock.stalled_frames
        entities = tuple(
            EntityView(
                id=e.id, position=(e.x, e.y), category=e.category,
                energy=e.energy, age=e.age, generation=e.generation,
                velocity=(e.vx, e.vy), max_energy=e.max_energy,
                lifespan=e.lifespan, genome=e.genome, mutant=e.mutant,
                parent_id=e.parent_id,
            )
            for e in self._entities
        )
        return Snapshot(self.clock.tick_count, self.clock.time, entities,
                        connections, Diagnostics(**counters))
