"""Simulated entities and their id allocator."""

import itertools
import math


class IdAllocator:
    """Monotonic per-engine id source.  Ids are never handed out twice."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def next(self) -> int:
        return next(self._counter)


class Entity:
    """
    A single particle in the ecosystem.

    Physical state (position, velocity) is mutated by the force field,
    biological state (energy, age, genome) by the lifecycle manager.  Only the
    engine holds references to live entities; everything downstream sees
    ``EntityView`` copies inside a snapshot.
    """

    def __init__(self, entity_id: int, category, position: tuple,
                 velocity: tuple, energy: float, max_energy: float,
                 lifespan: float, genome: tuple = (), generation: int = 1,
                 parent_id: int = None, origin: str = "seed") -> None:
        self.id: int = entity_id
        self.category = category
        self.x, self.y = (float(v) for v in position)
        self.vx, self.vy = (float(v) for v in velocity)
        self.energy: float = float(energy)
        self.max_energy: float = float(max_energy)
        self.age: float = 0.0
        self.lifespan: float = float(lifespan)
        self.genome: tuple = tuple(genome)
        self.generation: int = generation
        self.parent_id = parent_id          # int | None
        self.origin: str = origin           # "seed" | "spawn" | "offspring"
        self.mutant: bool = False
        self.connections: set = set()

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)

    @property
    def energy_factor(self) -> float:
        """Energy normalised to [0, 1]; scales interaction strength."""
        return max(0.0, min(1.0, self.energy / self.max_energy))

    def is_expired(self) -> bool:
        return self.energy <= 0.0 or self.age > self.lifespan

    def __repr__(self) -> str:
        return (f"Entity(id={self.id}, category={self.category!r}, "
                f"pos=({self.x:.1f}, {self.y:.1f}), energy={self.energy:.1f}, "
                f"age={self.age:.2f}/{self.lifespan:.2f}, gen={self.generation})")
