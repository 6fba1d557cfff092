"""
Ageing, feeding, death, replication and mutation.

The lifecycle manager never touches shared state after flagging an entity:
it returns the surviving list, the newly born offspring and the removed ids,
and the engine swaps its population in one assignment.
"""

import logging
import math
from typing import NamedTuple

import numpy as np

from .entity import Entity
from .forces import SPEED_CEILING

logger = logging.getLogger(__name__)


class FeedPoint:
    """An energy well ("infection point" in the virus theme)."""

    def __init__(self, x: float, y: float, radius: float, strength: float) -> None:
        self.x: float = x
        self.y: float = y
        self.radius: float = radius
        self.strength: float = strength

    def reaches(self, e) -> bool:
        return math.hypot(e.x - self.x, e.y - self.y) <= self.radius


class LifecycleResult(NamedTuple):
    survivors: list
    offspring: list
    removed_ids: tuple
    replication_refused: int   # offspring dropped at the population cap
    mutations: int
    feed_hits: int


class LifecycleManager:
    """
    Advances age and energy and resolves births and deaths for one tick.

    Order per tick:
      1. every entity ages and decays, then gains energy from feed points and
         genome trait effects (capped at ``max_energy``);
      2. entities with ``energy <= 0`` or ``age > lifespan`` are removed;
      3. survivors, in ascending id order, roll the replication gate.
         Offspring beyond ``population_cap`` are dropped in that same order,
         so a fixed RNG seed always drops the same ones.
    """

    def __init__(self, config: dict, rng: np.random.Generator, ids) -> None:
        self.config = config
        self.rng = rng
        self.ids = ids
        self.feed_points: list = [FeedPoint(**fp) for fp in config["feed_points"]]
        self.energy_rate_by_trait: dict = {
            trait: effect["energy_rate"]
            for trait, effect in config["trait_effects"].items()
            if effect["energy_rate"] != 0.0
        }
        self.mutation_bonus_by_trait: dict = {
            trait: effect["mutation_bonus"]
            for trait, effect in config["trait_effects"].items()
            if effect["mutation_bonus"] > 0.0
        }

    def advance(self, entities: list, dt: float) -> LifecycleResult:
        decay = self.config["decay_rate"]
        feed_rate = self.config["feed_rate"]

        survivors: list = []
        removed: list = []
        feed_hits = 0
        for e in entities:
            e.age += dt
            e.energy -= decay * dt
            for trait in e.genome:
                e.energy += self.energy_rate_by_trait.get(trait, 0.0) * dt
            for fp in self.feed_points:
                if fp.reaches(e):
                    e.energy += fp.strength * feed_rate * dt
                    feed_hits += 1
            e.energy = min(e.energy, e.max_energy)

            if e.is_expired():
                removed.append(e.id)
            else:
                survivors.append(e)

        offspring, refused, mutations = self._replicate(survivors)
        if offspring or removed:
            logger.debug("lifecycle: %d born, %d removed, %d refused",
                         len(offspring), len(removed), refused)
        return LifecycleResult(survivors, offspring, tuple(removed),
                               refused, mutations, feed_hits)

    # ── Replication ──────────────────────────────────────────────────────────
    def _replicate(self, survivors: list) -> tuple:
        cap       = self.config["population_cap"]
        threshold = self.config["replication_threshold"]
        chance    = self.config["replication_chance"]
        cost      = self.config["replication_cost"]

        # Roll the gate for every eligible parent before applying the cap so
        # RNG consumption does not depend on how full the population is.
        parents = []
        for e in sorted(survivors, key=lambda s: s.id):
            if e.energy <= threshold * e.max_energy:
                continue
            if e.energy - cost <= 0.0:
                continue
            if self.rng.random() < chance:
                parents.append(e)

        offspring: list = []
        refused = 0
        mutations = 0
        for parent in parents:
            if len(survivors) + len(offspring) >= cap:
                refused += 1
                continue
            child, mutated = self._make_offspring(parent)
            parent.energy -= cost
            mutations += mutated
            offspring.append(child)
        return offspring, refused, mutations

    def _mutation_rate(self, parent: Entity) -> float:
        bonus = sum(self.mutation_bonus_by_trait.get(t, 0.0) for t in parent.genome)
        return min(1.0, self.config["mutation_rate"] + bonus)

    def _make_offspring(self, parent: Entity) -> tuple:
        """Build one child of ``parent``.  Returns ``(child, mutated)``."""
        cfg = self.config
        W = cfg["bounds"]["width"]
        H = cfg["bounds"]["height"]
        jitter = cfg["spawn_jitter"]

        x = min(W, max(0.0, parent.x + self.rng.uniform(-jitter, jitter)))
        y = min(H, max(0.0, parent.y + self.rng.uniform(-jitter, jitter)))
        speed = min(cfg["max_speed"] * SPEED_CEILING,
                    max(cfg["min_speed"], cfg["initial_speed"] * self.rng.uniform(0.5, 1.0)))
        angle = self.rng.uniform(0.0, 2.0 * math.pi)

        genome = list(parent.genome)
        mutated = self.rng.random() < self._mutation_rate(parent)
        if mutated:
            trait = cfg["trait_alphabet"][int(self.rng.integers(len(cfg["trait_alphabet"])))]
            if genome:
                genome[int(self.rng.integers(len(genome)))] = trait
            else:
                genome.append(trait)

        child = Entity(
            self.ids.next(), parent.category, (x, y),
            (speed * math.cos(angle), speed * math.sin(angle)),
            energy=parent.energy * cfg["child_energy_fraction"],
            max_energy=parent.max_energy,
            lifespan=parent.lifespan * cfg["offspring_lifespan_factor"],
            genome=tuple(genome[:cfg["genome_max_length"]]),
            generation=parent.generation + 1,
            parent_id=parent.id,
            origin="offspring",
        )
        # Mutant lineages stay marked.
        child.mutant = mutated or parent.mutant
        return child, int(mutated)
