"""Shared fixtures.  Pygame and matplotlib run headless."""

import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("MPLBACKEND", "Agg")

import numpy as np
import pytest

from particle_ecosystem.engine import SimulationEngine


AB_TABLE = {("A", "A"): 0.9, ("A", "B"): -0.5, ("B", "B"): 0.9}


@pytest.fixture
def ab_config():
    """Two-category config from the reference scenario, quiet and reproducible."""
    return {
        "categories": ["A", "B"],
        "compatibility": dict(AB_TABLE),
        "population_cap": 10,
        "interaction_radius": 50.0,
        "bounds": {"width": 400.0, "height": 300.0},
        "mutation_rate": 0.0,
        "rng_seed": 7,
    }


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def engine():
    eng = SimulationEngine()
    yield eng
    eng.dispose()
