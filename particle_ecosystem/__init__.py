"""
Particle Ecosystem
==================
A real-time generative particle-ecosystem engine: a bounded population of
stateful entities, pairwise forces from a category-compatibility model, a
birth / replication / mutation / death lifecycle and rate-limited pointer
coupling.  Themes are parameter sets fed into one engine.

Requirements:
    pip install pygame-ce numpy pandas matplotlib

Run the demo:
    python -m particle_ecosystem virus
"""

from .compatibility import CompatibilityModel
from .config import DEFAULT_CONFIG, build_config
from .coupler import ForceInjection, InputCoupler, PointerEvent, SpawnRequest
from .engine import (
    Diagnostics,
    EngineState,
    EntityView,
    SimulationClock,
    SimulationEngine,
    Snapshot,
)
from .entity import Entity
from .errors import ConfigurationError, EngineError, InvalidStateError
from .forces import ForceField, ForceReport
from .lifecycle import FeedPoint, LifecycleManager, LifecycleResult
from .themes import THEMES, Theme, get_theme

__version__ = "0.1.0"

__all__ = [
    "CompatibilityModel",
    "ConfigurationError",
    "DEFAULT_CONFIG",
    "Diagnostics",
    "EngineError",
    "EngineState",
    "Entity",
    "EntityView",
    "FeedPoint",
    "ForceField",
    "ForceInjection",
    "ForceReport",
    "InputCoupler",
    "InvalidStateError",
    "LifecycleManager",
    "LifecycleResult",
    "PointerEvent",
    "SimulationClock",
    "SimulationEngine",
    "Snapshot",
    "SpawnRequest",
    "THEMES",
    "Theme",
    "build_config",
    "get_theme",
]
