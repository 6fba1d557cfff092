"""
Engine configuration.

A config is a plain dict.  ``DEFAULT_CONFIG`` holds every recognised key with
the values the portfolio widgets hard-coded (converted from
per-frame to per-second units at 60 fps where needed).  ``build_config``
merges caller overrides on top, normalises ranges and validates everything up
front so the engine never starts in an inconsistent state.

Units: distances in pixels, time in seconds, velocities in px/s, forces in
px/s^2, ``spawn_interval_ms`` in milliseconds.
"""

import logging
import math

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# ── Defaults ──────────────────────────────────────────────────────────────────
DEFAULT_CONFIG = {
    # Domain
    "categories": [],
    "compatibility": {},            # {(tag, tag): affinity} or {tag: {tag: affinity}}
    "asymmetric": False,            # directional affinity (must be declared)
    "bounds": {"width": 800.0, "height": 600.0},
    # Population
    "population_cap": 50,           # hard ceiling, never exceeded
    "initial_energy": (50.0, 100.0),
    "max_energy": 100.0,
    "lifespan": (20.0, 40.0),       # seconds
    "initial_speed": 60.0,          # px/s for seed / spawned / offspring entities
    # Integration
    "max_dt": 0.05,                 # clamp for stalled frames (3 frames at 60 fps)
    "damping": 0.98,                # per-step velocity factor in (0, 1]
    "wall_damping": 0.8,            # normal velocity factor on boundary reflection
    "max_speed": 240.0,
    "min_speed": 1.0,               # keeps |v| strictly positive
    "max_force": 2000.0,
    # Interaction
    "interaction_radius": 50.0,
    "connection_threshold": 0.5,
    "force_scale": 2000.0,          # 0.5 px/frame^2 at 60 fps
    "epsilon": 25.0,                # floor for d^2, avoids the singularity
    "noise": 30.0,                  # bounded isotropic jitter, px/s^2
    # Lifecycle
    "decay_rate": 2.0,              # energy per second
    "replication_threshold": 0.8,   # fraction of max_energy
    "replication_chance": 0.01,     # per-tick stochastic gate
    "replication_cost": 20.0,
    "child_energy_fraction": 0.6,
    "offspring_lifespan_factor": 0.8,
    "spawn_jitter": 10.0,           # offspring placement around the parent
    "mutation_rate": 0.1,
    "trait_alphabet": [],
    "initial_genomes": {},          # {category: [trait, ...]}
    "genome_max_length": 5,
    "trait_effects": {},            # {trait: {effect: value}}, effects in TRAIT_EFFECT_KEYS
    "feed_points": [],              # [{"x", "y", "radius", "strength"}]
    "feed_rate": 6.0,               # energy per second per unit of well strength
    # Input
    "input_mode": "spawn",          # "spawn" | "inject"
    "category_bias": "uniform",     # "uniform" | "velocity"
    "spawn_interval_ms": 100.0,
    "brush_radius": 40.0,
    "injection_strength": 600.0,
    "injection_decay": 3.0,         # strength fraction lost per second, > 0
    "max_injections": 32,           # oldest live injection dropped beyond this
    "fast_pointer_speed": 1.5,      # px/ms that counts as "fast"
    # Misc
    "rng_seed": None,
    "history_interval": 10,
}

INPUT_MODES = ("spawn", "inject")
CATEGORY_BIASES = ("uniform", "velocity")
TRAIT_EFFECT_KEYS = ("energy_rate", "jitter", "affinity_bonus", "mutation_bonus")


# ── Helpers ───────────────────────────────────────────────────────────────────
def _as_range(key: str, value) -> tuple:
    """Normalise a scalar or (lo, hi) pair into a validated (lo, hi) tuple."""
    if isinstance(value, (int, float)):
        lo = hi = float(value)
    else:
        try:
            lo, hi = (float(v) for v in value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{key} must be a number or a (lo, hi) pair")
    if not (math.isfinite(lo) and math.isfinite(hi)) or lo <= 0 or hi < lo:
        raise ConfigurationError(f"{key} must satisfy 0 < lo <= hi, got ({lo}, {hi})")
    return (lo, hi)


def _require(cond: bool, message: str) -> None:
    if not cond:
        raise ConfigurationError(message)


def _number(cfg: dict, key: str) -> float:
    value = cfg[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ConfigurationError(f"{key} must be finite")
    return float(value)


def _validate_feed_points(points) -> list:
    out = []
    for i, fp in enumerate(points):
        try:
            x, y = float(fp["x"]), float(fp["y"])
            radius, strength = float(fp["radius"]), float(fp["strength"])
        except (KeyError, TypeError, ValueError):
            raise ConfigurationError(
                f"feed_points[{i}] needs numeric x, y, radius and strength")
        _require(radius > 0, f"feed_points[{i}].radius must be positive")
        _require(strength >= 0, f"feed_points[{i}].strength must be non-negative")
        out.append({"x": x, "y": y, "radius": radius, "strength": strength})
    return out


def _validate_trait_effects(effects: dict) -> dict:
    out = {}
    for trait, effect in effects.items():
        _require(isinstance(effect, dict),
                 f"trait_effects[{trait!r}] must be a mapping, got {effect!r}")
        unknown = set(effect) - set(TRAIT_EFFECT_KEYS)
        _require(not unknown, f"trait_effects[{trait!r}] has unknown keys {sorted(unknown)}")
        values = {k: effect.get(k, 0.0) for k in TRAIT_EFFECT_KEYS}
        out[trait] = {k: _number(values, k) for k in TRAIT_EFFECT_KEYS}
        _require(out[trait]["jitter"] >= 0,
                 f"trait_effects[{trait!r}].jitter must be non-negative")
        _require(-1 <= out[trait]["affinity_bonus"] <= 1,
                 f"trait_effects[{trait!r}].affinity_bonus must be in [-1, 1]")
        _require(0 <= out[trait]["mutation_bonus"] <= 1,
                 f"trait_effects[{trait!r}].mutation_bonus must be in [0, 1]")
    return out


# ── Public API ────────────────────────────────────────────────────────────────
def build_config(overrides: dict = None) -> dict:
    """
    Merge ``overrides`` onto ``DEFAULT_CONFIG`` and validate the result.

    Unknown keys are rejected rather than ignored so that a typo in a theme
    adapter fails at ``init`` instead of silently running with a default.
    The compatibility table itself is checked by ``CompatibilityModel``.
    """
    overrides = dict(overrides or {})
    unknown = set(overrides) - set(DEFAULT_CONFIG)
    if unknown:
        raise ConfigurationError(f"unknown config keys: {sorted(unknown)}")

    cfg = dict(DEFAULT_CONFIG)
    cfg.update(overrides)

    categories = list(cfg["categories"])
    _require(len(categories) > 0, "categories must not be empty")
    _require(len(set(categories)) == len(categories), "categories must be unique")
    cfg["categories"] = categories

    cap = cfg["population_cap"]
    _require(isinstance(cap, int) and not isinstance(cap, bool) and cap > 0,
             f"population_cap must be a positive integer, got {cap!r}")

    bounds = cfg["bounds"]
    try:
        width, height = float(bounds["width"]), float(bounds["height"])
    except (KeyError, TypeError, ValueError):
        raise ConfigurationError("bounds must be {'width': w, 'height': h}")
    _require(width > 0 and height > 0, "bounds must have positive width and height")
    cfg["bounds"] = {"width": width, "height": height}

    for key in ("max_dt", "interaction_radius", "max_energy", "max_speed",
                "max_force", "epsilon", "brush_radius", "fast_pointer_speed",
                "injection_decay"):
        _require(_number(cfg, key) > 0, f"{key} must be positive")
    for key in ("decay_rate", "noise", "force_scale", "replication_cost",
                "spawn_jitter", "feed_rate", "spawn_interval_ms", "min_speed",
                "initial_speed", "injection_strength"):
        _require(_number(cfg, key) >= 0, f"{key} must be non-negative")

    _require(0 < _number(cfg, "damping") <= 1, "damping must be in (0, 1]")
    _require(0 <= _number(cfg, "wall_damping") <= 1, "wall_damping must be in [0, 1]")
    _require(0 <= _number(cfg, "mutation_rate") <= 1, "mutation_rate must be in [0, 1]")
    _require(0 <= _number(cfg, "replication_chance") <= 1,
             "replication_chance must be in [0, 1]")
    _require(0 < _number(cfg, "child_energy_fraction") < 1,
             "child_energy_fraction must be in (0, 1)")
    _require(0 < _number(cfg, "offspring_lifespan_factor") < 1,
             "offspring_lifespan_factor must be in (0, 1)")
    _require(-1 <= _number(cfg, "connection_threshold") <= 1,
             "connection_threshold must be in [-1, 1]")
    _require(_number(cfg, "replication_threshold") >= 0,
             "replication_threshold must be non-negative")
    _require(cfg["min_speed"] < cfg["max_speed"], "min_speed must be below max_speed")

    cfg["initial_energy"] = _as_range("initial_energy", cfg["initial_energy"])
    cfg["lifespan"] = _as_range("lifespan", cfg["lifespan"])
    _require(cfg["initial_energy"][1] <= cfg["max_energy"],
             "initial_energy must not exceed max_energy")

    gml = cfg["genome_max_length"]
    _require(isinstance(gml, int) and gml >= 1, "genome_max_length must be an integer >= 1")
    cfg["trait_alphabet"] = list(cfg["trait_alphabet"])
    _require(cfg["mutation_rate"] == 0 or cfg["trait_alphabet"],
             "trait_alphabet must not be empty when mutation_rate > 0")
    genomes = {}
    for cat, genome in dict(cfg["initial_genomes"]).items():
        _require(cat in categories, f"initial_genomes has unknown category {cat!r}")
        _require(len(genome) <= gml,
                 f"initial genome for {cat!r} is longer than genome_max_length")
        genomes[cat] = tuple(genome)
    cfg["initial_genomes"] = genomes

    _require(isinstance(cfg["trait_effects"], dict), "trait_effects must be a mapping")
    cfg["trait_effects"] = _validate_trait_effects(cfg["trait_effects"])
    _require(cfg["trait_alphabet"] or not any(
                 e["mutation_bonus"] > 0 for e in cfg["trait_effects"].values()),
             "trait_alphabet must not be empty when a trait carries mutation_bonus")
    cfg["feed_points"] = _validate_feed_points(cfg["feed_points"])

    _require(cfg["input_mode"] in INPUT_MODES, f"input_mode must be one of {INPUT_MODES}")
    _require(cfg["category_bias"] in CATEGORY_BIASES,
             f"category_bias must be one of {CATEGORY_BIASES}")
    mi = cfg["max_injections"]
    _require(isinstance(mi, int) and not isinstance(mi, bool) and mi >= 1,
             "max_injections must be an integer >= 1")
    hi = cfg["history_interval"]
    _require(isinstance(hi, int) and hi >= 1, "history_interval must be an integer >= 1")

    logger.debug("config built: %d categories, cap=%d, bounds=%.0fx%.0f",
                 len(categories), cap, width, height)
    return cfg
