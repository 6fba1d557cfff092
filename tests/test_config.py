"""
tests/test_config.py - Engine configuration

Validates defaults, normalisation and fail-fast rejection of bad configs.
"""

import pytest

from particle_ecosystem.config import DEFAULT_CONFIG, build_config
from particle_ecosystem.errors import ConfigurationError


BASE = {"categories": ["A", "B"],
        "compatibility": {("A", "A"): 0.5, ("A", "B"): 0.0, ("B", "B"): 0.5},
        "trait_alphabet": ["t1", "t2"]}


def make(**overrides):
    cfg = dict(BASE)
    cfg.update(overrides)
    return build_config(cfg)


class TestDefaults:
    """Merging and normalisation."""

    def test_defaults_filled_in(self):
        cfg = make()
        for key in DEFAULT_CONFIG:
            assert key in cfg
        assert cfg["population_cap"] == 50

    def test_ranges_normalised_to_pairs(self):
        cfg = make(initial_energy=10, lifespan=[2, 3])
        assert cfg["initial_energy"] == (10.0, 10.0)
        assert cfg["lifespan"] == (2.0, 3.0)

    def test_bounds_become_floats(self):
        cfg = make(bounds={"width": 320, "height": 200})
        assert cfg["bounds"] == {"width": 320.0, "height": 200.0}

    def test_default_config_not_mutated(self):
        make(categories=["X"], compatibility={("X", "X"): 1.0})
        assert DEFAULT_CONFIG["categories"] == []

    def test_trait_effects_filled(self):
        cfg = make(trait_alphabet=["heal"], trait_effects={"heal": {"energy_rate": 2}})
        assert cfg["trait_effects"]["heal"] == {"energy_rate": 2.0, "jitter": 0.0,
                                              "affinity_bonus": 0.0, "mutation_bonus": 0.0}

    def test_initial_genomes_become_tuples(self):
        cfg = make(trait_alphabet=["x"], initial_genomes={"A": ["x", "y"]})
        assert cfg["initial_genomes"] == {"A": ("x", "y")}

    def test_feed_points_normalised(self):
        cfg = make(feed_points=[{"x": 1, "y": 2, "radius": 3, "strength": 4}])
        assert cfg["feed_points"] == [{"x": 1.0, "y": 2.0, "radius": 3.0, "strength": 4.0}]


class TestRejection:
    """Every inconsistency is a ConfigurationError at build time."""

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="unknown config keys"):
            make(populaton_cap=5)

    def test_empty_categories(self):
        with pytest.raises(ConfigurationError):
            build_config({"categories": [], "compatibility": {}})

    def test_duplicate_categories(self):
        with pytest.raises(ConfigurationError):
            make(categories=["A", "A"])

    @pytest.mark.parametrize("cap", [0, -3, 2.5, True])
    def test_bad_population_cap(self, cap):
        with pytest.raises(ConfigurationError):
            make(population_cap=cap)

    @pytest.mark.parametrize("damping", [0.0, 1.2, -0.1])
    def test_damping_range(self, damping):
        with pytest.raises(ConfigurationError):
            make(damping=damping)

    def test_child_energy_fraction_below_one(self):
        with pytest.raises(ConfigurationError):
            make(child_energy_fraction=1.0)

    def test_offspring_lifespan_factor_below_one(self):
        with pytest.raises(ConfigurationError):
            make(offspring_lifespan_factor=1.0)

    def test_mutation_needs_alphabet(self):
        with pytest.raises(ConfigurationError, match="trait_alphabet"):
            make(mutation_rate=0.2, trait_alphabet=[])

    def test_genome_too_long(self):
        with pytest.raises(ConfigurationError):
            make(trait_alphabet=["x"], genome_max_length=2,
                 initial_genomes={"A": ["x", "x", "x"]})

    def test_genome_unknown_category(self):
        with pytest.raises(ConfigurationError):
            make(trait_alphabet=["x"], initial_genomes={"Z": ["x"]})

    def test_initial_energy_over_max(self):
        with pytest.raises(ConfigurationError):
            make(initial_energy=(50, 150), max_energy=100)

    def test_bad_bounds(self):
        with pytest.raises(ConfigurationError):
            make(bounds={"width": 0, "height": 10})
        with pytest.raises(ConfigurationError):
            make(bounds={"w": 10})

    def test_non_finite_number(self):
        with pytest.raises(ConfigurationError):
            make(max_dt=float("inf"))

    def test_bad_input_mode(self):
        with pytest.raises(ConfigurationError):
            make(input_mode="teleport")

    def test_feed_point_missing_field(self):
        with pytest.raises(ConfigurationError):
            make(feed_points=[{"x": 1, "y": 2}])

    def test_unknown_trait_effect_key(self):
        with pytest.raises(ConfigurationError):
            make(trait_effects={"heal": {"teleport": 1}})

    @pytest.mark.parametrize("effect", [
        {"energy_rate": float("nan")},
        {"energy_rate": float("-inf")},
        {"jitter": float("inf")},
        {"energy_rate": "fast"},
        {"jitter": None},
    ])
    def test_trait_effect_values_must_be_finite_numbers(self, effect):
        with pytest.raises(ConfigurationError):
            make(trait_effects={"heal": effect})

    @pytest.mark.parametrize("effect", [3, "heal", None, ["energy_rate"]])
    def test_trait_effect_must_be_mapping(self, effect):
        with pytest.raises(ConfigurationError, match="mapping"):
            make(trait_effects={"heal": effect})

    def test_trait_effects_must_be_mapping(self):
        with pytest.raises(ConfigurationError, match="mapping"):
            make(trait_effects=[("heal", {"energy_rate": 1.0})])

    @pytest.mark.parametrize("bonus", [-1.5, 1.5])
    def test_affinity_bonus_range(self, bonus):
        with pytest.raises(ConfigurationError, match="affinity_bonus"):
            make(trait_effects={"magnet": {"affinity_bonus": bonus}})

    @pytest.mark.parametrize("bonus", [-0.1, 1.1])
    def test_mutation_bonus_range(self, bonus):
        with pytest.raises(ConfigurationError, match="mutation_bonus"):
            make(trait_effects={"evolve": {"mutation_bonus": bonus}})

    def test_mutation_bonus_needs_alphabet(self):
        with pytest.raises(ConfigurationError, match="trait_alphabet"):
            make(mutation_rate=0.0, trait_alphabet=[],
                 trait_effects={"evolve": {"mutation_bonus": 0.5}})

    @pytest.mark.parametrize("decay", [0, 0.0, -1.0])
    def test_injection_decay_positive(self, decay):
        with pytest.raises(ConfigurationError, match="injection_decay"):
            make(injection_decay=decay)

    @pytest.mark.parametrize("limit", [0, -1, 2.5, True])
    def test_bad_max_injections(self, limit):
        with pytest.raises(ConfigurationError, match="max_injections"):
            make(max_injections=limit)
