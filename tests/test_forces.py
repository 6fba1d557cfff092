"""
tests/test_forces.py - Pairwise forces, integration and containment
"""

import math

import numpy as np
import pytest

from particle_ecosystem.compatibility import CompatibilityModel
from particle_ecosystem.config import build_config
from particle_ecosystem.coupler import ForceInjection
from particle_ecosystem.entity import Entity
from particle_ecosystem.forces import ForceField

TABLE = {("A", "A"): 0.9, ("A", "B"): -0.5, ("B", "B"): 0.9}


def make_field(rng, **overrides):
    cfg = {"categories": ["A", "B"], "compatibility": TABLE, "noise": 0.0,
           "mutation_rate": 0.0, "bounds": {"width": 800.0, "height": 600.0}}
    cfg.update(overrides)
    cfg = build_config(cfg)
    return ForceField(cfg, rng), CompatibilityModel(["A", "B"], TABLE), cfg


def ent(eid, cat, x, y, vx=0.0, vy=0.0, energy=100.0):
    return Entity(eid, cat, (x, y), (vx, vy), energy=energy, max_energy=100.0, lifespan=10.0)


class TestComputeForces:

    def test_like_categories_attract(self, rng):
        field, model, cfg = make_field(rng)
        a, b = ent(1, "A", 100, 100), ent(2, "A", 120, 100)
        report = field.compute_forces([a, b], model, cfg["bounds"])
        assert report.forces[1][0] > 0
        assert report.forces[2][0] < 0

    def test_symmetric_pair_forces_equal_and_opposite(self, rng):
        field, model, cfg = make_field(rng)
        a, b = ent(1, "A", 100, 100), ent(2, "B", 110, 130)
        f = field.compute_forces([a, b], model, cfg["bounds"]).forces
        assert f[1][0] == pytest.approx(-f[2][0])
        assert f[1][1] == pytest.approx(-f[2][1])

    def test_opposed_categories_repel(self, rng):
        field, model, cfg = make_field(rng)
        a, b = ent(1, "A", 100, 100), ent(2, "B", 120, 100)
        f = field.compute_forces([a, b], model, cfg["bounds"]).forces
        assert f[1][0] < 0
        assert f[2][0] > 0

    def test_inverse_square_magnitude(self, rng):
        field, model, cfg = make_field(rng)
        a, b = ent(1, "A", 100, 100), ent(2, "A", 120, 100)
        f = field.compute_forces([a, b], model, cfg["bounds"]).forces
        expected = cfg["force_scale"] * 0.9 / 20.0 ** 2
        assert f[1][0] == pytest.approx(expected)

    def test_energy_factor_scales_force(self, rng):
        field, model, cfg = make_field(rng)
        full = field.compute_forces([ent(1, "A", 0, 0), ent(2, "A", 20, 0)],
                                    model, cfg["bounds"]).forces
        half = field.compute_forces([ent(1, "A", 0, 0, energy=50), ent(2, "A", 20, 0)],
                                    model, cfg["bounds"]).forces
        assert half[1][0] == pytest.approx(full[1][0] / 2)

    def test_outside_radius_no_force(self, rng):
        field, model, cfg = make_field(rng)
        a, b = ent(1, "A", 100, 100), ent(2, "A", 200, 100)
        f = field.compute_forces([a, b], model, cfg["bounds"]).forces
        assert f[1] == (0.0, 0.0)
        assert f[2] == (0.0, 0.0)

    def test_result_independent_of_order(self, rng):
        field, model, cfg = make_field(rng)
        ents = [ent(1, "A", 100, 100), ent(2, "B", 120, 110), ent(3, "A", 90, 130)]
        fwd = field.compute_forces(ents, model, cfg["bounds"]).forces
        rev = field.compute_forces(list(reversed(ents)), model, cfg["bounds"]).forces
        for eid in fwd:
            assert fwd[eid] == pytest.approx(rev[eid])

    def test_coincident_entities_stay_finite(self, rng):
        field, model, cfg = make_field(rng)
        report = field.compute_forces([ent(1, "A", 50, 50), ent(2, "A", 50, 50)],
                                      model, cfg["bounds"])
        for fx, fy in report.forces.values():
            assert math.isfinite(fx) and math.isfinite(fy)

    def test_force_clamped_and_counted(self, rng):
        field, model, cfg = make_field(rng, force_scale=1e7, max_force=500.0)
        report = field.compute_forces([ent(1, "A", 50, 50), ent(2, "A", 51, 50)],
                                      model, cfg["bounds"])
        assert report.corrections == 2
        for fx, fy in report.forces.values():
            assert math.hypot(fx, fy) == pytest.approx(500.0)

    def test_connections_reported_once(self, rng):
        field, model, cfg = make_field(rng)
        ents = [ent(5, "A", 100, 100), ent(2, "A", 120, 100), ent(9, "B", 110, 110)]
        report = field.compute_forces(ents, model, cfg["bounds"])
        assert report.connections == ((2, 5),)

    def test_noise_is_bounded(self, rng):
        field, model, cfg = make_field(rng, noise=10.0)
        f = field.compute_forces([ent(1, "A", 10, 10)], model, cfg["bounds"]).forces
        assert abs(f[1][0]) <= 10.0 and abs(f[1][1]) <= 10.0

    def test_injection_pushes_along_direction(self, rng):
        field, model, cfg = make_field(rng)
        inj = ForceInjection(100, 100, radius=40, strength=300, direction=(1, 0), decay=1.0)
        f = field.compute_forces([ent(1, "A", 110, 100)], model, cfg["bounds"],
                                 injections=[inj]).forces
        assert f[1][0] == pytest.approx(300 * (1 - 10 / 40))
        assert f[1][1] == pytest.approx(0.0)

    def test_attract_trait_pulls_neighbours(self, rng):
        neutral = {("A", "A"): 0.0, ("A", "B"): 0.0, ("B", "B"): 0.0}
        field, _, cfg = make_field(rng, compatibility=neutral, trait_alphabet=["magnet"],
                                   trait_effects={"magnet": {"affinity_bonus": 0.5}})
        model = CompatibilityModel(["A", "B"], neutral)
        magnet = Entity(1, "A", (100.0, 100.0), (0.0, 0.0), energy=100.0,
                        max_energy=100.0, lifespan=10.0, genome=("magnet",))
        other = ent(2, "B", 120, 100)
        f = field.compute_forces([magnet, other], model, cfg["bounds"]).forces
        assert f[2][0] == pytest.approx(-cfg["force_scale"] * 0.5 / 20.0 ** 2)
        assert f[2][1] == pytest.approx(0.0)
        assert f[1] == (0.0, 0.0)

    def test_attract_trait_absent_keeps_symmetry(self, rng):
        field, model, cfg = make_field(rng, trait_alphabet=["magnet"],
                                       trait_effects={"magnet": {"affinity_bonus": 0.5}})
        a, b = ent(1, "A", 100, 100), ent(2, "B", 110, 130)
        f = field.compute_forces([a, b], model, cfg["bounds"]).forces
        assert f[1][0] == pytest.approx(-f[2][0])

    def test_empty_population(self, rng):
        field, model, cfg = make_field(rng)
        report = field.compute_forces([], model, cfg["bounds"])
        assert report.forces == {} and report.connections == ()


class TestIntegrate:

    def test_euler_step_with_damping(self, rng):
        field, _, cfg = make_field(rng, damping=0.5, min_speed=0.0)
        e = ent(1, "A", 100, 100, vx=10.0)
        field.integrate([e], {1: (100.0, 0.0)}, 0.1, cfg["bounds"])
        assert e.vx == pytest.approx((10.0 + 100.0 * 0.1) * 0.5)
        assert e.x == pytest.approx(100 + e.vx * 0.1)

    def test_wall_reflection_damped(self, rng):
        field, _, cfg = make_field(rng, damping=1.0)
        e = ent(1, "A", 799.0, 300.0, vx=200.0)
        field.integrate([e], {}, 0.05, cfg["bounds"])
        assert e.x == 800.0
        assert e.vx == pytest.approx(-200.0 * 0.8)

    def test_positions_stay_in_bounds(self, rng):
        field, _, cfg = make_field(rng, damping=1.0)
        ents = [ent(i, "A", float(x), float(y), vx=float(vx), vy=float(vy))
                for i, (x, y, vx, vy) in enumerate(
                    rng.uniform([0, 0, -240, -240], [800, 600, 240, 240], size=(30, 4)), 1)]
        for _ in range(200):
            field.integrate(ents, {}, 0.05, cfg["bounds"])
            for e in ents:
                assert 0.0 <= e.x <= 800.0
                assert 0.0 <= e.y <= 600.0

    def test_speed_capped(self, rng):
        field, _, cfg = make_field(rng, damping=1.0, max_speed=100.0)
        e = ent(1, "A", 400, 300, vx=5000.0, vy=5000.0)
        field.integrate([e], {}, 0.01, cfg["bounds"])
        assert e.speed < 100.0
        assert e.speed == pytest.approx(100.0)

    def test_speed_at_limit_pulled_below(self, rng):
        field, _, cfg = make_field(rng, damping=1.0, max_speed=100.0)
        e = ent(1, "A", 400, 300, vx=100.0)
        field.integrate([e], {}, 0.01, cfg["bounds"])
        assert 0.0 < e.speed < 100.0

    def test_speed_never_zero(self, rng):
        field, _, cfg = make_field(rng, min_speed=2.0)
        e = ent(1, "A", 400, 300)
        field.integrate([e], {}, 0.016, cfg["bounds"])
        assert e.speed == pytest.approx(2.0)

    def test_non_finite_velocity_reset(self, rng):
        field, _, cfg = make_field(rng)
        e = ent(1, "A", 400, 300, vx=float("nan"))
        corrections = field.integrate([e], {}, 0.016, cfg["bounds"])
        assert corrections == 1
        assert np.isfinite([e.x, e.y, e.vx, e.vy]).all()
