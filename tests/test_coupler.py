"""
tests/test_coupler.py - Pointer input coupling and rate limiting
"""

import math
from collections import Counter

import pytest

from particle_ecosystem.config import build_config
from particle_ecosystem.coupler import ForceInjection, InputCoupler, PointerEvent, SpawnRequest

CATS = ["calm", "easy", "mid", "brisk", "wild"]


def make_coupler(rng, **overrides):
    cfg = {"categories": CATS,
           "compatibility": {(a, b): 0.1 for a in CATS for b in CATS},
           "mutation_rate": 0.0, "spawn_interval_ms": 100.0}
    cfg.update(overrides)
    return InputCoupler(build_config(cfg), rng)


class TestRateLimit:

    def test_timestamp_required(self, rng):
        with pytest.raises(ValueError):
            make_coupler(rng).on_pointer_event(PointerEvent(1, 1))

    def test_first_event_emits(self, rng):
        out = make_coupler(rng).on_pointer_event(PointerEvent(10, 20, 0.0))
        assert isinstance(out, SpawnRequest)
        assert (out.x, out.y) == (10, 20)
        assert out.category in CATS

    def test_events_inside_window_coalesce(self, rng):
        c = make_coupler(rng)
        assert c.on_pointer_event(PointerEvent(0, 0, 0.0)) is not None
        for t, x in ((10.0, 1), (20.0, 2), (30.0, 3)):
            assert c.on_pointer_event(PointerEvent(x, x, t)) is None
        assert c.coalesced == 2
        assert c.flush(50.0) is None
        out = c.flush(100.0)
        assert (out.x, out.y) == (3, 3)
        assert c.flush(300.0) is None

    def test_flush_restarts_window(self, rng):
        c = make_coupler(rng)
        c.on_pointer_event(PointerEvent(0, 0, 0.0))
        c.on_pointer_event(PointerEvent(5, 5, 50.0))
        assert c.flush(120.0) is not None
        assert c.on_pointer_event(PointerEvent(9, 9, 150.0)) is None
        assert c.on_pointer_event(PointerEvent(9, 9, 230.0)) is not None

    def test_new_window_supersedes_stale_pending(self, rng):
        c = make_coupler(rng)
        c.on_pointer_event(PointerEvent(0, 0, 0.0))
        c.on_pointer_event(PointerEvent(1, 1, 50.0))
        out = c.on_pointer_event(PointerEvent(7, 7, 500.0))
        assert (out.x, out.y) == (7, 7)
        assert c.coalesced == 1
        assert c.flush(1000.0) is None

    def test_hover_events_never_emit(self, rng):
        c = make_coupler(rng)
        assert c.on_pointer_event(PointerEvent(0, 0, 0.0, pressed=False)) is None
        assert c.flush(1000.0) is None

    def test_emitted_count_bounded_by_window(self, rng):
        c = make_coupler(rng)
        emitted = 0
        for i in range(100):                      # 100 events over 500 ms
            t = i * 5.0
            if c.on_pointer_event(PointerEvent(i, i, t)) is not None:
                emitted += 1
            if c.flush(t) is not None:
                emitted += 1
        assert emitted <= 6
        assert emitted < 100


class TestCategoryChoice:

    def test_velocity_bias_prefers_energetic_end(self, rng):
        c = make_coupler(rng, category_bias="velocity")
        picks = Counter()
        for i in range(300):
            out = c.on_pointer_event(PointerEvent((i % 2) * 1000.0, 0.0, i * 200.0))
            if i > 0:
                picks[out.category] += 1
        assert picks.most_common(1)[0][0] == "wild"
        assert picks["calm"] < picks["wild"]

    def test_slow_pointer_prefers_calm_end(self, rng):
        c = make_coupler(rng, category_bias="velocity")
        picks = Counter()
        for i in range(300):
            out = c.on_pointer_event(PointerEvent(0.0, 0.0, i * 200.0))
            picks[out.category] += 1
        assert picks.most_common(1)[0][0] == "calm"

    def test_uniform_covers_all(self, rng):
        c = make_coupler(rng)
        seen = {c.on_pointer_event(PointerEvent(0, 0, i * 200.0)).category for i in range(200)}
        assert seen == set(CATS)


class TestForceInjection:

    def test_inject_mode_returns_injection(self, rng):
        c = make_coupler(rng, input_mode="inject", brush_radius=30.0)
        c.on_pointer_event(PointerEvent(0, 0, 0.0, pressed=False))
        out = c.on_pointer_event(PointerEvent(10, 0, 10.0))
        assert isinstance(out, ForceInjection)
        assert out.radius == 30.0
        assert out.direction == (1.0, 0.0)

    def test_still_pointer_pushes_outward(self):
        inj = ForceInjection(0, 0, radius=10, strength=100, direction=(0, 0), decay=1.0)
        fx, fy = inj.force_at(0, 5)
        assert fx == pytest.approx(0.0)
        assert fy == pytest.approx(50.0)
        assert inj.force_at(0, 0) == (0.0, 0.0)
        assert inj.force_at(50, 0) == (0.0, 0.0)

    def test_decays_and_expires(self):
        inj = ForceInjection(0, 0, radius=10, strength=100, direction=(1, 0), decay=2.0)
        assert inj.step(0.5)
        assert inj.strength == pytest.approx(100 * math.exp(-1.0))
        while inj.step(0.5):
            pass
        assert inj.strength < ForceInjection.CUTOFF
