"""Tests for the bounded Counter model."""

import random

import pytest

from tabletop.database.models import Counter


def make(initial=0, low=None, high=None):
    return Counter(name="Score", initial_value=initial, min_value=low, max_value=high)


class TestIncrementDecrement:

    def test_increment_adds_one(self):
        c = make(3)
        c.increment()
        assert c.value == 4

    def test_decrement_subtracts_one(self):
        c = make(3)
        c.decrement()
        assert c.value == 2

    def test_increment_noop_at_max(self):
        c = make(5, high=5)
        assert c.can_increment is False
        c.increment()
        assert c.value == 5

    def test_decrement_noop_at_min(self):
        c = make(0, low=0)
        assert c.can_decrement is False
        c.decrement()
        assert c.value == 0

    def test_unbounded_counter_goes_negative(self):
        c = make(0)
        c.decrement()
        c.decrement()
        assert c.value == -2
        assert c.can_decrement is True
        assert c.can_increment is True


class TestReset:

    def test_reset_restores_initial_value(self):
        c = make(2, low=0, high=10)
        for _ in range(5):
            c.increment()
        c.reset()
        assert c.value == 2

    def test_reset_after_delta(self):
        c = make(7)
        c.apply_delta(-20)
        c.reset()
        assert c.value == 7


class TestApplyDelta:

    def test_delta_within_bounds(self):
        c = make(5, low=0, high=10)
        c.apply_delta(3)
        assert c.value == 8

    def test_delta_clamps_to_max(self):
        c = make(5, low=0, high=10)
        c.apply_delta(50)
        assert c.value == 10

    def test_delta_clamps_to_min(self):
        c = make(5, low=0, high=10)
        c.apply_delta(-50)
        assert c.value == 0

    def test_only_max_bound(self):
        c = make(0, high=3)
        c.apply_delta(-10)
        assert c.value == -10
        c.apply_delta(100)
        assert c.value == 3


class TestConstruction:

    def test_value_starts_at_initial(self):
        c = make(4, low=0, high=10)
        assert c.value == 4
        assert c.initial_value == 4

    def test_initial_value_clamped_into_range(self):
        c = make(20, low=0, high=10)
        assert c.value == 10
        assert c.initial_value == 10

    def test_inverted_bounds_rejected(self):
        with pytest.raises(ValueError):
            make(0, low=5, high=1)

    def test_equal_bounds_allowed(self):
        c = make(3, low=3, high=3)
        assert c.can_increment is False
        assert c.can_decrement is False


class TestBoundsInvariant:

    def test_random_operations_stay_in_range(self):
        rng = random.Random(1234)
        c = make(5, low=-3, high=12)
        for _ in range(2000):
            op = rng.choice(("inc", "dec", "delta", "reset"))
            if op == "inc":
                c.increment()
            elif op == "dec":
                c.decrement()
            elif op == "delta":
                c.apply_delta(rng.randint(-20, 20))
            else:
                c.reset()
            assert -3 <= c.value <= 12
