"""Tests for the seeded random source."""

import pytest

from heartbeat.statistics import RandomSource


def test_uniform_unit_range_over_many_draws() -> None:
    """Every latency draw lies in [0, 1)."""
    source = RandomSource(seed=1234)
    values = [source.uniform(0, 1) for _ in range(10_000)]
    assert all(0 <= v < 1 for v in values)
    assert min(values) < 0.01
    assert max(values) > 0.99


def test_uniform_temperature_range() -> None:
    """Temperature draws lie in [20, 30)."""
    source = RandomSource(seed=7)
    assert all(20 <= source.uniform(20, 30) < 30 for _ in range(5_000))


def test_same_seed_same_sequence() -> None:
    """Two sources with the same seed produce identical values."""
    a = RandomSource(seed=42)
    b = RandomSource(seed=42)
    assert [a.uniform(0, 1) for _ in range(20)] == [b.uniform(0, 1) for _ in range(20)]
    assert [a.choice("xyz") for _ in range(20)] == [b.choice("xyz") for _ in range(20)]


def test_uniform_degenerate_range_returns_bound() -> None:
    assert RandomSource(seed=0).uniform(5.0, 5.0) == 5.0


def test_uniform_rejects_inverted_range() -> None:
    with pytest.raises(ValueError):
        RandomSource(seed=0).uniform(2, 1)


def test_choice_covers_every_element() -> None:
    """choice() eventually returns each endpoint."""
    source = RandomSource(seed=3)
    endpoints = ("/foo", "/bar", "/baz")
    seen = {source.choice(endpoints) for _ in range(300)}
    assert seen == set(endpoints)


def test_choice_empty_sequence() -> None:
    with pytest.raises(ValueError):
        RandomSource().choice([])
