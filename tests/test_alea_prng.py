"""Tests for the Alea PRNG."""

import pytest
from py_worldgen.core.alea_prng import AleaPRNG


class TestAleaSequence:
    """Test sequence reproducibility."""

    def test_same_seed_same_sequence(self):
        """Test that two generators with one seed agree."""
        a = AleaPRNG(42)
        b = AleaPRNG(42)
        assert [a.random() for _ in range(50)] == [b.random() for _ in range(50)]

    def test_different_seeds_differ(self):
        """Test that different seeds give different sequences."""
        a = AleaPRNG(42)
        b = AleaPRNG(43)
        assert [a.random() for _ in range(10)] != [b.random() for _ in range(10)]

    def test_string_and_int_seeds_are_distinct_inputs(self):
        """Test string seeds are accepted and reproducible."""
        a = AleaPRNG("world")
        b = AleaPRNG("world")
        assert a.random() == b.random()

    def test_salted_streams_are_independent(self):
        """Test that stage labels derive distinct streams from one seed."""
        sites = AleaPRNG((42, "sites"))
        rivers = AleaPRNG((42, "rivers"))
        plain = AleaPRNG(42)
        first = [sites.random(), rivers.random(), plain.random()]
        assert len(set(first)) == 3

    def test_unit_interval(self):
        """Test that values fall in [0, 1)."""
        prng = AleaPRNG("range")
        values = [prng.random() for _ in range(2000)]
        assert min(values) >= 0.0
        assert max(values) < 1.0

    def test_call_count(self):
        """Test that every draw is counted."""
        prng = AleaPRNG(1)
        for _ in range(7):
            prng.random()
        assert prng.call_count == 7


class TestAleaHelpers:
    """Test derived drawing helpers."""

    @pytest.fixture
    def prng(self):
        return AleaPRNG("helpers")

    def test_next_int_bounds(self, prng):
        """Test next_int stays in [low, high)."""
        values = {prng.next_int(3, 7) for _ in range(500)}
        assert values == {3, 4, 5, 6}

    def test_next_int_empty_range(self, prng):
        """Test next_int rejects an empty range."""
        with pytest.raises(ValueError):
            prng.next_int(5, 5)

    def test_uniform_bounds(self, prng):
        """Test uniform stays in [low, high)."""
        for _ in range(500):
            value = prng.uniform(0.3, 0.9)
            assert 0.3 <= value < 0.9

    def test_chance_extremes(self, prng):
        """Test chance(0) never fires and chance(1) always fires."""
        assert not any(prng.chance(0.0) for _ in range(200))
        assert all(prng.chance(1.0) for _ in range(200))

    def test_chance_rate(self, prng):
        """Test chance fires at roughly the requested rate."""
        hits = sum(prng.chance(0.25) for _ in range(4000))
        assert 800 < hits < 1200

    def test_shuffle_is_permutation(self, prng):
        """Test shuffle keeps every element and works in place."""
        items = list(range(20))
        result = prng.shuffle(items)
        assert result is items
        assert sorted(items) == list(range(20))

    def test_shuffle_deterministic(self):
        """Test shuffle order depends only on the seed."""
        a = AleaPRNG(9).shuffle(list(range(10)))
        b = AleaPRNG(9).shuffle(list(range(10)))
        assert a == b

    def test_pick(self, prng):
        """Test pick returns an element and rejects empty input."""
        assert prng.pick(["a", "b", "c"]) in {"a", "b", "c"}
        with pytest.raises(IndexError):
            prng.pick([])
