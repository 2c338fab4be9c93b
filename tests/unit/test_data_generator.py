"""
Unit Tests for Workload Generators.

Tests AccessPatternGenerator and CacheEntryGenerator.
"""

import pytest

from storebench.benchmark.data_generator import AccessPatternGenerator, CacheEntry, CacheEntryGenerator, ValueType


class TestAccessPatternGenerator:
    """Test cases for AccessPatternGenerator."""

    # =========================================================================
    # Keys
    # =========================================================================

    def test_generate_keys_unique(self) -> None:
        keys = AccessPatternGenerator(seed=1).generate_keys(500)

        assert len(keys) == 500
        assert len(set(keys)) == 500
        assert all(k.startswith("cache:") and len(k) == len("cache:") + 16 for k in keys)

    def test_generate_keys_custom_prefix(self) -> None:
        keys = AccessPatternGenerator(seed=1).generate_keys(3, prefix="session:")

        assert all(k.startswith("session:") for k in keys)

    def test_generate_keys_zero(self) -> None:
        assert AccessPatternGenerator(seed=1).generate_keys(0) == []

    def test_generate_keys_negative(self) -> None:
        with pytest.raises(ValueError):
            AccessPatternGenerator(seed=1).generate_keys(-1)

    # =========================================================================
    # Patterns
    # =========================================================================

    def test_empty_keys_give_empty_pattern(self) -> None:
        assert AccessPatternGenerator(seed=1).generate_pattern([], 100, 20, 80) == []

    def test_hot_keys_receive_most_accesses(self) -> None:
        """With 10 keys, 2 are hot and take roughly 80% of 1000 draws."""
        generator = AccessPatternGenerator(seed=1234)
        keys = [f"k{i}" for i in range(1, 11)]

        pattern = generator.generate_pattern(keys, 1000, hot_fraction=20, hot_access_fraction=80)

        hot = set(generator.last_hot_keys)
        assert len(hot) == 2
        assert len(pattern) == 1000
        hot_share = sum(1 for k in pattern if k in hot) / len(pattern)
        # 80% hot draws plus 0 from cold; binomial sd over 1000 draws is ~1.3%
        assert 0.75 <= hot_share <= 0.85

    def test_pattern_only_uses_given_keys(self) -> None:
        keys = ["a", "b", "c", "d", "e"]

        pattern = AccessPatternGenerator(seed=3).generate_pattern(keys, 200)

        assert set(pattern) <= set(keys)

    def test_same_seed_replays_pattern(self) -> None:
        keys = [f"k{i}" for i in range(50)]

        first = AccessPatternGenerator(seed=99).generate_pattern(keys, 300)
        second = AccessPatternGenerator(seed=99).generate_pattern(keys, 300)

        assert first == second

    def test_single_key_falls_back_to_hot(self) -> None:
        pattern = AccessPatternGenerator(seed=5).generate_pattern(["only"], 20, hot_access_fraction=0)

        assert pattern == ["only"] * 20

    def test_hot_set_is_at_least_one(self) -> None:
        hot, cold = AccessPatternGenerator(seed=5).split_hot_cold(["a", "b", "c"], hot_fraction=0)

        assert len(hot) == 1
        assert len(cold) == 2

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"hot_fraction": -1},
            {"hot_fraction": 101},
            {"hot_access_fraction": -0.5},
            {"hot_access_fraction": 150},
        ],
    )
    def test_fractions_out_of_range(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            AccessPatternGenerator(seed=1).generate_pattern(["a", "b"], 10, **kwargs)

    def test_negative_operations(self) -> None:
        with pytest.raises(ValueError):
            AccessPatternGenerator(seed=1).generate_pattern(["a"], -1)


class TestCacheEntryGenerator:
    """Test cases for CacheEntryGenerator."""

    def test_string_value_size(self) -> None:
        value = CacheEntryGenerator(seed=1).generate_value(ValueType.STRING, size=250)

        assert isinstance(value, str)
        assert len(value) == 250

    def test_zero_size_string_is_empty(self) -> None:
        assert CacheEntryGenerator(seed=1).generate_string_value(0) == ""

    def test_binary_value_size(self) -> None:
        value = CacheEntryGenerator(seed=1).generate_value("binary", size=64)

        assert isinstance(value, bytes)
        assert len(value) == 64

    def test_json_complexity_adds_sections(self) -> None:
        generator = CacheEntryGenerator(seed=1)

        simple = generator.generate_json_value(complexity=1)
        rich = generator.generate_json_value(complexity=10)

        assert "metadata" not in simple
        for section in ("metadata", "address", "stats", "items", "history", "permissions"):
            assert section in rich

    def test_json_complexity_is_clamped(self) -> None:
        generator = CacheEntryGenerator(seed=1)

        assert set(generator.generate_json_value(complexity=99)) == set(
            CacheEntryGenerator(seed=1).generate_json_value(complexity=10)
        )

    def test_generate_entries(self) -> None:
        entries = CacheEntryGenerator(seed=8).generate_entries(50, value_type="string", value_size=20)

        assert len(entries) == 50
        assert all(isinstance(e, CacheEntry) for e in entries)
        assert len({e.key for e in entries}) == 50
        assert all(len(e.value) == 20 for e in entries)

    def test_seeded_entries_are_reproducible(self) -> None:
        first = CacheEntryGenerator(seed=8).generate_entries(5)
        second = CacheEntryGenerator(seed=8).generate_entries(5)

        assert first == second

    def test_generate_user(self) -> None:
        user = CacheEntryGenerator(seed=1).generate_user(7)

        assert user["username"] == "user7"
        assert user["email"] == "user7@example.com"
        assert "preferences" in user["metadata"]
        assert user["country"]
