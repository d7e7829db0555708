"""
Unit tests for src.core.ordering.

Tests cover:
- hash_to_int against published FNV-1a 32-bit vectors
- hash_to_int on non-ASCII text (UTF-16 code units)
- seeded_shuffle determinism and permutation properties
"""

from src.core.ordering import hash_to_int, seeded_shuffle


def _fnv1a_units(units):
    h = 2166136261
    for u in units:
        h ^= u
        h = (h * 16777619) % 2**32
    return h


class TestHashToInt:
    """Tests for the FNV-1a string hash."""

    def test_empty_string_is_offset_basis(self):
        assert hash_to_int("") == 2166136261

    def test_known_vectors(self):
        assert hash_to_int("a") == 0xE40C292C
        assert hash_to_int("foobar") == 0xBF9CF968

    def test_result_fits_in_32_bits(self):
        for text in ("seed", "x" * 1000, "1700000000000"):
            assert 0 <= hash_to_int(text) < 2**32

    def test_non_ascii_hashes_code_units(self):
        assert hash_to_int("é") == _fnv1a_units([0xE9])
        assert hash_to_int("日本") == _fnv1a_units([0x65E5, 0x672C])

    def test_astral_characters_use_surrogate_pairs(self):
        assert hash_to_int("😀") == _fnv1a_units([0xD83D, 0xDE00])


class TestSeededShuffle:
    """Tests for seeded_shuffle."""

    def test_same_seed_same_order(self):
        items = list(range(100))
        assert seeded_shuffle(items, "s1") == seeded_shuffle(items, "s1")

    def test_is_a_permutation(self):
        items = [f"img{i}.jpg" for i in range(37)]
        out = seeded_shuffle(items, "session-42")
        assert len(out) == len(items)
        assert sorted(out) == sorted(items)

    def test_does_not_mutate_input(self):
        items = list(range(10))
        seeded_shuffle(items, "abc")
        assert items == list(range(10))

    def test_different_seeds_give_different_orders(self):
        items = list(range(50))
        assert seeded_shuffle(items, "s1") != seeded_shuffle(items, "s2")

    def test_empty_and_single(self):
        assert seeded_shuffle([], "x") == []
        assert seeded_shuffle(["only"], "x") == ["only"]

    def test_empty_seed_matches_zero_seed(self):
        items = list(range(20))
        assert seeded_shuffle(items, "") == seeded_shuffle(items, "0")

    def test_two_items_follow_lcg(self):
        # One step: s = (h * 1664525 + 1013904223) mod 2**32, swap index s % 2
        state = (hash_to_int("k") * 1664525 + 1013904223) % 2**32
        expected = ["a", "b"] if state % 2 == 1 else ["b", "a"]
        assert seeded_shuffle(["a", "b"], "k") == expected
