"""Tests for natural ordering and text helpers."""

import pytest

from mediashelf.utils import natural_compare, natural_sort_key, strip_accents


class TestNaturalSortKey:
    """Tests for natural_sort_key."""

    def test_numbers_compare_by_value(self):
        names = ["Vol 10", "Vol 2", "Vol 1"]
        assert sorted(names, key=natural_sort_key) == ["Vol 1", "Vol 2", "Vol 10"]

    def test_case_insensitive(self):
        assert sorted(["banana", "Apple", "cherry"], key=natural_sort_key) == [
            "Apple",
            "banana",
            "cherry",
        ]

    def test_leading_zeros(self):
        assert natural_sort_key("Saga 007") == natural_sort_key("saga 7")

    def test_numbers_before_letters(self):
        assert sorted(["Annual", "1"], key=natural_sort_key) == ["1", "Annual"]

    def test_multiple_number_runs(self):
        names = ["Book 2 Part 10", "Book 2 Part 9", "Book 10 Part 1"]
        assert sorted(names, key=natural_sort_key) == [
            "Book 2 Part 9",
            "Book 2 Part 10",
            "Book 10 Part 1",
        ]

    def test_non_ascii_digits_are_text(self):
        """Test that superscripts do not break numeric parsing."""
        assert sorted(["x²", "x1"], key=natural_sort_key) == ["x1", "x²"]

    def test_empty(self):
        assert natural_sort_key("") == ()


class TestNaturalCompare:
    @pytest.mark.parametrize(
        "a, b, expected",
        [
            ("Chapter 2", "Chapter 10", -1),
            ("Chapter 10", "Chapter 2", 1),
            ("chapter 2", "Chapter 2", 0),
        ],
    )
    def test_compare(self, a, b, expected):
        assert natural_compare(a, b) == expected


class TestStripAccents:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Pokémon", "Pokemon"),
            ("Ænima", "Ænima"),
            ("Les Misérables", "Les Miserables"),
            ("naïve café", "naive cafe"),
            ("plain", "plain"),
        ],
    )
    def test_strip_accents(self, value, expected):
        assert strip_accents(value) == expected
