"""Tests for hierarchical issue ids and sprint ids."""

from __future__ import annotations

import pytest

from ppp.errors import InvalidIdFormat
from ppp.ids import (
    level_of,
    level_segment,
    next_child_id,
    normalize_id,
    normalize_sprint_id,
    parent_of,
    parse_id,
)


class TestParse:
    @pytest.mark.parametrize("issue_id", ["F01", "F0102", "F010203", "T0101", "T01020304", "B0101"])
    def test_valid(self, issue_id):
        prefix, digits = parse_id(issue_id)
        assert prefix + digits == issue_id

    @pytest.mark.parametrize("issue_id", ["", "F", "F1", "F012", "X01", "f01", "F01020304", "S01"])
    def test_invalid(self, issue_id):
        with pytest.raises(InvalidIdFormat):
            parse_id(issue_id)

    def test_normalize_id(self):
        assert normalize_id("  f0102 ") == "F0102"


class TestLevels:
    def test_level_of(self):
        assert level_of("F01") == 1
        assert level_of("F0102") == 2
        assert level_of("T010203") == 3
        assert level_of("B0101") == 2

    def test_parent_of(self):
        assert parent_of("F01") is None
        assert parent_of("F0102") == "F01"
        assert parent_of("T010203") == "F0102"
        assert parent_of("B0101") == "F01"

    def test_level_segment(self):
        assert level_segment("F0102", 1) == "F01"
        assert level_segment("F0102", 2) == "F02"
        assert level_segment("T010203", 3) == "T03"

    def test_level_segment_out_of_range(self):
        with pytest.raises(InvalidIdFormat):
            level_segment("F01", 2)


class TestNextChildId:
    def test_top_level(self):
        assert next_child_id(None, 3, "F") == "F03"

    def test_children(self):
        assert next_child_id("F01", 2, "F") == "F0102"
        assert next_child_id("F0102", 1, "T") == "T010201"
        assert next_child_id("F01", 12, "B") == "B0112"

    def test_overflow(self):
        with pytest.raises(InvalidIdFormat):
            next_child_id("F01", 100, "T")

    @pytest.mark.parametrize("parent", ["F01", "F0102", "F0999"])
    @pytest.mark.parametrize("prefix", ["F", "T", "B"])
    def test_parent_round_trip(self, parent, prefix):
        for n in (1, 9, 42, 99):
            child = next_child_id(parent, n, prefix)
            assert parent_of(child) == parent
            assert level_of(child) == level_of(parent) + 1


class TestSprintIds:
    @pytest.mark.parametrize("raw", ["S01", "s01", "S1", "01", "1", "Sprint-01", "sprint 1"])
    def test_normalize(self, raw):
        assert normalize_sprint_id(raw) == "S01"

    def test_two_digit(self):
        assert normalize_sprint_id("12") == "S12"

    @pytest.mark.parametrize("raw", ["", "x", "0", "S", "F01"])
    def test_invalid(self, raw):
        with pytest.raises(InvalidIdFormat):
            normalize_sprint_id(raw)
