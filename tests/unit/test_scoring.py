"""Unit tests for intensity normalization."""

import pytest

from karmaledger.dashboard.service import format_percentage, normalized_score


class TestNormalizedScore:
    def test_minimum_intensity_is_zero(self):
        assert normalized_score(-1) == 0

    def test_maximum_intensity_is_hundred(self):
        assert normalized_score(10) == 100

    def test_midpoint_is_about_fifty(self):
        assert normalized_score(4.5) == 50

    @pytest.mark.parametrize("avg,expected", [(-5, 0), (15, 100)])
    def test_out_of_range_is_clamped(self, avg, expected):
        assert normalized_score(avg) == expected

    def test_returns_int(self):
        assert isinstance(normalized_score(7.25), int)


def test_format_percentage():
    assert format_percentage(73) == "73%"
