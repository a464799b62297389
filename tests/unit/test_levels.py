"""Level formula tests: level = floor(sqrt(points / 100)) + 1."""

import math

import pytest

from learnhub.gamification.levels import (
    calculate_level,
    level_progress,
    points_for_level,
    points_for_next_level,
)


class TestCalculateLevel:
    """Known boundaries of the square-root formula."""

    @pytest.mark.parametrize(
        "points,expected_level",
        [
            (0, 1),
            (99, 1),
            (100, 2),
            (399, 2),
            (400, 3),
            (899, 3),
            (900, 4),
            (1600, 5),
            (10_000, 11),
        ],
    )
    def test_level_boundaries(self, points, expected_level):
        assert calculate_level(points) == expected_level

    def test_matches_float_formula(self):
        """Integer implementation agrees with floor(sqrt(p / 100)) + 1."""
        for points in range(0, 250_000, 37):
            assert calculate_level(points) == math.floor(math.sqrt(points / 100)) + 1

    def test_monotonic(self):
        previous = calculate_level(0)
        for points in range(1, 50_000, 13):
            current = calculate_level(points)
            assert current >= previous
            previous = current

    def test_huge_totals_stay_exact(self):
        """No float rounding at the top end: 10**30 points is exactly level 10**14 + 1."""
        assert calculate_level(10**30) == 10**14 + 1
        assert calculate_level(10**30 - 1) == 10**14

    def test_negative_points_rejected(self):
        with pytest.raises(ValueError):
            calculate_level(-1)


class TestLevelThresholds:
    """points_for_level / points_for_next_level are inverses of calculate_level."""

    @pytest.mark.parametrize("level", range(1, 201))
    def test_round_trip(self, level):
        assert calculate_level(points_for_level(level)) == level
        assert calculate_level(points_for_next_level(level) - 1) == level
        assert calculate_level(points_for_next_level(level)) == level + 1

    def test_next_level_threshold_values(self):
        assert points_for_next_level(1) == 100
        assert points_for_next_level(2) == 400
        assert points_for_next_level(5) == 2500

    def test_level_start_values(self):
        assert points_for_level(1) == 0
        assert points_for_level(2) == 100
        assert points_for_level(3) == 400


class TestLevelProgress:
    """Progress within the current level."""

    def test_fresh_user(self):
        progress = level_progress(0, 1)
        assert progress == {
            "points_for_next_level": 100,
            "points_in_current_level": 0,
            "progress_to_next_level": 0.0,
        }

    def test_midway_through_level_2(self):
        progress = level_progress(250, 2)  # level 2 spans 100..399
        assert progress["points_for_next_level"] == 400
        assert progress["points_in_current_level"] == 150
        assert progress["progress_to_next_level"] == pytest.approx(50.0)

    def test_at_level_start(self):
        progress = level_progress(400, 3)
        assert progress["points_in_current_level"] == 0
        assert progress["progress_to_next_level"] == 0.0
