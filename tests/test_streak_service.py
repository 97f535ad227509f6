"""
Tests for the Streak Engine (pure functions).
"""
from datetime import date, timedelta

import pytest

from culturepoints.services.streak_service import (
    streak_day_index,
    streak_multiplier,
    streak_points,
    describe_streak,
)
from culturepoints.utils.dates import week_start

# 2024-06-03 is a Monday
MONDAY = date(2024, 6, 3)


def days(start, count):
    return [start + timedelta(days=i) for i in range(count)]


class TestStreakDayIndex:

    def test_no_history(self):
        assert streak_day_index([], MONDAY + timedelta(days=3)) == 0

    def test_monday_is_always_zero(self):
        previous_week = days(MONDAY - timedelta(days=7), 7)
        assert streak_day_index(previous_week, MONDAY) == 0

    def test_full_week_reaches_six_on_sunday(self):
        sunday = MONDAY + timedelta(days=6)
        assert streak_day_index(days(MONDAY, 6), sunday) == 6

    def test_following_monday_resets_unbroken_streak(self):
        following_monday = MONDAY + timedelta(days=7)
        assert streak_day_index(days(MONDAY, 7), following_monday) == 0

    def test_gap_resets(self):
        thursday = MONDAY + timedelta(days=3)
        # Mon, Tue, then nothing on Wed
        assert streak_day_index(days(MONDAY, 2), thursday) == 0

    def test_counts_only_the_unbroken_tail(self):
        friday = MONDAY + timedelta(days=4)
        history = [MONDAY, MONDAY + timedelta(days=2), MONDAY + timedelta(days=3)]
        assert streak_day_index(history, friday) == 2

    def test_today_and_duplicates_ignored(self):
        wednesday = MONDAY + timedelta(days=2)
        history = [MONDAY, MONDAY, MONDAY + timedelta(days=1), wednesday]
        assert streak_day_index(history, wednesday) == 2


class TestStreakMultiplier:

    @pytest.mark.parametrize('index,expected', [
        (0, 1), (1, 2), (2, 4), (3, 8), (4, 16), (5, 32), (6, 64), (7, 1), (13, 64),
    ])
    def test_powers_of_two_mod_seven(self, index, expected):
        assert streak_multiplier(index) == expected

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            streak_multiplier(-1)


class TestStreakPoints:

    def test_scales_checkpoint_value(self):
        assert streak_points(100, 0) == 100
        assert streak_points(100, 6) == 6400

    def test_missing_value_uses_base_fifty(self):
        assert streak_points(None, 0) == 50
        assert streak_points(0, 2) == 200

    def test_custom_floor(self):
        assert streak_points(None, 1, base_floor=25) == 50

    def test_low_value_is_floored_at_base(self):
        assert streak_points(10, 0) == 50
        assert streak_points(10, 3) == 400
        assert streak_points(49, 0, base_floor=50) == 50
        assert streak_points(51, 0) == 51


class TestDescribeStreak:

    def test_summary(self):
        wednesday = MONDAY + timedelta(days=2)
        summary = describe_streak(days(MONDAY, 2), wednesday, points_value=100)

        assert summary == {
            'streakDayIndex': 2,
            'multiplier': 4,
            'weekStart': '2024-06-03',
            'nextReward': 400,
        }

    def test_next_reward_uses_configured_floor(self):
        tuesday = MONDAY + timedelta(days=1)
        summary = describe_streak(days(MONDAY, 1), tuesday, points_value=10, base_floor=75)

        assert summary['nextReward'] == 150

    def test_week_start(self):
        assert week_start(MONDAY + timedelta(days=6)) == MONDAY
        assert week_start(MONDAY) == MONDAY
