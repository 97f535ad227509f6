"""
Streak Engine.

Pure functions, no database access. Daily challenge rules as shown in the
product:
- Checking in on consecutive days doubles that day's reward
- Missing a day resets the streak
- The streak resets every Monday even if unbroken

day_index = consecutive calendar days immediately before `today` with at
least one check-in, counted back no further than this week's Monday.
multiplier = 2 ** (day_index % 7)
"""

from datetime import date, timedelta
from typing import Iterable, Optional, Dict, Any

from ..utils.dates import week_start

STREAK_BASE_POINTS = 50
MAX_STREAK_DAYS = 7


def streak_day_index(checkin_dates: Iterable[date], today: date) -> int:
    """
    Position of `today` in the current streak.

    Args:
        checkin_dates: Calendar days with at least one counted check-in
            (duplicates and days outside this week are ignored)
        today: The day being checked in, in the reference timezone

    Returns:
        0 on Monday, after a gap day, or with no history; otherwise the
        number of unbroken days since Monday leading up to today
    """
    days = set(checkin_dates)
    monday = week_start(today)

    index = 0
    day = today - timedelta(days=1)
    while day >= monday and day in days:
        index += 1
        day -= timedelta(days=1)
    return index


def streak_multiplier(day_index: int) -> int:
    """2 ** (day_index mod 7)."""
    if day_index < 0:
        raise ValueError(f'day_index must be non-negative, got {day_index}')
    return 2 ** (day_index % MAX_STREAK_DAYS)


def streak_points(points_value: Optional[int], day_index: int, base_floor: int = STREAK_BASE_POINTS) -> int:
    """
    Reward for a check-in on streak day `day_index`.

    The base term is the checkpoint's points_value, floored at the streak
    base (50 by default), so a missing or low value still pays the base.
    """
    base = max(points_value or 0, base_floor)
    return base * streak_multiplier(day_index)


def describe_streak(
    checkin_dates: Iterable[date],
    today: date,
    points_value: Optional[int] = None,
    base_floor: int = STREAK_BASE_POINTS,
) -> Dict[str, Any]:
    """Streak summary for status responses."""
    index = streak_day_index(checkin_dates, today)
    multiplier = streak_multiplier(index)
    summary = {
        'streakDayIndex': index,
        'multiplier': multiplier,
        'weekStart': week_start(today).isoformat(),
    }
    if points_value is not None:
        summary['nextReward'] = streak_points(points_value, index, base_floor=base_floor)
    return summary
