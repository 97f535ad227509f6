"""
Calendar helpers for the check-in engine.

Daily caps and streaks work on calendar days in the service's reference
timezone (REFERENCE_TIMEZONE, UTC by default). Naive datetimes are treated
as UTC, matching the datetime.utcnow() timestamps stored on every model.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


def reference_tz() -> ZoneInfo:
    """Timezone that defines calendar days for caps and streaks."""
    name = 'UTC'
    if has_app_context():
        name = current_app.config.get('REFERENCE_TIMEZONE', 'UTC')
    return ZoneInfo(name)


def reference_date(now: Optional[datetime] = None) -> date:
    """Calendar day of `now` (default: current time) in the reference timezone."""
    now = now or datetime.utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(reference_tz()).date()


def week_start(day: date) -> date:
    """Monday of the ISO week containing `day`."""
    return day - timedelta(days=day.weekday())
