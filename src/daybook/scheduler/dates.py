"""
Daily-note dates and schedule presets.

Daily notes are named ``YYYY-MM-DD.md`` inside the daily folder; a note's
date identity is its filename, never the wall clock.
"""

import re
from datetime import date, datetime, timedelta
from pathlib import PurePosixPath
from typing import Callable, Dict, Optional

from daybook.config import Settings

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
COMPACT_DATE_PATTERN = re.compile(r"^\d{8}$")


class InvalidDateError(ValueError):
    """Raised when a schedule date is not a real YYYY-MM-DD date."""


def format_date(day: date) -> str:
    return day.isoformat()


def today_str() -> str:
    return format_date(date.today())


def parse_custom_date(value: Optional[str]) -> Optional[str]:
    """
    Normalize ``YYYY-MM-DD`` or ``YYYYMMDD`` input to ISO 8601.

    Returns None if the input is empty or not a valid calendar date.
    """
    if not value:
        return None
    cleaned = value.strip()
    if COMPACT_DATE_PATTERN.match(cleaned):
        cleaned = f"{cleaned[:4]}-{cleaned[4:6]}-{cleaned[6:]}"
    if not DATE_PATTERN.match(cleaned):
        return None
    try:
        return datetime.strptime(cleaned, "%Y-%m-%d").date().isoformat()
    except ValueError:
        return None


def require_date(value: Optional[str]) -> str:
    """Like parse_custom_date but raises InvalidDateError instead of returning None."""
    parsed = parse_custom_date(value)
    if parsed is None:
        raise InvalidDateError(f"Invalid date '{value}'; expected YYYY-MM-DD or YYYYMMDD")
    return parsed


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

def daily_note_path(day: str, settings: Settings) -> str:
    return f"{settings.daily_folder}/{day}.md"


def date_from_path(path: str) -> Optional[str]:
    """The YYYY-MM-DD stem of a daily-note path, or None."""
    stem = PurePosixPath(path).stem
    return stem if DATE_PATTERN.match(stem) else None


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

def tomorrow(today: Optional[date] = None) -> str:
    return format_date((today or date.today()) + timedelta(days=1))


def day_after_tomorrow(today: Optional[date] = None) -> str:
    return format_date((today or date.today()) + timedelta(days=2))


def next_monday(today: Optional[date] = None) -> str:
    """The Monday after today; a full week ahead when today is Monday."""
    today = today or date.today()
    return format_date(today + timedelta(days=7 - today.weekday()))


def one_week_from_now(today: Optional[date] = None) -> str:
    return format_date((today or date.today()) + timedelta(days=7))


SCHEDULE_PRESETS: Dict[str, Callable[[Optional[date]], str]] = {
    "tomorrow": tomorrow,
    "day-after": day_after_tomorrow,
    "next-monday": next_monday,
    "one-week": one_week_from_now,
}


def resolve_schedule_date(value: str, today: Optional[date] = None) -> str:
    """Preset name or explicit date -> YYYY-MM-DD."""
    preset = SCHEDULE_PRESETS.get(value.strip().lower())
    if preset:
        return preset(today)
    return require_date(value)
