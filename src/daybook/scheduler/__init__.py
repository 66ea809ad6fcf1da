from .dates import (
    SCHEDULE_PRESETS,
    InvalidDateError,
    daily_note_path,
    parse_custom_date,
    resolve_schedule_date,
)
from .scheduler import TaskScheduler

__all__ = [
    "SCHEDULE_PRESETS",
    "InvalidDateError",
    "daily_note_path",
    "parse_custom_date",
    "resolve_schedule_date",
    "TaskScheduler",
]
