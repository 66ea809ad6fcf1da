from .line import (
    ACTIONABLE_MARKERS,
    ACTIVE_MARKERS,
    TERMINAL_MARKERS,
    UNTIMED,
    CalendarEvent,
    Line,
    PlainLine,
    SortKey,
    TaskLine,
    TimeBlock,
)
from .note import FeedEvent, OperationResult, SubtaskItem, TaskNote

__all__ = [
    "ACTIONABLE_MARKERS",
    "ACTIVE_MARKERS",
    "TERMINAL_MARKERS",
    "UNTIMED",
    "CalendarEvent",
    "Line",
    "PlainLine",
    "SortKey",
    "TaskLine",
    "TimeBlock",
    "FeedEvent",
    "OperationResult",
    "SubtaskItem",
    "TaskNote",
]
