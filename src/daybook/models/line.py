"""
Line records for daily-note documents.

Every line of a daily note parses into exactly one of three records:

    TaskLine       a checkbox line (any marker except ``c``)
    CalendarEvent  a ``- [c]`` line synced from a calendar feed
    PlainLine      anything else (headings, prose, blanks, callouts)

The records carry the structured view of the line; ``parsers.line_grammar``
owns every regex and is the only place that converts between text and
records. ``raw`` keeps the original text so untouched lines round-trip
byte-for-byte.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Union

# Checkbox markers
INCOMPLETE = " "
COMPLETE = "x"
CANCELLED = "-"
SCHEDULED = ">"
IN_PROGRESS = "/"
CALENDAR = "c"

# "Completed" for sorting and archiving purposes. ``>`` is included: a task
# that was moved to another day is finished as far as this note is concerned.
TERMINAL_MARKERS = frozenset({"x", "X", "-", ">"})
ACTIVE_MARKERS = frozenset({" ", "/", "c"})
ACTIONABLE_MARKERS = frozenset({" ", "/"})


class SortKey(NamedTuple):
    has_time: bool
    start: float
    end: float

    def order(self) -> tuple:
        """Tuple ordering timed lines before untimed, then by start and end."""
        return (not self.has_time, self.start, self.end)


UNTIMED = SortKey(False, float("inf"), float("inf"))


@dataclass(frozen=True)
class TimeBlock:
    """A ``HH:MM - HH:MM`` prefix, stored as minutes since midnight."""

    start: int
    end: int

    @staticmethod
    def format_time(hour: int, minute: int) -> str:
        return f"{hour:02d}:{minute:02d}"

    @property
    def label(self) -> str:
        return (
            f"{self.format_time(*divmod(self.start, 60))} - "
            f"{self.format_time(*divmod(self.end, 60))}"
        )

    @property
    def sort_key(self) -> SortKey:
        return SortKey(True, self.start, self.end)


@dataclass(frozen=True)
class TaskLine:
    """
    A checkbox task line.

    ``text`` is the free-form content with every known metadata tag removed.
    Tags are stored in their own fields and rendered back in canonical order.
    """

    indent: int
    marker: str
    text: str
    id: Optional[str] = None
    parent_id: Optional[str] = None
    uid: Optional[str] = None
    schedule_from: Optional[str] = None
    schedule_to: Optional[str] = None
    gap: str = " "
    raw: str = field(default="", compare=False)

    @property
    def is_subtask(self) -> bool:
        return self.indent > 0

    @property
    def is_parent(self) -> bool:
        return self.indent == 0

    @property
    def is_completed(self) -> bool:
        return self.marker in TERMINAL_MARKERS

    @property
    def is_scheduled_away(self) -> bool:
        return self.marker == SCHEDULED

    @property
    def is_scheduled(self) -> bool:
        """Scheduled if either the marker or the forward tag says so."""
        return self.marker == SCHEDULED or self.schedule_to is not None


@dataclass(frozen=True)
class CalendarEvent:
    """A read-only ``- [c]`` line. Never assigned ids or parent links."""

    indent: int
    text: str
    uid: Optional[str] = None
    calendar: Optional[str] = None
    gap: str = " "
    raw: str = field(default="", compare=False)

    marker = CALENDAR

    @property
    def is_parent(self) -> bool:
        return self.indent == 0

    @property
    def is_subtask(self) -> bool:
        return self.indent > 0


@dataclass(frozen=True)
class PlainLine:
    raw: str

    @property
    def is_heading(self) -> bool:
        return self.raw.startswith("#")

    @property
    def is_blank(self) -> bool:
        return not self.raw.strip()


Line = Union[TaskLine, CalendarEvent, PlainLine]
