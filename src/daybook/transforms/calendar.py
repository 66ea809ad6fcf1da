"""
Calendar event lines.

Events come from an external feed and are rendered as read-only
``- [c]`` lines pinned to the top of a daily note:

    - [c] 09:00 - 09:30 Standup Room 4 https://meet/x [uid::abc] [calendar::Work]
"""

from datetime import date
from typing import List, Protocol

from daybook.models.line import CalendarEvent
from daybook.models.note import FeedEvent
from daybook.parsers.line_grammar import is_calendar_event, preserve_trailing_newline


class CalendarFeed(Protocol):
    def get_events_for_date(self, day: date) -> List[FeedEvent]:
        ...


def _clock_minutes(value: str) -> int:
    try:
        hour, minute = value.split(":")
        return int(hour) * 60 + int(minute)
    except ValueError:
        return 0


def build_event_line(event: FeedEvent) -> str:
    start = event.start_time or "00:00"
    end = event.end_time or start

    text = event.summary or "Untitled Event"
    if event.location:
        text += f" {event.location}"
    if event.call_url:
        text += f" {event.call_url}"

    uid = event.uid or f"fallback-{start.replace(':', '')}"
    line = f"- [{CalendarEvent.marker}] {start} - {end} {text} [uid::{uid}]"
    if event.calendar_name:
        line += f" [calendar::{event.calendar_name}]"
    return line


@preserve_trailing_newline
def sync_events_into_content(content: str, events: List[FeedEvent]) -> str:
    """
    Replace every calendar line with fresh lines built from ``events``.

    The new lines go to the very top, ordered by start time. With no events
    the content is returned untouched, stale lines included.
    """
    if not events:
        return content

    ordered = sorted(events, key=lambda e: _clock_minutes(e.start_time or "00:00"))
    others = [line for line in content.split("\n") if not is_calendar_event(line)]
    return "\n".join([build_event_line(e) for e in ordered] + others)


def sync_from_feed(content: str, feed: CalendarFeed, day: date) -> str:
    """Pull ``day``'s events from ``feed`` and sync them into a daily note."""
    return sync_events_into_content(content, feed.get_events_for_date(day))
