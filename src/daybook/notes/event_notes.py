"""Satellite notes for calendar events."""

import logging
import re
from datetime import date
from typing import Optional, Tuple

from daybook.config import Settings
from daybook.models.line import CalendarEvent
from daybook.models.note import OperationResult
from daybook.parsers import frontmatter
from daybook.parsers.line_grammar import parse_line
from daybook.store.vault_store import VaultStore

log = logging.getLogger(__name__)

_LEADING_RANGE = re.compile(r"^\d{2}:\d{2}\s*-\s*\d{2}:\d{2}\s*")
_ANY_RANGE = re.compile(r"(\d{2}:\d{2})\s*-\s*(\d{2}:\d{2})")
_URL = re.compile(r"\s*https?://\S+")
_UNSAFE = re.compile(r'[<>:"/\\|?*]')
_DATE_IN_PATH = re.compile(r"(\d{4}-\d{2}-\d{2})")


def extract_event_title(line: str) -> str:
    """``- [c] 10:00 - 11:00 Standup https://x [uid::a]`` -> ``Standup``."""
    record = parse_line(line)
    text = record.text if isinstance(record, CalendarEvent) else line
    text = _LEADING_RANGE.sub("", text)
    return _URL.sub("", text).strip()


def extract_time_range(line: str) -> Optional[Tuple[str, str]]:
    m = _ANY_RANGE.search(line)
    return (m.group(1), m.group(2)) if m else None


def sanitize_event_filename(title: str) -> Optional[str]:
    cleaned = _LEADING_RANGE.sub("", title or "")
    cleaned = _URL.sub("", cleaned)
    cleaned = _UNSAFE.sub("", cleaned)
    return cleaned.strip()[:100] or None


class EventNoteManager:
    def __init__(self, store: VaultStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings

    @property
    def folder(self) -> str:
        return self._settings.event_notes_folder.rstrip("/")

    def render_note(self, title: str, event: CalendarEvent, source_path: Optional[str], time_info: str) -> str:
        m = _DATE_IN_PATH.search(source_path or "")
        day = m.group(1) if m else date.today().isoformat()
        link = "[[" + re.sub(r"\.md$", "", source_path) + "]]" if source_path else ""
        header = frontmatter.build_frontmatter(
            [
                ("event", title, True),
                ("eventUID", event.uid or "", True),
                ("calendar", event.calendar or "", True),
                ("date", day, False),
                ("time", time_info, True),
                ("created", date.today().isoformat(), False),
                ("sourceFile", source_path or "", True),
            ]
        )
        when = f"**Date:** {day}" + (f"  |  **Time:** {time_info}" if time_info else "")
        return (
            f"{header}\n\n"
            f"# {title}\n\n"
            f"{when}\n"
            f"**Source:** {link}\n\n"
            "---\n\n"
            "## Agenda\n\n\n"
            "## Notes\n\n\n"
            "## Action Items\n\n"
            "- [ ]\n\n"
            "## Follow-ups\n\n\n"
        )

    def create_event_note(self, line: str, source_path: Optional[str] = None) -> OperationResult:
        """Open or create the note for the calendar event on ``line``."""
        if not self._settings.enable_event_notes:
            return OperationResult(False, "Event notes are disabled")
        record = parse_line(line)
        if not isinstance(record, CalendarEvent):
            return OperationResult(False, "Not a calendar event line")

        title = extract_event_title(line)
        name = sanitize_event_filename(title)
        if not name:
            return OperationResult(False, "Could not extract event name")

        path = f"{self.folder}/{name}.md"
        if self._store.exists(path):
            return OperationResult(True, f"Opened event note: {path}", [path])

        time_range = extract_time_range(line)
        time_info = f"{time_range[0]} - {time_range[1]}" if time_range else ""
        self._store.create_folder(self.folder)
        self._store.create(path, self.render_note(title, record, source_path, time_info))
        log.info("Created event note %s", path)
        return OperationResult(True, f"Created: {name}", [path])
