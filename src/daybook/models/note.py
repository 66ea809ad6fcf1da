"""Records for satellite notes, calendar feed events and operation notices."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SubtaskItem:
    """One checklist entry as it appears in a task note's ``## Subtasks``."""

    text: str
    completed: bool = False

    @property
    def key(self) -> str:
        """Case-insensitive identity used when merging subtask lists."""
        return self.text.strip().lower()

    def render(self) -> str:
        return f"- [{'x' if self.completed else ' '}] {self.text}"


@dataclass
class TaskNote:
    """Front-matter view of a satellite task note."""

    path: str
    task: str = ""
    task_id: Optional[str] = None
    status: Optional[str] = None
    source_file: Optional[str] = None
    scheduled: Optional[str] = None


@dataclass
class FeedEvent:
    """An event record as produced by a calendar feed."""

    summary: str
    start_time: str
    end_time: str
    uid: Optional[str] = None
    calendar_name: Optional[str] = None
    location: Optional[str] = None
    call_url: Optional[str] = None


@dataclass
class OperationResult:
    """
    Outcome of a command that touches the vault.

    Missing referents are not errors: they come back as ``ok=False`` with a
    user-facing message. ``paths`` lists every document that was written.
    """

    ok: bool
    message: str = ""
    paths: List[str] = field(default_factory=list)
    count: int = 0

    def to_dict(self) -> dict:
        d = {"ok": self.ok, "message": self.message, "paths": list(self.paths)}
        if self.count:
            d["count"] = self.count
        return d
