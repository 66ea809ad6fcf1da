"""Checkbox marker <-> task note ``status`` synchronization."""

import logging
from typing import Dict, Optional

from daybook.config import Settings
from daybook.models.line import TaskLine
from daybook.models.note import OperationResult
from daybook.notes.task_notes import TaskNoteManager
from daybook.parsers import frontmatter
from daybook.parsers.line_grammar import parse_line, set_marker
from daybook.store.vault_store import VaultStore

log = logging.getLogger(__name__)


class StatusSynchronizer:
    """
    Keeps a task note's ``status`` field and its source checkbox in step.

    Both directions compare mapped statuses before writing, so a sync that
    has nothing to change never touches the document.
    """

    def __init__(self, store: VaultStore, settings: Settings, notes: TaskNoteManager) -> None:
        self._store = store
        self._settings = settings
        self._notes = notes

    @property
    def mappings(self) -> Dict[str, str]:
        return self._settings.status_mappings

    @property
    def enabled(self) -> bool:
        return self._settings.enable_task_status_sync

    def marker_to_status(self, marker: str) -> str:
        return self.mappings.get(marker, "incomplete")

    def status_to_marker(self, status: str) -> str:
        for marker, name in self.mappings.items():
            if name == status:
                return marker
        return " "

    # ------------------------------------------------------------------
    # Source -> note
    # ------------------------------------------------------------------

    def sync_status_to_task_note(
        self, task_id: str, marker: str, source_path: Optional[str] = None
    ) -> Optional[str]:
        """
        Write the mapped status of ``marker`` into the note for ``task_id``.

        With ``source_path`` given, notes whose ``sourceFile`` points at a
        different document are left alone: that document holds the live
        copy. Returns the note path if it was written.
        """
        if not self.enabled:
            return None
        path = self._notes.find_by_task_id(task_id)
        if not path:
            return None

        content = self._store.read(path)
        if source_path:
            recorded = frontmatter.get_field(content, "sourceFile")
            if recorded and recorded != source_path:
                return None

        status = self.marker_to_status(marker)
        if frontmatter.get_field(content, "status") == status:
            return None
        self._store.write(path, frontmatter.set_field(content, "status", status))
        log.info("Task note %s status -> %s", path, status)
        return path

    def sync_all_statuses_to_task_notes(self, source_path: str) -> int:
        """Push the status of every id-carrying task in a daily note. Returns notes written."""
        if not self.enabled:
            return 0
        written = 0
        for line in self._store.read(source_path).split("\n"):
            record = parse_line(line)
            if isinstance(record, TaskLine) and record.id:
                if self.sync_status_to_task_note(record.id, record.marker, source_path):
                    written += 1
        return written

    # ------------------------------------------------------------------
    # Note -> source
    # ------------------------------------------------------------------

    def sync_status_to_source(self, note_path: str) -> Optional[str]:
        """
        Rewrite the source checkbox to match the note's declared status.

        Only the marker character of the first line carrying the note's id
        changes. Returns the source path if it was written.
        """
        if not self.enabled:
            return None
        note = self._notes.read_note(note_path)
        if not (note.task_id and note.status and note.source_file):
            return None
        if not self._store.exists(note.source_file):
            log.warning("Source %s of %s does not exist", note.source_file, note_path)
            return None

        content = self._store.read(note.source_file)
        lines = content.split("\n")
        for i, line in enumerate(lines):
            record = parse_line(line)
            if not isinstance(record, TaskLine) or record.id != note.task_id:
                continue
            if self.marker_to_status(record.marker) == note.status:
                return None
            lines[i] = set_marker(line, self.status_to_marker(note.status))
            self._store.write(note.source_file, "\n".join(lines))
            log.info("Source %s task %s -> %s", note.source_file, note.task_id, note.status)
            return note.source_file
        return None

    def set_task_note_status(self, note_path: str, status: str) -> OperationResult:
        """Set a note's ``status`` field, then carry it over to the source line."""
        if status not in set(self.mappings.values()):
            raise ValueError(
                f"Unknown status '{status}'. Expected one of: "
                + ", ".join(sorted(set(self.mappings.values())))
            )
        if not self._store.exists(note_path):
            return OperationResult(False, f"Task note not found: {note_path}")

        content = self._store.read(note_path)
        if frontmatter.get_field(content, "status") == status:
            return OperationResult(False, f"Status is already {status}")

        self._store.write(note_path, frontmatter.set_field(content, "status", status))
        paths = [note_path]
        source = self.sync_status_to_source(note_path)
        if source:
            paths.append(source)
        return OperationResult(True, f"Status set to {status}", paths)
