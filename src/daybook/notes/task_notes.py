"""
Satellite task notes.

A task note is a markdown document holding expanded notes for one task. It
is named after the task's cleaned text and carries the task's id in its
front-matter, so it can be found either way:

    ---
    task: "Call dentist"
    taskId: "t-k3x9a0qz"
    status: "incomplete"
    created: 2025-01-10
    sourceFile: "00 - Daily/2025-01-10.md"
    ---

    # Call dentist

    **Source:** [[00 - Daily/2025-01-10]]

The ``sourceFile`` field and the Source link always point at the daily note
holding the live copy of the task. The ``## Subtasks`` checklist is merged
with the source's subtask lines in both directions; neither side ever loses
an item.
"""

import logging
import re
from datetime import date
from typing import List, Optional, Tuple

from daybook.config import Settings
from daybook.models.line import TaskLine
from daybook.models.note import OperationResult, SubtaskItem, TaskNote
from daybook.parsers import frontmatter
from daybook.parsers.line_grammar import (
    add_id,
    clean_task_text,
    parse_line,
    sanitize_filename,
    set_marker,
    task_title,
)
from daybook.store.vault_store import VaultStore
from daybook.transforms.ids import collect_ids, generate_id

log = logging.getLogger(__name__)

SUBTASKS_SECTION = re.compile(r"## Subtasks\n\n([\s\S]*?)(?=\n## |\Z)")
SUBTASK_ITEM = re.compile(r"^- \[(.)\]\s*(.*)$")
SOURCE_LINK = re.compile(r"^(\*\*Source:\*\*[ \t]*)\[\[[^\]]+\]\]", re.MULTILINE)

# Markers of source subtasks that take part in the checklist merge.
_MERGED_MARKERS = {" ", "/", "x", "X"}
_DONE_MARKERS = {"x", "X"}


def source_link(path: str) -> str:
    return "[[" + re.sub(r"\.md$", "", path) + "]]"


def parse_subtask_section(content: str) -> Optional[List[SubtaskItem]]:
    """Checklist items of the ``## Subtasks`` section, or None if there is none."""
    m = SUBTASKS_SECTION.search(content)
    if not m:
        return None
    items = []
    for line in m.group(1).split("\n"):
        item = SUBTASK_ITEM.match(line)
        if item and item.group(2).strip():
            items.append(
                SubtaskItem(text=item.group(2).strip(), completed=item.group(1) in _DONE_MARKERS)
            )
    return items


def replace_subtask_section(content: str, items: List[SubtaskItem]) -> str:
    body = "\n".join(item.render() for item in items) + "\n"
    return SUBTASKS_SECTION.sub(lambda m: "## Subtasks\n\n" + body, content, count=1)


def merge_subtasks(
    existing: List[SubtaskItem], incoming: List[SubtaskItem]
) -> Tuple[List[SubtaskItem], bool]:
    """
    Union of two checklists by case-insensitive text.

    Existing order is kept and new items are appended. An item is completed
    if either side has it completed. Returns (merged, changed).
    """
    merged = [SubtaskItem(item.text, item.completed) for item in existing]
    by_key = {item.key: item for item in merged}
    changed = False
    for item in incoming:
        current = by_key.get(item.key)
        if current is None:
            new = SubtaskItem(item.text, item.completed)
            merged.append(new)
            by_key[new.key] = new
            changed = True
        elif item.completed and not current.completed:
            current.completed = True
            changed = True
    return merged, changed


class TaskNoteManager:
    """Create, locate and update task notes in ``settings.task_notes_folder``."""

    def __init__(self, store: VaultStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings

    @property
    def folder(self) -> str:
        return self._settings.task_notes_folder.rstrip("/")

    def is_task_note(self, path: str) -> bool:
        return path.startswith(self.folder + "/") and path.endswith(".md")

    def note_path_for(self, task_text: str) -> Optional[str]:
        name = sanitize_filename(task_text)
        if not name:
            return None
        return f"{self.folder}/{name}.md"

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def read_note(self, path: str) -> TaskNote:
        content = self._store.read(path)
        return TaskNote(
            path=path,
            task=frontmatter.get_field(content, "task") or "",
            task_id=frontmatter.get_field(content, "taskId") or None,
            status=frontmatter.get_field(content, "status"),
            source_file=frontmatter.get_field(content, "sourceFile") or None,
            scheduled=frontmatter.get_field(content, "scheduled"),
        )

    def find_by_task_id(self, task_id: str) -> Optional[str]:
        for path in self._store.list_files(self.folder):
            content = self._store.read(path)
            if frontmatter.get_field(content, "taskId") == task_id:
                return path
        return None

    def find_note(self, task_text: Optional[str], task_id: Optional[str] = None) -> Optional[str]:
        """Locate a note by its sanitized-title filename, falling back to taskId."""
        if task_text:
            path = self.note_path_for(task_text)
            if path and self._store.exists(path):
                return path
        if task_id:
            return self.find_by_task_id(task_id)
        return None

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def render_note(
        self,
        task_text: str,
        task_id: str,
        status: str,
        source_path: str,
        subtasks: List[SubtaskItem],
    ) -> str:
        header = frontmatter.build_frontmatter(
            [
                ("task", task_text, True),
                ("taskId", task_id, True),
                ("status", status, True),
                ("created", date.today().isoformat(), False),
                ("sourceFile", source_path, True),
            ]
        )
        checklist = "\n".join(item.render() for item in subtasks) if subtasks else "- [ ] "
        return (
            f"{header}\n\n"
            f"# {task_text}\n\n"
            f"**Source:** {source_link(source_path)}\n\n"
            "---\n\n"
            "## Notes\n\n\n"
            "## Subtasks\n\n"
            f"{checklist}\n\n"
            "## References\n\n"
        )

    def create_task_note(self, source_path: str, line_index: int) -> OperationResult:
        """
        Open or create the task note for the task at ``line_index``.

        A task without an id is given one first, so the note can always be
        joined back to its line. An existing note gets its subtasks merged
        from the source instead of being recreated.
        """
        if not self._settings.enable_task_notes:
            return OperationResult(False, "Task notes are disabled")

        content = self._store.read(source_path)
        lines = content.split("\n")
        if not 0 <= line_index < len(lines):
            return OperationResult(False, f"Line {line_index} is out of range")
        record = parse_line(lines[line_index])
        if not isinstance(record, TaskLine):
            return OperationResult(False, "Not a task line")

        task_text = task_title(lines[line_index])
        path = self.note_path_for(task_text or "")
        if not path:
            return OperationResult(False, "Could not extract task name")

        written = []
        task_id = record.id
        if not task_id:
            task_id = generate_id(
                self._settings.id_prefix, self._settings.id_length, collect_ids(lines)
            )
            lines[line_index] = add_id(lines[line_index], task_id)
            self._store.write(source_path, "\n".join(lines))
            written.append(source_path)

        subtasks = self.get_subtasks_from_source(source_path, task_text, task_id)

        if self._store.exists(path):
            self.sync_subtasks_to_note(path, subtasks, source_path)
            return OperationResult(True, f"Opened task note: {path}", written + [path])

        status = self._settings.status_mappings.get(record.marker, "incomplete")
        self._store.create_folder(self.folder)
        self._store.create(path, self.render_note(task_text, task_id, status, source_path, subtasks))
        log.info("Created task note %s for %s", path, task_id)
        return OperationResult(True, f"Created: {path}", written + [path])

    # ------------------------------------------------------------------
    # Source pointer
    # ------------------------------------------------------------------

    def update_source(
        self,
        task_text: Optional[str],
        task_id: Optional[str],
        new_source_path: str,
        scheduled_date: str,
        *,
        add_scheduled: bool = True,
    ) -> Optional[str]:
        """
        Point a task's note at the daily note now holding its live copy.

        Updates ``sourceFile``, ``scheduled`` and the Source link. With
        ``add_scheduled=False`` the scheduled field is only updated when the
        note already has one. Returns the note path if it was rewritten.
        """
        path = self.find_note(task_text, task_id)
        if not path:
            return None

        content = self._store.read(path)
        updated = frontmatter.set_field(content, "sourceFile", new_source_path)
        if add_scheduled or frontmatter.has_field(updated, "scheduled"):
            updated = frontmatter.set_field(updated, "scheduled", scheduled_date)
        updated = SOURCE_LINK.sub(
            lambda m: m.group(1) + source_link(new_source_path), updated, count=1
        )

        if updated == content:
            return None
        self._store.write(path, updated)
        log.info("Task note %s now points at %s", path, new_source_path)
        return path

    # ------------------------------------------------------------------
    # Subtask sync
    # ------------------------------------------------------------------

    def _find_parent(
        self, lines: List[str], task_text: Optional[str], task_id: Optional[str]
    ) -> Optional[int]:
        for i, line in enumerate(lines):
            record = parse_line(line)
            if not isinstance(record, TaskLine) or record.marker not in _MERGED_MARKERS:
                continue
            if task_id and record.id == task_id:
                return i
            if task_text and clean_task_text(record.text) == task_text:
                return i
        return None

    def _subtask_run(self, lines: List[str], parent_index: int) -> List[int]:
        """Indexes of the task lines nested under the parent."""
        parent_indent = parse_line(lines[parent_index]).indent
        run = []
        for i in range(parent_index + 1, len(lines)):
            record = parse_line(lines[i])
            if isinstance(record, TaskLine) and record.indent > parent_indent:
                run.append(i)
            elif not lines[i].strip():
                continue
            else:
                break
        return run

    def get_subtasks_from_source(
        self, source_path: Optional[str], task_text: Optional[str], task_id: Optional[str] = None
    ) -> List[SubtaskItem]:
        if not source_path or not self._store.exists(source_path):
            return []
        lines = self._store.read(source_path).split("\n")
        parent = self._find_parent(lines, task_text, task_id)
        if parent is None:
            return []
        items = []
        for i in self._subtask_run(lines, parent):
            record = parse_line(lines[i])
            text = clean_task_text(record.text)
            if text and record.marker in _MERGED_MARKERS:
                items.append(SubtaskItem(text=text, completed=record.marker in _DONE_MARKERS))
        return items

    def sync_subtasks_to_note(
        self, note_path: str, source_subtasks: List[SubtaskItem], source_path: Optional[str]
    ) -> bool:
        """Merge source subtasks into the note. Returns True if the note was written."""
        content = self._store.read(note_path)
        existing = parse_subtask_section(content)
        if existing is None:
            return False

        merged, changed = merge_subtasks(existing, source_subtasks)
        updated = replace_subtask_section(content, merged) if changed else content

        current_source = frontmatter.get_field(updated, "sourceFile")
        if source_path and current_source != source_path:
            updated = frontmatter.set_field(updated, "sourceFile", source_path)

        if updated == content:
            return False
        self._store.write(note_path, updated)
        log.info("Synced %d subtask(s) from source into %s", len(source_subtasks), note_path)
        return True

    def sync_subtasks_to_source(self, note_path: str) -> bool:
        """
        Merge the note's checklist back into the source's subtask lines.

        Missing items are appended under the parent as new subtasks; an item
        completed in the note completes the matching source subtask. Nothing
        is removed. Returns True if the source was written.
        """
        note = self.read_note(note_path)
        if not note.source_file or not self._store.exists(note.source_file):
            return False
        items = parse_subtask_section(self._store.read(note_path))
        if not items:
            return False

        content = self._store.read(note.source_file)
        lines = content.split("\n")
        parent = self._find_parent(lines, note.task, note.task_id)
        if parent is None:
            log.warning("Task %s not found in %s", note.task_id or note.task, note.source_file)
            return False

        run = self._subtask_run(lines, parent)
        by_key = {}
        for i in run:
            record = parse_line(lines[i])
            by_key.setdefault(clean_task_text(record.text).lower(), i)

        insert_at = (run[-1] if run else parent) + 1
        indent = "\t" * (parse_line(lines[parent]).indent + 1)
        additions = []
        for item in items:
            index = by_key.get(item.key)
            if index is None:
                additions.append(indent + item.render())
            elif item.completed and parse_line(lines[index]).marker in (" ", "/"):
                lines[index] = set_marker(lines[index], "x")
        lines[insert_at:insert_at] = additions

        updated = "\n".join(lines)
        if updated == content:
            return False
        self._store.write(note.source_file, updated)
        log.info("Synced subtasks from %s back to %s", note_path, note.source_file)
        return True
