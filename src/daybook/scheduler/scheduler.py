"""
Moving tasks between daily notes.

Scheduling leaves a ``>`` breadcrumb in the source note and puts the live
copy in the target note. The task id joins the two; there is no separate
ledger, the live copy is simply the one without a ``>`` marker:

    2025-01-10.md   - [>] Call dentist [id::t-xy] [> 2025-01-12]
    2025-01-12.md   - [ ] Call dentist [id::t-xy] [< 2025-01-10]

Writes happen target first, then source, then the task note, so a failure
part way leaves at worst a duplicate live copy rather than a lost task.
"""

import logging
import re
from dataclasses import replace
from typing import List, Optional

from daybook.config import Settings
from daybook.models.line import ACTIONABLE_MARKERS, SCHEDULED, TaskLine
from daybook.models.note import OperationResult
from daybook.notes.task_notes import TaskNoteManager
from daybook.parsers.line_grammar import (
    parse_line,
    render_line,
    set_marker,
    strip_legacy_schedule_marks,
    strip_time_block,
    task_title,
)
from daybook.scheduler.dates import (
    daily_note_path,
    date_from_path,
    require_date,
    today_str,
)
from daybook.store.vault_store import VaultStore
from daybook.transforms.archiver import ARCHIVE_CALLOUT
from daybook.transforms.ids import collect_ids, generate_id

log = logging.getLogger(__name__)

_EXTRA_BLANKS = re.compile(r"\n{3,}")


def subtask_run(lines: List[str], index: int) -> List[int]:
    """Indexes of the contiguous task lines indented under ``lines[index]``."""
    indent = parse_line(lines[index]).indent
    run = []
    for i in range(index + 1, len(lines)):
        record = parse_line(lines[i])
        if not isinstance(record, TaskLine) or record.indent <= indent:
            break
        run.append(i)
    return run


def find_task_by_id(lines: List[str], task_id: str) -> Optional[int]:
    for i, line in enumerate(lines):
        record = parse_line(line)
        if isinstance(record, TaskLine) and record.id == task_id:
            return i
    return None


def insert_task_lines(content: str, new_lines: List[str]) -> str:
    """
    Add lines to a daily note.

    They go right after the last task-list line when the note ends with an
    archive callout, otherwise at the end. An empty note gets just the lines.
    """
    trailing = content.endswith("\n")
    body = content[:-1] if trailing else content
    if not body.strip():
        return "\n".join(new_lines) + "\n"

    lines = body.split("\n")
    callout = next((i for i, line in enumerate(lines) if ARCHIVE_CALLOUT.match(line)), None)
    if callout is None:
        lines.extend(new_lines)
    else:
        at = callout
        while at > 0 and not lines[at - 1].strip():
            at -= 1
        lines[at:at] = new_lines
    return "\n".join(lines) + ("\n" if trailing else "")


def _collapse_blank_runs(content: str) -> str:
    trailing = content.endswith("\n")
    collapsed = _EXTRA_BLANKS.sub("\n\n", content).rstrip()
    return collapsed + "\n" if trailing and collapsed else collapsed


class TaskScheduler:
    """Schedule, unschedule and bulk-reschedule tasks across daily notes."""

    def __init__(
        self,
        store: VaultStore,
        settings: Settings,
        notes: Optional[TaskNoteManager] = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._notes = notes

    def _read_lines(self, path: str) -> List[str]:
        return self._store.read(path).split("\n")

    def _update_note(
        self, title: Optional[str], task_id: Optional[str], path: str, day: str, add_scheduled: bool
    ) -> Optional[str]:
        if self._notes is None or not self._settings.enable_task_notes:
            return None
        return self._notes.update_source(title, task_id, path, day, add_scheduled=add_scheduled)

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    def schedule_task(self, source_path: str, line_index: int, target_date: str) -> OperationResult:
        """
        Move the task at ``line_index`` of ``source_path`` to ``target_date``.

        Rescheduling a ``>`` breadcrumb first removes the copies it led to,
        so the task stays live in one note only.

        Raises InvalidDateError for a malformed date and OSError when a
        document cannot be read or written.
        """
        target_date = require_date(target_date)
        lines = self._read_lines(source_path)
        if not 0 <= line_index < len(lines):
            return OperationResult(False, f"Line {line_index} is out of range")

        record = parse_line(lines[line_index])
        if not isinstance(record, TaskLine):
            return OperationResult(False, "Not a task line")
        if record.schedule_to == target_date:
            return OperationResult(False, f"Task is already scheduled to {target_date}")

        from_date = date_from_path(source_path) or today_str()
        if from_date == target_date:
            return OperationResult(False, f"Task is already on {target_date}")

        retired: List[str] = []
        if record.is_scheduled:
            if record.id and record.schedule_to:
                retired = self._remove_forward_copies(record.id, record.schedule_to, source_path)
            for i in subtask_run(lines, line_index):
                sub = parse_line(lines[i])
                if sub.marker == SCHEDULED and not sub.schedule_to:
                    lines[i] = set_marker(lines[i], " ")

        target_path = daily_note_path(target_date, self._settings)
        target_content = self._store.read(target_path) if self._store.exists(target_path) else ""
        target_lines = target_content.split("\n")

        task_id = record.id
        if not task_id:
            taken = collect_ids(lines) | collect_ids(target_lines)
            task_id = generate_id(self._settings.id_prefix, self._settings.id_length, taken)

        title = task_title(lines[line_index])
        run = subtask_run(lines, line_index)

        existing = find_task_by_id(target_lines, task_id)
        if existing is not None:
            # Bounced back through a date it already visited: revive that copy.
            previous = parse_line(target_lines[existing])
            target_lines[existing] = render_line(
                replace(previous, marker=" ", schedule_from=from_date, schedule_to=None)
            )
            for i in subtask_run(target_lines, existing):
                if parse_line(target_lines[i]).marker == SCHEDULED:
                    target_lines[i] = set_marker(target_lines[i], " ")
            new_target = "\n".join(target_lines)
        else:
            copy = replace(
                record,
                indent=0,
                marker=" ",
                text=strip_legacy_schedule_marks(record.text),
                id=task_id,
                parent_id=None,
                schedule_from=from_date,
                schedule_to=None,
            )
            copies = [render_line(copy)]
            for i in run:
                sub = parse_line(lines[i])
                if sub.marker not in ACTIONABLE_MARKERS:
                    continue
                copies.append(
                    render_line(
                        replace(
                            sub,
                            indent=sub.indent - record.indent,
                            marker=" ",
                            schedule_from=None,
                            schedule_to=None,
                        )
                    )
                )
            new_target = insert_task_lines(target_content, copies)

        lines[line_index] = render_line(
            replace(
                record,
                marker=SCHEDULED,
                text=strip_legacy_schedule_marks(strip_time_block(record.text)),
                id=task_id,
                schedule_from=None,
                schedule_to=target_date,
            )
        )
        for i in run:
            if parse_line(lines[i]).marker in ACTIONABLE_MARKERS:
                lines[i] = set_marker(lines[i], SCHEDULED)

        self._store.write(target_path, new_target)
        self._store.write(source_path, "\n".join(lines))
        paths = [target_path, source_path]
        paths.extend(p for p in retired if p not in paths)

        note_path = self._update_note(title, task_id, target_path, target_date, True)
        if note_path:
            paths.append(note_path)

        log.info("Scheduled %s from %s to %s", task_id, source_path, target_path)
        return OperationResult(True, f"Scheduled to {target_date}", paths)

    # ------------------------------------------------------------------
    # Unschedule
    # ------------------------------------------------------------------

    def unschedule_task(self, source_path: str, line_index: int) -> OperationResult:
        """
        Bring a scheduled-away task back to ``source_path``.

        The forward copies are deleted from every note the breadcrumbs lead
        to, so only the line being unscheduled stays live. A time block that
        scheduling removed is not restored.
        """
        lines = self._read_lines(source_path)
        if not 0 <= line_index < len(lines):
            return OperationResult(False, f"Line {line_index} is out of range")

        record = parse_line(lines[line_index])
        if not isinstance(record, TaskLine):
            return OperationResult(False, "Not a task line")
        if not record.is_scheduled:
            return OperationResult(False, "Task is not scheduled")

        lines[line_index] = render_line(
            replace(record, marker=" ", schedule_from=None, schedule_to=None)
        )
        for i in subtask_run(lines, line_index):
            if parse_line(lines[i]).marker == SCHEDULED:
                lines[i] = set_marker(lines[i], " ")

        paths = []
        if record.id and record.schedule_to:
            paths.extend(self._remove_forward_copies(record.id, record.schedule_to, source_path))

        self._store.write(source_path, "\n".join(lines))
        paths.append(source_path)

        day = date_from_path(source_path) or today_str()
        note_path = self._update_note(task_title(lines[line_index]), record.id, source_path, day, False)
        if note_path:
            paths.append(note_path)

        log.info("Unscheduled %s back to %s", record.id or record.text, source_path)
        return OperationResult(True, "Task unscheduled", paths)

    def _remove_forward_copies(self, task_id: str, first_date: str, source_path: str) -> List[str]:
        removed = []
        visited = {source_path}
        next_date: Optional[str] = first_date
        while next_date:
            path = daily_note_path(next_date, self._settings)
            if path in visited or not self._store.exists(path):
                break
            visited.add(path)

            content = self._store.read(path)
            lines = content.split("\n")
            index = find_task_by_id(lines, task_id)
            if index is None:
                log.warning("Task %s not found in %s", task_id, path)
                break

            copy = parse_line(lines[index])
            next_date = copy.schedule_to if copy.marker == SCHEDULED else None
            run = [index] + subtask_run(lines, index)
            del lines[run[0]:run[-1] + 1]

            self._store.write(path, _collapse_blank_runs("\n".join(lines)))
            removed.append(path)
            log.info("Removed forward copy of %s from %s", task_id, path)
        return removed

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def schedule_all_overdue(self, target_date: str) -> OperationResult:
        """
        Schedule every open ``[ ]`` task of earlier daily notes to ``target_date``.

        Parents are moved with their subtasks; an open subtask whose parent
        is not itself open is moved on its own.
        """
        target_date = require_date(target_date)
        count = 0
        paths: List[str] = []

        for path in self._store.list_files(self._settings.daily_folder):
            day = date_from_path(path)
            if not day or day >= target_date:
                continue
            candidates = [
                i
                for i, line in enumerate(self._read_lines(path))
                if isinstance(parse_line(line), TaskLine) and parse_line(line).marker == " "
            ]
            for index in candidates:
                # Scheduling a parent drags its subtasks along, so re-check.
                current = parse_line(self._read_lines(path)[index])
                if not isinstance(current, TaskLine) or current.marker != " ":
                    continue
                result = self.schedule_task(path, index, target_date)
                if result.ok:
                    count += 1
                    paths.extend(p for p in result.paths if p not in paths)

        if not count:
            return OperationResult(False, "No overdue tasks found")
        log.info("Scheduled %d overdue task(s) to %s", count, target_date)
        return OperationResult(True, f"Scheduled {count} overdue task(s) to {target_date}", paths, count)
