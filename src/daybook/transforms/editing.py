"""
Editor-facing line commands and the whole-document processing pipeline.

These are what an editor surface calls when the cursor leaves a line or a
command is invoked on the current line. Every function takes and returns
plain text.
"""

from typing import Dict, List, Optional, Set

from daybook.config import Settings
from daybook.models.line import (
    CANCELLED,
    COMPLETE,
    INCOMPLETE,
    IN_PROGRESS,
    CalendarEvent,
    TaskLine,
    TimeBlock,
)
from daybook.parsers.line_grammar import (
    add_id,
    add_parent_id,
    extract_id,
    normalize_metadata_order,
    parse_line,
    replace_time_block,
    set_marker,
    task_title,
)
from daybook.transforms.archiver import archive_content
from daybook.transforms.ids import assign_ids, collect_ids, generate_id
from daybook.transforms.linker import find_parent_line, link_parents_to_children
from daybook.transforms.sorter import sort_by_time

# Command name -> checkbox marker
MARKER_COMMANDS: Dict[str, str] = {
    "complete": COMPLETE,
    "incomplete": INCOMPLETE,
    "in-progress": IN_PROGRESS,
    "cancelled": CANCELLED,
}


def process_line_on_leave(lines: List[str], index: int, settings: Settings) -> str:
    """
    Repair one task line after the user finishes editing it.

    Adds a missing id, links a subtask to the nearest top-level task above
    it, and puts every tag in canonical order. Calendar and non-task lines
    come back unchanged.
    """
    line = lines[index]
    record = parse_line(line)
    if not isinstance(record, TaskLine):
        return line

    if settings.enable_task_ids and not record.id:
        taken = collect_ids(lines)
        line = add_id(line, generate_id(settings.id_prefix, settings.id_length, taken))

    if settings.enable_parent_child_linking and record.is_subtask and not record.parent_id:
        parent_index = find_parent_line(lines, index)
        parent_id = extract_id(lines[parent_index]) if parent_index is not None else None
        if parent_id:
            line = add_parent_id(line, parent_id)

    return normalize_metadata_order(line)


def process_content(
    content: str,
    settings: Settings,
    *,
    sort: Optional[bool] = None,
    archive: Optional[bool] = None,
    known_ids: Optional[Set[str]] = None,
) -> str:
    """
    Whole-file pipeline: ids, parent links, then optional sort and archive.

    ``sort`` and ``archive`` default to the corresponding settings.
    """
    if sort is None:
        sort = settings.enable_auto_sort
    if archive is None:
        archive = settings.enable_auto_archive

    if settings.enable_task_ids:
        content = assign_ids(
            content,
            prefix=settings.id_prefix,
            length=settings.id_length,
            known_ids=known_ids,
        )
    if settings.enable_parent_child_linking:
        content = link_parents_to_children(content)
    if sort:
        content = sort_by_time(content)
    if archive:
        content = archive_content(content)
    return content


def set_task_marker(line: str, command: str) -> str:
    """Apply a marker command (``complete``, ``in-progress``...) to a task line."""
    try:
        marker = MARKER_COMMANDS[command]
    except KeyError:
        raise ValueError(
            f"Unknown marker command '{command}'. Expected one of: "
            + ", ".join(MARKER_COMMANDS)
        ) from None
    if not isinstance(parse_line(line), TaskLine):
        return line
    return set_marker(line, marker)


# ---------------------------------------------------------------------------
# Time blocks
# ---------------------------------------------------------------------------

def _minutes(hour: int, minute: int) -> int:
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time {hour}:{minute:02d}")
    return hour * 60 + minute


def parse_clock(value: str) -> int:
    """``"9:30"`` or ``"09:30"`` -> minutes since midnight."""
    try:
        hour, minute = value.strip().split(":")
        return _minutes(int(hour), int(minute))
    except ValueError:
        raise ValueError(f"Invalid time '{value}'; expected HH:MM") from None


def default_end_time(start: int) -> int:
    """Start plus thirty minutes, wrapping at midnight."""
    return (start + 30) % (24 * 60)


def add_time_block(line: str, start: int, end: Optional[int] = None) -> str:
    """Set the ``HH:MM - HH:MM`` block on a task line, replacing any existing one."""
    if end is None:
        end = default_end_time(start)
    return replace_time_block(line, TimeBlock(start, end))


def remove_time_block(line: str) -> str:
    return replace_time_block(line, None)


# ---------------------------------------------------------------------------
# Task info
# ---------------------------------------------------------------------------

def task_info(lines: List[str], index: int) -> Optional[dict]:
    """Metadata summary for the task or calendar line at ``index``."""
    record = parse_line(lines[index])
    if isinstance(record, CalendarEvent):
        return {
            "text": task_title(lines[index]),
            "is_calendar_event": True,
            "uid": record.uid,
            "calendar": record.calendar,
        }
    if not isinstance(record, TaskLine):
        return None

    parent_text = None
    if record.parent_id:
        for other in lines:
            if extract_id(other) == record.parent_id:
                parent_text = task_title(other)
                break

    return {
        "text": task_title(lines[index]),
        "is_calendar_event": False,
        "id": record.id,
        "parent_id": record.parent_id,
        "parent_text": parent_text,
        "marker": record.marker,
        "schedule_from": record.schedule_from,
        "schedule_to": record.schedule_to,
    }
