"""
Command handlers shared by MCP tools, REST routes and the CLI.

Every handler returns a JSON-serializable dict. Notices (missing document,
task not found, nothing to do) come back as ``{"error": message}``; the
callers decide how to surface them. Invalid arguments raise ValueError.

Handlers that write hold the store transaction, which the watcher worker
also takes, so their read-modify-write sequences never interleave.
"""

import functools
import logging
from typing import List, Optional

from daybook.context import DaybookContext
from daybook.models.note import FeedEvent, OperationResult
from daybook.scheduler.dates import resolve_schedule_date, today_str
from daybook.transforms.archiver import archive_content
from daybook.transforms.calendar import sync_events_into_content
from daybook.transforms.editing import (
    add_time_block,
    parse_clock,
    process_content,
    process_line_on_leave,
    remove_time_block,
    set_task_marker,
    task_info,
)
from daybook.transforms.linker import unlink_parent
from daybook.transforms.sorter import sort_by_time, sort_by_time_block

log = logging.getLogger(__name__)


def _serialized(handler):
    @functools.wraps(handler)
    def wrapper(ctx: DaybookContext, *args, **kwargs):
        with ctx.store.transaction():
            return handler(ctx, *args, **kwargs)
    return wrapper


def _result(result: OperationResult) -> dict:
    return result.to_dict() if result.ok else {"error": result.message}


def _missing(ctx: DaybookContext, path: str) -> Optional[dict]:
    if not ctx.store.exists(path):
        return {"error": f"Document '{path}' not found"}
    return None


def _rewrite(ctx: DaybookContext, path: str, transform) -> dict:
    """Apply a whole-document transform and write only if it changed anything."""
    missing = _missing(ctx, path)
    if missing:
        return missing
    content = ctx.store.read(path)
    updated = transform(content)
    changed = updated != content
    if changed:
        ctx.store.write(path, updated)
    return {"ok": True, "path": path, "changed": changed}


def _rewrite_line(ctx: DaybookContext, path: str, line: int, transform) -> dict:
    """Apply a transform to one line of a document."""
    missing = _missing(ctx, path)
    if missing:
        return missing
    lines = ctx.store.read(path).split("\n")
    if not 0 <= line < len(lines):
        return {"error": f"Line {line} is out of range for '{path}'"}
    updated = transform(lines, line)
    changed = updated != lines[line]
    if changed:
        lines[line] = updated
        ctx.store.write(path, "\n".join(lines))
    return {"ok": True, "path": path, "line": updated, "changed": changed}


# ---------------------------------------------------------------------------
# Status and documents
# ---------------------------------------------------------------------------

def handle_status(ctx: DaybookContext) -> dict:
    return {
        "store": ctx.store.status(),
        "dispatcher": ctx.dispatcher.status(),
        "daily_folder": ctx.settings.daily_folder,
        "task_notes_folder": ctx.settings.task_notes_folder,
    }


def handle_document_list(ctx: DaybookContext, *, folder: Optional[str] = None) -> List[str]:
    return ctx.store.list_files(folder if folder is not None else ctx.settings.daily_folder)


def handle_document_get(ctx: DaybookContext, *, path: str) -> dict:
    missing = _missing(ctx, path)
    if missing:
        return missing
    return {"path": path, "content": ctx.store.read(path)}


@_serialized
def handle_document_process(
    ctx: DaybookContext,
    *,
    path: str,
    sort: Optional[bool] = None,
    archive: Optional[bool] = None,
) -> dict:
    """Ids, parent links, then optional sort and archive."""
    result = _rewrite(
        ctx, path, lambda content: process_content(content, ctx.settings, sort=sort, archive=archive)
    )
    if "error" not in result and ctx.settings.enable_task_status_sync:
        result["notes_synced"] = ctx.statuses.sync_all_statuses_to_task_notes(path)
    return result


@_serialized
def handle_document_sort(ctx: DaybookContext, *, path: str, by_time_block: bool = False) -> dict:
    return _rewrite(ctx, path, sort_by_time_block if by_time_block else sort_by_time)


@_serialized
def handle_document_archive(ctx: DaybookContext, *, path: str) -> dict:
    return _rewrite(ctx, path, archive_content)


# ---------------------------------------------------------------------------
# Line commands
# ---------------------------------------------------------------------------

@_serialized
def handle_line_process(ctx: DaybookContext, *, path: str, line: int) -> dict:
    return _rewrite_line(
        ctx, path, line, lambda lines, i: process_line_on_leave(lines, i, ctx.settings)
    )


@_serialized
def handle_set_marker(ctx: DaybookContext, *, path: str, line: int, command: str) -> dict:
    return _rewrite_line(ctx, path, line, lambda lines, i: set_task_marker(lines[i], command))


@_serialized
def handle_time_block(
    ctx: DaybookContext,
    *,
    path: str,
    line: int,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> dict:
    """Set the line's time block; without ``start`` the block is removed."""
    if start is None:
        return _rewrite_line(ctx, path, line, lambda lines, i: remove_time_block(lines[i]))
    start_minutes = parse_clock(start)
    end_minutes = parse_clock(end) if end else None
    return _rewrite_line(
        ctx, path, line, lambda lines, i: add_time_block(lines[i], start_minutes, end_minutes)
    )


@_serialized
def handle_unlink_parent(ctx: DaybookContext, *, path: str, line: int) -> dict:
    return _rewrite_line(ctx, path, line, lambda lines, i: unlink_parent(lines[i]))


def handle_task_info(ctx: DaybookContext, *, path: str, line: int) -> dict:
    missing = _missing(ctx, path)
    if missing:
        return missing
    lines = ctx.store.read(path).split("\n")
    if not 0 <= line < len(lines):
        return {"error": f"Line {line} is out of range for '{path}'"}
    info = task_info(lines, line)
    if info is None:
        return {"error": "Not a task line"}
    return info


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

@_serialized
def handle_schedule(ctx: DaybookContext, *, path: str, line: int, date: str) -> dict:
    """``date`` is YYYY-MM-DD, YYYYMMDD or a preset name such as ``tomorrow``."""
    missing = _missing(ctx, path)
    if missing:
        return missing
    return _result(ctx.scheduler.schedule_task(path, line, resolve_schedule_date(date)))


@_serialized
def handle_unschedule(ctx: DaybookContext, *, path: str, line: int) -> dict:
    missing = _missing(ctx, path)
    if missing:
        return missing
    return _result(ctx.scheduler.unschedule_task(path, line))


@_serialized
def handle_schedule_overdue(ctx: DaybookContext, *, date: Optional[str] = None) -> dict:
    target = resolve_schedule_date(date) if date else today_str()
    return _result(ctx.scheduler.schedule_all_overdue(target))


# ---------------------------------------------------------------------------
# Satellite notes
# ---------------------------------------------------------------------------

@_serialized
def handle_task_note_create(ctx: DaybookContext, *, path: str, line: int) -> dict:
    missing = _missing(ctx, path)
    if missing:
        return missing
    return _result(ctx.notes.create_task_note(path, line))


@_serialized
def handle_task_note_status(ctx: DaybookContext, *, note_path: str, status: str) -> dict:
    return _result(ctx.statuses.set_task_note_status(note_path, status))


@_serialized
def handle_event_note_create(ctx: DaybookContext, *, path: str, line: int) -> dict:
    missing = _missing(ctx, path)
    if missing:
        return missing
    lines = ctx.store.read(path).split("\n")
    if not 0 <= line < len(lines):
        return {"error": f"Line {line} is out of range for '{path}'"}
    return _result(ctx.events.create_event_note(lines[line], path))


@_serialized
def handle_calendar_sync(ctx: DaybookContext, *, path: str, events: List[dict]) -> dict:
    """Replace the calendar lines of a daily note with ``events``."""
    records = [FeedEvent(**event) for event in events]
    missing = _missing(ctx, path)
    if missing:
        if records:
            ctx.store.write(path, sync_events_into_content("", records))
        return {"ok": True, "path": path, "changed": bool(records), "events": len(records)}
    result = _rewrite(ctx, path, lambda content: sync_events_into_content(content, records))
    result["events"] = len(records)
    return result

