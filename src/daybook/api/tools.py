"""MCP tool registration for daybook."""

import json
import logging
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from daybook.api.handlers import (
    handle_calendar_sync,
    handle_document_archive,
    handle_document_process,
    handle_document_sort,
    handle_event_note_create,
    handle_line_process,
    handle_schedule,
    handle_schedule_overdue,
    handle_set_marker,
    handle_status,
    handle_task_info,
    handle_task_note_create,
    handle_task_note_status,
    handle_time_block,
    handle_unlink_parent,
    handle_unschedule,
)

log = logging.getLogger(__name__)


def _dump(handler, ctx, **kwargs) -> str:
    try:
        return json.dumps(handler(ctx, **kwargs), indent=2)
    except Exception as e:
        log.warning("%s failed: %s", handler.__name__, e)
        return json.dumps({"error": str(e)})


def register_tools(mcp: FastMCP, ctx) -> None:
    """Register all MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def daybook_status() -> str:
        """
        Show store and dispatcher statistics.

        Returns:
            JSON with write counts, queued changes and configured folders
        """
        return json.dumps(handle_status(ctx), indent=2)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @mcp.tool()
    def document_process(
        path: str,
        sort: Optional[bool] = None,
        archive: Optional[bool] = None,
    ) -> str:
        """
        Run the whole-file pipeline on a daily note.

        Missing task ids are assigned, subtasks are linked to their parents,
        and the note is optionally sorted and archived. Task note statuses
        are refreshed from the checkboxes afterwards.

        Args:
            path: Vault-relative path, e.g. "00 - Daily/2025-01-10.md"
            sort: Sort task groups by time (default: ENABLE_AUTO_SORT)
            archive: Move finished tasks into the archive callout
                     (default: ENABLE_AUTO_ARCHIVE)

        Returns:
            JSON with "changed" and the number of task notes updated
        """
        return _dump(handle_document_process, ctx, path=path, sort=sort, archive=archive)

    @mcp.tool()
    def document_sort(path: str, by_time_block: bool = False) -> str:
        """
        Sort the task groups of a daily note.

        Args:
            path: Vault-relative path of the daily note
            by_time_block: If True, order by time block only and keep finished
                tasks in place; otherwise move them under "## Completed"

        Returns:
            JSON with "changed"
        """
        return _dump(handle_document_sort, ctx, path=path, by_time_block=by_time_block)

    @mcp.tool()
    def document_archive(path: str) -> str:
        """
        Move completed, cancelled and scheduled-away tasks into the archive callout.

        Args:
            path: Vault-relative path of the daily note

        Returns:
            JSON with "changed"
        """
        return _dump(handle_document_archive, ctx, path=path)

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    @mcp.tool()
    def line_process(path: str, line: int) -> str:
        """
        Repair one task line: add a missing id, link a subtask to its parent,
        and put tags in canonical order.

        Args:
            path: Vault-relative path of the document
            line: Zero-based line number

        Returns:
            JSON with the rewritten line
        """
        return _dump(handle_line_process, ctx, path=path, line=line)

    @mcp.tool()
    def task_set_marker(path: str, line: int, command: str) -> str:
        """
        Change a task's checkbox.

        Args:
            path: Vault-relative path of the document
            line: Zero-based line number
            command: "complete", "incomplete", "in-progress" or "cancelled"

        Returns:
            JSON with the rewritten line
        """
        return _dump(handle_set_marker, ctx, path=path, line=line, command=command)

    @mcp.tool()
    def task_time_block(
        path: str,
        line: int,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> str:
        """
        Set or clear the HH:MM - HH:MM block at the start of a task.

        Args:
            path: Vault-relative path of the document
            line: Zero-based line number
            start: Start time "HH:MM"; omit to remove the block
            end: End time "HH:MM"; defaults to start + 30 minutes

        Returns:
            JSON with the rewritten line
        """
        return _dump(handle_time_block, ctx, path=path, line=line, start=start, end=end)

    @mcp.tool()
    def task_unlink_parent(path: str, line: int) -> str:
        """
        Remove a subtask's [parent::] tag.

        Args:
            path: Vault-relative path of the document
            line: Zero-based line number

        Returns:
            JSON with the rewritten line
        """
        return _dump(handle_unlink_parent, ctx, path=path, line=line)

    @mcp.tool()
    def task_info(path: str, line: int) -> str:
        """
        Show the metadata of a task or calendar line.

        Args:
            path: Vault-relative path of the document
            line: Zero-based line number

        Returns:
            JSON with id, parent id and text, marker and schedule dates
        """
        return _dump(handle_task_info, ctx, path=path, line=line)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    @mcp.tool()
    def task_schedule(path: str, line: int, date: str) -> str:
        """
        Move a task to another day's note, leaving a [>] breadcrumb behind.

        Args:
            path: Vault-relative path of the source daily note
            line: Zero-based line number of the task
            date: YYYY-MM-DD, YYYYMMDD, or one of "tomorrow", "day-after",
                  "next-monday", "one-week"

        Returns:
            JSON with the written paths, or error
        """
        return _dump(handle_schedule, ctx, path=path, line=line, date=date)

    @mcp.tool()
    def task_unschedule(path: str, line: int) -> str:
        """
        Bring a scheduled-away task back and delete its forward copies.

        Args:
            path: Vault-relative path of the note holding the breadcrumb
            line: Zero-based line number of the [>] task

        Returns:
            JSON with the written paths, or error
        """
        return _dump(handle_unschedule, ctx, path=path, line=line)

    @mcp.tool()
    def task_schedule_overdue(date: Optional[str] = None) -> str:
        """
        Schedule every open task of earlier daily notes to one day.

        Args:
            date: Target date or preset (default: today)

        Returns:
            JSON with the number of tasks moved
        """
        return _dump(handle_schedule_overdue, ctx, date=date)

    # ------------------------------------------------------------------
    # Satellite notes
    # ------------------------------------------------------------------

    @mcp.tool()
    def task_note_create(path: str, line: int) -> str:
        """
        Open or create the task note for a task, seeding its subtask checklist.

        Args:
            path: Vault-relative path of the daily note
            line: Zero-based line number of the task

        Returns:
            JSON with the note path
        """
        return _dump(handle_task_note_create, ctx, path=path, line=line)

    @mcp.tool()
    def task_note_set_status(note_path: str, status: str) -> str:
        """
        Set a task note's status and update the source checkbox to match.

        Args:
            note_path: Vault-relative path of the task note
            status: "incomplete", "complete", "in-progress", "cancelled" or "scheduled"

        Returns:
            JSON with the written paths, or error
        """
        return _dump(handle_task_note_status, ctx, note_path=note_path, status=status)

    @mcp.tool()
    def event_note_create(path: str, line: int) -> str:
        """
        Open or create the note for a calendar event line.

        Args:
            path: Vault-relative path of the daily note
            line: Zero-based line number of the [c] line

        Returns:
            JSON with the note path
        """
        return _dump(handle_event_note_create, ctx, path=path, line=line)

    @mcp.tool()
    def calendar_sync(path: str, events: List[dict]) -> str:
        """
        Replace the calendar lines of a daily note.

        Args:
            path: Vault-relative path of the daily note
            events: Objects with summary, start_time, end_time and optional
                    uid, calendar_name, location, call_url

        Returns:
            JSON with the number of events written
        """
        return _dump(handle_calendar_sync, ctx, path=path, events=events)
