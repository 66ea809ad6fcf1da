"""
Command-line interface for daybook.

One-shot commands against a vault; settings come from the environment
(see config.py), with --vault overriding VAULT_ROOT.

Examples:
    daybook process "00 - Daily/2025-01-10.md" --sort
    daybook schedule "00 - Daily/2025-01-10.md" 4 tomorrow
    daybook unschedule "00 - Daily/2025-01-10.md" 4
    daybook overdue --date 2025-01-12
    daybook task-note "00 - Daily/2025-01-10.md" 4
    daybook serve
"""

import argparse
import json
import os
import sys
from pathlib import Path

from daybook.api import handlers
from daybook.config import ConfigError, load_settings
from daybook.context import build_context


def _emit(result) -> None:
    if isinstance(result, dict) and "error" in result:
        print(f"Error: {result['error']}")
        sys.exit(1)
    if isinstance(result, dict) and "message" in result:
        print(result["message"])
        for path in result.get("paths", []):
            print(f"  {path}")
        return
    print(json.dumps(result, indent=2))


def _add_line_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("path", help="Vault-relative path of the document")
    p.add_argument("line", type=int, help="Zero-based line number")


def cmd_serve(args) -> None:
    from daybook.server import main as serve

    if args.vault:
        os.environ["VAULT_ROOT"] = args.vault
    serve()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="daybook",
        description="Task ledger maintenance for markdown daily notes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--vault", help="Vault root directory (default: $VAULT_ROOT)")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # --- documents ---
    p = subparsers.add_parser("process", help="Assign ids, link subtasks, optionally sort/archive")
    p.add_argument("path")
    p.add_argument("--sort", action="store_true", default=None, help="Sort by time")
    p.add_argument("--archive", action="store_true", default=None, help="Archive finished tasks")
    p.set_defaults(func=lambda ctx, a: handlers.handle_document_process(
        ctx, path=a.path, sort=a.sort, archive=a.archive))

    p = subparsers.add_parser("sort", help="Sort task groups by time")
    p.add_argument("path")
    p.add_argument("--time-block", action="store_true", help="Keep finished tasks in place")
    p.set_defaults(func=lambda ctx, a: handlers.handle_document_sort(
        ctx, path=a.path, by_time_block=a.time_block))

    p = subparsers.add_parser("archive", help="Move finished tasks into the archive callout")
    p.add_argument("path")
    p.set_defaults(func=lambda ctx, a: handlers.handle_document_archive(ctx, path=a.path))

    # --- lines ---
    p = subparsers.add_parser("line", help="Repair one task line")
    _add_line_args(p)
    p.set_defaults(func=lambda ctx, a: handlers.handle_line_process(ctx, path=a.path, line=a.line))

    p = subparsers.add_parser("marker", help="Change a task's checkbox")
    _add_line_args(p)
    p.add_argument("command_name", metavar="command",
                   choices=["complete", "incomplete", "in-progress", "cancelled"])
    p.set_defaults(func=lambda ctx, a: handlers.handle_set_marker(
        ctx, path=a.path, line=a.line, command=a.command_name))

    p = subparsers.add_parser("time-block", help="Set or clear a task's time block")
    _add_line_args(p)
    p.add_argument("--start", help="HH:MM (omit to clear)")
    p.add_argument("--end", help="HH:MM (default: start + 30 minutes)")
    p.set_defaults(func=lambda ctx, a: handlers.handle_time_block(
        ctx, path=a.path, line=a.line, start=a.start, end=a.end))

    p = subparsers.add_parser("unlink", help="Remove a subtask's parent tag")
    _add_line_args(p)
    p.set_defaults(func=lambda ctx, a: handlers.handle_unlink_parent(ctx, path=a.path, line=a.line))

    p = subparsers.add_parser("info", help="Show a task's metadata")
    _add_line_args(p)
    p.set_defaults(func=lambda ctx, a: handlers.handle_task_info(ctx, path=a.path, line=a.line))

    # --- scheduling ---
    p = subparsers.add_parser("schedule", help="Move a task to another day")
    _add_line_args(p)
    p.add_argument("date", help="YYYY-MM-DD, YYYYMMDD, tomorrow, day-after, next-monday, one-week")
    p.set_defaults(func=lambda ctx, a: handlers.handle_schedule(
        ctx, path=a.path, line=a.line, date=a.date))

    p = subparsers.add_parser("unschedule", help="Bring a scheduled task back")
    _add_line_args(p)
    p.set_defaults(func=lambda ctx, a: handlers.handle_unschedule(ctx, path=a.path, line=a.line))

    p = subparsers.add_parser("overdue", help="Schedule all open tasks of earlier days")
    p.add_argument("--date", help="Target date (default: today)")
    p.set_defaults(func=lambda ctx, a: handlers.handle_schedule_overdue(ctx, date=a.date))

    # --- notes ---
    p = subparsers.add_parser("task-note", help="Open or create a task note")
    _add_line_args(p)
    p.set_defaults(func=lambda ctx, a: handlers.handle_task_note_create(ctx, path=a.path, line=a.line))

    p = subparsers.add_parser("note-status", help="Set a task note's status")
    p.add_argument("note_path")
    p.add_argument("status")
    p.set_defaults(func=lambda ctx, a: handlers.handle_task_note_status(
        ctx, note_path=a.note_path, status=a.status))

    p = subparsers.add_parser("event-note", help="Open or create an event note")
    _add_line_args(p)
    p.set_defaults(func=lambda ctx, a: handlers.handle_event_note_create(ctx, path=a.path, line=a.line))

    p = subparsers.add_parser("serve", help="Run the MCP server, REST API and watcher")
    p.set_defaults(func=None, serve=True)

    return parser


def main(argv=None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)
    if getattr(args, "serve", False):
        cmd_serve(args)
        return

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if args.vault:
        settings.vault_root = Path(args.vault)
    if settings.vault_root is None or not settings.vault_root.is_dir():
        print(f"Error: Vault directory not found: {settings.vault_root}")
        sys.exit(1)

    ctx = build_context(settings)
    try:
        result = args.func(ctx, args)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    _emit(result)


if __name__ == "__main__":
    main()
