"""
Archival of terminal-state tasks into a collapsed callout.

Output layout:

    calendar events
    active tasks and the non-task lines around them
    <7 blank lines>
    > [!archived]- Archived
    > - [x] done task
    > ...

Newly archived runs come first, followed by whatever the callout already
held. Re-running on an archived document with no new terminal tasks returns
it unchanged.
"""

import re
from typing import List

from daybook.models.line import ACTIVE_MARKERS, TERMINAL_MARKERS
from daybook.parsers.line_grammar import (
    is_calendar_event,
    is_subtask,
    marker_of,
    preserve_trailing_newline,
)

ARCHIVE_HEADER = "> [!archived]- Archived"
ARCHIVE_CALLOUT = re.compile(r"^> \[!archived\]-?\s*Archived\s*$")
ARCHIVE_PREFIX = "> "
SEPARATOR_LINES = 7


def _take_run(lines: List[str], i: int) -> List[str]:
    """A task line plus its contiguous subtasks."""
    run = [lines[i]]
    i += 1
    while i < len(lines) and is_subtask(lines[i]):
        run.append(lines[i])
        i += 1
    return run


@preserve_trailing_newline
def archive_content(content: str) -> str:
    lines = content.split("\n")
    calendar: List[str] = []
    active: List[str] = []
    archived: List[str] = []
    existing: List[str] = []

    in_archive = False
    i = 0
    while i < len(lines):
        line = lines[i]

        if ARCHIVE_CALLOUT.match(line):
            in_archive = True
            i += 1
            continue
        if in_archive:
            if line.startswith(ARCHIVE_PREFIX):
                existing.append(line[len(ARCHIVE_PREFIX):])
                i += 1
                continue
            in_archive = False

        if is_calendar_event(line):
            calendar.append(line)
            i += 1
            continue

        marker = marker_of(line)
        if marker in TERMINAL_MARKERS:
            run = _take_run(lines, i)
            archived.extend(run)
            i += len(run)
            continue
        if marker in ACTIVE_MARKERS:
            run = _take_run(lines, i)
            active.extend(run)
            i += len(run)
            continue

        # Leading blank lines are dropped; everything else rides with the
        # active stream.
        if line.strip() or active:
            active.append(line)
        i += 1

    to_archive = archived + existing
    result = calendar + active
    if to_archive:
        if result:
            while result and result[-1] == "":
                result.pop()
            result.extend([""] * SEPARATOR_LINES)
        result.append(ARCHIVE_HEADER)
        result.extend(ARCHIVE_PREFIX + line for line in to_archive)

    return "\n".join(result)
