"""
Chronological sorting of task groups.

Two views:

    sort_by_time(content)        incomplete groups by time block, completed
                                 groups collected under ``## Completed``
    sort_by_time_block(content)  every task and event group by time block,
                                 untimed items after a blank separator, the
                                 archive callout kept at the end

A group is a top-level line (task or calendar event) plus the subtasks
attributed to it: by ``[parent::...]`` first, otherwise by position.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from daybook.models.line import PlainLine, TaskLine
from daybook.parsers.line_grammar import (
    is_completed,
    parse_line,
    preserve_trailing_newline,
    sort_key,
)

COMPLETED_HEADING = "## Completed"
_COMPLETED_HEADING = re.compile(r"^##\s*Completed\s*$", re.IGNORECASE)
ARCHIVE_CALLOUT = re.compile(r"^> \[!archived\]-?\s*Archived\s*$")
ARCHIVE_LINE = re.compile(r"^> ")


@dataclass
class TaskGroup:
    parent: str
    id: Optional[str] = None
    index: int = 0
    subtasks: List[str] = field(default_factory=list)

    def lines(self) -> List[str]:
        return [self.parent] + self.subtasks

    def order(self) -> tuple:
        return sort_key(self.parent).order()


def _classify(line: str) -> Tuple[str, Optional[str], Optional[str]]:
    """Return (kind, id, parent_id); kind is "parent", "subtask" or "other"."""
    record = parse_line(line)
    if isinstance(record, PlainLine):
        return "other", None, None
    kind = "parent" if record.is_parent else "subtask"
    if isinstance(record, TaskLine):
        return kind, record.id, record.parent_id
    return kind, None, None


# ---------------------------------------------------------------------------
# sort_by_time
# ---------------------------------------------------------------------------

def _read_completed_section(
    lines: List[str], start: int
) -> Tuple[List[TaskGroup], List[str], int]:
    """
    Parse the body of a ``## Completed`` section starting at ``start``.

    Returns (groups, stray_lines, next_index). The section ends at the next
    heading, which is left for the caller.
    """
    groups: List[TaskGroup] = []
    stray: List[str] = []
    i = start
    while i < len(lines):
        line = lines[i]
        if line.startswith("#"):
            break
        kind, task_id, parent_id = _classify(line)
        if kind == "parent":
            groups.append(TaskGroup(parent=line, id=task_id, index=i))
        elif kind == "subtask" and groups:
            owner = next((g for g in groups if parent_id and g.id == parent_id), groups[-1])
            owner.subtasks.append(line)
        elif line.strip():
            stray.append(line)
        i += 1
    return groups, stray, i


@preserve_trailing_newline
def sort_by_time(content: str) -> str:
    """
    Order incomplete groups by time block and collect completed groups under
    a trailing ``## Completed`` heading.

    Non-task lines before the first group and after the last one keep their
    place. Non-blank lines found between groups move to just after the
    sorted block; blank lines between groups are dropped.
    """
    lines = content.split("\n")

    parents: List[TaskGroup] = []
    subtasks: List[Tuple[int, str, Optional[str]]] = []
    others: List[Tuple[int, str]] = []
    completed_section: List[TaskGroup] = []
    completed_stray: List[str] = []

    i = 0
    while i < len(lines):
        line = lines[i]
        if _COMPLETED_HEADING.match(line):
            groups, stray, i = _read_completed_section(lines, i + 1)
            completed_section.extend(groups)
            completed_stray.extend(stray)
            continue
        kind, task_id, parent_id = _classify(line)
        if kind == "parent":
            parents.append(TaskGroup(parent=line, id=task_id, index=i))
        elif kind == "subtask":
            subtasks.append((i, line, parent_id))
        else:
            others.append((i, line))
        i += 1

    if not parents and not completed_section:
        return content

    by_id: Dict[str, TaskGroup] = {g.id: g for g in parents if g.id}
    leading_orphans: List[Tuple[int, str]] = []
    for index, line, parent_id in subtasks:
        owner = by_id.get(parent_id) if parent_id else None
        if owner is None:
            preceding = [g for g in parents if g.index < index]
            owner = preceding[-1] if preceding else None
        if owner is None:
            leading_orphans.append((index, line))
        else:
            owner.subtasks.append(line)

    first = parents[0].index if parents else len(lines)
    orphan_indexes = {idx for idx, _ in leading_orphans}
    attributed = [idx for idx, _, _ in subtasks if idx not in orphan_indexes]
    last = max([g.index for g in parents] + attributed) if parents else -1

    before = sorted(
        [(idx, line) for idx, line in others if idx < first] + leading_orphans
    )
    between = [line for idx, line in others if first < idx < last and line.strip()]
    after = [line for idx, line in others if idx > last] if parents else []

    incomplete = [g for g in parents if not is_completed(g.parent)]
    completed = [g for g in parents if is_completed(g.parent)]
    incomplete.sort(key=TaskGroup.order)

    result = [line for _, line in before]
    for group in incomplete:
        result.extend(group.lines())
    result.extend(between)
    result.extend(after)
    result.extend(completed_stray)

    all_completed = completed + completed_section
    if all_completed:
        while result and not result[-1].strip():
            result.pop()
        result.append("")
        result.append(COMPLETED_HEADING)
        all_completed.sort(key=TaskGroup.order)
        for group in all_completed:
            result.extend(group.lines())

    return "\n".join(result)


# ---------------------------------------------------------------------------
# sort_by_time_block
# ---------------------------------------------------------------------------

@preserve_trailing_newline
def sort_by_time_block(content: str) -> str:
    """
    Flat chronological view: timed groups by (start, end), a blank line,
    then untimed groups in their original order.

    Subtasks travel with the top-level line they follow. Non-task lines above
    the first group stay on top; any other non-blank non-task lines follow the
    untimed groups. An ``> [!archived]`` callout is re-appended unchanged.
    """
    lines = content.split("\n")

    timed: List[TaskGroup] = []
    untimed: List[TaskGroup] = []
    leading: List[str] = []
    trailing: List[str] = []
    archived: List[str] = []

    seen_item = False
    in_archive = False
    i = 0
    while i < len(lines):
        line = lines[i]

        if ARCHIVE_CALLOUT.match(line):
            in_archive = True
            archived.append(line)
            i += 1
            continue
        if in_archive:
            if ARCHIVE_LINE.match(line) or not line.strip():
                archived.append(line)
                i += 1
                continue
            in_archive = False

        kind, task_id, _ = _classify(line)
        if kind == "parent":
            seen_item = True
            group = TaskGroup(parent=line, id=task_id, index=i)
            i += 1
            while i < len(lines) and _classify(lines[i])[0] == "subtask":
                group.subtasks.append(lines[i])
                i += 1
            (timed if sort_key(line).has_time else untimed).append(group)
            continue

        if line.strip():
            (trailing if seen_item else leading).append(line)
        i += 1

    timed.sort(key=lambda g: (sort_key(g.parent).start, sort_key(g.parent).end))

    result = list(leading)
    for group in timed:
        result.extend(group.lines())
    if timed and untimed:
        result.append("")
    for group in untimed:
        result.extend(group.lines())
    result.extend(trailing)

    if archived:
        result.append("")
        result.extend(archived)

    return "\n".join(result)
