"""Parent/child linking derived from indentation and adjacency."""

from typing import List, Optional

from daybook.models.line import CalendarEvent, PlainLine, TaskLine
from daybook.parsers.line_grammar import (
    add_parent_id,
    join_lines,
    parse_line,
    remove_parent_id,
    split_lines,
)


def link_lines(lines: List[str]) -> List[str]:
    """
    Single forward pass over a document's lines.

    A top-level task becomes the current parent (and loses any stray parent
    tag); a subtask without a parent tag is linked to the current parent; a
    heading clears the current parent. Existing parent tags are never
    overwritten.
    """
    out = []
    current_parent: Optional[str] = None

    for line in lines:
        record = parse_line(line)

        if isinstance(record, PlainLine):
            if record.is_heading:
                current_parent = None
            out.append(line)
            continue

        if not isinstance(record, TaskLine):
            # Calendar events never carry ids, so nothing below can join them.
            if record.is_parent:
                current_parent = None
            out.append(line)
            continue

        if record.is_parent:
            current_parent = record.id
            if record.parent_id:
                line = remove_parent_id(line)
        elif record.parent_id is None and current_parent:
            line = add_parent_id(line, current_parent)

        out.append(line)

    return out


def link_parents_to_children(content: str) -> str:
    lines = split_lines(content)
    linked = link_lines(lines)
    return content if linked == lines else join_lines(linked)


def unlink_parent(line: str) -> str:
    """Explicit user clear of a subtask's parent tag."""
    record = parse_line(line)
    if not isinstance(record, TaskLine) or record.parent_id is None:
        return line
    return remove_parent_id(line)


def find_parent_line(lines: List[str], index: int) -> Optional[int]:
    """Index of the closest preceding top-level task line, stopping at headings and events."""
    for i in range(index - 1, -1, -1):
        record = parse_line(lines[i])
        if isinstance(record, PlainLine):
            if record.is_heading:
                return None
            continue
        if isinstance(record, CalendarEvent) and record.is_parent:
            return None
        if isinstance(record, TaskLine) and record.is_parent:
            return i
    return None
