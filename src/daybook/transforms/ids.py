"""
Task ID generation and assignment.
"""

import secrets
import string
from typing import Iterable, Optional, Set

from daybook.models.line import TaskLine
from daybook.parsers.line_grammar import add_id, join_lines, parse_line, split_lines

ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(
    prefix: str = "t-",
    length: int = 8,
    taken: Optional[Set[str]] = None,
) -> str:
    """
    Generate a random lowercase-alphanumeric task ID.

    Args:
        prefix: Prepended verbatim (default "t-")
        length: Number of random characters (default 8)
        taken: IDs that must not be returned; regenerated on collision

    Returns:
        e.g. "t-k3x9a0qz"
    """
    while True:
        candidate = prefix + "".join(secrets.choice(ID_ALPHABET) for _ in range(length))
        if not taken or candidate not in taken:
            return candidate


def collect_ids(lines: Iterable[str]) -> Set[str]:
    """All ``[id::...]`` values present on task lines."""
    ids = set()
    for line in lines:
        record = parse_line(line)
        if isinstance(record, TaskLine) and record.id:
            ids.add(record.id)
    return ids


def assign_ids(
    content: str,
    *,
    prefix: str = "t-",
    length: int = 8,
    known_ids: Optional[Set[str]] = None,
) -> str:
    """Give every non-calendar task line without an id a fresh one."""
    lines = split_lines(content)
    taken = collect_ids(lines) | set(known_ids or ())
    changed = False

    for i, line in enumerate(lines):
        record = parse_line(line)
        if not isinstance(record, TaskLine) or record.id:
            continue
        new_id = generate_id(prefix, length, taken)
        taken.add(new_id)
        lines[i] = add_id(line, new_id)
        changed = True

    return join_lines(lines) if changed else content
