"""
Line grammar for daily-note task ledgers.

Main API:
    parse_line(text)   -> TaskLine | CalendarEvent | PlainLine
    render_line(line)  -> str

Tag micro-syntax (canonical order on render):

    <text> [id::ID] [parent::ID] [uid::UID] [< YYYY-MM-DD] [> YYYY-MM-DD]

Calendar lines carry ``[uid::...] [calendar::...]`` instead and are never
re-rendered by the task workflows.

Legacy spellings are accepted on read through ``LEGACY_DIALECTS`` and come
back out in canonical form the next time the line is rendered.
"""

import functools
import re
from typing import Callable, List, Optional, Tuple, Union

from daybook.models.line import (
    UNTIMED,
    CalendarEvent,
    Line,
    PlainLine,
    SortKey,
    TaskLine,
    TimeBlock,
)

# ---------------------------------------------------------------------------
# Line-level patterns
# ---------------------------------------------------------------------------

TASK_PATTERN = re.compile(r"^(\t*)- \[(.)\](\s*)(.*)$")
PARENT_TASK_PATTERN = re.compile(r"^- \[.\]")
SUBTASK_PATTERN = re.compile(r"^\t+- \[.\]")
CALENDAR_PATTERN = re.compile(r"^\t*- \[c\]")
COMPLETED_PATTERN = re.compile(r"^\t*- \[[xX\->]\]")
MARKER_PATTERN = re.compile(r"^(\t*- \[).(\])")

TIME_BLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})")
TIME_BLOCK_PREFIX = re.compile(r"^\d{1,2}:\d{2}\s*-\s*\d{1,2}:\d{2}\s*")

_DATE = r"(\d{4}-\d{2}-\d{2})"

# ---------------------------------------------------------------------------
# Tag patterns: (field, pattern). Earlier entries win when a line carries the
# same field twice; every match is stripped from the text either way.
# ---------------------------------------------------------------------------

TAG_PATTERNS: List[Tuple[str, "re.Pattern[str]"]] = [
    ("id", re.compile(r"\s*\[id::\s*([^\]\s][^\]]*?)\s*\]")),
    ("parent_id", re.compile(r"\s*\[parent::\s*([^\]\s][^\]]*?)\s*\]")),
    ("uid", re.compile(r"\s*\[uid::\s*([^\]\s][^\]]*?)\s*\]")),
    ("schedule_from", re.compile(r"\s*\[<\s*" + _DATE + r"\]")),
    ("schedule_to", re.compile(r"\s*\[>\s*" + _DATE + r"\]")),
]

CALENDAR_TAG_PATTERNS: List[Tuple[str, "re.Pattern[str]"]] = [
    ("uid", re.compile(r"\s*\[uid::\s*([^\]\s][^\]]*?)\s*\]")),
    ("calendar", re.compile(r"\s*\[calendar::\s*([^\]\s][^\]]*?)\s*\]")),
]

# Older notes wrote schedule pointers as dataview fields.
LEGACY_DIALECTS: List[Tuple[str, "re.Pattern[str]", Callable[[str], str]]] = [
    ("schedule_to", re.compile(r"\s*\[sch_to::\s*" + _DATE + r"\s*\]"), str.strip),
    ("schedule_from", re.compile(r"\s*\[sch_from::\s*" + _DATE + r"\s*\]"), str.strip),
]

# Due-date style markers that an earlier workflow used for scheduling.
LEGACY_SCHEDULE_MARKS = [
    re.compile(r"\s*📅\s*\[\[[^\]]+\]\]"),
    re.compile(r"\s*📅\s*\d{4}-\d{2}-\d{2}"),
]


def _extract_tags(text: str, patterns) -> Tuple[str, dict]:
    fields: dict = {}
    for name, pattern in patterns:
        match = pattern.search(text)
        if match and name not in fields:
            fields[name] = match.group(1).strip()
        text = pattern.sub("", text)
    return text, fields


def _extract_legacy(text: str, fields: dict) -> str:
    for name, pattern, canonicalize in LEGACY_DIALECTS:
        match = pattern.search(text)
        if match and name not in fields:
            fields[name] = canonicalize(match.group(1))
        text = pattern.sub("", text)
    return text


# ---------------------------------------------------------------------------
# Parse / render
# ---------------------------------------------------------------------------

def parse_line(text: str) -> Line:
    """Classify one line of a document. Never raises."""
    m = TASK_PATTERN.match(text)
    if not m:
        return PlainLine(raw=text)

    indent = len(m.group(1))
    marker = m.group(2)
    gap = m.group(3)
    body = m.group(4)

    if marker == "c":
        rest, fields = _extract_tags(body, CALENDAR_TAG_PATTERNS)
        return CalendarEvent(
            indent=indent,
            text=rest.strip(),
            uid=fields.get("uid"),
            calendar=fields.get("calendar"),
            gap=gap,
            raw=text,
        )

    rest, fields = _extract_tags(body, TAG_PATTERNS)
    rest = _extract_legacy(rest, fields)
    return TaskLine(
        indent=indent,
        marker=marker,
        text=rest.strip(),
        id=fields.get("id"),
        parent_id=fields.get("parent_id"),
        uid=fields.get("uid"),
        schedule_from=fields.get("schedule_from"),
        schedule_to=fields.get("schedule_to"),
        gap=gap,
        raw=text,
    )


def render_tags(line: Union[TaskLine, CalendarEvent]) -> List[str]:
    """Canonical tag list for a record."""
    if isinstance(line, CalendarEvent):
        tags = []
        if line.uid:
            tags.append(f"[uid::{line.uid}]")
        if line.calendar:
            tags.append(f"[calendar::{line.calendar}]")
        return tags

    tags = []
    if line.id:
        tags.append(f"[id::{line.id}]")
    if line.parent_id:
        tags.append(f"[parent::{line.parent_id}]")
    if line.uid:
        tags.append(f"[uid::{line.uid}]")
    if line.schedule_from:
        tags.append(f"[< {line.schedule_from}]")
    if line.schedule_to:
        tags.append(f"[> {line.schedule_to}]")
    return tags


def render_line(line: Line) -> str:
    """Serialize a record back to text in canonical tag order."""
    if isinstance(line, PlainLine):
        return line.raw

    body = " ".join(part for part in [line.text] + render_tags(line) if part)
    gap = line.gap
    if body and not gap:
        gap = " "
    return "\t" * line.indent + f"- [{line.marker}]" + gap + body


def split_lines(content: str) -> List[str]:
    return content.split("\n")


def join_lines(lines: List[str]) -> str:
    return "\n".join(lines)


def preserve_trailing_newline(transform):
    """Run a whole-document transform without its final newline, then restore it."""

    @functools.wraps(transform)
    def wrapper(content: str, *args, **kwargs) -> str:
        if content.endswith("\n"):
            return transform(content[:-1], *args, **kwargs) + "\n"
        return transform(content, *args, **kwargs)

    return wrapper


# ---------------------------------------------------------------------------
# Predicates on raw lines
# ---------------------------------------------------------------------------

def is_task(line: str) -> bool:
    """Any checkbox line, calendar events included."""
    return TASK_PATTERN.match(line) is not None


def is_parent_task(line: str) -> bool:
    return PARENT_TASK_PATTERN.match(line) is not None


def is_subtask(line: str) -> bool:
    return SUBTASK_PATTERN.match(line) is not None


def is_calendar_event(line: str) -> bool:
    return CALENDAR_PATTERN.match(line) is not None


def is_completed(line: str) -> bool:
    """
    Terminal for sorting and archiving: ``x``, ``X``, ``-`` and ``>``.

    ``>`` means "moved to another day", not done; it still counts so that
    scheduled-away breadcrumbs leave the active list.
    """
    return COMPLETED_PATTERN.match(line) is not None


def marker_of(line: str) -> Optional[str]:
    m = TASK_PATTERN.match(line)
    return m.group(2) if m else None


# ---------------------------------------------------------------------------
# Tag access and injection on raw lines
# ---------------------------------------------------------------------------

def extract_id(line: str) -> Optional[str]:
    record = parse_line(line)
    return record.id if isinstance(record, TaskLine) else None


def extract_parent_id(line: str) -> Optional[str]:
    record = parse_line(line)
    return record.parent_id if isinstance(record, TaskLine) else None


def extract_schedule_to(line: str) -> Optional[str]:
    record = parse_line(line)
    return record.schedule_to if isinstance(record, TaskLine) else None


def append_tag(line: str, tag: str) -> str:
    """Append a rendered tag after trimming trailing whitespace."""
    return line.rstrip() + " " + tag


def add_id(line: str, task_id: str) -> str:
    if extract_id(line):
        return line
    return append_tag(line, f"[id::{task_id}]")


def add_parent_id(line: str, parent_id: str) -> str:
    """Attach a parent tag, superseding a different existing one."""
    existing = extract_parent_id(line)
    if existing == parent_id:
        return line
    if existing:
        return TAG_PATTERNS[1][1].sub(f" [parent::{parent_id}]", line, count=1)
    return append_tag(line, f"[parent::{parent_id}]")


def remove_parent_id(line: str) -> str:
    return TAG_PATTERNS[1][1].sub("", line)


def set_marker(line: str, marker: str) -> str:
    """Rewrite only the checkbox character, leaving the rest untouched."""
    return MARKER_PATTERN.sub(lambda m: m.group(1) + marker + m.group(2), line, count=1)


def normalize_metadata_order(line: str) -> str:
    """
    Move every known tag to the end of a task line in canonical order.

    Calendar and non-task lines come back unchanged.
    """
    record = parse_line(line)
    if not isinstance(record, TaskLine):
        return line
    return render_line(record)


def strip_legacy_schedule_marks(text: str) -> str:
    for pattern in LEGACY_SCHEDULE_MARKS:
        text = pattern.sub("", text)
    return text.rstrip()


# ---------------------------------------------------------------------------
# Time blocks
# ---------------------------------------------------------------------------

def parse_time_block(text: str) -> Optional[TimeBlock]:
    """Read a leading ``HH:MM - HH:MM`` from task text."""
    m = TIME_BLOCK_PATTERN.match(text)
    if not m:
        return None
    start = int(m.group(1)) * 60 + int(m.group(2))
    end = int(m.group(3)) * 60 + int(m.group(4))
    return TimeBlock(start, end)


def strip_time_block(text: str) -> str:
    return TIME_BLOCK_PREFIX.sub("", text, count=1)


def sort_key(line: Union[str, Line]) -> SortKey:
    """Sort key of a line; untimed and non-task lines sort last."""
    if isinstance(line, str):
        line = parse_line(line)
    if isinstance(line, PlainLine):
        return UNTIMED
    block = parse_time_block(line.text)
    return block.sort_key if block else UNTIMED


# ---------------------------------------------------------------------------
# Text cleanup for note titles
# ---------------------------------------------------------------------------

_TIME_RANGE_ANYWHERE = re.compile(r"\d{1,2}:\d{2}\s*-\s*\d{1,2}:\d{2}\s*")
_HASH_TAG = re.compile(r"#\w+")
_NOTE_LINK = re.compile(r"🔗\[\[[^\]]+\]\]")
_WIKI_LINK = re.compile(r"\[\[([^\]|]+)\|?([^\]]*)\]\]")
_METADATA_EMOJI = re.compile(
    r"(?:📅|🗓️?|⏳|🛫|✅|❌|➕|🔺|⏫|🔼|🔽|⏬|🆔|⛔|🔁)\S*"
)
_BUTTON_ICONS = re.compile(r"📝|🔗")
_INLINE_FIELD = re.compile(r"\s*\[[^\]]+::[^\]]*\]")
_SCHEDULE_TAG = re.compile(r"\s*\[[<>]\s*\d{4}-\d{2}-\d{2}\]")
_FILENAME_UNSAFE = re.compile(r'[\\/:*?"<>|#\[\]]')


def clean_task_text(text: str) -> str:
    """Human title of a task: metadata, tags, links and time ranges removed."""
    text = _TIME_RANGE_ANYWHERE.sub("", text)
    for pattern in LEGACY_SCHEDULE_MARKS:
        text = pattern.sub("", text)
    text = _HASH_TAG.sub("", text)
    text = _NOTE_LINK.sub("", text)
    text = _WIKI_LINK.sub(lambda m: m.group(2) or m.group(1), text)
    text = _METADATA_EMOJI.sub("", text)
    text = _BUTTON_ICONS.sub("", text)
    text = _INLINE_FIELD.sub("", text)
    text = _SCHEDULE_TAG.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def sanitize_filename(text: str) -> str:
    text = _FILENAME_UNSAFE.sub("-", text)
    text = re.sub(r"-+", "-", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()[:100]


def task_title(line: str) -> Optional[str]:
    """Cleaned title of a task line, or None for non-task lines."""
    m = TASK_PATTERN.match(line)
    if not m:
        return None
    return clean_task_text(m.group(4))


_CHECKBOX_PREFIX = re.compile(r"^(\t*- \[.\]\s*)")
_CHECKBOX_TIME_BLOCK = re.compile(r"^(\t*- \[.\]\s*)\d{1,2}:\d{2}\s*-\s*\d{1,2}:\d{2}\s*")


def replace_time_block(line: str, block: Optional[TimeBlock]) -> str:
    """
    Set (or with ``None`` clear) the time block right after the checkbox.

    The rest of the line, tags included, is left as written.
    """
    if not is_task(line):
        return line
    stripped = _CHECKBOX_TIME_BLOCK.sub(lambda m: m.group(1), line, count=1)
    if block is None:
        return stripped
    m = _CHECKBOX_PREFIX.match(stripped)
    prefix = m.group(1)
    if not prefix.endswith((" ", "\t")):
        prefix += " "
    rest = stripped[m.end():]
    return prefix + block.label + (" " + rest if rest else "")
