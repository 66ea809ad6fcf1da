from .line_grammar import (
    clean_task_text,
    is_calendar_event,
    is_completed,
    is_parent_task,
    is_subtask,
    is_task,
    normalize_metadata_order,
    parse_line,
    render_line,
    sanitize_filename,
    sort_key,
)
from .frontmatter import get_field, set_field

__all__ = [
    "clean_task_text",
    "is_calendar_event",
    "is_completed",
    "is_parent_task",
    "is_subtask",
    "is_task",
    "normalize_metadata_order",
    "parse_line",
    "render_line",
    "sanitize_filename",
    "sort_key",
    "get_field",
    "set_field",
]
