from .event_notes import (
    EventNoteManager,
    extract_event_title,
    extract_time_range,
    sanitize_event_filename,
)
from .status_sync import StatusSynchronizer
from .task_notes import TaskNoteManager, merge_subtasks, parse_subtask_section

__all__ = [
    "EventNoteManager",
    "extract_event_title",
    "extract_time_range",
    "sanitize_event_filename",
    "StatusSynchronizer",
    "TaskNoteManager",
    "merge_subtasks",
    "parse_subtask_section",
]
