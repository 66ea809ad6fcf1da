from .archiver import archive_content
from .calendar import build_event_line, sync_events_into_content, sync_from_feed
from .editing import process_content, process_line_on_leave, set_task_marker
from .ids import assign_ids, generate_id
from .linker import link_parents_to_children, unlink_parent
from .sorter import sort_by_time, sort_by_time_block

__all__ = [
    "archive_content",
    "build_event_line",
    "sync_events_into_content",
    "sync_from_feed",
    "process_content",
    "process_line_on_leave",
    "set_task_marker",
    "assign_ids",
    "generate_id",
    "link_parents_to_children",
    "unlink_parent",
    "sort_by_time",
    "sort_by_time_block",
]
