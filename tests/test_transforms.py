"""
Tests for the pure document transforms.

Covers:
- ids: assign_ids, collision-checked generate_id
- linker: link_parents_to_children, find_parent_line, unlink_parent
- sorter: sort_by_time, sort_by_time_block
- archiver: archive_content
- calendar: build_event_line, sync_events_into_content, sync_from_feed
- editing: process_line_on_leave, process_content, marker and time-block commands, task_info
"""

import re
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from daybook.config import Settings
from daybook.models.note import FeedEvent
from daybook.parsers.line_grammar import extract_id, normalize_metadata_order
from daybook.transforms.archiver import ARCHIVE_HEADER, archive_content
from daybook.transforms.calendar import build_event_line, sync_events_into_content, sync_from_feed
from daybook.transforms.editing import (
    add_time_block,
    default_end_time,
    parse_clock,
    process_content,
    process_line_on_leave,
    remove_time_block,
    set_task_marker,
    task_info,
)
from daybook.transforms.ids import ID_ALPHABET, assign_ids, collect_ids, generate_id
from daybook.transforms.linker import find_parent_line, link_parents_to_children, unlink_parent
from daybook.transforms.sorter import sort_by_time, sort_by_time_block

ID_RE = re.compile(r"\[id::t-[a-z0-9]{8}\]")


# ---------------------------------------------------------------------------
# ids
# ---------------------------------------------------------------------------

class TestAssignIds:
    def test_tasks_get_ids_calendar_does_not(self):
        content = (
            "- [ ] a\n"
            "\t- [ ] b\n"
            "- [c] 09:00 - 10:00 Event [uid::u]\n"
            "prose"
        )
        lines = assign_ids(content).split("\n")
        assert ID_RE.search(lines[0])
        assert ID_RE.search(lines[1])
        assert lines[2] == "- [c] 09:00 - 10:00 Event [uid::u]"
        assert lines[3] == "prose"

    def test_idempotent(self):
        once = assign_ids("- [ ] a\n- [x] b\n")
        assert assign_ids(once) == once

    def test_existing_ids_are_stable(self):
        content = "- [ ] a [id::keep-me]\n- [ ] b"
        result = assign_ids(content)
        assert result.split("\n")[0] == "- [ ] a [id::keep-me]"

    def test_ids_are_unique(self):
        content = "\n".join("- [ ] task" for _ in range(50))
        assert len(collect_ids(assign_ids(content).split("\n"))) == 50

    def test_custom_prefix_and_length(self):
        line = assign_ids("- [ ] a", prefix="x_", length=4)
        assert re.search(r"\[id::x_[a-z0-9]{4}\]$", line)

    def test_unchanged_content_returned_as_is(self):
        content = "just prose\n"
        assert assign_ids(content) is content

    def test_blank_id_tag_gets_one_real_id(self):
        once = assign_ids("- [ ] Task [id:: ]")
        assert len(ID_RE.findall(once)) == 1
        assert assign_ids(once) == once


def test_generate_id_avoids_taken():
    taken = {c for c in ID_ALPHABET if c != "z"}
    assert generate_id("", 1, taken) == "z"


# ---------------------------------------------------------------------------
# linker
# ---------------------------------------------------------------------------

class TestLinker:
    def test_links_subtask_to_parent(self):
        content = "- [ ] Parent [id::t-ab12cd34]\n\t- [ ] Buy milk"
        assert link_parents_to_children(content).split("\n")[1] == (
            "\t- [ ] Buy milk [parent::t-ab12cd34]"
        )

    def test_heading_resets_parent(self):
        content = "- [ ] P [id::p]\n## Later\n\t- [ ] orphan"
        assert link_parents_to_children(content) == content

    def test_parent_without_id_leaves_subtask_unlinked(self):
        content = "- [ ] P\n\t- [ ] child"
        assert link_parents_to_children(content) == content

    def test_existing_parent_tag_kept(self):
        content = "- [ ] P [id::p]\n\t- [ ] child [parent::other]"
        assert link_parents_to_children(content) == content

    def test_stray_parent_tag_on_top_level_removed(self):
        assert link_parents_to_children("- [ ] P [id::p] [parent::x]") == "- [ ] P [id::p]"

    def test_calendar_line_never_modified_and_resets(self):
        content = "- [ ] P [id::p]\n- [c] 09:00 - 10:00 Ev [uid::u]\n\t- [ ] after event"
        assert link_parents_to_children(content) == content

    def test_idempotent(self):
        content = "- [ ] P [id::p]\n\t- [ ] a\n\t- [ ] b\n- [ ] Q [id::q]\n\t- [ ] c"
        once = link_parents_to_children(content)
        assert link_parents_to_children(once) == once
        assert once.split("\n")[4] == "\t- [ ] c [parent::q]"

    def test_unlink_parent(self):
        assert unlink_parent("\t- [ ] a [parent::p]") == "\t- [ ] a"
        assert unlink_parent("\t- [ ] a") == "\t- [ ] a"


# ---------------------------------------------------------------------------
# sorter
# ---------------------------------------------------------------------------

UNSORTED = (
    "# 2025-01-10\n"
    "- [ ] 10:00 - 11:00 B [id::b]\n"
    "\t- [ ] b1 [parent::b]\n"
    "- [x] 08:00 - 09:00 Done [id::d]\n"
    "- [ ] 09:00 - 09:30 A [id::a]\n"
    "- [ ] Untimed [id::u]\n"
)

SORTED = (
    "# 2025-01-10\n"
    "- [ ] 09:00 - 09:30 A [id::a]\n"
    "- [ ] 10:00 - 11:00 B [id::b]\n"
    "\t- [ ] b1 [parent::b]\n"
    "- [ ] Untimed [id::u]\n"
    "\n"
    "## Completed\n"
    "- [x] 08:00 - 09:00 Done [id::d]\n"
)


class TestSortByTime:
    def test_orders_groups_and_collects_completed(self):
        assert sort_by_time(UNSORTED) == SORTED

    def test_idempotent(self):
        assert sort_by_time(SORTED) == SORTED

    def test_subtask_follows_parent_by_id(self):
        content = (
            "- [ ] 10:00 - 11:00 Late [id::l]\n"
            "- [ ] 09:00 - 10:00 Early [id::e]\n"
            "\t- [ ] belongs to late [parent::l]"
        )
        assert sort_by_time(content).split("\n") == [
            "- [ ] 09:00 - 10:00 Early [id::e]",
            "- [ ] 10:00 - 11:00 Late [id::l]",
            "\t- [ ] belongs to late [parent::l]",
        ]

    def test_no_tasks_unchanged(self):
        content = "# Title\n\nSome prose\n"
        assert sort_by_time(content) == content

    def test_scheduled_away_counts_as_completed(self):
        result = sort_by_time("- [>] Moved [> 2025-01-12]\n- [ ] Stay")
        assert result == "- [ ] Stay\n\n## Completed\n- [>] Moved [> 2025-01-12]"


class TestSortByTimeBlock:
    def test_timed_then_blank_then_untimed(self):
        content = (
            "Notes\n"
            "- [ ] Untimed [id::u]\n"
            "- [ ] 10:00 - 11:00 B\n"
            "\t- [ ] b1\n"
            "- [c] 09:00 - 09:30 Standup [uid::s]"
        )
        assert sort_by_time_block(content).split("\n") == [
            "Notes",
            "- [c] 09:00 - 09:30 Standup [uid::s]",
            "- [ ] 10:00 - 11:00 B",
            "\t- [ ] b1",
            "",
            "- [ ] Untimed [id::u]",
        ]

    def test_equal_times_keep_original_order(self):
        content = "- [ ] 09:00 - 10:00 first\n- [ ] 09:00 - 10:00 second"
        assert sort_by_time_block(content) == content

    def test_archive_callout_kept_at_end(self):
        content = (
            "- [ ] 10:00 - 11:00 B\n"
            "- [ ] 09:00 - 10:00 A\n"
            "\n"
            f"{ARCHIVE_HEADER}\n"
            "> - [x] old"
        )
        assert sort_by_time_block(content).split("\n") == [
            "- [ ] 09:00 - 10:00 A",
            "- [ ] 10:00 - 11:00 B",
            "",
            ARCHIVE_HEADER,
            "> - [x] old",
        ]


def test_sort_total_ordering():
    content = "\n".join(
        f"- [ ] {h:02d}:{m:02d} - {h + 1:02d}:00 task {h}{m}"
        for h, m in [(14, 0), (9, 30), (9, 0), (18, 15), (7, 45)]
    )
    starts = [line.split(" ")[3] for line in sort_by_time(content).split("\n")]
    assert starts == sorted(starts)


# ---------------------------------------------------------------------------
# archiver
# ---------------------------------------------------------------------------

class TestArchive:
    CONTENT = (
        "- [c] 09:00 - 09:30 Standup [uid::s]\n"
        "- [x] Done\n"
        "\t- [x] sub\n"
        "- [ ] Open\n"
        "\t- [ ] open sub\n"
        "- [>] Moved [> 2025-01-12]\n"
    )

    def test_partition(self):
        lines = archive_content(self.CONTENT).split("\n")
        assert lines[:3] == [
            "- [c] 09:00 - 09:30 Standup [uid::s]",
            "- [ ] Open",
            "\t- [ ] open sub",
        ]
        assert lines[3:10] == [""] * 7
        assert lines[10:] == [
            ARCHIVE_HEADER,
            "> - [x] Done",
            "> \t- [x] sub",
            "> - [>] Moved [> 2025-01-12]",
            "",
        ]

    def test_idempotent(self):
        once = archive_content(self.CONTENT)
        assert archive_content(once) == once

    def test_new_candidates_go_before_existing(self):
        once = archive_content(self.CONTENT)
        again = archive_content(once.replace("- [ ] Open", "- [-] Open"))
        archived = again.split(ARCHIVE_HEADER + "\n")[1].split("\n")
        assert archived[:2] == ["> - [-] Open", "> \t- [ ] open sub"]
        assert "> - [x] Done" in archived

    def test_nothing_terminal_unchanged(self):
        assert archive_content("- [ ] a\n- [/] b\n") == "- [ ] a\n- [/] b\n"


# ---------------------------------------------------------------------------
# calendar
# ---------------------------------------------------------------------------

class TestCalendar:
    def test_build_event_line(self):
        event = FeedEvent(
            summary="Sync",
            start_time="10:00",
            end_time="10:30",
            uid="x",
            calendar_name="Work",
            location="Room 4",
            call_url="https://meet/x",
        )
        assert build_event_line(event) == (
            "- [c] 10:00 - 10:30 Sync Room 4 https://meet/x [uid::x] [calendar::Work]"
        )

    def test_fallback_uid(self):
        line = build_event_line(FeedEvent(summary="Early", start_time="08:00", end_time="08:30"))
        assert line == "- [c] 08:00 - 08:30 Early [uid::fallback-0800]"

    def test_sync_replaces_and_sorts(self):
        content = "- [c] 07:00 - 07:30 Old [uid::old]\n- [ ] Task\n"
        events = [
            FeedEvent("Standup", "09:00", "09:30", uid="s"),
            FeedEvent("Early", "08:00", "08:30", uid="e"),
        ]
        assert sync_events_into_content(content, events) == (
            "- [c] 08:00 - 08:30 Early [uid::e]\n"
            "- [c] 09:00 - 09:30 Standup [uid::s]\n"
            "- [ ] Task\n"
        )

    def test_no_events_unchanged(self):
        content = "- [c] 07:00 - 07:30 Old [uid::old]\n"
        assert sync_events_into_content(content, []) == content

    def test_sync_from_feed_asks_for_the_day(self):
        class _Feed:
            def __init__(self):
                self.asked = []

            def get_events_for_date(self, day):
                self.asked.append(day)
                return [FeedEvent("Standup", "09:00", "09:30", uid="s")]

        feed = _Feed()
        result = sync_from_feed("- [ ] Task\n", feed, date(2025, 1, 10))
        assert result == "- [c] 09:00 - 09:30 Standup [uid::s]\n- [ ] Task\n"
        assert feed.asked == [date(2025, 1, 10)]


# ---------------------------------------------------------------------------
# editing
# ---------------------------------------------------------------------------

class TestLineOnLeave:
    def test_adds_id_and_parent(self):
        lines = ["- [ ] P [id::p]", "\t- [ ] child"]
        result = process_line_on_leave(lines, 1, Settings())
        assert re.match(r"^\t- \[ \] child \[id::t-[a-z0-9]{8}\] \[parent::p\]$", result)

    def test_respects_disabled_ids(self):
        lines = ["- [ ] P [id::p]", "\t- [ ] child"]
        assert process_line_on_leave(lines, 1, Settings(enable_task_ids=False)) == (
            "\t- [ ] child [parent::p]"
        )

    def test_normalizes_order(self):
        lines = ["- [ ] [id::t-1] Task"]
        assert process_line_on_leave(lines, 0, Settings()) == "- [ ] Task [id::t-1]"

    def test_calendar_untouched(self):
        lines = ["- [c] 09:00 - 10:00 Ev [uid::u]"]
        assert process_line_on_leave(lines, 0, Settings()) == lines[0]

    def test_subtask_under_event_stays_unlinked(self):
        lines = [
            "- [ ] Write report [id::t-aaaaaaaa]",
            "- [c] 09:00 - 10:00 Standup [uid::u1]",
            "\t- [ ] bring notes [id::t-bbbbbbbb]",
        ]
        assert find_parent_line(lines, 2) is None
        assert process_line_on_leave(lines, 2, Settings()) == lines[2]


class TestProcessContent:
    def test_pipeline(self):
        content = "- [ ] 10:00 - 11:00 B\n\t- [ ] b1\n- [x] Done\n"
        result = process_content(content, Settings(), sort=True, archive=True)
        lines = result.split("\n")
        parent_id = extract_id(lines[0])
        assert parent_id
        assert lines[1].endswith(f"[parent::{parent_id}]")
        assert ARCHIVE_HEADER in lines
        assert any(line.startswith("> - [x] Done") for line in lines)

    def test_defaults_follow_settings(self):
        content = "- [x] Done [id::d]\n- [ ] Open [id::o]\n"
        assert process_content(content, Settings()) == content
        archived = process_content(content, Settings(enable_auto_archive=True))
        assert ARCHIVE_HEADER in archived

    def test_idempotent(self):
        content = "- [ ] P\n\t- [ ] c\n- [ ] Q\n"
        once = process_content(content, Settings())
        assert process_content(once, Settings()) == once


class TestMarkerCommands:
    def test_complete(self):
        assert set_task_marker("\t- [ ] a [id::1]", "complete") == "\t- [x] a [id::1]"

    def test_in_progress_and_cancelled(self):
        assert set_task_marker("- [ ] a", "in-progress") == "- [/] a"
        assert set_task_marker("- [/] a", "cancelled") == "- [-] a"

    def test_unknown_command(self):
        with pytest.raises(ValueError):
            set_task_marker("- [ ] a", "done-ish")

    def test_calendar_untouched(self):
        line = "- [c] 09:00 - 10:00 Ev"
        assert set_task_marker(line, "complete") == line


class TestTimeBlockCommands:
    def test_parse_clock(self):
        assert parse_clock("9:30") == 570
        assert parse_clock("00:00") == 0

    @pytest.mark.parametrize("value", ["24:00", "9:75", "noon", ""])
    def test_parse_clock_invalid(self, value):
        with pytest.raises(ValueError):
            parse_clock(value)

    def test_default_end_wraps(self):
        assert default_end_time(9 * 60) == 9 * 60 + 30
        assert default_end_time(23 * 60 + 45) == 15

    def test_add_and_remove(self):
        line = add_time_block("- [ ] Task [id::1]", 540)
        assert line == "- [ ] 09:00 - 09:30 Task [id::1]"
        assert remove_time_block(line) == "- [ ] Task [id::1]"

    def test_explicit_end(self):
        assert add_time_block("- [ ] Task", 600, 690) == "- [ ] 10:00 - 11:30 Task"


class TestTaskInfo:
    def test_subtask_info(self):
        lines = ["- [ ] Parent [id::p]", "\t- [/] Child [id::c] [parent::p] [< 2025-01-09]"]
        info = task_info(lines, 1)
        assert info["text"] == "Child"
        assert info["id"] == "c"
        assert info["parent_id"] == "p"
        assert info["parent_text"] == "Parent"
        assert info["marker"] == "/"
        assert info["schedule_from"] == "2025-01-09"
        assert info["is_calendar_event"] is False

    def test_calendar_info(self):
        info = task_info(["- [c] 09:00 - 10:00 Standup [uid::u] [calendar::Work]"], 0)
        assert info == {
            "text": "Standup",
            "is_calendar_event": True,
            "uid": "u",
            "calendar": "Work",
        }

    def test_plain_line(self):
        assert task_info(["prose"], 0) is None


def test_normalize_after_link_is_stable():
    linked = link_parents_to_children("- [ ] P [id::p]\n\t- [ ] [id::c] child")
    second = linked.split("\n")[1]
    assert normalize_metadata_order(second) == "\t- [ ] child [id::c] [parent::p]"
