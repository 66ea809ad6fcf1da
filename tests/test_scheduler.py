"""
Tests for scheduler/scheduler.py.

Uses a real VaultStore over a temporary vault on disk.

Covers:
- schedule_task: copy + breadcrumb, id assignment, subtasks, bounce, rejections
- unschedule_task: round trip, forward-copy chain removal
- schedule_all_overdue
- Task note pointer updates
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from daybook.config import Settings
from daybook.context import build_context
from daybook.parsers import frontmatter
from daybook.parsers.line_grammar import extract_id, parse_line
from daybook.scheduler.dates import InvalidDateError
from daybook.transforms.archiver import ARCHIVE_HEADER

D1 = "00 - Daily/2025-01-10.md"
D2 = "00 - Daily/2025-01-12.md"
D3 = "00 - Daily/2025-01-14.md"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    (vault / "00 - Daily").mkdir(parents=True)
    (vault / "00 - Daily" / "2025-01-10.md").write_text(
        "# 2025-01-10\n"
        "- [ ] Call dentist [id::t-xy] \n",
        encoding="utf-8",
    )
    return vault


@pytest.fixture
def ctx(tmp_path):
    return build_context(Settings(vault_root=_make_vault(tmp_path)))


def _read(ctx, path):
    return ctx.store.read(path)


def _live_copies(ctx, task_id, paths):
    found = []
    for path in paths:
        if not ctx.store.exists(path):
            continue
        for line in _read(ctx, path).split("\n"):
            record = parse_line(line)
            if getattr(record, "id", None) == task_id and record.marker != ">":
                found.append(path)
    return found


# ---------------------------------------------------------------------------
# schedule_task
# ---------------------------------------------------------------------------

class TestScheduleTask:
    def test_copy_and_breadcrumb(self, ctx):
        result = ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        assert result.ok
        assert result.paths[:2] == [D2, D1]
        assert _read(ctx, D1).split("\n")[1] == "- [>] Call dentist [id::t-xy] [> 2025-01-12]"
        assert _read(ctx, D2) == "- [ ] Call dentist [id::t-xy] [< 2025-01-10]\n"

    def test_accepts_compact_date(self, ctx):
        assert ctx.scheduler.schedule_task(D1, 1, "20250112").ok
        assert ctx.store.exists(D2)

    def test_invalid_date_raises(self, ctx):
        with pytest.raises(InvalidDateError):
            ctx.scheduler.schedule_task(D1, 1, "2025-02-30")

    def test_rejects_non_task(self, ctx):
        result = ctx.scheduler.schedule_task(D1, 0, "2025-01-12")
        assert not result.ok
        assert not ctx.store.exists(D2)

    def test_rejects_calendar_line(self, ctx):
        ctx.store.write(D1, "- [c] 09:00 - 10:00 Standup [uid::s]\n")
        assert not ctx.scheduler.schedule_task(D1, 0, "2025-01-12").ok

    def test_rejects_duplicate_schedule(self, ctx):
        ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        before = _read(ctx, D2)
        result = ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        assert not result.ok
        assert "already scheduled" in result.message
        assert _read(ctx, D2) == before

    def test_rejects_same_day(self, ctx):
        assert not ctx.scheduler.schedule_task(D1, 1, "2025-01-10").ok

    def test_reschedule_breadcrumb_moves_live_copy(self, ctx):
        ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        result = ctx.scheduler.schedule_task(D1, 1, "2025-01-14")
        assert result.ok
        assert D2 in result.paths
        assert _live_copies(ctx, "t-xy", [D1, D2, D3]) == [D3]
        assert "t-xy" not in _read(ctx, D2)
        assert _read(ctx, D1).split("\n")[1] == "- [>] Call dentist [id::t-xy] [> 2025-01-14]"

    def test_reschedule_carries_subtasks_again(self, ctx):
        ctx.store.write(D1, "- [ ] Parent [id::p]\n\t- [ ] a [parent::p]\n")
        ctx.scheduler.schedule_task(D1, 0, "2025-01-12")
        ctx.scheduler.schedule_task(D1, 0, "2025-01-14")
        assert _read(ctx, D1) == "- [>] Parent [id::p] [> 2025-01-14]\n\t- [>] a [parent::p]\n"
        assert _read(ctx, D3) == "- [ ] Parent [id::p] [< 2025-01-10]\n\t- [ ] a [parent::p]\n"
        assert "Parent" not in _read(ctx, D2)

    def test_assigns_shared_id(self, ctx):
        ctx.store.write(D1, "- [ ] No id yet\n")
        ctx.scheduler.schedule_task(D1, 0, "2025-01-12")
        source_id = extract_id(_read(ctx, D1).split("\n")[0])
        assert source_id
        assert extract_id(_read(ctx, D2).split("\n")[0]) == source_id

    def test_time_block_stripped_from_breadcrumb_only(self, ctx):
        ctx.store.write(D1, "- [ ] 09:00 - 09:30 Meet [id::m]\n")
        ctx.scheduler.schedule_task(D1, 0, "2025-01-12")
        assert _read(ctx, D1) == "- [>] Meet [id::m] [> 2025-01-12]\n"
        assert _read(ctx, D2) == "- [ ] 09:00 - 09:30 Meet [id::m] [< 2025-01-10]\n"

    def test_legacy_and_stale_tags_stripped(self, ctx):
        ctx.store.write(D1, "- [ ] Task [id::l] [sch_to::2025-01-05] 📅 2025-01-05 [< 2025-01-01]\n")
        ctx.scheduler.schedule_task(D1, 0, "2025-01-12")
        assert _read(ctx, D1) == "- [>] Task [id::l] [> 2025-01-12]\n"
        assert _read(ctx, D2) == "- [ ] Task [id::l] [< 2025-01-10]\n"

    def test_subtasks_follow_parent(self, ctx):
        ctx.store.write(
            D1,
            "- [ ] Parent [id::p]\n"
            "\t- [ ] a [parent::p]\n"
            "\t- [x] b [parent::p]\n"
            "- [ ] Other [id::o]\n",
        )
        ctx.scheduler.schedule_task(D1, 0, "2025-01-12")
        assert _read(ctx, D1) == (
            "- [>] Parent [id::p] [> 2025-01-12]\n"
            "\t- [>] a [parent::p]\n"
            "\t- [x] b [parent::p]\n"
            "- [ ] Other [id::o]\n"
        )
        assert _read(ctx, D2) == (
            "- [ ] Parent [id::p] [< 2025-01-10]\n"
            "\t- [ ] a [parent::p]\n"
        )

    def test_scheduled_subtask_becomes_top_level(self, ctx):
        ctx.store.write(D1, "- [ ] Parent [id::p]\n\t- [ ] child [id::c] [parent::p]\n")
        ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        assert _read(ctx, D1).split("\n")[1] == "\t- [>] child [id::c] [parent::p] [> 2025-01-12]"
        assert _read(ctx, D2) == "- [ ] child [id::c] [< 2025-01-10]\n"

    def test_inserted_before_archive_callout(self, ctx):
        ctx.store.write(
            D2,
            "- [ ] Existing [id::e]\n"
            "\n\n"
            f"{ARCHIVE_HEADER}\n"
            "> - [x] old\n",
        )
        ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        lines = _read(ctx, D2).split("\n")
        assert lines[:2] == [
            "- [ ] Existing [id::e]",
            "- [ ] Call dentist [id::t-xy] [< 2025-01-10]",
        ]
        assert lines[-3:] == [ARCHIVE_HEADER, "> - [x] old", ""]

    def test_appended_to_existing_note(self, ctx):
        ctx.store.write(D2, "# 2025-01-12\n- [ ] Already here [id::a]\n")
        ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        assert _read(ctx, D2) == (
            "# 2025-01-12\n"
            "- [ ] Already here [id::a]\n"
            "- [ ] Call dentist [id::t-xy] [< 2025-01-10]\n"
        )

    def test_cycle_leaves_one_live_copy(self, ctx):
        ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        ctx.scheduler.schedule_task(D2, 0, "2025-01-14")
        result = ctx.scheduler.schedule_task(D3, 0, "2025-01-10")
        assert result.ok

        assert _live_copies(ctx, "t-xy", [D1, D2, D3]) == [D1]
        d1_lines = [line for line in _read(ctx, D1).split("\n") if "t-xy" in line]
        assert d1_lines == ["- [ ] Call dentist [id::t-xy] [< 2025-01-14]"]
        assert _read(ctx, D2).startswith("- [>] Call dentist [id::t-xy] [> 2025-01-14]")
        assert _read(ctx, D3).startswith("- [>] Call dentist [id::t-xy] [> 2025-01-10]")

    def test_bounce_revives_subtasks(self, ctx):
        ctx.store.write(D1, "- [ ] Parent [id::p]\n\t- [ ] a [parent::p]\n")
        ctx.scheduler.schedule_task(D1, 0, "2025-01-12")
        ctx.scheduler.schedule_task(D2, 0, "2025-01-10")
        assert _read(ctx, D1) == "- [ ] Parent [id::p] [< 2025-01-12]\n\t- [ ] a [parent::p]\n"
        assert _read(ctx, D2) == "- [>] Parent [id::p] [> 2025-01-10]\n\t- [>] a [parent::p]\n"


# ---------------------------------------------------------------------------
# unschedule_task
# ---------------------------------------------------------------------------

class TestUnscheduleTask:
    def test_round_trip(self, ctx):
        original = (
            "- [ ] Parent [id::p]\n"
            "\t- [ ] a [parent::p]\n"
            "\t- [x] b [parent::p]\n"
            "- [ ] Other [id::o]\n"
        )
        ctx.store.write(D1, original)
        ctx.scheduler.schedule_task(D1, 0, "2025-01-12")
        result = ctx.scheduler.unschedule_task(D1, 0)
        assert result.ok
        assert _read(ctx, D1) == original
        assert "[id::p]" not in _read(ctx, D2)

    def test_keeps_other_target_content(self, ctx):
        ctx.store.write(D2, "# 2025-01-12\n\n- [ ] Stays [id::s]\n")
        ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        ctx.scheduler.unschedule_task(D1, 1)
        assert _read(ctx, D2) == "# 2025-01-12\n\n- [ ] Stays [id::s]\n"
        assert _read(ctx, D1).split("\n")[1] == "- [ ] Call dentist [id::t-xy]"

    def test_follows_forward_chain(self, ctx):
        ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        ctx.scheduler.schedule_task(D2, 0, "2025-01-14")
        result = ctx.scheduler.unschedule_task(D1, 1)
        assert D2 in result.paths and D3 in result.paths
        assert _live_copies(ctx, "t-xy", [D1, D2, D3]) == [D1]
        assert "t-xy" not in _read(ctx, D2)
        assert "t-xy" not in _read(ctx, D3)

    def test_rejects_unscheduled_task(self, ctx):
        result = ctx.scheduler.unschedule_task(D1, 1)
        assert not result.ok
        assert result.message == "Task is not scheduled"

    def test_missing_target_is_not_an_error(self, ctx):
        ctx.store.write(D1, "- [>] Orphan breadcrumb [id::x] [> 2025-03-01]\n")
        result = ctx.scheduler.unschedule_task(D1, 0)
        assert result.ok
        assert _read(ctx, D1) == "- [ ] Orphan breadcrumb [id::x]\n"


# ---------------------------------------------------------------------------
# schedule_all_overdue
# ---------------------------------------------------------------------------

class TestScheduleAllOverdue:
    def test_moves_open_tasks_from_earlier_days(self, ctx):
        ctx.store.write(
            "00 - Daily/2025-01-08.md",
            "- [ ] Old one [id::o1]\n"
            "\t- [ ] sub [parent::o1]\n"
            "- [x] Done [id::d]\n"
            "- [x] Finished parent [id::fp]\n"
            "\t- [ ] loose sub [parent::fp]\n",
        )
        ctx.store.write("00 - Daily/2025-01-20.md", "- [ ] Future [id::f]\n")

        result = ctx.scheduler.schedule_all_overdue("2025-01-12")
        assert result.ok
        assert result.count == 3

        target = _read(ctx, D2)
        assert "- [ ] Old one [id::o1] [< 2025-01-08]\n\t- [ ] sub [parent::o1]" in target
        assert "- [ ] Call dentist [id::t-xy] [< 2025-01-10]" in target
        assert "Done" not in target
        assert "Future" not in target
        loose = [line for line in target.split("\n") if "loose sub" in line]
        assert len(loose) == 1
        assert loose[0].startswith("- [ ] loose sub [id::")
        assert "[parent::" not in loose[0]

        old = _read(ctx, "00 - Daily/2025-01-08.md").split("\n")
        assert old[0].startswith("- [>] Old one")
        assert old[1].startswith("\t- [>] sub")
        assert old[4].startswith("\t- [>] loose sub")

    def test_nothing_overdue(self, ctx):
        result = ctx.scheduler.schedule_all_overdue("2025-01-10")
        assert not result.ok
        assert result.message == "No overdue tasks found"


# ---------------------------------------------------------------------------
# Task note pointer
# ---------------------------------------------------------------------------

class TestTaskNotePointer:
    def test_schedule_and_unschedule_move_note_pointer(self, ctx):
        created = ctx.notes.create_task_note(D1, 1)
        assert created.ok
        note_path = "Task Notes/Call dentist.md"
        assert ctx.store.exists(note_path)

        result = ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        assert note_path in result.paths
        note = _read(ctx, note_path)
        assert frontmatter.get_field(note, "sourceFile") == D2
        assert frontmatter.get_field(note, "scheduled") == "2025-01-12"
        assert "**Source:** [[00 - Daily/2025-01-12]]" in note

        ctx.scheduler.unschedule_task(D1, 1)
        note = _read(ctx, note_path)
        assert frontmatter.get_field(note, "sourceFile") == D1
        assert frontmatter.get_field(note, "scheduled") == "2025-01-10"
        assert "**Source:** [[00 - Daily/2025-01-10]]" in note

    def test_no_note_no_error(self, ctx):
        result = ctx.scheduler.schedule_task(D1, 1, "2025-01-12")
        assert result.paths == [D2, D1]
