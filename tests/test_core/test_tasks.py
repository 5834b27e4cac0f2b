"""Tests for task construction, transitions, filtering, and stats."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from teamtasks.core.tasks import (
    TaskValidationError,
    can_modify,
    compute_stats,
    edited,
    filter_tasks,
    format_ts,
    is_edited,
    new_task,
    next_stamp,
    parse_ts,
    to_millis,
    toggled,
    validate_task_text,
)

NOW = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


class TestTimestamps:
    def test_format_has_millis_and_z(self) -> None:
        moment = NOW.replace(microsecond=123456)
        assert format_ts(moment) == "2023-11-14T22:13:20.123Z"

    def test_format_converts_to_utc(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        assert format_ts(datetime(2024, 1, 1, 2, 0, tzinfo=plus_two)) == "2024-01-01T00:00:00.000Z"

    def test_parse_round_trip(self) -> None:
        assert parse_ts("2023-11-14T22:13:20.000Z") == NOW

    def test_parse_naive_is_utc(self) -> None:
        assert parse_ts("2023-11-14T22:13:20") == NOW

    def test_next_stamp_uses_now_when_clock_advanced(self) -> None:
        later = NOW + timedelta(seconds=1)
        assert next_stamp(format_ts(NOW), later) == format_ts(later)

    def test_next_stamp_bumps_when_clock_stalls(self) -> None:
        assert next_stamp(format_ts(NOW), NOW) == "2023-11-14T22:13:20.001Z"

    def test_next_stamp_bumps_when_clock_goes_back(self) -> None:
        earlier = NOW - timedelta(minutes=5)
        assert next_stamp(format_ts(NOW), earlier) == "2023-11-14T22:13:20.001Z"

    def test_next_stamp_without_previous(self) -> None:
        assert next_stamp(None, NOW) == format_ts(NOW)

    def test_next_stamp_ignores_garbage_previous(self) -> None:
        assert next_stamp("yesterday", NOW) == format_ts(NOW)

    def test_next_stamp_ignores_numeric_previous(self) -> None:
        assert next_stamp(1700000000000, NOW) == format_ts(NOW)  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", [1700000000000, None, ["2023-11-14"]])
    def test_parse_rejects_non_strings(self, value) -> None:
        with pytest.raises(ValueError, match="must be a string"):
            parse_ts(value)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestNewTask:
    def test_fields(self) -> None:
        task = new_task("alice", "  buy milk  ", NOW)
        assert task == {
            "id": to_millis(NOW),
            "author": "alice",
            "text": "buy milk",
            "completed": False,
            "createdAt": "2023-11-14T22:13:20.000Z",
            "updatedAt": "2023-11-14T22:13:20.000Z",
        }

    def test_never_edited(self) -> None:
        assert not is_edited(new_task("alice", "x", NOW))

    def test_same_millisecond_gets_distinct_ids(self) -> None:
        a = new_task("alice", "one", NOW)
        b = new_task("alice", "two", NOW)
        assert a["id"] != b["id"]

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_blank_text_rejected(self, text) -> None:
        with pytest.raises(TaskValidationError):
            new_task("alice", text, NOW)


class TestValidateTaskText:
    def test_strips(self) -> None:
        assert validate_task_text("  hi ") == "hi"

    def test_rejects_non_string(self) -> None:
        with pytest.raises(TaskValidationError):
            validate_task_text(42)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestToggled:
    def test_flips_and_stamps(self) -> None:
        task = new_task("alice", "x", NOW)
        later = NOW + timedelta(seconds=5)
        result = toggled(task, later)
        assert result["completed"] is True
        assert result["updatedAt"] == format_ts(later)
        assert result["createdAt"] == task["createdAt"]

    def test_does_not_mutate_input(self) -> None:
        task = new_task("alice", "x", NOW)
        toggled(task, NOW)
        assert task["completed"] is False

    def test_twice_returns_to_pending_with_increasing_stamps(self) -> None:
        task = new_task("alice", "x", NOW)
        once = toggled(task, NOW)
        twice = toggled(once, NOW)
        assert twice["completed"] is False
        assert task["updatedAt"] < once["updatedAt"] < twice["updatedAt"]

    def test_keeps_unknown_fields(self) -> None:
        task = {**new_task("alice", "x", NOW), "priority": "high"}
        assert toggled(task, NOW)["priority"] == "high"


class TestEdited:
    def test_replaces_text_and_marks_edited(self) -> None:
        task = new_task("alice", "x", NOW)
        result = edited(task, "  y  ", NOW + timedelta(seconds=1))
        assert result["text"] == "y"
        assert is_edited(result)

    def test_empty_text_rejected(self) -> None:
        with pytest.raises(TaskValidationError):
            edited(new_task("alice", "x", NOW), "   ", NOW)


class TestCanModify:
    def test_author_only(self) -> None:
        task = new_task("alice", "x", NOW)
        assert can_modify(task, "alice")
        assert not can_modify(task, "bob")

    def test_no_user(self) -> None:
        assert not can_modify(new_task("alice", "x", NOW), None)
        assert not can_modify({"author": ""}, "")


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample() -> list[dict]:
    return [
        {"id": 1, "author": "alice", "text": "Buy milk", "completed": False},
        {"id": 2, "author": "bob", "text": "Fix the bike", "completed": True},
        {"id": 3, "author": "Carol", "text": "call ALICE", "completed": False},
    ]


class TestFilterTasks:
    def test_empty_term_returns_all_in_order(self, sample) -> None:
        assert filter_tasks(sample, "") == sample

    def test_matches_author_or_text_case_insensitively(self, sample) -> None:
        assert [t["id"] for t in filter_tasks(sample, "ALIce")] == [1, 3]

    def test_matches_text_substring(self, sample) -> None:
        assert [t["id"] for t in filter_tasks(sample, "bike")] == [2]

    def test_no_match(self, sample) -> None:
        assert filter_tasks(sample, "zebra") == []

    def test_tolerates_missing_fields(self) -> None:
        assert filter_tasks([{"id": 1}], "x") == []

    def test_skips_entries_that_are_not_objects(self, sample) -> None:
        assert filter_tasks(["hello", *sample, 42], "") == sample
        assert [t["id"] for t in filter_tasks(["alice", *sample], "alice")] == [1, 3]

    def test_is_a_projection(self, sample) -> None:
        before = [dict(t) for t in sample]
        filter_tasks(sample, "milk")
        assert sample == before


class TestComputeStats:
    def test_counts(self, sample) -> None:
        assert compute_stats(sample, "alice") == {
            "total": 3,
            "completed": 1,
            "pending": 2,
            "mine": 1,
        }

    def test_skips_entries_that_are_not_objects(self, sample) -> None:
        assert compute_stats([*sample, "hello", None], "alice")["total"] == 3

    def test_empty(self) -> None:
        assert compute_stats([], "alice") == {"total": 0, "completed": 0, "pending": 0, "mine": 0}
