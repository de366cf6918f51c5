"""Task Rules — tests for completion, board visibility, recurrence and project progress.

Tests cover:
    - completed_at set only for done
    - Done tasks hidden 24h after completion
    - Daily / weekly / monthly next due dates (month-end clamping)
    - Recurrence spawns only on the transition into done
    - Project progress and board metrics
"""

from datetime import datetime, timedelta, timezone

from qoro.core.task_rules import (
    completion_timestamp, is_visible_on_board, next_due_date, project_progress,
    reset_subtasks, should_spawn_recurrence, status_metrics,
)

NOW = datetime(2025, 1, 31, 9, 0, tzinfo=timezone.utc)


def test_completion_timestamp():
    assert completion_timestamp("done", NOW) == NOW
    assert completion_timestamp("in_progress", NOW) is None


def test_open_tasks_always_visible():
    assert is_visible_on_board("todo", None, NOW)


def test_recently_done_visible():
    assert is_visible_on_board("done", NOW - timedelta(hours=23), NOW)


def test_done_over_24h_hidden():
    assert not is_visible_on_board("done", NOW - timedelta(hours=25), NOW)


def test_done_naive_timestamp_treated_as_utc():
    naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
    assert is_visible_on_board("done", naive, NOW)


def test_next_due_date_daily_and_weekly():
    due = datetime(2025, 1, 10, tzinfo=timezone.utc)
    assert next_due_date(due, {"frequency": "daily"}, NOW) == due + timedelta(days=1)
    assert next_due_date(
        due, {"frequency": "weekly", "interval": 2}, NOW,
    ) == due + timedelta(weeks=2)


def test_next_due_date_monthly_clamps_day():
    due = datetime(2025, 1, 31, tzinfo=timezone.utc)
    assert next_due_date(due, {"frequency": "monthly"}, NOW) == datetime(
        2025, 2, 28, tzinfo=timezone.utc,
    )


def test_next_due_date_anchors_on_now_without_due_date():
    assert next_due_date(None, {"frequency": "daily"}, NOW) == NOW + timedelta(days=1)


def test_should_spawn_recurrence():
    rec = {"frequency": "weekly"}
    assert should_spawn_recurrence("in_progress", "done", rec)
    assert not should_spawn_recurrence("done", "done", rec)
    assert not should_spawn_recurrence("todo", "review", rec)
    assert not should_spawn_recurrence("todo", "done", None)


def test_reset_subtasks():
    subtasks = [{"id": "1", "title": "a", "is_completed": True}]
    assert reset_subtasks(subtasks) == [{"id": "1", "title": "a", "is_completed": False}]
    assert subtasks[0]["is_completed"] is True
    assert reset_subtasks(None) == []


def test_project_progress():
    assert project_progress(["done", "todo", "done", "review"]) == (4, 2, 50)
    assert project_progress(["done", "todo", "todo"]) == (3, 1, 33)
    assert project_progress([]) == (0, 0, 0)


def test_status_metrics():
    assert status_metrics(["todo", "in_progress", "done", "done", "review"]) == {
        "total_tasks": 5,
        "completed_tasks": 2,
        "in_progress_tasks": 1,
        "pending_tasks": 1,
    }
