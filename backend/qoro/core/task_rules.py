"""Task Rules — completion timestamps, board visibility, recurrence and project progress.

Invariants:
    - completed_at is set iff status == done
    - Done tasks drop off the board 24h after completion (still counted in metrics)
    - A recurring task spawns exactly one next occurrence per transition into done
    - Project progress = round(done / total * 100), 0 for an empty project
"""

from datetime import datetime, timedelta
from typing import Iterable

from qoro.core.domain_types import RecurrenceFrequency, TaskStatus
from qoro.core.time_utils import add_months, ensure_utc


DONE_VISIBILITY_WINDOW = timedelta(hours=24)


def completion_timestamp(status: str, now: datetime) -> datetime | None:
    return now if status == TaskStatus.DONE else None


def is_visible_on_board(
    status: str, completed_at: datetime | None, now: datetime,
) -> bool:
    if status != TaskStatus.DONE or completed_at is None:
        return True
    return ensure_utc(completed_at) >= now - DONE_VISIBILITY_WINDOW


def next_due_date(
    due_date: datetime | None, recurrence: dict, now: datetime,
) -> datetime:
    """Due date of the next occurrence; anchored on `now` when the task had none."""
    anchor = ensure_utc(due_date) if due_date else now
    interval = int(recurrence.get("interval", 1))
    frequency = RecurrenceFrequency(recurrence["frequency"])
    if frequency is RecurrenceFrequency.DAILY:
        return anchor + timedelta(days=interval)
    if frequency is RecurrenceFrequency.WEEKLY:
        return anchor + timedelta(weeks=interval)
    return add_months(anchor, interval)


def should_spawn_recurrence(
    old_status: str, new_status: str, recurrence: dict | None,
) -> bool:
    return bool(recurrence) and new_status == TaskStatus.DONE and old_status != TaskStatus.DONE


def reset_subtasks(subtasks: list[dict] | None) -> list[dict]:
    """Subtasks carried into the next occurrence start unchecked."""
    return [dict(s, is_completed=False) for s in subtasks or []]


def project_progress(statuses: Iterable[str]) -> tuple[int, int, int]:
    """(task_count, completed_count, progress_percent)."""
    statuses = list(statuses)
    total = len(statuses)
    done = sum(1 for s in statuses if s == TaskStatus.DONE)
    progress = round(done / total * 100) if total else 0
    return total, done, progress


def status_metrics(statuses: Iterable[str]) -> dict[str, int]:
    """Board metrics over every task of the organization, archived included."""
    statuses = list(statuses)
    return {
        "total_tasks": len(statuses),
        "completed_tasks": sum(1 for s in statuses if s == TaskStatus.DONE),
        "in_progress_tasks": sum(1 for s in statuses if s == TaskStatus.IN_PROGRESS),
        "pending_tasks": sum(1 for s in statuses if s == TaskStatus.TODO),
    }
