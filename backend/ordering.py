"""
Display ordering for task lists.

All orderings are pure functions of the task fields and rely on sorted() being
stable, so tasks whose keys tie keep their input order.
"""
from datetime import datetime
from typing import Iterable, Optional

from models import Task, priority_rank

# Absent dates sort after every real one.
_NO_DATE = float("inf")


def _timestamp(value: Optional[datetime]) -> float:
    return value.timestamp() if value is not None else _NO_DATE


def _priority_key(task: Task) -> int:
    # Priority only separates incomplete tasks.
    return priority_rank(task.priority) if not task.is_completed else 0


def task_sort_key(task: Task) -> tuple:
    return (
        task.is_completed,
        _priority_key(task),
        _timestamp(task.due_date),
        task.created_at.timestamp(),
    )


def reminder_sort_key(task: Task) -> tuple:
    return (
        task.is_completed,
        _timestamp(task.reminder_at),
        priority_rank(task.priority),
        _timestamp(task.due_date),
        task.created_at.timestamp(),
    )


def sort_tasks(tasks: Iterable[Task]) -> list[Task]:
    """
    Main list order:
    1. incomplete before completed
    2. priority, Urgent first (incomplete tasks only)
    3. due date, earliest first, tasks without one last
    4. creation time, oldest first
    """
    return sorted(tasks, key=task_sort_key)


def sort_reminders(tasks: Iterable[Task]) -> list[Task]:
    """
    Reminders view: incomplete first, then reminder time, then priority (for
    completed tasks too), due date and creation time.
    """
    return sorted(tasks, key=reminder_sort_key)


def sort_trash(tasks: Iterable[Task]) -> list[Task]:
    """Trash view: most recently trashed first."""
    return sorted(tasks, key=lambda task: task.trashed_at.timestamp() if task.trashed_at else 0.0, reverse=True)
