from datetime import date
from typing import Iterable, Optional

from dates import local_today
from models import Task, TaskFilter, TaskStats


def is_due_on(task: Task, day: date) -> bool:
    """True when the task has a due date on the given local calendar day."""
    if task.due_date is None:
        return False
    return task.due_date.astimezone().date() == day


def filter_tasks(
    tasks: Iterable[Task],
    mode: TaskFilter = TaskFilter.ALL,
    selected_label_id: Optional[str] = None,
    today: Optional[date] = None,
) -> list[Task]:
    """
    Select the visible subset of an already ordered task list.
    Trashed tasks never pass. A selected label restricts the list first and,
    for the all/general modes, is the whole selection.
    Input order is preserved.
    """
    visible = [task for task in tasks if not task.is_trashed]

    if selected_label_id:
        visible = [task for task in visible if task.label_id == selected_label_id]
        if mode in (TaskFilter.ALL, TaskFilter.GENERAL):
            return visible

    if mode == TaskFilter.PENDING:
        return [task for task in visible if not task.is_completed]
    if mode == TaskFilter.COMPLETED:
        return [task for task in visible if task.is_completed]
    if mode == TaskFilter.TODAY:
        day = today or local_today()
        return [task for task in visible if is_due_on(task, day)]
    return visible


def with_reminders(tasks: Iterable[Task]) -> list[Task]:
    return [task for task in tasks if not task.is_trashed and task.reminder_at is not None]


def trashed(tasks: Iterable[Task]) -> list[Task]:
    return [task for task in tasks if task.is_trashed]


def task_stats(tasks: Iterable[Task]) -> TaskStats:
    """Completion overview over non-trashed tasks."""
    visible = [task for task in tasks if not task.is_trashed]
    total = len(visible)
    completed = sum(1 for task in visible if task.is_completed)
    percentage = round(completed / total * 100) if total else 0
    return TaskStats(
        total=total,
        completed=completed,
        pending=total - completed,
        completion_percentage=percentage,
    )
