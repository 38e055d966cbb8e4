"""
Task lifecycle transitions.

    Active <-> Completed         toggle_complete
    Active/Completed -> Trashed  trash
    Trashed -> Active/Completed  restore (completion flag is kept while trashed)
    Trashed -> Purged            purge / empty trash

Each transition checks the source state and returns only the field changes to
write. Nothing here touches the store; callers forward the changes as a single
write and wait for the refreshed snapshot.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from dates import now
from errors import InvalidTransitionError, NotFoundError
from models import Subtask, Task


class TaskState(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    TRASHED = "trashed"
    PURGED = "purged"  # never stored; the record is gone


def state_of(task: Task) -> TaskState:
    if task.is_trashed:
        return TaskState.TRASHED
    if task.is_completed:
        return TaskState.COMPLETED
    return TaskState.ACTIVE


def toggle_complete(task: Task) -> dict:
    if task.is_trashed:
        raise InvalidTransitionError("Restore the task from the trash before changing its status")
    return {"is_completed": not task.is_completed}


def trash(task: Task, at: Optional[datetime] = None) -> dict:
    if task.is_trashed:
        raise InvalidTransitionError("Task is already in the trash")
    return {"is_trashed": True, "trashed_at": at or now()}


def restore(task: Task) -> dict:
    if not task.is_trashed:
        raise InvalidTransitionError("Only tasks in the trash can be restored")
    return {"is_trashed": False, "trashed_at": None}


def check_purge(task: Task) -> None:
    """Permanent deletion is only reachable from the trash."""
    if not task.is_trashed:
        raise InvalidTransitionError("Move the task to the trash before deleting it permanently")


def toggle_subtask(task: Task, subtask_id: str) -> dict:
    """Flip one subtask's completion. The parent's own flags are left alone."""
    if not any(subtask.id == subtask_id for subtask in task.subtasks):
        raise NotFoundError("Subtask not found")
    subtasks = tuple(
        Subtask(id=subtask.id, text=subtask.text, is_completed=not subtask.is_completed)
        if subtask.id == subtask_id else subtask
        for subtask in task.subtasks
    )
    return {"subtasks": subtasks}


def apply(task: Task, changes: dict) -> Task:
    """Preview a transition locally. The store never commits this copy."""
    return task.model_copy(update=changes)
