"""
Per-user task store.

TaskStore keeps the user's tasks as an immutable tuple. The only code that
replaces it is refresh(), which reloads from the database after every
confirmed write and hands the new tuple to subscribers. Refreshes run one at a
time, read included, so a snapshot is never replaced by an older read. Readers
always see a whole snapshot; a failed write raises before refresh() runs, so
the previous snapshot stays in place.

Stores live in a per-process registry and only reload after writes made
through them. The app is meant to run as a single worker process; writes made
by another process show up after that user's next write or an explicit
refresh().
"""
import logging
import threading
import uuid
from typing import Callable, Iterable, Optional

import database
import lifecycle
from errors import NotFoundError, TaskValidationError
from models import Subtask, SubtaskInput, Task, TaskCreate

logger = logging.getLogger(__name__)

Snapshot = tuple[Task, ...]
Listener = Callable[[Snapshot], None]


def build_subtasks(items: Iterable[SubtaskInput]) -> tuple[Subtask, ...]:
    return tuple(
        Subtask(id=item.id or str(uuid.uuid4()), text=item.text, is_completed=item.is_completed)
        for item in items
    )


class TaskStore:
    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        self._snapshot: Snapshot = ()
        self._loaded = False
        self._listeners: list[Listener] = []
        # Held across read, swap and notify; reentrant so listeners may refresh.
        self._lock = threading.RLock()

    # ---- snapshot ----

    @property
    def snapshot(self) -> Snapshot:
        if not self._loaded:
            return self.refresh()
        return self._snapshot

    def refresh(self) -> Snapshot:
        with self._lock:
            tasks = tuple(database.get_all_tasks(self.owner_id))
            self._snapshot = tasks
            self._loaded = True
            for listener in list(self._listeners):
                try:
                    listener(tasks)
                except Exception:
                    logger.exception("Task snapshot listener failed for user %s", self.owner_id)
            return tasks

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; it gets the current snapshot right away. Returns an unsubscribe function."""
        with self._lock:
            current = self.snapshot
            self._listeners.append(listener)
            listener(current)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def get(self, task_id: str) -> Task:
        for task in self.snapshot:
            if task.id == task_id:
                return task
        raise NotFoundError("Task not found")

    def find(self, task_id: str) -> Optional[Task]:
        try:
            return self.get(task_id)
        except NotFoundError:
            return None

    # ---- mutations ----

    def _check_label(self, label_id: Optional[str]) -> None:
        if label_id and database.get_label_db(label_id, self.owner_id) is None:
            raise NotFoundError("Label not found")

    def _write(self, task_id: str, changes: dict) -> Task:
        if database.update_task_db(task_id, self.owner_id, **changes) is None:
            raise NotFoundError("Task not found")
        self.refresh()
        return self.get(task_id)

    def create(self, data: TaskCreate) -> Task:
        self._check_label(data.label_id)
        task_id = str(uuid.uuid4())
        database.create_task_db(
            task_id,
            self.owner_id,
            title=data.title.strip(),
            description=data.description.strip(),
            due_date=data.due_date,
            category=data.category,
            priority=data.priority,
            reminder_at=data.reminder_at,
            subtasks=build_subtasks(data.subtasks),
            label_id=data.label_id,
        )
        self.refresh()
        return self.get(task_id)

    def update(self, task_id: str, fields: dict) -> Task:
        """
        Edit task fields. Lifecycle flags and created_at are not editable here.
        The edited task must still have a title or a description.
        """
        task = self.get(task_id)
        changes = {key: value for key, value in fields.items() if key in database.TASK_COLUMNS}
        for flag in ("is_completed", "is_trashed", "trashed_at"):
            changes.pop(flag, None)
        for key in ("category", "priority"):
            if key in changes and changes[key] is None:
                del changes[key]

        for key in ("title", "description"):
            if key in changes:
                changes[key] = (changes[key] or "").strip()
        title = changes.get("title", task.title)
        description = changes.get("description", task.description)
        if not (title or description):
            raise TaskValidationError("A task needs a title or a description")

        if "subtasks" in changes:
            changes["subtasks"] = build_subtasks(
                item if isinstance(item, SubtaskInput) else SubtaskInput(**item)
                for item in changes["subtasks"] or ()
            )
        if changes.get("label_id"):
            self._check_label(changes["label_id"])
        return self._write(task_id, changes)

    def toggle_complete(self, task_id: str) -> Task:
        return self._write(task_id, lifecycle.toggle_complete(self.get(task_id)))

    def toggle_subtask(self, task_id: str, subtask_id: str) -> Task:
        return self._write(task_id, lifecycle.toggle_subtask(self.get(task_id), subtask_id))

    def trash(self, task_id: str) -> Task:
        return self._write(task_id, lifecycle.trash(self.get(task_id)))

    def restore(self, task_id: str) -> Task:
        return self._write(task_id, lifecycle.restore(self.get(task_id)))

    def purge(self, task_id: str) -> None:
        lifecycle.check_purge(self.get(task_id))
        if not database.delete_task_db(task_id, self.owner_id):
            raise NotFoundError("Task not found")
        self.refresh()

    def empty_trash(self) -> list[str]:
        ids = database.purge_trashed_tasks_db(self.owner_id)
        self.refresh()
        return ids


_stores: dict[str, TaskStore] = {}
_stores_lock = threading.Lock()


def get_store(owner_id: str) -> TaskStore:
    """One store per user for the lifetime of the process."""
    with _stores_lock:
        store = _stores.get(owner_id)
        if store is None:
            store = _stores[owner_id] = TaskStore(owner_id)
        return store


def reset_stores() -> None:
    with _stores_lock:
        _stores.clear()
