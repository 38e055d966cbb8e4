"""
Tests for store.py - snapshot publishing and lifecycle operations through the store.
"""
import threading

import pytest

import database
from errors import InvalidTransitionError, NotFoundError, StoreOperationError, TaskValidationError
from models import Priority, SubtaskInput, TaskCreate
from store import TaskStore, get_store, reset_stores


@pytest.fixture
def task_store(test_db):
    return TaskStore("user-1")


def new_task(task_store, **fields):
    fields.setdefault("title", "Task")
    return task_store.create(TaskCreate(**fields))


class TestSnapshot:

    def test_snapshot_loads_lazily(self, test_db):
        database.create_task_db("t1", "user-1", title="Existing")
        task_store = TaskStore("user-1")

        assert [t.id for t in task_store.snapshot] == ["t1"]

    def test_snapshot_is_immutable_tuple(self, task_store):
        new_task(task_store)
        assert isinstance(task_store.snapshot, tuple)

    def test_subscriber_gets_current_then_updates(self, task_store):
        received = []
        new_task(task_store, title="First")
        task_store.subscribe(received.append)
        new_task(task_store, title="Second")

        assert [len(snapshot) for snapshot in received] == [1, 2]
        assert received[-1] is task_store.snapshot

    def test_unsubscribe(self, task_store):
        received = []
        unsubscribe = task_store.subscribe(received.append)
        unsubscribe()
        new_task(task_store)

        assert len(received) == 1

    def test_old_snapshot_unchanged_after_write(self, task_store):
        task = new_task(task_store)
        before = task_store.snapshot
        task_store.toggle_complete(task.id)

        assert before[0].is_completed is False
        assert task_store.snapshot[0].is_completed is True

    def test_failed_write_keeps_previous_snapshot(self, task_store, monkeypatch):
        task = new_task(task_store)
        received = []
        task_store.subscribe(received.append)
        before = task_store.snapshot

        def broken_update(*args, **kwargs):
            raise StoreOperationError("Task database error: disk I/O error")

        monkeypatch.setattr(database, "update_task_db", broken_update)
        with pytest.raises(StoreOperationError):
            task_store.toggle_complete(task.id)

        assert task_store.snapshot is before
        assert len(received) == 1

    def test_slow_refresh_never_replaces_newer_snapshot(self, task_store, monkeypatch):
        first = new_task(task_store, title="first")
        read_done = threading.Event()
        release = threading.Event()
        real_get_all = database.get_all_tasks

        def get_all_then_wait(owner_id):
            tasks = real_get_all(owner_id)
            if threading.current_thread().name == "slow-refresh":
                read_done.set()
                release.wait(timeout=5)
            return tasks

        monkeypatch.setattr(database, "get_all_tasks", get_all_then_wait)

        slow = threading.Thread(target=task_store.refresh, name="slow-refresh")
        slow.start()
        assert read_done.wait(timeout=5)

        created = []
        writer = threading.Thread(target=lambda: created.append(new_task(task_store, title="second")))
        writer.start()
        # The writer's refresh has to wait for the slow one.
        writer.join(timeout=0.5)
        release.set()
        slow.join(timeout=5)
        writer.join(timeout=5)

        assert len(created) == 1
        assert {t.id for t in task_store.snapshot} == {first.id, created[0].id}

    def test_refresh_picks_up_writes_made_elsewhere(self, task_store):
        new_task(task_store, title="Mine")
        database.create_task_db("outside", "user-1", title="Written by another process")

        assert "outside" not in {t.id for t in task_store.snapshot}
        task_store.refresh()
        assert "outside" in {t.id for t in task_store.snapshot}

    def test_registry_returns_same_store(self, test_db):
        assert get_store("user-1") is get_store("user-1")
        assert get_store("user-1") is not get_store("user-2")
        reset_stores()


class TestCreateAndEdit:

    def test_create_assigns_subtask_ids(self, task_store):
        task = new_task(task_store, subtasks=[SubtaskInput(text="Outline"), SubtaskInput(id="keep", text="Draft")])

        assert len(task.subtasks) == 2
        assert task.subtasks[0].id
        assert task.subtasks[1].id == "keep"

    def test_create_with_unknown_label(self, task_store):
        with pytest.raises(NotFoundError):
            new_task(task_store, label_id="missing")

    def test_edit_must_keep_text(self, task_store):
        task = new_task(task_store, title="Only title")
        with pytest.raises(TaskValidationError):
            task_store.update(task.id, {"title": "   "})

    def test_edit_moving_text_to_description(self, task_store):
        task = new_task(task_store, title="Title")
        updated = task_store.update(task.id, {"title": "", "description": "Now a description"})

        assert updated.title == ""
        assert updated.description == "Now a description"

    def test_edit_ignores_lifecycle_fields(self, task_store):
        task = new_task(task_store)
        updated = task_store.update(task.id, {"is_completed": True, "is_trashed": True, "priority": Priority.HIGH})

        assert updated.is_completed is False
        assert updated.is_trashed is False
        assert updated.priority == Priority.HIGH

    def test_edit_null_priority_ignored(self, task_store):
        task = new_task(task_store, priority=Priority.LOW)
        updated = task_store.update(task.id, {"priority": None})
        assert updated.priority == Priority.LOW

    def test_edit_missing_task(self, task_store):
        with pytest.raises(NotFoundError):
            task_store.update("missing", {"title": "x"})


class TestLifecycleThroughStore:

    def test_toggle_complete_twice(self, task_store):
        task = new_task(task_store)
        task_store.toggle_complete(task.id)
        again = task_store.toggle_complete(task.id)

        assert again.is_completed is False

    def test_trash_then_restore_leaves_other_fields(self, task_store):
        task = new_task(task_store, title="Lab report", priority=Priority.URGENT)
        trashed = task_store.trash(task.id)
        assert trashed.is_trashed is True
        assert trashed.trashed_at is not None

        restored = task_store.restore(task.id)
        assert restored == task

    def test_restore_completed_keeps_completion(self, task_store):
        task = new_task(task_store)
        task_store.toggle_complete(task.id)
        task_store.trash(task.id)
        restored = task_store.restore(task.id)

        assert restored.is_trashed is False
        assert restored.is_completed is True
        assert restored.trashed_at is None

    def test_purge_requires_trash(self, task_store):
        task = new_task(task_store)
        with pytest.raises(InvalidTransitionError):
            task_store.purge(task.id)

    def test_purge(self, task_store):
        task = new_task(task_store)
        task_store.trash(task.id)
        task_store.purge(task.id)

        assert task_store.find(task.id) is None
        assert database.get_task_db(task.id, "user-1") is None

    def test_empty_trash_removes_all_trashed(self, task_store):
        trashed_ids = []
        for i in range(3):
            task = new_task(task_store, title=f"Old {i}")
            task_store.trash(task.id)
            trashed_ids.append(task.id)
        keep = new_task(task_store, title="Keep")

        deleted = task_store.empty_trash()

        assert sorted(deleted) == sorted(trashed_ids)
        assert [t.id for t in task_store.snapshot] == [keep.id]
        for task_id in trashed_ids:
            with pytest.raises(NotFoundError):
                task_store.get(task_id)

    def test_toggle_subtask(self, task_store):
        task = new_task(task_store, subtasks=[SubtaskInput(id="s1", text="Step")])
        updated = task_store.toggle_subtask(task.id, "s1")

        assert updated.subtasks[0].is_completed is True
        assert updated.is_completed is False
