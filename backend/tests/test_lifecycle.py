"""
Tests for lifecycle.py - state transitions as pure functions.
"""
from datetime import datetime

import pytest

import lifecycle
from errors import InvalidTransitionError, NotFoundError
from lifecycle import TaskState
from models import Priority, Subtask

STAMP = datetime(2026, 3, 5, 18, 30).astimezone()


class TestStates:

    def test_state_of(self, make_task):
        assert lifecycle.state_of(make_task()) == TaskState.ACTIVE
        assert lifecycle.state_of(make_task(is_completed=True)) == TaskState.COMPLETED
        assert lifecycle.state_of(make_task(is_completed=True, is_trashed=True)) == TaskState.TRASHED


class TestToggleComplete:

    def test_flips_only_completion(self, make_task):
        task = make_task()
        assert lifecycle.toggle_complete(task) == {"is_completed": True}

    def test_twice_is_identity(self, make_task):
        task = make_task(priority=Priority.HIGH)
        once = lifecycle.apply(task, lifecycle.toggle_complete(task))
        twice = lifecycle.apply(once, lifecycle.toggle_complete(once))

        assert once.is_completed is True
        assert twice == task

    def test_rejected_while_trashed(self, make_task):
        with pytest.raises(InvalidTransitionError):
            lifecycle.toggle_complete(make_task(is_trashed=True))


class TestTrashAndRestore:

    def test_trash_stamps_time_and_keeps_completion(self, make_task):
        task = make_task(is_completed=True)
        trashed = lifecycle.apply(task, lifecycle.trash(task, at=STAMP))

        assert trashed.is_trashed is True
        assert trashed.trashed_at == STAMP
        assert trashed.is_completed is True

    def test_trash_defaults_to_now(self, make_task):
        changes = lifecycle.trash(make_task())
        assert changes["trashed_at"] is not None
        assert changes["trashed_at"].tzinfo is not None

    def test_trash_twice_rejected(self, make_task):
        with pytest.raises(InvalidTransitionError):
            lifecycle.trash(make_task(is_trashed=True))

    def test_restore_clears_trash_fields_only(self, make_task):
        task = make_task(is_completed=True, is_trashed=True, trashed_at=STAMP)
        assert lifecycle.restore(task) == {"is_trashed": False, "trashed_at": None}

    def test_trash_then_restore_round_trip(self, make_task):
        task = make_task(priority=Priority.URGENT, label_id="lbl")
        trashed = lifecycle.apply(task, lifecycle.trash(task, at=STAMP))
        restored = lifecycle.apply(trashed, lifecycle.restore(trashed))

        assert restored == task

    def test_restore_completed_task_stays_completed(self, make_task):
        task = make_task(is_completed=True, is_trashed=True, trashed_at=STAMP)
        restored = lifecycle.apply(task, lifecycle.restore(task))

        assert restored.is_trashed is False
        assert restored.is_completed is True
        assert restored.trashed_at is None

    def test_restore_active_rejected(self, make_task):
        with pytest.raises(InvalidTransitionError):
            lifecycle.restore(make_task())


class TestPurge:

    def test_purge_requires_trash(self, make_task):
        with pytest.raises(InvalidTransitionError):
            lifecycle.check_purge(make_task())

    def test_purge_trashed_allowed(self, make_task):
        lifecycle.check_purge(make_task(is_trashed=True))


class TestToggleSubtask:

    def test_toggles_one_subtask(self, make_task):
        task = make_task(subtasks=(
            Subtask(id="s1", text="Outline"),
            Subtask(id="s2", text="Draft", is_completed=True),
        ))
        changes = lifecycle.toggle_subtask(task, "s1")

        assert set(changes) == {"subtasks"}
        assert [s.is_completed for s in changes["subtasks"]] == [True, True]
        assert [s.id for s in changes["subtasks"]] == ["s1", "s2"]

    def test_parent_flags_untouched(self, make_task):
        task = make_task(subtasks=(Subtask(id="s1", text="Only step"),))
        updated = lifecycle.apply(task, lifecycle.toggle_subtask(task, "s1"))

        assert updated.is_completed is False
        assert updated.is_trashed is False

    def test_unknown_subtask(self, make_task):
        with pytest.raises(NotFoundError):
            lifecycle.toggle_subtask(make_task(), "missing")
