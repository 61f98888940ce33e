"""Tests for the task/user assignment synchronizer."""

import pytest

from taskroster.engine.assignment import normalize_id_array
from taskroster.errors import BadRequest

ID_A = "0b8e6f55-3f7c-4d4c-8f43-2a6c9e1d7b01"
ID_B = "6a1d2c3e-4b5f-4a6b-9c7d-8e9f0a1b2c3d"


class TestNormalizeIdArray:
    def test_dedupes_and_drops_blanks_in_order(self):
        assert normalize_id_array([ID_A, ID_A, "", ID_B], "pendingTasks") == [ID_A, ID_B]

    def test_scalar(self):
        assert normalize_id_array(ID_A, "pendingTasks") == [ID_A]

    def test_none_and_nulls(self):
        assert normalize_id_array(None, "pendingTasks") == []
        assert normalize_id_array([None, "", None], "pendingTasks") == []

    def test_invalid_anywhere_fails_whole_call(self):
        with pytest.raises(BadRequest) as exc_info:
            normalize_id_array([ID_A, "nope", ID_B], "pendingTasks")
        assert exc_info.value.message == 'Invalid task id in "pendingTasks" array'

    def test_non_string_values_are_stringified_then_validated(self):
        with pytest.raises(BadRequest):
            normalize_id_array([123], "pendingTasks")


def _save_assignment(synchronizer, task_repository, task, owner, completed=None):
    """Apply a task write the way the task endpoints do."""
    previous_user_id = task.assigned_user
    if completed is not None:
        task.completed = completed
    if owner:
        synchronizer.assign_task(task, owner)
    else:
        synchronizer.unassign_task(task)
    saved = task_repository.update(task)
    synchronizer.sync_task_owner(saved, previous_user_id)
    return saved


class TestPrimitives:
    def test_attach_and_detach_are_idempotent(self, synchronizer, make_user, make_task, user_repository):
        user = make_user()
        task = make_task()

        synchronizer.attach_task(task.id, user.id)
        synchronizer.attach_task(task.id, user.id)
        assert user_repository.get(user.id).pending_tasks == [task.id]

        synchronizer.detach_task(task.id, user.id)
        synchronizer.detach_task(task.id, user.id)
        assert user_repository.get(user.id).pending_tasks == []

    def test_empty_user_is_a_noop(self, synchronizer, make_task, user_repository):
        task = make_task()
        synchronizer.attach_task(task.id, "")
        synchronizer.detach_task(task.id, None)
        assert user_repository.count() == 0

    def test_assign_task_detaches_from_other_owner(self, synchronizer, make_user, make_task, user_repository):
        alice = make_user(name="Alice")
        bob = make_user(name="Bob")
        task = make_task()
        synchronizer.attach_task(task.id, alice.id)
        task.assigned_user, task.assigned_user_name = alice.id, alice.name

        synchronizer.assign_task(task, bob)

        assert task.assigned_user == bob.id
        assert task.assigned_user_name == "Bob"
        assert user_repository.get(alice.id).pending_tasks == []
        # assign_task does not attach; that is sync_task_owner's job
        assert user_repository.get(bob.id).pending_tasks == []

    def test_unassign_task(self, synchronizer, make_user, make_task, user_repository):
        alice = make_user(name="Alice")
        task = make_task()
        synchronizer.attach_task(task.id, alice.id)
        task.assigned_user, task.assigned_user_name = alice.id, alice.name

        synchronizer.unassign_task(task)

        assert task.assigned_user == ""
        assert task.assigned_user_name == "unassigned"
        assert user_repository.get(alice.id).pending_tasks == []


class TestTaskDrivenSync:
    def test_assigning_attaches(self, synchronizer, task_repository, make_user, make_task, user_repository,
                                assert_consistent):
        alice = make_user(name="Alice")
        task = make_task()

        saved = _save_assignment(synchronizer, task_repository, task, alice)

        assert saved.assigned_user == alice.id
        assert saved.assigned_user_name == "Alice"
        assert user_repository.get(alice.id).pending_tasks == [task.id]
        assert_consistent()

    def test_assigning_completed_task_does_not_attach(self, synchronizer, task_repository, make_user, make_task,
                                                      user_repository, assert_consistent):
        alice = make_user(name="Alice")
        task = make_task(completed=True)

        saved = _save_assignment(synchronizer, task_repository, task, alice, completed=True)

        assert saved.assigned_user == alice.id
        assert user_repository.get(alice.id).pending_tasks == []
        assert_consistent()

    def test_reassign_moves_only_that_task(self, synchronizer, task_repository, make_user, make_task,
                                           user_repository, assert_consistent):
        alice = make_user(name="Alice")
        bob = make_user(name="Bob")
        moving = make_task(name="Moving")
        alice_other = make_task(name="Alice other")
        bob_other = make_task(name="Bob other")
        _save_assignment(synchronizer, task_repository, moving, alice)
        _save_assignment(synchronizer, task_repository, alice_other, alice)
        _save_assignment(synchronizer, task_repository, bob_other, bob)

        moving = task_repository.get(moving.id)
        _save_assignment(synchronizer, task_repository, moving, user_repository.get(bob.id))

        assert user_repository.get(alice.id).pending_tasks == [alice_other.id]
        assert user_repository.get(bob.id).pending_tasks == [bob_other.id, moving.id]
        assert task_repository.get(moving.id).assigned_user_name == "Bob"
        assert_consistent()

    def test_completing_detaches_but_keeps_owner(self, synchronizer, task_repository, make_user, make_task,
                                                 user_repository, assert_consistent):
        alice = make_user(name="Alice")
        task = make_task()
        _save_assignment(synchronizer, task_repository, task, alice)

        task = task_repository.get(task.id)
        saved = _save_assignment(synchronizer, task_repository, task, alice, completed=True)

        assert saved.completed is True
        assert saved.assigned_user == alice.id
        assert user_repository.get(alice.id).pending_tasks == []
        assert_consistent()

    def test_reopening_reattaches(self, synchronizer, task_repository, make_user, make_task, user_repository,
                                  assert_consistent):
        alice = make_user(name="Alice")
        task = make_task(completed=True)
        _save_assignment(synchronizer, task_repository, task, alice, completed=True)

        task = task_repository.get(task.id)
        _save_assignment(synchronizer, task_repository, task, alice, completed=False)

        assert user_repository.get(alice.id).pending_tasks == [task.id]
        assert_consistent()

    def test_unassigning_detaches(self, synchronizer, task_repository, make_user, make_task, user_repository,
                                  assert_consistent):
        alice = make_user(name="Alice")
        task = make_task()
        _save_assignment(synchronizer, task_repository, task, alice)

        task = task_repository.get(task.id)
        saved = _save_assignment(synchronizer, task_repository, task, None)

        assert saved.assigned_user == ""
        assert saved.assigned_user_name == "unassigned"
        assert user_repository.get(alice.id).pending_tasks == []
        assert_consistent()

    def test_release_task(self, synchronizer, task_repository, make_user, make_task, user_repository):
        alice = make_user(name="Alice")
        task = make_task()
        _save_assignment(synchronizer, task_repository, task, alice)

        task_repository.delete(task.id)
        synchronizer.release_task(task.id, alice.id)

        assert user_repository.get(alice.id).pending_tasks == []


class TestUserDrivenSync:
    def test_new_user_claims_tasks(self, synchronizer, task_repository, make_user, make_task, user_repository,
                                   assert_consistent):
        first = make_task(name="First")
        done = make_task(name="Done", completed=True)
        user = make_user(name="Dana", pending_tasks=[first.id, done.id])

        synchronizer.sync_user_pending_tasks(user, [])

        for task_id in (first.id, done.id):
            task = task_repository.get(task_id)
            assert task.assigned_user == user.id
            assert task.assigned_user_name == "Dana"
            assert task.completed is False
        assert_consistent()

    def test_dropped_task_is_unassigned_not_reassigned(self, synchronizer, task_repository, make_user, make_task,
                                                       user_repository, assert_consistent):
        keep = make_task(name="Keep")
        drop = make_task(name="Drop")
        user = make_user(name="Eve", pending_tasks=[keep.id, drop.id])
        synchronizer.sync_user_pending_tasks(user, [])

        previous = list(user.pending_tasks)
        user.pending_tasks = [keep.id]
        updated = user_repository.update(user)
        synchronizer.sync_user_pending_tasks(updated, previous)

        dropped = task_repository.get(drop.id)
        assert dropped.assigned_user == ""
        assert dropped.assigned_user_name == "unassigned"
        assert task_repository.get(keep.id).assigned_user == user.id
        assert user_repository.find({"pendingTasks": drop.id}) == []
        assert_consistent()

    def test_stale_removal_leaves_other_owner_alone(self, synchronizer, task_repository, make_user, make_task,
                                                    user_repository, assert_consistent):
        task = make_task()
        eve = make_user(name="Eve", pending_tasks=[task.id])
        synchronizer.sync_user_pending_tasks(eve, [])
        frank = make_user(name="Frank")
        _save_assignment(synchronizer, task_repository, task_repository.get(task.id), frank)

        eve = user_repository.get(eve.id)
        assert eve.pending_tasks == []
        synchronizer.sync_user_pending_tasks(eve, [task.id])

        moved = task_repository.get(task.id)
        assert moved.assigned_user == frank.id
        assert moved.assigned_user_name == "Frank"
        assert_consistent()

    def test_claiming_task_from_another_user(self, synchronizer, task_repository, make_user, make_task,
                                             user_repository, assert_consistent):
        task = make_task()
        grace = make_user(name="Grace")
        _save_assignment(synchronizer, task_repository, task, grace)

        heidi = make_user(name="Heidi", pending_tasks=[task.id])
        synchronizer.sync_user_pending_tasks(heidi, [])

        assert task_repository.get(task.id).assigned_user == heidi.id
        assert user_repository.get(grace.id).pending_tasks == []
        assert user_repository.get(heidi.id).pending_tasks == [task.id]
        assert_consistent()

    def test_rename_refreshes_cached_names(self, synchronizer, task_repository, make_user, make_task,
                                           user_repository):
        task = make_task()
        user = make_user(name="Ivan", pending_tasks=[task.id])
        synchronizer.sync_user_pending_tasks(user, [])

        previous = list(user.pending_tasks)
        user.name = "Ivan the Great"
        updated = user_repository.update(user)
        synchronizer.sync_user_pending_tasks(updated, previous)

        assert task_repository.get(task.id).assigned_user_name == "Ivan the Great"

    def test_release_user_tasks(self, synchronizer, task_repository, make_user, make_task, user_repository):
        user = make_user(name="Judy")
        first = make_task(name="First")
        second = make_task(name="Second")
        _save_assignment(synchronizer, task_repository, first, user)
        _save_assignment(synchronizer, task_repository, second, user)

        assert synchronizer.release_user_tasks(user.id) == 2
        user_repository.delete(user.id)

        for task_id in (first.id, second.id):
            task = task_repository.get(task_id)
            assert task.assigned_user == ""
            assert task.assigned_user_name == "unassigned"

    def test_ensure_tasks_exist(self, synchronizer, make_task):
        task = make_task()
        assert [t.id for t in synchronizer.ensure_tasks_exist([task.id])] == [task.id]
        assert synchronizer.ensure_tasks_exist([]) == []

        with pytest.raises(BadRequest) as exc_info:
            synchronizer.ensure_tasks_exist([task.id, ID_A])
        assert exc_info.value.message == "One or more tasks in pendingTasks do not exist"
