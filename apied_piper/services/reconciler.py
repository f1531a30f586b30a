# File: apied_piper/services/reconciler.py

"""
Assignment reconciler.

A task records one owner (``Task.assigned_user``) and a user records the
tasks still open for them (``User.pending_tasks``). Both sides are
denormalized copies of the same relationship, so after any write to one
side the other side has to be patched to match:

  - every id in ``user.pending_tasks`` points at a task assigned to that
    user and not completed
  - ``task.assigned_user_name`` is the owner's current name, or
    "unassigned" when ``task.assigned_user`` is ""

The reconciler issues its corrective writes one after another through the
two collections and never commits. If a later write fails the earlier
ones stay applied unless the caller's transaction is rolled back; the
services do roll back, a store without transactions would not.
"""

import logging
from typing import Iterable, List, Sequence

from apied_piper.core.errors import MissingReferenceError
from apied_piper.models.task import UNASSIGNED_NAME, Task
from apied_piper.models.user import User
from apied_piper.store.collection import Collection

logger = logging.getLogger(__name__)


class AssignmentReconciler:
    def __init__(self, users: Collection, tasks: Collection):
        self.users = users
        self.tasks = tasks

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def ensure_tasks_exist(self, task_ids: Sequence[str]) -> List[Task]:
        """
        Load every task in ``task_ids`` or fail listing the missing ones.

        The loaded tasks are handed back so reconcile_user_write does not
        have to read them again.
        """
        if not task_ids:
            return []

        tasks = self.tasks.find({"id": {"$in": list(task_ids)}})
        found = {task.id for task in tasks}
        missing = [task_id for task_id in task_ids if task_id not in found]
        if missing:
            raise MissingReferenceError(missing)
        return tasks

    # ------------------------------------------------------------------
    # User side changed
    # ------------------------------------------------------------------
    def reconcile_user_write(
        self,
        user: User,
        new_pending_ids: Iterable[str],
        previous_pending_ids: Iterable[str] = (),
        preloaded_tasks: Iterable[Task] = (),
    ) -> None:
        """
        Point every task in ``new_pending_ids`` at ``user`` and release the
        ones dropped since ``previous_pending_ids``.

        ``new_pending_ids`` must already have passed ensure_tasks_exist.
        Tasks that stay in the set are re-applied as well, so running this
        twice with the same ids changes nothing the second time.
        """
        user_id = user.id
        new_ids = list(dict.fromkeys(new_pending_ids))
        new_set = set(new_ids)
        removed = [
            task_id
            for task_id in dict.fromkeys(previous_pending_ids)
            if task_id not in new_set
        ]

        if removed:
            # only tasks this user still owns; a stolen task stays stolen
            for task in self.tasks.find({"id": {"$in": removed}, "assigned_user": user_id}):
                logger.debug("Unassigning task %s from user %s", task.id, user_id)
                task.assigned_user = ""
                task.assigned_user_name = UNASSIGNED_NAME
                self.tasks.save(task)

        if not new_ids:
            return

        preloaded = {task.id: task for task in preloaded_tasks}
        to_assign = [preloaded[task_id] for task_id in new_ids if task_id in preloaded]
        if len(to_assign) != len(new_ids):
            to_assign = self.tasks.find({"id": {"$in": new_ids}})

        for task in to_assign:
            current = task.assigned_user or ""
            if current and current != user_id:
                logger.debug("Task %s moves from user %s to %s", task.id, current, user_id)
                self.users.update_one({"id": current}, {"$pull": {"pending_tasks": task.id}})

            # (re)assignment always reopens the task
            task.assigned_user = user_id
            task.assigned_user_name = user.name
            task.completed = False
            self.tasks.save(task)

    def propagate_user_name(self, user: User) -> int:
        """Refresh the cached owner name on every task assigned to ``user``."""
        return self.tasks.update_many(
            {"assigned_user": user.id},
            {"$set": {"assigned_user_name": user.name}},
        )

    # ------------------------------------------------------------------
    # Task side changed
    # ------------------------------------------------------------------
    def reconcile_task_write(
        self,
        task: Task,
        previous_assigned_user_id: str = "",
        previous_completed: bool = False,
    ) -> None:
        """
        Move ``task``'s id between pending lists after the task was saved.

        ``task`` carries the new owner and completed flag; the previous
        values are what was stored before the write ("" / False on create).
        """
        task_id = task.id
        previous_user_id = (previous_assigned_user_id or "").strip()
        new_user_id = task.assigned_user or ""

        if previous_user_id and previous_user_id != new_user_id:
            self._pull_pending(previous_user_id, task_id)

        if new_user_id:
            self._sync_pending(new_user_id, task_id, task.completed)
        else:
            # sweep every list still holding the id, in case one drifted
            swept = self.users.update_many(
                {"pending_tasks": task_id},
                {"$pull": {"pending_tasks": task_id}},
            )
            if swept:
                logger.debug("Swept unassigned task %s from %d user(s)", task_id, swept)

        if (
            previous_user_id
            and previous_user_id == new_user_id
            and bool(previous_completed) != bool(task.completed)
        ):
            self._sync_pending(new_user_id, task_id, task.completed)

    # ------------------------------------------------------------------
    # Deletion cascades
    # ------------------------------------------------------------------
    def unassign_user_tasks(self, user_id: str) -> int:
        """Release every task owned by a user about to be deleted."""
        released = self.tasks.update_many(
            {"assigned_user": user_id},
            {"$set": {"assigned_user": "", "assigned_user_name": UNASSIGNED_NAME}},
        )
        logger.debug("Released %d task(s) of user %s", released, user_id)
        return released

    def release_deleted_task(self, task_id: str, assigned_user_id: str) -> None:
        if assigned_user_id:
            self._pull_pending(assigned_user_id, task_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _pull_pending(self, user_id: str, task_id: str) -> None:
        self.users.update_one({"id": user_id}, {"$pull": {"pending_tasks": task_id}})

    def _sync_pending(self, user_id: str, task_id: str, completed: bool) -> None:
        # a completed task is never pending
        if completed:
            self._pull_pending(user_id, task_id)
        else:
            self.users.update_one({"id": user_id}, {"$addToSet": {"pending_tasks": task_id}})
