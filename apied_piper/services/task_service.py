# File: apied_piper/services/task_service.py

import logging
from typing import List, Optional, Union

from apied_piper.core.errors import InvalidArgumentError, NotFoundError
from apied_piper.models.task import UNASSIGNED_NAME, Task
from apied_piper.models.user import User
from apied_piper.schemas.query import QueryOptions
from apied_piper.schemas.task import TaskPayload
from apied_piper.services.normalize import (
    ensure_object_id,
    is_valid_object_id,
    normalize_assigned_user,
    parse_bool,
    parse_deadline,
    require_text,
)
from apied_piper.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def list_tasks(self, options: QueryOptions) -> Union[List[Task], int]:
        if options.count:
            return self.uow.tasks.count_documents(options.where)
        return self.uow.tasks.find(
            options.where,
            sort=options.sort,
            skip=options.skip,
            limit=options.limit,
        )

    def get_task(self, task_id: str) -> Task:
        task_id = ensure_object_id(task_id, "task")
        task = self.uow.tasks.find_by_id(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def create_task(self, payload: TaskPayload) -> Task:
        name, deadline = self._required_fields(payload, "create")
        assigned_user_id = normalize_assigned_user(payload.assignedUser)

        with self.uow as uow:
            assignee = self._resolve_assignee(assigned_user_id)

            task = uow.tasks.save(
                Task(
                    name=name,
                    description=_description(payload.description),
                    deadline=deadline,
                    completed=parse_bool(payload.completed),
                    assigned_user=assigned_user_id,
                    assigned_user_name=assignee.name if assignee else UNASSIGNED_NAME,
                )
            )

            uow.reconciler.reconcile_task_write(task, "", False)

        logger.info("Created task %s (assigned to %r)", task.id, assigned_user_id or None)
        return task

    def update_task(self, task_id: str, payload: TaskPayload) -> Task:
        task_id = ensure_object_id(task_id, "task")

        with self.uow as uow:
            task = uow.tasks.find_by_id(task_id)
            if task is None:
                raise NotFoundError("Task not found")

            name, deadline = self._required_fields(payload, "update")
            assigned_user_id = normalize_assigned_user(payload.assignedUser)
            assignee = self._resolve_assignee(assigned_user_id)

            previous_assigned_user = task.assigned_user or ""
            previous_completed = bool(task.completed)

            task.name = name
            task.description = _description(payload.description)
            task.deadline = deadline
            task.completed = parse_bool(payload.completed)
            task.assigned_user = assigned_user_id
            task.assigned_user_name = assignee.name if assignee else UNASSIGNED_NAME
            task = uow.tasks.save(task)

            uow.reconciler.reconcile_task_write(task, previous_assigned_user, previous_completed)

        logger.info("Updated task %s", task.id)
        return task

    def delete_task(self, task_id: str) -> None:
        task_id = ensure_object_id(task_id, "task")

        with self.uow as uow:
            task = uow.tasks.find_by_id(task_id)
            if task is None:
                raise NotFoundError("Task not found")

            assigned_user_id = task.assigned_user or ""
            uow.tasks.delete_one({"id": task_id})
            uow.reconciler.release_deleted_task(task_id, assigned_user_id)

        logger.info("Deleted task %s", task_id)

    def _resolve_assignee(self, assigned_user_id: str) -> Optional[User]:
        if not assigned_user_id:
            return None
        if not is_valid_object_id(assigned_user_id):
            raise InvalidArgumentError("Invalid assignedUser id")
        user = self.uow.users.find_by_id(assigned_user_id)
        if user is None:
            raise InvalidArgumentError("Assigned user not found")
        return user

    @staticmethod
    def _required_fields(payload: TaskPayload, action: str):
        name = require_text(payload.name)
        deadline = parse_deadline(payload.deadline)
        if not name or deadline is None:
            raise InvalidArgumentError(f"Both name and deadline are required to {action} a task")
        return name, deadline


def _description(value) -> str:
    return "" if value is None else str(value)
