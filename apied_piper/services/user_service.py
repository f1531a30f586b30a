# File: apied_piper/services/user_service.py

"""
User use cases: list, fetch, create, update and delete.

Create and update replace the user's pending list wholesale, then let the
reconciler point the listed tasks at the user (stealing them from whoever
held them) and release the tasks that were dropped. Delete releases
every task the user owned first.
"""

import logging
from typing import List, Union

from apied_piper.core.errors import InvalidArgumentError, NotFoundError
from apied_piper.models.user import User
from apied_piper.schemas.query import QueryOptions
from apied_piper.schemas.user import UserPayload
from apied_piper.services.normalize import ensure_object_id, require_text, sanitize_id_list
from apied_piper.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def list_users(self, options: QueryOptions) -> Union[List[User], int]:
        if options.count:
            return self.uow.users.count_documents(options.where)
        return self.uow.users.find(
            options.where,
            sort=options.sort,
            skip=options.skip,
            limit=options.limit,
        )

    def get_user(self, user_id: str) -> User:
        user_id = ensure_object_id(user_id, "user")
        user = self.uow.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def create_user(self, payload: UserPayload) -> User:
        name, email = self._required_fields(payload, "create")
        pending_ids = sanitize_id_list(payload.pendingTasks)

        with self.uow as uow:
            tasks = uow.reconciler.ensure_tasks_exist(pending_ids)

            user = uow.users.save(User(name=name, email=email, pending_tasks=pending_ids))

            uow.reconciler.reconcile_user_write(user, pending_ids, [], tasks)
            uow.reconciler.propagate_user_name(user)

        logger.info("Created user %s with %d pending task(s)", user.id, len(pending_ids))
        return user

    def update_user(self, user_id: str, payload: UserPayload) -> User:
        user_id = ensure_object_id(user_id, "user")
        name, email = self._required_fields(payload, "update")

        with self.uow as uow:
            user = uow.users.find_by_id(user_id)
            if user is None:
                raise NotFoundError("User not found")

            pending_ids = sanitize_id_list(payload.pendingTasks)
            tasks = uow.reconciler.ensure_tasks_exist(pending_ids)
            previous_ids = list(user.pending_tasks or [])

            user.name = name
            user.email = email
            user.pending_tasks = pending_ids
            user = uow.users.save(user)

            uow.reconciler.reconcile_user_write(user, pending_ids, previous_ids, tasks)
            uow.reconciler.propagate_user_name(user)

        logger.info("Updated user %s", user.id)
        return user

    def delete_user(self, user_id: str) -> None:
        user_id = ensure_object_id(user_id, "user")

        with self.uow as uow:
            user = uow.users.find_by_id(user_id)
            if user is None:
                raise NotFoundError("User not found")

            uow.reconciler.unassign_user_tasks(user.id)
            uow.users.delete_one({"id": user.id})

        logger.info("Deleted user %s", user_id)

    @staticmethod
    def _required_fields(payload: UserPayload, action: str):
        name = require_text(payload.name)
        email = require_text(payload.email)
        if not name or not email:
            raise InvalidArgumentError(f"Both name and email are required to {action} a user")
        return name, email
