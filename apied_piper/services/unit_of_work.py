# File: apied_piper/services/unit_of_work.py

"""
One request's worth of store access.

Bundles the two collections and the reconciler over a single session, and
commits once when the ``with`` block exits cleanly. Any exception rolls
the whole block back, including reconciler writes already flushed.
"""

import logging

from sqlalchemy.orm import Session

from apied_piper.models.task import Task
from apied_piper.models.user import User
from apied_piper.services.reconciler import AssignmentReconciler
from apied_piper.store.collection import Collection

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, session: Session):
        self.session = session
        self.users = Collection(session, User)
        self.tasks = Collection(session, Task)
        self.reconciler = AssignmentReconciler(self.users, self.tasks)
        self._committed = False

    def commit(self) -> None:
        self.session.commit()
        self._committed = True

    def rollback(self) -> None:
        self.session.rollback()
        logger.debug("UnitOfWork rolled back")

    def __enter__(self) -> "UnitOfWork":
        self._committed = False
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.rollback()
        elif not self._committed:
            self.commit()
