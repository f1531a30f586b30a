# File: apied_piper/store/collection.py

"""
Document-store style CRUD over one SQLAlchemy model.

The reconciler only ever talks to a ``Collection``: find, find-by-id,
count, update-one/many with ``$set`` / ``$addToSet`` / ``$pull`` patches,
delete-one and save. Writes flush into the caller's session and are never
committed here; the caller owns the transaction.

Filters are plain mappings of attribute name to either a scalar
(equality, or membership for list columns) or an operator mapping using
``$in``, ``$nin``, ``$ne``, ``$gt``, ``$gte``, ``$lt``, ``$lte``.

Conditions on list (JSON) columns are matched in Python. Membership and
``$in`` conditions are first narrowed in SQL with a text match on the
serialized list, so only candidate rows are loaded; ``$nin`` and ``$ne``
still scan the table.
"""

import json
import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import JSON, String, cast, func, inspect, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from apied_piper.core.errors import ConflictError, InvalidArgumentError

logger = logging.getLogger(__name__)

Filter = Mapping[str, Any]
Patch = Mapping[str, Any]
SortSpec = Union[Mapping[str, int], Sequence[Tuple[str, int]]]

COMPARISON_OPERATORS = ("$gt", "$gte", "$lt", "$lte")
FILTER_OPERATORS = ("$in", "$nin", "$ne") + COMPARISON_OPERATORS
PATCH_OPERATORS = ("$set", "$addToSet", "$pull")


class Collection:
    def __init__(self, session: Session, model):
        self.session = session
        self.model = model
        self.name = model.__tablename__

        mapper = inspect(model)
        self.fields = {attr.key for attr in mapper.column_attrs}
        self.list_fields = {
            attr.key
            for attr in mapper.column_attrs
            if isinstance(attr.columns[0].type, JSON)
        }

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def find_by_id(self, id: str):
        return self.session.get(self.model, id)

    def find(
        self,
        filter: Optional[Filter] = None,
        sort: Optional[SortSpec] = None,
        skip: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list:
        clauses, predicates = self._compile_filter(filter or {})

        stmt = select(self.model).where(*clauses)
        for field, direction in self._sort_items(sort):
            column = getattr(self.model, field)
            stmt = stmt.order_by(column.desc() if direction < 0 else column.asc())

        if not predicates:
            if skip:
                stmt = stmt.offset(skip)
            # 0 means no limit
            if limit:
                stmt = stmt.limit(limit)
            return list(self.session.scalars(stmt).all())

        # list-column conditions run in Python, so paging has to as well
        rows = [
            row
            for row in self.session.scalars(stmt).all()
            if all(predicate(row) for predicate in predicates)
        ]
        start = skip or 0
        end = start + limit if limit else None
        return rows[start:end]

    def find_one(self, filter: Optional[Filter] = None):
        rows = self.find(filter, limit=1)
        return rows[0] if rows else None

    def count_documents(self, filter: Optional[Filter] = None) -> int:
        clauses, predicates = self._compile_filter(filter or {})
        if predicates:
            return len(self.find(filter))
        stmt = select(func.count()).select_from(self.model).where(*clauses)
        return int(self.session.scalar(stmt) or 0)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def save(self, entity):
        """Upsert ``entity`` by id and flush, surfacing unique violations."""
        state = inspect(entity)
        if state.transient and entity.id is not None:
            if self.session.get(self.model, entity.id) is not None:
                entity = self.session.merge(entity)
        self.session.add(entity)
        self._flush()
        return entity

    def update_one(self, filter: Filter, patch: Patch) -> int:
        entity = self.find_one(filter)
        if entity is None:
            return 0
        modified = int(self._apply_patch(entity, patch))
        self._flush()
        return modified

    def update_many(self, filter: Filter, patch: Patch) -> int:
        modified = 0
        for entity in self.find(filter):
            if self._apply_patch(entity, patch):
                modified += 1
        self._flush()
        return modified

    def delete_one(self, filter: Filter) -> int:
        entity = self.find_one(filter)
        if entity is None:
            return 0
        self.session.delete(entity)
        self._flush()
        return 1

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            logger.warning("Unique constraint violated on %s: %s", self.name, exc.orig)
            if "email" in str(exc.orig).lower():
                raise ConflictError("Email already exists") from exc
            raise ConflictError("Duplicate value violates unique constraint") from exc
        except StaleDataError as exc:
            raise ConflictError(
                f"A {self.name[:-1]} was modified concurrently, please retry"
            ) from exc

    def _check_field(self, field: str) -> None:
        if field not in self.fields:
            raise InvalidArgumentError(f'Unknown field "{field}" for {self.name}')

    def _sort_items(self, sort: Optional[SortSpec]) -> List[Tuple[str, int]]:
        if not sort:
            return []
        items = list(sort.items()) if isinstance(sort, Mapping) else list(sort)
        for field, _ in items:
            self._check_field(field)
            if field in self.list_fields:
                raise InvalidArgumentError(f'Cannot sort on "{field}"')
        return items

    def _compile_filter(self, filter: Filter) -> Tuple[list, List[Callable[[Any], bool]]]:
        clauses = []
        predicates = []
        for field, condition in filter.items():
            self._check_field(field)
            if field in self.list_fields:
                predicates.append(_list_predicate(field, condition))
                prefilter = self._list_prefilter(field, condition)
                if prefilter is not None:
                    clauses.append(prefilter)
                continue

            column = getattr(self.model, field)
            if not isinstance(condition, Mapping):
                clauses.append(column.is_(None) if condition is None else column == condition)
                continue

            for op, operand in condition.items():
                if op not in FILTER_OPERATORS:
                    raise InvalidArgumentError(f'Unsupported operator "{op}" on "{field}"')
                if op == "$in":
                    clauses.append(column.in_(_as_list(op, operand)))
                elif op == "$nin":
                    clauses.append(column.not_in(_as_list(op, operand)))
                elif op == "$ne":
                    clauses.append(column != operand)
                elif op == "$gt":
                    clauses.append(column > operand)
                elif op == "$gte":
                    clauses.append(column >= operand)
                elif op == "$lt":
                    clauses.append(column < operand)
                else:
                    clauses.append(column <= operand)
        return clauses, predicates

    def _list_prefilter(self, field: str, condition: Any):
        """SQL clause keeping rows whose serialized list may hold a wanted value."""
        if isinstance(condition, Mapping):
            wanted = condition.get("$in")
            if not isinstance(wanted, (list, tuple, set)):
                return None
        elif isinstance(condition, (list, tuple)):
            return None
        else:
            wanted = [condition]

        if not wanted or not all(isinstance(value, str) for value in wanted):
            return None
        text = cast(getattr(self.model, field), String)
        return or_(*(text.like(_like_pattern(value), escape="\\") for value in wanted))

    def _apply_patch(self, entity, patch: Patch) -> bool:
        """Apply a patch in place; returns whether anything changed."""
        if not any(key.startswith("$") for key in patch):
            patch = {"$set": patch}

        changed = False
        for op, fields in patch.items():
            if op not in PATCH_OPERATORS:
                raise InvalidArgumentError(f'Unsupported update operator "{op}"')
            for field, value in fields.items():
                self._check_field(field)
                current = getattr(entity, field)

                if op == "$set":
                    if current != value:
                        setattr(entity, field, value)
                        changed = True
                    continue

                if field not in self.list_fields:
                    raise InvalidArgumentError(f'"{op}" needs a list field, got "{field}"')
                items = list(current or [])
                if op == "$addToSet":
                    if value not in items:
                        setattr(entity, field, items + [value])
                        changed = True
                elif value in items:
                    setattr(entity, field, [item for item in items if item != value])
                    changed = True
        return changed


def _as_list(op: str, operand: Any) -> list:
    if not isinstance(operand, (list, tuple, set)):
        raise InvalidArgumentError(f'"{op}" expects an array')
    return list(operand)


def _list_predicate(field: str, condition: Any) -> Callable[[Any], bool]:
    """Array semantics: a scalar matches when it is an element."""

    def values(row) -> Iterable:
        return getattr(row, field) or []

    if isinstance(condition, (list, tuple)):
        expected = list(condition)
        return lambda row: list(values(row)) == expected

    if not isinstance(condition, Mapping):
        return lambda row: condition in values(row)

    checks: List[Callable[[Any], bool]] = []
    for op, operand in condition.items():
        if op == "$in":
            wanted = set(_as_list(op, operand))
            checks.append(lambda row, wanted=wanted: any(v in wanted for v in values(row)))
        elif op == "$nin":
            unwanted = set(_as_list(op, operand))
            checks.append(lambda row, unwanted=unwanted: not any(v in unwanted for v in values(row)))
        elif op == "$ne":
            checks.append(lambda row, operand=operand: operand not in values(row))
        else:
            raise InvalidArgumentError(f'Unsupported operator "{op}" on "{field}"')
    return lambda row: all(check(row) for check in checks)


def _like_pattern(value: str) -> str:
    # list elements are stored as JSON strings, quotes included
    token = json.dumps(value).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{token}%"
