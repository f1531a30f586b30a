# File: tests/test_query.py

from datetime import datetime, timezone

import pytest

from apied_piper.api.query import apply_projection, parse_query_options, parse_select
from apied_piper.core.errors import InvalidArgumentError
from apied_piper.schemas.task import TASK_FIELDS, TASK_FIELD_TYPES
from apied_piper.schemas.user import USER_FIELDS, USER_FIELD_TYPES


def task_options(**params):
    return parse_query_options(TASK_FIELDS, TASK_FIELD_TYPES, default_limit=100, **params)


def test_where_translates_wire_names():
    options = task_options(
        where='{"_id": {"$in": ["a", "b"]}, "assignedUser": "", "completed": true}',
        sort='{"deadline": -1, "name": 1}',
    )

    assert options.where == {
        "id": {"$in": ["a", "b"]},
        "assigned_user": "",
        "completed": True,
    }
    assert options.sort == [("deadline", -1), ("name", 1)]


def test_where_parses_dates():
    options = task_options(where='{"deadline": {"$lt": "2030-01-01T00:00:00Z"}}')

    assert options.where == {"deadline": {"$lt": datetime(2030, 1, 1, tzinfo=timezone.utc)}}


def test_default_limit_only_without_count():
    assert task_options().limit == 100
    assert task_options(limit="5", skip="10").limit == 5
    counted = task_options(count="true", limit="5")
    assert counted.count is True
    assert counted.limit is None


@pytest.mark.parametrize(
    "params, message",
    [
        ({"where": "{nope"}, 'Invalid JSON for "where" parameter'),
        ({"where": '{"password": 1}'}, 'Unknown field "password"'),
        ({"where": '{"name": {"$regex": ".*"}}'}, 'Unsupported operator "$regex" in "where"'),
        ({"where": '{"name": {"$in": "x"}}'}, '"$in" expects an array'),
        ({"where": '{"deadline": "soon"}'}, 'Invalid date for "deadline" in "where"'),
        ({"sort": '{"name": 2}'}, 'Invalid sort direction for "name"'),
        ({"skip": "-1"}, '"skip" must be a non-negative integer'),
        ({"limit": "1.5"}, '"limit" must be a non-negative integer'),
        ({"limit": "ten"}, '"limit" must be a non-negative integer'),
    ],
)
def test_rejects_bad_parameters(params, message):
    with pytest.raises(InvalidArgumentError) as excinfo:
        task_options(**params)
    assert excinfo.value.message == message


def test_select_falls_back_to_filter_and_rejects_mixed_modes():
    assert parse_select(None, '{"email": 0}', USER_FIELDS) == {"email": 0}

    with pytest.raises(InvalidArgumentError):
        parse_select('{"name": 1, "email": 0}', None, USER_FIELDS)


def test_apply_projection():
    doc = {"_id": "x", "name": "Alice", "email": "a@x.com"}

    assert apply_projection(doc, None) == doc
    assert apply_projection(doc, {"name": 1}) == {"_id": "x", "name": "Alice"}
    assert apply_projection(doc, {"name": 1, "_id": 0}) == {"name": "Alice"}
    assert apply_projection(doc, {"_id": 0}) == {"name": "Alice", "email": "a@x.com"}


def test_where_values_follow_field_types():
    options = task_options(
        where='{"completed": "true", "assignedUser": "ABCDEF0123456789ABCDEF01", "name": "x"}'
    )

    assert options.where == {
        "completed": True,
        "assigned_user": "abcdef0123456789abcdef01",
        "name": "x",
    }
    assert task_options(where='{"completed": {"$in": [0, "false"]}}').where == {
        "completed": {"$in": [False, False]}
    }


@pytest.mark.parametrize(
    "where, message",
    [
        ('{"completed": 5}', 'Expected a boolean for "completed" in "where"'),
        ('{"completed": "yes"}', 'Expected a boolean for "completed" in "where"'),
        ('{"completed": null}', 'Expected a boolean for "completed" in "where"'),
        ('{"name": 3}', 'Expected a string for "name" in "where"'),
        ('{"assignedUser": {"$in": [null]}}', 'Expected a string for "assignedUser" in "where"'),
        ('{"deadline": true}', 'Invalid date for "deadline" in "where"'),
    ],
)
def test_where_rejects_values_of_the_wrong_type(where, message):
    with pytest.raises(InvalidArgumentError) as excinfo:
        task_options(where=where)
    assert excinfo.value.message == message


def test_pending_tasks_conditions_are_lowercased_ids():
    options = parse_query_options(
        USER_FIELDS,
        USER_FIELD_TYPES,
        where='{"pendingTasks": "ABCDEF0123456789ABCDEF01"}',
    )
    assert options.where == {"pending_tasks": "abcdef0123456789abcdef01"}

    options = parse_query_options(USER_FIELDS, USER_FIELD_TYPES, where='{"pendingTasks": []}')
    assert options.where == {"pending_tasks": []}


def test_zero_limit_is_kept_for_the_store():
    assert task_options(limit="0").limit == 0
