# File: apied_piper/api/routes_tasks.py

from typing import Optional

from fastapi import APIRouter, Depends, status

from apied_piper.api.deps import get_app_settings, get_task_service
from apied_piper.api.query import parse_query_options, parse_select
from apied_piper.api.responses import render, send_response
from apied_piper.core.config import Settings
from apied_piper.schemas.task import TASK_FIELDS, TASK_FIELD_TYPES, TaskPayload, TaskRead
from apied_piper.services.task_service import TaskService

router = APIRouter()


@router.get("", summary="List or count tasks")
def list_tasks(
    where: Optional[str] = None,
    sort: Optional[str] = None,
    select: Optional[str] = None,
    filter: Optional[str] = None,
    skip: Optional[str] = None,
    limit: Optional[str] = None,
    count: Optional[str] = None,
    service: TaskService = Depends(get_task_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Same options as /users, except that ``limit`` defaults to
    ``settings.default_task_limit`` (100) unless ``count=true``.
    """
    options = parse_query_options(
        TASK_FIELDS,
        TASK_FIELD_TYPES,
        where=where,
        sort=sort,
        select=select,
        filter=filter,
        skip=skip,
        limit=limit,
        count=count,
        default_limit=settings.default_task_limit,
    )
    result = service.list_tasks(options)
    if options.count:
        return send_response(status.HTTP_200_OK, "OK", result)
    return send_response(
        status.HTTP_200_OK,
        "OK",
        [render(TaskRead, task, options.select) for task in result],
    )


@router.post("", summary="Create a task")
def create_task(
    payload: Optional[TaskPayload] = None,
    service: TaskService = Depends(get_task_service),
):
    task = service.create_task(payload or TaskPayload())
    return send_response(status.HTTP_201_CREATED, "Task created", render(TaskRead, task))


@router.get("/{task_id}", summary="Fetch one task")
def get_task(
    task_id: str,
    select: Optional[str] = None,
    filter: Optional[str] = None,
    service: TaskService = Depends(get_task_service),
):
    task = service.get_task(task_id)
    projection = parse_select(select, filter, TASK_FIELDS)
    return send_response(status.HTTP_200_OK, "OK", render(TaskRead, task, projection))


@router.put("/{task_id}", summary="Replace a task")
def update_task(
    task_id: str,
    payload: Optional[TaskPayload] = None,
    service: TaskService = Depends(get_task_service),
):
    task = service.update_task(task_id, payload or TaskPayload())
    return send_response(status.HTTP_200_OK, "Task updated", render(TaskRead, task))


@router.delete("/{task_id}", summary="Delete a task")
def delete_task(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(task_id)
    return send_response(status.HTTP_200_OK, "Task deleted", None)
