# File: apied_piper/api/routes_users.py

from typing import Optional

from fastapi import APIRouter, Depends, status

from apied_piper.api.deps import get_user_service
from apied_piper.api.query import parse_query_options, parse_select
from apied_piper.api.responses import render, send_response
from apied_piper.schemas.user import USER_FIELDS, USER_FIELD_TYPES, UserPayload, UserRead
from apied_piper.services.user_service import UserService

router = APIRouter()


@router.get("", summary="List or count users")
def list_users(
    where: Optional[str] = None,
    sort: Optional[str] = None,
    select: Optional[str] = None,
    filter: Optional[str] = None,
    skip: Optional[str] = None,
    limit: Optional[str] = None,
    count: Optional[str] = None,
    service: UserService = Depends(get_user_service),
):
    options = parse_query_options(
        USER_FIELDS,
        USER_FIELD_TYPES,
        where=where,
        sort=sort,
        select=select,
        filter=filter,
        skip=skip,
        limit=limit,
        count=count,
    )
    result = service.list_users(options)
    if options.count:
        return send_response(status.HTTP_200_OK, "OK", result)
    return send_response(
        status.HTTP_200_OK,
        "OK",
        [render(UserRead, user, options.select) for user in result],
    )


@router.post("", summary="Create a user")
def create_user(
    payload: Optional[UserPayload] = None,
    service: UserService = Depends(get_user_service),
):
    user = service.create_user(payload or UserPayload())
    return send_response(status.HTTP_201_CREATED, "User created", render(UserRead, user))


@router.get("/{user_id}", summary="Fetch one user")
def get_user(
    user_id: str,
    select: Optional[str] = None,
    filter: Optional[str] = None,
    service: UserService = Depends(get_user_service),
):
    user = service.get_user(user_id)
    projection = parse_select(select, filter, USER_FIELDS)
    return send_response(status.HTTP_200_OK, "OK", render(UserRead, user, projection))


@router.put("/{user_id}", summary="Replace a user and its pending tasks")
def update_user(
    user_id: str,
    payload: Optional[UserPayload] = None,
    service: UserService = Depends(get_user_service),
):
    user = service.update_user(user_id, payload or UserPayload())
    return send_response(status.HTTP_200_OK, "User updated", render(UserRead, user))


@router.delete("/{user_id}", summary="Delete a user, unassigning its tasks")
def delete_user(
    user_id: str,
    service: UserService = Depends(get_user_service),
):
    service.delete_user(user_id)
    return send_response(status.HTTP_200_OK, "User deleted", None)
