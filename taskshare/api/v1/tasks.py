"""
Task routes.
CRUD, filtering + pagination, statistics, and sharing.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from taskshare.core.dependencies import CurrentActor, DBSession
from taskshare.models.task import Task
from taskshare.schemas.common import ApiResponse
from taskshare.schemas.task import (
    SortOrder,
    TaskCreate,
    TaskData,
    TaskFilter,
    TaskListData,
    TaskPriority,
    TaskShareRequest,
    TaskStatsData,
    TaskStatus,
    TaskUnshareRequest,
    TaskUpdate,
)
from taskshare.services.task_service import task_service

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _task_filter_params(
    status: TaskStatus | None = Query(default=None),
    priority: TaskPriority | None = Query(default=None),
    is_overdue: bool | None = Query(default=None, alias="isOverdue"),
    is_archived: bool = Query(default=False, alias="isArchived"),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
) -> TaskFilter:
    return TaskFilter(
        status=status,
        priority=priority,
        is_overdue=is_overdue,
        is_archived=is_archived,
        search=search or None,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def _task_response(task: Task, message: str | None = None) -> ApiResponse[TaskData]:
    return ApiResponse(message=message, data=TaskData(task=task_service.to_read(task)))


@router.get(
    "/",
    response_model=ApiResponse[TaskListData],
    summary="List owned and shared tasks with filters and pagination",
)
async def list_tasks(
    actor: CurrentActor,
    db: DBSession,
    filters: Annotated[TaskFilter, Depends(_task_filter_params)],
) -> ApiResponse[TaskListData]:
    data = await task_service.list_tasks(db, actor=actor, filters=filters)
    return ApiResponse(data=data)


@router.get(
    "/stats",
    response_model=ApiResponse[TaskStatsData],
    summary="Task counts by status, plus overdue",
)
async def get_task_stats(
    actor: CurrentActor,
    db: DBSession,
) -> ApiResponse[TaskStatsData]:
    stats = await task_service.get_stats(db, actor=actor)
    return ApiResponse(data=TaskStatsData(stats=stats))


@router.post(
    "/",
    response_model=ApiResponse[TaskData],
    status_code=status.HTTP_201_CREATED,
    summary="Create a new task",
)
async def create_task(
    task_in: TaskCreate,
    actor: CurrentActor,
    db: DBSession,
) -> ApiResponse[TaskData]:
    task = await task_service.create_task(db, actor=actor, task_in=task_in)
    return _task_response(task, "Task created successfully")


@router.get(
    "/{task_id}",
    response_model=ApiResponse[TaskData],
    summary="Get a task by ID",
)
async def get_task(
    task_id: uuid.UUID,
    actor: CurrentActor,
    db: DBSession,
) -> ApiResponse[TaskData]:
    task = await task_service.get_task(db, actor=actor, task_id=task_id)
    return _task_response(task)


@router.put(
    "/{task_id}",
    response_model=ApiResponse[TaskData],
    summary="Partially update a task",
)
async def update_task(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    actor: CurrentActor,
    db: DBSession,
) -> ApiResponse[TaskData]:
    task = await task_service.update_task(
        db, actor=actor, task_id=task_id, task_in=task_in
    )
    return _task_response(task, "Task updated successfully")


@router.delete(
    "/{task_id}",
    response_model=ApiResponse[None],
    summary="Delete a task (owner only)",
)
async def delete_task(
    task_id: uuid.UUID,
    actor: CurrentActor,
    db: DBSession,
) -> ApiResponse[None]:
    await task_service.delete_task(db, actor=actor, task_id=task_id)
    return ApiResponse(message="Task deleted successfully")


@router.post(
    "/{task_id}/share",
    response_model=ApiResponse[TaskData],
    summary="Share a task with another user, or change their permission",
)
async def share_task(
    task_id: uuid.UUID,
    body: TaskShareRequest,
    actor: CurrentActor,
    db: DBSession,
) -> ApiResponse[TaskData]:
    task = await task_service.share_task(
        db,
        actor=actor,
        task_id=task_id,
        email=body.email,
        permission=body.permission,
    )
    return _task_response(task, "Task shared successfully")


@router.delete(
    "/{task_id}/unshare",
    response_model=ApiResponse[TaskData],
    summary="Remove a user's access to a task",
)
async def unshare_task(
    task_id: uuid.UUID,
    body: TaskUnshareRequest,
    actor: CurrentActor,
    db: DBSession,
) -> ApiResponse[TaskData]:
    task = await task_service.unshare_task(
        db, actor=actor, task_id=task_id, user_id=body.user_id
    )
    return _task_response(task, "Task unshared successfully")
