"""
Task CRUD operations.
Extends CRUDBase with visibility queries, filtering, sorting, pagination,
aggregate statistics, and shared-access row management.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import ColumnElement

from taskshare.crud.base import CRUDBase
from taskshare.models.task import Task, TaskShare
from taskshare.models.user import User
from taskshare.schemas.task import TaskFilter, TaskUpdate

PRIORITY_RANK = {"low": 0, "medium": 1, "high": 2, "urgent": 3}

SORT_COLUMNS: dict[str, Any] = {
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
    "dueDate": Task.due_date,
    "priority": case(PRIORITY_RANK, value=Task.priority),
    "title": Task.title,
}


def visible_to(user_id: uuid.UUID) -> ColumnElement[bool]:
    """Owned by, or shared with, the user."""
    return or_(
        Task.owner_id == user_id,
        Task.shares.any(TaskShare.user_id == user_id),
    )


def overdue_at(now: datetime) -> ColumnElement[bool]:
    return and_(
        Task.due_date.is_not(None),
        Task.due_date < now,
        Task.status != "completed",
    )


class CRUDTask(CRUDBase[Task, TaskUpdate]):

    async def get_with_relations(
        self, db: AsyncSession, task_id: uuid.UUID
    ) -> Task | None:
        """
        Fetch a task with owner and shared users eagerly loaded.
        Always re-reads the row so identity-map copies are brought up to date.
        """
        result = await db.execute(
            select(Task)
            .options(
                selectinload(Task.owner),
                selectinload(Task.shares).selectinload(TaskShare.user),
            )
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_task(self, db: AsyncSession, *, task: Task) -> Task:
        db.add(task)
        await db.flush()
        return await self.get_with_relations(db, task.id)  # type: ignore[return-value]

    async def save(self, db: AsyncSession, *, task: Task) -> Task:
        """Flush pending changes on a loaded task and return it fully reloaded."""
        db.add(task)
        await db.flush()
        return await self.get_with_relations(db, task.id)  # type: ignore[return-value]

    def _filtered(self, query: Any, *, user_id: uuid.UUID, filters: TaskFilter, now: datetime) -> Any:
        query = query.where(visible_to(user_id))
        query = query.where(Task.is_archived.is_(filters.is_archived))

        if filters.status is not None:
            query = query.where(Task.status == filters.status)
        if filters.priority is not None:
            query = query.where(Task.priority == filters.priority)
        if filters.is_overdue is True:
            query = query.where(overdue_at(now))
        elif filters.is_overdue is False:
            query = query.where(~overdue_at(now))
        return query

    async def list_visible(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        filters: TaskFilter,
        now: datetime,
    ) -> tuple[list[Task], int]:
        """
        Return (page of tasks, total) for tasks the user owns or has been
        shared, with status/priority/overdue/archived filters applied.
        sort_by must already be a key of SORT_COLUMNS.
        """
        count_query = self._filtered(
            select(func.count()).select_from(Task), user_id=user_id, filters=filters, now=now
        )
        total = (await db.execute(count_query)).scalar_one()

        sort_column = SORT_COLUMNS[filters.sort_by]
        primary = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()
        if filters.sort_by == "dueDate":
            primary = primary.nulls_last()

        query = self._filtered(
            select(Task).options(
                selectinload(Task.owner),
                selectinload(Task.shares).selectinload(TaskShare.user),
            ),
            user_id=user_id,
            filters=filters,
            now=now,
        )
        skip = (filters.page - 1) * filters.limit
        query = (
            query.order_by(primary, Task.seq.asc())
            .offset(skip)
            .limit(filters.limit)
        )

        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def stats_for(
        self, db: AsyncSession, *, user_id: uuid.UUID, now: datetime
    ) -> dict[str, int]:
        """Counts over the user's visible, non-archived tasks."""

        def _count_where(condition: ColumnElement[bool]) -> Any:
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        result = await db.execute(
            select(
                func.count(Task.id),
                _count_where(Task.status == "pending"),
                _count_where(Task.status == "in-progress"),
                _count_where(Task.status == "completed"),
                _count_where(overdue_at(now)),
            )
            .where(visible_to(user_id))
            .where(Task.is_archived.is_(False))
        )
        total, pending, in_progress, completed, overdue = result.one()
        return {
            "total": total,
            "pending": pending,
            "in_progress": in_progress,
            "completed": completed,
            "overdue": overdue,
        }

    # ── Shared access ─────────────────────────────────────────────────────────

    def upsert_share(
        self, *, task: Task, user: User, permission: str, now: datetime
    ) -> TaskShare:
        """Add a share entry, or change the permission of the existing one."""
        share = task.share_for(user.id)
        if share is not None:
            share.permission = permission
            return share
        share = TaskShare(user_id=user.id, user=user, permission=permission, shared_at=now)
        task.shares.append(share)
        return share

    def remove_share(self, *, task: Task, user_id: uuid.UUID) -> bool:
        share = task.share_for(user_id)
        if share is None:
            return False
        task.shares.remove(share)
        return True


crud_task = CRUDTask(Task)
