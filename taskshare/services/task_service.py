"""
Task business logic service.
Enforces access control and task invariants, and queues one change event
per successful mutation.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from taskshare.core import access
from taskshare.core.access import Action, Actor
from taskshare.core.clock import as_utc, utc_now
from taskshare.core.exceptions import (
    AccessDeniedException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from taskshare.crud.task import SORT_COLUMNS, crud_task
from taskshare.crud.user import crud_user
from taskshare.events.publisher import queue_event
from taskshare.events.types import TaskEvent, TaskEventType
from taskshare.models.task import Task
from taskshare.schemas.pagination import Pagination
from taskshare.schemas.task import (
    TaskCreate,
    TaskFilter,
    TaskListData,
    TaskRead,
    TaskStats,
    TaskUpdate,
)

logger = logging.getLogger(__name__)

_DENIED_MESSAGES = {
    Action.VIEW: "Access denied to this task",
    Action.EDIT: "You do not have permission to edit this task",
    Action.DELETE: "Only the task owner can delete this task",
    Action.SHARE: "Only the task owner can change sharing for this task",
}


class TaskService:

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self.clock = clock

    async def create_task(
        self,
        db: AsyncSession,
        *,
        actor: Actor,
        task_in: TaskCreate,
    ) -> Task:
        """
        Create a task owned by the actor.
        Status defaults to pending and priority to medium.
        """
        now = self.clock()
        self._ensure_due_date_not_past(task_in.due_date, now)

        task = Task(
            title=task_in.title,
            description=task_in.description,
            priority=task_in.priority,
            due_date=task_in.due_date,
            owner_id=actor.id,
            tags=list(task_in.tags),
            is_archived=False,
            created_at=now,
            updated_at=now,
        )
        task.set_status(task_in.status, now)
        task = await crud_task.create_task(db, task=task)

        logger.info("Task created: task_id=%s owner_id=%s", task.id, actor.id)
        self._emit(db, TaskEventType.TASK_CREATED, actor=actor, task=task)
        return task

    async def get_task(
        self,
        db: AsyncSession,
        *,
        actor: Actor,
        task_id: uuid.UUID,
    ) -> Task:
        """Fetch a task the actor can view, with owner and shared users resolved."""
        return await self._load_for(db, actor=actor, task_id=task_id, action=Action.VIEW)

    async def list_tasks(
        self,
        db: AsyncSession,
        *,
        actor: Actor,
        filters: TaskFilter,
    ) -> TaskListData:
        """
        List tasks the actor owns or has been shared, one page at a time.

        The search term is matched against the returned page only, after
        pagination, so a searched page can hold fewer than `limit` tasks and
        the pagination totals describe the unsearched result.
        """
        if filters.sort_by not in SORT_COLUMNS:
            raise ValidationException(
                "sortBy",
                "SortBy must be one of: " + ", ".join(SORT_COLUMNS),
            )

        tasks, total = await crud_task.list_visible(
            db, user_id=actor.id, filters=filters, now=self.clock()
        )

        if filters.search:
            needle = filters.search.casefold()
            tasks = [
                task
                for task in tasks
                if needle in task.title.casefold()
                or needle in (task.description or "").casefold()
            ]

        return TaskListData(
            tasks=[self.to_read(task) for task in tasks],
            pagination=Pagination(page=filters.page, limit=filters.limit, total=total),
        )

    async def update_task(
        self,
        db: AsyncSession,
        *,
        actor: Actor,
        task_id: uuid.UUID,
        task_in: TaskUpdate,
    ) -> Task:
        """
        Apply a partial update. Owner or edit-sharer only.
        Changing status keeps completed_at in step; a stale version is a conflict.
        """
        task = await self._load_for(db, actor=actor, task_id=task_id, action=Action.EDIT)
        now = self.clock()

        changes = task_in.model_dump(exclude_unset=True)
        expected_version = changes.pop("version", None)
        if expected_version is not None and expected_version != task.version:
            raise ConflictException(
                "Task was modified by someone else; reload it and try again"
            )

        if "due_date" in changes and not self._same_instant(changes["due_date"], task.due_date):
            self._ensure_due_date_not_past(changes["due_date"], now)
        if "status" in changes:
            task.set_status(changes.pop("status"), now)

        for field, value in changes.items():
            setattr(task, field, value)
        task.updated_at = now

        task = await self._save(db, task)
        logger.info(
            "Task updated: task_id=%s actor_id=%s fields=%s",
            task.id,
            actor.id,
            sorted(task_in.model_fields_set - {"version"}),
        )
        self._emit(db, TaskEventType.TASK_UPDATED, actor=actor, task=task)
        return task

    async def delete_task(
        self,
        db: AsyncSession,
        *,
        actor: Actor,
        task_id: uuid.UUID,
    ) -> None:
        """Permanently delete a task and its shared-access entries. Owner only."""
        task = await self._load_for(db, actor=actor, task_id=task_id, action=Action.DELETE)
        audience = task.audience()

        try:
            await crud_task.remove(db, db_obj=task)
        except StaleDataError:
            raise ConflictException("Task was modified by someone else; reload it and try again")

        logger.info("Task deleted: task_id=%s owner_id=%s", task_id, actor.id)
        self._queue(
            db,
            TaskEvent(
                event_type=TaskEventType.TASK_DELETED,
                actor_id=actor.id,
                task_id=task_id,
                audience=frozenset(audience),
            ),
        )

    async def share_task(
        self,
        db: AsyncSession,
        *,
        actor: Actor,
        task_id: uuid.UUID,
        email: str,
        permission: str,
    ) -> Task:
        """Grant or change a user's access to a task. Owner only."""
        task = await self._load_for(db, actor=actor, task_id=task_id, action=Action.SHARE)

        target = await crud_user.get_by_email(db, email)
        if target is None:
            raise NotFoundException("User with this email")
        if target.id == task.owner_id:
            raise ValidationException("email", "A task cannot be shared with its owner")

        now = self.clock()
        crud_task.upsert_share(task=task, user=target, permission=permission, now=now)
        task.updated_at = now
        task = await self._save(db, task)

        logger.info(
            "Task shared: task_id=%s user_id=%s permission=%s",
            task.id,
            target.id,
            permission,
        )
        self._emit(
            db,
            TaskEventType.TASK_SHARED,
            actor=actor,
            task=task,
            target_user_id=target.id,
        )
        return task

    async def unshare_task(
        self,
        db: AsyncSession,
        *,
        actor: Actor,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Task:
        """Remove a user's access. Removing a user who has no access is a no-op."""
        task = await self._load_for(db, actor=actor, task_id=task_id, action=Action.SHARE)

        removed = crud_task.remove_share(task=task, user_id=user_id)
        task.updated_at = self.clock()
        task = await self._save(db, task)

        logger.info(
            "Task unshared: task_id=%s user_id=%s removed=%s", task.id, user_id, removed
        )
        self._queue(
            db,
            TaskEvent(
                event_type=TaskEventType.TASK_UNSHARED,
                actor_id=actor.id,
                task_id=task.id,
                target_user_id=user_id,
                audience=frozenset(task.audience() | {user_id}),
            ),
        )
        return task

    async def get_stats(self, db: AsyncSession, *, actor: Actor) -> TaskStats:
        """Counts over the actor's visible, non-archived tasks."""
        counts = await crud_task.stats_for(db, user_id=actor.id, now=self.clock())
        return TaskStats(**counts)

    def to_read(self, task: Task) -> TaskRead:
        """Serialize a task, judging overdue against this service's clock."""
        return TaskRead.model_validate(task, context={"now": self.clock()})

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _load_for(
        self,
        db: AsyncSession,
        *,
        actor: Actor,
        task_id: uuid.UUID,
        action: Action,
    ) -> Task:
        task = await crud_task.get_with_relations(db, task_id)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        if not access.is_allowed(actor.id, task, action):
            raise AccessDeniedException(_DENIED_MESSAGES[action])
        return task

    async def _save(self, db: AsyncSession, task: Task) -> Task:
        try:
            return await crud_task.save(db, task=task)
        except StaleDataError:
            raise ConflictException("Task was modified by someone else; reload it and try again")
        except IntegrityError:
            raise ConflictException("Task sharing changed concurrently; try again")

    @staticmethod
    def _ensure_due_date_not_past(due_date: datetime | None, now: datetime) -> None:
        if due_date is not None and as_utc(due_date) < as_utc(now):
            raise ValidationException("dueDate", "Due date cannot be in the past")

    @staticmethod
    def _same_instant(a: datetime | None, b: datetime | None) -> bool:
        if a is None or b is None:
            return a is b
        return as_utc(a) == as_utc(b)

    def _emit(
        self,
        db: AsyncSession,
        event_type: TaskEventType,
        *,
        actor: Actor,
        task: Task,
        target_user_id: uuid.UUID | None = None,
    ) -> None:
        snapshot = self.to_read(task).model_dump(mode="json", by_alias=True)
        self._queue(
            db,
            TaskEvent(
                event_type=event_type,
                actor_id=actor.id,
                task_id=task.id,
                task=snapshot,
                target_user_id=target_user_id,
                audience=frozenset(task.audience()),
            ),
        )

    @staticmethod
    def _queue(db: AsyncSession, event: TaskEvent) -> None:
        queue_event(db, event)


task_service = TaskService()
