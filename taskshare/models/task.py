"""
Task and TaskShare ORM models.
A task has exactly one owner and a shared-access list of (user, permission)
rows. Rows carry a version counter used for optimistic concurrency.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.engine.default import DefaultExecutionContext
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskshare.core.clock import as_utc, utc_now
from taskshare.db.base import Base

TASK_STATUSES = ("pending", "in-progress", "completed")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")
SHARE_PERMISSIONS = ("read", "edit")

STATUS_COMPLETED = "completed"

INSERT_SEQUENCE = "tasks_insert_seq"


def is_overdue(due_date: datetime | None, status: str, now: datetime) -> bool:
    """Due date passed and not completed. Never stored."""
    if due_date is None or status == STATUS_COMPLETED:
        return False
    return as_utc(due_date) < as_utc(now)


def next_insert_seq(context: DefaultExecutionContext) -> int:
    """Monotonic insertion counter for a new task row."""
    if context.dialect.name == "postgresql":
        statement = text(f"SELECT nextval('{INSERT_SEQUENCE}')")
    else:
        statement = text("SELECT COALESCE(MAX(seq), 0) + 1 FROM tasks")
    return context.connection.execute(statement).scalar_one()


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    # Tie-breaker for list ordering; ids are random
    seq: Mapped[int] = mapped_column(
        BigInteger, nullable=False, unique=True, default=next_insert_seq
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(*TASK_STATUSES, name="task_status_enum"),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    priority: Mapped[str] = mapped_column(
        Enum(*TASK_PRIORITIES, name="task_priority_enum"),
        nullable=False,
        default="medium",
        server_default="medium",
    )
    due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    owner: Mapped["User"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "User",
        back_populates="owned_tasks",
        lazy="selectin",
    )
    shares: Mapped[list["TaskShare"]] = relationship(
        "TaskShare",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="TaskShare.shared_at",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_tasks_owner_id_created_at", "owner_id", "created_at"),
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_priority", "priority"),
        Index("ix_tasks_due_date", "due_date"),
        Index("ix_tasks_is_archived", "is_archived"),
    )

    def set_status(self, status: str, now: datetime) -> None:
        """Apply a status change, keeping completed_at in step with it."""
        previous = self.status
        self.status = status
        if status == previous:
            return
        if status == STATUS_COMPLETED:
            self.completed_at = now
        elif previous == STATUS_COMPLETED:
            self.completed_at = None

    def share_for(self, user_id: uuid.UUID) -> "TaskShare | None":
        for share in self.shares:
            if share.user_id == user_id:
                return share
        return None

    def audience(self) -> set[uuid.UUID]:
        """Users who can currently see this task."""
        return {self.owner_id, *(share.user_id for share in self.shares)}

    @property
    def shared_with(self) -> list["TaskShare"]:
        return self.shares

    def __repr__(self) -> str:
        return f"<Task id={self.id} title={self.title!r} status={self.status}>"


class TaskShare(Base):
    __tablename__ = "task_shares"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    permission: Mapped[str] = mapped_column(
        Enum(*SHARE_PERMISSIONS, name="share_permission_enum"),
        nullable=False,
        default="read",
        server_default="read",
    )
    shared_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    task: Mapped["Task"] = relationship("Task", back_populates="shares")
    user: Mapped["User"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "User",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("task_id", "user_id"),
        Index("ix_task_shares_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TaskShare task_id={self.task_id} user_id={self.user_id} "
            f"permission={self.permission}>"
        )
