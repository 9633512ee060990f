"""
Task Pydantic schemas.
Includes create/update/read variants, sharing payloads, the list filter
and the statistics view.
"""
from __future__ import annotations

import uuid
from typing import Literal

from pydantic import EmailStr, Field, ValidationInfo, field_validator, model_validator

from taskshare.core.clock import utc_now
from taskshare.models.task import is_overdue
from taskshare.schemas.common import CamelModel, UtcDatetime
from taskshare.schemas.pagination import Pagination
from taskshare.schemas.user import UserReadPublic

TaskStatus = Literal["pending", "in-progress", "completed"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
SharePermissionLiteral = Literal["read", "edit"]
SortOrder = Literal["asc", "desc"]

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
MAX_TAGS = 10
TAG_MAX_LENGTH = 30


def _clean_title(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Task title is required")
    if len(v) > TITLE_MAX_LENGTH:
        raise ValueError(f"Task title cannot exceed {TITLE_MAX_LENGTH} characters")
    return v


def _clean_description(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if len(v) > DESCRIPTION_MAX_LENGTH:
        raise ValueError(
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"
        )
    return v or None


def _clean_tags(v: list[str] | None) -> list[str]:
    if v is None:
        return []
    if len(v) > MAX_TAGS:
        raise ValueError(f"Cannot have more than {MAX_TAGS} tags")
    cleaned = [tag.strip() for tag in v]
    if any(not 1 <= len(tag) <= TAG_MAX_LENGTH for tag in cleaned):
        raise ValueError(f"Each tag must be between 1 and {TAG_MAX_LENGTH} characters")
    # Tags form a set; keep first-seen order
    return list(dict.fromkeys(cleaned))


# ── Create ────────────────────────────────────────────────────────────────────

class TaskCreate(CamelModel):
    title: str
    description: str | None = None
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    due_date: UtcDatetime | None = None
    tags: list[str] = Field(default_factory=list)

    check_title = field_validator("title")(_clean_title)
    check_description = field_validator("description")(_clean_description)
    check_tags = field_validator("tags")(_clean_tags)


# ── Update ────────────────────────────────────────────────────────────────────

class TaskUpdate(CamelModel):
    """
    Partial update. Only fields present in the request are applied.
    An explicit null clears description, dueDate and tags.
    version, when sent, must equal the stored version.
    """

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: UtcDatetime | None = None
    tags: list[str] | None = None
    is_archived: bool | None = None
    version: int | None = Field(default=None, ge=1)

    @field_validator("title", "status", "priority", "is_archived", mode="before")
    @classmethod
    def reject_null(cls, v: object) -> object:
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    check_title = field_validator("title")(_clean_title)
    check_description = field_validator("description")(_clean_description)
    check_tags = field_validator("tags")(_clean_tags)


# ── Sharing ───────────────────────────────────────────────────────────────────

class TaskShareRequest(CamelModel):
    email: EmailStr
    permission: SharePermissionLiteral = "read"

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class TaskUnshareRequest(CamelModel):
    user_id: uuid.UUID


# ── Read ──────────────────────────────────────────────────────────────────────

class TaskShareRead(CamelModel):
    user: UserReadPublic
    permission: str
    shared_at: UtcDatetime


class TaskRead(CamelModel):
    id: uuid.UUID
    title: str
    description: str | None
    status: str
    priority: str
    due_date: UtcDatetime | None
    owner_id: uuid.UUID
    owner: UserReadPublic | None = None
    shared_with: list[TaskShareRead] = Field(default_factory=list)
    tags: list[str]
    is_archived: bool
    completed_at: UtcDatetime | None
    version: int
    created_at: UtcDatetime
    updated_at: UtcDatetime

    is_overdue: bool = False

    @model_validator(mode="after")
    def compute_overdue(self, info: ValidationInfo) -> TaskRead:
        """Derived, never stored. Callers may pass `now` in the validation context."""
        now = (info.context or {}).get("now") or utc_now()
        self.is_overdue = is_overdue(self.due_date, self.status, now)
        return self


class TaskData(CamelModel):
    task: TaskRead


class TaskListData(CamelModel):
    tasks: list[TaskRead]
    pagination: Pagination


# ── Filter ────────────────────────────────────────────────────────────────────

class TaskFilter(CamelModel):
    """Query parameters for the task list endpoint."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    is_overdue: bool | None = None
    is_archived: bool = False
    search: str | None = Field(default=None, max_length=200)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: str = "createdAt"
    sort_order: SortOrder = "desc"


# ── Statistics ────────────────────────────────────────────────────────────────

class TaskStats(CamelModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0


class TaskStatsData(CamelModel):
    stats: TaskStats
