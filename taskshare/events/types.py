"""Change event definitions pushed to connected clients."""
from __future__ import annotations

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TaskEventType(str, Enum):
    """Event names as seen by push-channel clients."""

    TASK_CREATED = "taskCreated"
    TASK_UPDATED = "taskUpdated"
    TASK_DELETED = "taskDeleted"
    TASK_SHARED = "taskShared"
    TASK_UNSHARED = "taskUnshared"


class TaskEvent(BaseModel):
    """
    A change produced by one successful task mutation.

    task carries the serialized task for created/updated/shared events;
    deleted/unshared events only carry the id. audience lists the users
    the event is addressed to when delivery is scoped.
    """

    event_type: TaskEventType
    actor_id: uuid.UUID
    task_id: uuid.UUID
    task: dict[str, Any] | None = None
    target_user_id: uuid.UUID | None = None
    audience: frozenset[uuid.UUID] = Field(default_factory=frozenset)

    def to_message(self) -> dict[str, Any]:
        data: dict[str, Any] = {"userId": str(self.actor_id)}
        if self.task is not None:
            data["task"] = self.task
        else:
            data["taskId"] = str(self.task_id)

        if self.event_type is TaskEventType.TASK_SHARED:
            data["sharedWithUserId"] = str(self.target_user_id)
        elif self.event_type is TaskEventType.TASK_UNSHARED:
            data["unsharedUserId"] = str(self.target_user_id)

        return {"type": self.event_type.value, "data": data}
