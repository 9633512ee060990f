"""
Task access control.

A pure decision table over the relation between an actor and a task:
the owner holds every right, a shared user holds the rights granted by
their permission level, anyone else holds none. Decisions only look at
the actor id and the task's owner / shared-access snapshot.
"""
from __future__ import annotations

import enum
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol


class SharePermission(str, enum.Enum):
    READ = "read"
    EDIT = "edit"


class Action(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    SHARE = "share"


class ShareEntry(Protocol):
    user_id: uuid.UUID
    permission: str


class TaskAccessView(Protocol):
    owner_id: uuid.UUID

    @property
    def shares(self) -> Iterable[ShareEntry]: ...


@dataclass(frozen=True)
class Actor:
    """The authenticated user as seen by the service layer."""

    id: uuid.UUID
    email: str
    name: str


@dataclass(frozen=True)
class Owner:
    pass


@dataclass(frozen=True)
class Shared:
    permission: SharePermission


Relation = Owner | Shared | None


_OWNER_RIGHTS = frozenset(Action)

_SHARED_RIGHTS: dict[SharePermission, frozenset[Action]] = {
    SharePermission.READ: frozenset({Action.VIEW}),
    SharePermission.EDIT: frozenset({Action.VIEW, Action.EDIT}),
}


def relation_of(actor_id: uuid.UUID, task: TaskAccessView) -> Relation:
    if task.owner_id == actor_id:
        return Owner()
    for share in task.shares:
        if share.user_id == actor_id:
            return Shared(SharePermission(share.permission))
    return None


def allowed_actions(relation: Relation) -> frozenset[Action]:
    if isinstance(relation, Owner):
        return _OWNER_RIGHTS
    if isinstance(relation, Shared):
        return _SHARED_RIGHTS[relation.permission]
    return frozenset()


def is_allowed(actor_id: uuid.UUID, task: TaskAccessView, action: Action) -> bool:
    return action in allowed_actions(relation_of(actor_id, task))


def can_view(actor_id: uuid.UUID, task: TaskAccessView) -> bool:
    return is_allowed(actor_id, task, Action.VIEW)


def can_edit(actor_id: uuid.UUID, task: TaskAccessView) -> bool:
    return is_allowed(actor_id, task, Action.EDIT)


def can_delete(actor_id: uuid.UUID, task: TaskAccessView) -> bool:
    return is_allowed(actor_id, task, Action.DELETE)


def can_share(actor_id: uuid.UUID, task: TaskAccessView) -> bool:
    return is_allowed(actor_id, task, Action.SHARE)
