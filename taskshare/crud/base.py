"""
Shared async persistence helpers for ORM models keyed by a UUID ``id``.
User and task CRUD classes build their domain queries on top of these.
"""
from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import exists as sql_exists
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PatchSchemaType = TypeVar("PatchSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, PatchSchemaType]):
    """
    ModelType is the mapped class; PatchSchemaType is the pydantic model
    whose explicitly-set fields may be applied by ``update``.
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model = model

    async def get(self, db: AsyncSession, id: uuid.UUID) -> ModelType | None:
        return await db.get(self.model, id)

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: PatchSchemaType | Mapping[str, Any],
    ) -> ModelType:
        """Apply a patch, flush, and return the row as stored."""
        if isinstance(obj_in, BaseModel):
            changes = obj_in.model_dump(exclude_unset=True)
        else:
            changes = dict(obj_in)

        for name, value in changes.items():
            setattr(db_obj, name, value)

        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def remove(self, db: AsyncSession, *, db_obj: ModelType) -> None:
        await db.delete(db_obj)
        await db.flush()

    async def exists(self, db: AsyncSession, **filters: Any) -> bool:
        """True if at least one row matches every ``column=value`` filter."""
        conditions = [getattr(self.model, column) == value for column, value in filters.items()]
        result = await db.execute(select(sql_exists().where(*conditions).select_from(self.model)))
        return bool(result.scalar())
