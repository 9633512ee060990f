"""
User CRUD operations.
Extends CRUDBase with lookups by email and Google identity.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.crud.base import CRUDBase
from taskshare.models.user import User
from taskshare.schemas.user import UserUpdate


class CRUDUser(CRUDBase[User, UserUpdate]):

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_by_google_id(self, db: AsyncSession, google_id: str) -> User | None:
        result = await db.execute(select(User).where(User.google_id == google_id))
        return result.scalar_one_or_none()

    async def create_user(
        self,
        db: AsyncSession,
        *,
        email: str,
        name: str,
        hashed_password: str | None = None,
        provider: str = "local",
        google_id: str | None = None,
        avatar_url: str | None = None,
        is_verified: bool = False,
        last_login: datetime | None = None,
    ) -> User:
        user = User(
            email=email.lower(),
            name=name,
            hashed_password=hashed_password,
            provider=provider,
            google_id=google_id,
            avatar_url=avatar_url,
            is_verified=is_verified,
            last_login=last_login,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    async def set_refresh_token_hash(
        self, db: AsyncSession, *, user: User, token_hash: str | None
    ) -> User:
        return await self.update(db, db_obj=user, obj_in={"refresh_token_hash": token_hash})


crud_user = CRUDUser(User)
