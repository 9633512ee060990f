"""
Authentication service.
Handles registration, login, token refresh, logout, profile edits, and
linking of Google identities. Routes only call these methods.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.core.clock import utc_now
from taskshare.core.exceptions import (
    ConflictException,
    InvalidTokenException,
    UnauthorizedException,
)
from taskshare.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    hash_token,
    verify_password,
)
from taskshare.crud.user import crud_user
from taskshare.models.user import User
from taskshare.schemas.user import ExternalIdentity, Token, UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class AuthService:

    async def register_user(
        self, db: AsyncSession, *, user_in: UserCreate
    ) -> tuple[User, Token]:
        """
        Register a local-credential user and sign them in.
        Local accounts are verified on creation.
        """
        if await crud_user.exists(db, email=user_in.email):
            raise ConflictException("User already exists with this email")

        user = await self._create_user(
            db,
            email=user_in.email,
            name=user_in.name,
            hashed_password=hash_password(user_in.password),
            provider="local",
            is_verified=True,
        )
        logger.info("User registered: user_id=%s", user.id)
        return user, await self.issue_tokens(db, user=user)

    async def authenticate_user(
        self, db: AsyncSession, *, email: str, password: str
    ) -> tuple[User, Token]:
        """Verify credentials, stamp last_login and issue a token pair."""
        user = await crud_user.get_by_email(db, email)
        if user is None or not verify_password(password, user.hashed_password):
            raise UnauthorizedException("Invalid email or password")

        user = await crud_user.update(db, db_obj=user, obj_in={"last_login": utc_now()})
        logger.info("User logged in: user_id=%s", user.id)
        return user, await self.issue_tokens(db, user=user)

    async def login_external(
        self, db: AsyncSession, *, identity: ExternalIdentity
    ) -> tuple[User, Token]:
        """
        Sign in with a verified Google identity.
        Matches by Google id, then links an existing account with the same
        email, otherwise creates a new verified Google user.
        """
        now = utc_now()
        user = await crud_user.get_by_google_id(db, identity.subject)
        if user is not None:
            user = await crud_user.update(db, db_obj=user, obj_in={"last_login": now})
            return user, await self.issue_tokens(db, user=user)

        user = await crud_user.get_by_email(db, identity.email)
        if user is not None:
            user = await crud_user.update(
                db,
                db_obj=user,
                obj_in={
                    "google_id": identity.subject,
                    "provider": identity.provider,
                    "avatar_url": identity.avatar_url or user.avatar_url,
                    "is_verified": True,
                    "last_login": now,
                },
            )
            logger.info("Linked %s identity to user_id=%s", identity.provider, user.id)
            return user, await self.issue_tokens(db, user=user)

        user = await self._create_user(
            db,
            email=identity.email,
            name=identity.name,
            provider=identity.provider,
            google_id=identity.subject,
            avatar_url=identity.avatar_url,
            is_verified=True,
            last_login=now,
        )
        logger.info("User created from %s identity: user_id=%s", identity.provider, user.id)
        return user, await self.issue_tokens(db, user=user)

    async def issue_tokens(self, db: AsyncSession, *, user: User) -> Token:
        """Issue an access + refresh pair and remember the refresh token hash."""
        access_token = create_access_token(str(user.id))
        refresh_token = create_refresh_token(str(user.id))
        await crud_user.set_refresh_token_hash(
            db, user=user, token_hash=hash_token(refresh_token)
        )
        return Token(access_token=access_token, refresh_token=refresh_token)

    async def refresh_access_token(
        self, db: AsyncSession, *, refresh_token: str
    ) -> Token:
        """
        Validate the refresh token, issue a new access token,
        and rotate the refresh token.
        """
        try:
            payload = decode_refresh_token(refresh_token)
            user_id = uuid.UUID(payload.get("sub", ""))
        except Exception:
            raise InvalidTokenException("Invalid or expired refresh token")

        user = await crud_user.get(db, user_id)
        if user is None:
            raise UnauthorizedException("User not found")

        if user.refresh_token_hash != hash_token(refresh_token):
            raise InvalidTokenException("Refresh token has been revoked")

        return await self.issue_tokens(db, user=user)

    async def logout(self, db: AsyncSession, *, user: User) -> None:
        """Invalidate the stored refresh token hash."""
        await crud_user.set_refresh_token_hash(db, user=user, token_hash=None)
        logger.info("User logged out: user_id=%s", user.id)

    async def update_profile(
        self, db: AsyncSession, *, user: User, user_in: UserUpdate
    ) -> User:
        """Update name and avatar. Omitted fields are left unchanged."""
        changes = user_in.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return user
        return await crud_user.update(db, db_obj=user, obj_in=changes)

    @staticmethod
    async def _create_user(db: AsyncSession, **fields: Any) -> User:
        # A concurrent signup can win the race past the existence checks
        try:
            return await crud_user.create_user(db, **fields)
        except IntegrityError:
            logger.info("Concurrent signup rejected for email=%s", fields["email"])
            raise ConflictException("User already exists with this email")


auth_service = AuthService()
