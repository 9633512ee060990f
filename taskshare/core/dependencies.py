"""
FastAPI dependency injection functions.
Provides get_db, get_current_user and get_current_actor.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.core.access import Actor
from taskshare.core.exceptions import InvalidTokenException, UnauthorizedException
from taskshare.core.security import decode_access_token
from taskshare.crud.user import crud_user
from taskshare.db.session import get_db
from taskshare.models.user import User

# Re-export get_db so routes can import from one place
__all__ = ["get_db", "get_current_user", "get_current_actor", "DBSession", "CurrentUser", "CurrentActor"]

bearer_scheme = HTTPBearer(auto_error=False)


def user_id_from_token(token: str) -> uuid.UUID:
    """Validate an access token and return its subject. Raises InvalidTokenException."""
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise InvalidTokenException("Invalid or expired access token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise InvalidTokenException("Malformed token: missing subject")

    try:
        return uuid.UUID(user_id_str)
    except ValueError:
        raise InvalidTokenException("Malformed token: invalid subject format")


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> User:
    """
    Extract and validate the JWT access token from the Authorization header.
    Returns the authenticated User model.
    """
    if credentials is None:
        raise UnauthorizedException("Access denied. No token provided.")

    user = await crud_user.get(db, user_id_from_token(credentials.credentials))
    if user is None:
        raise UnauthorizedException("Invalid token. User not found.")
    return user


async def get_current_actor(
    current_user: Annotated[User, Depends(get_current_user)],
) -> Actor:
    """The authenticated user as the service layer sees it."""
    return Actor(id=current_user.id, email=current_user.email, name=current_user.name)


# Convenience type aliases for route signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
