"""
User Pydantic schemas.
Covers registration, login, profile reads/updates, and token responses.
"""
from __future__ import annotations

import uuid

from pydantic import EmailStr, Field, field_validator

from taskshare.core.security import validate_password_strength
from taskshare.schemas.common import CamelModel, UtcDatetime


# ── Create ────────────────────────────────────────────────────────────────────

class UserCreate(CamelModel):
    email: EmailStr
    name: str = Field(min_length=2, max_length=50)
    password: str = Field(max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


# ── Update ────────────────────────────────────────────────────────────────────

class UserUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=2, max_length=50)
    avatar_url: str | None = Field(default=None, max_length=500)


# ── Read ──────────────────────────────────────────────────────────────────────

class UserRead(CamelModel):
    id: uuid.UUID
    email: EmailStr
    name: str
    avatar_url: str | None
    provider: str
    is_verified: bool
    last_login: UtcDatetime | None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class UserReadPublic(CamelModel):
    """Minimal public profile, safe to expose in task responses."""

    id: uuid.UUID
    name: str
    email: EmailStr
    avatar_url: str | None


# ── Auth payloads ─────────────────────────────────────────────────────────────

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class RefreshTokenRequest(CamelModel):
    refresh_token: str


class Token(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthData(CamelModel):
    user: UserRead
    token: str
    refresh_token: str


class UserData(CamelModel):
    user: UserRead


class ExternalIdentity(CamelModel):
    """Identity asserted by an external provider after a verified OAuth exchange."""

    provider: str
    subject: str
    email: EmailStr
    name: str
    avatar_url: str | None = None
