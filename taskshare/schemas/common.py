"""
Shared schema building blocks.
CamelModel gives every public schema camelCase JSON keys while keeping
snake_case attribute names in Python. ApiResponse is the envelope every
route returns.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from taskshare.core.clock import as_utc

T = TypeVar("T")

# Datetimes read back from SQLite are naive; stored values are always UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    """{success, message?, data?} envelope for successful responses."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class FieldError(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Shape produced by the exception handlers; documented for OpenAPI."""

    success: bool = False
    message: str
    errors: list[FieldError] | None = None
