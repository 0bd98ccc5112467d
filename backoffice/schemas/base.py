"""
Base Schema Classes for Pydantic Models

RULE: All response schemas that read from ORM models inherit from
BaseResponseSchema.
"""

from typing import Generic, List, TypeVar
from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Base class for response schemas that read from ORM models.

    UUIDs and datetimes serialize to strings in JSON mode.
    """
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """Base class for create/input schemas. Unknown fields are rejected."""
    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
    )


T = TypeVar("T")


class ListResponse(BaseModel, Generic[T]):
    """Paginated list envelope."""
    items: List[T]
    total: int
    page: int = 1
    size: int = 50
    pages: int = 1
