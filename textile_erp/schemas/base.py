"""
Base Schema Classes for Pydantic Models

All API payloads are camelCase on the wire and snake_case in Python.
The alias generator handles the mapping; ``populate_by_name`` lets tests
and services build schemas with Python names.

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
"""

from math import ceil
from typing import Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class ProductResponse(BaseResponseSchema):
            id: UUID
            product_id: str          # serialized as "productId"
            category_id: Optional[UUID] = None
    """
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    Accepts camelCase keys from clients. Unknown fields are ignored.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/patch schemas.

    All fields are optional by default for partial updates; use
    ``model_dump(exclude_unset=True)`` to get only what the client sent.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every endpoint: {success, message, data}."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class Pagination(BaseResponseSchema):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=ceil(total / limit) if total > 0 else 1)


class PaginatedData(BaseModel, Generic[T]):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: List[T]
    pagination: Pagination


# Type aliases for common UUID patterns
OptionalUUID = Optional[UUID]
