"""Product category schemas for API requests/responses."""
from datetime import datetime
from typing import Optional
import uuid

from pydantic import Field

from textile_erp.schemas.base import BaseCreateSchema, BaseResponseSchema


class CategoryCreate(BaseCreateSchema):
    """Category creation schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    parent_id: Optional[uuid.UUID] = None


class CategoryBrief(BaseResponseSchema):
    """Category as embedded in product responses."""
    id: uuid.UUID
    category_id: str
    name: str


class CategoryResponse(CategoryBrief):
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    is_active: bool
    created_at: datetime
