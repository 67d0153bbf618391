"""Company schemas for API requests/responses."""
from datetime import datetime
import uuid

from pydantic import Field

from textile_erp.schemas.base import BaseCreateSchema, BaseResponseSchema


class CompanyCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=255)


class CompanyResponse(BaseResponseSchema):
    id: uuid.UUID
    company_code: str
    name: str
    is_active: bool
    created_at: datetime
