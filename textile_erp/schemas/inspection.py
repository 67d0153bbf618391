"""Quality inspection schemas for API requests/responses."""
from datetime import datetime
from typing import List, Optional
import uuid

from pydantic import Field

from textile_erp.models import InspectionType, EvaluationType
from textile_erp.schemas.base import BaseCreateSchema, BaseResponseSchema


# ==================== TEMPLATES ====================

class TemplateCheckpointCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    evaluation_type: EvaluationType
    is_required: bool = True
    order_index: Optional[int] = Field(None, ge=0)


class InspectionTemplateCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    applicable_to: List[str] = []
    passing_score: int = Field(70, ge=0, le=100)
    created_by: str = Field(..., min_length=1, max_length=255)
    checkpoints: List[TemplateCheckpointCreate] = []


class TemplateCheckpointResponse(BaseResponseSchema):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    evaluation_type: str
    is_required: bool
    order_index: int


class InspectionTemplateResponse(BaseResponseSchema):
    id: uuid.UUID
    template_id: str
    name: str
    description: Optional[str] = None
    category: str
    applicable_to: List[str] = []
    passing_score: int
    created_by: str
    checkpoints: List[TemplateCheckpointResponse] = []
    created_at: datetime


# ==================== INSPECTIONS ====================

class InspectionCreate(BaseCreateSchema):
    inspection_type: InspectionType
    reference_type: str = Field(..., min_length=1, max_length=50)
    reference_id: str = Field(..., min_length=1, max_length=100)
    inspector_name: Optional[str] = Field(None, max_length=255)
    template_id: Optional[uuid.UUID] = None
    scheduled_date: Optional[datetime] = None


class InspectionComplete(BaseCreateSchema):
    """PASS and FAIL map to PASSED / FAILED; any other result is CONDITIONAL."""
    result: str = Field(..., min_length=1, max_length=20)
    quality_score: Optional[float] = Field(None, ge=0, le=100)
    notes: Optional[str] = None
    recommendations: Optional[str] = None


class CheckpointResultUpdate(BaseCreateSchema):
    result: str = Field(..., min_length=1, max_length=50)
    notes: Optional[str] = None


class InspectionCheckpointResponse(BaseResponseSchema):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    evaluation_type: str
    order_index: int
    result: Optional[str] = None
    notes: Optional[str] = None


class InspectionResponse(BaseResponseSchema):
    id: uuid.UUID
    inspection_number: str
    inspection_type: str
    reference_type: str
    reference_id: str
    inspector_name: Optional[str] = None
    template_id: Optional[uuid.UUID] = None
    scheduled_date: Optional[datetime] = None
    status: str
    overall_result: Optional[str] = None
    quality_score: Optional[float] = None
    inspector_notes: Optional[str] = None
    recommendations: Optional[str] = None
    completed_at: Optional[datetime] = None
    checkpoints: List[InspectionCheckpointResponse] = []
    created_at: datetime
