from typing import List, Optional
import uuid

from fastapi import APIRouter, Query, status

from textile_erp.api.deps import DB, CurrentCompany
from textile_erp.schemas.base import ApiResponse
from textile_erp.schemas.inspection import (
    InspectionTemplateCreate,
    InspectionTemplateResponse,
    InspectionCreate,
    InspectionComplete,
    InspectionResponse,
    CheckpointResultUpdate,
    InspectionCheckpointResponse,
)
from textile_erp.services.inspection_service import InspectionService

router = APIRouter(tags=["Quality Inspections"])


# ==================== TEMPLATES ====================

@router.get("/templates", response_model=ApiResponse[List[InspectionTemplateResponse]])
async def list_templates(
    db: DB,
    company: CurrentCompany,
    category: Optional[str] = Query(None),
):
    templates = await InspectionService(db).list_templates(company.id, category=category)
    return ApiResponse(data=[InspectionTemplateResponse.model_validate(t) for t in templates])


@router.post(
    "/templates",
    response_model=ApiResponse[InspectionTemplateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_template(data: InspectionTemplateCreate, db: DB, company: CurrentCompany):
    """Create an inspection template with its checkpoints (TPL###)."""
    payload = data.model_dump(exclude={"created_by"})
    template = await InspectionService(db).create_template(company.id, data.created_by, payload)
    return ApiResponse(
        message="Inspection template created successfully",
        data=InspectionTemplateResponse.model_validate(template),
    )


# ==================== INSPECTIONS ====================

@router.get("", response_model=ApiResponse[List[InspectionResponse]])
async def list_inspections(
    db: DB,
    company: CurrentCompany,
    status_filter: Optional[str] = Query(None, alias="status"),
    inspection_type: Optional[str] = Query(None, alias="inspectionType"),
):
    inspections = await InspectionService(db).list_inspections(
        company.id, status=status_filter, inspection_type=inspection_type
    )
    return ApiResponse(data=[InspectionResponse.model_validate(i) for i in inspections])


@router.post("", response_model=ApiResponse[InspectionResponse], status_code=status.HTTP_201_CREATED)
async def create_inspection(data: InspectionCreate, db: DB, company: CurrentCompany):
    """Create an inspection (INS###); checkpoints are copied from the template if one is given."""
    inspection = await InspectionService(db).create_inspection(company.id, data.model_dump())
    return ApiResponse(
        message="Inspection created successfully",
        data=InspectionResponse.model_validate(inspection),
    )


@router.get("/{inspection_id}", response_model=ApiResponse[InspectionResponse])
async def get_inspection(inspection_id: uuid.UUID, db: DB, company: CurrentCompany):
    inspection = await InspectionService(db).get_inspection(company.id, inspection_id)
    return ApiResponse(data=InspectionResponse.model_validate(inspection))


@router.post("/{inspection_id}/complete", response_model=ApiResponse[InspectionResponse])
async def complete_inspection(
    inspection_id: uuid.UUID,
    data: InspectionComplete,
    db: DB,
    company: CurrentCompany,
):
    inspection = await InspectionService(db).complete_inspection(
        company.id,
        inspection_id,
        data.result,
        quality_score=data.quality_score,
        notes=data.notes,
        recommendations=data.recommendations,
    )
    return ApiResponse(
        message="Inspection completed successfully",
        data=InspectionResponse.model_validate(inspection),
    )


@router.patch(
    "/{inspection_id}/checkpoints/{checkpoint_id}",
    response_model=ApiResponse[InspectionCheckpointResponse],
)
async def update_checkpoint(
    inspection_id: uuid.UUID,
    checkpoint_id: uuid.UUID,
    data: CheckpointResultUpdate,
    db: DB,
    company: CurrentCompany,
):
    checkpoint = await InspectionService(db).update_checkpoint(
        company.id, inspection_id, checkpoint_id, data.result, notes=data.notes
    )
    return ApiResponse(data=InspectionCheckpointResponse.model_validate(checkpoint))
