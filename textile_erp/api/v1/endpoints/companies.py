import uuid

from fastapi import APIRouter, status

from textile_erp.api.deps import DB
from textile_erp.schemas.base import ApiResponse
from textile_erp.schemas.company import CompanyCreate, CompanyResponse
from textile_erp.services.company_service import CompanyService

router = APIRouter(tags=["Companies"])


@router.post("", response_model=ApiResponse[CompanyResponse], status_code=status.HTTP_201_CREATED)
async def create_company(data: CompanyCreate, db: DB):
    """Provision a new company (tenant) with the next C### code."""
    company = await CompanyService(db).create_company(data.name)
    return ApiResponse(
        message="Company created successfully",
        data=CompanyResponse.model_validate(company),
    )


@router.get("/{company_id}", response_model=ApiResponse[CompanyResponse])
async def get_company(company_id: uuid.UUID, db: DB):
    company = await CompanyService(db).get_company(company_id)
    return ApiResponse(data=CompanyResponse.model_validate(company))
