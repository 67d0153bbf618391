from typing import List

from fastapi import APIRouter, status

from textile_erp.api.deps import DB, CurrentCompany
from textile_erp.schemas.base import ApiResponse
from textile_erp.schemas.category import CategoryCreate, CategoryResponse
from textile_erp.services.product_service import ProductService

router = APIRouter(tags=["Categories"])


@router.get("", response_model=ApiResponse[List[CategoryResponse]])
async def list_categories(db: DB, company: CurrentCompany):
    """Get the company's active categories, by name."""
    categories = await ProductService(db).list_categories(company.id)
    return ApiResponse(data=[CategoryResponse.model_validate(c) for c in categories])


@router.post("", response_model=ApiResponse[CategoryResponse], status_code=status.HTTP_201_CREATED)
async def create_category(data: CategoryCreate, db: DB, company: CurrentCompany):
    category = await ProductService(db).create_category(
        company.id,
        data.name,
        description=data.description,
        parent_id=data.parent_id,
    )
    return ApiResponse(
        message="Category created successfully",
        data=CategoryResponse.model_validate(category),
    )
