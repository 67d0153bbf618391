from typing import List, Optional
import uuid

from fastapi import APIRouter, Query

from textile_erp.api.deps import DB, CurrentCompany
from textile_erp.models import StockAdjustmentType
from textile_erp.schemas.base import ApiResponse, PaginatedData, Pagination
from textile_erp.schemas.stock_adjustment import StockAdjustmentResponse, AdjustmentTypeInfo
from textile_erp.services.stock_ledger_service import StockLedgerService

router = APIRouter(tags=["Stock Adjustments"])


@router.get("", response_model=ApiResponse[PaginatedData[StockAdjustmentResponse]])
async def list_stock_adjustments(
    db: DB,
    company: CurrentCompany,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    product_id: Optional[uuid.UUID] = Query(None, alias="productId"),
    adjustment_type: Optional[str] = Query(None, alias="adjustmentType"),
):
    """Get the company's stock ledger, newest first."""
    adjustments, total = await StockLedgerService(db).list_adjustments(
        company.id,
        product_id=product_id,
        adjustment_type=adjustment_type,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedData[StockAdjustmentResponse](
            items=[StockAdjustmentResponse.model_validate(a) for a in adjustments],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/meta/types", response_model=ApiResponse[List[AdjustmentTypeInfo]])
async def get_adjustment_types():
    """List adjustment types and how each one moves stock."""
    return ApiResponse(
        data=[
            AdjustmentTypeInfo(value=t.value, label=t.label, direction=t.direction.value)
            for t in StockAdjustmentType
        ]
    )


@router.get("/{adjustment_id}", response_model=ApiResponse[StockAdjustmentResponse])
async def get_stock_adjustment(adjustment_id: uuid.UUID, db: DB, company: CurrentCompany):
    adjustment = await StockLedgerService(db).get_adjustment(company.id, adjustment_id)
    return ApiResponse(data=StockAdjustmentResponse.model_validate(adjustment))
