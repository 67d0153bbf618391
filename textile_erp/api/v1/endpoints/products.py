from decimal import Decimal
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from textile_erp.api.deps import DB, CurrentCompany
from textile_erp.schemas.base import ApiResponse, PaginatedData, Pagination
from textile_erp.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductDeleteResult,
)
from textile_erp.schemas.stock_adjustment import (
    StockAdjustmentCreate,
    StockAdjustmentResponse,
    StockAdjustmentResult,
    StockTransferCreate,
    StockTransferResult,
    ProductDetailResponse,
)
from textile_erp.services.product_service import ProductService
from textile_erp.services.stock_ledger_service import StockLedgerService, LedgerResult

router = APIRouter(tags=["Products"])


def _ledger_result(result: LedgerResult) -> StockAdjustmentResult:
    return StockAdjustmentResult(
        product=ProductResponse.model_validate(result.product),
        adjustment=StockAdjustmentResponse.model_validate(result.adjustment),
    )


@router.get("", response_model=ApiResponse[PaginatedData[ProductResponse]])
async def list_products(
    db: DB,
    company: CurrentCompany,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    category_id: Optional[uuid.UUID] = Query(None, alias="categoryId"),
    search: Optional[str] = Query(None, description="Search in name, code, SKU and description"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    low_stock: bool = Query(False, alias="lowStock", description="Stock at or below the reorder level"),
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
):
    """Get paginated products of the company, newest first."""
    products, total = await ProductService(db).list_products(
        company.id,
        category_id=category_id,
        search=search,
        is_active=is_active,
        low_stock=low_stock,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
    )

    return ApiResponse(
        data=PaginatedData[ProductResponse](
            items=[ProductResponse.model_validate(p) for p in products],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post("", response_model=ApiResponse[ProductResponse], status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate, db: DB, company: CurrentCompany):
    product = await ProductService(db).create_product(company.id, data.model_dump())
    return ApiResponse(
        message="Product created successfully",
        data=ProductResponse.model_validate(product),
    )


@router.get("/{product_id}", response_model=ApiResponse[ProductDetailResponse])
async def get_product(product_id: uuid.UUID, db: DB, company: CurrentCompany):
    """Get a product with its category and most recent stock adjustments."""
    product, adjustments = await ProductService(db).get_product(company.id, product_id)
    detail = ProductDetailResponse(
        **ProductResponse.model_validate(product).model_dump(),
        recent_adjustments=[StockAdjustmentResponse.model_validate(a) for a in adjustments],
    )
    return ApiResponse(data=detail)


@router.patch("/{product_id}", response_model=ApiResponse[ProductResponse])
async def update_product(product_id: uuid.UUID, data: ProductUpdate, db: DB, company: CurrentCompany):
    product = await ProductService(db).update_product(
        company.id, product_id, data.model_dump(exclude_unset=True)
    )
    return ApiResponse(
        message="Product updated successfully",
        data=ProductResponse.model_validate(product),
    )


@router.delete("/{product_id}", response_model=ApiResponse[ProductDeleteResult])
async def delete_product(product_id: uuid.UUID, db: DB, company: CurrentCompany):
    """
    Delete a product.

    Products with stock history are deactivated instead so their ledger
    entries stay intact.
    """
    product, deactivated = await ProductService(db).delete_product(company.id, product_id)
    message = (
        "Product has stock history and was deactivated"
        if deactivated
        else "Product deleted successfully"
    )
    return ApiResponse(
        message=message,
        data=ProductDeleteResult(id=product.id, product_id=product.product_id, deactivated=deactivated),
    )


# ==================== STOCK ====================

@router.post(
    "/{product_id}/stock-adjustments",
    response_model=ApiResponse[StockAdjustmentResult],
    status_code=status.HTTP_201_CREATED,
)
async def adjust_stock(
    product_id: uuid.UUID,
    data: StockAdjustmentCreate,
    db: DB,
    company: CurrentCompany,
):
    """
    Adjust the product's stock and record the ledger entry.

    Returns the updated product and the adjustment with previous and new stock.
    """
    result = await ProductService(db).adjust_stock(company.id, product_id, data.root.model_dump())
    return ApiResponse(
        message="Stock adjusted successfully",
        data=_ledger_result(result),
    )


@router.get(
    "/{product_id}/stock-adjustments",
    response_model=ApiResponse[PaginatedData[StockAdjustmentResponse]],
)
async def get_stock_history(
    product_id: uuid.UUID,
    db: DB,
    company: CurrentCompany,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    """Ledger entries for one product, newest first."""
    product, _ = await ProductService(db).get_product(company.id, product_id)
    adjustments, total = await StockLedgerService(db).list_adjustments(
        company.id,
        product_id=product.id,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedData[StockAdjustmentResponse](
            items=[StockAdjustmentResponse.model_validate(a) for a in adjustments],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post(
    "/{product_id}/transfer",
    response_model=ApiResponse[StockTransferResult],
    status_code=status.HTTP_201_CREATED,
)
async def transfer_stock(
    product_id: uuid.UUID,
    data: StockTransferCreate,
    db: DB,
    company: CurrentCompany,
):
    """Move stock to another product of the same company in one transaction."""
    result = await StockLedgerService(db).transfer_stock(
        company.id,
        product_id,
        data.destination_product_id,
        data.quantity,
        data.adjusted_by,
        reason=data.reason,
        notes=data.notes,
    )
    return ApiResponse(
        message="Stock transferred successfully",
        data=StockTransferResult(
            outbound=_ledger_result(result.outbound),
            inbound=_ledger_result(result.inbound),
        ),
    )
