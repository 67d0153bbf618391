"""
Stock Adjustment schemas for API requests/responses.

The request body is a discriminated union on ``adjustmentType``: for
inbound and outbound types ``quantity`` is a delta, for SET it is the
target stock level.
"""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union
import uuid

from pydantic import Field, RootModel

from textile_erp.schemas.base import BaseCreateSchema, BaseResponseSchema
from textile_erp.schemas.product import ProductResponse


# ==================== REQUEST SCHEMAS ====================

class _AdjustmentFields(BaseCreateSchema):
    quantity: Decimal = Field(..., gt=0, allow_inf_nan=False, max_digits=14, decimal_places=3)
    adjusted_by: str = Field(..., min_length=1, max_length=255)
    reason: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)


class DeltaAdjustment(_AdjustmentFields):
    """Adds to or subtracts from the current stock."""
    adjustment_type: Literal["ADD", "PURCHASE", "RETURN", "REMOVE", "SALE", "DAMAGE", "TRANSFER"]


class AbsoluteAdjustment(_AdjustmentFields):
    """Replaces the current stock with ``quantity`` (physical count)."""
    adjustment_type: Literal["SET"]


class StockAdjustmentCreate(
    RootModel[Annotated[Union[DeltaAdjustment, AbsoluteAdjustment], Field(discriminator="adjustment_type")]]
):
    """Request body of POST /products/{id}/stock-adjustments; the variant is in ``root``."""


class StockTransferCreate(BaseCreateSchema):
    """Move stock from the path product to ``destinationProductId``."""
    destination_product_id: uuid.UUID
    quantity: Decimal = Field(..., gt=0, allow_inf_nan=False, max_digits=14, decimal_places=3)
    adjusted_by: str = Field(..., min_length=1, max_length=255)
    reason: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)


# ==================== RESPONSE SCHEMAS ====================

class StockAdjustmentResponse(BaseResponseSchema):
    """Stock adjustment response schema."""
    id: uuid.UUID
    adjustment_id: str
    product_id: uuid.UUID
    adjustment_type: str
    quantity: float
    previous_stock: float
    new_stock: float
    reason: Optional[str] = None
    notes: Optional[str] = None
    adjusted_by: str
    created_at: datetime


class StockAdjustmentResult(BaseResponseSchema):
    """Product after the adjustment and the ledger entry that describes it."""
    product: ProductResponse
    adjustment: StockAdjustmentResponse


class StockTransferResult(BaseResponseSchema):
    outbound: StockAdjustmentResult
    inbound: StockAdjustmentResult


class AdjustmentTypeInfo(BaseResponseSchema):
    value: str
    label: str
    direction: str


class ProductDetailResponse(ProductResponse):
    """Product with its most recent stock adjustments."""
    recent_adjustments: List[StockAdjustmentResponse] = []
