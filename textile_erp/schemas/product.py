"""Product schemas for API requests/responses."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
import uuid

from pydantic import Field

from textile_erp.schemas.base import BaseCreateSchema, BaseUpdateSchema, BaseResponseSchema
from textile_erp.schemas.category import CategoryBrief


class ProductCreate(BaseCreateSchema):
    """Product creation schema. Codes and SKU are generated when omitted."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    material: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    size: Optional[str] = Field(None, max_length=50)
    weight: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=3)
    unit_of_measure: str = Field("PCS", max_length=50)
    category_id: Optional[uuid.UUID] = None
    cost_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    selling_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    markup_percent: Optional[Decimal] = None
    stock_quantity: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=3, description="Opening stock")
    reorder_level: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=3)
    product_code: Optional[str] = Field(None, max_length=50)
    sku: Optional[str] = Field(None, max_length=100)
    barcode: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    specifications: Optional[Dict[str, Any]] = None


class ProductUpdate(BaseUpdateSchema):
    """Partial update. Stock can only change through stock adjustments."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    material: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    size: Optional[str] = Field(None, max_length=50)
    weight: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=3)
    unit_of_measure: Optional[str] = Field(None, max_length=50)
    category_id: Optional[uuid.UUID] = None
    cost_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    selling_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    markup_percent: Optional[Decimal] = None
    reorder_level: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=3)
    product_code: Optional[str] = Field(None, max_length=50)
    sku: Optional[str] = Field(None, max_length=100)
    barcode: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    specifications: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class ProductResponse(BaseResponseSchema):
    """Product response schema."""
    id: uuid.UUID
    product_id: str
    product_code: str
    sku: str
    name: str
    description: Optional[str] = None
    material: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    weight: Optional[float] = None
    unit_of_measure: str
    category_id: Optional[uuid.UUID] = None
    category: Optional[CategoryBrief] = None
    cost_price: float
    selling_price: float
    markup_percent: Optional[float] = None
    stock_quantity: float
    reorder_level: Optional[float] = None
    is_low_stock: bool = False
    barcode: Optional[str] = None
    image_url: Optional[str] = None
    specifications: Optional[Dict[str, Any]] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProductDeleteResult(BaseResponseSchema):
    id: uuid.UUID
    product_id: str
    deactivated: bool
