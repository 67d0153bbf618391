from fastapi import APIRouter

from textile_erp.api.v1.endpoints import (
    # Tenants
    companies,
    # Product Catalog
    categories,
    products,
    # Inventory Ledger
    stock_adjustments,
    identifiers,
    # Quality
    inspections,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Tenants ====================
api_router.include_router(
    companies.router,
    prefix="/companies",
    tags=["Companies"]
)

# ==================== Product Catalog ====================
api_router.include_router(
    categories.router,
    prefix="/categories",
    tags=["Categories"]
)
api_router.include_router(
    products.router,
    prefix="/products",
    tags=["Products"]
)

# ==================== Inventory Ledger ====================
api_router.include_router(
    stock_adjustments.router,
    prefix="/stock-adjustments",
    tags=["Stock Adjustments"]
)
api_router.include_router(
    identifiers.router,
    prefix="/identifiers",
    tags=["Identifiers"]
)

# ==================== Quality ====================
api_router.include_router(
    inspections.router,
    prefix="/inspections",
    tags=["Quality Inspections"]
)
