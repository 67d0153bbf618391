from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy import text

from textile_erp.api.deps import DB
from textile_erp.api.v1.router import api_router
from textile_erp.config import settings
from textile_erp.core.exceptions import (
    InventoryError,
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    ConflictError,
)
from textile_erp.database import init_db


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# Error kind -> HTTP status. Checked in order, first isinstance match wins.
ERROR_STATUS_CODES = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
)


def status_code_for(exc: InventoryError) -> int:
    for error_cls, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_cls):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create any missing tables (migrations remain the source of truth in production)
    """
    # Startup
    logger.info("Starting %s v%s", settings.APP_NAME, settings.APP_VERSION)
    await init_db()

    yield

    # Shutdown
    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "Companies", "description": "Tenant provisioning"},
    {"name": "Products", "description": "Product catalog, stock adjustments and transfers"},
    {"name": "Categories", "description": "Per-company product categories"},
    {"name": "Stock Adjustments", "description": "Append-only stock ledger"},
    {"name": "Identifiers", "description": "Preview of the next sequential identifier"},
    {"name": "Quality Inspections", "description": "Inspection templates and inspections"},
]

API_DESCRIPTION = """
## Textile ERP Inventory API

Every tenant-scoped endpoint requires the `X-Company-ID` header.

### Error Codes
| Code | Description |
|------|-------------|
| 400 | Validation failed or invalid adjustment type |
| 404 | Resource doesn't exist for this company |
| 409 | Insufficient stock, duplicate or concurrent modification |
| 500 | Internal Server Error |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    """Map domain errors to {success: false, error: kind, message}."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("Unmapped %s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": exc.kind, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Schema failures are client errors (400), like the domain ValidationError."""
    errors = exc.errors()
    kind = ValidationError.kind
    message = "Validation error"

    # Unknown adjustmentType fails the body's discriminator
    if any(error.get("type") in ("union_tag_invalid", "union_tag_not_found") for error in errors):
        kind = "INVALID_ADJUSTMENT_TYPE"
        message = "Invalid adjustment type"

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": kind,
            "message": message,
            "errors": jsonable_encoder(errors, exclude={"ctx", "url"}),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log the traceback and hide internals from the client."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "INTERNAL_ERROR", "message": "Internal server error"},
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(db: DB):
    """Health check endpoint with database validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        health_status["checks"]["database"] = "connected"
    except Exception as e:
        logger.warning("Health check database probe failed: %s", e)
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
