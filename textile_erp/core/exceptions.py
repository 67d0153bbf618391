"""
Typed errors raised by the inventory core.

Each error carries a stable ``kind`` that the HTTP boundary maps to a
status code (see ``textile_erp.main``). Services never deal in status codes.
"""
from decimal import Decimal
from typing import Optional


class InventoryError(Exception):
    """Base class for all domain errors."""
    kind = "INVENTORY_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ==================== VALIDATION ====================

class ValidationError(InventoryError):
    """Malformed or missing input, detected before any write."""
    kind = "VALIDATION_ERROR"


class InvalidAdjustmentTypeError(ValidationError):
    kind = "INVALID_ADJUSTMENT_TYPE"

    def __init__(self, adjustment_type):
        super().__init__(f"Invalid adjustment type: {adjustment_type}")
        self.adjustment_type = adjustment_type


# ==================== NOT FOUND ====================

class NotFoundError(InventoryError):
    kind = "NOT_FOUND"


class CompanyNotFoundError(NotFoundError):
    kind = "COMPANY_NOT_FOUND"

    def __init__(self, message: str = "Company not found"):
        super().__init__(message)


class ProductNotFoundError(NotFoundError):
    kind = "PRODUCT_NOT_FOUND"

    def __init__(self, message: str = "Product not found"):
        super().__init__(message)


class CategoryNotFoundError(NotFoundError):
    kind = "CATEGORY_NOT_FOUND"

    def __init__(self, message: str = "Invalid category for this company"):
        super().__init__(message)


class AdjustmentNotFoundError(NotFoundError):
    kind = "ADJUSTMENT_NOT_FOUND"

    def __init__(self, message: str = "Stock adjustment not found"):
        super().__init__(message)


class InspectionNotFoundError(NotFoundError):
    kind = "INSPECTION_NOT_FOUND"

    def __init__(self, message: str = "Inspection not found"):
        super().__init__(message)


class TemplateNotFoundError(NotFoundError):
    kind = "TEMPLATE_NOT_FOUND"

    def __init__(self, message: str = "Inspection template not found"):
        super().__init__(message)


# ==================== BUSINESS RULES ====================

class InsufficientStockError(InventoryError):
    """A decrement would take stock below zero."""
    kind = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        available: Decimal,
        requested: Decimal,
        is_transfer: bool = False,
        product_ref: Optional[str] = None,
    ):
        subject = "transfer" if is_transfer else "this adjustment"
        message = f"Insufficient stock for {subject}: available {available}, requested {requested}"
        if product_ref:
            message = f"{message} (product {product_ref})"
        super().__init__(message)
        self.available = available
        self.requested = requested
        self.product_ref = product_ref


# ==================== CONFLICTS ====================

class ConflictError(InventoryError):
    kind = "CONFLICT"


class IdentifierConflictError(ConflictError):
    """Two writers minted the same sequential identifier."""

    def __init__(self, identifier: str):
        super().__init__(f"Identifier {identifier} is already in use, please retry")
        self.identifier = identifier


class DuplicateProductError(ConflictError):
    pass


class DuplicateCategoryError(ConflictError):
    pass


class StockConflictError(ConflictError):
    """Stock kept changing underneath the compare-and-swap write."""
    kind = "STOCK_CONFLICT"
