"""
Stock Ledger Service

Applies stock adjustments to products and records each one as an
immutable StockAdjustment row. One call is one transaction:

    lock product -> compute new stock -> conditional write -> mint ADJ### -> insert ledger row -> commit

The conditional write (``... WHERE stock_quantity = :previous``) closes the
lost-update gap on engines that do not honour SELECT FOR UPDATE. A write
that matches no rows means another transaction changed the stock first; the
adjustment is recomputed from the fresh value, up to
STOCK_ADJUST_MAX_RETRIES times.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, update, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from textile_erp.config import settings
from textile_erp.core.exceptions import (
    ValidationError,
    InvalidAdjustmentTypeError,
    InsufficientStockError,
    ProductNotFoundError,
    AdjustmentNotFoundError,
    IdentifierConflictError,
    StockConflictError,
)
from textile_erp.models import Product, StockAdjustment, StockAdjustmentType, AdjustmentDirection
from textile_erp.services.identifier_service import IdentifierService, STOCK_ADJUSTMENT


logger = logging.getLogger(__name__)

# Stock columns are Numeric(14, 3)
QUANTITY_STEP = Decimal("0.001")
MAX_STOCK = Decimal("99999999999.999")


@dataclass
class LedgerResult:
    """Updated product and the ledger entry describing the change."""
    product: Product
    adjustment: StockAdjustment


@dataclass
class TransferResult:
    outbound: LedgerResult
    inbound: LedgerResult


def parse_uuid(value: Union[uuid.UUID, str, None], error: Exception) -> uuid.UUID:
    """Coerce an id to UUID, raising ``error`` for blank or malformed values."""
    if isinstance(value, uuid.UUID):
        return value
    if not value or not str(value).strip():
        raise error
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        raise error


def coerce_adjustment_type(value: Union[StockAdjustmentType, str, None]) -> StockAdjustmentType:
    if isinstance(value, StockAdjustmentType):
        return value
    try:
        return StockAdjustmentType(str(value).strip().upper())
    except ValueError:
        raise InvalidAdjustmentTypeError(value)


def coerce_quantity(value) -> Decimal:
    """Adjustment quantities must be finite, strictly positive and have at most 3 decimals."""
    if value is None or isinstance(value, bool):
        raise ValidationError("Valid quantity is required")
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Valid quantity is required")
    if not quantity.is_finite() or quantity <= 0:
        raise ValidationError("Valid quantity is required")
    if quantity > MAX_STOCK:
        raise ValidationError(f"Quantity cannot exceed {MAX_STOCK}")
    if quantity != quantity.quantize(QUANTITY_STEP):
        raise ValidationError("Quantity supports at most 3 decimal places")
    return quantity.quantize(QUANTITY_STEP)


def compute_new_stock(
    previous_stock: Decimal,
    quantity: Decimal,
    adjustment_type: StockAdjustmentType,
    product_ref: Optional[str] = None
) -> Decimal:
    """
    Stock level after applying ``quantity`` under ``adjustment_type``.

    INBOUND types add, OUTBOUND types subtract and may not go below zero,
    SET replaces the level with ``quantity``.
    """
    direction = adjustment_type.direction

    if direction is AdjustmentDirection.INBOUND:
        new_stock = previous_stock + quantity
        if new_stock > MAX_STOCK:
            raise ValidationError(f"Stock cannot exceed {MAX_STOCK}")
        return new_stock

    if direction is AdjustmentDirection.ABSOLUTE:
        return quantity

    new_stock = previous_stock - quantity
    if new_stock < 0:
        raise InsufficientStockError(
            available=previous_stock,
            requested=quantity,
            is_transfer=adjustment_type is StockAdjustmentType.TRANSFER,
            product_ref=product_ref,
        )
    return new_stock


class StockLedgerService:
    """Atomic stock mutation with an append-only audit trail."""

    def __init__(
        self,
        db: AsyncSession,
        identifiers: Optional[IdentifierService] = None,
        max_retries: Optional[int] = None
    ):
        self.db = db
        self.identifiers = identifiers or IdentifierService(db)
        self.max_retries = max_retries or settings.STOCK_ADJUST_MAX_RETRIES

    # ==================== ADJUSTMENTS ====================

    async def apply_adjustment(
        self,
        tenant_id: Union[uuid.UUID, str],
        product_id: Union[uuid.UUID, str],
        adjustment_type: Union[StockAdjustmentType, str],
        quantity,
        adjusted_by: str,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LedgerResult:
        """
        Adjust a product's stock and record the ledger entry, atomically.

        Raises:
            ValidationError: Bad quantity, actor or ids (nothing is written)
            InvalidAdjustmentTypeError: Unknown adjustment type
            ProductNotFoundError: Product missing or owned by another company
            InsufficientStockError: Decrement would make stock negative
            StockConflictError: Stock kept changing during the write
            IdentifierConflictError: ADJ number taken by a concurrent writer
        """
        tenant_id, product_id, adjustment_type, quantity, adjusted_by = self._validate(
            tenant_id, product_id, adjustment_type, quantity, adjusted_by
        )

        try:
            result = await self._apply(
                tenant_id, product_id, adjustment_type, quantity, adjusted_by, reason, notes
            )
            await self.db.commit()
        except InsufficientStockError as exc:
            await self.db.rollback()
            logger.warning(
                "Rejected %s of %s for product %s (company %s): %s",
                adjustment_type.value, quantity, product_id, tenant_id, exc.message
            )
            raise
        except Exception:
            await self.db.rollback()
            raise

        self._log_committed(tenant_id, result)
        return result

    async def transfer_stock(
        self,
        tenant_id: Union[uuid.UUID, str],
        source_product_id: Union[uuid.UUID, str],
        destination_product_id: Union[uuid.UUID, str],
        quantity,
        adjusted_by: str,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TransferResult:
        """
        Move stock between two products in one transaction.

        Records a TRANSFER (outbound) entry on the source and an ADD (inbound)
        entry on the destination. Either both are committed or neither is.
        """
        tenant_id, source_id, _, quantity, adjusted_by = self._validate(
            tenant_id, source_product_id, StockAdjustmentType.TRANSFER, quantity, adjusted_by
        )
        destination_id = parse_uuid(destination_product_id, ProductNotFoundError())
        if source_id == destination_id:
            raise ValidationError("Source and destination products must differ")

        try:
            # Lock both rows in a fixed order so opposing transfers cannot deadlock
            locked = await self._lock_products(tenant_id, sorted([source_id, destination_id]))
            if destination_id not in locked:
                raise ProductNotFoundError("Destination product not found")
            if source_id not in locked:
                raise ProductNotFoundError()

            destination = locked[destination_id]
            outbound = await self._apply(
                tenant_id, source_id, StockAdjustmentType.TRANSFER, quantity, adjusted_by, reason,
                self._join_notes(f"Transfer to {destination.product_id}", notes)
            )
            inbound = await self._apply(
                tenant_id, destination_id, StockAdjustmentType.ADD, quantity, adjusted_by, reason,
                self._join_notes(
                    f"Transfer from {outbound.product.product_id} ({outbound.adjustment.adjustment_id})",
                    notes
                )
            )
            await self.db.commit()
        except InsufficientStockError as exc:
            await self.db.rollback()
            logger.warning("Rejected transfer from product %s: %s", source_id, exc.message)
            raise
        except Exception:
            await self.db.rollback()
            raise

        self._log_committed(tenant_id, outbound)
        self._log_committed(tenant_id, inbound)
        return TransferResult(outbound=outbound, inbound=inbound)

    # ==================== QUERIES ====================

    async def list_adjustments(
        self,
        tenant_id: uuid.UUID,
        product_id: Optional[uuid.UUID] = None,
        adjustment_type: Optional[Union[StockAdjustmentType, str]] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[StockAdjustment], int]:
        """Ledger entries for a company, newest first."""
        filters = [StockAdjustment.company_id == tenant_id]

        if product_id:
            filters.append(StockAdjustment.product_id == product_id)

        if adjustment_type:
            filters.append(StockAdjustment.adjustment_type == coerce_adjustment_type(adjustment_type).value)

        count_stmt = select(func.count(StockAdjustment.id)).where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(StockAdjustment)
            .where(and_(*filters))
            .order_by(
                StockAdjustment.created_at.desc(),
                func.length(StockAdjustment.adjustment_id).desc(),
                StockAdjustment.adjustment_id.desc()
            )
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def get_adjustment(
        self,
        tenant_id: uuid.UUID,
        adjustment_id: Union[uuid.UUID, str]
    ) -> StockAdjustment:
        adjustment_uuid = parse_uuid(adjustment_id, AdjustmentNotFoundError())
        stmt = select(StockAdjustment).where(
            StockAdjustment.id == adjustment_uuid,
            StockAdjustment.company_id == tenant_id
        )
        adjustment = (await self.db.execute(stmt)).scalar_one_or_none()
        if not adjustment:
            raise AdjustmentNotFoundError()
        return adjustment

    # ==================== INTERNALS ====================

    def _validate(self, tenant_id, product_id, adjustment_type, quantity, adjusted_by):
        tenant_uuid = parse_uuid(tenant_id, ValidationError("Missing required field: companyId"))
        product_uuid = parse_uuid(product_id, ProductNotFoundError())
        adjustment_type = coerce_adjustment_type(adjustment_type)
        quantity = coerce_quantity(quantity)

        if not adjusted_by or not str(adjusted_by).strip():
            raise ValidationError("adjustedBy is required")

        return tenant_uuid, product_uuid, adjustment_type, quantity, str(adjusted_by).strip()

    async def _apply(
        self,
        tenant_id: uuid.UUID,
        product_id: uuid.UUID,
        adjustment_type: StockAdjustmentType,
        quantity: Decimal,
        adjusted_by: str,
        reason: Optional[str],
        notes: Optional[str],
    ) -> LedgerResult:
        """One adjustment inside the caller's transaction. Flushes, never commits."""
        for attempt in range(1, self.max_retries + 1):
            product = await self._lock_product(tenant_id, product_id)
            previous_stock = Decimal(str(product.stock_quantity))
            new_stock = compute_new_stock(previous_stock, quantity, adjustment_type, product.product_id)

            if await self._compare_and_set(product, previous_stock, new_stock):
                break

            logger.warning(
                "Stock for product %s changed during %s (attempt %d/%d)",
                product.product_id, adjustment_type.value, attempt, self.max_retries
            )
        else:
            raise StockConflictError(
                f"Stock for product {product_id} is being modified concurrently, please retry"
            )

        adjustment_id = await self.identifiers.next_identifier(tenant_id, STOCK_ADJUSTMENT)
        adjustment = StockAdjustment(
            company_id=tenant_id,
            adjustment_id=adjustment_id,
            product_id=product.id,
            adjustment_type=adjustment_type.value,
            quantity=quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reason=reason or None,
            notes=notes or None,
            adjusted_by=adjusted_by,
        )
        self.db.add(adjustment)

        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise IdentifierConflictError(adjustment_id) from exc

        return LedgerResult(product=product, adjustment=adjustment)

    async def _lock_product(self, tenant_id: uuid.UUID, product_id: uuid.UUID) -> Product:
        """Load the product with a row lock and fresh attribute values."""
        stmt = (
            select(Product)
            .where(Product.id == product_id, Product.company_id == tenant_id)
            .with_for_update(of=Product)
            .execution_options(populate_existing=True)
        )
        product = (await self.db.execute(stmt)).scalar_one_or_none()
        if not product:
            raise ProductNotFoundError()
        return product

    async def _lock_products(self, tenant_id: uuid.UUID, product_ids: List[uuid.UUID]) -> dict:
        stmt = (
            select(Product)
            .where(Product.id.in_(product_ids), Product.company_id == tenant_id)
            .order_by(Product.id)
            .with_for_update(of=Product)
        )
        result = await self.db.execute(stmt)
        return {product.id: product for product in result.scalars().all()}

    async def _compare_and_set(
        self,
        product: Product,
        previous_stock: Decimal,
        new_stock: Decimal
    ) -> bool:
        """Write new_stock only if the row still holds previous_stock."""
        now = datetime.now(timezone.utc)
        stmt = (
            update(Product)
            .where(
                Product.id == product.id,
                Product.company_id == product.company_id,
                Product.stock_quantity == previous_stock,
            )
            .values(stock_quantity=new_stock, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            return False

        # Reflect the write on the loaded instance without marking it dirty
        set_committed_value(product, "stock_quantity", new_stock)
        set_committed_value(product, "updated_at", now)
        return True

    @staticmethod
    def _join_notes(prefix: str, notes: Optional[str]) -> str:
        return f"{prefix}. {notes}" if notes else prefix

    @staticmethod
    def _log_committed(tenant_id: uuid.UUID, result: LedgerResult) -> None:
        adjustment = result.adjustment
        logger.info(
            "Stock adjusted: company=%s product=%s %s %s: %s -> %s (%s by %s)",
            tenant_id,
            result.product.product_id,
            adjustment.adjustment_type,
            adjustment.quantity,
            adjustment.previous_stock,
            adjustment.new_stock,
            adjustment.adjustment_id,
            adjustment.adjusted_by,
        )
