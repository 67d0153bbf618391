"""Stock Adjustment model: the append-only inventory ledger."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Text, ForeignKey, DateTime, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from textile_erp.database import Base
from textile_erp.db_types import UUIDType, QuantityType


class AdjustmentDirection(str, Enum):
    """How an adjustment quantity is applied to the current stock."""
    INBOUND = "INBOUND"  # previous + quantity
    OUTBOUND = "OUTBOUND"  # previous - quantity, never below zero
    ABSOLUTE = "ABSOLUTE"  # quantity is the new level


class StockAdjustmentType(str, Enum):
    """Adjustment type enum."""
    ADD = "ADD"
    REMOVE = "REMOVE"
    SET = "SET"  # Physical count / absolute correction
    SALE = "SALE"
    PURCHASE = "PURCHASE"
    RETURN = "RETURN"  # Customer return
    DAMAGE = "DAMAGE"  # Damaged goods write-off
    TRANSFER = "TRANSFER"  # Outbound leg of a transfer

    @property
    def direction(self) -> AdjustmentDirection:
        return ADJUSTMENT_DIRECTIONS[self]

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


ADJUSTMENT_DIRECTIONS = {
    StockAdjustmentType.ADD: AdjustmentDirection.INBOUND,
    StockAdjustmentType.PURCHASE: AdjustmentDirection.INBOUND,
    StockAdjustmentType.RETURN: AdjustmentDirection.INBOUND,
    StockAdjustmentType.REMOVE: AdjustmentDirection.OUTBOUND,
    StockAdjustmentType.SALE: AdjustmentDirection.OUTBOUND,
    StockAdjustmentType.DAMAGE: AdjustmentDirection.OUTBOUND,
    StockAdjustmentType.TRANSFER: AdjustmentDirection.OUTBOUND,
    StockAdjustmentType.SET: AdjustmentDirection.ABSOLUTE,
}


class StockAdjustment(Base):
    """
    One immutable stock mutation with before/after snapshots.

    Rows are inserted in the same transaction as the product update they
    describe and are never updated or deleted.
    """

    __tablename__ = "stock_adjustments"
    __table_args__ = (
        UniqueConstraint("company_id", "adjustment_id", name="uq_stock_adjustment_company_adjustment_id"),
        CheckConstraint("quantity > 0", name="ck_stock_adjustment_quantity_positive"),
        CheckConstraint("previous_stock >= 0", name="ck_stock_adjustment_previous_non_negative"),
        CheckConstraint("new_stock >= 0", name="ck_stock_adjustment_new_non_negative"),
        Index("ix_stock_adjustment_product_created", "product_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Identification
    adjustment_id: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Tenant sequence, e.g. ADJ001"
    )

    # Products with history are deactivated rather than deleted
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False
    )

    adjustment_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="ADD, REMOVE, SET, SALE, PURCHASE, RETURN, DAMAGE, TRANSFER"
    )
    quantity: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    previous_stock: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    new_stock: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)

    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    adjusted_by: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<StockAdjustment {self.adjustment_id} {self.previous_stock}->{self.new_stock}>"
