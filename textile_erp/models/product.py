import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    String, Boolean, DateTime, ForeignKey, Text, Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from textile_erp.database import Base
from textile_erp.db_types import UUIDType, JSONType, QuantityType, MoneyType

if TYPE_CHECKING:
    from textile_erp.models.category import ProductCategory


class Product(Base):
    """
    Tenant-scoped catalog entry.

    stock_quantity is only ever changed through the stock ledger, which
    writes it with a compare-and-swap and records a StockAdjustment for
    every mutation.
    """
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("company_id", "product_id", name="uq_product_company_product_id"),
        UniqueConstraint("company_id", "product_code", name="uq_product_company_product_code"),
        UniqueConstraint("company_id", "sku", name="uq_product_company_sku"),
        CheckConstraint("stock_quantity >= 0", name="ck_product_stock_non_negative"),
        Index("ix_product_company_active", "company_id", "is_active"),
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

    # Human identifiers
    product_id: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Tenant sequence, e.g. PRD001"
    )
    product_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Tenant sequence PC0001 unless supplied by the caller"
    )
    sku: Mapped[str] = mapped_column(String(100), nullable=False)

    # Basic Info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    material: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    weight: Mapped[Optional[Decimal]] = mapped_column(QuantityType, nullable=True)
    unit_of_measure: Mapped[str] = mapped_column(String(50), default="PCS", nullable=False)

    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("product_categories.id", ondelete="SET NULL"),
        nullable=True
    )

    # Pricing
    cost_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    selling_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    markup_percent: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)

    # Inventory
    stock_quantity: Mapped[Decimal] = mapped_column(QuantityType, default=Decimal("0"), nullable=False)
    reorder_level: Mapped[Optional[Decimal]] = mapped_column(QuantityType, nullable=True)

    barcode: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    specifications: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    category: Mapped[Optional["ProductCategory"]] = relationship(
        "ProductCategory",
        lazy="selectin"
    )

    @property
    def is_low_stock(self) -> bool:
        """Check if stock is at or below the reorder level."""
        if self.reorder_level is None:
            return False
        return self.stock_quantity <= self.reorder_level

    def __repr__(self) -> str:
        return f"<Product(product_id='{self.product_id}', sku='{self.sku}')>"
