"""Quality inspection models: templates, inspections and their checkpoints."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import String, Text, ForeignKey, DateTime, Integer, Boolean, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from textile_erp.database import Base
from textile_erp.db_types import UUIDType, JSONType


class InspectionType(str, Enum):
    INCOMING_MATERIAL = "INCOMING_MATERIAL"
    IN_PROCESS = "IN_PROCESS"
    FINAL_PRODUCT = "FINAL_PRODUCT"
    RANDOM_CHECK = "RANDOM_CHECK"


class InspectionStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    PASSED = "PASSED"
    FAILED = "FAILED"
    CONDITIONAL = "CONDITIONAL"


class EvaluationType(str, Enum):
    PASS_FAIL = "PASS_FAIL"
    RATING = "RATING"
    MEASUREMENT = "MEASUREMENT"
    TEXT = "TEXT"


class InspectionTemplate(Base):
    """Reusable checklist that seeds the checkpoints of new inspections."""

    __tablename__ = "inspection_templates"
    __table_args__ = (
        UniqueConstraint("company_id", "template_id", name="uq_inspection_template_company_template_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    template_id: Mapped[str] = mapped_column(String(20), nullable=False, comment="Tenant sequence, e.g. TPL001")
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    applicable_to: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    passing_score: Mapped[int] = mapped_column(Integer, default=70, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

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

    checkpoints: Mapped[List["TemplateCheckpoint"]] = relationship(
        "TemplateCheckpoint",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateCheckpoint.order_index",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<InspectionTemplate {self.template_id}>"


class TemplateCheckpoint(Base):
    __tablename__ = "template_checkpoints"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("inspection_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    evaluation_type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    template: Mapped["InspectionTemplate"] = relationship("InspectionTemplate", back_populates="checkpoints")


class QualityInspection(Base):
    """Inspection of a material, batch or finished product."""

    __tablename__ = "quality_inspections"
    __table_args__ = (
        UniqueConstraint("company_id", "inspection_number", name="uq_quality_inspection_company_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    inspection_number: Mapped[str] = mapped_column(String(20), nullable=False, comment="Tenant sequence, e.g. INS001")
    inspection_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="INCOMING_MATERIAL, IN_PROCESS, FINAL_PRODUCT, RANDOM_CHECK"
    )
    reference_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reference_id: Mapped[str] = mapped_column(String(100), nullable=False)
    inspector_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    template_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("inspection_templates.id", ondelete="SET NULL"),
        nullable=True
    )
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=InspectionStatus.PENDING.value,
        nullable=False,
        index=True
    )
    overall_result: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    quality_score: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    inspector_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recommendations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

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

    checkpoints: Mapped[List["InspectionCheckpoint"]] = relationship(
        "InspectionCheckpoint",
        back_populates="inspection",
        cascade="all, delete-orphan",
        order_by="InspectionCheckpoint.order_index",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<QualityInspection {self.inspection_number} {self.status}>"


class InspectionCheckpoint(Base):
    __tablename__ = "inspection_checkpoints"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    inspection_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("quality_inspections.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    evaluation_type: Mapped[str] = mapped_column(String(20), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    result: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    inspection: Mapped["QualityInspection"] = relationship("QualityInspection", back_populates="checkpoints")
