"""
Quality Inspection Service

Templates (TPL###) hold reusable checklists; inspections (INS###) copy the
template's checkpoints at creation so later template edits do not rewrite
past inspections.
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from textile_erp.core.exceptions import (
    ValidationError,
    InspectionNotFoundError,
    TemplateNotFoundError,
    IdentifierConflictError,
)
from textile_erp.models import (
    InspectionTemplate,
    TemplateCheckpoint,
    QualityInspection,
    InspectionCheckpoint,
    InspectionType,
    InspectionStatus,
    EvaluationType,
)
from textile_erp.services.identifier_service import IdentifierService, INSPECTION, INSPECTION_TEMPLATE
from textile_erp.services.stock_ledger_service import parse_uuid


logger = logging.getLogger(__name__)


def resolve_completion_status(result: str) -> InspectionStatus:
    """PASS -> PASSED, FAIL -> FAILED, anything else -> CONDITIONAL."""
    normalized = (result or "").strip().upper()
    if normalized == "PASS":
        return InspectionStatus.PASSED
    if normalized == "FAIL":
        return InspectionStatus.FAILED
    return InspectionStatus.CONDITIONAL


def _enum_value(enum_cls, value, field: str) -> str:
    if isinstance(value, enum_cls):
        return value.value
    try:
        return enum_cls(str(value).strip().upper()).value
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field}: {value}. Valid values: {valid}")


class InspectionService:
    """Service for quality inspections and their templates."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.identifiers = IdentifierService(db)

    # ==================== TEMPLATES ====================

    async def create_template(
        self,
        tenant_id: uuid.UUID,
        created_by: str,
        data: dict
    ) -> InspectionTemplate:
        if not (data.get("name") or "").strip():
            raise ValidationError("Missing required field: name")
        if not (data.get("category") or "").strip():
            raise ValidationError("Missing required field: category")
        if not created_by or not created_by.strip():
            raise ValidationError("Missing required field: createdBy")

        template_id = await self.identifiers.next_identifier(tenant_id, INSPECTION_TEMPLATE)
        template = InspectionTemplate(
            company_id=tenant_id,
            template_id=template_id,
            name=data["name"].strip(),
            description=data.get("description"),
            category=data["category"].strip(),
            applicable_to=list(data.get("applicable_to") or []),
            passing_score=data.get("passing_score") if data.get("passing_score") is not None else 70,
            created_by=created_by.strip(),
        )
        template.checkpoints = [
            TemplateCheckpoint(
                name=checkpoint["name"],
                description=checkpoint.get("description"),
                evaluation_type=_enum_value(EvaluationType, checkpoint.get("evaluation_type"), "evaluationType"),
                is_required=checkpoint.get("is_required", True),
                order_index=index if checkpoint.get("order_index") is None else checkpoint["order_index"],
            )
            for index, checkpoint in enumerate(data.get("checkpoints") or [])
        ]
        self.db.add(template)

        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise IdentifierConflictError(template_id) from exc

        logger.info("Inspection template created: company=%s %s", tenant_id, template_id)
        return await self.get_template(tenant_id, template.id)

    async def list_templates(
        self,
        tenant_id: uuid.UUID,
        category: Optional[str] = None
    ) -> List[InspectionTemplate]:
        stmt = select(InspectionTemplate).where(InspectionTemplate.company_id == tenant_id)
        if category:
            stmt = stmt.where(InspectionTemplate.category == category)
        stmt = stmt.order_by(InspectionTemplate.created_at.desc())

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_template(
        self,
        tenant_id: uuid.UUID,
        template_id: Union[uuid.UUID, str]
    ) -> InspectionTemplate:
        template_uuid = parse_uuid(template_id, TemplateNotFoundError())
        stmt = (
            select(InspectionTemplate)
            .where(InspectionTemplate.id == template_uuid, InspectionTemplate.company_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        template = (await self.db.execute(stmt)).scalar_one_or_none()
        if not template:
            raise TemplateNotFoundError()
        return template

    # ==================== INSPECTIONS ====================

    async def create_inspection(self, tenant_id: uuid.UUID, data: dict) -> QualityInspection:
        """
        Create an inspection with the next INS### number.

        When a template is given, its checkpoints are copied onto the
        inspection in template order.
        """
        inspection_type = _enum_value(InspectionType, data.get("inspection_type"), "inspectionType")
        for field, label in (("reference_type", "referenceType"), ("reference_id", "referenceId")):
            if not data.get(field):
                raise ValidationError(f"Missing required field: {label}")

        template = None
        if data.get("template_id"):
            template = await self.get_template(tenant_id, data["template_id"])

        inspection_number = await self.identifiers.next_identifier(tenant_id, INSPECTION)
        inspection = QualityInspection(
            company_id=tenant_id,
            inspection_number=inspection_number,
            inspection_type=inspection_type,
            reference_type=data["reference_type"],
            reference_id=str(data["reference_id"]),
            inspector_name=data.get("inspector_name"),
            template_id=template.id if template else None,
            scheduled_date=data.get("scheduled_date"),
            status=InspectionStatus.PENDING.value,
        )
        inspection.checkpoints = [
            InspectionCheckpoint(
                name=checkpoint.name,
                description=checkpoint.description,
                evaluation_type=checkpoint.evaluation_type,
                order_index=index,
            )
            for index, checkpoint in enumerate(template.checkpoints if template else [])
        ]
        self.db.add(inspection)

        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise IdentifierConflictError(inspection_number) from exc

        logger.info(
            "Inspection created: company=%s %s (%s, %d checkpoints)",
            tenant_id, inspection_number, inspection_type, len(inspection.checkpoints)
        )
        return await self.get_inspection(tenant_id, inspection.id)

    async def list_inspections(
        self,
        tenant_id: uuid.UUID,
        status: Optional[str] = None,
        inspection_type: Optional[str] = None
    ) -> List[QualityInspection]:
        stmt = select(QualityInspection).where(QualityInspection.company_id == tenant_id)

        if status:
            stmt = stmt.where(QualityInspection.status == _enum_value(InspectionStatus, status, "status"))
        if inspection_type:
            stmt = stmt.where(
                QualityInspection.inspection_type == _enum_value(InspectionType, inspection_type, "inspectionType")
            )

        stmt = stmt.order_by(QualityInspection.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_inspection(
        self,
        tenant_id: uuid.UUID,
        inspection_id: Union[uuid.UUID, str]
    ) -> QualityInspection:
        inspection_uuid = parse_uuid(inspection_id, InspectionNotFoundError())
        stmt = (
            select(QualityInspection)
            .where(QualityInspection.id == inspection_uuid, QualityInspection.company_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        inspection = (await self.db.execute(stmt)).scalar_one_or_none()
        if not inspection:
            raise InspectionNotFoundError()
        return inspection

    async def complete_inspection(
        self,
        tenant_id: uuid.UUID,
        inspection_id: Union[uuid.UUID, str],
        result: str,
        quality_score: Optional[Decimal] = None,
        notes: Optional[str] = None,
        recommendations: Optional[str] = None
    ) -> QualityInspection:
        """Record the outcome and move the inspection to PASSED, FAILED or CONDITIONAL."""
        if not result or not str(result).strip():
            raise ValidationError("Missing required field: result")
        if quality_score is not None and not (0 <= Decimal(str(quality_score)) <= 100):
            raise ValidationError("qualityScore must be between 0 and 100")

        inspection = await self.get_inspection(tenant_id, inspection_id)
        status = resolve_completion_status(result)

        inspection.status = status.value
        inspection.overall_result = str(result).strip().upper()
        inspection.quality_score = quality_score
        inspection.inspector_notes = notes
        inspection.recommendations = recommendations
        inspection.completed_at = datetime.now(timezone.utc)

        await self.db.commit()
        logger.info(
            "Inspection completed: company=%s %s -> %s",
            tenant_id, inspection.inspection_number, status.value
        )
        return await self.get_inspection(tenant_id, inspection.id)

    async def update_checkpoint(
        self,
        tenant_id: uuid.UUID,
        inspection_id: Union[uuid.UUID, str],
        checkpoint_id: Union[uuid.UUID, str],
        result: str,
        notes: Optional[str] = None
    ) -> InspectionCheckpoint:
        """Record a single checkpoint result; the first result moves a PENDING inspection to IN_PROGRESS."""
        inspection = await self.get_inspection(tenant_id, inspection_id)
        checkpoint_uuid = parse_uuid(checkpoint_id, InspectionNotFoundError("Checkpoint not found"))

        checkpoint = next((cp for cp in inspection.checkpoints if cp.id == checkpoint_uuid), None)
        if checkpoint is None:
            raise InspectionNotFoundError("Checkpoint not found")

        checkpoint.result = result
        checkpoint.notes = notes
        if inspection.status == InspectionStatus.PENDING.value:
            inspection.status = InspectionStatus.IN_PROGRESS.value

        await self.db.commit()
        return checkpoint
