"""
Sequential Identifier Service

Produces human-readable, tenant-scoped codes such as PRD004, PC0005 or
ADJ002 by reading the highest identifier already issued for the tenant and
incrementing its numeric suffix.

ORDERING:
    The "last" identifier is the one with the largest numeric suffix, found by
    ordering on identifier length and then on the identifier itself. This keeps
    PRD1000 after PRD999 once a sequence outgrows its padding.

CONCURRENCY:
    Generation is read-then-increment without a lock. Two writers in the same
    uncommitted window can compute the same number; the unique constraint on
    (company_id, identifier) rejects the second insert, which callers surface
    as IdentifierConflictError.

USAGE:
    from textile_erp.services.identifier_service import IdentifierService, PRODUCT_ID

    service = IdentifierService(db)
    product_id = await service.next_identifier(company_id, PRODUCT_ID)
    # Returns: PRD001
"""

import logging
import re
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import select, func, and_, not_, true
from sqlalchemy.ext.asyncio import AsyncSession

from textile_erp.core.exceptions import ValidationError
from textile_erp.models import (
    Company,
    Product,
    ProductCategory,
    StockAdjustment,
    QualityInspection,
    InspectionTemplate,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequenceDefinition:
    """Where a sequence lives and how its identifiers are formatted."""
    name: str
    model: type
    column: str
    prefix: str
    pad_width: int
    tenant_column: Optional[str] = "company_id"

    @property
    def is_tenant_scoped(self) -> bool:
        return self.tenant_column is not None

    def format(self, number: int) -> str:
        return f"{self.prefix}{str(number).zfill(self.pad_width)}"

    def parse(self, identifier: str) -> Optional[int]:
        """Numeric suffix of ``identifier``, or None if it is not prefix + digits."""
        match = re.fullmatch(rf"{re.escape(self.prefix)}(\d+)", identifier or "")
        if not match:
            return None
        return int(match.group(1))


PRODUCT_ID = SequenceDefinition("PRODUCT_ID", Product, "product_id", "PRD", 3)
PRODUCT_CODE = SequenceDefinition("PRODUCT_CODE", Product, "product_code", "PC", 4)
STOCK_ADJUSTMENT = SequenceDefinition("STOCK_ADJUSTMENT", StockAdjustment, "adjustment_id", "ADJ", 3)
CATEGORY = SequenceDefinition("CATEGORY", ProductCategory, "category_id", "CAT", 3)
INSPECTION = SequenceDefinition("INSPECTION", QualityInspection, "inspection_number", "INS", 3)
INSPECTION_TEMPLATE = SequenceDefinition("INSPECTION_TEMPLATE", InspectionTemplate, "template_id", "TPL", 3)
COMPANY = SequenceDefinition("COMPANY", Company, "company_code", "C", 3, tenant_column=None)

SEQUENCES = {
    seq.name: seq
    for seq in (
        PRODUCT_ID,
        PRODUCT_CODE,
        STOCK_ADJUSTMENT,
        CATEGORY,
        INSPECTION,
        INSPECTION_TEMPLATE,
        COMPANY,
    )
}


def get_sequence(name: str) -> SequenceDefinition:
    """Look up a registered sequence by name (case-insensitive)."""
    sequence = SEQUENCES.get(name.upper())
    if sequence is None:
        valid = ", ".join(SEQUENCES.keys())
        raise ValidationError(f"Unknown sequence '{name}'. Valid sequences: {valid}")
    return sequence


def fallback_identifier(sequence: SequenceDefinition) -> str:
    """prefix + the last pad_width digits of the current epoch milliseconds."""
    millis = str(int(time.time() * 1000))
    return f"{sequence.prefix}{millis[-sequence.pad_width:]}"


class IdentifierService:
    """
    Generic generator for tenant-scoped sequential identifiers.

    Takes the session (and therefore the caller's transaction) explicitly,
    so the read happens inside the same transaction as the insert that uses
    the identifier.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_last_identifier(
        self,
        tenant_id: Optional[Union[uuid.UUID, str]],
        sequence: SequenceDefinition
    ) -> Optional[str]:
        """
        Highest generated identifier issued for the tenant, by numeric suffix.

        Only prefix + digits values count, so caller-supplied codes that
        merely share the prefix (PCB-COTTON-RED) never become the "last" one.
        """
        column = getattr(sequence.model, sequence.column)

        stmt = select(column).where(column.like(f"{sequence.prefix}%"), self._generated_only(column, sequence))
        if sequence.is_tenant_scoped:
            stmt = stmt.where(getattr(sequence.model, sequence.tenant_column) == tenant_id)
        stmt = stmt.order_by(func.length(column).desc(), column.desc()).limit(1)

        return await self.db.scalar(stmt)

    def _generated_only(self, column, sequence: SequenceDefinition):
        """Dialect-specific 'suffix is all digits' filter."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return column.op("~")(rf"^{re.escape(sequence.prefix)}[0-9]+$")
        if dialect == "sqlite":
            suffix = func.substr(column, len(sequence.prefix) + 1)
            return and_(column.op("GLOB")(f"{sequence.prefix}[0-9]*"), not_(suffix.op("GLOB")("*[^0-9]*")))
        # Other backends rely on the parse fallback in next_identifier
        return true()

    async def next_identifier(
        self,
        tenant_id: Optional[Union[uuid.UUID, str]],
        sequence: SequenceDefinition
    ) -> str:
        """
        Get the next identifier in the tenant's sequence.

        Args:
            tenant_id: Company the identifier is scoped to (ignored for global sequences)
            sequence: Which entity/prefix/padding to generate for

        Returns:
            Formatted identifier, e.g. PRD001

        Raises:
            ValidationError: If a tenant-scoped sequence is requested without a tenant
        """
        if sequence.is_tenant_scoped and not tenant_id:
            raise ValidationError("Missing required field: companyId")

        last = await self.get_last_identifier(tenant_id, sequence)
        if last is None:
            return sequence.format(1)

        number = sequence.parse(last)
        if number is None:
            identifier = fallback_identifier(sequence)
            logger.warning(
                "Unparsable %s identifier %r for company %s; falling back to %s",
                sequence.name, last, tenant_id, identifier
            )
            return identifier

        return sequence.format(number + 1)

    async def preview_identifier(
        self,
        tenant_id: Optional[Union[uuid.UUID, str]],
        sequence_name: str
    ) -> str:
        """What the next identifier of a named sequence would be. Nothing is reserved."""
        return await self.next_identifier(tenant_id, get_sequence(sequence_name))
