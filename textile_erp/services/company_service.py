import logging
import uuid
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from textile_erp.core.exceptions import ValidationError, CompanyNotFoundError, IdentifierConflictError
from textile_erp.models import Company
from textile_erp.services.identifier_service import IdentifierService, COMPANY
from textile_erp.services.stock_ledger_service import parse_uuid


logger = logging.getLogger(__name__)


class CompanyService:
    """Provisioning and lookup of tenants."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.identifiers = IdentifierService(db)

    async def create_company(self, name: str) -> Company:
        """Create a tenant with the next global company code (C001, C002, ...)."""
        if not name or not name.strip():
            raise ValidationError("Missing required field: name")

        company_code = await self.identifiers.next_identifier(None, COMPANY)
        company = Company(company_code=company_code, name=name.strip())
        self.db.add(company)

        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise IdentifierConflictError(company_code) from exc

        logger.info("Company created: %s (%s)", company.company_code, company.name)
        return company

    async def get_company(
        self,
        company_id: Union[uuid.UUID, str],
        active_only: bool = False
    ) -> Company:
        company_uuid = parse_uuid(company_id, CompanyNotFoundError())
        stmt = select(Company).where(Company.id == company_uuid)
        company: Optional[Company] = (await self.db.execute(stmt)).scalar_one_or_none()

        if not company or (active_only and not company.is_active):
            raise CompanyNotFoundError()
        return company
