from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from textile_erp.core.exceptions import ValidationError
from textile_erp.database import get_db
from textile_erp.models import Company
from textile_erp.services.company_service import CompanyService


logger = logging.getLogger(__name__)


DB = Annotated[AsyncSession, Depends(get_db)]


async def get_current_company(
    db: DB,
    x_company_id: Annotated[Optional[str], Header(alias="X-Company-ID")] = None,
) -> Company:
    """
    Dependency to resolve the tenant of the request.

    The company id travels in the X-Company-ID header and must name an
    active company.
    """
    if not x_company_id:
        raise ValidationError("Missing required header: X-Company-ID")

    try:
        company_uuid = uuid.UUID(x_company_id.strip())
    except ValueError:
        logger.warning(f"Invalid X-Company-ID header: {x_company_id}")
        raise ValidationError("Invalid X-Company-ID header")

    return await CompanyService(db).get_company(company_uuid, active_only=True)


# Type aliases for cleaner dependency injection
CurrentCompany = Annotated[Company, Depends(get_current_company)]
