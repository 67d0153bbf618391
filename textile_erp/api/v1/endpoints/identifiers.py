from fastapi import APIRouter
from pydantic import BaseModel

from textile_erp.api.deps import DB, CurrentCompany
from textile_erp.schemas.base import ApiResponse
from textile_erp.services.identifier_service import IdentifierService

router = APIRouter(tags=["Identifiers"])


class NextIdentifier(BaseModel):
    sequence: str
    identifier: str


@router.get("/{sequence}/next", response_model=ApiResponse[NextIdentifier])
async def preview_next_identifier(sequence: str, db: DB, company: CurrentCompany):
    """
    Preview the next identifier of a sequence (e.g. PRODUCT_ID -> PRD004).

    Nothing is reserved; the number is only taken when the record is created.
    """
    identifier = await IdentifierService(db).preview_identifier(company.id, sequence)
    return ApiResponse(data=NextIdentifier(sequence=sequence.upper(), identifier=identifier))
