# Services module
from textile_erp.services.identifier_service import IdentifierService
from textile_erp.services.stock_ledger_service import StockLedgerService, LedgerResult, TransferResult
from textile_erp.services.company_service import CompanyService
from textile_erp.services.product_service import ProductService

# Quality
from textile_erp.services.inspection_service import InspectionService

__all__ = [
    "IdentifierService",
    "StockLedgerService",
    "LedgerResult",
    "TransferResult",
    "CompanyService",
    "ProductService",
    # Quality
    "InspectionService",
]
