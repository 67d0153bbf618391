# Models module
from textile_erp.models.company import Company
from textile_erp.models.category import ProductCategory
from textile_erp.models.product import Product
from textile_erp.models.stock_adjustment import (
    StockAdjustment,
    StockAdjustmentType,
    AdjustmentDirection,
)
from textile_erp.models.quality_inspection import (
    InspectionTemplate,
    TemplateCheckpoint,
    QualityInspection,
    InspectionCheckpoint,
    InspectionType,
    InspectionStatus,
    EvaluationType,
)

__all__ = [
    "Company",
    "ProductCategory",
    "Product",
    "StockAdjustment",
    "StockAdjustmentType",
    "AdjustmentDirection",
    # Quality
    "InspectionTemplate",
    "TemplateCheckpoint",
    "QualityInspection",
    "InspectionCheckpoint",
    "InspectionType",
    "InspectionStatus",
    "EvaluationType",
]
