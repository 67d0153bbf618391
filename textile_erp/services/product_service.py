from typing import List, Optional, Tuple, Union
from decimal import Decimal, InvalidOperation
import logging
import time
import uuid

from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from textile_erp.config import settings
from textile_erp.core.exceptions import (
    ValidationError,
    ProductNotFoundError,
    CategoryNotFoundError,
    DuplicateProductError,
    DuplicateCategoryError,
    IdentifierConflictError,
)
from textile_erp.models import Product, ProductCategory, StockAdjustment
from textile_erp.services.company_service import CompanyService
from textile_erp.services.identifier_service import (
    IdentifierService, PRODUCT_ID, PRODUCT_CODE, CATEGORY
)
from textile_erp.services.stock_ledger_service import (
    StockLedgerService, LedgerResult, parse_uuid, QUANTITY_STEP, MAX_STOCK
)


logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")

UPDATABLE_FIELDS = {
    "name", "description", "material", "color", "size", "weight", "unit_of_measure",
    "category_id", "cost_price", "selling_price", "markup_percent", "reorder_level",
    "product_code", "sku", "barcode", "image_url", "specifications", "is_active",
}

DECIMAL_FIELDS = {
    "cost_price": TWO_PLACES,
    "selling_price": TWO_PLACES,
    "markup_percent": TWO_PLACES,
    "weight": QUANTITY_STEP,
    "reorder_level": QUANTITY_STEP,
}

DUPLICATE_MESSAGES = {
    "product_code": "Product code already exists for this company",
    "sku": "SKU already exists for this company",
}


def generate_sku(name: str) -> str:
    """Initials of the first three words plus the last 6 digits of the clock, e.g. CPF-482913."""
    initials = "".join(word[0] for word in name.split()[:3]).upper()
    millis = str(int(time.time() * 1000))
    return f"{initials}-{millis[-6:]}"


def calculate_markup(cost_price, selling_price) -> Optional[Decimal]:
    """Markup over cost as a percentage; None when cost is zero."""
    cost = Decimal(str(cost_price))
    if cost <= 0:
        return None
    selling = Decimal(str(selling_price))
    return ((selling - cost) / cost * 100).quantize(TWO_PLACES)


def _decimal(value, field: str, allow_none: bool = True, step: Decimal = QUANTITY_STEP) -> Optional[Decimal]:
    """Non-negative Decimal with no more precision than its column (``step``) holds."""
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"Missing required field: {field}")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid value for {field}")
    if not result.is_finite() or result < 0:
        raise ValidationError(f"{field} must be a non-negative number")
    if result > MAX_STOCK:
        raise ValidationError(f"{field} cannot exceed {MAX_STOCK}")
    if result != result.quantize(step):
        raise ValidationError(f"{field} supports at most {-step.as_tuple().exponent} decimal places")
    return result.quantize(step)


def _unique_violation(exc: IntegrityError) -> Optional[str]:
    """Product column behind a per-company unique violation, or None for any other integrity error."""
    # PostgreSQL names the constraint, SQLite names the columns
    message = str(exc.orig)
    if "unique" not in message.lower():
        return None
    for column in ("product_code", "product_id", "sku"):
        if f"uq_product_company_{column}" in message or f"products.{column}" in message:
            return column
    return None


class ProductService:
    """Service for managing the product catalog and its categories."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.identifiers = IdentifierService(db)

    # ==================== CATEGORY METHODS ====================

    async def list_categories(self, tenant_id: uuid.UUID) -> List[ProductCategory]:
        """Active categories of a company, by name."""
        stmt = (
            select(ProductCategory)
            .where(ProductCategory.company_id == tenant_id, ProductCategory.is_active == True)
            .order_by(ProductCategory.name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_category(self, tenant_id: uuid.UUID, category_id) -> ProductCategory:
        category_uuid = parse_uuid(category_id, CategoryNotFoundError())
        stmt = select(ProductCategory).where(
            ProductCategory.id == category_uuid,
            ProductCategory.company_id == tenant_id
        )
        category = (await self.db.execute(stmt)).scalar_one_or_none()
        if not category:
            raise CategoryNotFoundError()
        return category

    async def create_category(
        self,
        tenant_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[Union[uuid.UUID, str]] = None
    ) -> ProductCategory:
        """Create a category with the next CAT### code. Names are unique per company, ignoring case."""
        if not name or not name.strip():
            raise ValidationError("Missing required field: name")
        name = name.strip()

        stmt = select(ProductCategory.id).where(
            ProductCategory.company_id == tenant_id,
            func.lower(ProductCategory.name) == name.lower()
        )
        if (await self.db.execute(stmt)).first():
            raise DuplicateCategoryError("Category with this name already exists")

        parent_uuid = None
        if parent_id:
            try:
                parent = await self.get_category(tenant_id, parent_id)
            except CategoryNotFoundError:
                raise CategoryNotFoundError("Parent category not found")
            parent_uuid = parent.id

        category_code = await self.identifiers.next_identifier(tenant_id, CATEGORY)
        category = ProductCategory(
            company_id=tenant_id,
            category_id=category_code,
            name=name,
            description=description,
            parent_id=parent_uuid,
        )
        self.db.add(category)

        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise IdentifierConflictError(category_code) from exc

        logger.info("Category created: company=%s %s %s", tenant_id, category.category_id, category.name)
        return category

    # ==================== PRODUCT METHODS ====================

    async def create_product(self, tenant_id: uuid.UUID, data: dict) -> Product:
        """
        Create a product with generated PRD### id, PC#### code and SKU.

        A caller-supplied product_code or sku is kept as given but must be
        unused within the company.
        """
        await CompanyService(self.db).get_company(tenant_id, active_only=True)

        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Missing required field: name")

        cost_price = _decimal(data.get("cost_price"), "costPrice", allow_none=False, step=TWO_PLACES)
        selling_price = _decimal(data.get("selling_price"), "sellingPrice", allow_none=False, step=TWO_PLACES)
        stock_quantity = _decimal(data.get("stock_quantity"), "stockQuantity") or Decimal("0")

        category_uuid = None
        if data.get("category_id"):
            category_uuid = (await self.get_category(tenant_id, data["category_id"])).id

        product_code = data.get("product_code")
        if product_code:
            await self._ensure_unique(tenant_id, Product.product_code, product_code,
                                      DUPLICATE_MESSAGES["product_code"])
        else:
            product_code = await self.identifiers.next_identifier(tenant_id, PRODUCT_CODE)

        sku = data.get("sku")
        if sku:
            await self._ensure_unique(tenant_id, Product.sku, sku, DUPLICATE_MESSAGES["sku"])
        else:
            sku = generate_sku(name)

        markup_percent = data.get("markup_percent")
        if markup_percent is None:
            markup_percent = calculate_markup(cost_price, selling_price)

        product_id = await self.identifiers.next_identifier(tenant_id, PRODUCT_ID)
        product = Product(
            company_id=tenant_id,
            product_id=product_id,
            product_code=product_code,
            sku=sku,
            name=name,
            description=data.get("description"),
            material=data.get("material"),
            color=data.get("color"),
            size=data.get("size"),
            weight=_decimal(data.get("weight"), "weight"),
            unit_of_measure=data.get("unit_of_measure") or "PCS",
            category_id=category_uuid,
            cost_price=cost_price,
            selling_price=selling_price,
            markup_percent=markup_percent,
            stock_quantity=stock_quantity,
            reorder_level=_decimal(data.get("reorder_level"), "reorderLevel"),
            barcode=data.get("barcode"),
            image_url=data.get("image_url"),
            specifications=data.get("specifications"),
        )
        self.db.add(product)

        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            column = _unique_violation(exc)
            if column is None:
                raise
            if data.get(column):
                raise DuplicateProductError(DUPLICATE_MESSAGES[column]) from exc
            generated = {"product_id": product_id, "product_code": product_code, "sku": sku}
            raise IdentifierConflictError(generated[column]) from exc

        logger.info("Product created: company=%s %s (%s, %s)", tenant_id, product.product_id, product_code, sku)
        return await self._get_product(tenant_id, product.id)

    async def list_products(
        self,
        tenant_id: uuid.UUID,
        category_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        low_stock: bool = False,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        page: int = 1,
        limit: int = 50
    ) -> Tuple[List[Product], int]:
        """Get paginated products for a company, newest first."""
        filters = [Product.company_id == tenant_id]

        if category_id:
            filters.append(Product.category_id == category_id)

        if search:
            search_filter = or_(
                Product.name.ilike(f"%{search}%"),
                Product.product_code.ilike(f"%{search}%"),
                Product.sku.ilike(f"%{search}%"),
                Product.description.ilike(f"%{search}%"),
            )
            filters.append(search_filter)

        if is_active is not None:
            filters.append(Product.is_active == is_active)

        if low_stock:
            threshold = func.coalesce(Product.reorder_level, settings.LOW_STOCK_DEFAULT_THRESHOLD)
            filters.append(Product.stock_quantity <= threshold)

        if min_price is not None:
            filters.append(Product.selling_price >= min_price)

        if max_price is not None:
            filters.append(Product.selling_price <= max_price)

        count_stmt = select(func.count(Product.id)).where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(Product)
            .where(and_(*filters))
            .order_by(Product.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def get_product(
        self,
        tenant_id: uuid.UUID,
        product_id: Union[uuid.UUID, str]
    ) -> Tuple[Product, List[StockAdjustment]]:
        """Product with its category and most recent stock adjustments."""
        product = await self._get_product(tenant_id, product_id)

        stmt = (
            select(StockAdjustment)
            .where(StockAdjustment.product_id == product.id)
            .order_by(StockAdjustment.created_at.desc())
            .limit(settings.PRODUCT_HISTORY_LIMIT)
        )
        result = await self.db.execute(stmt)
        return product, list(result.scalars().all())

    async def update_product(
        self,
        tenant_id: uuid.UUID,
        product_id: Union[uuid.UUID, str],
        data: dict
    ) -> Product:
        """Partial update. Stock levels are not editable here."""
        if "stock_quantity" in data:
            raise ValidationError("stockQuantity can only be changed through stock adjustments")

        product = await self._get_product(tenant_id, product_id)
        changes = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}

        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("name cannot be empty")

        for field, step in DECIMAL_FIELDS.items():
            if field in changes and changes[field] is not None:
                changes[field] = _decimal(changes[field], field, step=step)

        if changes.get("category_id"):
            changes["category_id"] = (await self.get_category(tenant_id, changes["category_id"])).id

        if changes.get("product_code") and changes["product_code"] != product.product_code:
            await self._ensure_unique(tenant_id, Product.product_code, changes["product_code"],
                                      DUPLICATE_MESSAGES["product_code"])

        if changes.get("sku") and changes["sku"] != product.sku:
            await self._ensure_unique(tenant_id, Product.sku, changes["sku"], DUPLICATE_MESSAGES["sku"])

        if (
            changes.get("cost_price") is not None
            and changes.get("selling_price") is not None
            and changes.get("markup_percent") is None
        ):
            changes["markup_percent"] = calculate_markup(changes["cost_price"], changes["selling_price"])

        for key, value in changes.items():
            setattr(product, key, value)

        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            column = _unique_violation(exc)
            if column not in DUPLICATE_MESSAGES:
                raise
            raise DuplicateProductError(DUPLICATE_MESSAGES[column]) from exc

        logger.info("Product updated: company=%s %s fields=%s", tenant_id, product.product_id, sorted(changes))
        return await self._get_product(tenant_id, product.id)

    async def delete_product(
        self,
        tenant_id: uuid.UUID,
        product_id: Union[uuid.UUID, str]
    ) -> Tuple[Product, bool]:
        """
        Delete a product, or deactivate it if it has stock history.

        Returns the product and True when it was only deactivated.
        """
        product = await self._get_product(tenant_id, product_id)

        count_stmt = select(func.count(StockAdjustment.id)).where(StockAdjustment.product_id == product.id)
        history = (await self.db.execute(count_stmt)).scalar() or 0

        if history:
            product.is_active = False
            await self.db.commit()
            logger.info(
                "Product deactivated: company=%s %s (%d ledger entries kept)",
                tenant_id, product.product_id, history
            )
            return product, True

        await self.db.delete(product)
        await self.db.commit()
        logger.info("Product deleted: company=%s %s", tenant_id, product.product_id)
        return product, False

    async def adjust_stock(
        self,
        tenant_id: uuid.UUID,
        product_id: Union[uuid.UUID, str],
        request: dict
    ) -> LedgerResult:
        """Apply an adjustment request through the stock ledger."""
        ledger = StockLedgerService(self.db)
        return await ledger.apply_adjustment(
            tenant_id,
            product_id,
            request.get("adjustment_type"),
            request.get("quantity"),
            request.get("adjusted_by"),
            reason=request.get("reason"),
            notes=request.get("notes"),
        )

    # ==================== HELPERS ====================

    async def _get_product(self, tenant_id: uuid.UUID, product_id) -> Product:
        product_uuid = parse_uuid(product_id, ProductNotFoundError())
        stmt = (
            select(Product)
            .where(Product.id == product_uuid, Product.company_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        product = (await self.db.execute(stmt)).scalar_one_or_none()
        if not product:
            raise ProductNotFoundError()
        return product

    async def _ensure_unique(self, tenant_id: uuid.UUID, column, value: str, message: str) -> None:
        stmt = select(Product.id).where(Product.company_id == tenant_id, column == value)
        if (await self.db.execute(stmt)).first():
            raise DuplicateProductError(message)
