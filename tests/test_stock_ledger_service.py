"""
Stock ledger: directional semantics, non-negative stock, one ledger entry
per committed adjustment, and safety under concurrent writers.
"""
from decimal import Decimal
import uuid

import pytest
from sqlalchemy import select, func

from textile_erp.core.exceptions import (
    ValidationError,
    InvalidAdjustmentTypeError,
    InsufficientStockError,
    ProductNotFoundError,
    AdjustmentNotFoundError,
    StockConflictError,
)
from textile_erp.models import StockAdjustment, StockAdjustmentType, AdjustmentDirection
from textile_erp.services.stock_ledger_service import (
    StockLedgerService,
    compute_new_stock,
    coerce_adjustment_type,
    coerce_quantity,
)


async def count_entries(session_factory, product_id) -> int:
    async with session_factory() as session:
        stmt = select(func.count(StockAdjustment.id)).where(StockAdjustment.product_id == product_id)
        return (await session.execute(stmt)).scalar()


# ==================== PURE RULES ====================

@pytest.mark.parametrize(
    "previous, quantity, adjustment_type, expected",
    [
        ("100", "20", StockAdjustmentType.ADD, "120"),
        ("100", "20", StockAdjustmentType.PURCHASE, "120"),
        ("100", "20", StockAdjustmentType.RETURN, "120"),
        ("100", "50", StockAdjustmentType.REMOVE, "50"),
        ("70", "70", StockAdjustmentType.SALE, "0"),
        ("500", "500", StockAdjustmentType.DAMAGE, "0"),
        ("30", "10", StockAdjustmentType.TRANSFER, "20"),
        ("0", "500", StockAdjustmentType.SET, "500"),
        ("800", "12.5", StockAdjustmentType.SET, "12.5"),
    ],
)
def test_compute_new_stock(previous, quantity, adjustment_type, expected):
    assert compute_new_stock(Decimal(previous), Decimal(quantity), adjustment_type) == Decimal(expected)


def test_outbound_below_zero_is_rejected():
    with pytest.raises(InsufficientStockError) as exc_info:
        compute_new_stock(Decimal("0"), Decimal("1"), StockAdjustmentType.REMOVE, "PRD001")

    assert "Insufficient stock for this adjustment" in exc_info.value.message
    assert "PRD001" in exc_info.value.message


def test_transfer_shortage_mentions_transfer():
    with pytest.raises(InsufficientStockError) as exc_info:
        compute_new_stock(Decimal("0"), Decimal("10"), StockAdjustmentType.TRANSFER)

    assert "Insufficient stock for transfer" in exc_info.value.message


def test_every_type_has_a_direction():
    for adjustment_type in StockAdjustmentType:
        assert isinstance(adjustment_type.direction, AdjustmentDirection)


@pytest.mark.parametrize("raw", ["add", " SALE ", StockAdjustmentType.SET])
def test_coerce_adjustment_type_accepts_names(raw):
    assert isinstance(coerce_adjustment_type(raw), StockAdjustmentType)


@pytest.mark.parametrize("raw", ["GIFT", "", None])
def test_coerce_adjustment_type_rejects_unknown(raw):
    with pytest.raises(InvalidAdjustmentTypeError):
        coerce_adjustment_type(raw)


@pytest.mark.parametrize("raw", [0, -5, "abc", None, float("nan"), float("inf"), True])
def test_coerce_quantity_rejects_non_positive(raw):
    with pytest.raises(ValidationError, match="Valid quantity is required"):
        coerce_quantity(raw)


@pytest.mark.parametrize("raw", ["0.0005", "9.9995", Decimal("1.2345")])
def test_coerce_quantity_rejects_more_than_three_decimals(raw):
    with pytest.raises(ValidationError, match="at most 3 decimal places"):
        coerce_quantity(raw)


@pytest.mark.parametrize("raw, expected", [("0.001", "0.001"), ("2.5", "2.500"), (7, "7.000"), ("1.5000", "1.500")])
def test_coerce_quantity_normalises_to_three_decimals(raw, expected):
    quantity = coerce_quantity(raw)
    assert quantity == Decimal(expected)
    assert quantity.as_tuple().exponent == -3


def test_inbound_cannot_overflow_stock_column():
    with pytest.raises(ValidationError, match="Stock cannot exceed"):
        compute_new_stock(Decimal("99999999999.999"), Decimal("0.001"), StockAdjustmentType.ADD)


# ==================== APPLY ADJUSTMENT ====================

async def test_directional_sequence(db, company_id, make_product, stock_of):
    product_id = await make_product(stock=100)
    ledger = StockLedgerService(db)

    steps = [
        ("ADD", 20, "120"),
        ("REMOVE", 50, "70"),
        ("SALE", 70, "0"),
        ("SET", 500, "500"),
        ("DAMAGE", 500, "0"),
    ]
    for adjustment_type, quantity, expected in steps:
        result = await ledger.apply_adjustment(company_id, product_id, adjustment_type, quantity, "store-manager")
        assert result.adjustment.new_stock == Decimal(expected)
        assert result.product.stock_quantity == Decimal(expected)

    with pytest.raises(InsufficientStockError):
        await ledger.apply_adjustment(company_id, product_id, "REMOVE", 1, "store-manager")

    with pytest.raises(InsufficientStockError, match="transfer"):
        await ledger.apply_adjustment(company_id, product_id, "TRANSFER", 10, "store-manager")

    assert await stock_of(product_id) == Decimal("0")


async def test_ledger_entry_matches_stock_change(db, company_id, make_product, stock_of):
    product_id = await make_product(stock=100)

    result = await StockLedgerService(db).apply_adjustment(
        company_id, product_id, StockAdjustmentType.SALE, Decimal("35"), "cashier-1",
        reason="Walk-in sale", notes="Invoice 1182"
    )

    adjustment = result.adjustment
    assert adjustment.adjustment_id == "ADJ001"
    assert adjustment.adjustment_type == "SALE"
    assert adjustment.quantity == Decimal("35")
    assert adjustment.previous_stock == Decimal("100")
    assert adjustment.new_stock == Decimal("65")
    assert adjustment.adjusted_by == "cashier-1"
    assert adjustment.reason == "Walk-in sale"
    assert adjustment.notes == "Invoice 1182"
    assert adjustment.company_id == company_id
    assert await stock_of(product_id) == adjustment.new_stock


async def test_adjustment_ids_increment_per_tenant(db, company_id, other_company_id, make_product):
    ours = await make_product(stock=10)
    theirs = await make_product(stock=10, tenant_id=other_company_id)
    ledger = StockLedgerService(db)

    first = (await ledger.apply_adjustment(company_id, ours, "ADD", 1, "a")).adjustment.adjustment_id
    second = (await ledger.apply_adjustment(company_id, ours, "ADD", 1, "a")).adjustment.adjustment_id
    other = (await ledger.apply_adjustment(other_company_id, theirs, "ADD", 1, "b")).adjustment.adjustment_id

    assert (first, second, other) == ("ADJ001", "ADJ002", "ADJ001")


async def test_rejected_adjustment_changes_nothing(db, company_id, make_product, stock_of, session_factory):
    product_id = await make_product(stock=5)

    with pytest.raises(InsufficientStockError):
        await StockLedgerService(db).apply_adjustment(company_id, product_id, "REMOVE", 6, "store-manager")

    assert await stock_of(product_id) == Decimal("5")
    assert await count_entries(session_factory, product_id) == 0


async def test_sub_precision_quantity_leaves_product_adjustable(db, company_id, make_product, stock_of, session_factory):
    product_id = await make_product(stock=10)
    ledger = StockLedgerService(db)

    with pytest.raises(ValidationError, match="at most 3 decimal places"):
        await ledger.apply_adjustment(company_id, product_id, "REMOVE", Decimal("0.0005"), "store-manager")
    assert await count_entries(session_factory, product_id) == 0

    removed = await ledger.apply_adjustment(company_id, product_id, "REMOVE", Decimal("0.125"), "store-manager")
    assert removed.adjustment.new_stock == Decimal("9.875")
    assert await stock_of(product_id) == removed.adjustment.new_stock

    added = await ledger.apply_adjustment(company_id, product_id, "ADD", 1, "store-manager")
    assert added.adjustment.previous_stock == Decimal("9.875")
    assert added.adjustment.new_stock == Decimal("10.875")
    assert await stock_of(product_id) == Decimal("10.875")


@pytest.mark.parametrize(
    "adjustment_type, quantity, adjusted_by, error",
    [
        ("ADD", 0, "clerk", ValidationError),
        ("ADD", -3, "clerk", ValidationError),
        ("ADD", 5, "", ValidationError),
        ("ADD", 5, "   ", ValidationError),
        ("MISPLACED", 5, "clerk", InvalidAdjustmentTypeError),
    ],
)
async def test_invalid_requests_are_rejected_before_writing(
    db, company_id, make_product, stock_of, session_factory, adjustment_type, quantity, adjusted_by, error
):
    product_id = await make_product(stock=50)

    with pytest.raises(error):
        await StockLedgerService(db).apply_adjustment(company_id, product_id, adjustment_type, quantity, adjusted_by)

    assert await stock_of(product_id) == Decimal("50")
    assert await count_entries(session_factory, product_id) == 0


async def test_unknown_product_is_not_found(db, company_id):
    with pytest.raises(ProductNotFoundError):
        await StockLedgerService(db).apply_adjustment(company_id, uuid.uuid4(), "ADD", 1, "clerk")


async def test_other_tenants_product_is_not_found(db, other_company_id, make_product, stock_of):
    product_id = await make_product(stock=10)

    with pytest.raises(ProductNotFoundError):
        await StockLedgerService(db).apply_adjustment(other_company_id, product_id, "REMOVE", 1, "intruder")

    assert await stock_of(product_id) == Decimal("10")


async def test_non_negative_over_many_adjustments(db, company_id, make_product, stock_of):
    product_id = await make_product(stock=3)
    ledger = StockLedgerService(db)

    for adjustment_type, quantity in [("REMOVE", 2), ("REMOVE", 2), ("ADD", 4), ("SALE", 5), ("DAMAGE", 1), ("SALE", 1)]:
        try:
            await ledger.apply_adjustment(company_id, product_id, adjustment_type, quantity, "clerk")
        except InsufficientStockError:
            pass
        assert await stock_of(product_id) >= 0

    assert await stock_of(product_id) == Decimal("0")


# ==================== CONCURRENCY ====================

async def test_stale_read_is_retried_and_rejected(session_factory, company_id, make_product, stock_of):
    """
    Two REMOVE 60 on stock 100: the writer that read 100 before the other
    committed must not overwrite 40 with 40 (or go to -20).
    """
    product_id = await make_product(stock=100)

    async with session_factory() as session_a, session_factory() as session_b:
        ledger_a = StockLedgerService(session_a)
        ledger_b = StockLedgerService(session_b)
        real_lock = ledger_b._lock_product
        reads = []

        async def racing_lock(tenant_id, pid):
            product = await real_lock(tenant_id, pid)
            reads.append(Decimal(str(product.stock_quantity)))
            if len(reads) == 1:
                # Another writer commits between our read and our write
                await ledger_a.apply_adjustment(company_id, product_id, "REMOVE", 60, "writer-a")
            return product

        ledger_b._lock_product = racing_lock

        with pytest.raises(InsufficientStockError):
            await ledger_b.apply_adjustment(company_id, product_id, "REMOVE", 60, "writer-b")

    assert reads == [Decimal("100"), Decimal("40")]
    assert await stock_of(product_id) == Decimal("40")
    assert await count_entries(session_factory, product_id) == 1


async def test_persistent_contention_raises_conflict(db, company_id, make_product, stock_of, session_factory):
    product_id = await make_product(stock=100)
    ledger = StockLedgerService(db, max_retries=2)
    attempts = []

    async def always_stale(product, previous_stock, new_stock):
        attempts.append(previous_stock)
        return False

    ledger._compare_and_set = always_stale

    with pytest.raises(StockConflictError):
        await ledger.apply_adjustment(company_id, product_id, "ADD", 5, "writer-b")

    assert len(attempts) == 2
    assert await stock_of(product_id) == Decimal("100")
    assert await count_entries(session_factory, product_id) == 0


# ==================== TRANSFER ====================

async def test_transfer_moves_stock_atomically(db, company_id, make_product, stock_of):
    source = await make_product(stock=30, name="Linen Shirting")
    destination = await make_product(stock=5, name="Linen Shirting Outlet")

    result = await StockLedgerService(db).transfer_stock(
        company_id, source, destination, 12, "warehouse-lead", reason="Restock outlet"
    )

    assert result.outbound.adjustment.adjustment_type == "TRANSFER"
    assert result.inbound.adjustment.adjustment_type == "ADD"
    assert (result.outbound.adjustment.adjustment_id, result.inbound.adjustment.adjustment_id) == ("ADJ001", "ADJ002")
    assert result.outbound.product.product_id in result.inbound.adjustment.notes
    assert "ADJ001" in result.inbound.adjustment.notes
    assert result.inbound.product.product_id in result.outbound.adjustment.notes
    assert await stock_of(source) == Decimal("18")
    assert await stock_of(destination) == Decimal("17")


async def test_failed_transfer_leaves_both_products_unchanged(db, company_id, make_product, stock_of, session_factory):
    source = await make_product(stock=3)
    destination = await make_product(stock=5)

    with pytest.raises(InsufficientStockError, match="transfer"):
        await StockLedgerService(db).transfer_stock(company_id, source, destination, 4, "warehouse-lead")

    assert await stock_of(source) == Decimal("3")
    assert await stock_of(destination) == Decimal("5")
    assert await count_entries(session_factory, source) == 0
    assert await count_entries(session_factory, destination) == 0


async def test_transfer_to_same_product_is_invalid(db, company_id, make_product):
    product_id = await make_product(stock=10)

    with pytest.raises(ValidationError):
        await StockLedgerService(db).transfer_stock(company_id, product_id, product_id, 1, "warehouse-lead")


async def test_transfer_to_missing_product_is_not_found(db, company_id, make_product, stock_of):
    source = await make_product(stock=10)

    with pytest.raises(ProductNotFoundError):
        await StockLedgerService(db).transfer_stock(company_id, source, uuid.uuid4(), 1, "warehouse-lead")

    assert await stock_of(source) == Decimal("10")


# ==================== QUERIES ====================

async def test_list_adjustments_filters(db, company_id, make_product):
    first = await make_product(stock=10)
    second = await make_product(stock=10)
    ledger = StockLedgerService(db)

    await ledger.apply_adjustment(company_id, first, "ADD", 1, "clerk")
    await ledger.apply_adjustment(company_id, first, "SALE", 2, "clerk")
    await ledger.apply_adjustment(company_id, second, "ADD", 3, "clerk")

    items, total = await ledger.list_adjustments(company_id)
    assert total == 3
    assert items[0].adjustment_id == "ADJ003"

    items, total = await ledger.list_adjustments(company_id, product_id=first)
    assert total == 2

    items, total = await ledger.list_adjustments(company_id, adjustment_type="sale")
    assert [a.adjustment_id for a in items] == ["ADJ002"]


async def test_get_adjustment_is_tenant_scoped(db, company_id, other_company_id, make_product):
    product_id = await make_product(stock=10)
    ledger = StockLedgerService(db)
    result = await ledger.apply_adjustment(company_id, product_id, "ADD", 1, "clerk")
    adjustment_id = result.adjustment.id

    assert (await ledger.get_adjustment(company_id, adjustment_id)).adjustment_id == "ADJ001"
    with pytest.raises(AdjustmentNotFoundError):
        await ledger.get_adjustment(other_company_id, adjustment_id)
