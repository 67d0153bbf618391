"""Tenant-scoped sequential identifiers: PRD001, PC0001, ADJ001, ..."""
import re

import pytest

from textile_erp.core.exceptions import ValidationError
from textile_erp.services.identifier_service import (
    IdentifierService,
    SequenceDefinition,
    PRODUCT_ID,
    PRODUCT_CODE,
    COMPANY,
    get_sequence,
)
from textile_erp.models import Product


@pytest.mark.parametrize(
    "number, expected",
    [
        (1, "PRD001"),
        (42, "PRD042"),
        (999, "PRD999"),
        (1000, "PRD1000"),
    ],
)
def test_format_pads_without_truncating(number, expected):
    assert PRODUCT_ID.format(number) == expected


@pytest.mark.parametrize(
    "identifier, expected",
    [
        ("PRD007", 7),
        ("PRD1000", 1000),
        ("PRD", None),
        ("PRD-7", None),
        ("PRDX01", None),
        ("PC0001", None),
        (None, None),
    ],
)
def test_parse_requires_prefix_and_digits(identifier, expected):
    assert PRODUCT_ID.parse(identifier) == expected


def test_get_sequence_is_case_insensitive():
    assert get_sequence("product_code") is PRODUCT_CODE


def test_get_sequence_rejects_unknown_names():
    with pytest.raises(ValidationError):
        get_sequence("INVOICE")


async def test_first_identifier_for_fresh_tenant(db, company_id):
    service = IdentifierService(db)

    assert await service.next_identifier(company_id, PRODUCT_ID) == "PRD001"
    assert await service.next_identifier(company_id, PRODUCT_CODE) == "PC0001"


async def test_identifiers_are_monotonic(make_product, session_factory, company_id):
    issued = []
    for _ in range(3):
        product_id = await make_product(stock=0)
        async with session_factory() as session:
            issued.append((await session.get(Product, product_id)).product_id)

    assert issued == ["PRD001", "PRD002", "PRD003"]


async def test_tenants_have_independent_sequences(make_product, db, company_id, other_company_id):
    await make_product(stock=0)
    await make_product(stock=0)
    await make_product(stock=0, tenant_id=other_company_id)

    service = IdentifierService(db)
    assert await service.next_identifier(company_id, PRODUCT_ID) == "PRD003"
    assert await service.next_identifier(other_company_id, PRODUCT_ID) == "PRD002"


async def test_numeric_order_survives_rollover(insert_product, db, company_id):
    await insert_product("PRD999")
    assert await IdentifierService(db).next_identifier(company_id, PRODUCT_ID) == "PRD1000"

    await insert_product("PRD1000")
    assert await IdentifierService(db).next_identifier(company_id, PRODUCT_ID) == "PRD1001"


async def test_prefixed_custom_values_do_not_hijack_the_sequence(insert_product, db, company_id):
    await insert_product("PRD001")
    await insert_product("PRD-LEGACY")
    await insert_product("PRD002X")

    assert await IdentifierService(db).next_identifier(company_id, PRODUCT_ID) == "PRD002"


async def test_custom_product_codes_leave_generated_codes_sequential(make_product, session_factory, company_id):
    codes = []
    for overrides in ({}, {"product_code": "PCB-COTTON-RED"}, {}, {}):
        product_id = await make_product(stock=0, **overrides)
        async with session_factory() as session:
            codes.append((await session.get(Product, product_id)).product_code)

    assert codes == ["PC0001", "PCB-COTTON-RED", "PC0002", "PC0003"]


async def test_unparsable_last_identifier_falls_back_to_timestamp(db, company_id, monkeypatch, caplog):
    service = IdentifierService(db)

    async def corrupt_last(tenant_id, sequence):
        return "PRD-LEGACY"

    monkeypatch.setattr(service, "get_last_identifier", corrupt_last)
    identifier = await service.next_identifier(company_id, PRODUCT_ID)

    assert re.fullmatch(r"PRD\d{3}", identifier)
    assert "Unparsable PRODUCT_ID identifier" in caplog.text


async def test_tenant_scoped_sequence_requires_tenant(db):
    with pytest.raises(ValidationError):
        await IdentifierService(db).next_identifier(None, PRODUCT_ID)


async def test_company_codes_are_global(db, company_id, other_company_id):
    # C001 and C002 were issued by the fixtures
    assert await IdentifierService(db).next_identifier(None, COMPANY) == "C003"


async def test_preview_does_not_reserve(db, company_id):
    service = IdentifierService(db)

    assert await service.preview_identifier(company_id, "STOCK_ADJUSTMENT") == "ADJ001"
    assert await service.preview_identifier(company_id, "STOCK_ADJUSTMENT") == "ADJ001"


def test_sequence_definition_without_tenant_column_is_global():
    sequence = SequenceDefinition("DEMO", Product, "product_id", "D", 2, tenant_column=None)
    assert not sequence.is_tenant_scoped
    assert sequence.format(3) == "D03"
