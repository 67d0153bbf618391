"""
Shared fixtures: a fresh file-backed SQLite database per test, service
sessions, provisioned companies and an HTTP client bound to the same
database.

Fixtures hand out ids rather than ORM instances; a rolled-back session
expires every instance it holds.
"""
import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from textile_erp.database import build_engine, build_session_factory, get_db, init_db
from textile_erp.main import app
from textile_erp.models import Product
from textile_erp.services.company_service import CompanyService
from textile_erp.services.product_service import ProductService


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'textile_erp_test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def company_id(session_factory) -> uuid.UUID:
    async with session_factory() as session:
        company = await CompanyService(session).create_company("Acme Textiles")
        return company.id


@pytest_asyncio.fixture
async def other_company_id(session_factory) -> uuid.UUID:
    async with session_factory() as session:
        company = await CompanyService(session).create_company("Bharat Looms")
        return company.id


@pytest.fixture
def make_product(session_factory, company_id):
    """Create a product through the catalog service and return its id."""

    async def _make(stock=100, tenant_id=None, **overrides) -> uuid.UUID:
        data = {
            "name": "Cotton Poplin Fabric",
            "cost_price": Decimal("120.00"),
            "selling_price": Decimal("150.00"),
            "stock_quantity": Decimal(str(stock)),
            "sku": f"SKU-{uuid.uuid4().hex[:10]}",
        }
        data.update(overrides)
        async with session_factory() as session:
            product = await ProductService(session).create_product(tenant_id or company_id, data)
            return product.id

    return _make


@pytest.fixture
def insert_product(session_factory, company_id):
    """Insert a product row with a hand-picked product_id, bypassing the generator."""

    async def _insert(product_id: str, tenant_id=None, **overrides) -> uuid.UUID:
        values = {
            "company_id": tenant_id or company_id,
            "product_id": product_id,
            "product_code": f"CODE-{product_id}",
            "sku": f"SKU-{product_id}",
            "name": f"Product {product_id}",
            "cost_price": Decimal("10.00"),
            "selling_price": Decimal("12.00"),
            "stock_quantity": Decimal("0"),
        }
        values.update(overrides)
        async with session_factory() as session:
            product = Product(**values)
            session.add(product)
            await session.commit()
            return product.id

    return _insert


@pytest.fixture
def stock_of(session_factory):
    """Read the persisted stock of a product in a fresh session."""

    async def _stock(product_id: uuid.UUID) -> Decimal:
        async with session_factory() as session:
            product = await session.get(Product, product_id)
            return Decimal(str(product.stock_quantity))

    return _stock


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
