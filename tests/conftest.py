# tests/conftest.py
"""
Pytest configuration and shared fixtures.

Every test gets a fresh SQLite database file with all tables created.
The `network` fixture seeds the level rate table, the product catalogue and
the demo sponsor tree:

    company
    ├── manager1
    │   ├── leader1
    │   │   ├── sales1 ── user1, user2
    │   │   └── sales2 ── user3
    │   └── leader2
    │       └── sales3
    └── manager2
        └── leader3

Run:
    pytest -v
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("COMMISSION_SCHEME", "ORDER_TOTAL")

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mlm_commerce.database import Base
from mlm_commerce import models  # noqa: F401
from mlm_commerce.models.order import OrderStatus, PaymentStatus
from mlm_commerce.models.product import Product
from mlm_commerce.services.order_service import OrderService
from mlm_commerce.services.seed_service import SeedService


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest_asyncio.fixture
async def engine(tmp_path):
    """Create a file-backed SQLite engine with the schema for one test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    """Create database session for each test."""
    async with session_factory() as session:
        yield session


# =============================================================================
# SEED FIXTURES
# =============================================================================

@pytest_asyncio.fixture
async def network(db):
    """Seeded tiers, catalogue and demo tree. Returns users by key."""
    seed = SeedService(db)
    await seed.initialize_commission_tables()
    await seed.initialize_products()
    await seed.initialize_product_commission_tables()
    return await seed.seed_demo_network()


@pytest_asyncio.fixture
async def products(db, network):
    """Seeded products by name."""
    result = await db.execute(select(Product))
    return {product.name: product for product in result.scalars().all()}


@pytest.fixture
def place_order(db, products):
    """
    Place an order through OrderService.

    Usage:
        order = await place_order(network["user1"], "Real Man", status=OrderStatus.COMPLETED)
    """
    async def _place(user, product_name="Real Man", quantity=1,
                     status=OrderStatus.PENDING, payment_status=PaymentStatus.PENDING,
                     service=None):
        service = service or OrderService(db)
        return await service.create_order(
            user_id=user.id,
            items=[{"product_id": products[product_name].id, "quantity": quantity}],
            status=status,
            payment_status=payment_status,
        )
    return _place

