import os

# Keep the application's module-level engine off the network during tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tableside.database import build_engine, get_db, init_db
from tableside.main import app
from tableside.schemas import MenuItemCreate
from tableside.services.access import Principal, Role
from tableside.services.menu import create_menu_item
from tableside.services.orders import reset_order_service

CUSTOMER = {"X-User-Id": "customer-1", "X-User-Role": "customer"}
OTHER_CUSTOMER = {"X-User-Id": "customer-2", "X-User-Role": "customer"}
STAFF = {"X-User-Id": "staff-1", "X-User-Role": "staff"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def customer() -> Principal:
    return Principal(user_id="customer-1", role=Role.CUSTOMER)


@pytest.fixture
def other_customer() -> Principal:
    return Principal(user_id="customer-2", role=Role.CUSTOMER)


@pytest.fixture
def staff() -> Principal:
    return Principal(user_id="staff-1", role=Role.STAFF)


@pytest.fixture
def admin() -> Principal:
    return Principal(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture
async def engine(tmp_path):
    """A fresh SQLite file database per test."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'tableside.db'}")
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as db:
        yield db


@pytest.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()
    reset_order_service()


async def add_menu_item(session, staff, **overrides):
    fields = {
        "name": "Pizza Margherita",
        "description": "Tomato, mozzarella, basil",
        "price": 10.0,
        "category": "main course",
    }
    fields.update(overrides)
    return await create_menu_item(session, staff, MenuItemCreate(**fields))


@pytest.fixture
async def menu(session, staff):
    """Two dishes priced 10 and 5, plus one switched off."""
    pizza = await add_menu_item(session, staff, name="Pizza", price=10.0)
    salad = await add_menu_item(session, staff, name="Salad", price=5.0, category="side")
    soup = await add_menu_item(
        session, staff, name="Soup of the Day", price=6.0, category="starter", is_available=False
    )
    return {"pizza": pizza.id, "salad": salad.id, "soup": soup.id}
