"""
Pytest configuration and fixtures.

Every test gets its own SQLite database file, so tests never share state.
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine as create_sync_engine, text

from marketplace.database import create_engine, create_schema, create_session_maker
from marketplace.main import create_app
from marketplace.models import Category, Product, Role, User

PASSWORD = "password123"


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}"


@pytest.fixture
async def session_maker(database_url):
    engine = create_engine(database_url, echo=False)
    await create_schema(engine)
    yield create_session_maker(engine)
    await engine.dispose()


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_user(session):
    async def _make_user(email: str, role: Role = Role.BUYER) -> User:
        user = User(name=email.split("@")[0], email=email, password_hash="not-a-hash", role=role)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_product(session):
    async def _make_product(seller: User, name: str = "Widget", price=Decimal("100.00"), discount=Decimal("0")) -> Product:
        product = Product(
            seller_id=seller.id,
            name=name,
            category=Category.OTHER,
            description="",
            price=price,
            discount=discount,
        )
        session.add(product)
        await session.commit()
        await session.refresh(product)
        return product
    return _make_product


@pytest.fixture
def count_rows(database_url):
    """Count rows of a table through a plain synchronous connection."""
    engine = create_sync_engine(database_url.replace("+aiosqlite", ""))

    def _count_rows(table: str) -> int:
        with engine.connect() as conn:
            return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()

    yield _count_rows
    engine.dispose()


@pytest.fixture
def client(database_url):
    app = create_app(database_url, create_tables=True)
    with TestClient(app) as test_client:
        yield test_client


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_and_login(client: TestClient, email: str, role: str) -> str:
    r = client.post("/api/users", json={"name": email.split("@")[0], "email": email, "password": PASSWORD, "role": role})
    assert r.status_code == 201, r.text
    r = client.post("/api/users/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200, r.text
    return r.json()["token"]


@pytest.fixture
def seller_token(client):
    return register_and_login(client, "seller@example.com", "seller")


@pytest.fixture
def other_seller_token(client):
    return register_and_login(client, "other.seller@example.com", "seller")


@pytest.fixture
def buyer_token(client):
    return register_and_login(client, "buyer@example.com", "buyer")
