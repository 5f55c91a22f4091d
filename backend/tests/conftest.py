"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Must be set before shared.config.settings is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import itertools
from datetime import datetime
from decimal import Decimal

import pytest
import pytz
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, MenuItem
from shared.infrastructure.db import get_db
from shared.utils.schemas import OrderCreate, OrderItemInput


_id_counter = itertools.count(1000)

VENUE_TZ = pytz.timezone("Asia/Manila")


def next_id(prefix: str = "ord-") -> str:
    """Unique client-style id."""
    return f"{prefix}{next(_id_counter)}"


def manila_ms(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> int:
    """Epoch ms of a venue-local wall-clock time."""
    local = VENUE_TZ.localize(datetime(year, month, day, hour, minute))
    return int(local.timestamp() * 1000)


def order_payload(**overrides) -> dict:
    """JSON body for POST /api/orders."""
    payload = {
        "id": next_id(),
        "customer_name": "Ana",
        "order_type": "dine-in",
        "items": [
            {"id": "i1", "name": "Latte", "price": "120.00", "quantity": 1},
            {"id": "i2", "name": "Pancit", "price": "180.00", "quantity": 2},
        ],
    }
    payload.update(overrides)
    return payload


def order_create(**overrides) -> OrderCreate:
    return OrderCreate.model_validate(order_payload(**overrides))


def item(item_id: str, name: str, price: str, quantity: int = 1) -> OrderItemInput:
    return OrderItemInput(id=item_id, name=name, price=Decimal(price), quantity=quantity)


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def published_events(monkeypatch):
    """Capture order feed events instead of publishing them to Redis."""
    events: list[dict] = []

    async def fake_publish(**kwargs):
        events.append(kwargs)

    monkeypatch.setattr("rest_api.routers.orders._bg_publish_order_event", fake_publish)
    return events


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def seed_menu(db_session):
    """Menu with one item per owner, one shared item and a drink."""
    items = [
        MenuItem(id="m1", name="Latte", price=Decimal("120.00"), owner="john", category="Coffee"),
        MenuItem(id="m2", name="Pancit", price=Decimal("180.00"), owner="elwin", category="Noodles"),
        MenuItem(id="m3", name="Turon", price=Decimal("50.00"), owner=None, category="Desserts"),
        MenuItem(id="m4", name="Iced Tea", price=Decimal("60.00"), owner="john", category="Cold Drinks"),
    ]
    db_session.add_all(items)
    db_session.commit()
    return items
