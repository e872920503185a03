"""
Pytest fixtures for the store API.

Settings are read at import time, so the environment is prepared before
anything from store_api is imported. Every test gets empty tables on a
shared in-memory SQLite database.
"""
import os
import uuid
from datetime import datetime, timedelta, timezone

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "http://localhost:54321"
os.environ["SUPABASE_KEY"] = "test-anon-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["AUTO_CONFIRM_INTERVAL_MINUTES"] = "0"
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel

from store_api.database import engine
from store_api.main import app
from store_api.models.user import User

API = "/api/v1"


def make_token(user_id: uuid.UUID, email: str) -> str:
    payload = {
        "sub": str(user_id),
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user.id, user.email)}"}


@pytest.fixture(autouse=True)
def reset_db():
    """Fresh schema for every test."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def client():
    # No context manager: the lifespan (table creation, auto-confirm sweep)
    # is not needed here.
    return TestClient(app)


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


def _create_user(db: Session, role: str, name: str, student_id: str | None = None) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{name.lower().replace(' ', '.')}@school.edu",
        name=name,
        role=role,
        student_id=student_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db):
    return _create_user(db, "admin", "Store Admin")


@pytest.fixture
def customer(db):
    return _create_user(db, "user", "Juan Dela Cruz", "2021-00123")


@pytest.fixture
def other_customer(db):
    return _create_user(db, "user", "Maria Santos", "2022-00456")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def other_headers(other_customer):
    return auth_headers(other_customer)


@pytest.fixture
def create_product(client, admin_headers):
    """Factory creating products through the admin API."""

    def _create(**overrides):
        payload = {
            "name": "School ID Lace",
            "price": 50.0,
            "stock": 20,
            "reorder_point": 5,
        }
        payload.update(overrides)
        resp = client.post(f"{API}/products", json=payload, headers=admin_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create


@pytest.fixture
def add_to_cart(client, customer_headers):
    def _add(product_id: int, quantity: int = 1, size: str | None = None, headers=None):
        body = {"product_id": product_id, "quantity": quantity}
        if size is not None:
            body["size"] = size
        resp = client.post(f"{API}/cart", json=body, headers=headers or customer_headers)
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _add


@pytest.fixture
def place_order(client, customer_headers, add_to_cart):
    """Put items in the cart and check out; returns the order JSON."""

    def _place(lines, payment_method: str = "cash", headers=None):
        headers = headers or customer_headers
        for line in lines:
            add_to_cart(*line, headers=headers)
        resp = client.post(
            f"{API}/orders/checkout",
            json={"payment_method": payment_method},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _place


@pytest.fixture
def set_status(client, admin_headers):
    def _set(order_id: int, new_status: str, notes: str | None = None):
        body = {"status": new_status}
        if notes is not None:
            body["notes"] = notes
        return client.patch(
            f"{API}/orders/{order_id}/status",
            json=body,
            headers=admin_headers,
        )

    return _set
