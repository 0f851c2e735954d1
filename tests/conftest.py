"""
Shared fixtures.

Tests run against the in-memory backend; nothing here touches MongoDB.
The environment is set before spendlog is imported so the cached
settings pick it up.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-spend-log")
os.environ.setdefault("JWT_BCRYPT_ROUNDS", "4")
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["APP_ENVIRONMENT"] = "test"

from datetime import date
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from spendlog.api import create_app
from spendlog.config import get_settings
from spendlog.models.finance import Transaction, TransactionType
from spendlog.orchestrator import create_app_components
from spendlog.services.storage import InMemoryDatabase


get_settings.cache_clear()


def make_transaction(
    owner_id,
    amount,
    kind="expense",
    category="Food",
    on=date(2024, 1, 1),
    **kwargs,
) -> Transaction:
    return Transaction(
        owner_id=owner_id,
        amount=amount,
        type=TransactionType(kind),
        category=category,
        date=on,
        **kwargs,
    )


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def memory_db():
    return InMemoryDatabase()


@pytest.fixture
def components(memory_db):
    return create_app_components(backend="memory", memory_db=memory_db)


@pytest.fixture
def client(components):
    with TestClient(create_app(components)) as test_client:
        yield test_client


def register(client, email="asha@example.com", password="secret123", name="Asha"):
    response = client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def auth_headers(client):
    user = register(client)
    return {"Authorization": f"Bearer {user['token']}"}
