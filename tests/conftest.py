"""
Shared fixtures.

An in-memory SQLite database (one connection shared through StaticPool) is
created per test; the FastAPI ``get_db`` dependency is overridden to hand
out sessions bound to it.
"""

import os

# Must be set before anything imports workshop.core.config.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from workshop.core.dependencies import get_db
from workshop.db.base import Base
from workshop.main import app
from workshop.models.client import Client
from workshop.models.maintenance_order import MaintenanceOrder, OrderStatus


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def api(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def workshop_client(db_session):
    client = Client(id="client_1", name="Oficina do Zé", phone="11 99999-0000")
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture
def make_order(db_session, workshop_client):
    """Persist an order; keyword arguments override the defaults."""
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        values = {
            "id": f"maint_{counter['n']}",
            "client_id": workshop_client.id,
            "service_title": "Revisão",
            "description": "Troca de óleo e filtros",
            "value": Decimal("100.00"),
            "costs": [],
            "status": OrderStatus.OPEN.value,
            "opened_at": datetime(2024, 3, 1, 9, 0),
        }
        values.update(fields)
        order = MaintenanceOrder(**values)
        db_session.add(order)
        db_session.commit()
        return order

    return _make
