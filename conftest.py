"""
Shared pytest fixtures

- In-memory SQLite database, recreated for every test
- TestClient with the database session and the currency converter overridden
- A rate provider stub returning fixed rates (1 INR = 0.0125 USD = 0.01 EUR)
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from billing.database.database import Base, get_db
from billing.main import app
from billing.modules.currency.rates import RateCache
from billing.modules.currency.service import CurrencyConverter, get_currency_converter

# Register every table on Base.metadata
import billing.modules.contacts.models  # noqa: F401
import billing.modules.items.models  # noqa: F401
import billing.modules.revenue.models  # noqa: F401
import billing.modules.invoices.models  # noqa: F401


class StubRateProvider:
    name = "stub"

    def __init__(self, rates=None):
        self.rates = rates or {"USD": Decimal("0.0125"), "EUR": Decimal("0.01")}
        self.calls = 0

    def fetch_rates(self, base_currency, currencies):
        self.calls += 1
        return dict(self.rates), "2026-10-18T23:59:59Z"


# ===== FIXTURES =====

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def rate_provider():
    return StubRateProvider()


@pytest.fixture
def converter(rate_provider):
    return CurrencyConverter(provider=rate_provider, cache=RateCache(ttl=3600), home_currency="INR")


@pytest.fixture
def client(db_session, converter):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_currency_converter] = lambda: converter
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def queued_emails(monkeypatch):
    """Capture invoice email tasks instead of sending them to the broker."""
    queued = []

    class FakeTask:
        @staticmethod
        def delay(*args):
            queued.append(args)

    monkeypatch.setattr("billing.modules.invoices.service.send_invoice_email_task", FakeTask)
    return queued
