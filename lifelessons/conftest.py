# lifelessons/conftest.py
from datetime import datetime, timezone
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert

from lifelessons.core.config import Settings
from lifelessons.core.database import StoreContext, users
from lifelessons.tests.mocks import FakePaymentProvider, TEST_WEBHOOK_SECRET


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        ENV="test",
        DATABASE_URL="sqlite:///:memory:",
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET=TEST_WEBHOOK_SECRET,
        CLIENT_URL="http://localhost:5173",
        STORE_CONNECT_ATTEMPTS=1,
        STORE_CONNECT_BACKOFF_SECONDS=0,
    )


@pytest.fixture
def store():
    """
    Connected in-memory store, fresh per test.

    StaticPool keeps a single connection, so every session sees the same data.
    """
    ctx = StoreContext("sqlite:///:memory:")
    ctx.connect()
    yield ctx
    ctx.close()


@pytest.fixture
def unready_store():
    """A store whose background connect has not completed."""
    return StoreContext("sqlite:///:memory:")


@pytest.fixture
def provider():
    return FakePaymentProvider()


@pytest.fixture
def app(test_settings, store, provider):
    from lifelessons.main import create_app
    return create_app(settings=test_settings, store=store, provider=provider)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(store):
    """Insert a user row directly; returns the uid."""

    def _make(uid: str, *, email: str = None, role: str = "user", is_premium: bool = False) -> str:
        now = datetime.now(timezone.utc)
        with store.session() as session:
            session.execute(
                insert(users).values(
                    uid=uid,
                    email=email or f"{uid}@example.com",
                    name=uid.title(),
                    photo_url="",
                    role=role,
                    is_premium=is_premium,
                    premium_since=now if is_premium else None,
                    created_at=now,
                    updated_at=now,
                )
            )
        return uid

    return _make


@pytest.fixture
def admin_headers(make_user):
    make_user("admin1", role="admin")
    return {"X-User-Id": "admin1"}
