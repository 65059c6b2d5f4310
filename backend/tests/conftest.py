"""Pytest configuration and fixtures."""

import os
from typing import AsyncGenerator, Dict, List, Optional

# Set test env vars before any app import
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("CRON_SECRET", "test-cron-secret-0123456789")
os.environ.setdefault("ALERT_SYMBOL_DELAY_SECONDS", "0")
os.environ.setdefault("ALERT_RUN_LOCK_ENABLED", "false")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from deepterm.core.database import get_db
from deepterm.core.exceptions import EmailDeliveryError, PushDeliveryError
from deepterm.main import app
from deepterm.models import Base
from deepterm.models.user import User
from deepterm.services.alert_service import AlertService
from deepterm.services.alert_store import AlertStore
from deepterm.services.email_service import EmailService
from deepterm.services.notification_service import NotificationService
from deepterm.services.push_service import PushService


class FakePriceService:
    """Price lookup answering from a dict; unknown symbols are unavailable."""

    def __init__(self, prices: Optional[Dict[str, float]] = None):
        self.prices = dict(prices or {})
        self.calls: List[str] = []

    async def get_current_price(self, symbol: str) -> Optional[float]:
        self.calls.append(symbol)
        return self.prices.get(symbol)

    async def close(self):
        pass


class RecordingEmailService(EmailService):
    """Email channel that records instead of talking SMTP."""

    def __init__(self):
        super().__init__()
        self.sent: List[dict] = []
        self.fail_for: set = set()

    async def send_email(self, to_email, subject, html_content, text_content=None) -> bool:
        if to_email in self.fail_for:
            raise EmailDeliveryError("SMTP connection refused")
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})
        return True


class RecordingPushService(PushService):
    """Push channel that records payloads; tags in fail_for raise."""

    def __init__(self):
        self.sent: List[dict] = []
        self.fail_for: set = set()

    async def send_push_notification(self, db, user_id, payload):
        if payload["tag"] in self.fail_for:
            raise PushDeliveryError("All 1 push subscriptions failed")
        self.sent.append({"user_id": user_id, **payload})
        return {"sent": 1, "failed": 0}


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh in-memory database for each test."""
    # StaticPool keeps the single in-memory connection shared by every session
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session

    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    """Create an alert owner."""
    user = User(clerk_id="user_clerk_1", email="jane.doe@example.com")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    user = User(clerk_id="user_clerk_2", email="sam@example.com")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def price_service() -> FakePriceService:
    return FakePriceService()


@pytest.fixture
def email_channel() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def push_channel() -> RecordingPushService:
    return RecordingPushService()


@pytest.fixture
def store() -> AlertStore:
    return AlertStore()


@pytest.fixture
def checker(price_service, email_channel, push_channel, store) -> AlertService:
    """Alert job wired to fakes for every external collaborator."""
    return AlertService(
        price_service=price_service,
        store=store,
        notifier=NotificationService(email=email_channel, push=push_channel),
        symbol_delay=0,
    )
