"""
Test fixtures: SQLite in-memory database, FastAPI TestClient, and fakes for
the push gateway and the vision service.
"""
import os

# Must be set before anything imports foodtracker.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFY_TIMEZONE"] = "UTC"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["DEFAULT_RECIPIENT_ID"] = "temp-user-id"

from datetime import date, datetime, time, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from foodtracker.database import Base, get_db
from foodtracker.main import app as fastapi_app
from foodtracker.models.food_item import FoodItem
from foodtracker.models.recipient import Recipient
from foodtracker.routers.notifications import get_push_dispatcher
from foodtracker.services.push import DispatchResult
from foodtracker.services.vision import get_food_vision
import foodtracker.models  # noqa: F401

RECIPIENT_ID = "temp-user-id"
PUSH_TOKEN = "ExponentPushToken[test-device]"

# One shared in-memory database for every connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(bind=engine, autoflush=False)


class FakeDispatcher:
    """Records every send; items whose title/body mention a name in fail_for fail."""

    def __init__(self, fail_for: set[str] | None = None):
        self.fail_for = set(fail_for or ())
        self.sent: list[dict] = []
        self.attempts: list[dict] = []

    async def send(self, address, title, body, metadata=None):
        call = {"to": address, "title": title, "body": body, "data": metadata or {}}
        self.attempts.append(call)
        if any(name in body for name in self.fail_for):
            return DispatchResult(ok=False, reason="gateway returned HTTP 503")
        self.sent.append(call)
        return DispatchResult(ok=True)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


class FakeVision:
    def __init__(self):
        self.receipt_items = [
            {"name": "Milk", "estimated_expiration_days": 7, "confidence": 0.9},
            {"name": "Spinach", "estimated_expiration_days": 5, "confidence": 0.8},
        ]
        self.label = {"expiration_date": date(2024, 6, 20), "confidence": 0.95}
        self.error: Exception | None = None
        self.calls: list[tuple[str, str]] = []

    async def extract_receipt_items(self, image_base64, media_type):
        self.calls.append(("receipt", media_type))
        if self.error:
            raise self.error
        return self.receipt_items

    async def extract_label_date(self, image_base64, media_type):
        self.calls.append(("label", media_type))
        if self.error:
            raise self.error
        return self.label


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Session:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def vision() -> FakeVision:
    return FakeVision()


@pytest.fixture
def client(db_session: Session, dispatcher: FakeDispatcher, vision: FakeVision) -> TestClient:
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    async def override_get_push_dispatcher():
        yield dispatcher

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_push_dispatcher] = override_get_push_dispatcher
    fastapi_app.dependency_overrides[get_food_vision] = lambda: vision
    with TestClient(fastapi_app, raise_server_exceptions=False) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


# --- Helpers for building test data ---

def at_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def make_recipient(db: Session, recipient_id: str = RECIPIENT_ID, push_token: str | None = PUSH_TOKEN) -> Recipient:
    recipient = db.get(Recipient, recipient_id)
    if recipient is None:
        recipient = Recipient(id=recipient_id, push_token=push_token)
        db.add(recipient)
        db.commit()
    return recipient


def make_item(
    db: Session,
    name: str,
    expires: date | datetime,
    recipient_id: str = RECIPIENT_ID,
    push_token: str | None = PUSH_TOKEN,
) -> FoodItem:
    make_recipient(db, recipient_id, push_token)
    expiration = expires if isinstance(expires, datetime) else at_midnight(expires)
    item = FoodItem(
        recipient_id=recipient_id,
        name=name,
        purchase_date=at_midnight(date(2024, 6, 1)),
        expiration_date=expiration,
        is_estimated=True,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item
