import os
import secrets
import sys
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Ensure project root on sys.path so 'barter_engine' resolves without an editable install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from barter_engine.main import app  # type: ignore
from barter_engine.database import Base, create_db_engine  # type: ignore
from barter_engine.api import deps  # type: ignore
"""Pytest fixtures and factories.

Important: SQLAlchemy relationship configuration requires all model modules to be imported
before Base.metadata.create_all(), otherwise back_populates targets might not exist yet.
"""
from barter_engine.models.db import (
    Brand, Creator, SocialAccount, Subscription, User,
)
from barter_engine.models.db.enums import OfferStatus, SocialProvider, SubscriptionStatus, UserRole
from barter_engine.integrations import DatabaseSocialConnect, NotificationSink
from barter_engine.services import offer_lifecycle

# File-based SQLite so concurrent claim tests can use one connection per thread.
# create_db_engine sets the busy timeout writers need to queue on the write lock.
SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///./test_barter.db"
engine = create_db_engine(SQLALCHEMY_TEST_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# --- Critical: the notification outbox opens its own sessions via database.SessionLocal ---
# Rebind the module attribute so those writes land in the test DB as well.
import barter_engine.database as _app_database  # noqa: E402
_app_database.SessionLocal = TestingSessionLocal  # type: ignore

@pytest.fixture(scope="session", autouse=True)
def create_test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    try:
        os.remove("test_barter.db")
    except OSError:
        pass

@pytest.fixture(autouse=True)
def _isolate_test_state(create_test_db):  # type: ignore[unused-argument]
    """Every test starts from empty tables; claim caps and uniqueness depend on it."""
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())

@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

# Override dependency
def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

app.dependency_overrides[deps.get_db] = _override_get_db

@pytest.fixture()
def session_factory():
    """Fresh sessions for tests that drive the services from several threads."""
    return TestingSessionLocal

@pytest.fixture()
def client():
    return TestClient(app)

@pytest.fixture()
def auth():
    def _headers(user):
        return {"Authorization": f"Bearer {user.api_key}"}
    return _headers

class RecordingNotifier(NotificationSink):
    def __init__(self):
        self.events = []

    def notify(self, user_id, kind, text):
        self.events.append((user_id, kind, text))

@pytest.fixture()
def notifier():
    return RecordingNotifier()

@pytest.fixture()
def social(db_session):
    return DatabaseSocialConnect(db_session)

# ---------- Data factory helpers ----------

# Publishable as-is for a US creator with an Instagram account and a shipping address
DEFAULT_METADATA = {
    "category": "SKINCARE",
    "platforms": ["INSTAGRAM"],
    "fulfillment_type": "MANUAL",
    "manual_fulfillment_method": "LOCAL_DELIVERY",
    "product_value": 45,
}

def _offer_payload(**overrides):
    payload = {
        "title": "Summer glow kit",
        "template": "REEL",
        "countries_allowed": ["US"],
        "max_claims": 5,
        "deadline_days_after_delivery": 14,
        "acceptance_followers_threshold": 0,
        "above_threshold_auto_accept": True,
        "usage_rights_required": False,
        "usage_rights_scope": None,
        "metadata": dict(DEFAULT_METADATA),
    }
    payload.update(overrides)
    return payload

@pytest.fixture()
def offer_payload():
    return _offer_payload

@pytest.fixture()
def brand_factory(db_session):
    def _create(name: str = "Glow Labs", lat: float | None = 40.7128, lng: float | None = -74.0060,
                subscribed: bool = False):
        brand = Brand(name=name, lat=lat, lng=lng)
        user = User(
            name=f"{name} Team",
            email=f"{secrets.token_hex(4)}@brand.example.com",
            role=UserRole.BRAND,
            api_key=f"brand_{secrets.token_hex(12)}",
        )
        user.brand = brand
        db_session.add(user)
        if subscribed:
            db_session.add(Subscription(brand=brand, status=SubscriptionStatus.ACTIVE))
        db_session.commit()
        db_session.refresh(user)
        return user
    return _create

@pytest.fixture()
def creator_factory(db_session):
    def _create(
        full_name: str | None = "Maya Chen",
        followers: int = 8000,
        country: str | None = "US",
        with_address: bool = True,
        providers: tuple = (SocialProvider.INSTAGRAM,),
        lat: float | None = 40.73,
        lng: float | None = -73.99,
    ):
        creator = Creator(
            full_name=full_name,
            followers_count=followers,
            country=country,
            lat=lat,
            lng=lng,
        )
        if with_address:
            creator.address1 = "12 Bleecker St"
            creator.city = "New York"
            creator.province = "NY"
            creator.zip = "10012"
        for provider in providers:
            creator.social_accounts.append(SocialAccount(provider=provider))
        user = User(
            name=full_name or "Creator",
            email=f"{secrets.token_hex(4)}@creator.example.com",
            role=UserRole.CREATOR,
            api_key=f"creator_{secrets.token_hex(12)}",
        )
        user.creator = creator
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _create

@pytest.fixture()
def offer_factory(db_session):
    def _create(brand_user, status: OfferStatus = OfferStatus.PUBLISHED, metadata: dict | None = None, **fields):
        payload = _offer_payload(**fields)
        if metadata is not None:
            merged = dict(DEFAULT_METADATA)
            merged.update(metadata)
            payload["metadata"] = {k: v for k, v in merged.items() if v is not None}
        return offer_lifecycle.create_offer(db_session, brand_user.brand, payload, status)
    return _create
