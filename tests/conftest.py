"""Shared fixtures: a fresh SQLite file database per test, a scripted payment
gateway, a recording notifier and seeded vendor/event rows."""

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("QR_SIGNING_SECRET", "test-qr-secret")
os.environ.setdefault("PAYMENT_GATEWAY_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from app.core.security import Principal
from app.db.base import Base, build_engine, build_session_factory
from app.domain.event import EVENT_TYPE_BAZAAR, LOCATION_GUC_CAIRO, Event
from app.domain.vendor import Vendor
from app.services.storage import DocumentStorage
from helpers import FakeGateway, RecordingNotifier

EVENT_START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
EVENT_END = datetime(2024, 3, 31, 18, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine(tmp_path):
    db_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as db_session:
        yield db_session


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def storage(tmp_path):
    return DocumentStorage(tmp_path / "uploads")


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def vendor(session):
    row = Vendor(email="stall@example.com", company_name="Koshary Corner")
    session.add(row)
    await session.commit()
    return row


@pytest_asyncio.fixture
async def other_vendor(session):
    row = Vendor(email="rival@example.com", company_name="Falafel Express")
    session.add(row)
    await session.commit()
    return row


@pytest_asyncio.fixture
async def bazaar_event(session):
    row = Event(
        name="Spring Bazaar",
        event_type=EVENT_TYPE_BAZAAR,
        location=LOCATION_GUC_CAIRO,
        start_date=EVENT_START,
        end_date=EVENT_END,
    )
    session.add(row)
    await session.commit()
    return row


@pytest.fixture
def vendor_principal(vendor):
    return Principal(id=vendor.id, role="vendor", email=vendor.email)


@pytest.fixture
def other_vendor_principal(other_vendor):
    return Principal(id=other_vendor.id, role="vendor", email=other_vendor.email)


@pytest.fixture
def office_principal():
    return Principal(id="office-1", role="events_office", email="office@guc.edu.eg")
