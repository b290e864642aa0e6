"""
Shared fixtures for the RemindMyBill test suite.

The app is pointed at a throwaway SQLite file before any remindmybill module
is imported, so the engine in ``remindmybill.db`` never touches Postgres.
"""

import itertools
import os
import tempfile
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio

_DB_DIR = tempfile.mkdtemp(prefix="remindmybill-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ["DEBUG"] = "false"

from httpx import ASGITransport, AsyncClient  # noqa: E402

from remindmybill.db import Base, async_session, engine  # noqa: E402
from remindmybill.main import app  # noqa: E402
from remindmybill.models.subscription import Subscription  # noqa: E402
from remindmybill.models.user import User  # noqa: E402
from remindmybill.services.auth import create_access_token  # noqa: E402


# =============================================================================
# IN-MEMORY SUBSCRIPTIONS
# =============================================================================

@pytest.fixture
def make_sub():
    """Build unsaved Subscription rows with sensible defaults."""
    ids = itertools.count(1)

    def _make(**overrides) -> Subscription:
        values = {
            "id": next(ids),
            "user_id": 1,
            "name": "Netflix",
            "cost": Decimal("10.00"),
            "currency": "USD",
            "frequency": "monthly",
            "category": "Streaming",
            "renewal_date": date(2025, 3, 15),
            "status": "active",
            "is_locked": False,
            "is_trial": False,
            "is_enabled": True,
            "shared_with_count": 1,
            "created_at": datetime(2025, 1, 1, 12, 0, 0),
        }
        values.update(overrides)
        return Subscription(**values)

    return _make


# =============================================================================
# DATABASE + HTTP CLIENT
# =============================================================================

@pytest_asyncio.fixture
async def db_session():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as session:
        yield session
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def user(db_session):
    u = User(email="alex@example.com", full_name="Alex", tier="free", is_pro=False, default_currency="USD")
    db_session.add(u)
    await db_session.commit()
    await db_session.refresh(u)
    return u


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest_asyncio.fixture
async def client(db_session):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
