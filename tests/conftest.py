from __future__ import annotations
import os

# Must be set before fitpool.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ADMIN_PRINCIPALS", "ops-admin")
os.environ.setdefault("PAYOUT_MODE", "wallet")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from fitpool.db import Base, get_session
import fitpool.models.challenge  # register tables
import fitpool.models.registration
import fitpool.models.ledger
import fitpool.models.wallet
import fitpool.models.event
from fitpool.security import make_access_token
from fitpool.services.clock import get_clock
from fitpool.services.payouts import PayoutGateway, TransferError, get_payout_gateway


class FakeClock:
    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now


class RecordingGateway(PayoutGateway):
    """Records every transfer attempt; declines addresses listed in `fail_for`."""

    name = "recording"

    def __init__(self):
        self.calls: list[tuple[str, int, str]] = []
        self.fail_for: set[str] = set()

    async def transfer(self, session, *, address: str, amount: int, idempotency_key: str) -> str:
        self.calls.append((address, amount, idempotency_key))
        if address in self.fail_for:
            raise TransferError(f"declined for {address}")
        return f"rec:{idempotency_key}"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(sessionmaker):
    async with sessionmaker() as s:
        yield s


@pytest.fixture
def clock():
    return FakeClock(now=100)


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest_asyncio.fixture
async def client(sessionmaker, clock, gateway):
    from fitpool.main import app

    async def _session_override():
        async with sessionmaker() as s:
            yield s

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_payout_gateway] = lambda: gateway
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth(principal: str) -> dict:
    return {"Authorization": f"Bearer {make_access_token(principal)}"}


@pytest.fixture
def headers_for():
    return auth
