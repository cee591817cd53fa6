"""
E2E test fixtures for the GigBridge engagement API.

Provides:
- A file-backed SQLite database per test (aiosqlite), so concurrent requests
  run on separate connections the way they do against PostgreSQL
- The real application from ``create_app()`` with ``get_db`` overridden to
  open one session per request and ``get_payment_gateway`` overridden with a
  recording gateway
- httpx AsyncClient wired via ASGI transport (no network needed)
- Seed data: clients, freelancers, an admin and jobs in various states
- Helpers for building auth headers and walking a job through hire

Every SQLite transaction starts with ``BEGIN IMMEDIATE``: writers queue on
the database lock instead of failing with "database is locked", which makes
the concurrency tests deterministic.
"""

from __future__ import annotations

import asyncio
import uuid
from decimal import Decimal
from typing import Any, AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles

from gigbridge.core.security import create_access_token
from gigbridge.integrations.payments import GatewayResult, generate_transaction_id
from gigbridge.models.base import Base
from gigbridge.models.user import UserRole


# A bare "UUID" column gets NUMERIC affinity in SQLite, which turns
# all-digit hex ids into REALs. CHAR keeps the 32-char hex string intact.
@compiles(UUID, "sqlite")
def compile_uuid_sqlite(type_, compiler, **kw):
    return "CHAR(32)"

# ---------------------------------------------------------------------------
# Test IDs (stable across tests so cross-references work)
# ---------------------------------------------------------------------------

CLIENT_USER_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
OTHER_CLIENT_USER_ID = uuid.UUID("abababab-abab-abab-abab-abababababab")
FREELANCER_USER_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
FREELANCER_2_USER_ID = uuid.UUID("cccccccc-cccc-cccc-cccc-cccccccccccc")
FREELANCER_3_USER_ID = uuid.UUID("cdcdcdcd-cdcd-cdcd-cdcd-cdcdcdcdcdcd")
ADMIN_USER_ID = uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd")

OPEN_FIXED_JOB_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
OPEN_HOURLY_JOB_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
COMPLETED_JOB_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")

API = "/api/v1"


# ---------------------------------------------------------------------------
# Async engine + session factory (file-backed SQLite)
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def _test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh database file for one test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'gigbridge.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn, _):
        # Hand transaction control to the "begin" listener below.
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(_test_engine) -> async_sessionmaker[AsyncSession]:
    factory = async_sessionmaker(
        bind=_test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with factory() as session:
        await _seed_data(session)
        await session.commit()
    return factory


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

async def _seed_data(db: AsyncSession) -> None:
    """Insert minimum seed data for E2E tests."""
    from gigbridge.models.job import BudgetType, Job, JobStatus
    from gigbridge.models.user import User

    users = [
        User(id=CLIENT_USER_ID, email="client@test.gigbridge.dev",
             first_name="Jane", last_name="Doe", role=UserRole.CLIENT),
        User(id=OTHER_CLIENT_USER_ID, email="client2@test.gigbridge.dev",
             first_name="Omar", last_name="Haddad", role=UserRole.CLIENT),
        User(id=FREELANCER_USER_ID, email="freelancer@test.gigbridge.dev",
             first_name="John", last_name="Smith", role=UserRole.FREELANCER),
        User(id=FREELANCER_2_USER_ID, email="freelancer2@test.gigbridge.dev",
             first_name="Ana", last_name="Silva", role=UserRole.FREELANCER),
        User(id=FREELANCER_3_USER_ID, email="freelancer3@test.gigbridge.dev",
             first_name="Kenji", last_name="Sato", role=UserRole.FREELANCER),
        User(id=ADMIN_USER_ID, email="admin@test.gigbridge.dev",
             first_name="Admin", last_name="User", role=UserRole.ADMIN),
    ]
    db.add_all(users)
    await db.flush()

    jobs = [
        Job(
            id=OPEN_FIXED_JOB_ID,
            client_id=CLIENT_USER_ID,
            title="Redesign marketing site",
            budget_type=BudgetType.FIXED,
            budget_amount=Decimal("1200.00"),
            status=JobStatus.OPEN,
            proposals_count=0,
        ),
        Job(
            id=OPEN_HOURLY_JOB_ID,
            client_id=CLIENT_USER_ID,
            title="Ongoing backend support",
            budget_type=BudgetType.HOURLY,
            budget_amount=Decimal("45.00"),
            status=JobStatus.OPEN,
            proposals_count=0,
        ),
        Job(
            id=COMPLETED_JOB_ID,
            client_id=CLIENT_USER_ID,
            title="Logo refresh",
            budget_type=BudgetType.FIXED,
            budget_amount=Decimal("300.00"),
            status=JobStatus.COMPLETED,
            proposals_count=0,
        ),
    ]
    db.add_all(jobs)
    await db.flush()


# ---------------------------------------------------------------------------
# Payment gateway double
# ---------------------------------------------------------------------------

class RecordingGateway:
    """Gateway that counts charges and returns a fixed outcome."""

    def __init__(self, approve: bool = True, delay: float = 0.0) -> None:
        self.approve = approve
        self.delay = delay
        self.calls: list[tuple[Decimal, str]] = []

    async def charge(self, amount: Decimal, method: str) -> GatewayResult:
        self.calls.append((amount, method))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.approve:
            return GatewayResult.approve(generate_transaction_id())
        return GatewayResult.decline()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


# ---------------------------------------------------------------------------
# FastAPI test application
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    gateway: RecordingGateway,
) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient connected to the application via ASGI transport."""
    from gigbridge.api.deps import get_db, get_payment_gateway
    from gigbridge.main import create_app

    app = create_app()

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def auth_headers(user_id: uuid.UUID, role: UserRole | str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


CLIENT = auth_headers(CLIENT_USER_ID, UserRole.CLIENT)
OTHER_CLIENT = auth_headers(OTHER_CLIENT_USER_ID, UserRole.CLIENT)
FREELANCER = auth_headers(FREELANCER_USER_ID, UserRole.FREELANCER)
FREELANCER_2 = auth_headers(FREELANCER_2_USER_ID, UserRole.FREELANCER)
FREELANCER_3 = auth_headers(FREELANCER_3_USER_ID, UserRole.FREELANCER)
ADMIN = auth_headers(ADMIN_USER_ID, UserRole.ADMIN)


async def submit_proposal_via_api(
    client: AsyncClient,
    headers: dict[str, str],
    job_id: uuid.UUID = OPEN_FIXED_JOB_ID,
    **overrides: Any,
):
    """Submit a proposal and return the raw response."""
    payload: dict[str, Any] = {
        "jobId": str(job_id),
        "coverLetter": "I have delivered similar projects for three agencies.",
        "bidAmount": "800.00",
        "deliveryTime": 10,
    }
    payload.update(overrides)
    return await client.post(f"{API}/proposals", json=payload, headers=headers)


async def fetch_row(
    session_factory: async_sessionmaker[AsyncSession],
    model: type,
    row_id: uuid.UUID,
):
    """Load one row in a short-lived session so no lock outlives the read."""
    async with session_factory() as session:
        return await session.get(model, row_id)


async def count_rows(
    session_factory: async_sessionmaker[AsyncSession],
    model: type,
    *criteria: Any,
) -> int:
    from sqlalchemy import func, select

    async with session_factory() as session:
        result = await session.execute(
            select(func.count()).select_from(model).where(*criteria)
        )
        return result.scalar_one()


async def hire_via_api(
    client: AsyncClient,
    job_id: uuid.UUID = OPEN_FIXED_JOB_ID,
    bid_amount: str = "800.00",
    delivery_time: int = 10,
    headers: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    """Submit a proposal as FREELANCER and hire it as CLIENT.

    Returns the hire response body (proposal, contract, excluded_count).
    """
    submitted = await submit_proposal_via_api(
        client,
        headers or FREELANCER,
        job_id,
        bidAmount=bid_amount,
        deliveryTime=delivery_time,
    )
    assert submitted.status_code == 201, submitted.text
    hired = await client.patch(
        f"{API}/proposals/{submitted.json()['id']}/hire", headers=CLIENT
    )
    assert hired.status_code == 200, hired.text
    return hired.json()
