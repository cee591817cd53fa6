"""
Shared pytest fixtures for GigBridge unit tests.

Provides mock database sessions, principals and sample domain objects that
mirror production ORM models without requiring a live database connection.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from gigbridge.core.security import AuthenticatedPrincipal
from gigbridge.models.contract import Contract, ContractStatus
from gigbridge.models.job import BudgetType, Job, JobStatus
from gigbridge.models.payment import Payment, PaymentMethod, PaymentStatus
from gigbridge.models.proposal import Proposal, ProposalStatus
from gigbridge.models.user import UserRole


# ---------------------------------------------------------------------------
# Database session mock
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db() -> AsyncMock:
    """Async mock of ``AsyncSession``.

    Provides a mock that supports ``db.execute()``, ``db.add()``,
    ``db.flush()``, ``db.refresh()`` and ``db.commit()`` out of the box.
    Individual tests configure ``mock_db.execute.side_effect`` with mock
    results to control query results and affected row counts.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    return session


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------


@pytest.fixture
def client_principal() -> AuthenticatedPrincipal:
    return AuthenticatedPrincipal(id=uuid.uuid4(), role=UserRole.CLIENT)


@pytest.fixture
def freelancer_principal() -> AuthenticatedPrincipal:
    return AuthenticatedPrincipal(id=uuid.uuid4(), role=UserRole.FREELANCER)


@pytest.fixture
def admin_principal() -> AuthenticatedPrincipal:
    return AuthenticatedPrincipal(id=uuid.uuid4(), role=UserRole.ADMIN)


# ---------------------------------------------------------------------------
# Sample domain objects
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_job(client_principal) -> Job:
    now = datetime.now(timezone.utc)
    return Job(
        id=uuid.uuid4(),
        client_id=client_principal.id,
        title="Build a landing page",
        budget_type=BudgetType.FIXED,
        budget_amount=Decimal("800.00"),
        status=JobStatus.OPEN,
        proposals_count=0,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def sample_proposal(sample_job, freelancer_principal) -> Proposal:
    now = datetime.now(timezone.utc)
    return Proposal(
        id=uuid.uuid4(),
        job_id=sample_job.id,
        freelancer_id=freelancer_principal.id,
        bid_amount=Decimal("500.00"),
        delivery_time=5,
        cover_letter="I have shipped a dozen landing pages this year.",
        attachments=[],
        status=ProposalStatus.SUBMITTED,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def sample_contract(sample_job, sample_proposal) -> Contract:
    now = datetime.now(timezone.utc)
    return Contract(
        id=uuid.uuid4(),
        job_id=sample_job.id,
        client_id=sample_job.client_id,
        freelancer_id=sample_proposal.freelancer_id,
        proposal_id=sample_proposal.id,
        agreed_amount=sample_proposal.bid_amount,
        budget_type=BudgetType.FIXED,
        agreed_delivery_time=5,
        description=f"Contract for: {sample_job.title}",
        start_date=now,
        calculated_deadline=now + timedelta(days=5),
        status=ContractStatus.ACTIVE,
        hours_worked=Decimal("0"),
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def sample_payment(sample_contract) -> Payment:
    now = datetime.now(timezone.utc)
    return Payment(
        id=uuid.uuid4(),
        contract_id=sample_contract.id,
        payer_id=sample_contract.client_id,
        payee_id=sample_contract.freelancer_id,
        amount=Decimal("1000.00"),
        currency="USD",
        platform_fee=Decimal("100.00"),
        payment_method=PaymentMethod.CREDIT_CARD,
        status=PaymentStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
