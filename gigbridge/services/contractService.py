"""
Contract Service
=================

Contract formation and the work that happens on an active contract.

``form_contract`` is called only by the hiring coordinator, inside the hire
transaction. Everything else is exposed through ``/contracts``:

  - get_contract / list_my_contracts
  - submit_work         -- freelancer appends a deliverable
  - review_work         -- client accepts (completes) or asks for a revision
  - update_hours_worked -- freelancer logs hours on an hourly contract
  - complete_contract   -- client/admin closes the contract and the job

Contract status is written only here, always with a conditional UPDATE on
``status = 'active'``.
"""

from __future__ import annotations

import enum
import logging
import uuid
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gigbridge.core.exceptions import (
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from gigbridge.core.security import AuthenticatedPrincipal
from gigbridge.events.engagementEvents import (
    emit_contract_completed,
    emit_contract_formed,
    emit_deliverable_reviewed,
    emit_deliverable_submitted,
)
from gigbridge.models.base import utcnow
from gigbridge.models.contract import (
    Contract,
    ContractDeliverable,
    ContractStatus,
    DeliverableStatus,
)
from gigbridge.models.job import BudgetType, Job, JobStatus
from gigbridge.models.proposal import Proposal
from gigbridge.services import jobStateGuard

logger = logging.getLogger(__name__)


class ReviewAction(str, enum.Enum):
    ACCEPT = "accept"
    REQUEST_REVISION = "request_revision"


# ---------------------------------------------------------------------------
# Formation
# ---------------------------------------------------------------------------

async def form_contract(db: AsyncSession, job: Job, proposal: Proposal) -> Contract:
    """Create the contract for an accepted proposal.

    Terms are copied from the proposal; the deadline is the start date plus
    the proposal's delivery time in days.
    """
    start = utcnow()
    contract = Contract(
        job_id=job.id,
        client_id=job.client_id,
        freelancer_id=proposal.freelancer_id,
        proposal_id=proposal.id,
        agreed_amount=proposal.bid_amount,
        budget_type=job.budget_type,
        agreed_delivery_time=proposal.delivery_time,
        description=f"Contract for: {job.title}"[:500],
        start_date=start,
        calculated_deadline=start + timedelta(days=proposal.delivery_time),
        status=ContractStatus.ACTIVE,
        hours_worked=Decimal("0"),
    )
    db.add(contract)
    await db.flush()

    logger.info(
        "Contract formed: contract=%s job=%s proposal=%s amount=%s",
        contract.id, job.id, proposal.id, contract.agreed_amount,
    )
    emit_contract_formed(contract.id, job.id, job.client_id, proposal.freelancer_id)
    return contract


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def load_contract(db: AsyncSession, contract_id: uuid.UUID) -> Contract:
    result = await db.execute(select(Contract).where(Contract.id == contract_id))
    contract = result.scalar_one_or_none()
    if contract is None:
        raise NotFoundError("Contract", contract_id)
    return contract


def is_party(contract: Contract, principal: AuthenticatedPrincipal) -> bool:
    return principal.id in (contract.client_id, contract.freelancer_id)


async def get_contract(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    contract_id: uuid.UUID,
) -> Contract:
    contract = await load_contract(db, contract_id)
    if not (principal.is_admin or is_party(contract, principal)):
        raise ForbiddenError("You are not authorized to view this contract.")
    return contract


async def list_deliverables(
    db: AsyncSession, contract_id: uuid.UUID
) -> Sequence[ContractDeliverable]:
    result = await db.execute(
        select(ContractDeliverable)
        .where(ContractDeliverable.contract_id == contract_id)
        .order_by(ContractDeliverable.submitted_at)
    )
    return result.scalars().all()


async def list_my_contracts(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    status: Optional[ContractStatus] = None,
) -> Sequence[Contract]:
    """Contracts where the principal is client or freelancer, newest first."""
    stmt = select(Contract).where(
        or_(
            Contract.client_id == principal.id,
            Contract.freelancer_id == principal.id,
        )
    )
    if status is not None:
        stmt = stmt.where(Contract.status == status)
    result = await db.execute(stmt.order_by(Contract.created_at.desc()))
    return result.scalars().all()


# ---------------------------------------------------------------------------
# Deliverables
# ---------------------------------------------------------------------------

async def submit_work(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    contract_id: uuid.UUID,
    description: Optional[str],
    files: Optional[list[dict[str, Any]]] = None,
) -> ContractDeliverable:
    """Freelancer submits a deliverable on an active contract."""
    if description is None or not description.strip():
        raise InvalidInputError("description is required")

    contract = await load_contract(db, contract_id)
    if contract.freelancer_id != principal.id:
        raise ForbiddenError("Only the contracted freelancer can submit work.")
    if contract.status != ContractStatus.ACTIVE:
        raise InvalidStateError(
            f"Cannot submit work on a contract that is {contract.status.value}",
            current_status=contract.status.value,
        )

    now = utcnow()
    deliverable = ContractDeliverable(
        contract_id=contract.id,
        submitted_by=principal.id,
        description=description,
        files=list(files or []),
        status=DeliverableStatus.PENDING_REVIEW,
        submitted_at=now,
    )
    db.add(deliverable)
    await db.execute(
        update(Contract)
        .where(Contract.id == contract.id)
        .values(delivered_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.flush()

    logger.info(
        "Deliverable submitted: contract=%s deliverable=%s", contract.id, deliverable.id
    )
    emit_deliverable_submitted(contract.id, deliverable.id, principal.id)
    return deliverable


async def review_work(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    contract_id: uuid.UUID,
    deliverable_id: uuid.UUID,
    action: ReviewAction,
    revision_note: Optional[str] = None,
) -> tuple[Contract, ContractDeliverable]:
    """Client accepts a deliverable (which completes the contract) or asks
    for a revision (which requires a note)."""
    action = ReviewAction(action)
    contract = await load_contract(db, contract_id)
    if contract.client_id != principal.id:
        raise ForbiddenError("Only the client can review submitted work.")

    result = await db.execute(
        select(ContractDeliverable).where(
            ContractDeliverable.id == deliverable_id,
            ContractDeliverable.contract_id == contract_id,
        )
    )
    deliverable = result.scalar_one_or_none()
    if deliverable is None:
        raise NotFoundError("Deliverable", deliverable_id)

    if action == ReviewAction.REQUEST_REVISION and (
        revision_note is None or not revision_note.strip()
    ):
        raise InvalidInputError("revision_note is required when requesting a revision")

    new_status = (
        DeliverableStatus.ACCEPTED
        if action == ReviewAction.ACCEPT
        else DeliverableStatus.REVISION_REQUESTED
    )
    reviewed = await db.execute(
        update(ContractDeliverable)
        .where(
            ContractDeliverable.id == deliverable_id,
            ContractDeliverable.status == DeliverableStatus.PENDING_REVIEW,
        )
        .values(
            status=new_status,
            reviewed_at=utcnow(),
            reviewed_by=principal.id,
            revision_note=revision_note if action == ReviewAction.REQUEST_REVISION else None,
        )
        .execution_options(synchronize_session=False)
    )
    await db.refresh(deliverable)
    if reviewed.rowcount == 0:
        raise InvalidStateError(
            f"This deliverable has already been reviewed (current: {deliverable.status.value})",
            current_status=deliverable.status.value,
        )

    logger.info(
        "Deliverable reviewed: contract=%s deliverable=%s outcome=%s",
        contract_id, deliverable_id, new_status.value,
    )
    emit_deliverable_reviewed(contract_id, deliverable_id, principal.id, new_status.value)

    if action == ReviewAction.ACCEPT and contract.status == ContractStatus.ACTIVE:
        contract = await complete_contract(db, principal, contract_id)
    return contract, deliverable


# ---------------------------------------------------------------------------
# Hours
# ---------------------------------------------------------------------------

async def update_hours_worked(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    contract_id: uuid.UUID,
    hours: Any,
) -> Contract:
    """Freelancer records the total hours worked on an hourly contract."""
    try:
        total = Decimal(str(hours))
    except InvalidOperation:
        raise InvalidInputError(f"hours_worked must be a number, got {hours!r}")
    if not total.is_finite() or total < 0:
        raise InvalidInputError("hours_worked must be greater than or equal to 0")

    contract = await load_contract(db, contract_id)
    if contract.freelancer_id != principal.id:
        raise ForbiddenError("Only the contracted freelancer can log hours.")
    if contract.budget_type != BudgetType.HOURLY:
        raise InvalidInputError("Hours can only be logged on hourly contracts.")

    result = await db.execute(
        update(Contract)
        .where(Contract.id == contract_id, Contract.status == ContractStatus.ACTIVE)
        .values(hours_worked=total)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(contract)
    if result.rowcount == 0:
        raise InvalidStateError(
            f"Cannot log hours on a contract that is {contract.status.value}",
            current_status=contract.status.value,
        )

    logger.info("Hours updated: contract=%s hours=%s", contract_id, total)
    return contract


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

async def complete_contract(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    contract_id: uuid.UUID,
) -> Contract:
    """Close an active contract and move its job to ``completed``."""
    contract = await load_contract(db, contract_id)
    if not (principal.is_admin or contract.client_id == principal.id):
        raise ForbiddenError("Only the client or an admin can complete this contract.")

    now = utcnow()
    result = await db.execute(
        update(Contract)
        .where(Contract.id == contract_id, Contract.status == ContractStatus.ACTIVE)
        .values(status=ContractStatus.COMPLETED, completed_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(contract)
    if result.rowcount == 0:
        raise InvalidStateError(
            f"Contract is already {contract.status.value}",
            current_status=contract.status.value,
        )

    job_result = await db.execute(select(Job).where(Job.id == contract.job_id))
    job = job_result.scalar_one()
    if job.status == JobStatus.IN_PROGRESS:
        await jobStateGuard.transition_job(
            db, job, JobStatus.COMPLETED, actor_id=principal.id
        )

    logger.info("Contract completed: contract=%s job=%s", contract_id, contract.job_id)
    emit_contract_completed(contract_id, contract.job_id, principal.id)
    return contract
