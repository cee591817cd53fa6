"""
Proposal Service
=================

Business logic for the proposal store. All operations use async SQLAlchemy
sessions and take the acting ``AuthenticatedPrincipal`` explicitly.

Every status write is a conditional ``UPDATE ... WHERE status IN (...)``
checked through ``rowcount``, and ``jobs.proposals_count`` is only ever
changed with ``SET proposals_count = proposals_count +/- 1`` in the same
transaction as the proposal write. ``proposals_count`` counts the proposals
on a job that exist and are not withdrawn.

Key functions:
  - submit_proposal    -- create in ``submitted`` and bump the job counter
  - edit_proposal      -- owner edits while not terminal
  - withdraw_proposal  -- owner withdraws from submitted/viewed
  - mark_viewed        -- job owner opens a submitted proposal (idempotent)
  - reject_proposal    -- job owner declines a submitted/viewed proposal
  - delete_proposal    -- admin, or owner while still submitted
  - get_proposal / list_proposals_for_job / list_my_proposals
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gigbridge.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from gigbridge.core.security import AuthenticatedPrincipal
from gigbridge.events.engagementEvents import (
    emit_proposal_status_changed,
    emit_proposal_submitted,
)
from gigbridge.models.base import utcnow
from gigbridge.models.job import Job, JobStatus
from gigbridge.models.proposal import Proposal, ProposalStatus
from gigbridge.models.user import UserRole
from gigbridge.services.jobStateGuard import accepts_proposals
from gigbridge.services.proposalStateManager import (
    ACTIVE_STATUSES,
    is_terminal,
    validate_transition,
)

logger = logging.getLogger(__name__)

COVER_LETTER_MAX_LENGTH = 2000
MESSAGE_MAX_LENGTH = 1000
REASON_MAX_LENGTH = 500
DEFAULT_REASON = "No reason provided"


# ---------------------------------------------------------------------------
# Loading helpers
# ---------------------------------------------------------------------------

async def load_job(db: AsyncSession, job_id: uuid.UUID) -> Job:
    result = await db.execute(select(Job).where(Job.id == job_id))
    job = result.scalar_one_or_none()
    if job is None:
        raise NotFoundError("Job", job_id)
    return job


async def load_proposal(db: AsyncSession, proposal_id: uuid.UUID) -> Proposal:
    result = await db.execute(select(Proposal).where(Proposal.id == proposal_id))
    proposal = result.scalar_one_or_none()
    if proposal is None:
        raise NotFoundError("Proposal", proposal_id)
    return proposal


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def _validate_bid_amount(value: Any) -> Decimal:
    if value is None:
        raise InvalidInputError("bid_amount is required")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidInputError(f"bid_amount must be a number, got {value!r}")
    if not amount.is_finite() or amount < 0:
        raise InvalidInputError("bid_amount must be greater than or equal to 0")
    return amount


def _validate_delivery_time(value: Any) -> int:
    if value is None:
        raise InvalidInputError("delivery_time is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError("delivery_time must be a whole number of days")
    if value <= 0:
        raise InvalidInputError("delivery_time must be at least 1 day")
    return value


def _validate_cover_letter(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise InvalidInputError("cover_letter is required")
    if len(value) > COVER_LETTER_MAX_LENGTH:
        raise InvalidInputError(
            f"cover_letter must be at most {COVER_LETTER_MAX_LENGTH} characters"
        )
    return value


def _validate_message(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value) > MESSAGE_MAX_LENGTH:
        raise InvalidInputError(
            f"message must be at most {MESSAGE_MAX_LENGTH} characters"
        )
    return value


def _normalize_reason(value: Optional[str]) -> str:
    if value is None or not value.strip():
        return DEFAULT_REASON
    if len(value) > REASON_MAX_LENGTH:
        raise InvalidInputError(
            f"reason must be at most {REASON_MAX_LENGTH} characters"
        )
    return value


def _require_job_owner(job: Job, principal: AuthenticatedPrincipal, action: str) -> None:
    if job.client_id != principal.id:
        raise ForbiddenError(f"Only the job owner can {action} proposals.")


# ---------------------------------------------------------------------------
# Job counter
# ---------------------------------------------------------------------------

async def _lock_job(db: AsyncSession, job_id: uuid.UUID) -> None:
    # Hire and submit write the job row before any proposal row; writers
    # that touch both take the job lock first so the order never inverts.
    await db.execute(select(Job.id).where(Job.id == job_id).with_for_update())


async def _decrement_proposals_count(db: AsyncSession, job_id: uuid.UUID) -> None:
    await db.execute(
        update(Job)
        .where(Job.id == job_id, Job.proposals_count > 0)
        .values(proposals_count=Job.proposals_count - 1)
        .execution_options(synchronize_session=False)
    )


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------

async def submit_proposal(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    *,
    job_id: uuid.UUID,
    bid_amount: Any,
    delivery_time: Any,
    cover_letter: Optional[str],
    attachments: Optional[list[dict[str, Any]]] = None,
    message: Optional[str] = None,
) -> Proposal:
    """Create a proposal in ``submitted`` state on an open job.

    The job's ``proposals_count`` increment and the insert share one
    transaction. The increment is conditional on the job still being open,
    and the partial unique index on (job, freelancer) catches a duplicate
    that slips past the pre-check under concurrency.

    Args:
        db: Async database session.
        principal: The submitting freelancer.
        job_id: UUID of the job.
        bid_amount: Bid, must be >= 0.
        delivery_time: Delivery time in days, must be > 0.
        cover_letter: Required cover letter.
        attachments: Stored-file metadata from the upload service.
        message: Optional short note to the client.

    Returns:
        The persisted proposal.

    Raises:
        InvalidInputError: Missing or out-of-range fields.
        ForbiddenError: If the principal is not a freelancer.
        NotFoundError: If the job does not exist.
        InvalidStateError: If the job is not open.
        ConflictError: If the freelancer already has an active proposal here.
    """
    if principal.role != UserRole.FREELANCER:
        raise ForbiddenError("Only freelancers can submit proposals.")

    bid = _validate_bid_amount(bid_amount)
    days = _validate_delivery_time(delivery_time)
    letter = _validate_cover_letter(cover_letter)
    note = _validate_message(message)

    job = await load_job(db, job_id)
    if not accepts_proposals(job):
        raise InvalidStateError(
            f"This job is {job.status.value} and no longer accepting proposals.",
            current_status=job.status.value,
        )

    existing = await db.execute(
        select(Proposal.id).where(
            Proposal.job_id == job_id,
            Proposal.freelancer_id == principal.id,
            Proposal.status.in_(ACTIVE_STATUSES),
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("You have already submitted a proposal for this job.")

    bumped = await db.execute(
        update(Job)
        .where(Job.id == job_id, Job.status == JobStatus.OPEN)
        .values(proposals_count=Job.proposals_count + 1)
        .execution_options(synchronize_session=False)
    )
    if bumped.rowcount == 0:
        await db.refresh(job)
        raise InvalidStateError(
            f"This job is {job.status.value} and no longer accepting proposals.",
            current_status=job.status.value,
        )

    proposal = Proposal(
        job_id=job_id,
        freelancer_id=principal.id,
        bid_amount=bid,
        delivery_time=days,
        cover_letter=letter,
        message=note,
        attachments=list(attachments or []),
        status=ProposalStatus.SUBMITTED,
    )
    db.add(proposal)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("You have already submitted a proposal for this job.")

    logger.info(
        "Proposal submitted: proposal=%s job=%s freelancer=%s bid=%s",
        proposal.id, job_id, principal.id, bid,
    )
    emit_proposal_submitted(proposal.id, job_id, principal.id)
    return proposal


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------

async def edit_proposal(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    proposal_id: uuid.UUID,
    fields: dict[str, Any],
) -> Proposal:
    """Apply a subset of {cover_letter, message, bid_amount, delivery_time,
    attachments} to the principal's own non-terminal proposal."""
    proposal = await load_proposal(db, proposal_id)
    if proposal.freelancer_id != principal.id:
        raise ForbiddenError("You can only edit your own proposals.")
    if is_terminal(proposal.status):
        raise InvalidStateError(
            f"Cannot edit a proposal that is {proposal.status.value}",
            current_status=proposal.status.value,
        )

    values: dict[str, Any] = {}
    if fields.get("bid_amount") is not None:
        values["bid_amount"] = _validate_bid_amount(fields["bid_amount"])
    if fields.get("delivery_time") is not None:
        values["delivery_time"] = _validate_delivery_time(fields["delivery_time"])
    if fields.get("cover_letter") is not None:
        values["cover_letter"] = _validate_cover_letter(fields["cover_letter"])
    if "message" in fields:
        values["message"] = _validate_message(fields["message"])
    if fields.get("attachments") is not None:
        values["attachments"] = list(fields["attachments"])

    if not values:
        return proposal

    result = await db.execute(
        update(Proposal)
        .where(Proposal.id == proposal_id, Proposal.status.in_(ACTIVE_STATUSES))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(proposal)
    if result.rowcount == 0:
        raise InvalidStateError(
            f"Cannot edit a proposal that is {proposal.status.value}",
            current_status=proposal.status.value,
        )

    logger.info("Proposal edited: proposal=%s fields=%s", proposal_id, sorted(values))
    return proposal


# ---------------------------------------------------------------------------
# Withdraw / view / reject
# ---------------------------------------------------------------------------

async def withdraw_proposal(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    proposal_id: uuid.UUID,
    reason: Optional[str] = None,
) -> Proposal:
    """Withdraw the principal's own proposal and decrement the job counter."""
    proposal = await load_proposal(db, proposal_id)
    if proposal.freelancer_id != principal.id:
        raise ForbiddenError("You can only withdraw your own proposals.")
    if not validate_transition(proposal.status, ProposalStatus.WITHDRAWN).allowed:
        raise InvalidStateError(
            f"Cannot withdraw a proposal that is {proposal.status.value}",
            current_status=proposal.status.value,
        )

    await _lock_job(db, proposal.job_id)
    old_status = proposal.status
    result = await db.execute(
        update(Proposal)
        .where(Proposal.id == proposal_id, Proposal.status.in_(ACTIVE_STATUSES))
        .values(
            status=ProposalStatus.WITHDRAWN,
            withdraw_reason=_normalize_reason(reason),
            responded_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    await db.refresh(proposal)
    if result.rowcount == 0:
        raise InvalidStateError(
            f"Cannot withdraw a proposal that is {proposal.status.value}",
            current_status=proposal.status.value,
        )

    await _decrement_proposals_count(db, proposal.job_id)
    logger.info("Proposal withdrawn: proposal=%s job=%s", proposal_id, proposal.job_id)
    emit_proposal_status_changed(
        proposal_id, old_status.value, ProposalStatus.WITHDRAWN.value, principal.id
    )
    return proposal


async def mark_viewed(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    proposal_id: uuid.UUID,
) -> Proposal:
    """Move a ``submitted`` proposal to ``viewed``; no-op in any other state."""
    proposal = await load_proposal(db, proposal_id)
    job = await load_job(db, proposal.job_id)
    _require_job_owner(job, principal, "view")

    result = await db.execute(
        update(Proposal)
        .where(
            Proposal.id == proposal_id,
            Proposal.status == ProposalStatus.SUBMITTED,
        )
        .values(status=ProposalStatus.VIEWED, viewed_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.refresh(proposal)
    if result.rowcount:
        logger.info("Proposal viewed: proposal=%s", proposal_id)
        emit_proposal_status_changed(
            proposal_id,
            ProposalStatus.SUBMITTED.value,
            ProposalStatus.VIEWED.value,
            principal.id,
        )
    return proposal


async def reject_proposal(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    proposal_id: uuid.UUID,
    reason: Optional[str] = None,
) -> Proposal:
    """Job owner declines a submitted or viewed proposal."""
    proposal = await load_proposal(db, proposal_id)
    job = await load_job(db, proposal.job_id)
    _require_job_owner(job, principal, "reject")
    if not validate_transition(proposal.status, ProposalStatus.REJECTED).allowed:
        raise InvalidStateError(
            f"Cannot reject a proposal that is {proposal.status.value}",
            current_status=proposal.status.value,
        )

    old_status = proposal.status
    result = await db.execute(
        update(Proposal)
        .where(Proposal.id == proposal_id, Proposal.status.in_(ACTIVE_STATUSES))
        .values(
            status=ProposalStatus.REJECTED,
            rejection_reason=_normalize_reason(reason),
            responded_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    await db.refresh(proposal)
    if result.rowcount == 0:
        raise InvalidStateError(
            f"Cannot reject a proposal that is {proposal.status.value}",
            current_status=proposal.status.value,
        )

    logger.info("Proposal rejected: proposal=%s job=%s", proposal_id, job.id)
    emit_proposal_status_changed(
        proposal_id, old_status.value, ProposalStatus.REJECTED.value, principal.id
    )
    return proposal


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

async def delete_proposal(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    proposal_id: uuid.UUID,
) -> None:
    """Delete a proposal.

    Admins may delete any proposal except an accepted one (it backs a
    contract). Owners may delete only while the proposal is still
    ``submitted``. The job counter is decremented unless the proposal had
    already been withdrawn.
    """
    proposal = await load_proposal(db, proposal_id)
    status = proposal.status

    if principal.is_admin:
        if status == ProposalStatus.ACCEPTED:
            raise InvalidStateError(
                "Cannot delete an accepted proposal; it backs a contract",
                current_status=status.value,
            )
    elif proposal.freelancer_id == principal.id:
        if status != ProposalStatus.SUBMITTED:
            raise InvalidStateError(
                f"You can only delete proposals that are still submitted "
                f"(current: {status.value})",
                current_status=status.value,
            )
    else:
        raise ForbiddenError("You are not authorized to delete this proposal.")

    await _lock_job(db, proposal.job_id)
    result = await db.execute(
        delete(Proposal)
        .where(Proposal.id == proposal_id, Proposal.status == status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.refresh(proposal)
        raise InvalidStateError(
            f"Proposal changed while deleting (current: {proposal.status.value})",
            current_status=proposal.status.value,
        )

    if status != ProposalStatus.WITHDRAWN:
        await _decrement_proposals_count(db, proposal.job_id)

    logger.info(
        "Proposal deleted: proposal=%s job=%s by=%s",
        proposal_id, proposal.job_id, principal.id,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_proposal(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    proposal_id: uuid.UUID,
) -> Proposal:
    """Return a proposal visible to its freelancer, the job owner or an admin."""
    proposal = await load_proposal(db, proposal_id)
    if principal.is_admin or proposal.freelancer_id == principal.id:
        return proposal
    job = await load_job(db, proposal.job_id)
    if job.client_id != principal.id:
        raise ForbiddenError("You are not authorized to view this proposal.")
    return proposal


async def list_proposals_for_job(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    job_id: uuid.UUID,
    status: Optional[ProposalStatus] = None,
) -> Sequence[Proposal]:
    """All proposals on a job, newest first; job owner or admin only."""
    job = await load_job(db, job_id)
    if not principal.is_admin:
        _require_job_owner(job, principal, "list")

    stmt = select(Proposal).where(Proposal.job_id == job_id)
    if status is not None:
        stmt = stmt.where(Proposal.status == status)
    result = await db.execute(stmt.order_by(Proposal.created_at.desc()))
    return result.scalars().all()


async def list_my_proposals(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    status: Optional[ProposalStatus] = None,
) -> Sequence[Proposal]:
    stmt = select(Proposal).where(Proposal.freelancer_id == principal.id)
    if status is not None:
        stmt = stmt.where(Proposal.status == status)
    result = await db.execute(stmt.order_by(Proposal.created_at.desc()))
    return result.scalars().all()
