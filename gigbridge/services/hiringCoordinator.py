"""
Hiring Coordinator
===================

Hires one proposal on an open job. The whole hire is a single unit of work
on the caller's session:

  1. claim the job: ``open -> in_progress`` (conditional UPDATE)
  2. accept the proposal: ``submitted -> accepted`` (conditional UPDATE)
  3. exclude every other ``submitted`` proposal on the job
  4. form the contract

Nothing is committed here; the request boundary commits all four writes
together or rolls all of them back. Two clients racing to hire on the same
job therefore produce exactly one winner: the loser's job claim matches
zero rows once the winner has committed.

Siblings in ``viewed`` are not excluded; they keep their status and can
still be withdrawn or rejected.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from gigbridge.core.exceptions import ForbiddenError, InvalidStateError
from gigbridge.core.security import AuthenticatedPrincipal
from gigbridge.events.engagementEvents import emit_proposal_hired
from gigbridge.models.base import utcnow
from gigbridge.models.contract import Contract
from gigbridge.models.job import JobStatus
from gigbridge.models.proposal import Proposal, ProposalStatus
from gigbridge.services import contractService, jobStateGuard, proposalService
from gigbridge.services.proposalStateManager import (
    EXCLUDABLE_STATUSES,
    HIREABLE_STATUSES,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HireResult:
    """Outcome of a successful hire."""

    proposal: Proposal
    contract: Contract
    excluded_count: int


async def hire(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    proposal_id: uuid.UUID,
) -> HireResult:
    """Hire *proposal_id* on behalf of the job's owner.

    Raises:
        NotFoundError: If the proposal or its job does not exist.
        ForbiddenError: If the principal does not own the job.
        InvalidStateError: If the proposal is not ``submitted`` or the job
            is no longer ``open`` (including losing a concurrent hire).
    """
    proposal = await proposalService.load_proposal(db, proposal_id)
    job = await proposalService.load_job(db, proposal.job_id)

    if job.client_id != principal.id:
        raise ForbiddenError("Only the job owner can hire for this job.")
    if proposal.status not in HIREABLE_STATUSES:
        raise InvalidStateError(
            f"Only submitted proposals can be hired (current: {proposal.status.value})",
            current_status=proposal.status.value,
        )

    # 1. Claim the job; exactly one concurrent hire gets past this point.
    await jobStateGuard.transition_job(
        db, job, JobStatus.IN_PROGRESS, actor_id=principal.id
    )

    # 2. Accept the proposal, unless it was withdrawn/rejected meanwhile.
    accepted = await db.execute(
        update(Proposal)
        .where(
            Proposal.id == proposal_id,
            Proposal.status.in_(HIREABLE_STATUSES),
        )
        .values(status=ProposalStatus.ACCEPTED, responded_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.refresh(proposal)
    if accepted.rowcount == 0:
        raise InvalidStateError(
            f"Only submitted proposals can be hired (current: {proposal.status.value})",
            current_status=proposal.status.value,
        )

    # 3. Exclude the remaining submitted siblings.
    excluded = await db.execute(
        update(Proposal)
        .where(
            Proposal.job_id == job.id,
            Proposal.id != proposal_id,
            Proposal.status.in_(EXCLUDABLE_STATUSES),
        )
        .values(status=ProposalStatus.EXCLUDED, responded_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    excluded_count = excluded.rowcount or 0

    # 4. Contract
    contract = await contractService.form_contract(db, job, proposal)

    logger.info(
        "Proposal hired: proposal=%s job=%s contract=%s excluded=%d",
        proposal_id, job.id, contract.id, excluded_count,
    )
    emit_proposal_hired(proposal_id, job.id, principal.id, excluded_count)
    return HireResult(
        proposal=proposal, contract=contract, excluded_count=excluded_count
    )
