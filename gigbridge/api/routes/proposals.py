"""
Proposal API Routes
====================

REST endpoints for the proposal lifecycle and hiring.

  POST   /api/v1/proposals                   -- Submit a proposal on an open job
  GET    /api/v1/proposals/mine              -- The freelancer's own proposals
  GET    /api/v1/proposals/job/{job_id}      -- Proposals on a job (owner/admin)
  GET    /api/v1/proposals/{proposal_id}     -- Single proposal
  PATCH  /api/v1/proposals/{proposal_id}     -- Edit own proposal
  PATCH  /api/v1/proposals/{proposal_id}/hire      -- Hire (accept) a proposal
  PATCH  /api/v1/proposals/{proposal_id}/reject    -- Reject a proposal
  PATCH  /api/v1/proposals/{proposal_id}/withdraw  -- Withdraw own proposal
  PATCH  /api/v1/proposals/{proposal_id}/viewed    -- Mark as viewed
  DELETE /api/v1/proposals/{proposal_id}     -- Delete a proposal

Domain errors are rendered by the handlers in ``gigbridge.api.errors``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Body, Query, status

from gigbridge.api.deps import CurrentPrincipal, DBSession
from gigbridge.api.schemas.common import ErrorResponse, MessageResponse
from gigbridge.api.schemas.contract import ContractOut
from gigbridge.api.schemas.proposal import (
    EditProposalRequest,
    HireResponse,
    ProposalOut,
    RejectProposalRequest,
    SubmitProposalRequest,
    WithdrawProposalRequest,
)
from gigbridge.models.proposal import ProposalStatus
from gigbridge.services import hiringCoordinator, proposalService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/proposals",
    tags=["Proposals"],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


# ---------------------------------------------------------------------------
# POST /proposals
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ProposalOut,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a proposal on an open job",
    description=(
        "Creates a proposal in 'submitted' status and increments the job's "
        "proposal count. Fails if the job is not open or the freelancer "
        "already has an active proposal on it."
    ),
)
async def submit_proposal(
    body: SubmitProposalRequest,
    db: DBSession,
    principal: CurrentPrincipal,
) -> ProposalOut:
    proposal = await proposalService.submit_proposal(
        db,
        principal,
        job_id=body.job_id,
        bid_amount=body.bid_amount,
        delivery_time=body.delivery_time,
        cover_letter=body.cover_letter,
        attachments=[a.model_dump() for a in body.attachments],
        message=body.message,
    )
    return ProposalOut.model_validate(proposal)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get(
    "/mine",
    response_model=list[ProposalOut],
    summary="List the current freelancer's proposals",
)
async def list_my_proposals(
    db: DBSession,
    principal: CurrentPrincipal,
    status_filter: Optional[ProposalStatus] = Query(default=None, alias="status"),
) -> list[ProposalOut]:
    proposals = await proposalService.list_my_proposals(db, principal, status_filter)
    return [ProposalOut.model_validate(p) for p in proposals]


@router.get(
    "/job/{job_id}",
    response_model=list[ProposalOut],
    summary="List proposals on a job",
    description="Available to the job owner and admins.",
)
async def list_job_proposals(
    job_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
    status_filter: Optional[ProposalStatus] = Query(default=None, alias="status"),
) -> list[ProposalOut]:
    proposals = await proposalService.list_proposals_for_job(
        db, principal, job_id, status_filter
    )
    return [ProposalOut.model_validate(p) for p in proposals]


@router.get(
    "/{proposal_id}",
    response_model=ProposalOut,
    summary="Get a proposal",
)
async def get_proposal(
    proposal_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
) -> ProposalOut:
    proposal = await proposalService.get_proposal(db, principal, proposal_id)
    return ProposalOut.model_validate(proposal)


# ---------------------------------------------------------------------------
# PATCH /proposals/{proposal_id}
# ---------------------------------------------------------------------------

@router.patch(
    "/{proposal_id}",
    response_model=ProposalOut,
    summary="Edit your own proposal",
    description="Only allowed while the proposal is submitted or viewed.",
)
async def edit_proposal(
    proposal_id: uuid.UUID,
    body: EditProposalRequest,
    db: DBSession,
    principal: CurrentPrincipal,
) -> ProposalOut:
    fields = body.model_dump(exclude_unset=True)
    proposal = await proposalService.edit_proposal(db, principal, proposal_id, fields)
    return ProposalOut.model_validate(proposal)


# ---------------------------------------------------------------------------
# PATCH /proposals/{proposal_id}/hire
# ---------------------------------------------------------------------------

@router.patch(
    "/{proposal_id}/hire",
    response_model=HireResponse,
    summary="Hire a proposal",
    description=(
        "Accepts a submitted proposal, moves the job to in_progress, excludes "
        "every other submitted proposal on the job and forms the contract, "
        "all in one transaction."
    ),
)
async def hire_proposal(
    proposal_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
) -> HireResponse:
    result = await hiringCoordinator.hire(db, principal, proposal_id)
    return HireResponse(
        proposal=ProposalOut.model_validate(result.proposal),
        contract=ContractOut.model_validate(result.contract),
        excluded_count=result.excluded_count,
    )


# ---------------------------------------------------------------------------
# PATCH /proposals/{proposal_id}/reject | withdraw | viewed
# ---------------------------------------------------------------------------

@router.patch(
    "/{proposal_id}/reject",
    response_model=ProposalOut,
    summary="Reject a proposal",
)
async def reject_proposal(
    proposal_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
    body: Optional[RejectProposalRequest] = Body(default=None),
) -> ProposalOut:
    proposal = await proposalService.reject_proposal(
        db, principal, proposal_id, body.rejection_reason if body else None
    )
    return ProposalOut.model_validate(proposal)


@router.patch(
    "/{proposal_id}/withdraw",
    response_model=ProposalOut,
    summary="Withdraw your own proposal",
)
async def withdraw_proposal(
    proposal_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
    body: Optional[WithdrawProposalRequest] = Body(default=None),
) -> ProposalOut:
    proposal = await proposalService.withdraw_proposal(
        db, principal, proposal_id, body.withdraw_reason if body else None
    )
    return ProposalOut.model_validate(proposal)


@router.patch(
    "/{proposal_id}/viewed",
    response_model=ProposalOut,
    summary="Mark a proposal as viewed",
    description="Idempotent: only a submitted proposal changes state.",
)
async def mark_proposal_viewed(
    proposal_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
) -> ProposalOut:
    proposal = await proposalService.mark_viewed(db, principal, proposal_id)
    return ProposalOut.model_validate(proposal)


# ---------------------------------------------------------------------------
# DELETE /proposals/{proposal_id}
# ---------------------------------------------------------------------------

@router.delete(
    "/{proposal_id}",
    response_model=MessageResponse,
    summary="Delete a proposal",
)
async def delete_proposal(
    proposal_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
) -> MessageResponse:
    await proposalService.delete_proposal(db, principal, proposal_id)
    return MessageResponse(message="Proposal deleted successfully")
