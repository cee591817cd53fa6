"""
Contract API Routes
====================

  GET   /api/v1/contracts/mine                                   -- Own contracts
  GET   /api/v1/contracts/{contract_id}                          -- Contract + deliverables
  POST  /api/v1/contracts/{contract_id}/deliverables             -- Submit work
  PATCH /api/v1/contracts/{contract_id}/deliverables/{deliverable_id} -- Review work
  PATCH /api/v1/contracts/{contract_id}/hours                    -- Log hours
  PATCH /api/v1/contracts/{contract_id}/complete                 -- Complete contract
  GET   /api/v1/contracts/{contract_id}/payments                 -- Payment history
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Query, status

from gigbridge.api.deps import CurrentPrincipal, DBSession
from gigbridge.api.schemas.common import ErrorResponse
from gigbridge.api.schemas.contract import (
    ContractDetailOut,
    ContractOut,
    DeliverableOut,
    ReviewWorkRequest,
    ReviewWorkResponse,
    SubmitWorkRequest,
    UpdateHoursRequest,
)
from gigbridge.api.schemas.payment import (
    ContractPaymentSummaryOut,
    ContractPaymentsResponse,
    PaymentOut,
)
from gigbridge.models.contract import Contract, ContractStatus
from gigbridge.services import contractService, escrowLedger

router = APIRouter(
    prefix="/contracts",
    tags=["Contracts"],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


async def _detail(db, contract: Contract) -> ContractDetailOut:
    deliverables = await contractService.list_deliverables(db, contract.id)
    return ContractDetailOut(
        **ContractOut.model_validate(contract).model_dump(),
        deliverables=[DeliverableOut.model_validate(d) for d in deliverables],
    )


@router.get(
    "/mine",
    response_model=list[ContractOut],
    summary="List contracts where you are the client or the freelancer",
)
async def list_my_contracts(
    db: DBSession,
    principal: CurrentPrincipal,
    status_filter: Optional[ContractStatus] = Query(default=None, alias="status"),
) -> list[ContractOut]:
    contracts = await contractService.list_my_contracts(db, principal, status_filter)
    return [ContractOut.model_validate(c) for c in contracts]


@router.get(
    "/{contract_id}",
    response_model=ContractDetailOut,
    summary="Get a contract with its deliverables",
)
async def get_contract(
    contract_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
) -> ContractDetailOut:
    contract = await contractService.get_contract(db, principal, contract_id)
    return await _detail(db, contract)


@router.post(
    "/{contract_id}/deliverables",
    response_model=DeliverableOut,
    status_code=status.HTTP_201_CREATED,
    summary="Submit work on an active contract",
)
async def submit_work(
    contract_id: uuid.UUID,
    body: SubmitWorkRequest,
    db: DBSession,
    principal: CurrentPrincipal,
) -> DeliverableOut:
    deliverable = await contractService.submit_work(
        db,
        principal,
        contract_id,
        body.description,
        [f.model_dump() for f in body.files],
    )
    return DeliverableOut.model_validate(deliverable)


@router.patch(
    "/{contract_id}/deliverables/{deliverable_id}",
    response_model=ReviewWorkResponse,
    summary="Accept a deliverable or request a revision",
    description="Accepting a deliverable completes the contract.",
)
async def review_work(
    contract_id: uuid.UUID,
    deliverable_id: uuid.UUID,
    body: ReviewWorkRequest,
    db: DBSession,
    principal: CurrentPrincipal,
) -> ReviewWorkResponse:
    contract, deliverable = await contractService.review_work(
        db, principal, contract_id, deliverable_id, body.action, body.revision_note
    )
    return ReviewWorkResponse(
        contract=ContractOut.model_validate(contract),
        deliverable=DeliverableOut.model_validate(deliverable),
    )


@router.patch(
    "/{contract_id}/hours",
    response_model=ContractOut,
    summary="Update hours worked on an hourly contract",
)
async def update_hours(
    contract_id: uuid.UUID,
    body: UpdateHoursRequest,
    db: DBSession,
    principal: CurrentPrincipal,
) -> ContractOut:
    contract = await contractService.update_hours_worked(
        db, principal, contract_id, body.hours_worked
    )
    return ContractOut.model_validate(contract)


@router.patch(
    "/{contract_id}/complete",
    response_model=ContractOut,
    summary="Complete a contract",
    description="Client or admin only. Also moves the job to completed.",
)
async def complete_contract(
    contract_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
) -> ContractOut:
    contract = await contractService.complete_contract(db, principal, contract_id)
    return ContractOut.model_validate(contract)


@router.get(
    "/{contract_id}/payments",
    response_model=ContractPaymentsResponse,
    summary="Payment history and totals for a contract",
)
async def list_contract_payments(
    contract_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
) -> ContractPaymentsResponse:
    payments, summary = await escrowLedger.list_contract_payments(
        db, principal, contract_id
    )
    return ContractPaymentsResponse(
        payments=[PaymentOut.model_validate(p) for p in payments],
        summary=ContractPaymentSummaryOut.model_validate(summary),
    )
