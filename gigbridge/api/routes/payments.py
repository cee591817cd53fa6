"""
Payment API Routes
===================

REST endpoints for escrow payments on contracts.

  POST /api/v1/payments                     -- Create a pending payment
  GET  /api/v1/payments                     -- All payments (admin)
  GET  /api/v1/payments/mine                -- Payments sent and/or received
  GET  /api/v1/payments/{payment_id}        -- Single payment
  POST /api/v1/payments/{payment_id}/process -- Charge through the gateway
  POST /api/v1/payments/{payment_id}/refund  -- Refund a completed payment

A gateway decline is not an HTTP error: ``/process`` returns 200 with the
payment in ``failed`` status and its ``failure_reason``.
"""

from __future__ import annotations

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Body, Query, status

from gigbridge.api.deps import CurrentPrincipal, DBSession, Gateway
from gigbridge.api.schemas.common import ErrorResponse
from gigbridge.api.schemas.payment import (
    CreatePaymentRequest,
    PaymentOut,
    RefundPaymentRequest,
)
from gigbridge.models.payment import PaymentStatus
from gigbridge.services import escrowLedger

router = APIRouter(
    prefix="/payments",
    tags=["Payments"],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


# ---------------------------------------------------------------------------
# POST /payments
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=PaymentOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a pending payment on a contract",
    description=(
        "Holds a payment from the contract's client to its freelancer. "
        "A 10% platform fee is computed and stored at creation."
    ),
)
async def create_payment(
    body: CreatePaymentRequest,
    db: DBSession,
    principal: CurrentPrincipal,
) -> PaymentOut:
    payment = await escrowLedger.create_payment(
        db,
        principal,
        contract_id=body.contract_id,
        amount=body.amount,
        payment_method=body.payment_method,
        description=body.description,
        currency=body.currency,
    )
    return PaymentOut.model_validate(payment)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[PaymentOut],
    summary="List all payments (admin only)",
)
async def list_all_payments(
    db: DBSession,
    principal: CurrentPrincipal,
    status_filter: Optional[PaymentStatus] = Query(default=None, alias="status"),
) -> list[PaymentOut]:
    payments = await escrowLedger.list_all_payments(db, principal, status_filter)
    return [PaymentOut.model_validate(p) for p in payments]


@router.get(
    "/mine",
    response_model=list[PaymentOut],
    summary="List payments you sent or received",
)
async def list_my_payments(
    db: DBSession,
    principal: CurrentPrincipal,
    direction: Optional[Literal["sent", "received"]] = Query(default=None, alias="type"),
) -> list[PaymentOut]:
    payments = await escrowLedger.list_my_payments(db, principal, direction)
    return [PaymentOut.model_validate(p) for p in payments]


@router.get(
    "/{payment_id}",
    response_model=PaymentOut,
    summary="Get a payment",
)
async def get_payment(
    payment_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
) -> PaymentOut:
    payment = await escrowLedger.get_payment(db, principal, payment_id)
    return PaymentOut.model_validate(payment)


# ---------------------------------------------------------------------------
# POST /payments/{payment_id}/process
# ---------------------------------------------------------------------------

@router.post(
    "/{payment_id}/process",
    response_model=PaymentOut,
    summary="Process a pending payment",
    description=(
        "Moves the payment to processing, charges the gateway once and "
        "records completed or failed. Calling it again returns 400 naming "
        "the payment's current status."
    ),
)
async def process_payment(
    payment_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
    gateway: Gateway,
) -> PaymentOut:
    payment = await escrowLedger.process_payment(db, principal, payment_id, gateway)
    return PaymentOut.model_validate(payment)


# ---------------------------------------------------------------------------
# POST /payments/{payment_id}/refund
# ---------------------------------------------------------------------------

@router.post(
    "/{payment_id}/refund",
    response_model=PaymentOut,
    summary="Refund a completed payment",
)
async def refund_payment(
    payment_id: uuid.UUID,
    db: DBSession,
    principal: CurrentPrincipal,
    body: Optional[RefundPaymentRequest] = Body(default=None),
) -> PaymentOut:
    payment = await escrowLedger.refund_payment(
        db, principal, payment_id, body.reason if body else None
    )
    return PaymentOut.model_validate(payment)
