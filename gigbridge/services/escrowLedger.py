"""
Escrow Ledger
==============

Payments held against a contract, and their settlement through a
``PaymentGateway``.

Status graph::

    pending --> processing --> completed --> refunded
                          \\--> failed

``process_payment`` claims the payment with ``UPDATE ... WHERE status =
'pending'`` and *commits* ``processing`` before calling the gateway. A
second caller (double click, retry, concurrent worker) then sees
``processing`` and is rejected, so the gateway is charged at most once per
payment. If the process dies during the gateway call, the record stays in
``processing`` where ``fail_stale_processing_payments`` picks it up.

A failed payment is terminal: retrying means creating a new payment.

The platform fee is a flat ``PLATFORM_FEE_RATE`` of the amount, rounded
half-up to cents and stored at creation.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Literal, Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gigbridge.core.config import settings
from gigbridge.core.exceptions import (
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from gigbridge.core.security import AuthenticatedPrincipal
from gigbridge.events.engagementEvents import emit_payment_status_changed
from gigbridge.integrations.payments import PaymentGateway, PaymentGatewayError
from gigbridge.models.base import utcnow
from gigbridge.models.payment import Payment, PaymentMethod, PaymentStatus
from gigbridge.services import contractService

logger = logging.getLogger(__name__)

PLATFORM_FEE_RATE = Decimal("0.10")
_CENTS = Decimal("0.01")

TIMEOUT_REASON = "Payment gateway timed out"
STALE_PROCESSING_REASON = "Processing interrupted before gateway confirmation"

PaymentDirection = Literal["sent", "received"]


# ---------------------------------------------------------------------------
# Fee math
# ---------------------------------------------------------------------------

def calculate_platform_fee(amount: Decimal) -> Decimal:
    """10% of *amount*, rounded half-up to cents."""
    return (amount * PLATFORM_FEE_RATE).quantize(_CENTS, rounding=ROUND_HALF_UP)


def _validate_amount(value: Any) -> Decimal:
    if value is None:
        raise InvalidInputError("amount is required")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidInputError(f"amount must be a number, got {value!r}")
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError("amount must be greater than 0")
    if amount != amount.quantize(_CENTS):
        raise InvalidInputError("amount must have at most 2 decimal places")
    return amount


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

async def load_payment(db: AsyncSession, payment_id: uuid.UUID) -> Payment:
    result = await db.execute(select(Payment).where(Payment.id == payment_id))
    payment = result.scalar_one_or_none()
    if payment is None:
        raise NotFoundError("Payment", payment_id)
    return payment


async def _finalize(
    db: AsyncSession,
    payment: Payment,
    new_status: PaymentStatus,
    **values: Any,
) -> bool:
    """``processing -> new_status``; False if the row already left processing."""
    result = await db.execute(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status == PaymentStatus.PROCESSING)
        .values(status=new_status, **values)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(payment)
    return result.rowcount > 0


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

async def create_payment(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    *,
    contract_id: uuid.UUID,
    amount: Any,
    payment_method: PaymentMethod | str,
    description: Optional[str] = None,
    currency: Optional[str] = None,
) -> Payment:
    """Hold a new ``pending`` payment from the contract's client to its
    freelancer.

    Raises:
        InvalidInputError: Amount missing, not positive, or an unknown method.
        NotFoundError: If the contract does not exist.
        ForbiddenError: If the principal is not the contract's client.
    """
    value = _validate_amount(amount)
    try:
        method = PaymentMethod(payment_method)
    except ValueError:
        raise InvalidInputError(f"Unsupported payment method: {payment_method!r}")

    contract = await contractService.load_contract(db, contract_id)
    if contract.client_id != principal.id:
        raise ForbiddenError("Only the contract's client can create a payment.")

    payment = Payment(
        contract_id=contract.id,
        payer_id=contract.client_id,
        payee_id=contract.freelancer_id,
        amount=value,
        currency=(currency or settings.default_currency).upper(),
        platform_fee=calculate_platform_fee(value),
        payment_method=method,
        description=description,
        status=PaymentStatus.PENDING,
    )
    db.add(payment)
    await db.flush()

    logger.info(
        "Payment created: payment=%s contract=%s amount=%s fee=%s",
        payment.id, contract.id, payment.amount, payment.platform_fee,
    )
    return payment


# ---------------------------------------------------------------------------
# Process
# ---------------------------------------------------------------------------

async def process_payment(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    payment_id: uuid.UUID,
    gateway: PaymentGateway,
    *,
    timeout_seconds: Optional[float] = None,
) -> Payment:
    """Charge a ``pending`` payment through *gateway*.

    Commits twice on *db*: once to persist ``processing`` before the
    gateway call, once for the final ``completed`` / ``failed`` state.

    Raises:
        NotFoundError: If the payment does not exist.
        ForbiddenError: If the principal is neither the payer nor an admin.
        InvalidStateError: If the payment is not ``pending``. The message
            names the current status.
    """
    payment = await load_payment(db, payment_id)
    if not (principal.is_admin or payment.payer_id == principal.id):
        raise ForbiddenError("Only the payer can process this payment.")
    if payment.status != PaymentStatus.PENDING:
        raise InvalidStateError(
            f"Payment already {payment.status.value}",
            current_status=payment.status.value,
        )

    claimed = await db.execute(
        update(Payment)
        .where(Payment.id == payment_id, Payment.status == PaymentStatus.PENDING)
        .values(status=PaymentStatus.PROCESSING, processing_started_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount == 0:
        await db.refresh(payment)
        raise InvalidStateError(
            f"Payment already {payment.status.value}",
            current_status=payment.status.value,
        )
    await db.commit()
    await db.refresh(payment)
    emit_payment_status_changed(
        payment_id, PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value, principal.id
    )

    timeout = timeout_seconds if timeout_seconds is not None else settings.payment_gateway_timeout_seconds
    try:
        outcome = await asyncio.wait_for(
            gateway.charge(payment.amount, payment.payment_method.value),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("Gateway timed out after %ss: payment=%s", timeout, payment_id)
        await _record_failure(db, payment, TIMEOUT_REASON, principal.id)
        return payment
    except PaymentGatewayError as exc:
        logger.warning("Gateway error: payment=%s error=%s", payment_id, exc.message)
        await _record_failure(db, payment, exc.message, principal.id)
        return payment

    if outcome.approved:
        finalized = await _finalize(
            db,
            payment,
            PaymentStatus.COMPLETED,
            transaction_id=outcome.transaction_id,
            processed_at=utcnow(),
        )
        if finalized:
            await db.commit()
            logger.info(
                "Payment completed: payment=%s txn=%s", payment_id, outcome.transaction_id
            )
            emit_payment_status_changed(
                payment_id,
                PaymentStatus.PROCESSING.value,
                PaymentStatus.COMPLETED.value,
                principal.id,
            )
        else:
            logger.error(
                "Gateway approved payment %s but it is no longer processing (current: %s); txn=%s",
                payment_id, payment.status.value, outcome.transaction_id,
            )
        return payment

    await _record_failure(
        db, payment, outcome.failure_reason or "Payment declined", principal.id
    )
    return payment


async def _record_failure(
    db: AsyncSession,
    payment: Payment,
    reason: str,
    actor_id: uuid.UUID,
) -> None:
    if await _finalize(
        db,
        payment,
        PaymentStatus.FAILED,
        failure_reason=reason,
    ):
        await db.commit()
        logger.info("Payment failed: payment=%s reason=%s", payment.id, reason)
        emit_payment_status_changed(
            payment.id,
            PaymentStatus.PROCESSING.value,
            PaymentStatus.FAILED.value,
            actor_id,
            reason=reason,
        )


# ---------------------------------------------------------------------------
# Refund
# ---------------------------------------------------------------------------

async def refund_payment(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    payment_id: uuid.UUID,
    reason: Optional[str] = None,
) -> Payment:
    """``completed -> refunded``, requested by the payer."""
    payment = await load_payment(db, payment_id)
    if payment.payer_id != principal.id:
        raise ForbiddenError("Only the payer can request a refund.")

    result = await db.execute(
        update(Payment)
        .where(Payment.id == payment_id, Payment.status == PaymentStatus.COMPLETED)
        .values(
            status=PaymentStatus.REFUNDED,
            refunded_at=utcnow(),
            refund_reason=reason,
        )
        .execution_options(synchronize_session=False)
    )
    await db.refresh(payment)
    if result.rowcount == 0:
        raise InvalidStateError(
            f"Only completed payments can be refunded (current: {payment.status.value})",
            current_status=payment.status.value,
        )

    logger.info("Payment refunded: payment=%s", payment_id)
    emit_payment_status_changed(
        payment_id,
        PaymentStatus.COMPLETED.value,
        PaymentStatus.REFUNDED.value,
        principal.id,
        reason=reason,
    )
    return payment


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_payment(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    payment_id: uuid.UUID,
) -> Payment:
    payment = await load_payment(db, payment_id)
    if not (
        principal.is_admin
        or principal.id in (payment.payer_id, payment.payee_id)
    ):
        raise ForbiddenError("You are not authorized to view this payment.")
    return payment


async def list_my_payments(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    direction: Optional[PaymentDirection] = None,
) -> Sequence[Payment]:
    """Payments the principal sent, received, or both when *direction* is None."""
    stmt = select(Payment)
    if direction == "sent":
        stmt = stmt.where(Payment.payer_id == principal.id)
    elif direction == "received":
        stmt = stmt.where(Payment.payee_id == principal.id)
    else:
        stmt = stmt.where(
            or_(Payment.payer_id == principal.id, Payment.payee_id == principal.id)
        )
    result = await db.execute(stmt.order_by(Payment.created_at.desc()))
    return result.scalars().all()


async def list_all_payments(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    status: Optional[PaymentStatus] = None,
) -> Sequence[Payment]:
    if not principal.is_admin:
        raise ForbiddenError("Only admins can list all payments.")
    stmt = select(Payment)
    if status is not None:
        stmt = stmt.where(Payment.status == status)
    result = await db.execute(stmt.order_by(Payment.created_at.desc()))
    return result.scalars().all()


@dataclass(frozen=True)
class ContractPaymentSummary:
    """Totals over a contract's payment history."""
    contract_id: uuid.UUID
    agreed_amount: Decimal
    total_paid: Decimal
    total_refunded: Decimal
    total_fees: Decimal
    pending_count: int

    @property
    def outstanding(self) -> Decimal:
        return max(self.agreed_amount - self.total_paid, Decimal("0.00"))


async def list_contract_payments(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    contract_id: uuid.UUID,
) -> tuple[Sequence[Payment], ContractPaymentSummary]:
    """A contract's append-only payment history plus totals."""
    contract = await contractService.get_contract(db, principal, contract_id)
    result = await db.execute(
        select(Payment)
        .where(Payment.contract_id == contract_id)
        .order_by(Payment.created_at)
    )
    payments = result.scalars().all()
    return payments, summarize_payments(contract.id, contract.agreed_amount, payments)


def summarize_payments(
    contract_id: uuid.UUID,
    agreed_amount: Decimal,
    payments: Sequence[Payment],
) -> ContractPaymentSummary:
    zero = Decimal("0.00")
    completed = [p for p in payments if p.status == PaymentStatus.COMPLETED]
    refunded = [p for p in payments if p.status == PaymentStatus.REFUNDED]
    return ContractPaymentSummary(
        contract_id=contract_id,
        agreed_amount=agreed_amount,
        total_paid=sum((p.amount for p in completed), zero),
        total_refunded=sum((p.amount for p in refunded), zero),
        total_fees=sum((p.platform_fee for p in completed), zero),
        pending_count=sum(
            1 for p in payments
            if p.status in (PaymentStatus.PENDING, PaymentStatus.PROCESSING)
        ),
    )


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------

async def fail_stale_processing_payments(
    db: AsyncSession,
    older_than: timedelta,
    *,
    now: Optional[datetime] = None,
) -> int:
    """Mark payments stuck in ``processing`` longer than *older_than* as
    ``failed``. Returns the number of payments updated.

    The caller owns the transaction.
    """
    cutoff = (now or utcnow()) - older_than
    result = await db.execute(
        update(Payment)
        .where(
            Payment.status == PaymentStatus.PROCESSING,
            Payment.processing_started_at < cutoff,
        )
        .values(
            status=PaymentStatus.FAILED,
            failure_reason=STALE_PROCESSING_REASON,
        )
        .execution_options(synchronize_session=False)
    )
    count = result.rowcount or 0
    if count:
        logger.warning("Marked %d stale processing payment(s) as failed", count)
    return count
