"""
Payment Gateway Adapters
=========================

The escrow ledger talks to a payment processor only through the
``PaymentGateway`` protocol: one async ``charge`` call that either approves
(returning a transaction id) or declines (returning a reason). Transport
failures are raised as ``PaymentGatewayError``.

Implementations:

  - ``MockPaymentGateway``  -- simulated latency and a configurable success
    probability. The random source is injectable so tests are deterministic.
  - ``FixedOutcomeGateway`` -- always approves or always declines.

``build_gateway`` picks one from application settings.
"""

from __future__ import annotations

import asyncio
import logging
import random
import secrets
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol, runtime_checkable

from gigbridge.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

DECLINE_REASON = "Payment failed - Insufficient funds or card declined"


# ---------------------------------------------------------------------------
# Custom exception
# ---------------------------------------------------------------------------

class PaymentGatewayError(Exception):
    """Raised when the gateway could not be reached or returned garbage.

    A decline is *not* an error; it is a ``GatewayResult`` with
    ``approved=False``.
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = retryable

    def __repr__(self) -> str:
        return f"PaymentGatewayError(message={self.message!r}, retryable={self.retryable!r})"


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """Outcome of a single charge attempt."""
    approved: bool
    transaction_id: str | None = None
    failure_reason: str | None = None

    @classmethod
    def approve(cls, transaction_id: str) -> "GatewayResult":
        return cls(approved=True, transaction_id=transaction_id)

    @classmethod
    def decline(cls, reason: str = DECLINE_REASON) -> "GatewayResult":
        return cls(approved=False, failure_reason=reason)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class PaymentGateway(Protocol):
    """Interface every payment processor adapter implements."""

    async def charge(self, amount: Decimal, method: str) -> GatewayResult:
        ...


def generate_transaction_id() -> str:
    """``TXN-`` followed by 16 uppercase hex characters."""
    return "TXN-" + secrets.token_hex(8).upper()


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------

class MockPaymentGateway:
    """Simulated processor: waits ``latency_seconds`` then approves with
    probability ``success_rate``."""

    def __init__(
        self,
        latency_seconds: float = 1.0,
        success_rate: float = 0.9,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError(f"success_rate must be within [0, 1], got {success_rate}")
        if latency_seconds < 0:
            raise ValueError(f"latency_seconds must be >= 0, got {latency_seconds}")
        self.latency_seconds = latency_seconds
        self.success_rate = success_rate
        self._rng = rng or random.Random()

    async def charge(self, amount: Decimal, method: str) -> GatewayResult:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        if self._rng.random() < self.success_rate:
            result = GatewayResult.approve(generate_transaction_id())
            logger.info(
                "Mock gateway approved charge: amount=%s method=%s txn=%s",
                amount, method, result.transaction_id,
            )
            return result

        logger.info("Mock gateway declined charge: amount=%s method=%s", amount, method)
        return GatewayResult.decline()


class FixedOutcomeGateway:
    """Deterministic gateway that always approves or always declines."""

    def __init__(self, approve: bool, decline_reason: str = DECLINE_REASON) -> None:
        self.approve = approve
        self.decline_reason = decline_reason

    async def charge(self, amount: Decimal, method: str) -> GatewayResult:
        if self.approve:
            return GatewayResult.approve(generate_transaction_id())
        return GatewayResult.decline(self.decline_reason)


def build_gateway(config: Settings | None = None) -> PaymentGateway:
    """Create the gateway selected by ``payment_gateway_mode``."""
    config = config or default_settings
    mode = config.payment_gateway_mode
    if mode == "approve":
        return FixedOutcomeGateway(approve=True)
    if mode == "decline":
        return FixedOutcomeGateway(approve=False)
    return MockPaymentGateway(
        latency_seconds=config.payment_gateway_latency_seconds,
        success_rate=config.payment_gateway_success_rate,
    )
