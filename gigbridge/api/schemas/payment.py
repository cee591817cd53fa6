"""
Pydantic v2 schemas for the Payments API
==========================================

Request and response schemas for:
- Creating a pending escrow payment on a contract
- Processing (charging) and refunding payments
- Payment listings and per-contract payment history

Monetary amounts are decimals with two places.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from gigbridge.api.schemas.common import CamelRequest
from gigbridge.models.payment import PaymentMethod, PaymentStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class CreatePaymentRequest(CamelRequest):
    """Request body for creating a pending payment."""

    contract_id: uuid.UUID = Field(description="UUID of the contract being paid")
    amount: Decimal = Field(gt=0, decimal_places=2, description="Amount to hold")
    payment_method: PaymentMethod = Field(description="How the client pays")
    description: Optional[str] = Field(default=None, max_length=1000)
    currency: Optional[str] = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="Three-letter ISO currency code; defaults to USD",
    )


class RefundPaymentRequest(CamelRequest):
    reason: Optional[str] = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class PaymentOut(BaseModel):
    """Payment response object."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    contract_id: uuid.UUID
    payer_id: uuid.UUID
    payee_id: uuid.UUID
    amount: Decimal
    currency: str
    platform_fee: Decimal
    net_amount: Decimal = Field(description="Amount minus platform fee")
    payment_method: PaymentMethod
    description: Optional[str] = None
    status: PaymentStatus
    transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None
    refund_reason: Optional[str] = None
    processed_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    created_at: datetime


class ContractPaymentSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    contract_id: uuid.UUID
    agreed_amount: Decimal
    total_paid: Decimal
    total_refunded: Decimal
    total_fees: Decimal
    pending_count: int
    outstanding: Decimal


class ContractPaymentsResponse(BaseModel):
    payments: list[PaymentOut]
    summary: ContractPaymentSummaryOut
