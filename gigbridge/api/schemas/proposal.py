"""
Pydantic v2 schemas for the Proposals API.

Covers:
- Submitting and editing proposals
- Withdraw / reject reasons (``withdrawReason`` / ``rejectionReason``, or ``reason``)
- Proposal output and the hire response (proposal + formed contract)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from gigbridge.api.schemas.common import CamelRequest, FileMetadata, FileMetadataOut
from gigbridge.api.schemas.contract import ContractOut
from gigbridge.models.proposal import ProposalStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class SubmitProposalRequest(CamelRequest):
    """Request body for submitting a proposal on an open job."""

    job_id: uuid.UUID = Field(description="UUID of the job to bid on")
    cover_letter: str = Field(
        min_length=1,
        max_length=2000,
        description="Why the freelancer is a good fit",
    )
    bid_amount: Decimal = Field(ge=0, description="Bid amount")
    delivery_time: int = Field(gt=0, description="Delivery time in days")
    message: Optional[str] = Field(default=None, max_length=1000)
    attachments: list[FileMetadata] = Field(default_factory=list)


class EditProposalRequest(CamelRequest):
    """Request body for editing a proposal. Every field is optional."""

    cover_letter: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    message: Optional[str] = Field(default=None, max_length=1000)
    bid_amount: Optional[Decimal] = Field(default=None, ge=0)
    delivery_time: Optional[int] = Field(default=None, gt=0)
    attachments: Optional[list[FileMetadata]] = None


class WithdrawProposalRequest(CamelRequest):
    """Optional reason for withdrawing a proposal."""

    withdraw_reason: Optional[str] = Field(
        default=None,
        max_length=500,
        validation_alias=AliasChoices("withdrawReason", "withdraw_reason", "reason"),
    )


class RejectProposalRequest(CamelRequest):
    """Optional reason for rejecting a proposal."""

    rejection_reason: Optional[str] = Field(
        default=None,
        max_length=500,
        validation_alias=AliasChoices(
            "rejectionReason", "rejection_reason", "reason"
        ),
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ProposalOut(BaseModel):
    """Proposal response object."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    freelancer_id: uuid.UUID
    bid_amount: Decimal
    delivery_time: int
    cover_letter: str
    message: Optional[str] = None
    attachments: list[FileMetadataOut] = Field(default_factory=list)
    status: ProposalStatus
    viewed_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    withdraw_reason: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class HireResponse(BaseModel):
    """Result of hiring a proposal."""

    proposal: ProposalOut
    contract: ContractOut
    excluded_count: int = Field(
        description="Number of sibling proposals moved to excluded",
    )
