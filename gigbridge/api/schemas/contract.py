"""
Pydantic v2 schemas for the Contracts API.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from gigbridge.api.schemas.common import CamelRequest, FileMetadata, FileMetadataOut
from gigbridge.models.contract import ContractStatus, DeliverableStatus
from gigbridge.models.job import BudgetType
from gigbridge.services.contractService import ReviewAction


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class SubmitWorkRequest(CamelRequest):
    description: str = Field(min_length=1, max_length=5000)
    files: list[FileMetadata] = Field(default_factory=list)


class ReviewWorkRequest(CamelRequest):
    action: ReviewAction = Field(description="accept or request_revision")
    revision_note: Optional[str] = Field(
        default=None,
        max_length=2000,
        description="Required when action is request_revision",
    )


class UpdateHoursRequest(CamelRequest):
    hours_worked: Decimal = Field(ge=0, description="Total hours worked so far")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ContractOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    client_id: uuid.UUID
    freelancer_id: uuid.UUID
    proposal_id: uuid.UUID
    agreed_amount: Decimal
    budget_type: BudgetType
    agreed_delivery_time: int
    description: str
    start_date: datetime
    calculated_deadline: datetime
    status: ContractStatus
    hours_worked: Decimal
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class DeliverableOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    contract_id: uuid.UUID
    submitted_by: uuid.UUID
    description: str
    files: list[FileMetadataOut] = Field(default_factory=list)
    status: DeliverableStatus
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[uuid.UUID] = None
    revision_note: Optional[str] = None


class ContractDetailOut(ContractOut):
    """Contract with its deliverables, oldest first."""

    deliverables: list[DeliverableOut] = Field(default_factory=list)


class ReviewWorkResponse(BaseModel):
    contract: ContractOut
    deliverable: DeliverableOut
