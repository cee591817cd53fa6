"""
SQLAlchemy models for contracts and their deliverables.

A contract is created exactly once per accepted proposal (``proposal_id`` is
unique) inside the hiring transaction. Deliverables are submitted by the
freelancer and reviewed by the client.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, status_enum
from .job import BudgetType


class ContractStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class DeliverableStatus(str, enum.Enum):
    PENDING_REVIEW = "pending_review"
    ACCEPTED = "accepted"
    REVISION_REQUESTED = "revision_requested"


class Contract(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "contracts"

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    freelancer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    proposal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("proposals.id"),
        nullable=False,
        unique=True,
    )
    agreed_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    budget_type: Mapped[BudgetType] = mapped_column(
        status_enum(BudgetType, "budget_type"),
        nullable=False,
    )
    agreed_delivery_time: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    calculated_deadline: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    status: Mapped[ContractStatus] = mapped_column(
        status_enum(ContractStatus, "contract_status"),
        nullable=False,
        default=ContractStatus.ACTIVE,
    )
    hours_worked: Mapped[Decimal] = mapped_column(
        Numeric(8, 2), nullable=False, default=Decimal("0")
    )
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    deliverables: Mapped[list["ContractDeliverable"]] = relationship(
        "ContractDeliverable",
        back_populates="contract",
        order_by="ContractDeliverable.submitted_at",
    )
    payments: Mapped[list["Payment"]] = relationship(
        "Payment", back_populates="contract"
    )

    def __repr__(self) -> str:
        return (
            f"<Contract(id={self.id}, job={self.job_id}, "
            f"amount={self.agreed_amount}, status={self.status})>"
        )


class ContractDeliverable(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "contract_deliverables"

    contract_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    submitted_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    files: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
    )
    status: Mapped[DeliverableStatus] = mapped_column(
        status_enum(DeliverableStatus, "deliverable_status"),
        nullable=False,
        default=DeliverableStatus.PENDING_REVIEW,
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=True,
    )
    revision_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    contract: Mapped["Contract"] = relationship(
        "Contract", back_populates="deliverables"
    )

    def __repr__(self) -> str:
        return (
            f"<ContractDeliverable(id={self.id}, contract={self.contract_id}, "
            f"status={self.status})>"
        )
