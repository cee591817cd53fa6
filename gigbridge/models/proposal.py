"""
SQLAlchemy model for the proposals table.

Two partial unique indexes back the service-level checks:

* ``uq_proposals_active_per_freelancer`` -- at most one ``submitted`` or
  ``viewed`` proposal per (job, freelancer).
* ``uq_proposals_accepted_per_job`` -- at most one ``accepted`` proposal per
  job.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, status_enum


class ProposalStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    EXCLUDED = "excluded"


_ACTIVE_PREDICATE = text("status IN ('submitted', 'viewed')")
_ACCEPTED_PREDICATE = text("status = 'accepted'")


class Proposal(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "proposals"
    __table_args__ = (
        Index(
            "uq_proposals_active_per_freelancer",
            "job_id",
            "freelancer_id",
            unique=True,
            postgresql_where=_ACTIVE_PREDICATE,
            sqlite_where=_ACTIVE_PREDICATE,
        ),
        Index(
            "uq_proposals_accepted_per_job",
            "job_id",
            unique=True,
            postgresql_where=_ACCEPTED_PREDICATE,
            sqlite_where=_ACCEPTED_PREDICATE,
        ),
    )

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    freelancer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    delivery_time: Mapped[int] = mapped_column(Integer, nullable=False)
    cover_letter: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
    )
    status: Mapped[ProposalStatus] = mapped_column(
        status_enum(ProposalStatus, "proposal_status"),
        nullable=False,
        default=ProposalStatus.SUBMITTED,
    )
    viewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    withdraw_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Relationships
    job: Mapped["Job"] = relationship("Job", back_populates="proposals")

    def __repr__(self) -> str:
        return (
            f"<Proposal(id={self.id}, job={self.job_id}, "
            f"freelancer={self.freelancer_id}, status={self.status})>"
        )
