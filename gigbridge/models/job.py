"""
SQLAlchemy model for the jobs table.

Job CRUD lives outside the engagement core. Here a job is read by id, its
``status`` moves only through ``jobStateGuard`` and ``proposals_count`` is
maintained with atomic increments by the proposal service.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, status_enum


class JobStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BudgetType(str, enum.Enum):
    HOURLY = "hourly"
    FIXED = "fixed"


class Job(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "jobs"

    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    budget_type: Mapped[BudgetType] = mapped_column(
        status_enum(BudgetType, "budget_type"),
        nullable=False,
        default=BudgetType.FIXED,
    )
    budget_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    status: Mapped[JobStatus] = mapped_column(
        status_enum(JobStatus, "job_status"),
        nullable=False,
        default=JobStatus.OPEN,
        index=True,
    )
    proposals_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    closed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    proposals: Mapped[list["Proposal"]] = relationship(
        "Proposal", back_populates="job"
    )

    def __repr__(self) -> str:
        return (
            f"<Job(id={self.id}, title={self.title!r}, status={self.status}, "
            f"proposals={self.proposals_count})>"
        )
