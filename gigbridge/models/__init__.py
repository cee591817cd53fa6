"""
GigBridge SQLAlchemy Models
=============================

Central import point for all ORM models. Import ``Base`` from here for
Alembic auto-generation and for the ``create_all`` convenience in tests.

Usage::

    from gigbridge.models import Base, Job, Proposal, Contract, Payment
"""

# -- Base & Mixins --
from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

# -- Users --
from .user import User, UserRole

# -- Jobs --
from .job import BudgetType, Job, JobStatus

# -- Proposals --
from .proposal import Proposal, ProposalStatus

# -- Contracts --
from .contract import (
    Contract,
    ContractDeliverable,
    ContractStatus,
    DeliverableStatus,
)

# -- Payments --
from .payment import Payment, PaymentMethod, PaymentStatus

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Users
    "User",
    "UserRole",
    # Jobs
    "Job",
    "JobStatus",
    "BudgetType",
    # Proposals
    "Proposal",
    "ProposalStatus",
    # Contracts
    "Contract",
    "ContractDeliverable",
    "ContractStatus",
    "DeliverableStatus",
    # Payments
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
]
