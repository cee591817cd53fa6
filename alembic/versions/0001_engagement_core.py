"""engagement core: users, jobs, proposals, contracts, deliverables, payments

Revision ID: 0001_engagement_core
Revises:
Create Date: 2026-10-17 00:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_engagement_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _uuid(name: str, *args, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kwargs)


def _json() -> sa.types.TypeEngine:
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "jobs",
        _uuid("id", primary_key=True),
        _uuid("client_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("budget_type", sa.String(20), nullable=False),
        sa.Column("budget_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("proposals_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_jobs_client_id", "jobs", ["client_id"])
    op.create_index("ix_jobs_status", "jobs", ["status"])

    op.create_table(
        "proposals",
        _uuid("id", primary_key=True),
        _uuid("job_id", sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        _uuid("freelancer_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bid_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("delivery_time", sa.Integer(), nullable=False),
        sa.Column("cover_letter", sa.Text(), nullable=False),
        sa.Column("message", sa.String(1000), nullable=True),
        sa.Column("attachments", _json(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("withdraw_reason", sa.String(500), nullable=True),
        sa.Column("rejection_reason", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_proposals_job_id", "proposals", ["job_id"])
    op.create_index("ix_proposals_freelancer_id", "proposals", ["freelancer_id"])
    op.create_index(
        "uq_proposals_active_per_freelancer",
        "proposals",
        ["job_id", "freelancer_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('submitted', 'viewed')"),
    )
    op.create_index(
        "uq_proposals_accepted_per_job",
        "proposals",
        ["job_id"],
        unique=True,
        postgresql_where=sa.text("status = 'accepted'"),
    )

    op.create_table(
        "contracts",
        _uuid("id", primary_key=True),
        _uuid("job_id", sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        _uuid("client_id", sa.ForeignKey("users.id"), nullable=False),
        _uuid("freelancer_id", sa.ForeignKey("users.id"), nullable=False),
        _uuid("proposal_id", sa.ForeignKey("proposals.id"), nullable=False, unique=True),
        sa.Column("agreed_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("budget_type", sa.String(20), nullable=False),
        sa.Column("agreed_delivery_time", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("calculated_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("hours_worked", sa.Numeric(8, 2), nullable=False, server_default="0"),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_contracts_job_id", "contracts", ["job_id"])
    op.create_index("ix_contracts_client_id", "contracts", ["client_id"])
    op.create_index("ix_contracts_freelancer_id", "contracts", ["freelancer_id"])

    op.create_table(
        "contract_deliverables",
        _uuid("id", primary_key=True),
        _uuid("contract_id", sa.ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False),
        _uuid("submitted_by", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("files", _json(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("reviewed_by", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("revision_note", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_contract_deliverables_contract_id", "contract_deliverables", ["contract_id"]
    )

    op.create_table(
        "payments",
        _uuid("id", primary_key=True),
        _uuid("contract_id", sa.ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False),
        _uuid("payer_id", sa.ForeignKey("users.id"), nullable=False),
        _uuid("payee_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("platform_fee", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("transaction_id", sa.String(64), nullable=True, unique=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("refund_reason", sa.Text(), nullable=True),
        sa.Column("processing_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_payments_contract_id", "payments", ["contract_id"])
    op.create_index("ix_payments_payer_id", "payments", ["payer_id"])
    op.create_index("ix_payments_payee_id", "payments", ["payee_id"])
    op.create_index("ix_payments_status", "payments", ["status"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("contract_deliverables")
    op.drop_table("contracts")
    op.drop_index("uq_proposals_accepted_per_job", table_name="proposals")
    op.drop_index("uq_proposals_active_per_freelancer", table_name="proposals")
    op.drop_table("proposals")
    op.drop_table("jobs")
    op.drop_table("users")
