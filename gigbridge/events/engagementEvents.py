"""
Engagement Event Emitters
==========================

Events for the proposal -> hire -> contract -> payment lifecycle. Each
emitter logs the event and returns the payload dict. Delivery to
notification channels (email, push, sockets) happens outside this service;
consumers subscribe to these log records or wrap the emitters.

Events emitted:
  - proposal.submitted
  - proposal.status_changed
  - proposal.hired
  - job.status_changed
  - contract.formed
  - contract.deliverable_submitted
  - contract.deliverable_reviewed
  - contract.completed
  - payment.status_changed
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def _build_event(
    event_type: str,
    subject_id: uuid.UUID,
    *,
    data: dict[str, Any] | None = None,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    """Construct a standardised event payload."""
    return {
        "event_type": event_type,
        "subject_id": str(subject_id),
        "actor_id": str(actor_id) if actor_id else None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data or {},
    }


def _emit(event: dict[str, Any]) -> dict[str, Any]:
    logger.info(
        "Event emitted: %s for %s", event["event_type"], event["subject_id"]
    )
    return event


def emit_proposal_submitted(
    proposal_id: uuid.UUID,
    job_id: uuid.UUID,
    freelancer_id: uuid.UUID,
) -> dict[str, Any]:
    """Emit event when a freelancer submits a proposal."""
    return _emit(_build_event(
        "proposal.submitted",
        proposal_id,
        actor_id=freelancer_id,
        data={"job_id": str(job_id)},
    ))


def emit_proposal_status_changed(
    proposal_id: uuid.UUID,
    old_status: str,
    new_status: str,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    """Emit event when a proposal is viewed, withdrawn or rejected."""
    return _emit(_build_event(
        "proposal.status_changed",
        proposal_id,
        actor_id=actor_id,
        data={"old_status": old_status, "new_status": new_status},
    ))


def emit_proposal_hired(
    proposal_id: uuid.UUID,
    job_id: uuid.UUID,
    client_id: uuid.UUID,
    excluded_count: int,
) -> dict[str, Any]:
    """Emit event when a client hires a proposal."""
    return _emit(_build_event(
        "proposal.hired",
        proposal_id,
        actor_id=client_id,
        data={"job_id": str(job_id), "excluded_count": excluded_count},
    ))


def emit_job_status_changed(
    job_id: uuid.UUID,
    old_status: str,
    new_status: str,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    """Emit event when a job transitions between states."""
    return _emit(_build_event(
        "job.status_changed",
        job_id,
        actor_id=actor_id,
        data={"old_status": old_status, "new_status": new_status},
    ))


def emit_contract_formed(
    contract_id: uuid.UUID,
    job_id: uuid.UUID,
    client_id: uuid.UUID,
    freelancer_id: uuid.UUID,
) -> dict[str, Any]:
    return _emit(_build_event(
        "contract.formed",
        contract_id,
        actor_id=client_id,
        data={"job_id": str(job_id), "freelancer_id": str(freelancer_id)},
    ))


def emit_deliverable_submitted(
    contract_id: uuid.UUID,
    deliverable_id: uuid.UUID,
    freelancer_id: uuid.UUID,
) -> dict[str, Any]:
    return _emit(_build_event(
        "contract.deliverable_submitted",
        contract_id,
        actor_id=freelancer_id,
        data={"deliverable_id": str(deliverable_id)},
    ))


def emit_deliverable_reviewed(
    contract_id: uuid.UUID,
    deliverable_id: uuid.UUID,
    client_id: uuid.UUID,
    outcome: str,
) -> dict[str, Any]:
    return _emit(_build_event(
        "contract.deliverable_reviewed",
        contract_id,
        actor_id=client_id,
        data={"deliverable_id": str(deliverable_id), "outcome": outcome},
    ))


def emit_contract_completed(
    contract_id: uuid.UUID,
    job_id: uuid.UUID,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    return _emit(_build_event(
        "contract.completed",
        contract_id,
        actor_id=actor_id,
        data={"job_id": str(job_id)},
    ))


def emit_payment_status_changed(
    payment_id: uuid.UUID,
    old_status: str,
    new_status: str,
    actor_id: uuid.UUID | None = None,
    *,
    reason: str | None = None,
) -> dict[str, Any]:
    """Emit event when a payment moves through the escrow state graph."""
    data: dict[str, Any] = {"old_status": old_status, "new_status": new_status}
    if reason:
        data["reason"] = reason
    return _emit(_build_event(
        "payment.status_changed",
        payment_id,
        actor_id=actor_id,
        data=data,
    ))
