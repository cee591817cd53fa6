"""
Job State Guard
================

Owns every write to ``jobs.status``. Status changes are validated against
the state machine and then persisted with a conditional ``UPDATE`` so that
two concurrent writers can never both move a job out of the same state.

State machine overview::

    open --> in_progress --> completed
      \\           \\
       \\--> cancelled <--/

Proposals are accepted only while a job is ``open``; ``open ->
in_progress`` happens exactly once, when a proposal is hired.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from gigbridge.core.exceptions import InvalidStateError
from gigbridge.events.engagementEvents import emit_job_status_changed
from gigbridge.models.base import utcnow
from gigbridge.models.job import Job, JobStatus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Transition guard result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransitionResult:
    """Result of a transition validation attempt."""
    allowed: bool
    reason: str | None = None


# ---------------------------------------------------------------------------
# Transition definitions
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.OPEN: {JobStatus.IN_PROGRESS, JobStatus.CANCELLED},
    JobStatus.IN_PROGRESS: {JobStatus.COMPLETED, JobStatus.CANCELLED},
    JobStatus.COMPLETED: set(),
    JobStatus.CANCELLED: set(),
}

_CLOSING_STATUSES: frozenset[JobStatus] = frozenset({
    JobStatus.COMPLETED,
    JobStatus.CANCELLED,
})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_transition(
    current_status: JobStatus,
    new_status: JobStatus,
) -> TransitionResult:
    """Validate whether a job status transition is allowed."""
    allowed_targets = VALID_TRANSITIONS.get(current_status, set())
    if new_status not in allowed_targets:
        return TransitionResult(
            allowed=False,
            reason=(
                f"Invalid job transition: '{current_status.value}' -> '{new_status.value}'. "
                f"Allowed transitions from '{current_status.value}': "
                f"{', '.join(s.value for s in sorted(allowed_targets, key=lambda s: s.value)) or 'none'}."
            ),
        )
    return TransitionResult(allowed=True)


def get_valid_transitions(current_status: JobStatus) -> set[JobStatus]:
    """Return the set of statuses reachable from *current_status*."""
    return set(VALID_TRANSITIONS.get(current_status, set()))


def accepts_proposals(job: Job) -> bool:
    return job.status == JobStatus.OPEN


async def transition_job(
    db: AsyncSession,
    job: Job,
    new_status: JobStatus,
    *,
    actor_id: uuid.UUID | None = None,
) -> Job:
    """Move *job* from its loaded status to *new_status*.

    The write is conditional on the status still being the one that was
    read, so a concurrent writer that got there first makes this call fail
    instead of silently overwriting it.

    Raises:
        InvalidStateError: If the transition is not allowed, or the job's
            status changed since it was loaded.
    """
    expected = job.status
    result = validate_transition(expected, new_status)
    if not result.allowed:
        raise InvalidStateError(result.reason, current_status=expected.value)

    values: dict = {"status": new_status}
    if new_status in _CLOSING_STATUSES:
        values["closed_at"] = utcnow()

    outcome = await db.execute(
        update(Job)
        .where(Job.id == job.id, Job.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if outcome.rowcount == 0:
        await db.refresh(job)
        raise InvalidStateError(
            f"Job is no longer {expected.value} (current: {job.status.value})",
            current_status=job.status.value,
        )

    await db.refresh(job)
    logger.info(
        "Job %s transitioned %s -> %s", job.id, expected.value, new_status.value
    )
    emit_job_status_changed(job.id, expected.value, new_status.value, actor_id)
    return job
