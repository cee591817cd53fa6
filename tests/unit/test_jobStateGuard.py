"""
Unit tests for the Job State Guard.

Tests the job state machine and the conditional-write behaviour of
``transition_job`` against a mocked session.
"""

from unittest.mock import MagicMock

import pytest

from gigbridge.core.exceptions import InvalidStateError
from gigbridge.models.job import JobStatus
from gigbridge.services.jobStateGuard import (
    VALID_TRANSITIONS,
    accepts_proposals,
    get_valid_transitions,
    transition_job,
    validate_transition,
)


def _update_result(rowcount: int) -> MagicMock:
    res = MagicMock()
    res.rowcount = rowcount
    return res


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class TestJobTransitions:

    def test_open_to_in_progress(self):
        assert validate_transition(JobStatus.OPEN, JobStatus.IN_PROGRESS).allowed is True

    def test_open_to_cancelled(self):
        assert validate_transition(JobStatus.OPEN, JobStatus.CANCELLED).allowed is True

    def test_in_progress_to_completed(self):
        assert validate_transition(JobStatus.IN_PROGRESS, JobStatus.COMPLETED).allowed is True

    def test_open_cannot_skip_to_completed(self):
        result = validate_transition(JobStatus.OPEN, JobStatus.COMPLETED)
        assert result.allowed is False
        assert "'open' -> 'completed'" in result.reason

    def test_in_progress_cannot_reopen(self):
        assert validate_transition(JobStatus.IN_PROGRESS, JobStatus.OPEN).allowed is False

    @pytest.mark.parametrize("terminal", [JobStatus.COMPLETED, JobStatus.CANCELLED])
    def test_closed_jobs_are_terminal(self, terminal):
        assert get_valid_transitions(terminal) == set()
        result = validate_transition(terminal, JobStatus.IN_PROGRESS)
        assert result.allowed is False
        assert "none" in result.reason

    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(JobStatus)

    def test_accepts_proposals_only_when_open(self, sample_job):
        assert accepts_proposals(sample_job) is True
        sample_job.status = JobStatus.IN_PROGRESS
        assert accepts_proposals(sample_job) is False


# ---------------------------------------------------------------------------
# transition_job
# ---------------------------------------------------------------------------


class TestTransitionJob:

    @pytest.mark.asyncio
    async def test_successful_claim(self, mock_db, sample_job):
        async def _refresh(job):
            job.status = JobStatus.IN_PROGRESS

        mock_db.execute.return_value = _update_result(1)
        mock_db.refresh.side_effect = _refresh

        job = await transition_job(mock_db, sample_job, JobStatus.IN_PROGRESS)

        assert job.status == JobStatus.IN_PROGRESS
        mock_db.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lost_race_raises_invalid_state_with_current_status(
        self, mock_db, sample_job
    ):
        async def _refresh(job):
            job.status = JobStatus.IN_PROGRESS

        mock_db.execute.return_value = _update_result(0)
        mock_db.refresh.side_effect = _refresh

        with pytest.raises(InvalidStateError) as exc_info:
            await transition_job(mock_db, sample_job, JobStatus.IN_PROGRESS)

        assert exc_info.value.current_status == "in_progress"
        assert "in_progress" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_transition_never_writes(self, mock_db, sample_job):
        sample_job.status = JobStatus.COMPLETED

        with pytest.raises(InvalidStateError) as exc_info:
            await transition_job(mock_db, sample_job, JobStatus.IN_PROGRESS)

        assert exc_info.value.current_status == "completed"
        mock_db.execute.assert_not_awaited()
