"""
E2E: Proposal store endpoints.

Tests submit/edit/withdraw/view/reject/delete and the listing endpoints,
including the job's proposal counter and the ``{message, error}`` shape of
every rejection.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient

from gigbridge.models.job import Job
from tests.e2e.conftest import (
    ADMIN,
    API,
    CLIENT,
    COMPLETED_JOB_ID,
    FREELANCER,
    FREELANCER_2,
    OPEN_FIXED_JOB_ID,
    OTHER_CLIENT,
    fetch_row,
    submit_proposal_via_api,
)

pytestmark = pytest.mark.asyncio


async def _proposals_count(session_factory) -> int:
    job = await fetch_row(session_factory, Job, OPEN_FIXED_JOB_ID)
    return job.proposals_count


class TestSubmit:

    async def test_all_digit_job_id_round_trips(self, client: AsyncClient, session_factory):
        job = await fetch_row(session_factory, Job, OPEN_FIXED_JOB_ID)
        assert job.id == OPEN_FIXED_JOB_ID

        resp = await submit_proposal_via_api(client, FREELANCER)

        assert resp.status_code == 201, resp.text
        assert resp.json()["job_id"] == str(OPEN_FIXED_JOB_ID)

    async def test_snake_case_body_is_accepted(self, client: AsyncClient):
        resp = await client.post(
            f"{API}/proposals",
            json={
                "job_id": str(OPEN_FIXED_JOB_ID),
                "cover_letter": "Snake case works too.",
                "bid_amount": "250.00",
                "delivery_time": 3,
                "attachments": [
                    {
                        "url": "https://files.example.com/portfolio.pdf",
                        "fileName": "portfolio.pdf",
                        "fileType": "application/pdf",
                        "fileSize": 48213,
                    }
                ],
            },
            headers=FREELANCER,
        )

        assert resp.status_code == 201, resp.text
        attachment = resp.json()["attachments"][0]
        assert attachment["file_name"] == "portfolio.pdf"
        assert attachment["file_size"] == 48213

    async def test_duplicate_active_proposal_conflicts(
        self, client: AsyncClient, session_factory
    ):
        await submit_proposal_via_api(client, FREELANCER)

        resp = await submit_proposal_via_api(client, FREELANCER)

        assert resp.status_code == 400
        assert resp.json() == {
            "message": "You have already submitted a proposal for this job.",
            "error": "conflict",
        }
        assert await _proposals_count(session_factory) == 1

    async def test_resubmit_after_withdraw(self, client: AsyncClient, session_factory):
        first = (await submit_proposal_via_api(client, FREELANCER)).json()
        await client.patch(f"{API}/proposals/{first['id']}/withdraw", headers=FREELANCER)

        resp = await submit_proposal_via_api(client, FREELANCER)

        assert resp.status_code == 201, resp.text
        assert await _proposals_count(session_factory) == 1

    async def test_missing_job(self, client: AsyncClient):
        resp = await submit_proposal_via_api(client, FREELANCER, job_id=uuid.uuid4())
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    async def test_closed_job(self, client: AsyncClient):
        resp = await submit_proposal_via_api(client, FREELANCER, job_id=COMPLETED_JOB_ID)
        assert resp.status_code == 400
        assert resp.json() == {
            "message": "This job is completed and no longer accepting proposals.",
            "error": "invalid_state",
        }

    async def test_client_cannot_submit(self, client: AsyncClient):
        resp = await submit_proposal_via_api(client, CLIENT)
        assert resp.status_code == 403
        assert resp.json()["error"] == "forbidden"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"bidAmount": "-1"},
            {"deliveryTime": 0},
            {"coverLetter": ""},
            {"coverLetter": "x" * 2001},
            {"message": "m" * 1001},
        ],
    )
    async def test_invalid_fields(self, client: AsyncClient, overrides):
        resp = await submit_proposal_via_api(client, FREELANCER, **overrides)
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    async def test_blank_cover_letter(self, client: AsyncClient):
        resp = await submit_proposal_via_api(client, FREELANCER, coverLetter="   ")
        assert resp.status_code == 400
        assert resp.json() == {"message": "cover_letter is required", "error": "validation_error"}

    async def test_missing_token(self, client: AsyncClient):
        resp = await client.post(f"{API}/proposals", json={})
        assert resp.status_code in (401, 403)
        assert "error" in resp.json()


class TestEdit:

    async def test_owner_edits_fields(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()

        resp = await client.patch(
            f"{API}/proposals/{proposal['id']}",
            json={"bidAmount": "720.50", "message": "Can start tomorrow."},
            headers=FREELANCER,
        )

        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert Decimal(body["bid_amount"]) == Decimal("720.50")
        assert body["message"] == "Can start tomorrow."
        assert body["delivery_time"] == proposal["delivery_time"]

    async def test_other_freelancer_cannot_edit(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()

        resp = await client.patch(
            f"{API}/proposals/{proposal['id']}", json={"bidAmount": "1"}, headers=FREELANCER_2
        )

        assert resp.status_code == 403
        assert resp.json() == {
            "message": "You can only edit your own proposals.",
            "error": "forbidden",
        }

    async def test_cannot_edit_withdrawn(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()
        await client.patch(f"{API}/proposals/{proposal['id']}/withdraw", headers=FREELANCER)

        resp = await client.patch(
            f"{API}/proposals/{proposal['id']}", json={"bidAmount": "1"}, headers=FREELANCER
        )

        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_state"
        assert "withdrawn" in resp.json()["message"]


class TestWithdrawViewReject:

    async def test_withdraw_decrements_counter_once(
        self, client: AsyncClient, session_factory
    ):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()
        await submit_proposal_via_api(client, FREELANCER_2)
        assert await _proposals_count(session_factory) == 2

        first = await client.patch(
            f"{API}/proposals/{proposal['id']}/withdraw",
            json={"reason": "Schedule conflict"},
            headers=FREELANCER,
        )
        second = await client.patch(
            f"{API}/proposals/{proposal['id']}/withdraw", headers=FREELANCER
        )

        assert first.status_code == 200, first.text
        assert first.json()["status"] == "withdrawn"
        assert first.json()["withdraw_reason"] == "Schedule conflict"
        assert second.status_code == 400
        assert second.json()["error"] == "invalid_state"
        assert await _proposals_count(session_factory) == 1

    async def test_withdraw_without_reason_uses_default(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()

        resp = await client.patch(
            f"{API}/proposals/{proposal['id']}/withdraw", headers=FREELANCER
        )

        assert resp.json()["withdraw_reason"] == "No reason provided"

    async def test_withdraw_reason_camel_case_key(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()

        resp = await client.patch(
            f"{API}/proposals/{proposal['id']}/withdraw",
            json={"withdrawReason": "Took another gig"},
            headers=FREELANCER,
        )

        assert resp.status_code == 200, resp.text
        assert resp.json()["withdraw_reason"] == "Took another gig"

    async def test_rejection_reason_camel_case_key(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()

        resp = await client.patch(
            f"{API}/proposals/{proposal['id']}/reject",
            json={"rejectionReason": "Budget too high"},
            headers=CLIENT,
        )

        assert resp.status_code == 200, resp.text
        assert resp.json()["rejection_reason"] == "Budget too high"

    async def test_mark_viewed_is_idempotent(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()

        first = await client.patch(f"{API}/proposals/{proposal['id']}/viewed", headers=CLIENT)
        second = await client.patch(f"{API}/proposals/{proposal['id']}/viewed", headers=CLIENT)

        assert first.status_code == 200
        assert first.json()["status"] == "viewed"
        assert first.json()["viewed_at"] is not None
        assert second.status_code == 200
        assert second.json()["status"] == "viewed"
        assert second.json()["viewed_at"] == first.json()["viewed_at"]

    async def test_other_client_cannot_mark_viewed(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()
        resp = await client.patch(
            f"{API}/proposals/{proposal['id']}/viewed", headers=OTHER_CLIENT
        )
        assert resp.status_code == 403

    async def test_reject_viewed_proposal(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()
        await client.patch(f"{API}/proposals/{proposal['id']}/viewed", headers=CLIENT)

        resp = await client.patch(
            f"{API}/proposals/{proposal['id']}/reject",
            json={"reason": "Went with a local agency"},
            headers=CLIENT,
        )

        assert resp.status_code == 200, resp.text
        assert resp.json()["status"] == "rejected"
        assert resp.json()["rejection_reason"] == "Went with a local agency"

    async def test_rejected_proposal_cannot_be_withdrawn(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()
        await client.patch(f"{API}/proposals/{proposal['id']}/reject", headers=CLIENT)

        resp = await client.patch(
            f"{API}/proposals/{proposal['id']}/withdraw", headers=FREELANCER
        )

        assert resp.status_code == 400
        assert "rejected" in resp.json()["message"]


class TestDelete:

    async def test_owner_deletes_submitted(self, client: AsyncClient, session_factory):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()

        resp = await client.delete(f"{API}/proposals/{proposal['id']}", headers=FREELANCER)

        assert resp.status_code == 200
        assert resp.json()["message"] == "Proposal deleted successfully"
        assert await _proposals_count(session_factory) == 0
        gone = await client.get(f"{API}/proposals/{proposal['id']}", headers=FREELANCER)
        assert gone.status_code == 404

    async def test_owner_cannot_delete_viewed(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()
        await client.patch(f"{API}/proposals/{proposal['id']}/viewed", headers=CLIENT)

        resp = await client.delete(f"{API}/proposals/{proposal['id']}", headers=FREELANCER)

        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_state"

    async def test_admin_deletes_withdrawn_without_double_decrement(
        self, client: AsyncClient, session_factory
    ):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()
        await submit_proposal_via_api(client, FREELANCER_2)
        await client.patch(f"{API}/proposals/{proposal['id']}/withdraw", headers=FREELANCER)

        resp = await client.delete(f"{API}/proposals/{proposal['id']}", headers=ADMIN)

        assert resp.status_code == 200
        assert await _proposals_count(session_factory) == 1

    async def test_job_owner_cannot_delete(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()
        resp = await client.delete(f"{API}/proposals/{proposal['id']}", headers=CLIENT)
        assert resp.status_code == 403


class TestListing:

    async def test_job_owner_lists_and_filters(self, client: AsyncClient):
        first = (await submit_proposal_via_api(client, FREELANCER)).json()
        await submit_proposal_via_api(client, FREELANCER_2)
        await client.patch(f"{API}/proposals/{first['id']}/viewed", headers=CLIENT)

        everything = await client.get(f"{API}/proposals/job/{OPEN_FIXED_JOB_ID}", headers=CLIENT)
        viewed = await client.get(
            f"{API}/proposals/job/{OPEN_FIXED_JOB_ID}",
            params={"status": "viewed"},
            headers=CLIENT,
        )

        assert len(everything.json()) == 2
        assert [p["id"] for p in viewed.json()] == [first["id"]]

    async def test_admin_lists_any_job(self, client: AsyncClient):
        await submit_proposal_via_api(client, FREELANCER)
        resp = await client.get(f"{API}/proposals/job/{OPEN_FIXED_JOB_ID}", headers=ADMIN)
        assert resp.status_code == 200
        assert len(resp.json()) == 1

    async def test_other_client_cannot_list(self, client: AsyncClient):
        resp = await client.get(
            f"{API}/proposals/job/{OPEN_FIXED_JOB_ID}", headers=OTHER_CLIENT
        )
        assert resp.status_code == 403

    async def test_freelancer_sees_only_own(self, client: AsyncClient):
        mine = (await submit_proposal_via_api(client, FREELANCER)).json()
        await submit_proposal_via_api(client, FREELANCER_2)

        resp = await client.get(f"{API}/proposals/mine", headers=FREELANCER)

        assert [p["id"] for p in resp.json()] == [mine["id"]]

    async def test_other_freelancer_cannot_read(self, client: AsyncClient):
        proposal = (await submit_proposal_via_api(client, FREELANCER)).json()
        resp = await client.get(f"{API}/proposals/{proposal['id']}", headers=FREELANCER_2)
        assert resp.status_code == 403
