from unittest.mock import AsyncMock

import pytest

from edunity_intake.core.exceptions import AssignmentNotFoundError, LeadNotFoundError
from edunity_intake.core.lead_types import PARENT, TEACHER
from edunity_intake.repositories.assignment_repository import AssignmentRepository
from edunity_intake.repositories.lead_repository import LeadRepository
from edunity_intake.schemas.assignment import AssignmentUpdate
from edunity_intake.services.lead_assignment_service import LeadAssignmentService


def _assignment_url(lead_type: str, lead_id: str) -> str:
    return f"/api/v1/leads/{lead_type}/{lead_id}/assignment"


class TestLeadAssignmentService:
    @pytest.mark.asyncio
    async def test_assign_requires_existing_lead(self):
        lead_repo = AsyncMock(spec=LeadRepository)
        lead_repo.get_by_id = AsyncMock(return_value=None)
        assignment_repo = AsyncMock(spec=AssignmentRepository)
        service = LeadAssignmentService(lead_repo, assignment_repo)

        with pytest.raises(LeadNotFoundError):
            await service.assign(
                TEACHER, "EDU-ON-T-00101", AssignmentUpdate(assigned_user_id="u1")
            )

        assignment_repo.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_lead_of_other_type_is_not_found(
        self, session_factory, add_rows, make_lead
    ):
        await add_rows(make_lead("EDU-ON-T-00101", "a@x.com", "0801"))

        async with session_factory() as session:
            service = LeadAssignmentService(
                LeadRepository(session), AssignmentRepository(session)
            )
            with pytest.raises(LeadNotFoundError):
                await service.get_assignment(PARENT, "EDU-ON-T-00101")

    @pytest.mark.asyncio
    async def test_reassign_overwrites_single_owner(
        self, session_factory, add_rows, make_lead
    ):
        await add_rows(make_lead("EDU-ON-T-00101", "a@x.com", "0801"))

        async with session_factory() as session:
            service = LeadAssignmentService(
                LeadRepository(session), AssignmentRepository(session)
            )
            await service.assign(
                TEACHER, "EDU-ON-T-00101", AssignmentUpdate(assigned_user_id="u1")
            )
            second = await service.assign(
                TEACHER,
                "EDU-ON-T-00101",
                AssignmentUpdate(assigned_user_id="u2", assigned_user_name="Bisi"),
            )

        assert second.assigned_user_id == "u2"
        assert second.assigned_user_name == "Bisi"

    @pytest.mark.asyncio
    async def test_unassign_without_assignment_raises(
        self, session_factory, add_rows, make_lead
    ):
        await add_rows(make_lead("EDU-ON-T-00101", "a@x.com", "0801"))

        async with session_factory() as session:
            service = LeadAssignmentService(
                LeadRepository(session), AssignmentRepository(session)
            )
            with pytest.raises(AssignmentNotFoundError):
                await service.unassign(TEACHER, "EDU-ON-T-00101")


class TestAssignmentEndpoints:
    @pytest.mark.asyncio
    async def test_assign_get_and_unassign(self, async_client, add_rows, make_lead):
        await add_rows(make_lead("EDU-ON-T-00101", "a@x.com", "0801"))
        url = _assignment_url("teacher", "EDU-ON-T-00101")

        put = await async_client.put(
            url,
            json={
                "assigned_user_id": "staff-7",
                "assigned_user_name": "Chidi",
                "assigned_by_user_id": "admin-1",
                "assigned_by_name": "Admin",
            },
        )
        got = await async_client.get(url)
        deleted = await async_client.delete(url)
        after = await async_client.get(url)

        assert put.status_code == 200
        assert put.json()["assigned_user_id"] == "staff-7"
        assert got.json()["assigned_by_name"] == "Admin"
        assert deleted.json() == {"ok": True}
        assert after.status_code == 404
        assert after.json()["type"] == "assignment_not_found"

    @pytest.mark.asyncio
    async def test_missing_lead_returns_404(self, async_client):
        resp = await async_client.put(
            _assignment_url("parent", "ED-PR-00999"), json={"assigned_user_id": "u1"}
        )

        assert resp.status_code == 404
        assert resp.json()["type"] == "lead_not_found"

    @pytest.mark.asyncio
    async def test_unknown_lead_type_returns_404(self, async_client):
        resp = await async_client.get(_assignment_url("school", "x"))

        assert resp.status_code == 404
        assert resp.json()["type"] == "unknown_lead_type"

    @pytest.mark.asyncio
    async def test_blank_user_rejected(self, async_client, add_rows, make_lead):
        await add_rows(make_lead("EDU-ON-T-00101", "a@x.com", "0801"))

        resp = await async_client.put(
            _assignment_url("teacher", "EDU-ON-T-00101"), json={"assigned_user_id": ""}
        )

        assert resp.status_code == 422
