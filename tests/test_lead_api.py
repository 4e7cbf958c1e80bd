"""Endpoint tests for intake, lookup and health, run against in-memory SQLite."""

import pytest

from edunity_intake.models import Lead

TEACHER_URL = "/api/v1/teacher-leads"
PARENT_URL = "/api/v1/parent-requests"


def _teacher_body(**overrides) -> dict:
    body = {
        "full_name": "Ada Teacher",
        "email": "ada@x.com",
        "phone": "0801 000 0001",
        "state": "Lagos",
        "subjects": ["Mathematics", "Physics"],
        "consent": True,
    }
    body.update(overrides)
    return body


def _parent_body(**overrides) -> dict:
    body = {
        "parent_full_name": "Bola Parent",
        "parent_email": "bola@x.com",
        "parent_phone": "0902 000 0001",
        "relationship_to_learner": "Mother",
        "learner_name": "Tobi",
        "requested_subjects": ["English"],
        "consent": True,
    }
    body.update(overrides)
    return body


class TestTeacherIntake:
    @pytest.mark.asyncio
    async def test_first_submission_gets_first_id(self, async_client):
        resp = await async_client.post(TEACHER_URL, json=_teacher_body())

        assert resp.status_code == 201
        assert resp.json() == {
            "ok": True,
            "lead_id": "EDU-ON-T-00101",
            "edunity_id": "EDU-ON-T-00101",
            "edunity_id_serial": 101,
        }

    @pytest.mark.asyncio
    async def test_sequential_submissions(self, async_client):
        first = await async_client.post(TEACHER_URL, json=_teacher_body())
        second = await async_client.post(
            TEACHER_URL, json=_teacher_body(email="b@x.com", phone="0802")
        )

        assert first.json()["edunity_id_serial"] == 101
        assert second.json()["edunity_id"] == "EDU-ON-T-00102"

    @pytest.mark.asyncio
    async def test_duplicate_email_returns_409_with_flags(self, async_client, load_all):
        await async_client.post(TEACHER_URL, json=_teacher_body())

        resp = await async_client.post(
            TEACHER_URL, json=_teacher_body(email=" ADA@X.COM", phone="0803")
        )

        assert resp.status_code == 409
        data = resp.json()
        assert data["type"] == "DUPLICATE_EMAIL"
        assert data["duplicate_email"] is True
        assert data["duplicate_phone"] is False
        assert data["detail"] == "This email is already registered."
        assert len(await load_all(Lead)) == 1

    @pytest.mark.asyncio
    async def test_duplicate_phone_returns_409(self, async_client):
        await async_client.post(TEACHER_URL, json=_teacher_body())

        resp = await async_client.post(
            TEACHER_URL, json=_teacher_body(email="other@x.com", phone="08010000001")
        )

        assert resp.status_code == 409
        assert resp.json()["type"] == "DUPLICATE_PHONE"
        assert resp.json()["duplicate_phone"] is True

    @pytest.mark.asyncio
    async def test_missing_email_returns_400(self, async_client):
        resp = await async_client.post(TEACHER_URL, json=_teacher_body(email="  "))

        assert resp.status_code == 400
        assert resp.json()["type"] == "MISSING_CONTACT_KEY"

    @pytest.mark.asyncio
    async def test_missing_name_returns_422(self, async_client):
        resp = await async_client.post(TEACHER_URL, json=_teacher_body(full_name="   "))

        assert resp.status_code == 422
        assert resp.json()["type"] == "validation_error"


class TestParentIntake:
    @pytest.mark.asyncio
    async def test_parent_request_gets_parent_id(self, async_client):
        resp = await async_client.post(PARENT_URL, json=_parent_body())

        assert resp.status_code == 201
        assert resp.json()["edunity_id"] == "ED-PR-00101"

    @pytest.mark.asyncio
    async def test_parent_duplicate_email_rejected(self, async_client):
        await async_client.post(PARENT_URL, json=_parent_body())

        resp = await async_client.post(
            PARENT_URL, json=_parent_body(parent_phone="0999")
        )

        assert resp.status_code == 409
        assert resp.json()["duplicate_email"] is True

    @pytest.mark.asyncio
    async def test_blank_subjects_rejected(self, async_client):
        resp = await async_client.post(
            PARENT_URL, json=_parent_body(requested_subjects=["  "])
        )

        assert resp.status_code == 422


class TestTeacherLookup:
    @pytest.mark.asyncio
    async def test_lookup_by_id(self, async_client):
        await async_client.post(TEACHER_URL, json=_teacher_body())

        resp = await async_client.get(f"{TEACHER_URL}/EDU-ON-T-00101")

        assert resp.status_code == 200
        data = resp.json()
        assert data["full_name"] == "Ada Teacher"
        assert data["email"] == "ada@x.com"
        assert data["details"]["subjects"] == ["Mathematics", "Physics"]

    @pytest.mark.asyncio
    async def test_legacy_and_lower_case_ids_are_normalized(self, async_client):
        await async_client.post(TEACHER_URL, json=_teacher_body())

        legacy = await async_client.get(f"{TEACHER_URL}/ED-ON-T-00101")
        lower = await async_client.get(f"{TEACHER_URL}/edu-on-t-00101")

        assert legacy.status_code == 200
        assert lower.json()["lead_id"] == "EDU-ON-T-00101"

    @pytest.mark.asyncio
    async def test_lookup_falls_back_to_edunity_id_column(
        self, async_client, add_rows, make_lead
    ):
        await add_rows(
            make_lead("opaque-key", "a@x.com", "0801", edunity_id="EDU-ON-T-00140")
        )

        resp = await async_client.get(f"{TEACHER_URL}/EDU-ON-T-00140")

        assert resp.status_code == 200
        assert resp.json()["lead_id"] == "opaque-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("edunity_id", ["EDU-ON-T-00999", "not-an-id"])
    async def test_unknown_or_invalid_id_returns_404(self, async_client, edunity_id):
        resp = await async_client.get(f"{TEACHER_URL}/{edunity_id}")

        assert resp.status_code == 404
        assert resp.json()["type"] == "lead_not_found"


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_checks_database(self, async_client):
        resp = await async_client.get("/api/v1/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
