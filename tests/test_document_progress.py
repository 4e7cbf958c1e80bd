from datetime import datetime, timezone

import pytest

from edunity_intake.core.constants import CONSENT_KEYS, REQUIRED_DOCUMENT_KEYS_BASE
from edunity_intake.models import TeacherFollowUpDocument
from edunity_intake.services.follow_up_documents import (
    build_document_storage_path,
    compute_document_progress,
)

ALL_CONSENTS = {key: True for key in CONSENT_KEYS}


def _uploaded(*keys) -> dict:
    return {
        key: {"file_name": f"{key}.pdf", "download_url": f"https://files.test/{key}"}
        for key in keys
    }


class TestComputeDocumentProgress:
    def test_nothing_provided_is_pending(self):
        progress = compute_document_progress({}, {})

        assert progress.status == "pending"
        assert progress.required_uploaded == 0
        assert progress.required_total == 4
        assert progress.missing_required_keys == REQUIRED_DOCUMENT_KEYS_BASE

    def test_all_required_and_consents_is_complete(self):
        progress = compute_document_progress(
            _uploaded(*REQUIRED_DOCUMENT_KEYS_BASE), ALL_CONSENTS
        )

        assert progress.status == "complete"
        assert progress.consents_all_yes is True
        assert progress.missing_required_keys == []

    def test_missing_consent_keeps_partial(self):
        consents = dict(ALL_CONSENTS, data_processing_consent=False)

        progress = compute_document_progress(
            _uploaded(*REQUIRED_DOCUMENT_KEYS_BASE), consents
        )

        assert progress.status == "partial"
        assert progress.consents_all_yes is False

    def test_nysc_certificate_required_when_applicable(self):
        progress = compute_document_progress(
            _uploaded(*REQUIRED_DOCUMENT_KEYS_BASE), ALL_CONSENTS, nysc_applicable=True
        )

        assert progress.status == "partial"
        assert progress.required_total == 5
        assert progress.missing_required_keys == ["nysc_certificate"]

    def test_blank_download_url_does_not_count(self):
        documents = {"cv_pdf": {"file_name": "cv.pdf", "download_url": "  "}}

        progress = compute_document_progress(documents, {})

        assert progress.status == "pending"
        assert progress.has_any_upload is False

    def test_optional_upload_alone_is_partial(self):
        progress = compute_document_progress(_uploaded("trcn_certificate"), {})

        assert progress.status == "partial"
        assert progress.required_uploaded == 0
        assert progress.has_any_upload is True

    def test_single_consent_is_partial(self):
        progress = compute_document_progress({}, {"background_check_consent": True})

        assert progress.status == "partial"

    @pytest.mark.parametrize(
        "status,pushed_at",
        [("pushed_to_sales", None), ("partial", datetime(2025, 5, 1, tzinfo=timezone.utc))],
    )
    def test_pushed_to_sales_is_sticky(self, status, pushed_at):
        progress = compute_document_progress(
            {}, {}, status=status, pushed_to_sales_at=pushed_at
        )

        assert progress.status == "pushed_to_sales"


class TestStoragePath:
    def test_path_layout(self):
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)

        path = build_document_storage_path("edu-on-t-00101", "cv_pdf", "My CV (final).PDF", now)

        assert path == "teacher-follow-up/edu-on-t-00101/cv_pdf/1735689600000-my-cv-final-.pdf"

    def test_empty_file_name_falls_back_to_key(self):
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)

        path = build_document_storage_path("EDU-ON-T-00101", "valid_id", "///", now)

        assert path.endswith("/valid_id/1735689600000-valid_id-file")


class TestDocumentEndpoints:
    URL = "/api/v1/teacher-leads/{}/documents"

    async def _create_teacher(self, async_client) -> str:
        resp = await async_client.post(
            "/api/v1/teacher-leads",
            json={"full_name": "Ada", "email": "ada@x.com", "phone": "0801"},
        )
        return resp.json()["edunity_id"]

    @pytest.mark.asyncio
    async def test_progress_for_teacher_without_documents(self, async_client):
        edunity_id = await self._create_teacher(async_client)

        resp = await async_client.get(self.URL.format(edunity_id) + "/progress")

        assert resp.status_code == 200
        assert resp.json()["status"] == "pending"
        assert resp.json()["edunity_id"] == edunity_id

    @pytest.mark.asyncio
    async def test_upload_persists_and_recomputes_status(self, async_client, load_all):
        edunity_id = await self._create_teacher(async_client)

        first = await async_client.put(
            self.URL.format(edunity_id),
            json={"documents": _uploaded("cv_pdf"), "consents": ALL_CONSENTS},
        )
        second = await async_client.put(
            self.URL.format("ED-ON-T-00101"),
            json={"documents": _uploaded(*REQUIRED_DOCUMENT_KEYS_BASE[1:])},
        )

        assert first.status_code == 200
        assert first.json()["status"] == "partial"
        assert second.json()["status"] == "complete"
        assert second.json()["edunity_id"] == "EDU-ON-T-00101"
        (record,) = await load_all(TeacherFollowUpDocument)
        assert record.status == "complete"
        assert set(record.documents) == set(REQUIRED_DOCUMENT_KEYS_BASE)
        assert record.lead_id == edunity_id

    @pytest.mark.asyncio
    async def test_unknown_document_key_rejected(self, async_client):
        edunity_id = await self._create_teacher(async_client)

        resp = await async_client.put(
            self.URL.format(edunity_id), json={"documents": _uploaded("selfie")}
        )

        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_teacher_returns_404(self, async_client):
        resp = await async_client.put(
            self.URL.format("EDU-ON-T-00555"), json={"consents": ALL_CONSENTS}
        )

        assert resp.status_code == 404
