"""
Tests for the Compliance Review API
===================================

Version: 0.1.0
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from services.compliance_review.models.domain import ChunkRecord
from services.compliance_review.repository import InMemoryReviewRepository
from shared.storage import Bucket, InMemoryBlobStore
from tests.conftest import ScriptedLLMProvider, make_regulation

SCANNED_PDF = b"%PDF\x00\x01\x02\x03"


async def upload(
    client: AsyncClient,
    headers: dict[str, str],
    data: bytes,
    filename: str = "catheter.pdf",
    content_type: str = "application/pdf",
) -> dict:
    response = await client.post(
        "/api/v1/submissions",
        files={"file": (filename, data, content_type)},
        data={"title": "Catheter 510(k)"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    """Tests for service health endpoints."""

    @pytest.mark.asyncio
    async def test_health_reports_components(self, compliance_review_client: AsyncClient) -> None:
        """Test that health lists postgres, llm and storage."""
        postgres = AsyncMock(return_value={"status": "healthy", "latency_ms": 1.0})
        with patch("services.compliance_review.main.PostgresClient.health_check", postgres):
            response = await compliance_review_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["service"] == "compliance-review"
        assert set(body["components"]) == {"postgres", "llm", "storage"}

    @pytest.mark.asyncio
    async def test_root(self, compliance_review_client: AsyncClient) -> None:
        """Test the root endpoint."""
        response = await compliance_review_client.get("/")
        assert response.json()["service"] == "MedReview Compliance Review Service"


class TestSubmissionUpload:
    """Tests for POST /api/v1/submissions."""

    @pytest.mark.asyncio
    async def test_upload(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
        test_user_id: str,
    ) -> None:
        """Test that a PDF upload creates a pending submission."""
        body = await upload(compliance_review_client, auth_headers, b"%PDF-1.7 content")

        assert body["status"] == "pending"
        assert body["title"] == "Catheter 510(k)"
        assert body["filePath"].startswith(f"{test_user_id}/")
        assert body["fileSize"] == 16

    @pytest.mark.asyncio
    async def test_requires_authentication(self, compliance_review_client: AsyncClient) -> None:
        """Test that uploads without a token are rejected."""
        response = await compliance_review_client.post(
            "/api/v1/submissions",
            files={"file": ("catheter.pdf", b"%PDF", "application/pdf")},
        )

        assert response.status_code == 401
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_rejects_non_pdf(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test that non-PDF uploads are rejected."""
        response = await compliance_review_client.post(
            "/api/v1/submissions",
            files={"file": ("notes.txt", b"plain text", "text/plain")},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Only PDF documents are accepted"

    @pytest.mark.asyncio
    async def test_rejects_empty_file(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test that empty uploads are rejected."""
        response = await compliance_review_client.post(
            "/api/v1/submissions",
            files={"file": ("catheter.pdf", b"", "application/pdf")},
            headers=auth_headers,
        )

        assert response.status_code == 400


class TestProcessDocument:
    """Tests for POST /api/v1/documents/process."""

    @pytest.mark.asyncio
    async def test_process_submission(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
        sample_submission_text: str,
    ) -> None:
        """Test that a text PDF is processed."""
        submission = await upload(compliance_review_client, auth_headers, sample_submission_text.encode())

        response = await compliance_review_client.post(
            "/api/v1/documents/process",
            json={"submissionId": submission["id"], "filePath": submission["filePath"]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["chunksProcessed"] == 1
        assert body["hasTextContent"] is True

    @pytest.mark.asyncio
    async def test_unreadable_document_returns_400(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
        fake_llm: ScriptedLLMProvider,
    ) -> None:
        """Test that a document without text yields 400 with the reason."""
        fake_llm.script = ["NO_TEXT_CONTENT"]
        submission = await upload(compliance_review_client, auth_headers, SCANNED_PDF)

        response = await compliance_review_client.post(
            "/api/v1/documents/process",
            json={"submissionId": submission["id"], "filePath": submission["filePath"]},
            headers=auth_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["hasTextContent"] is False
        assert body["chunksProcessed"] == 0
        assert body["reason"]
        assert body["message"] == "Document processing failed due to lack of extractable text"

    @pytest.mark.asyncio
    async def test_regulation_requires_id(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test that a regulation document needs a regulation id."""
        response = await compliance_review_client.post(
            "/api/v1/documents/process",
            json={"filePath": "admin/reg.pdf", "isRegulation": True},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "regulationId" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_submission_requires_id(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test that a submission document needs a submission id."""
        response = await compliance_review_client.post(
            "/api/v1/documents/process",
            json={"filePath": "user/a.pdf"},
            headers=auth_headers,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_submission(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test that an unknown submission is a 404."""
        response = await compliance_review_client.post(
            "/api/v1/documents/process",
            json={"submissionId": "missing", "filePath": "user/a.pdf"},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Submission not found: missing"


class TestAnalyzeSubmission:
    """Tests for POST /api/v1/submissions/{id}/analyze."""

    @pytest.mark.asyncio
    async def test_full_flow(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
        sample_submission_text: str,
    ) -> None:
        """Test upload, process and analyse of a compliant submission."""
        submission = await upload(compliance_review_client, auth_headers, sample_submission_text.encode())
        await compliance_review_client.post(
            "/api/v1/documents/process",
            json={"submissionId": submission["id"], "filePath": submission["filePath"]},
            headers=auth_headers,
        )

        response = await compliance_review_client.post(
            f"/api/v1/submissions/{submission['id']}/analyze",
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["overallStatus"] == "compliant"
        assert body["issuesFound"] == 0
        assert body["analysisId"]

    @pytest.mark.asyncio
    async def test_unknown_submission(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test that analysing an unknown submission is a 404."""
        response = await compliance_review_client.post(
            "/api/v1/submissions/missing/analyze",
            headers=auth_headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unprocessed_submission(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test that analysing before processing is a 409."""
        submission = await upload(compliance_review_client, auth_headers, b"%PDF")

        response = await compliance_review_client.post(
            f"/api/v1/submissions/{submission['id']}/analyze",
            headers=auth_headers,
        )

        assert response.status_code == 409


class TestProcessRegulation:
    """Tests for POST /api/v1/regulations/{id}/process."""

    @pytest.mark.asyncio
    async def test_requires_admin(
        self,
        compliance_review_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test that regular users cannot re-index regulations."""
        response = await compliance_review_client.post(
            "/api/v1/regulations/reg-1/process",
            headers=auth_headers,
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_reindex(
        self,
        compliance_review_client: AsyncClient,
        admin_headers: dict[str, str],
        repository: InMemoryReviewRepository,
        blob_store: InMemoryBlobStore,
        fake_llm: ScriptedLLMProvider,
    ) -> None:
        """Test that an unreadable regulation clears its chunks and reports no text."""
        fake_llm.script = ["NO_TEXT_CONTENT"]
        regulation = repository.add_regulation(make_regulation(regulation_id="reg-1"))
        repository.regulation_chunks["reg-1"] = [ChunkRecord(index=0, content="stale")]
        await blob_store.upload(Bucket.REGULATIONS.value, regulation.file_path, SCANNED_PDF)

        response = await compliance_review_client.post(
            "/api/v1/regulations/reg-1/process",
            headers=admin_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body == {
            "success": True,
            "chunks": 0,
            "hasTextContent": False,
            "reason": body["reason"],
        }
        assert body["reason"]
        assert "reg-1" not in repository.regulation_chunks
