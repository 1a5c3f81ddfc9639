"""
Tests for the Review Service
============================

End-to-end pipeline runs over in-memory adapters and a scripted model.

Version: 0.1.0
"""

import json
from unittest.mock import AsyncMock

import pytest

from services.compliance_review.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    SubmissionNotReadyError,
)
from services.compliance_review.models.domain import ChunkRecord, SubmissionStatus, Verdict
from services.compliance_review.pipeline.chunking import ChunkingMode, TextChunker
from services.compliance_review.pipeline.extraction import TextExtractor
from services.compliance_review.pipeline.issues import IssueSeverity, IssueSource
from services.compliance_review.repository import InMemoryRegulationIndex, InMemoryReviewRepository
from services.compliance_review.service import ReviewService
from shared.config import ExtractionFailurePolicy
from shared.storage import Bucket, InMemoryBlobStore
from tests.conftest import ScriptedLLMProvider, make_regulation

USER_ID = "5f0c4a52-8a8e-4d4b-9d4e-3f2a1b7c9e10"
SCANNED_PDF = b"%PDF\x00\x01\x02\x03"

MODEL_WARNING = json.dumps([{
    "category": "Labeling",
    "severity": "warning",
    "title": "Expiry date not on label",
    "description": "The label mock-up does not show an expiry date.",
}])


async def upload(service: ReviewService, text: str | bytes) -> str:
    data = text.encode() if isinstance(text, str) else text
    submission = await service.create_submission(USER_ID, "Catheter 510(k)", "catheter.pdf", data)
    return submission.id


# ============================================================================
# Upload
# ============================================================================


class TestCreateSubmission:
    """Tests for submission upload."""

    @pytest.mark.asyncio
    async def test_creates_pending_row_and_blob(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        blob_store: InMemoryBlobStore,
    ) -> None:
        """Test that upload stores the blob and a pending submission."""
        submission = await review_service.create_submission(
            USER_ID, "Catheter", "catheter.pdf", b"%PDF data"
        )

        assert submission.status == SubmissionStatus.PENDING
        assert submission.file_path.startswith(f"{USER_ID}/")
        assert submission.file_path.endswith("_catheter.pdf")
        assert submission.file_size == 9
        assert blob_store.exists(Bucket.SUBMISSIONS.value, submission.file_path)
        assert repository.submissions[submission.id] == submission

    @pytest.mark.asyncio
    async def test_row_failure_removes_blob(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        blob_store: InMemoryBlobStore,
    ) -> None:
        """Test that the uploaded object is deleted when the row insert fails."""
        repository.create_submission = AsyncMock(side_effect=RuntimeError("insert failed"))
        uploaded: list[str] = []
        original_upload = blob_store.upload

        async def tracking_upload(bucket: str, path: str, data: bytes, content_type: str = "") -> str:
            uploaded.append(path)
            return await original_upload(bucket, path, data, content_type)

        blob_store.upload = tracking_upload  # type: ignore[method-assign]

        with pytest.raises(RuntimeError):
            await review_service.create_submission(USER_ID, "Catheter", "catheter.pdf", b"%PDF data")

        assert len(uploaded) == 1
        assert not blob_store.exists(Bucket.SUBMISSIONS.value, uploaded[0])


# ============================================================================
# Document Processing
# ============================================================================


class TestProcessDocument:
    """Tests for submission and regulation document processing."""

    @pytest.mark.asyncio
    async def test_text_layer_submission(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        fake_llm: ScriptedLLMProvider,
        sample_submission_text: str,
    ) -> None:
        """Test that a text PDF is chunked and moves to processing."""
        submission_id = await upload(review_service, sample_submission_text)
        submission = repository.submissions[submission_id]

        result = await review_service.process_document(submission_id, submission.file_path)

        assert result.success is True
        assert result.has_text_content is True
        assert result.chunks_processed == 1
        assert repository.submission_chunks[submission_id][0].content.startswith("Device description")
        assert repository.submissions[submission_id].status == SubmissionStatus.PROCESSING
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_ocr_fallback(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        fake_llm: ScriptedLLMProvider,
        sample_submission_text: str,
    ) -> None:
        """Test that a scanned PDF is read through the model."""
        fake_llm.script = [sample_submission_text]
        submission_id = await upload(review_service, SCANNED_PDF)

        result = await review_service.process_document(
            submission_id, repository.submissions[submission_id].file_path
        )

        assert result.success is True
        assert len(fake_llm.calls) == 1
        assert repository.submission_chunks[submission_id]

    @pytest.mark.asyncio
    async def test_abort_marks_submission_failed(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        fake_llm: ScriptedLLMProvider,
    ) -> None:
        """Test that an unreadable PDF fails the submission with a reason."""
        fake_llm.script = ["NO_TEXT_CONTENT"]
        submission_id = await upload(review_service, SCANNED_PDF)

        result = await review_service.process_document(
            submission_id, repository.submissions[submission_id].file_path
        )

        assert result.success is False
        assert result.chunks_processed == 0
        assert result.message == "Document processing failed due to lack of extractable text"
        submission = repository.submissions[submission_id]
        assert submission.status == SubmissionStatus.FAILED
        assert submission.status_reason == result.reason
        assert submission_id not in repository.submission_chunks

    @pytest.mark.asyncio
    async def test_placeholder_policy(
        self,
        repository: InMemoryReviewRepository,
        index: InMemoryRegulationIndex,
        blob_store: InMemoryBlobStore,
    ) -> None:
        """Test that the placeholder policy stores a marker chunk and flags analysis issues."""
        llm = ScriptedLLMProvider([MODEL_WARNING])
        service = ReviewService(
            repository=repository,
            index=index,
            blob_store=blob_store,
            llm=llm,
            extractor=TextExtractor(ocr_provider=None),
            failure_policy=ExtractionFailurePolicy.PLACEHOLDER,
        )
        submission_id = await upload(service, SCANNED_PDF)

        result = await service.process_document(
            submission_id, repository.submissions[submission_id].file_path
        )

        assert result.success is True
        assert result.has_text_content is False
        assert result.chunks_processed == 1
        submission = repository.submissions[submission_id]
        assert submission.status == SubmissionStatus.PROCESSING
        assert submission.status_reason == result.reason

        outcome = await service.analyze_submission(submission_id)

        stored = repository.issues[outcome.analysis_id]
        assert stored
        assert all(issue.has_text_content is False for issue in stored)
        assert all(issue.no_text_reason == result.reason for issue in stored)

    @pytest.mark.asyncio
    async def test_reprocessing_continues_chunk_indexes(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        sample_submission_text: str,
    ) -> None:
        """Test that a second run appends chunks after the first with contiguous indexes."""
        review_service.submission_chunker = TextChunker(ChunkingMode.WORDS, 5)
        submission_id = await upload(review_service, sample_submission_text)
        file_path = repository.submissions[submission_id].file_path

        first = await review_service.process_document(submission_id, file_path)
        second = await review_service.process_document(submission_id, file_path)

        chunks = await repository.list_submission_chunks(submission_id)
        total = first.chunks_processed + second.chunks_processed
        assert first.chunks_processed > 1
        assert [c.index for c in chunks] == list(range(total))
        assert [c.content for c in chunks[first.chunks_processed :]] == [
            c.content for c in chunks[: first.chunks_processed]
        ]

    @pytest.mark.asyncio
    async def test_missing_submission(self, review_service: ReviewService) -> None:
        """Test that processing an unknown submission raises."""
        with pytest.raises(DocumentNotFoundError):
            await review_service.process_document("missing", "user/a.pdf")

    @pytest.mark.asyncio
    async def test_regulation_document_replaces_chunks(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        blob_store: InMemoryBlobStore,
        sample_submission_text: str,
    ) -> None:
        """Test that a regulation document replaces that regulation's chunks."""
        regulation = repository.add_regulation(make_regulation(regulation_id="reg-1"))
        repository.regulation_chunks["reg-1"] = [ChunkRecord(index=0, content="stale"), ChunkRecord(index=1, content="stale")]
        await blob_store.upload(Bucket.REGULATIONS.value, regulation.file_path, sample_submission_text.encode())

        result = await review_service.process_document(
            None, regulation.file_path, is_regulation=True, regulation_id="reg-1"
        )

        assert result.success is True
        assert [c.content for c in repository.regulation_chunks["reg-1"]] != ["stale", "stale"]
        assert len(repository.regulation_chunks["reg-1"]) == result.chunks_processed


class TestProcessRegulation:
    """Tests for regulation re-indexing."""

    @pytest.mark.asyncio
    async def test_character_chunks(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        blob_store: InMemoryBlobStore,
    ) -> None:
        """Test that regulation text is split into 1000-character chunks."""
        regulation = repository.add_regulation(make_regulation(regulation_id="reg-1"))
        text = "Article 1. Devices shall be labelled with their sterility status. " * 40
        await blob_store.upload(Bucket.REGULATIONS.value, regulation.file_path, text.encode())

        result = await review_service.process_regulation("reg-1")

        chunks = repository.regulation_chunks["reg-1"]
        assert result.success is True
        assert result.has_text_content is True
        assert result.chunks == len(chunks) == 3
        assert all(len(c.content) <= 1000 for c in chunks)

    @pytest.mark.asyncio
    async def test_unreadable_regulation_clears_chunks(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        blob_store: InMemoryBlobStore,
        fake_llm: ScriptedLLMProvider,
    ) -> None:
        """Test that an unreadable file removes the old chunks and reports no text."""
        fake_llm.script = ["NO_TEXT_CONTENT"]
        regulation = repository.add_regulation(make_regulation(regulation_id="reg-1"))
        repository.regulation_chunks["reg-1"] = [ChunkRecord(index=0, content="stale")]
        await blob_store.upload(Bucket.REGULATIONS.value, regulation.file_path, SCANNED_PDF)

        result = await review_service.process_regulation("reg-1")

        assert result.success is True
        assert result.chunks == 0
        assert result.has_text_content is False
        assert result.reason
        assert "reg-1" not in repository.regulation_chunks

    @pytest.mark.asyncio
    async def test_missing_regulation(self, review_service: ReviewService) -> None:
        """Test that an unknown regulation raises."""
        with pytest.raises(DocumentNotFoundError):
            await review_service.process_regulation("missing")


# ============================================================================
# Analysis
# ============================================================================


class TestAnalyzeSubmission:
    """Tests for the analysis entry point."""

    @pytest.mark.asyncio
    async def test_compliant_submission(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        sample_submission_text: str,
    ) -> None:
        """Test that a clean submission with no model findings is compliant."""
        submission_id = await upload(review_service, sample_submission_text)
        await review_service.process_document(submission_id, repository.submissions[submission_id].file_path)

        outcome = await review_service.analyze_submission(submission_id)

        assert outcome.overall_status == Verdict.COMPLIANT
        assert outcome.issues_found == 0
        assert repository.submissions[submission_id].status == SubmissionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_rule_and_model_issues(
        self,
        review_service: ReviewService,
        repository: InMemoryReviewRepository,
        fake_llm: ScriptedLLMProvider,
        sample_submission_text: str,
    ) -> None:
        """Test that rule errors and model warnings combine into one ranked result."""
        fake_llm.script = [MODEL_WARNING]
        submission_id = await upload(
            review_service, sample_submission_text + " Outer packaging is non-sterile."
        )
        await review_service.process_document(submission_id, repository.submissions[submission_id].file_path)

        outcome = await review_service.analyze_submission(submission_id)

        assert outcome.overall_status == Verdict.NON_COMPLIANT
        stored = repository.issues[outcome.analysis_id]
        assert outcome.issues_found == len(stored) == 2
        assert stored[0].source == IssueSource.RULE
        assert stored[0].severity == IssueSeverity.ERROR
        assert stored[0].issue_code == "sterile_conflict"
        assert stored[1].title == "Expiry date not on label"

    @pytest.mark.asyncio
    async def test_missing_submission(self, review_service: ReviewService) -> None:
        """Test that analysing an unknown submission raises."""
        with pytest.raises(DocumentNotFoundError):
            await review_service.analyze_submission("missing")

    @pytest.mark.asyncio
    async def test_unprocessed_submission(self, review_service: ReviewService) -> None:
        """Test that a submission without chunks is not ready."""
        submission_id = await upload(review_service, b"%PDF")

        with pytest.raises(SubmissionNotReadyError):
            await review_service.analyze_submission(submission_id)

    @pytest.mark.asyncio
    async def test_no_llm_configured(
        self,
        repository: InMemoryReviewRepository,
        index: InMemoryRegulationIndex,
        blob_store: InMemoryBlobStore,
        sample_submission_text: str,
    ) -> None:
        """Test that analysis is refused without an LLM provider."""
        service = ReviewService(repository=repository, index=index, blob_store=blob_store, llm=None)
        submission_id = await upload(service, sample_submission_text)
        await service.process_document(submission_id, repository.submissions[submission_id].file_path)

        with pytest.raises(ConfigurationError):
            await service.analyze_submission(submission_id)
