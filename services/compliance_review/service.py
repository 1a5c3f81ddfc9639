"""
Compliance Review Service
=========================

Entry points of the review pipeline:

- create_submission: store an uploaded PDF and register it
- process_document: extract, chunk and store a submission or regulation
- process_regulation: rebuild a regulation's chunk index from its file
- analyze_submission: run rules and model analysis, persist the verdict

Each entry point runs to completion within the calling request.

Version: 0.1.0
"""

from dataclasses import dataclass

from services.compliance_review.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    SubmissionNotReadyError,
)
from services.compliance_review.models.domain import (
    ChunkRecord,
    SubmissionRecord,
    SubmissionStatus,
)
from services.compliance_review.pipeline.aggregator import AnalysisOutcome, IssueAggregator
from services.compliance_review.pipeline.analyzer import ComplianceAnalyzer
from services.compliance_review.pipeline.chunking import ChunkingMode, TextChunker
from services.compliance_review.pipeline.embeddings import EmbeddingService
from services.compliance_review.pipeline.extraction import (
    ExtractionResult,
    TextExtractor,
    text_for_chunking,
)
from services.compliance_review.pipeline.rules import RuleEngine
from services.compliance_review.repository.base import RegulationIndex, ReviewRepository
from shared.config import ExtractionFailurePolicy, settings
from shared.llm import LLMProvider
from shared.logging import get_logger
from shared.storage import BlobStore, Bucket, build_object_path

logger = get_logger(__name__)


@dataclass
class ProcessDocumentResult:
    """Outcome of processing one uploaded document."""

    success: bool
    chunks_processed: int
    has_text_content: bool
    reason: str | None = None
    message: str | None = None


@dataclass
class ProcessRegulationResult:
    """Outcome of re-indexing one regulation."""

    success: bool
    chunks: int
    has_text_content: bool
    reason: str | None = None


class ReviewService:
    """
    Orchestrates extraction, chunking, rules, model analysis and persistence.

    The LLM provider doubles as the OCR fallback for image-only PDFs. Without
    one, text-layer PDFs still process but analysis is refused.
    """

    def __init__(
        self,
        repository: ReviewRepository,
        index: RegulationIndex,
        blob_store: BlobStore,
        llm: LLMProvider | None = None,
        embeddings: EmbeddingService | None = None,
        extractor: TextExtractor | None = None,
        rules: RuleEngine | None = None,
        failure_policy: ExtractionFailurePolicy | None = None,
    ) -> None:
        pipeline = settings.pipeline
        self.repository = repository
        self.index = index
        self.blob_store = blob_store
        self.llm = llm
        self.embeddings = embeddings
        self.extractor = extractor or TextExtractor(ocr_provider=llm)
        self.rules = rules or RuleEngine()
        self.failure_policy = failure_policy or pipeline.extraction_failure_policy
        self.aggregator = IssueAggregator(repository)
        self.submission_chunker = TextChunker(ChunkingMode.WORDS, pipeline.submission_chunk_words)
        self.regulation_chunker = TextChunker(
            ChunkingMode.CHARACTERS, pipeline.regulation_chunk_chars
        )

    # ========================================================================
    # Upload
    # ========================================================================

    async def create_submission(
        self,
        user_id: str,
        title: str,
        filename: str,
        data: bytes,
        content_type: str = "application/pdf",
    ) -> SubmissionRecord:
        """
        Store an uploaded file and create its pending submission row.

        The stored object is removed again if the row cannot be created.
        """
        path = build_object_path(user_id, filename)
        await self.blob_store.upload(Bucket.SUBMISSIONS.value, path, data, content_type)

        try:
            submission = await self.repository.create_submission(
                user_id=user_id,
                title=title,
                file_path=path,
                file_size=len(data),
            )
        except Exception:
            logger.error("submission_row_create_failed", user_id=user_id, file_path=path)
            await self.blob_store.delete(Bucket.SUBMISSIONS.value, [path])
            raise

        logger.info(
            "submission_created",
            submission_id=submission.id,
            user_id=user_id,
            file_path=path,
            size=len(data),
        )
        return submission

    # ========================================================================
    # Document processing
    # ========================================================================

    async def _extract(self, bucket: Bucket, file_path: str) -> ExtractionResult:
        data = await self.blob_store.download(bucket.value, file_path)
        return await self.extractor.extract(data, filename=file_path.rsplit("/", 1)[-1])

    async def _with_embeddings(self, texts: list[str]) -> list[ChunkRecord]:
        vectors: list[list[float] | None] = [None] * len(texts)
        if self.embeddings is not None and texts:
            vectors = await self.embeddings.embed_chunks(texts)
        return [
            ChunkRecord(index=i, content=text, embedding=vector)
            for i, (text, vector) in enumerate(zip(texts, vectors, strict=True))
        ]

    async def process_document(
        self,
        submission_id: str | None,
        file_path: str,
        is_regulation: bool = False,
        regulation_id: str | None = None,
    ) -> ProcessDocumentResult:
        """
        Extract, chunk and store one uploaded document.

        Submissions are chunked by words and move to ``processing``.
        Regulations replace their chunk set and leave submission status alone.

        Args:
            submission_id: Submission to process (ignored for regulations)
            file_path: Object path in the submissions or regulations bucket
            is_regulation: Whether the file belongs to a regulation
            regulation_id: Regulation whose chunks are replaced

        Returns:
            ProcessDocumentResult, ``success=False`` when no text was recovered

        Raises:
            DocumentNotFoundError: If the target row does not exist
        """
        if is_regulation:
            if not regulation_id or await self.repository.get_regulation(regulation_id) is None:
                raise DocumentNotFoundError("regulation", regulation_id or "")
        elif not submission_id or await self.repository.get_submission(submission_id) is None:
            raise DocumentNotFoundError("submission", submission_id or "")

        bucket = Bucket.REGULATIONS if is_regulation else Bucket.SUBMISSIONS
        result = await self._extract(bucket, file_path)
        text = text_for_chunking(result, self.failure_policy)

        if text is None:
            logger.warning(
                "document_processing_aborted",
                submission_id=submission_id,
                regulation_id=regulation_id,
                reason=result.reason,
            )
            if not is_regulation:
                await self.repository.update_submission_status(
                    submission_id, SubmissionStatus.FAILED, reason=result.reason
                )
            return ProcessDocumentResult(
                success=False,
                chunks_processed=0,
                has_text_content=False,
                reason=result.reason,
                message="Document processing failed due to lack of extractable text",
            )

        chunks = await self._with_embeddings(
            [chunk.content for chunk in self.submission_chunker.chunk(text)]
        )

        if is_regulation:
            stored = await self.index.upsert_chunks(regulation_id, chunks)
        else:
            stored = await self.repository.add_submission_chunks(submission_id, chunks)
            # Placeholder text keeps the reason so analysis can flag its issues
            await self.repository.update_submission_status(
                submission_id,
                SubmissionStatus.PROCESSING,
                reason=None if result.has_text_content else result.reason,
            )

        logger.info(
            "document_processed",
            submission_id=submission_id,
            regulation_id=regulation_id,
            chunks=stored,
            has_text_content=result.has_text_content,
            embedded=self.embeddings is not None,
        )
        return ProcessDocumentResult(
            success=True,
            chunks_processed=stored,
            has_text_content=result.has_text_content,
            reason=result.reason,
            message="Document processed successfully",
        )

    async def process_regulation(self, regulation_id: str) -> ProcessRegulationResult:
        """
        Rebuild a regulation's chunks from its stored file.

        On extraction failure under the abort policy the existing chunks are
        cleared, so a stale index never outlives an unreadable file.

        Raises:
            DocumentNotFoundError: If the regulation does not exist
        """
        regulation = await self.repository.get_regulation(regulation_id)
        if regulation is None:
            raise DocumentNotFoundError("regulation", regulation_id)

        result = await self._extract(Bucket.REGULATIONS, regulation.file_path)
        text = text_for_chunking(result, self.failure_policy)

        if text is None:
            removed = await self.index.delete_chunks(regulation_id)
            logger.warning(
                "regulation_processing_aborted",
                regulation_id=regulation_id,
                removed_chunks=removed,
                reason=result.reason,
            )
            return ProcessRegulationResult(
                success=True,
                chunks=0,
                has_text_content=False,
                reason=result.reason,
            )

        chunks = await self._with_embeddings(
            [chunk.content for chunk in self.regulation_chunker.chunk(text)]
        )
        stored = await self.index.upsert_chunks(regulation_id, chunks)

        logger.info(
            "regulation_processed",
            regulation_id=regulation_id,
            chunks=stored,
            has_text_content=result.has_text_content,
        )
        return ProcessRegulationResult(
            success=True,
            chunks=stored,
            has_text_content=result.has_text_content,
            reason=result.reason,
        )

    # ========================================================================
    # Analysis
    # ========================================================================

    def analyzer(self) -> ComplianceAnalyzer:
        if self.llm is None:
            raise ConfigurationError(
                "No LLM credential configured; set ANTHROPIC_API_KEY or OPENAI_API_KEY"
            )
        return ComplianceAnalyzer(llm=self.llm, index=self.index, embeddings=self.embeddings)

    async def analyze_submission(self, submission_id: str) -> AnalysisOutcome:
        """
        Run rule checks and model analysis over a processed submission.

        Returns:
            AnalysisOutcome with the stored result id and verdict

        Raises:
            DocumentNotFoundError: If the submission does not exist
            ConfigurationError: If no LLM provider is configured
            SubmissionNotReadyError: If the submission has no chunks
        """
        submission = await self.repository.get_submission(submission_id)
        if submission is None:
            raise DocumentNotFoundError("submission", submission_id)

        analyzer = self.analyzer()

        chunks = await self.repository.list_submission_chunks(submission_id)
        if not chunks:
            raise SubmissionNotReadyError(submission_id)

        full_text = "\n\n".join(chunk.content for chunk in chunks)
        rule_issues = self.rules.run_issues(full_text)
        model_issues = await analyzer.analyze(chunks)

        if submission.status_reason:
            stamp = {"has_text_content": False, "no_text_reason": submission.status_reason}
            rule_issues = [issue.model_copy(update=stamp) for issue in rule_issues]
            model_issues = [issue.model_copy(update=stamp) for issue in model_issues]

        verdict, issues = self.aggregator.aggregate(rule_issues, model_issues)

        logger.info(
            "submission_analyzed",
            submission_id=submission_id,
            rule_issues=len(rule_issues),
            model_issues=len(model_issues),
            overall_status=verdict.value,
        )
        return await self.aggregator.persist(submission_id, verdict, issues)
