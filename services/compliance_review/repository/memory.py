"""
In-Memory Repositories
======================

Process-local implementations of the review store and regulation index
for development without PostgreSQL and for tests.

Version: 0.1.0
"""

import uuid
from dataclasses import replace
from datetime import UTC, datetime

from services.compliance_review.models.domain import (
    ChunkRecord,
    RegulationPassage,
    RegulationRecord,
    RegulationStatus,
    SubmissionRecord,
    SubmissionStatus,
    Verdict,
)
from services.compliance_review.pipeline.embeddings import cosine_similarity
from services.compliance_review.pipeline.issues import Issue
from services.compliance_review.repository.base import RegulationIndex, ReviewRepository
from shared.logging import get_logger

logger = get_logger(__name__)


class InMemoryReviewRepository(ReviewRepository):
    """Review store backed by dictionaries."""

    def __init__(self) -> None:
        self.submissions: dict[str, SubmissionRecord] = {}
        self.regulations: dict[str, RegulationRecord] = {}
        self.submission_chunks: dict[str, list[ChunkRecord]] = {}
        self.regulation_chunks: dict[str, list[ChunkRecord]] = {}
        self.results: dict[str, tuple[str, Verdict]] = {}
        self.issues: dict[str, list[Issue]] = {}

    def add_regulation(self, regulation: RegulationRecord) -> RegulationRecord:
        """Register a regulation (uploads are handled outside the pipeline)."""
        self.regulations[regulation.id] = regulation
        return regulation

    async def get_submission(self, submission_id: str) -> SubmissionRecord | None:
        return self.submissions.get(submission_id)

    async def create_submission(
        self,
        user_id: str,
        title: str,
        file_path: str,
        file_size: int | None = None,
    ) -> SubmissionRecord:
        record = SubmissionRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            file_path=file_path,
            file_size=file_size,
            created_at=datetime.now(UTC),
        )
        self.submissions[record.id] = record
        return record

    async def update_submission_status(
        self,
        submission_id: str,
        status: SubmissionStatus,
        reason: str | None = None,
    ) -> None:
        record = self.submissions.get(submission_id)
        if record is None:
            logger.warning("submission_status_target_missing", submission_id=submission_id)
            return
        self.submissions[submission_id] = replace(record, status=status, status_reason=reason)

    async def add_submission_chunks(self, submission_id: str, chunks: list[ChunkRecord]) -> int:
        stored = self.submission_chunks.setdefault(submission_id, [])
        offset = len(stored)
        stored.extend(replace(c, index=offset + i) for i, c in enumerate(chunks))
        return len(chunks)

    async def list_submission_chunks(self, submission_id: str) -> list[ChunkRecord]:
        return sorted(self.submission_chunks.get(submission_id, []), key=lambda c: c.index)

    async def get_regulation(self, regulation_id: str) -> RegulationRecord | None:
        return self.regulations.get(regulation_id)

    async def create_analysis_result(self, submission_id: str, verdict: Verdict) -> str:
        analysis_id = str(uuid.uuid4())
        self.results[analysis_id] = (submission_id, verdict)
        return analysis_id

    async def add_issues(self, analysis_id: str, issues: list[Issue]) -> int:
        self.issues.setdefault(analysis_id, []).extend(issues)
        return len(issues)


class InMemoryRegulationIndex(RegulationIndex):
    """
    Regulation index over the in-memory repository's chunk table.

    Status is read from the repository at query time.
    """

    def __init__(self, repository: InMemoryReviewRepository) -> None:
        self._repository = repository

    @property
    def _chunks(self) -> dict[str, list[ChunkRecord]]:
        return self._repository.regulation_chunks

    def _active(self) -> list[RegulationRecord]:
        return [
            r
            for r in self._repository.regulations.values()
            if r.status == RegulationStatus.ACTIVE
        ]

    async def upsert_chunks(self, regulation_id: str, chunks: list[ChunkRecord]) -> int:
        self._chunks[regulation_id] = list(chunks)
        return len(chunks)

    async def delete_chunks(self, regulation_id: str) -> int:
        return len(self._chunks.pop(regulation_id, []))

    async def query_nearest(
        self,
        embedding: list[float],
        threshold: float,
        k: int,
    ) -> list[RegulationPassage]:
        if not any(embedding):
            return []

        matches: list[RegulationPassage] = []
        for regulation in self._active():
            for chunk in self._chunks.get(regulation.id, []):
                if chunk.embedding is None or not any(chunk.embedding):
                    continue
                similarity = cosine_similarity(embedding, chunk.embedding)
                if similarity >= threshold:
                    matches.append(
                        RegulationPassage(
                            regulation=regulation,
                            chunk_index=chunk.index,
                            content=chunk.content,
                            similarity=similarity,
                        )
                    )

        matches.sort(key=lambda p: p.similarity or 0.0, reverse=True)
        return matches[:k]

    async def active_passages(self) -> list[RegulationPassage]:
        return [
            RegulationPassage(regulation=regulation, chunk_index=chunk.index, content=chunk.content)
            for regulation in self._active()
            for chunk in sorted(self._chunks.get(regulation.id, []), key=lambda c: c.index)
        ]
