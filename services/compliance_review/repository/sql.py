"""
PostgreSQL Repositories
=======================

SQLAlchemy implementations of the review store and the pgvector-backed
regulation index.

Version: 0.1.0
"""

import uuid

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.compliance_review.models.domain import (
    ChunkRecord,
    RegulationPassage,
    RegulationRecord,
    RegulationStatus,
    SubmissionRecord,
    SubmissionStatus,
    Verdict,
)
from services.compliance_review.models.tables import (
    AnalysisIssueModel,
    AnalysisResultModel,
    RegulationChunkModel,
    RegulationModel,
    SubmissionChunkModel,
    SubmissionModel,
)
from services.compliance_review.pipeline.issues import Issue
from services.compliance_review.repository.base import RegulationIndex, ReviewRepository
from shared.logging import get_logger

logger = get_logger(__name__)


def _uuid(value: str | None) -> uuid.UUID | None:
    """Parse a UUID, returning None for absent or malformed ids."""
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _to_submission(row: SubmissionModel) -> SubmissionRecord:
    return SubmissionRecord(
        id=str(row.id),
        user_id=str(row.user_id),
        title=row.title,
        file_path=row.file_path,
        status=SubmissionStatus(row.status),
        file_size=row.file_size,
        status_reason=row.status_reason,
        created_at=row.created_at,
    )


def _to_regulation(row: RegulationModel) -> RegulationRecord:
    return RegulationRecord(
        id=str(row.id),
        title=row.title,
        file_path=row.file_path,
        status=RegulationStatus(row.status),
        category=row.category,
        version=row.version,
        effective_date=row.effective_date,
        description=row.description,
    )


def _issue_row(analysis_id: uuid.UUID, issue: Issue) -> dict:
    return {
        "id": uuid.uuid4(),
        "analysis_result_id": analysis_id,
        "category": issue.category,
        "severity": issue.severity.value,
        "title": issue.title,
        "description": issue.description,
        "location": issue.location,
        "suggestion": issue.suggestion,
        "regulation": issue.regulation,
        "regulation_id": _uuid(issue.regulation_id),
        "regulation_title": issue.regulation_title,
        "regulation_category": issue.regulation_category,
        "regulation_version": issue.regulation_version,
        "regulation_effective_date": issue.regulation_effective_date,
        "regulation_status": issue.regulation_status,
        "submission_highlight": issue.submission_highlight,
        "regulation_highlight": issue.regulation_highlight,
        "citations": [c.model_dump() for c in issue.sorted_citations()],
        "notes": issue.notes,
        "issue_code": issue.issue_code,
        "source": issue.source.value,
        "has_text_content": issue.has_text_content,
        "no_text_reason": issue.no_text_reason,
    }


class SqlReviewRepository(ReviewRepository):
    """Review store on an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_submission(self, submission_id: str) -> SubmissionRecord | None:
        key = _uuid(submission_id)
        if key is None:
            return None
        row = await self.session.get(SubmissionModel, key)
        return _to_submission(row) if row else None

    async def create_submission(
        self,
        user_id: str,
        title: str,
        file_path: str,
        file_size: int | None = None,
    ) -> SubmissionRecord:
        row = SubmissionModel(
            user_id=uuid.UUID(user_id),
            title=title,
            file_path=file_path,
            file_size=file_size,
            status=SubmissionStatus.PENDING.value,
        )
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)
        return _to_submission(row)

    async def update_submission_status(
        self,
        submission_id: str,
        status: SubmissionStatus,
        reason: str | None = None,
    ) -> None:
        await self.session.execute(
            update(SubmissionModel)
            .where(SubmissionModel.id == uuid.UUID(submission_id))
            .values(status=status.value, status_reason=reason)
        )
        await self.session.commit()

    async def add_submission_chunks(self, submission_id: str, chunks: list[ChunkRecord]) -> int:
        if not chunks:
            return 0
        key = uuid.UUID(submission_id)
        offset = await self.session.scalar(
            select(func.count())
            .select_from(SubmissionChunkModel)
            .where(SubmissionChunkModel.submission_id == key)
        )
        await self.session.execute(
            insert(SubmissionChunkModel),
            [
                {
                    "id": uuid.uuid4(),
                    "submission_id": key,
                    "chunk_index": (offset or 0) + i,
                    "content": c.content,
                    "embedding": c.embedding,
                }
                for i, c in enumerate(chunks)
            ],
        )
        await self.session.commit()
        return len(chunks)

    async def list_submission_chunks(self, submission_id: str) -> list[ChunkRecord]:
        result = await self.session.execute(
            select(SubmissionChunkModel)
            .where(SubmissionChunkModel.submission_id == uuid.UUID(submission_id))
            .order_by(SubmissionChunkModel.chunk_index)
        )
        return [
            ChunkRecord(
                index=row.chunk_index,
                content=row.content,
                embedding=list(row.embedding) if row.embedding is not None else None,
            )
            for row in result.scalars()
        ]

    async def get_regulation(self, regulation_id: str) -> RegulationRecord | None:
        key = _uuid(regulation_id)
        if key is None:
            return None
        row = await self.session.get(RegulationModel, key)
        return _to_regulation(row) if row else None

    async def create_analysis_result(self, submission_id: str, verdict: Verdict) -> str:
        row = AnalysisResultModel(
            submission_id=uuid.UUID(submission_id),
            overall_status=verdict.value,
        )
        self.session.add(row)
        await self.session.commit()
        return str(row.id)

    async def add_issues(self, analysis_id: str, issues: list[Issue]) -> int:
        if not issues:
            return 0
        key = uuid.UUID(analysis_id)
        try:
            await self.session.execute(
                insert(AnalysisIssueModel), [_issue_row(key, issue) for issue in issues]
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return len(issues)


class PgVectorRegulationIndex(RegulationIndex):
    """Regulation index using pgvector cosine distance."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert_chunks(self, regulation_id: str, chunks: list[ChunkRecord]) -> int:
        key = uuid.UUID(regulation_id)
        await self.session.execute(
            delete(RegulationChunkModel).where(RegulationChunkModel.regulation_id == key)
        )
        if chunks:
            await self.session.execute(
                insert(RegulationChunkModel),
                [
                    {
                        "id": uuid.uuid4(),
                        "regulation_id": key,
                        "chunk_index": c.index,
                        "content": c.content,
                        "embedding": c.embedding,
                    }
                    for c in chunks
                ],
            )
        await self.session.commit()
        return len(chunks)

    async def delete_chunks(self, regulation_id: str) -> int:
        result = await self.session.execute(
            delete(RegulationChunkModel).where(
                RegulationChunkModel.regulation_id == uuid.UUID(regulation_id)
            )
        )
        await self.session.commit()
        return result.rowcount or 0

    async def query_nearest(
        self,
        embedding: list[float],
        threshold: float,
        k: int,
    ) -> list[RegulationPassage]:
        distance = RegulationChunkModel.embedding.cosine_distance(embedding)
        result = await self.session.execute(
            select(RegulationChunkModel, RegulationModel, distance.label("distance"))
            .join(RegulationModel, RegulationModel.id == RegulationChunkModel.regulation_id)
            .where(RegulationModel.status == RegulationStatus.ACTIVE.value)
            .where(RegulationChunkModel.embedding.is_not(None))
            .where(1 - distance >= threshold)
            .order_by(distance)
            .limit(k)
        )
        return [
            RegulationPassage(
                regulation=_to_regulation(regulation),
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                similarity=1 - float(dist),
            )
            for chunk, regulation, dist in result.all()
        ]

    async def active_passages(self) -> list[RegulationPassage]:
        result = await self.session.execute(
            select(RegulationChunkModel, RegulationModel)
            .join(RegulationModel, RegulationModel.id == RegulationChunkModel.regulation_id)
            .where(RegulationModel.status == RegulationStatus.ACTIVE.value)
            .order_by(RegulationModel.created_at, RegulationModel.id, RegulationChunkModel.chunk_index)
        )
        return [
            RegulationPassage(
                regulation=_to_regulation(regulation),
                chunk_index=chunk.chunk_index,
                content=chunk.content,
            )
            for chunk, regulation in result.all()
        ]
