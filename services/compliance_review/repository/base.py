"""
Repository Interfaces
=====================

Abstract stores used by the review pipeline. Every write commits on its
own; nothing spans several writes in one transaction.

Version: 0.1.0
"""

from abc import ABC, abstractmethod

from services.compliance_review.models.domain import (
    ChunkRecord,
    RegulationPassage,
    RegulationRecord,
    SubmissionRecord,
    SubmissionStatus,
    Verdict,
)
from services.compliance_review.pipeline.issues import Issue


class ReviewRepository(ABC):
    """Relational store for submissions, regulations and results."""

    @abstractmethod
    async def get_submission(self, submission_id: str) -> SubmissionRecord | None:
        ...

    @abstractmethod
    async def create_submission(
        self,
        user_id: str,
        title: str,
        file_path: str,
        file_size: int | None = None,
    ) -> SubmissionRecord:
        ...

    @abstractmethod
    async def update_submission_status(
        self,
        submission_id: str,
        status: SubmissionStatus,
        reason: str | None = None,
    ) -> None:
        """Set the lifecycle status; ``reason`` is stored with ``failed``."""
        ...

    @abstractmethod
    async def add_submission_chunks(self, submission_id: str, chunks: list[ChunkRecord]) -> int:
        """
        Append chunks for a submission, returning the number stored.

        Stored indexes continue from the submission's current chunk count,
        so repeated runs keep the sequence 0-based and contiguous.
        """
        ...

    @abstractmethod
    async def list_submission_chunks(self, submission_id: str) -> list[ChunkRecord]:
        """Chunks ordered by index."""
        ...

    @abstractmethod
    async def get_regulation(self, regulation_id: str) -> RegulationRecord | None:
        ...

    @abstractmethod
    async def create_analysis_result(self, submission_id: str, verdict: Verdict) -> str:
        """Persist the verdict row and return its id."""
        ...

    @abstractmethod
    async def add_issues(self, analysis_id: str, issues: list[Issue]) -> int:
        """Bulk insert issues for an analysis result."""
        ...


class RegulationIndex(ABC):
    """Chunked regulation text with nearest-neighbour lookup."""

    @abstractmethod
    async def upsert_chunks(self, regulation_id: str, chunks: list[ChunkRecord]) -> int:
        """Replace every chunk of a regulation with ``chunks``."""
        ...

    @abstractmethod
    async def delete_chunks(self, regulation_id: str) -> int:
        ...

    @abstractmethod
    async def query_nearest(
        self,
        embedding: list[float],
        threshold: float,
        k: int,
    ) -> list[RegulationPassage]:
        """
        Active-regulation chunks with ``1 - cosine_distance >= threshold``.

        Returns:
            At most ``k`` passages by descending similarity
        """
        ...

    @abstractmethod
    async def active_passages(self) -> list[RegulationPassage]:
        """Every chunk of every active regulation, grouped by regulation."""
        ...
