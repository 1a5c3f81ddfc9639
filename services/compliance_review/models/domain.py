"""
Review Domain Records
=====================

Plain records exchanged between the pipeline and its repositories.

Version: 0.1.0
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class SubmissionStatus(str, Enum):
    """Submission lifecycle, mutated only by the pipeline."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RegulationStatus(str, Enum):
    """Regulation lifecycle."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    DRAFT = "draft"


class Verdict(str, Enum):
    """Overall compliance verdict."""

    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    NEEDS_REVIEW = "needs_review"


@dataclass
class SubmissionRecord:
    """An uploaded submission."""

    id: str
    user_id: str
    title: str
    file_path: str
    status: SubmissionStatus = SubmissionStatus.PENDING
    file_size: int | None = None
    status_reason: str | None = None
    created_at: datetime | None = None


@dataclass
class RegulationRecord:
    """A regulation document and its metadata."""

    id: str
    title: str
    file_path: str
    status: RegulationStatus = RegulationStatus.ACTIVE
    category: str | None = None
    version: str | None = None
    effective_date: date | None = None
    description: str | None = None

    def header(self) -> str:
        """Metadata line used to label regulation text in prompts."""
        effective = self.effective_date.isoformat() if self.effective_date else "n/a"
        return (
            f"[Regulation {self.id}] {self.title} | category: {self.category or 'n/a'}"
            f" | version: {self.version or 'n/a'} | effective: {effective}"
            f" | status: {self.status.value}"
        )


@dataclass
class ChunkRecord:
    """A stored chunk with its optional embedding."""

    index: int
    content: str
    embedding: list[float] | None = field(default=None, repr=False)


@dataclass
class RegulationPassage:
    """A regulation chunk returned by the index."""

    regulation: RegulationRecord
    chunk_index: int
    content: str
    similarity: float | None = None
