"""
Compliance Review Models
========================

Domain records and SQLAlchemy ORM tables.
"""

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
    EMBEDDING_DIMENSIONS,
    AnalysisIssueModel,
    AnalysisResultModel,
    RegulationChunkModel,
    RegulationModel,
    SubmissionChunkModel,
    SubmissionModel,
)

__all__ = [
    # Records
    "ChunkRecord",
    "RegulationPassage",
    "RegulationRecord",
    "RegulationStatus",
    "SubmissionRecord",
    "SubmissionStatus",
    "Verdict",
    # Tables
    "EMBEDDING_DIMENSIONS",
    "AnalysisIssueModel",
    "AnalysisResultModel",
    "RegulationChunkModel",
    "RegulationModel",
    "SubmissionChunkModel",
    "SubmissionModel",
]
