"""
Review Database Models
======================

SQLAlchemy ORM models for submissions, regulations, chunks and
analysis results. Chunk embeddings use pgvector.

Version: 0.1.0
"""

import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID

from shared.database.postgres import Base


EMBEDDING_DIMENSIONS = 768


class RegulationModel(Base):
    """Regulation documents uploaded by administrators."""

    __tablename__ = "regulations"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'archived', 'draft')", name="check_regulation_status"
        ),
        Index("ix_regulations_status", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False)
    description = Column(Text)
    category = Column(Text)
    file_path = Column(Text, nullable=False)
    file_size = Column(Integer)
    version = Column(Text)
    effective_date = Column(Date)
    status = Column(String(20), nullable=False, default="active")
    uploaded_by = Column(UUID(as_uuid=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class SubmissionModel(Base):
    """User submissions under review."""

    __tablename__ = "submissions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="check_submission_status",
        ),
        Index("ix_submissions_user", "user_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    title = Column(Text, nullable=False)
    file_path = Column(Text, nullable=False)
    file_size = Column(Integer)
    status = Column(String(20), nullable=False, default="pending")
    status_reason = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class RegulationChunkModel(Base):
    """Chunked regulation text, replaced wholesale on reprocessing."""

    __tablename__ = "regulation_chunks"
    __table_args__ = (
        UniqueConstraint("regulation_id", "chunk_index", name="uq_regulation_chunk"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    regulation_id = Column(
        UUID(as_uuid=True),
        ForeignKey("regulations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    embedding = Column(Vector(EMBEDDING_DIMENSIONS))

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SubmissionChunkModel(Base):
    """Chunked submission text, append-only per submission."""

    __tablename__ = "submission_chunks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(
        UUID(as_uuid=True),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    embedding = Column(Vector(EMBEDDING_DIMENSIONS))

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AnalysisResultModel(Base):
    """One verdict per analysed submission."""

    __tablename__ = "analysis_results"
    __table_args__ = (
        CheckConstraint(
            "overall_status IN ('compliant', 'non_compliant', 'needs_review')",
            name="check_overall_status",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(
        UUID(as_uuid=True),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    overall_status = Column(String(20), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AnalysisIssueModel(Base):
    """Individual findings of an analysis."""

    __tablename__ = "analysis_issues"
    __table_args__ = (
        CheckConstraint("severity IN ('error', 'warning', 'info')", name="check_issue_severity"),
        Index("ix_analysis_issues_result", "analysis_result_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    analysis_result_id = Column(
        UUID(as_uuid=True),
        ForeignKey("analysis_results.id", ondelete="CASCADE"),
        nullable=False,
    )

    category = Column(Text, nullable=False)
    severity = Column(String(10), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(Text)
    suggestion = Column(Text)

    regulation = Column(Text)
    regulation_id = Column(UUID(as_uuid=True))
    regulation_title = Column(Text)
    regulation_category = Column(Text)
    regulation_version = Column(Text)
    regulation_effective_date = Column(Text)
    regulation_status = Column(Text)

    submission_highlight = Column(Text)
    regulation_highlight = Column(Text)

    citations = Column(JSONB, nullable=False, default=list)
    notes = Column(Text)
    issue_code = Column(Text)
    source = Column(String(10), nullable=False, default="model")

    has_text_content = Column(Boolean, nullable=False, default=True)
    no_text_reason = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
