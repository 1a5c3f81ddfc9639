"""
Compliance Review Repositories
==============================

Relational store and regulation index, in PostgreSQL and in-memory
flavours.
"""

from services.compliance_review.repository.base import RegulationIndex, ReviewRepository
from services.compliance_review.repository.memory import (
    InMemoryRegulationIndex,
    InMemoryReviewRepository,
)
from services.compliance_review.repository.sql import (
    PgVectorRegulationIndex,
    SqlReviewRepository,
)

__all__ = [
    "RegulationIndex",
    "ReviewRepository",
    "InMemoryRegulationIndex",
    "InMemoryReviewRepository",
    "PgVectorRegulationIndex",
    "SqlReviewRepository",
]
