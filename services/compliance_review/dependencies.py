"""
Compliance Review Dependencies
==============================

FastAPI dependencies wiring the review service to PostgreSQL, blob
storage and the configured model providers.

Version: 0.1.0
"""

from functools import lru_cache

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.compliance_review.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    ReviewError,
    SubmissionNotReadyError,
)
from services.compliance_review.pipeline.embeddings import EmbeddingService, get_embedding_service
from services.compliance_review.repository import PgVectorRegulationIndex, SqlReviewRepository
from services.compliance_review.service import ReviewService
from shared.database.postgres import get_postgres_session
from shared.llm import get_optional_llm_provider
from shared.storage import get_blob_store


@lru_cache
def embedding_service() -> EmbeddingService | None:
    """Process-wide embedding service; its LRU cache is bounded by ``EMBEDDING_CACHE_SIZE``."""
    return get_embedding_service()


async def close_embedding_service() -> None:
    """Close the shared embedding service if one was built."""
    if embedding_service.cache_info().currsize:
        service = embedding_service()
        if service is not None:
            await service.close()
    embedding_service.cache_clear()


async def get_review_service(
    session: AsyncSession = Depends(get_postgres_session),
) -> ReviewService:
    """Build a review service bound to the request's database session."""
    return ReviewService(
        repository=SqlReviewRepository(session),
        index=PgVectorRegulationIndex(session),
        blob_store=get_blob_store(),
        llm=get_optional_llm_provider(),
        embeddings=embedding_service(),
    )


_STATUS_CODES: dict[type[ReviewError], int] = {
    DocumentNotFoundError: status.HTTP_404_NOT_FOUND,
    SubmissionNotReadyError: status.HTTP_409_CONFLICT,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_exception(error: ReviewError) -> HTTPException:
    """Translate a domain error into the matching HTTP error."""
    code = _STATUS_CODES.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=error.message)
