"""
Regulation Routes
=================

Administrative re-indexing of regulation documents.

Version: 0.1.0
"""

from fastapi import APIRouter, Depends

from services.compliance_review.dependencies import get_review_service, to_http_exception
from services.compliance_review.errors import ReviewError
from services.compliance_review.service import ReviewService
from shared.auth import User, require_admin
from shared.logging import get_logger
from shared.models.common import CamelModel

logger = get_logger(__name__)

router = APIRouter()


class ProcessRegulationResponse(CamelModel):
    """Re-indexing outcome."""

    success: bool
    chunks: int
    has_text_content: bool
    reason: str | None = None


@router.post("/{regulation_id}/process", response_model=ProcessRegulationResponse)
async def process_regulation(
    regulation_id: str,
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(require_admin),
) -> ProcessRegulationResponse:
    """
    Rebuild the chunk index of a regulation from its stored file.

    Requires the admin role.
    """
    logger.info("regulation_reindex_requested", regulation_id=regulation_id, user_id=current_user.id)
    try:
        result = await service.process_regulation(regulation_id)
    except ReviewError as e:
        raise to_http_exception(e) from e

    return ProcessRegulationResponse(
        success=result.success,
        chunks=result.chunks,
        has_text_content=result.has_text_content,
        reason=result.reason,
    )
