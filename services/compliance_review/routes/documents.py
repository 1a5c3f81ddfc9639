"""
Document Processing Routes
==========================

Text extraction and chunking of uploaded documents.

Version: 0.1.0
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from services.compliance_review.dependencies import get_review_service, to_http_exception
from services.compliance_review.errors import ReviewError
from services.compliance_review.service import ReviewService
from shared.auth import User, get_current_user
from shared.logging import get_logger
from shared.models.common import CamelModel

logger = get_logger(__name__)

router = APIRouter()


class ProcessDocumentRequest(CamelModel):
    """Document to process."""

    submission_id: str | None = None
    file_path: str
    is_regulation: bool = False
    regulation_id: str | None = None


class ProcessDocumentResponse(CamelModel):
    """Processing outcome."""

    success: bool
    chunks_processed: int
    has_text_content: bool
    reason: str | None = None
    message: str | None = None


@router.post(
    "/process",
    response_model=ProcessDocumentResponse,
    responses={400: {"model": ProcessDocumentResponse}},
)
async def process_document(
    request: ProcessDocumentRequest,
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(get_current_user),
) -> ProcessDocumentResponse | JSONResponse:
    """
    Extract text from an uploaded document and store its chunks.

    Returns 400 with ``hasTextContent: false`` and a reason when no text
    could be recovered; the submission is then marked failed.
    """
    if request.is_regulation and not request.regulation_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="regulationId required when isRegulation is true",
        )
    if not request.is_regulation and not request.submission_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="submissionId required",
        )

    try:
        result = await service.process_document(
            submission_id=request.submission_id,
            file_path=request.file_path,
            is_regulation=request.is_regulation,
            regulation_id=request.regulation_id,
        )
    except ReviewError as e:
        raise to_http_exception(e) from e

    response = ProcessDocumentResponse(
        success=result.success,
        chunks_processed=result.chunks_processed,
        has_text_content=result.has_text_content,
        reason=result.reason,
        message=result.message,
    )
    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=response.model_dump(by_alias=True),
        )
    return response
