"""
Submission Routes
=================

Upload of submission documents and compliance analysis.

Version: 0.1.0
"""

from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from services.compliance_review.dependencies import get_review_service, to_http_exception
from services.compliance_review.errors import ReviewError
from services.compliance_review.models.domain import SubmissionStatus, Verdict
from services.compliance_review.service import ReviewService
from shared.auth import User, get_current_user
from shared.logging import get_logger
from shared.models.common import CamelModel

logger = get_logger(__name__)

router = APIRouter()

PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}


class SubmissionResponse(CamelModel):
    """A newly registered submission."""

    id: str
    title: str
    file_path: str
    file_size: int | None = None
    status: SubmissionStatus
    created_at: datetime | None = None


class AnalysisResponse(CamelModel):
    """Outcome of a compliance analysis."""

    success: bool = True
    analysis_id: str
    overall_status: Verdict
    issues_found: int


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def upload_submission(
    file: UploadFile = File(...),
    title: str | None = Form(default=None),
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(get_current_user),
) -> SubmissionResponse:
    """
    Upload a submission PDF.

    The file is stored and a ``pending`` submission is created; call
    POST /documents/process next.
    """
    filename = file.filename or "submission.pdf"
    if file.content_type not in PDF_CONTENT_TYPES and not filename.lower().endswith(".pdf"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only PDF documents are accepted",
        )

    data = await file.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )

    submission = await service.create_submission(
        user_id=current_user.id,
        title=title or filename.rsplit(".", 1)[0],
        filename=filename,
        data=data,
        content_type=file.content_type or "application/pdf",
    )
    return SubmissionResponse(
        id=submission.id,
        title=submission.title,
        file_path=submission.file_path,
        file_size=submission.file_size,
        status=submission.status,
        created_at=submission.created_at,
    )


@router.post("/{submission_id}/analyze", response_model=AnalysisResponse)
async def analyze_submission(
    submission_id: str,
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(get_current_user),
) -> AnalysisResponse:
    """
    Analyse a processed submission.

    Runs the rule checks and the model analysis, stores the result and
    marks the submission completed.
    """
    try:
        outcome = await service.analyze_submission(submission_id)
    except ReviewError as e:
        raise to_http_exception(e) from e

    logger.info(
        "analysis_requested",
        submission_id=submission_id,
        user_id=current_user.id,
        overall_status=outcome.overall_status.value,
    )
    return AnalysisResponse(
        analysis_id=outcome.analysis_id,
        overall_status=outcome.overall_status,
        issues_found=outcome.issues_found,
    )
