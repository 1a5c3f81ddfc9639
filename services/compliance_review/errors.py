"""
Compliance Review Errors
========================

Domain exceptions raised by the review service. Routes translate them to
HTTP status codes.

Version: 0.1.0
"""


class ReviewError(Exception):
    """Base class for review pipeline errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DocumentNotFoundError(ReviewError):
    """A submission or regulation row does not exist."""

    def __init__(self, kind: str, document_id: str) -> None:
        super().__init__(f"{kind.capitalize()} not found: {document_id}")
        self.kind = kind
        self.document_id = document_id


class SubmissionNotReadyError(ReviewError):
    """Analysis requested for a submission with no stored chunks."""

    def __init__(self, submission_id: str) -> None:
        super().__init__(
            f"Submission {submission_id} has no processed text; process the document first"
        )
        self.submission_id = submission_id


class ConfigurationError(ReviewError):
    """A required credential or setting is missing."""
