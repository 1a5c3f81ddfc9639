"""
Shared Models
=============

Pydantic response envelopes shared across MedReview routes.
"""

from shared.models.common import CamelModel, ErrorResponse, HealthResponse

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "HealthResponse",
]
