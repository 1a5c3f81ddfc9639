"""
MedReview Services
==================

Services:
- compliance_review: Submission processing and compliance analysis
"""

__all__ = [
    "compliance_review",
]
