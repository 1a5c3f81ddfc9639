"""
Compliance Review Routes
========================

API route handlers for the Compliance Review Service.

Routes:
- submissions: upload and analysis
- documents: text extraction and chunking
- regulations: regulation re-indexing (admin)
"""

from services.compliance_review.routes import documents, regulations, submissions


__all__ = ["documents", "regulations", "submissions"]
