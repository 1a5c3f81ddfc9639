"""
Review Pipeline
===============

Stages of the document-to-findings pipeline.

Components:
- extraction: PDF text recovery with vision OCR fallback
- chunking: word and character chunkers
- embeddings: chunk embedding providers
- rules: deterministic rule battery
- analyzer: model-driven compliance analysis
- aggregator: verdict and persistence

The analyzer and aggregator depend on the repositories and are imported
from their modules directly.
"""

from services.compliance_review.pipeline.chunking import Chunk, ChunkingMode, TextChunker
from services.compliance_review.pipeline.embeddings import EmbeddingService, get_embedding_service
from services.compliance_review.pipeline.extraction import ExtractionResult, TextExtractor
from services.compliance_review.pipeline.issues import Citation, Issue, IssueSeverity, IssueSource
from services.compliance_review.pipeline.rules import RuleEngine, RuleFinding, RuleTier

__all__ = [
    # Extraction
    "ExtractionResult",
    "TextExtractor",
    # Chunking
    "Chunk",
    "ChunkingMode",
    "TextChunker",
    # Embeddings
    "EmbeddingService",
    "get_embedding_service",
    # Issues
    "Citation",
    "Issue",
    "IssueSeverity",
    "IssueSource",
    # Rules
    "RuleEngine",
    "RuleFinding",
    "RuleTier",
]
