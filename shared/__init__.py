"""
MedReview Shared Library
========================

Common utilities, configurations, and abstractions shared across MedReview services.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - auth: JWT authentication and role checks
    - database: Async PostgreSQL client
    - llm: LLM provider abstraction (Claude, OpenAI)
    - storage: Blob store for uploaded documents (Supabase, in-memory)
    - models: Shared Pydantic models

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "MedReview Team"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
