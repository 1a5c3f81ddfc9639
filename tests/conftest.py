"""
Test Configuration
==================

Pytest fixtures for MedReview tests.
"""

import os
import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import date
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before settings are first loaded
os.environ["ENVIRONMENT"] = "testing"
os.environ["EMBEDDING_PROVIDER"] = "none"
os.environ["PIPELINE_EXTRACTION_FAILURE_POLICY"] = "abort"
os.environ["PIPELINE_ANALYSIS_MODE"] = "auto"

from services.compliance_review.models.domain import RegulationRecord, RegulationStatus
from services.compliance_review.repository import InMemoryRegulationIndex, InMemoryReviewRepository
from services.compliance_review.service import ReviewService
from shared.llm.provider import LLMMessage, LLMProvider, LLMResponse
from shared.storage import InMemoryBlobStore


class ScriptedLLMProvider(LLMProvider):
    """
    LLM provider returning scripted responses.

    ``script`` is either a list of responses consumed in order (an
    Exception instance is raised instead of returned) or a callable taking
    the user prompt.
    """

    def __init__(self, script: list[Any] | Callable[[str], str] | None = None) -> None:
        self.script = script if script is not None else []
        self.calls: list[list[LLMMessage]] = []

    @property
    def name(self) -> str:
        return "scripted"

    @property
    def model(self) -> str:
        return "scripted-model"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        self.calls.append(messages)
        prompt = messages[-1].content

        if callable(self.script):
            reply = self.script(prompt)
        elif self.script:
            reply = self.script.pop(0)
        else:
            reply = "[]"

        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(content=reply, model=self.model, provider=self.name)

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "provider": self.name}

    @property
    def prompts(self) -> list[str]:
        return [messages[-1].content for messages in self.calls]


class StaticEmbeddingProvider:
    """Embedding service stand-in mapping known texts to fixed vectors."""

    def __init__(self, vectors: dict[str, list[float]], default: list[float] | None = None) -> None:
        self.vectors = vectors
        self.default = default
        self.embedded: list[str] = []

    async def embed_text(self, text: str) -> list[float]:
        self.embedded.append(text)
        if text in self.vectors:
            return self.vectors[text]
        if self.default is None:
            raise ValueError(f"No vector for text: {text[:30]}")
        return self.default

    async def embed_chunks(self, texts: list[str]) -> list[list[float] | None]:
        vectors: list[list[float] | None] = []
        for text in texts:
            try:
                vectors.append(await self.embed_text(text))
            except ValueError:
                vectors.append(None)
        return vectors


def make_regulation(
    title: str = "Medical Device Labeling Standard",
    status: RegulationStatus = RegulationStatus.ACTIVE,
    regulation_id: str | None = None,
) -> RegulationRecord:
    """Build a regulation record with realistic metadata."""
    return RegulationRecord(
        id=regulation_id or str(uuid.uuid4()),
        title=title,
        file_path=f"admin/{title.lower().replace(' ', '_')}.pdf",
        status=status,
        category="Labeling",
        version="2024.1",
        effective_date=date(2024, 1, 1),
    )


@pytest.fixture
def sample_submission_text() -> str:
    """Submission text that passes every rule check."""
    return (
        "Device description: single-use sterile catheter. "
        "Raw materials: polyurethane tubing 60%, stainless steel 304 guide 40%, "
        "conforming to ISO 10993-1. Skin-contact and blood-contact device, "
        "contact duration under 24 hours. "
        "Instructions for use: open the pouch, inspect the catheter, insert. "
        "Single use only, do not reuse. Storage: keep dry."
    )


@pytest.fixture
def repository() -> InMemoryReviewRepository:
    return InMemoryReviewRepository()


@pytest.fixture
def index(repository: InMemoryReviewRepository) -> InMemoryRegulationIndex:
    return InMemoryRegulationIndex(repository)


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def fake_llm() -> ScriptedLLMProvider:
    return ScriptedLLMProvider()


@pytest.fixture
def review_service(
    repository: InMemoryReviewRepository,
    index: InMemoryRegulationIndex,
    blob_store: InMemoryBlobStore,
    fake_llm: ScriptedLLMProvider,
) -> ReviewService:
    """Review service on in-memory adapters and a scripted model."""
    return ReviewService(
        repository=repository,
        index=index,
        blob_store=blob_store,
        llm=fake_llm,
    )


@pytest_asyncio.fixture
async def compliance_review_client(
    review_service: ReviewService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Compliance Review Service."""
    from services.compliance_review.dependencies import get_review_service
    from services.compliance_review.main import app

    app.dependency_overrides[get_review_service] = lambda: review_service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def test_user_id() -> str:
    return "5f0c4a52-8a8e-4d4b-9d4e-3f2a1b7c9e10"


@pytest.fixture
def auth_headers(test_user_id: str) -> dict[str, str]:
    """Generate test authentication headers for a regular user."""
    from shared.auth import create_access_token

    token = create_access_token({
        "sub": test_user_id,
        "email": "reviewer@medreview.test",
        "roles": ["user"],
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Generate test authentication headers for an administrator."""
    from shared.auth import create_access_token

    token = create_access_token({
        "sub": "0a7d2c1e-6b3f-4e8a-9c5d-2f1e0b9a8c7d",
        "email": "admin@medreview.test",
        "roles": ["admin"],
    })
    return {"Authorization": f"Bearer {token}"}
