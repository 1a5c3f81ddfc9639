"""
Embeddings Module
=================

Vector embeddings for regulation similarity search.

Features:
- OpenAI (or compatible) and Ollama embedding providers over httpx
- Fixed dimensionality matching the ``vector(768)`` columns
- Per-chunk concurrent embedding with partial-failure tolerance
- Bounded LRU cache keyed by text hash

Version: 0.1.0
"""

import hashlib
from abc import ABC, abstractmethod
from collections import OrderedDict

import httpx
import numpy as np

from services.compliance_review.pipeline.concurrency import gather_bounded
from shared.config import EmbeddingProvider, settings
from shared.logging import get_logger


logger = get_logger(__name__)


class BaseEmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    @property
    @abstractmethod
    def provider_name(self) -> EmbeddingProvider:
        """Provider identifier."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Embedding dimensions."""
        ...

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector
        """
        ...

    async def close(self) -> None:
        """Release network resources."""


class OpenAIEmbeddings(BaseEmbeddingProvider):
    """
    OpenAI embeddings provider.

    ``text-embedding-3-*`` models are truncated server-side to the
    configured dimensionality.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        dimensions: int | None = None,
        base_url: str | None = None,
    ) -> None:
        """
        Initialize OpenAI embeddings.

        Args:
            api_key: OpenAI API key
            model: Model to use
            dimensions: Output vector size
            base_url: API root
        """
        self._api_key = api_key or settings.llm.openai.api_key.get_secret_value()
        self._model = model or settings.embeddings.model
        self._dimensions = dimensions or settings.embeddings.dimensions
        self._base_url = base_url or settings.llm.openai.base_url or "https://api.openai.com/v1"
        self._client: httpx.AsyncClient | None = None

        if not self._api_key:
            raise ValueError("OpenAI API key required for embeddings")

    @property
    def provider_name(self) -> EmbeddingProvider:
        return EmbeddingProvider.OPENAI

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=60.0,
            )
        return self._client

    async def embed(self, text: str) -> list[float]:
        response = await self._get_client().post(
            "/embeddings",
            json={
                "model": self._model,
                # 8191-token input limit
                "input": text[:30000],
                "dimensions": self._dimensions,
            },
        )
        response.raise_for_status()
        return response.json()["data"][0]["embedding"]

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


class OllamaEmbeddings(BaseEmbeddingProvider):
    """
    Local embeddings served by Ollama (``nomic-embed-text`` is 768-d).
    """

    def __init__(
        self,
        host: str | None = None,
        model: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        self._host = (host or settings.embeddings.ollama_host).rstrip("/")
        self._model = model or settings.embeddings.ollama_model
        self._dimensions = dimensions or settings.embeddings.dimensions
        self._client: httpx.AsyncClient | None = None

    @property
    def provider_name(self) -> EmbeddingProvider:
        return EmbeddingProvider.OLLAMA

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._host, timeout=120.0)
        return self._client

    async def embed(self, text: str) -> list[float]:
        response = await self._get_client().post(
            "/api/embeddings",
            json={"model": self._model, "prompt": text},
        )
        response.raise_for_status()
        return response.json()["embedding"]

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


def cosine_similarity(a: list[float] | np.ndarray, b: list[float] | np.ndarray) -> float:
    """
    Cosine similarity of two vectors (0.0 when either is all zeros).

    Returns:
        Similarity between -1 and 1
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.dot(va, vb) / norm)


class EmbeddingService:
    """
    High-level embedding service.

    Handles:
    - Dimension validation
    - Bounded LRU caching
    - Concurrent per-chunk embedding
    """

    def __init__(
        self,
        provider: BaseEmbeddingProvider,
        cache_size: int | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        """
        Initialize embedding service.

        Args:
            provider: Embedding provider
            cache_size: Vectors kept in the cache, 0 disables (default from settings)
            max_concurrency: Concurrent embedding calls (default from settings)
        """
        self.provider = provider
        self.cache_size = settings.embeddings.cache_size if cache_size is None else cache_size
        self.max_concurrency = max_concurrency or settings.pipeline.max_concurrency
        self._cache: OrderedDict[str, list[float]] = OrderedDict()

    @property
    def dimensions(self) -> int:
        return self.provider.dimensions

    @property
    def cached(self) -> int:
        """Number of cached vectors."""
        return len(self._cache)

    async def embed_text(self, text: str) -> list[float]:
        """
        Generate embedding for text.

        Raises:
            ValueError: If the provider returns the wrong dimensionality
        """
        text_hash = hashlib.md5(text.encode()).hexdigest()

        if text_hash in self._cache:
            self._cache.move_to_end(text_hash)
            return self._cache[text_hash]

        embedding = await self.provider.embed(text)
        if len(embedding) != self.provider.dimensions:
            raise ValueError(
                f"Expected {self.provider.dimensions}-d embedding, got {len(embedding)}"
            )

        if self.cache_size > 0:
            self._cache[text_hash] = embedding
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
        return embedding

    async def embed_chunks(self, texts: list[str]) -> list[list[float] | None]:
        """
        Embed each chunk with one independent call.

        Returns:
            Vectors in input order, None where a call failed
        """
        outcomes = await gather_bounded(
            texts,
            self.embed_text,
            self.max_concurrency,
            operation="embed_chunk",
        )
        vectors = [o.value if o.ok else None for o in outcomes]

        logger.info(
            "chunks_embedded",
            model=self.provider.model_name,
            total=len(texts),
            failed=sum(1 for v in vectors if v is None),
        )
        return vectors

    def clear_cache(self) -> None:
        """Clear the embedding cache."""
        self._cache.clear()

    async def close(self) -> None:
        """Drop cached vectors and release the provider's client."""
        self.clear_cache()
        await self.provider.close()


def get_embedding_service() -> EmbeddingService | None:
    """
    Build the configured embedding service.

    Returns:
        EmbeddingService, or None when embeddings are disabled or
        the provider has no credential
    """
    provider_type = settings.embeddings.provider

    if provider_type == EmbeddingProvider.NONE:
        return None

    if provider_type == EmbeddingProvider.OPENAI:
        if not settings.llm.openai.api_key.get_secret_value():
            logger.warning("embeddings_unconfigured", provider=provider_type.value)
            return None
        return EmbeddingService(OpenAIEmbeddings())

    return EmbeddingService(OllamaEmbeddings())
