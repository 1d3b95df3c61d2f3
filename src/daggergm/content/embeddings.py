"""Text embedding providers for the Content Store.

The OpenAI provider embeds query text at retrieval time and content
``searchable_text`` at seeding time. Both paths must use the same model
so that similarities are comparable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, RateLimitError

from daggergm.core.config import AIProviderSettings, get_settings
from daggergm.core.exceptions import EmbeddingError
from daggergm.core.logging import get_logger
from daggergm.core.retry import transient_retry

logger = get_logger(__name__)

MAX_EMBEDDING_TEXT_CHARS = 30000


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    model: str
    dimension: int

    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts, preserving order."""

    async def embed_text(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            EmbeddingError: If the text is empty or embedding fails.
        """
        if not text.strip():
            raise EmbeddingError("Cannot embed empty text", model_name=self.model)
        vectors = await self.embed_texts([text])
        return vectors[0]

    def _check_dimensions(self, vectors: list[list[float]], expected: int) -> None:
        if len(vectors) != expected:
            raise EmbeddingError(
                f"Expected {expected} embeddings, got {len(vectors)}",
                model_name=self.model,
            )
        for vector in vectors:
            if len(vector) != self.dimension:
                raise EmbeddingError(
                    f"Embedding has dimension {len(vector)}, expected {self.dimension}",
                    model_name=self.model,
                )


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embedding provider backed by the OpenAI embeddings API.

    Example:
        >>> provider = OpenAIEmbeddingProvider()
        >>> vector = await provider.embed_text("a blight-twisted treant")
    """

    def __init__(
        self,
        *,
        model: str | None = None,
        dimension: int | None = None,
        client: Any | None = None,
        ai_settings: AIProviderSettings | None = None,
    ) -> None:
        """Initialize the embedding provider.

        Args:
            model: Embedding model name (defaults from settings).
            dimension: Expected vector length (defaults from settings).
            client: Pre-built AsyncOpenAI-compatible client.
            ai_settings: Provider settings (defaults from settings).
        """
        settings = get_settings()
        self.model = model or settings.retrieval.embedding_model
        self.dimension = dimension or settings.retrieval.embedding_dimension
        self._ai_settings = ai_settings or settings.ai
        self._client = client

        logger.info("EmbeddingProvider initialized", model=self.model, dimension=self.dimension)

    def _get_client(self) -> Any:
        """Get or create the OpenAI client."""
        if self._client is None:
            api_key = self._ai_settings.openai_api_key
            self._client = AsyncOpenAI(
                api_key=api_key.get_secret_value() if api_key else None,
                base_url=self._ai_settings.base_url,
                timeout=self._ai_settings.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts.

        Args:
            texts: Texts to embed.

        Returns:
            One embedding vector per input text.

        Raises:
            EmbeddingError: If embedding generation fails.
        """
        if not texts:
            return []

        clean_texts = [text.strip()[:MAX_EMBEDDING_TEXT_CHARS] for text in texts]
        if any(not text for text in clean_texts):
            raise EmbeddingError("Cannot embed empty text", model_name=self.model)

        client = self._get_client()

        @transient_retry(self._ai_settings)
        async def _call() -> Any:
            return await client.embeddings.create(model=self.model, input=clean_texts)

        try:
            response = await _call()
        except RateLimitError as exc:
            raise EmbeddingError(
                f"Embedding rate limit exceeded: {exc}",
                model_name=self.model,
            ) from exc
        except APIConnectionError as exc:
            raise EmbeddingError(
                f"Failed to connect for embeddings: {exc}",
                model_name=self.model,
            ) from exc
        except APIStatusError as exc:
            raise EmbeddingError(
                f"Embedding API error: {exc}",
                model_name=self.model,
                details={"status_code": exc.status_code},
            ) from exc

        ordered = sorted(response.data, key=lambda item: item.index)
        vectors = [list(item.embedding) for item in ordered]
        self._check_dimensions(vectors, len(clean_texts))

        logger.debug("Generated embeddings", count=len(vectors), model=self.model)
        return vectors


__all__ = [
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
]
