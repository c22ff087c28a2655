"""Embedding client and history backfill.

The selector only needs two operations from an embedding provider:
``embed`` for the current query and ``embed_batch`` for history messages
that have never been embedded. ``OpenAIEmbeddingClient`` implements both on
top of the OpenAI SDK (plain OpenAI or an Azure OpenAI deployment).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import httpx

from src.config import settings

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping, Sequence

    from openai import AsyncOpenAI

    from src.context.models import ConversationMessage

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """The embedding provider was given bad input or returned a bad response."""


class EmbeddingClient(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single text."""

    @abstractmethod
    async def embed_batch(self, texts: Collection[str]) -> Mapping[str, Sequence[float]]:
        """Embed distinct texts in one request.

        Texts missing from the returned mapping count as failed attempts.
        """


class OpenAIEmbeddingClient(EmbeddingClient):
    """Embedding client backed by the OpenAI embeddings API.

    Uses ``AsyncAzureOpenAI`` when ``AZURE_OPENAI_ENDPOINT`` is set, otherwise
    ``AsyncOpenAI``. The SDK client is created on first use. Timeouts and
    retries are enforced by the SDK and surface as ordinary exceptions.
    """

    def __init__(self, model: str | None = None, client: AsyncOpenAI | None = None) -> None:
        self._model = model or settings.embedding_model
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> AsyncOpenAI:
        """Return the SDK client, creating it lazily."""
        if self._client is None:
            timeout = httpx.Timeout(settings.embedding_timeout_seconds)
            if settings.uses_azure:
                from openai import AsyncAzureOpenAI

                self._client = AsyncAzureOpenAI(
                    azure_endpoint=settings.azure_openai_endpoint,
                    api_key=settings.azure_openai_api_key or None,
                    api_version=settings.azure_openai_api_version,
                    timeout=timeout,
                    max_retries=settings.embedding_max_retries,
                )
                logger.info("Embedding client: Azure OpenAI (%s)", self._model)
            else:
                from openai import AsyncOpenAI

                self._client = AsyncOpenAI(
                    api_key=settings.openai_api_key or None,
                    timeout=timeout,
                    max_retries=settings.embedding_max_retries,
                )
                logger.info("Embedding client: OpenAI (%s)", self._model)
        return self._client

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise EmbeddingError("Text cannot be empty")

        client = self._get_client()
        try:
            response = await client.embeddings.create(model=self._model, input=text)
        except Exception:
            logger.exception("Failed to generate embedding for text of length %d", len(text))
            raise

        if not response.data:
            raise EmbeddingError("Embedding response contained no data")
        return list(response.data[0].embedding)

    async def embed_batch(self, texts: Collection[str]) -> dict[str, list[float]]:
        batch = list(dict.fromkeys(texts))
        if not batch:
            return {}

        client = self._get_client()
        try:
            response = await client.embeddings.create(model=self._model, input=batch)
        except Exception:
            logger.exception("Failed to generate batch embeddings for %d texts", len(batch))
            raise

        result: dict[str, list[float]] = {}
        for item in response.data:
            if 0 <= item.index < len(batch):
                result[batch[item.index]] = list(item.embedding)
            else:
                logger.warning("Ignoring embedding with out-of-range index %d", item.index)

        logger.info("Generated %d of %d embeddings in batch", len(result), len(batch))
        return result


async def backfill_embeddings(
    messages: Iterable[ConversationMessage],
    client: EmbeddingClient,
) -> int:
    """Embed every message that has not had an embedding attempt yet.

    Identical contents are sent once. Results are written onto the messages
    in place; content with no returned vector is marked failed and is not
    retried in this call. If the batch request itself fails the messages are
    left untouched so a later turn can try again.

    Returns the number of messages that received a vector.
    """
    pending = [m for m in messages if not m.embedding_generated]
    if not pending:
        return 0

    to_embed = []
    for message in pending:
        if message.content.strip():
            to_embed.append(message)
        else:
            message.mark_failed()

    if not to_embed:
        return 0

    texts = list(dict.fromkeys(m.content for m in to_embed))
    logger.debug("Backfilling embeddings for %d messages (%d distinct texts)", len(to_embed), len(texts))

    try:
        vectors = await client.embed_batch(texts)
    except Exception:
        logger.warning(
            "Batch embedding failed for %d messages, continuing with existing embeddings",
            len(to_embed),
            exc_info=True,
        )
        return 0

    embedded = 0
    for message in to_embed:
        vector = vectors.get(message.content)
        if vector:
            message.mark_embedded(vector)
            embedded += 1
        else:
            message.mark_failed()

    missing = len(to_embed) - embedded
    if missing:
        logger.warning("No embedding returned for %d of %d messages", missing, len(to_embed))
    return embedded
