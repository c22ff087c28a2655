"""Conversation context selectors.

Given the current user query and the stored conversation, a selector
decides which earlier turns go back into the LLM context window.

``SemanticContextSelector`` keeps the most recent turns unconditionally,
adds older turns that are semantically close to the query, caps the total,
and collapses repeated questions. Any embedding failure degrades to plain
recency selection; nothing here raises to the caller except cancellation.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from src.context.config import ConversationContextConfig
from src.context.dedup import collapse_duplicate_queries
from src.context.embeddings import backfill_embeddings
from src.context.selection import (
    fuse,
    recency_window,
    relevance_filter,
    sort_chronologically,
    time_based_fallback,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.context.embeddings import EmbeddingClient
    from src.context.models import ConversationMessage

logger = logging.getLogger(__name__)

# Phrases that point back at something said earlier ("what about that item?").
_CONTEXT_REFERENCE = re.compile(
    r"\b(?:"
    r"that (?:item|feature|epic|work item|one|id)"
    r"|this (?:item|feature)"
    r"|the (?:same|previous|last|above)"
    r"|it|its|them|their|those"
    r")\b",
    re.IGNORECASE,
)


def refers_to_earlier_context(query: str) -> bool:
    """True if the query uses pronouns or demonstratives that need prior turns."""
    return bool(_CONTEXT_REFERENCE.search(query))


class ContextSelector(ABC):
    """Picks the turns of a conversation to replay for the current query."""

    @abstractmethod
    async def select(
        self, query: str, history: Sequence[ConversationMessage]
    ) -> list[ConversationMessage]:
        """Return selected messages in chronological order."""
        ...


class TimeBasedContextSelector(ContextSelector):
    """Returns the most recent ``max_turns`` messages, ignoring the query."""

    def __init__(self, max_turns: int) -> None:
        self._max_turns = max_turns

    async def select(
        self, query: str, history: Sequence[ConversationMessage]
    ) -> list[ConversationMessage]:
        if not history:
            return []
        return time_based_fallback(history, self._max_turns)


class SemanticContextSelector(ContextSelector):
    """Hybrid recency + embedding-relevance selector.

    The selector mutates the embedding state of history messages in place
    (a per-call cache the caller may persist). Do not run two selections
    concurrently over the same history list.
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        config: ConversationContextConfig | None = None,
    ) -> None:
        self._client = embedding_client
        self._config = config or ConversationContextConfig()

    @property
    def config(self) -> ConversationContextConfig:
        return self._config

    def _min_recent_turns(self, query: str) -> int:
        config = self._config
        boost = config.pronoun_min_recent_turns
        if boost > config.min_recent_turns and refers_to_earlier_context(query):
            turns = min(boost, config.max_context_turns)
            logger.debug("Query refers to earlier context, keeping %d recent turns", turns)
            return turns
        return config.min_recent_turns

    async def select(
        self, query: str, history: Sequence[ConversationMessage]
    ) -> list[ConversationMessage]:
        config = self._config

        if not query or not query.strip():
            logger.warning("Current query is empty, returning empty context")
            return []

        if not history:
            logger.debug("No conversation history available")
            return []

        if not config.enable_semantic_filtering:
            logger.info("Semantic filtering disabled, using time-based selection")
            return time_based_fallback(history, config.max_context_turns)

        min_recent_turns = self._min_recent_turns(query)

        try:
            query_embedding = await self._client.embed(query)
        except Exception:
            logger.warning(
                "Failed to generate query embedding, falling back to time-based selection",
                exc_info=True,
            )
            return time_based_fallback(history, config.max_context_turns)

        await backfill_embeddings(history, self._client)

        recent = recency_window(history, min_recent_turns)
        relevant = relevance_filter(history, query_embedding, config.relevance_threshold)
        selected = fuse(recent, relevant, config.max_context_turns)
        fused_count = len(selected)

        if config.enable_query_deduplication:
            selected = collapse_duplicate_queries(
                selected, history, config.query_duplication_threshold
            )

        logger.info(
            "Selected %d messages from %d total (%d recent, %d relevant, %d after deduplication)",
            fused_count,
            len(history),
            len(recent),
            len(relevant),
            len(selected),
        )
        return sort_chronologically(selected)


async def select_context(
    query: str,
    history: Sequence[ConversationMessage],
    config: ConversationContextConfig,
    embedding_client: EmbeddingClient,
) -> list[ConversationMessage]:
    """One-shot form of ``SemanticContextSelector(embedding_client, config).select``."""
    return await SemanticContextSelector(embedding_client, config).select(query, history)
