"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.context.embeddings import EmbeddingClient
from src.context.models import ConversationMessage, Succeeded

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _make_message(
    content: str,
    *,
    role: str = "user",
    minutes_ago: float = 0,
    embedding: list[float] | None = None,
    failed: bool = False,
) -> ConversationMessage:
    msg = ConversationMessage(
        role=role,
        content=content,
        timestamp=NOW - timedelta(minutes=minutes_ago),
    )
    if embedding is not None:
        msg.embedding_state = Succeeded(tuple(embedding))
    elif failed:
        msg.mark_failed()
    return msg


@pytest.fixture
def make_message():
    """Factory for messages stamped ``minutes_ago`` before a fixed NOW.

    ``embedding=[...]`` marks the message embedded, ``failed=True`` marks a
    failed attempt, otherwise it has not been embedded yet.
    """
    return _make_message


@pytest.fixture
def embedding_client() -> AsyncMock:
    """An EmbeddingClient whose embed/embed_batch are AsyncMocks."""
    return AsyncMock(spec=EmbeddingClient)
