"""Recency and relevance tiers and how they are fused under the turn cap."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.context.scoring import cosine_similarity

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from src.context.models import ConversationMessage

logger = logging.getLogger(__name__)


@dataclass
class ScoredMessage:
    """A message paired with its similarity to the current query."""

    message: ConversationMessage
    score: float


def sort_chronologically(messages: Iterable[ConversationMessage]) -> list[ConversationMessage]:
    """Ascending by timestamp. Equal timestamps keep their input order."""
    return sorted(messages, key=lambda m: m.timestamp)


def _unique(messages: Iterable[ConversationMessage]) -> list[ConversationMessage]:
    seen: set[int] = set()
    result = []
    for message in messages:
        if id(message) not in seen:
            seen.add(id(message))
            result.append(message)
    return result


def recent_messages(history: Sequence[ConversationMessage], count: int) -> list[ConversationMessage]:
    """The chronologically last ``count`` messages, oldest first."""
    if count <= 0:
        return []
    return sort_chronologically(history)[-count:]


def recency_window(
    history: Sequence[ConversationMessage], min_recent_turns: int
) -> list[ConversationMessage]:
    """Turns that are kept regardless of relevance."""
    return recent_messages(history, min_recent_turns)


def time_based_fallback(
    history: Sequence[ConversationMessage], max_context_turns: int
) -> list[ConversationMessage]:
    """Recency-only selection used when semantic filtering is off or unavailable."""
    return recent_messages(history, max_context_turns)


def relevance_filter(
    history: Sequence[ConversationMessage],
    query_embedding: Sequence[float],
    threshold: float,
) -> list[ScoredMessage]:
    """Messages whose similarity to the query is at least ``threshold``.

    Messages without an embedding score 0 and only pass a threshold of 0.
    """
    scored = []
    for message in sort_chronologically(history):
        score = cosine_similarity(query_embedding, message.embedding)
        if score >= threshold:
            scored.append(ScoredMessage(message=message, score=score))
    return scored


def fuse(
    recent: Sequence[ConversationMessage],
    relevant: Sequence[ScoredMessage],
    max_context_turns: int,
) -> list[ConversationMessage]:
    """Union of both tiers, capped at ``max_context_turns``, oldest first.

    Recency members are never dropped. When the union is over the cap the
    relevance-only members are ranked by score, then by later timestamp,
    then by later position, and the lowest ranked are dropped first.
    """
    protected = _unique(recent)
    protected_ids = {id(m) for m in protected}

    extras: list[ScoredMessage] = []
    extra_ids: set[int] = set()
    for item in relevant:
        key = id(item.message)
        if key in protected_ids or key in extra_ids:
            continue
        extra_ids.add(key)
        extras.append(item)

    budget = max(0, max_context_turns - len(protected))
    if len(extras) > budget:
        ranked = sorted(
            enumerate(extras),
            key=lambda pair: (pair[1].score, pair[1].message.timestamp, pair[0]),
            reverse=True,
        )
        kept = [item for _, item in ranked[:budget]]
        logger.debug(
            "Turn cap %d reached: dropped %d of %d relevant turns",
            max_context_turns,
            len(extras) - len(kept),
            len(extras),
        )
    else:
        kept = extras

    if len(protected) > max_context_turns:
        logger.warning(
            "Recency window (%d) exceeds max_context_turns (%d); keeping all recent turns",
            len(protected),
            max_context_turns,
        )

    return sort_chronologically([*protected, *(item.message for item in kept)])
