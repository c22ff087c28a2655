"""Conversation message model and its embedding state.

A message's embedding is tracked as one of three explicit states:

- ``NotAttempted``: nothing has tried to embed this message yet.
- ``Failed``: an attempt was made and produced no vector.
- ``Succeeded``: the attempt produced a vector.

The document store still uses the legacy ``embedding`` / ``embeddingGenerated``
pair, so ``from_dict``/``to_dict`` translate between the two shapes.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

USER = "user"
ASSISTANT = "assistant"

_FRACTION_DIGITS = re.compile(r"(\.\d{7,})")


class HistoryFormatError(ValueError):
    """Serialized conversation history could not be parsed."""


# -- Embedding state ---------------------------------------------------------


@dataclass(frozen=True)
class NotAttempted:
    pass


@dataclass(frozen=True)
class Failed:
    pass


@dataclass(frozen=True)
class Succeeded:
    vector: tuple[float, ...]


EmbeddingState = NotAttempted | Failed | Succeeded

NOT_ATTEMPTED = NotAttempted()
FAILED = Failed()


# -- Message -----------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False)
class ConversationMessage:
    """A single conversation turn.

    Messages compare by identity: two turns with the same text are still
    different turns. Selection results are always a subsequence of the
    history list that was passed in.
    """

    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime = field(default_factory=_utcnow)
    embedding_state: EmbeddingState = NOT_ATTEMPTED

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=UTC)

    @property
    def embedding(self) -> tuple[float, ...] | None:
        """The embedding vector, or None when there is none."""
        if isinstance(self.embedding_state, Succeeded):
            return self.embedding_state.vector
        return None

    @property
    def embedding_generated(self) -> bool:
        """True once any embedding attempt has been recorded."""
        return not isinstance(self.embedding_state, NotAttempted)

    def mark_embedded(self, vector: list[float] | tuple[float, ...]) -> None:
        self.embedding_state = Succeeded(tuple(float(v) for v in vector))

    def mark_failed(self) -> None:
        self.embedding_state = FAILED

    def preview(self, length: int = 50) -> str:
        """Short form of the content for log lines."""
        return self.content[:length]

    # -- Serialization -------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationMessage:
        """Build a message from the document-store JSON shape.

        Accepts camelCase and PascalCase keys. A stored vector always wins
        over the generated flag.
        """
        if not isinstance(data, dict):
            msg = f"Expected a message object, got {type(data).__name__}"
            raise HistoryFormatError(msg)

        role = _lookup(data, "role", "Role")
        content = _lookup(data, "content", "Content")
        if not isinstance(role, str) or not role:
            raise HistoryFormatError("Message is missing a role")
        if role not in (USER, ASSISTANT):
            msg = f"Unsupported message role: {role!r}"
            raise HistoryFormatError(msg)
        if content is None:
            content = ""

        raw_ts = _lookup(data, "timestamp", "Timestamp")
        timestamp = _parse_timestamp(raw_ts) if raw_ts is not None else _utcnow()

        vector = _parse_vector(_lookup(data, "embedding", "Embedding"))
        generated = _lookup(data, "embeddingGenerated", "EmbeddingGenerated")
        if generated is not None and not isinstance(generated, bool):
            msg = f"embeddingGenerated must be a boolean, got {generated!r}"
            raise HistoryFormatError(msg)

        state: EmbeddingState
        if vector:
            state = Succeeded(vector)
        elif generated:
            state = FAILED
        else:
            state = NOT_ATTEMPTED

        return cls(role=role, content=str(content), timestamp=timestamp, embedding_state=state)

    def to_dict(self) -> dict[str, Any]:
        """Serialize into the document-store JSON shape."""
        vector = self.embedding
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "embedding": list(vector) if vector is not None else None,
            "embeddingGenerated": self.embedding_generated,
        }


def _lookup(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str):
        msg = f"Invalid timestamp: {raw!r}"
        raise HistoryFormatError(msg)
    # .NET writes 7 fractional digits; datetime wants at most 6.
    normalized = _FRACTION_DIGITS.sub(lambda m: m.group(1)[:7], raw.strip())
    try:
        return datetime.fromisoformat(normalized)
    except ValueError as exc:
        msg = f"Invalid timestamp: {raw!r}"
        raise HistoryFormatError(msg) from exc


def _parse_vector(raw: Any) -> tuple[float, ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, list) or not all(
        isinstance(v, int | float) and not isinstance(v, bool) for v in raw
    ):
        msg = f"Embedding must be a list of numbers, got {raw!r:.80}"
        raise HistoryFormatError(msg)
    return tuple(float(v) for v in raw)


def parse_history(raw: str | None) -> list[ConversationMessage]:
    """Parse a serialized history list. None or blank input yields []."""
    if raw is None or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"History is not valid JSON: {exc.msg}"
        raise HistoryFormatError(msg) from exc
    if not isinstance(data, list):
        msg = f"History must be a JSON list, got {type(data).__name__}"
        raise HistoryFormatError(msg)
    messages = [ConversationMessage.from_dict(item) for item in data]
    logger.debug("Parsed %d history messages", len(messages))
    return messages


def dump_history(messages: list[ConversationMessage]) -> str:
    """Serialize messages back into the document-store JSON list."""
    return json.dumps([m.to_dict() for m in messages])
