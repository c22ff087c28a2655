"""Turn stored conversation history into LLM-ready context messages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.context.models import USER, parse_history

if TYPE_CHECKING:
    from src.context.models import ConversationMessage
    from src.context.selector import ContextSelector

logger = logging.getLogger(__name__)


def to_api_messages(messages: list[ConversationMessage]) -> list[dict[str, str]]:
    """Format messages for an LLM messages array.

    Stored history only holds user and assistant turns. A message built in
    code with any other role is replayed as an assistant turn.
    """
    return [
        {"role": USER if m.role == USER else "assistant", "content": m.content or ""}
        for m in messages
    ]


async def build_context_window(
    selector: ContextSelector,
    query: str,
    history_json: str | None,
) -> list[dict[str, str]]:
    """Parse stored history, select relevant turns and format them.

    Raises ``HistoryFormatError`` if the stored history is malformed.
    """
    history = parse_history(history_json)
    if not history:
        return []

    selected = await selector.select(query, history)
    logger.debug("Context window: %d of %d stored turns", len(selected), len(history))
    return to_api_messages(selected)
