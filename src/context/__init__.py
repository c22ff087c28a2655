"""Conversation context selection: which earlier turns to replay to the LLM."""

from src.context.config import ConversationContextConfig
from src.context.embeddings import EmbeddingClient, EmbeddingError, OpenAIEmbeddingClient
from src.context.models import ConversationMessage, HistoryFormatError
from src.context.selector import (
    ContextSelector,
    SemanticContextSelector,
    TimeBasedContextSelector,
    select_context,
)

__all__ = [
    "ContextSelector",
    "ConversationContextConfig",
    "ConversationMessage",
    "EmbeddingClient",
    "EmbeddingError",
    "HistoryFormatError",
    "OpenAIEmbeddingClient",
    "SemanticContextSelector",
    "TimeBasedContextSelector",
    "select_context",
]
