"""Configuration for conversation context selection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, model_validator

if TYPE_CHECKING:
    from src.config import Settings


class ConversationContextConfig(BaseModel):
    """Knobs for the context selector.

    Invalid combinations are rejected when the config is built, so the
    selector never has to guess what a contradictory setup means.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    relevance_threshold: float = Field(
        default=0.70,
        ge=0.0,
        le=1.0,
        description="Minimum cosine similarity for an older turn to be included",
    )
    max_context_turns: int = Field(
        default=10,
        ge=1,
        description="Hard cap on the number of turns returned",
    )
    min_recent_turns: int = Field(
        default=1,
        ge=0,
        description="Most recent turns that are always included",
    )
    enable_semantic_filtering: bool = Field(
        default=True,
        description="When false, select the last max_context_turns turns by time only",
    )
    enable_query_deduplication: bool = Field(
        default=True,
        description="Collapse repeated user questions, keeping the latest",
    )
    query_duplication_threshold: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Cosine similarity at which two user questions count as duplicates",
    )
    pronoun_min_recent_turns: int = Field(
        default=0,
        ge=0,
        description=(
            "Recent turns to keep when the query refers back to earlier context "
            "('that item', 'it', ...). 0 disables the boost."
        ),
    )

    @model_validator(mode="after")
    def _check_consistency(self) -> ConversationContextConfig:
        if self.min_recent_turns > self.max_context_turns:
            msg = (
                f"min_recent_turns ({self.min_recent_turns}) must not exceed "
                f"max_context_turns ({self.max_context_turns})"
            )
            raise ValueError(msg)
        if self.query_duplication_threshold < self.relevance_threshold:
            msg = (
                f"query_duplication_threshold ({self.query_duplication_threshold}) must be "
                f"at least relevance_threshold ({self.relevance_threshold})"
            )
            raise ValueError(msg)
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> ConversationContextConfig:
        """Build the selector config from application settings."""
        return cls(
            relevance_threshold=settings.context_relevance_threshold,
            max_context_turns=settings.context_max_turns,
            min_recent_turns=settings.context_min_recent_turns,
            enable_semantic_filtering=settings.context_semantic_filtering_enabled,
            enable_query_deduplication=settings.context_query_dedup_enabled,
            query_duplication_threshold=settings.context_query_dedup_threshold,
            pronoun_min_recent_turns=settings.context_pronoun_min_recent_turns,
        )
