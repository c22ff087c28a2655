"""Application settings loaded from environment variables."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Hermes configuration. All values come from environment variables."""

    # OpenAI (used when no Azure endpoint is configured)
    openai_api_key: str = Field(default="")

    # Azure OpenAI
    azure_openai_endpoint: str = Field(default="")
    azure_openai_api_key: str = Field(default="")
    azure_openai_api_version: str = Field(default="2024-10-21")

    # Embeddings
    embedding_model: str = Field(default="text-embedding-3-small")
    embedding_timeout_seconds: float = Field(default=10.0)
    embedding_max_retries: int = Field(default=2)

    # Conversation context selection
    context_relevance_threshold: float = Field(default=0.70)
    context_max_turns: int = Field(default=10)
    context_min_recent_turns: int = Field(default=1)
    context_semantic_filtering_enabled: bool = Field(default=True)
    context_query_dedup_enabled: bool = Field(default=True)
    context_query_dedup_threshold: float = Field(default=0.95)
    context_pronoun_min_recent_turns: int = Field(default=0)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def uses_azure(self) -> bool:
        """True when embeddings should go through an Azure OpenAI deployment."""
        return bool(self.azure_openai_endpoint.strip())


settings = Settings()
