"""Tests for Settings configuration model."""

import pytest

from src.config import Settings


class TestDefaults:
    def test_default_embedding_model(self):
        s = Settings()
        assert s.embedding_model == "text-embedding-3-small"

    def test_default_context_thresholds(self):
        s = Settings()
        assert s.context_relevance_threshold == 0.70
        assert s.context_query_dedup_threshold == 0.95

    def test_default_context_turns(self):
        s = Settings()
        assert s.context_max_turns == 10
        assert s.context_min_recent_turns == 1

    def test_semantic_features_enabled_by_default(self):
        s = Settings()
        assert s.context_semantic_filtering_enabled is True
        assert s.context_query_dedup_enabled is True

    def test_pronoun_boost_disabled_by_default(self):
        s = Settings()
        assert s.context_pronoun_min_recent_turns == 0

    def test_default_log_level(self):
        s = Settings()
        assert s.log_level == "INFO"


class TestUsesAzure:
    def test_false_without_endpoint(self):
        s = Settings(azure_openai_endpoint="")
        assert s.uses_azure is False

    def test_true_with_endpoint(self):
        s = Settings(azure_openai_endpoint="https://example.openai.azure.com/")
        assert s.uses_azure is True

    def test_whitespace_endpoint_is_ignored(self):
        s = Settings(azure_openai_endpoint="   ")
        assert s.uses_azure is False


class TestExtraForbidden:
    def test_unknown_env_var_raises(self):
        with pytest.raises(ValueError, match="extra_forbidden"):
            Settings(**{"nonexistent_field": "value"})
