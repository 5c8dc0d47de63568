"""Tests for conversation service configuration."""
import pytest
from unittest.mock import patch

from eunoia.services.conversation_service.config import (
    ConversationConfig,
    DEFAULT_OPENAI_BASE_URL,
)


class TestConversationConfig:

    def test_defaults(self):
        config = ConversationConfig()

        assert config.response_timeout_seconds == 30.0
        assert config.storage_backend == "memory"
        assert config.llm_provider == "rule_based"

    def test_from_env(self):
        env = {
            "RESPONSE_TIMEOUT_SECONDS": "5",
            "STORAGE_BACKEND": "POSTGRES",
            "LLM_PROVIDER": "huggingface",
            "LLM_MODEL": "mistral-7b",
            "LLM_API_KEY": "hf_token",
            "LLM_ENDPOINT": "https://hf.example/models/mistral",
        }
        with patch.dict("os.environ", env, clear=True):
            config = ConversationConfig.from_env()

        assert config.response_timeout_seconds == 5.0
        assert config.storage_backend == "postgres"
        assert config.llm_provider == "huggingface"
        assert config.llm_model == "mistral-7b"
        assert config.llm_endpoint == "https://hf.example/models/mistral"

    def test_openai_defaults_to_gateway_base_url(self):
        with patch.dict("os.environ", {"LLM_PROVIDER": "openai"}, clear=True):
            config = ConversationConfig.from_env()

        assert config.llm_endpoint == DEFAULT_OPENAI_BASE_URL
        assert config.llm_api_key is None

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValueError):
            ConversationConfig(storage_backend="sqlite")

    def test_rejects_unknown_provider(self):
        with pytest.raises(ValueError):
            ConversationConfig(llm_provider="bedrock")

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            ConversationConfig(response_timeout_seconds=0)
