"""Conversation Service configuration."""
import os
from dataclasses import dataclass
from typing import Optional


# Shown when the responder fails or times out. Never shown for crisis turns.
FALLBACK_RESPONSE = (
    "I understand you're reaching out, and I'm here to listen. While I'm having "
    "some technical difficulties with my AI responses right now, I want you to "
    "know that your feelings are valid and important. Please feel free to "
    "continue sharing, and consider reaching out to a human therapist or crisis "
    "hotline if you need immediate support."
)

STORAGE_BACKENDS = ("memory", "postgres")
LLM_PROVIDERS = ("rule_based", "openai", "huggingface")

DEFAULT_OPENAI_BASE_URL = "https://api.aimlapi.com/v1"


@dataclass(frozen=True)
class ConversationConfig:
    """Configuration for sessions and reply generation."""

    # Upper bound on a single responder call
    response_timeout_seconds: float = 30.0

    storage_backend: str = "memory"

    llm_provider: str = "rule_based"
    llm_model: str = "gpt-4o-mini"
    llm_api_key: Optional[str] = None
    llm_endpoint: Optional[str] = None

    def __post_init__(self):
        if self.response_timeout_seconds <= 0:
            raise ValueError("response_timeout_seconds must be positive")
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(f"Unknown storage backend: {self.storage_backend}")
        if self.llm_provider not in LLM_PROVIDERS:
            raise ValueError(f"Unknown LLM provider: {self.llm_provider}")

    @classmethod
    def from_env(cls) -> "ConversationConfig":
        """Create config from environment variables.

        Environment variables:
            RESPONSE_TIMEOUT_SECONDS: Responder time limit (default 30)
            STORAGE_BACKEND: memory or postgres (default memory)
            LLM_PROVIDER: rule_based, openai or huggingface (default rule_based)
            LLM_MODEL: Model name for LLM providers
            LLM_API_KEY: API key for LLM providers
            LLM_ENDPOINT: Base URL (openai) or inference endpoint (huggingface)
        """
        provider = os.getenv("LLM_PROVIDER", "rule_based").lower()
        endpoint = os.getenv("LLM_ENDPOINT") or None
        if provider == "openai" and endpoint is None:
            endpoint = DEFAULT_OPENAI_BASE_URL

        return cls(
            response_timeout_seconds=float(os.getenv("RESPONSE_TIMEOUT_SECONDS", "30")),
            storage_backend=os.getenv("STORAGE_BACKEND", "memory").lower(),
            llm_provider=provider,
            llm_model=os.getenv("LLM_MODEL", "gpt-4o-mini"),
            llm_api_key=os.getenv("LLM_API_KEY") or None,
            llm_endpoint=endpoint,
        )
