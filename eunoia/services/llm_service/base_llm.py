"""Base LLM interface and implementations.

Provides an abstract base class and clients for the supported providers:
any OpenAI-compatible chat API (OpenAI itself, or a gateway such as the
AI/ML API via `endpoint` as base URL) and HuggingFace inference endpoints.

LLM clients only ever see messages that passed the safety scan.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


MAX_PROMPT_LENGTH = 10000


class LLMProvider(Enum):
    """Supported LLM providers."""
    HUGGINGFACE = "huggingface"
    OPENAI = "openai"


@dataclass
class LLMConfig:
    """Configuration for LLM inference."""
    provider: LLMProvider
    model_name: str
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    max_tokens: int = 512
    temperature: float = 0.7
    top_p: float = 0.9
    timeout_seconds: int = 30


@dataclass
class LLMResponse:
    """Response from LLM inference."""
    text: str
    model: str
    provider: str
    tokens_used: Optional[int] = None
    latency_ms: Optional[float] = None
    metadata: Optional[Dict] = None


class BaseLLM(ABC):
    """Abstract base class for LLM implementations."""

    def __init__(self, config: LLMConfig):
        self.config = config
        logger.info(
            "LLM_INITIALIZED",
            extra={
                "provider": config.provider.value,
                "model": config.model_name
            }
        )

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> LLMResponse:
        """Generate a reply to the latest user turn.

        Args:
            prompt: Latest user message
            system_prompt: Optional system prompt for context
            history: Earlier turns as {"role", "content"} dicts, oldest first

        Returns:
            LLMResponse object

        Raises:
            ValueError: If prompt is invalid
        """
        pass

    def validate_prompt(self, prompt: str) -> bool:
        """Validate prompt before sending to LLM."""
        if not prompt or not prompt.strip():
            logger.warning("LLM_PROMPT_EMPTY")
            return False

        if len(prompt) > MAX_PROMPT_LENGTH:
            logger.warning(
                "LLM_PROMPT_TOO_LONG",
                extra={"length": len(prompt)}
            )
            return False

        return True


class HuggingFaceLLM(BaseLLM):
    """HuggingFace inference endpoint implementation."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)

        if not config.endpoint:
            raise ValueError("HuggingFace endpoint required")

        self.endpoint = config.endpoint
        self.headers = {}

        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"

    @staticmethod
    def format_prompt(
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        """Flatten a chat into a single text-generation input."""
        parts = []
        if system_prompt:
            parts.append(system_prompt)
        for turn in history or []:
            speaker = "Client" if turn["role"] == "user" else "Therapist"
            parts.append(f"{speaker}: {turn['content']}")
        parts.append(f"Client: {prompt}")
        parts.append("Therapist:")
        return "\n\n".join(parts)

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> LLMResponse:
        """Generate response using the HuggingFace Inference API."""
        import aiohttp
        import time

        if not self.validate_prompt(prompt):
            raise ValueError("Invalid prompt")

        payload = {
            "inputs": self.format_prompt(prompt, system_prompt, history),
            "parameters": {
                "max_new_tokens": self.config.max_tokens,
                "temperature": self.config.temperature,
                "top_p": self.config.top_p,
                "return_full_text": False
            }
        }

        start_time = time.time()

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.endpoint,
                    headers=self.headers,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds)
                ) as response:
                    response.raise_for_status()
                    result = await response.json()

            latency_ms = (time.time() - start_time) * 1000

            if isinstance(result, list) and len(result) > 0:
                generated_text = result[0].get("generated_text", "")
            else:
                generated_text = result.get("generated_text", "")

            logger.info(
                "LLM_GENERATION_SUCCEEDED",
                extra={
                    "model": self.config.model_name,
                    "latency_ms": latency_ms
                }
            )

            return LLMResponse(
                text=generated_text.strip(),
                model=self.config.model_name,
                provider=self.config.provider.value,
                latency_ms=latency_ms,
                metadata={"endpoint": self.endpoint}
            )

        except Exception as e:
            logger.error(
                "LLM_GENERATION_FAILED",
                extra={
                    "model": self.config.model_name,
                    "error": str(e)
                }
            )
            raise


class OpenAILLM(BaseLLM):
    """OpenAI-compatible chat completions implementation."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)

        if not config.api_key:
            raise ValueError("OpenAI API key required")

        import openai
        self.client = openai.AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.endpoint,
            timeout=config.timeout_seconds,
        )

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> LLMResponse:
        """Generate response using the chat completions API."""
        import time

        if not self.validate_prompt(prompt):
            raise ValueError("Invalid prompt")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend(history or [])
        messages.append({"role": "user", "content": prompt})

        start_time = time.time()

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model_name,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                top_p=self.config.top_p,
            )

            latency_ms = (time.time() - start_time) * 1000

            generated_text = response.choices[0].message.content or ""
            tokens_used = response.usage.total_tokens if response.usage else None

            logger.info(
                "LLM_GENERATION_SUCCEEDED",
                extra={
                    "model": self.config.model_name,
                    "latency_ms": latency_ms,
                    "tokens_used": tokens_used
                }
            )

            return LLMResponse(
                text=generated_text.strip(),
                model=self.config.model_name,
                provider=self.config.provider.value,
                tokens_used=tokens_used,
                latency_ms=latency_ms
            )

        except Exception as e:
            logger.error(
                "LLM_GENERATION_FAILED",
                extra={
                    "model": self.config.model_name,
                    "error": str(e)
                }
            )
            raise


def create_llm(config: LLMConfig) -> BaseLLM:
    """Factory function to create LLM instance.

    Raises:
        ValueError: If provider not supported
    """
    if config.provider == LLMProvider.HUGGINGFACE:
        return HuggingFaceLLM(config)
    elif config.provider == LLMProvider.OPENAI:
        return OpenAILLM(config)
    else:
        raise ValueError(f"Unsupported provider: {config.provider}")
