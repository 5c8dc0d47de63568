"""LLM Service for Eunoia.

Persona definitions and responders that produce therapist replies for
messages which passed the safety scan. Responders are rule-based or
backed by an OpenAI-compatible / HuggingFace model.
"""

from .base_llm import (
    BaseLLM,
    LLMConfig,
    LLMProvider,
    LLMResponse,
    HuggingFaceLLM,
    OpenAILLM,
    create_llm,
)
from .personas import (
    Persona,
    PERSONAS,
    DEFAULT_PERSONA_ID,
    UnknownPersonaError,
    get_persona,
)
from .responder import (
    Responder,
    RuleBasedResponder,
    LLMResponder,
    detect_keywords,
)

__version__ = "0.1.0"

__all__ = [
    "BaseLLM",
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    "HuggingFaceLLM",
    "OpenAILLM",
    "create_llm",
    "Persona",
    "PERSONAS",
    "DEFAULT_PERSONA_ID",
    "UnknownPersonaError",
    "get_persona",
    "Responder",
    "RuleBasedResponder",
    "LLMResponder",
    "detect_keywords",
]
