"""Conversation Service: sessions, messages and the per-message pipeline.

Components:
- config.py: ConversationConfig and the fallback reply
- storage.py: ConversationStore contract, in-memory and PostgreSQL backends
- orchestrator.py: ConversationOrchestrator (scan, intervene or reply)
- handler.py: Flask HTTP endpoints under /api
"""

from .config import ConversationConfig, FALLBACK_RESPONSE
from .orchestrator import (
    ConversationOrchestrator,
    OrchestratorResult,
    SessionNotFoundError,
)
from .storage import (
    ConversationStore,
    InMemoryConversationStore,
    PostgresConversationStore,
)

__all__ = [
    "ConversationConfig",
    "FALLBACK_RESPONSE",
    "ConversationOrchestrator",
    "OrchestratorResult",
    "SessionNotFoundError",
    "ConversationStore",
    "InMemoryConversationStore",
    "PostgresConversationStore",
]
