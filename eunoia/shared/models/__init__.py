"""Shared domain models for the Eunoia platform."""
from .crisis import (
    CrisisCategory,
    CrisisEvent,
    HIGH_RISK_CATEGORIES,
)
from .conversation import (
    Message,
    MessageRole,
    Session,
)

__all__ = [
    "CrisisCategory",
    "CrisisEvent",
    "HIGH_RISK_CATEGORIES",
    "Message",
    "MessageRole",
    "Session",
]
