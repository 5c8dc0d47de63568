"""Therapy session and message models."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .crisis import utcnow


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Session:
    """A bounded conversation between a user and one persona."""
    id: int
    persona_id: str
    goals: Tuple[str, ...] = ()
    user_id: Optional[int] = None
    started_at: datetime = field(default_factory=utcnow)
    ended_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    @property
    def duration_seconds(self) -> Optional[int]:
        if self.ended_at is None:
            return None
        return int((self.ended_at - self.started_at).total_seconds())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "persona_id": self.persona_id,
            "goals": list(self.goals),
            "user_id": self.user_id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_seconds": self.duration_seconds,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class Message:
    """A single turn in a session, from the user or the persona."""
    id: int
    session_id: int
    role: MessageRole
    content: str
    is_voice: bool = False
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "role": self.role.value,
            "content": self.content,
            "is_voice": self.is_voice,
            "timestamp": self.timestamp.isoformat(),
        }
