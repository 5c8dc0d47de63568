"""Session and message storage.

Backends:
- InMemoryConversationStore for development and tests
- PostgresConversationStore over `therapy_sessions` and `messages`

Messages are listed oldest first; message ids break timestamp ties so
the order always matches the order of writes.
"""
import dataclasses
import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import timezone
from typing import Dict, List, Optional, Sequence

from eunoia.shared.database import BaseRepository, ConnectionManager
from eunoia.shared.models import Message, MessageRole, Session
from eunoia.shared.models.crisis import utcnow

logger = logging.getLogger(__name__)


CONVERSATION_DDL = """
CREATE TABLE IF NOT EXISTS therapy_sessions (
    id SERIAL PRIMARY KEY,
    persona_id TEXT NOT NULL,
    goals JSONB NOT NULL DEFAULT '[]',
    user_id INTEGER,
    started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    ended_at TIMESTAMPTZ
);
CREATE TABLE IF NOT EXISTS messages (
    id SERIAL PRIMARY KEY,
    session_id INTEGER NOT NULL REFERENCES therapy_sessions (id),
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    is_voice BOOLEAN NOT NULL DEFAULT FALSE,
    timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS messages_session_idx ON messages (session_id, timestamp, id);
"""


def _aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ConversationStore(ABC):
    """Persistence contract for sessions and messages."""

    @abstractmethod
    def create_session(
        self,
        persona_id: str,
        goals: Sequence[str] = (),
        user_id: Optional[int] = None,
    ) -> Session:
        pass

    @abstractmethod
    def get_session(self, session_id: int) -> Optional[Session]:
        pass

    @abstractmethod
    def end_session(self, session_id: int) -> Optional[Session]:
        """Mark a session ended; ending twice keeps the first end time."""

    @abstractmethod
    def create_message(
        self,
        session_id: int,
        role: MessageRole,
        content: str,
        is_voice: bool = False,
    ) -> Message:
        pass

    @abstractmethod
    def list_messages(self, session_id: int) -> List[Message]:
        pass

    def health_check(self) -> bool:
        return True


class InMemoryConversationStore(ConversationStore):
    """Thread-safe in-process store."""

    def __init__(self):
        self._sessions: Dict[int, Session] = {}
        self._messages: List[Message] = []
        self._next_session_id = 1
        self._next_message_id = 1
        self._lock = threading.Lock()

        logger.info("CONVERSATION_STORE_INITIALIZED", extra={"backend": "memory"})

    def create_session(
        self,
        persona_id: str,
        goals: Sequence[str] = (),
        user_id: Optional[int] = None,
    ) -> Session:
        with self._lock:
            session = Session(
                id=self._next_session_id,
                persona_id=persona_id,
                goals=tuple(goals),
                user_id=user_id,
                started_at=utcnow(),
            )
            self._next_session_id += 1
            self._sessions[session.id] = session
        return session

    def get_session(self, session_id: int) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def end_session(self, session_id: int) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or not session.is_active:
                return session
            ended = dataclasses.replace(session, ended_at=utcnow())
            self._sessions[session_id] = ended
        return ended

    def create_message(
        self,
        session_id: int,
        role: MessageRole,
        content: str,
        is_voice: bool = False,
    ) -> Message:
        with self._lock:
            message = Message(
                id=self._next_message_id,
                session_id=session_id,
                role=role,
                content=content,
                is_voice=is_voice,
                timestamp=utcnow(),
            )
            self._next_message_id += 1
            self._messages.append(message)
        return message

    def list_messages(self, session_id: int) -> List[Message]:
        with self._lock:
            messages = [m for m in self._messages if m.session_id == session_id]
        return sorted(messages, key=lambda m: (m.timestamp, m.id))


class SessionRepository(BaseRepository[Session]):
    columns = ("id", "persona_id", "goals", "user_id", "started_at", "ended_at")

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "therapy_sessions")

    def _row_to_entity(self, row: tuple) -> Session:
        goals = row[2]
        if isinstance(goals, str):
            goals = json.loads(goals)
        return Session(
            id=row[0],
            persona_id=row[1],
            goals=tuple(goals or ()),
            user_id=row[3],
            started_at=_aware(row[4]),
            ended_at=_aware(row[5]),
        )

    def mark_ended(self, session_id: int) -> Optional[Session]:
        """Set ended_at if still open; returns None when nothing changed."""
        row = self._execute(
            f"UPDATE {self.table_name} SET ended_at = NOW() "
            f"WHERE id = %s AND ended_at IS NULL RETURNING {self._select_list}",
            (session_id,),
        )
        return self._row_to_entity(row) if row else None


class MessageRepository(BaseRepository[Message]):
    columns = ("id", "session_id", "role", "content", "is_voice", "timestamp")

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "messages")

    def _row_to_entity(self, row: tuple) -> Message:
        return Message(
            id=row[0],
            session_id=row[1],
            role=MessageRole(row[2]),
            content=row[3],
            is_voice=bool(row[4]),
            timestamp=_aware(row[5]),
        )


class PostgresConversationStore(ConversationStore):
    """Sessions and messages in PostgreSQL."""

    def __init__(self, connection_manager: ConnectionManager):
        self.connection_manager = connection_manager
        self.sessions = SessionRepository(connection_manager)
        self.messages = MessageRepository(connection_manager)

    def create_schema(self) -> None:
        """Create tables if missing (development setups)."""
        self.sessions._execute(CONVERSATION_DDL, ())

    def create_session(
        self,
        persona_id: str,
        goals: Sequence[str] = (),
        user_id: Optional[int] = None,
    ) -> Session:
        return self.sessions.insert({
            "persona_id": persona_id,
            "goals": json.dumps(list(goals)),
            "user_id": user_id,
        })

    def get_session(self, session_id: int) -> Optional[Session]:
        return self.sessions.find_by_id(session_id)

    def end_session(self, session_id: int) -> Optional[Session]:
        return self.sessions.mark_ended(session_id) or self.sessions.find_by_id(session_id)

    def create_message(
        self,
        session_id: int,
        role: MessageRole,
        content: str,
        is_voice: bool = False,
    ) -> Message:
        return self.messages.insert({
            "session_id": session_id,
            "role": role.value,
            "content": content,
            "is_voice": is_voice,
        })

    def list_messages(self, session_id: int) -> List[Message]:
        return self.messages.find_by("session_id", session_id, order_by="timestamp ASC, id ASC")

    def health_check(self) -> bool:
        return bool(self.connection_manager.health_check().get("healthy"))
