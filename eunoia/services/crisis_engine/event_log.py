"""Crisis event log - append-only escalation audit trail.

Every triggered intervention produces exactly one CrisisEvent. Events are
never updated or deleted by the application; retention is a deployment
concern. Listing returns a session's events in the order they were
recorded, which is clinically meaningful.

Backends:
- InMemoryCrisisEventLog for development and tests
- PostgresCrisisEventLog over the `crisis_events` table
"""
import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import timezone
from typing import Iterable, List

from eunoia.shared.database import BaseRepository, ConnectionManager
from eunoia.shared.models import CrisisEvent
from eunoia.shared.models.crisis import utcnow

logger = logging.getLogger(__name__)


CRISIS_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS crisis_events (
    id SERIAL PRIMARY KEY,
    session_id INTEGER NOT NULL,
    detected_categories JSONB NOT NULL,
    user_message TEXT NOT NULL,
    timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    action_taken TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS crisis_events_session_idx
    ON crisis_events (session_id, timestamp, id);
"""


class CrisisEventLog(ABC):
    """Persistence contract for crisis events."""

    @abstractmethod
    def create_event(
        self,
        session_id: int,
        matched_categories: Iterable[str],
        user_message: str,
        action_taken: str,
    ) -> CrisisEvent:
        """Append an event; id and timestamp are assigned here."""

    @abstractmethod
    def list_events(self, session_id: int) -> List[CrisisEvent]:
        """A session's events, oldest first."""


class InMemoryCrisisEventLog(CrisisEventLog):
    """Thread-safe in-process event log."""

    def __init__(self):
        self._events: List[CrisisEvent] = []
        self._next_id = 1
        self._lock = threading.Lock()

        logger.info("CRISIS_EVENT_LOG_INITIALIZED", extra={"backend": "memory"})

    def create_event(
        self,
        session_id: int,
        matched_categories: Iterable[str],
        user_message: str,
        action_taken: str,
    ) -> CrisisEvent:
        with self._lock:
            event = CrisisEvent(
                id=self._next_id,
                session_id=session_id,
                matched_categories=tuple(matched_categories),
                user_message=user_message,
                action_taken=action_taken,
                timestamp=utcnow(),
            )
            self._next_id += 1
            self._events.append(event)
        return event

    def list_events(self, session_id: int) -> List[CrisisEvent]:
        with self._lock:
            events = [e for e in self._events if e.session_id == session_id]
        return sorted(events, key=lambda e: (e.timestamp, e.id))

    def __len__(self) -> int:
        return len(self._events)


class PostgresCrisisEventLog(BaseRepository[CrisisEvent], CrisisEventLog):
    """Crisis events in PostgreSQL.

    The application role should hold INSERT and SELECT only on
    crisis_events; no UPDATE or DELETE path exists here.
    """

    columns = (
        "id",
        "session_id",
        "detected_categories",
        "user_message",
        "timestamp",
        "action_taken",
    )

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "crisis_events")

    def create_schema(self) -> None:
        """Create the table and index if missing (development setups)."""
        self._execute(CRISIS_EVENTS_DDL, ())

    def _row_to_entity(self, row: tuple) -> CrisisEvent:
        categories = row[2]
        if isinstance(categories, str):
            categories = json.loads(categories)
        timestamp = row[4]
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return CrisisEvent(
            id=row[0],
            session_id=row[1],
            matched_categories=tuple(categories),
            user_message=row[3],
            timestamp=timestamp,
            action_taken=row[5],
        )

    def create_event(
        self,
        session_id: int,
        matched_categories: Iterable[str],
        user_message: str,
        action_taken: str,
    ) -> CrisisEvent:
        return self.insert({
            "session_id": session_id,
            "detected_categories": json.dumps(list(matched_categories)),
            "user_message": user_message,
            "action_taken": action_taken,
        })

    def list_events(self, session_id: int) -> List[CrisisEvent]:
        return self.find_by("session_id", session_id, order_by="timestamp ASC, id ASC")
