"""Conversation orchestrator - the only path from a user message to a reply.

Order for every user message:
1. Persist the raw message
2. Scan it and ask the policy whether to intervene
3a. Intervention: record a crisis event, return category labels and
    resources; no reply is generated
3b. Otherwise: generate a persona reply within the time limit, falling
    back to a fixed supportive message, and persist it

Messages for one session are handled one at a time so that crisis events
and replies land in the order the messages arrived.
"""
import asyncio
import concurrent.futures
import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eunoia.shared.models import CrisisEvent, Message, MessageRole, Session
from eunoia.shared.utils import hash_pii, hash_text_for_audit
from ..crisis_engine import CrisisEventLog, CrisisHandler
from ..llm_service import Responder, get_persona
from ..safety_service import (
    CrisisResource,
    CrisisScanner,
    InterventionDecision,
    InterventionPolicy,
)
from .config import FALLBACK_RESPONSE
from .storage import ConversationStore

logger = logging.getLogger(__name__)


class SessionNotFoundError(Exception):
    """Raised when a session id does not exist."""

    def __init__(self, session_id: int):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class _SessionLock:
    """Per-session mutex that can live in a WeakValueDictionary."""
    __slots__ = ("_lock", "__weakref__")

    def __init__(self):
        self._lock = threading.Lock()

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info):
        self._lock.release()


@dataclass(frozen=True)
class OrchestratorResult:
    """Outcome of handling one user message."""
    message: Message
    crisis: bool
    ai_message: Optional[Message] = None
    crisis_categories: Tuple[str, ...] = ()
    resources: Tuple[CrisisResource, ...] = ()
    crisis_event: Optional[CrisisEvent] = None

    def to_dict(self) -> Dict[str, Any]:
        """API payload. Matched phrases are never part of it."""
        if self.crisis:
            return {
                "message": self.message.to_dict(),
                "crisis": True,
                "crisis_categories": list(self.crisis_categories),
                "resources": [r.to_dict() for r in self.resources],
            }
        return {
            "message": self.message.to_dict(),
            "crisis": False,
            "ai_message": self.ai_message.to_dict() if self.ai_message else None,
        }


class ConversationOrchestrator:
    """Sequences storage, crisis detection and reply generation."""

    def __init__(
        self,
        store: ConversationStore,
        event_log: CrisisEventLog,
        responder: Responder,
        scanner: Optional[CrisisScanner] = None,
        policy: Optional[InterventionPolicy] = None,
        response_timeout_seconds: float = 30.0,
        fallback_response: str = FALLBACK_RESPONSE,
    ):
        self.store = store
        self.crisis_handler = CrisisHandler(event_log)
        self.responder = responder
        self.scanner = scanner or CrisisScanner()
        self.policy = policy or InterventionPolicy()
        self.response_timeout_seconds = response_timeout_seconds
        self.fallback_response = fallback_response

        # Entries drop out once no in-flight message holds the lock
        self._session_locks: "weakref.WeakValueDictionary[int, _SessionLock]" = (
            weakref.WeakValueDictionary()
        )
        self._session_locks_guard = threading.Lock()

        # One long-lived loop for every reply, so async clients bound to it stay usable
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_guard = threading.Lock()

        logger.info(
            "ORCHESTRATOR_INITIALIZED",
            extra={
                "store": type(store).__name__,
                "responder": type(responder).__name__,
                "catalog_version": self.scanner.catalog.version,
                "response_timeout_seconds": response_timeout_seconds,
            }
        )

    def start_session(
        self,
        persona_id: str,
        goals: Sequence[str] = (),
        user_id: Optional[int] = None,
    ) -> Session:
        """Open a session with a persona.

        Raises:
            UnknownPersonaError: If persona_id is not registered
            ValueError: If a goal is not a string
        """
        get_persona(persona_id)
        if any(not isinstance(goal, str) for goal in goals):
            raise ValueError("Goals must be strings")

        session = self.store.create_session(persona_id, tuple(goals), user_id)

        logger.info(
            "SESSION_STARTED",
            extra={
                "session_id": session.id,
                "persona_id": persona_id,
                "goal_count": len(session.goals),
                "user_id_hash": self._user_hash(session),
            }
        )
        return session

    def get_session(self, session_id: int) -> Session:
        session = self.store.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def end_session(self, session_id: int) -> Session:
        session = self.store.end_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        logger.info(
            "SESSION_ENDED",
            extra={
                "session_id": session_id,
                "duration_seconds": session.duration_seconds,
            }
        )
        return session

    def list_messages(self, session_id: int) -> List[Message]:
        self.get_session(session_id)
        return self.store.list_messages(session_id)

    def list_crisis_events(self, session_id: int) -> List[CrisisEvent]:
        self.get_session(session_id)
        return self.crisis_handler.list_events(session_id)

    def submit_message(
        self,
        session_id: int,
        content: str,
        is_voice: bool = False,
    ) -> OrchestratorResult:
        """Handle one user message.

        Args:
            session_id: Target session
            content: Raw user text, stored verbatim
            is_voice: Whether the text came from speech transcription

        Returns:
            OrchestratorResult with either the crisis payload or the reply

        Raises:
            SessionNotFoundError: If the session does not exist
            RepositoryError: If the user or assistant message cannot be stored
        """
        session = self.get_session(session_id)

        with self._lock_for(session_id):
            message = self.store.create_message(
                session_id, MessageRole.USER, content, is_voice
            )

            decision = self._assess(session, content)
            if decision.should_trigger:
                return self._intervene(session, message, decision)

            reply = self._generate_reply(session)
            ai_message = self.store.create_message(
                session_id, MessageRole.ASSISTANT, reply
            )

        logger.info(
            "MESSAGE_HANDLED",
            extra={
                "session_id": session_id,
                "message_id": message.id,
                "ai_message_id": ai_message.id,
                "is_voice": is_voice,
            }
        )
        return OrchestratorResult(message=message, crisis=False, ai_message=ai_message)

    def close(self) -> None:
        """Stop the responder event loop. Safe to call more than once."""
        with self._loop_guard:
            loop, self._loop = self._loop, None
        if loop is not None:
            loop.call_soon_threadsafe(loop.stop)

    def _assess(self, session: Session, content: str) -> InterventionDecision:
        try:
            return self.policy.decide(self.scanner.scan(content))
        except Exception as e:
            logger.error(
                "SCAN_ERROR",
                extra={
                    "session_id": session.id,
                    "text_hash": hash_text_for_audit(content),
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "FAILING_CLOSED",
                }
            )
            return self.policy.fail_closed()

    def _intervene(
        self,
        session: Session,
        message: Message,
        decision: InterventionDecision,
    ) -> OrchestratorResult:
        categories = decision.category_labels
        event = self.crisis_handler.record_intervention(
            session_id=session.id,
            matched_categories=list(categories),
            user_message=message.content,
            user_id_hash=self._user_hash(session),
        )
        return OrchestratorResult(
            message=message,
            crisis=True,
            crisis_categories=categories,
            resources=decision.recommended_resources,
            crisis_event=event,
        )

    def _generate_reply(self, session: Session) -> str:
        history = self.store.list_messages(session.id)
        future = asyncio.run_coroutine_threadsafe(
            self.responder.respond(session.persona_id, history, session.goals),
            self._event_loop(),
        )
        try:
            return future.result(timeout=self.response_timeout_seconds)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.warning(
                "RESPONDER_TIMEOUT",
                extra={
                    "session_id": session.id,
                    "timeout_seconds": self.response_timeout_seconds,
                    "action": "FALLBACK_RESPONSE",
                }
            )
        except Exception as e:
            logger.error(
                "RESPONDER_FAILED",
                extra={
                    "session_id": session.id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "FALLBACK_RESPONSE",
                }
            )
        return self.fallback_response

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        with self._loop_guard:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                threading.Thread(
                    target=loop.run_forever,
                    name="responder-loop",
                    daemon=True,
                ).start()
                self._loop = loop
            return self._loop

    def _lock_for(self, session_id: int) -> _SessionLock:
        with self._session_locks_guard:
            lock = self._session_locks.get(session_id)
            if lock is None:
                lock = _SessionLock()
                self._session_locks[session_id] = lock
            return lock

    @staticmethod
    def _user_hash(session: Session) -> Optional[str]:
        if session.user_id is None:
            return None
        try:
            return hash_pii(session.user_id)
        except RuntimeError as e:
            # Never let a missing salt block the crisis path
            logger.warning(
                "USER_ID_HASH_UNAVAILABLE",
                extra={
                    "session_id": session.id,
                    "error": str(e),
                }
            )
            return None
