"""Crisis handler - records interventions without blocking them.

The user-facing safety response always takes priority over the audit
trail: if the event log is down, the intervention is still shown and the
failure is logged at CRITICAL for manual follow-up.
"""
import logging
from typing import List, Optional

from eunoia.shared.models import CrisisEvent
from eunoia.shared.utils import hash_text_for_audit
from .event_log import CrisisEventLog, InMemoryCrisisEventLog

logger = logging.getLogger(__name__)


ACTION_INTERVENTION_SHOWN = "intervention shown"


class CrisisHandler:
    """Writes crisis events for triggered interventions."""

    def __init__(self, event_log: Optional[CrisisEventLog] = None):
        self.event_log = event_log or InMemoryCrisisEventLog()

        logger.info(
            "CRISIS_HANDLER_INITIALIZED",
            extra={"event_log": type(self.event_log).__name__}
        )

    def record_intervention(
        self,
        session_id: int,
        matched_categories: List[str],
        user_message: str,
        action_taken: str = ACTION_INTERVENTION_SHOWN,
        user_id_hash: Optional[str] = None,
    ) -> Optional[CrisisEvent]:
        """Record one triggered intervention.

        Args:
            session_id: Session the message belongs to
            matched_categories: Category labels (never raw phrases)
            user_message: Raw message, stored verbatim for clinical review
            action_taken: What the user was shown
            user_id_hash: Hashed user id for log correlation, if known

        Returns:
            The stored CrisisEvent, or None if persistence failed

        Logs:
            - CRISIS_HANDLER_TRIGGERED: On entry (critical)
            - CRISIS_EVENT_RECORDED: After the event is stored
            - CRISIS_EVENT_PERSIST_FAILED: If the event log raised (critical)
        """
        text_hash = hash_text_for_audit(user_message)

        logger.critical(
            "CRISIS_HANDLER_TRIGGERED",
            extra={
                "session_id": session_id,
                "user_id_hash": user_id_hash,
                "categories": list(matched_categories),
                "text_hash": text_hash,
                "action": action_taken,
            }
        )

        try:
            event = self.event_log.create_event(
                session_id=session_id,
                matched_categories=matched_categories,
                user_message=user_message,
                action_taken=action_taken,
            )
        except Exception as e:
            logger.critical(
                "CRISIS_EVENT_PERSIST_FAILED",
                extra={
                    "session_id": session_id,
                    "user_id_hash": user_id_hash,
                    "categories": list(matched_categories),
                    "text_hash": text_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                }
            )
            return None

        logger.info(
            "CRISIS_EVENT_RECORDED",
            extra={
                "crisis_event_id": event.id,
                "session_id": session_id,
                "text_hash": text_hash,
            }
        )
        return event

    def list_events(self, session_id: int) -> List[CrisisEvent]:
        """Crisis events for a session, oldest first."""
        return self.event_log.list_events(session_id)
