"""Crisis category and crisis event domain models.

Category labels are the stable contract between the keyword catalog, the
API surface and the stored audit trail. Phrase lists may be retuned freely;
category names may not change without a data migration.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Tuple


class CrisisCategory(str, Enum):
    """Named buckets of semantically related risk phrases."""
    SUICIDAL_IDEATION = "suicidal_ideation"
    SELF_HARM = "self_harm"
    OVERDOSE_RISK = "overdose_risk"
    METHOD_MENTIONED = "method_mentioned"
    IMMINENT_DANGER = "imminent_danger"        # Gated by anchor terms
    ABUSE_OR_VIOLENCE = "abuse_or_violence"
    MENTAL_HEALTH_CRISIS = "mental_health_crisis"
    SUBSTANCE_CRISIS = "substance_crisis"
    HOPELESSNESS = "hopelessness"


# Phrases in these categories add the high-risk boost to the scan score
HIGH_RISK_CATEGORIES = frozenset({
    CrisisCategory.SUICIDAL_IDEATION,
    CrisisCategory.METHOD_MENTIONED,
    CrisisCategory.OVERDOSE_RISK,
})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CrisisEvent:
    """One escalation, recorded for clinical and audit review.

    Created exactly once per triggering message and never modified.
    The raw user message is stored verbatim; it is never logged.
    """
    id: int
    session_id: int
    matched_categories: Tuple[str, ...]
    user_message: str
    action_taken: str
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "session_id": self.session_id,
            "matched_categories": list(self.matched_categories),
            "user_message": self.user_message,
            "action_taken": self.action_taken,
            "timestamp": self.timestamp.isoformat(),
        }
