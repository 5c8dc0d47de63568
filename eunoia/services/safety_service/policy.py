"""Intervention policy - decides when to interrupt the conversation.

Safety-first: any single category match triggers the intervention.
False positives on ambiguous language are preferred over missed risk.
Each message is judged on its own; there is no per-session strike count.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Sequence, Tuple

from eunoia.shared.models import CrisisCategory
from .scanner import ScanResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrisisResource:
    """A safety resource shown in the crisis modal."""
    label: str
    action: str     # "call" or "link"
    target: str     # Dial string or URL

    def to_dict(self) -> Dict[str, str]:
        return {"label": self.label, "action": self.action, "target": self.target}


# Same resources for every category and score (see DESIGN.md)
DEFAULT_RESOURCES: Tuple[CrisisResource, ...] = (
    CrisisResource(label="988 Suicide & Crisis Lifeline", action="call", target="988"),
    CrisisResource(label="Emergency Services", action="call", target="911"),
    CrisisResource(label="Find Local Resources", action="link", target="https://988lifeline.org/"),
)


@dataclass(frozen=True)
class InterventionDecision:
    """Outcome of the policy for one message."""
    should_trigger: bool
    matched_categories: FrozenSet[CrisisCategory] = field(default_factory=frozenset)
    recommended_resources: Tuple[CrisisResource, ...] = ()
    score: float = 0.0

    @property
    def category_labels(self) -> Tuple[str, ...]:
        return tuple(c.value for c in CrisisCategory if c in self.matched_categories)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "should_trigger": self.should_trigger,
            "matched_categories": list(self.category_labels),
            "recommended_resources": [r.to_dict() for r in self.recommended_resources],
        }


class InterventionPolicy:
    """Stateless classifier from ScanResult to InterventionDecision."""

    def __init__(
        self,
        resources: Optional[Sequence[CrisisResource]] = None,
        score_threshold: float = 30.0,
    ):
        """Initialize the policy.

        Args:
            resources: Resources presented on trigger (default 988/911/locator)
            score_threshold: Score strictly above this triggers on its own.
                Unreachable with the keyword scorer, where score is 0 without
                a match; kept for scorers that produce scores without
                discrete matches.
        """
        self.resources = tuple(resources) if resources is not None else DEFAULT_RESOURCES
        self.score_threshold = score_threshold

    def decide(self, scan_result: ScanResult) -> InterventionDecision:
        """Decide whether to show the crisis intervention."""
        should_trigger = (
            len(scan_result.matched_categories) > 0
            or scan_result.score > self.score_threshold
        )

        if should_trigger:
            logger.critical(
                "INTERVENTION_TRIGGERED",
                extra={
                    "categories": list(scan_result.category_labels),
                    "score": scan_result.score,
                    "resource_count": len(self.resources),
                    "action": "CRISIS_INTERVENTION_SHOWN",
                }
            )

        return InterventionDecision(
            should_trigger=should_trigger,
            matched_categories=scan_result.matched_categories,
            recommended_resources=self.resources if should_trigger else (),
            score=scan_result.score,
        )

    def fail_closed(self) -> InterventionDecision:
        """Decision used when scanning itself failed: show resources."""
        logger.critical(
            "INTERVENTION_FAIL_CLOSED",
            extra={"action": "CRISIS_INTERVENTION_SHOWN"}
        )
        return InterventionDecision(
            should_trigger=True,
            recommended_resources=self.resources,
        )
