"""Crisis scanner - deterministic keyword detection.

Every user message passes through CrisisScanner.scan() before it can reach
a persona responder. The scan is a pure function of the text and the
catalog: no clock, no randomness, no I/O apart from logging, so identical
input always yields an identical ScanResult.

Algorithm:
1. Lowercase the message (punctuation is kept).
2. Per category, substring-match every phrase against the whole message.
3. imminent_danger only counts when an anchor term ("die", "end", "hurt")
   is also present.
4. score = min(100, match density * 100 + 25 per high-risk phrase hit)
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from eunoia.shared.models import CrisisCategory, HIGH_RISK_CATEGORIES
from eunoia.shared.utils import hash_text_for_audit
from .catalog import KeywordCatalog
from .config import IMMINENT_ANCHOR_TERMS, ScoringConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    """Result of a crisis scan on one message.

    Immutable value type, recomputed from the message whenever needed.
    matched_phrases is for audit logging only and is never returned to
    the end user.
    """
    matched_categories: FrozenSet[CrisisCategory] = field(default_factory=frozenset)
    matched_phrases: Tuple[str, ...] = ()
    score: float = 0.0
    catalog_version: str = ""

    def __post_init__(self):
        if not 0.0 <= self.score <= 100.0:
            raise ValueError(f"Score must be 0-100, got {self.score}")

    @property
    def category_labels(self) -> Tuple[str, ...]:
        """Matched category values in catalog order."""
        return tuple(c.value for c in CrisisCategory if c in self.matched_categories)

    @property
    def has_matches(self) -> bool:
        return bool(self.matched_categories)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "matched_categories": list(self.category_labels),
            "match_count": len(self.matched_phrases),
            "score": round(self.score, 2),
            "catalog_version": self.catalog_version,
        }


class CrisisScanner:
    """Keyword scanner over an immutable KeywordCatalog.

    Safe to share across threads: holds no mutable state.
    """

    def __init__(
        self,
        catalog: Optional[KeywordCatalog] = None,
        scoring: Optional[ScoringConfig] = None,
        anchor_terms: Tuple[str, ...] = IMMINENT_ANCHOR_TERMS,
    ):
        self.catalog = catalog or KeywordCatalog.default()
        self.scoring = scoring or ScoringConfig()
        self.anchor_terms = tuple(term.lower() for term in anchor_terms)

        logger.info(
            "CRISIS_SCANNER_INITIALIZED",
            extra={
                "catalog_version": self.catalog.version,
                "category_count": len(self.catalog),
                "anchor_terms": list(self.anchor_terms),
            }
        )

    def scan(self, text: Optional[str]) -> ScanResult:
        """Scan a message for crisis language.

        Total over all string input, including empty, very long and
        non-Latin text. None is treated as the empty string.

        Args:
            text: Raw message text

        Returns:
            ScanResult with matched categories, phrases and severity score

        Logs:
            - CRISIS_SCAN_MATCHED: If any category matched (warning)
            - CRISIS_SCAN_COMPLETED: After every scan
        """
        start_time = time.perf_counter()
        if text is None:
            text = ""
        elif not isinstance(text, str):
            text = str(text)

        normalized = text.lower()
        anchored = any(term in normalized for term in self.anchor_terms)

        categories: List[CrisisCategory] = []
        phrases: List[str] = []
        high_risk_hits = 0

        for category, category_phrases in self.catalog.iter_sorted():
            if category is CrisisCategory.IMMINENT_DANGER and not anchored:
                continue
            hits = [phrase for phrase in category_phrases if phrase in normalized]
            if not hits:
                continue
            categories.append(category)
            phrases.extend(hits)
            if category in HIGH_RISK_CATEGORIES:
                high_risk_hits += len(hits)

        score = self._calculate_score(
            match_count=len(phrases),
            word_count=len(text.split()),
            high_risk_hits=high_risk_hits,
        )

        result = ScanResult(
            matched_categories=frozenset(categories),
            matched_phrases=tuple(phrases),
            score=score,
            catalog_version=self.catalog.version,
        )

        latency_ms = (time.perf_counter() - start_time) * 1000
        text_hash = hash_text_for_audit(text)

        if categories:
            logger.warning(
                "CRISIS_SCAN_MATCHED",
                extra={
                    "text_hash": text_hash,
                    "categories": list(result.category_labels),
                    "match_count": len(phrases),
                    "high_risk_hits": high_risk_hits,
                    "score": score,
                }
            )

        logger.info(
            "CRISIS_SCAN_COMPLETED",
            extra={
                "text_hash": text_hash,
                "text_length": len(text),
                "category_count": len(categories),
                "score": score,
                "latency_ms": latency_ms,
                "catalog_version": self.catalog.version,
            }
        )

        return result

    def _calculate_score(
        self,
        match_count: int,
        word_count: int,
        high_risk_hits: int,
    ) -> float:
        """Severity score in [0, max_score].

        Args:
            match_count: Matched phrases, duplicates across categories counted
            word_count: Whitespace-delimited tokens in the raw text
            high_risk_hits: Matched phrases in high-risk categories

        Returns:
            0.0 when nothing matched, otherwise density plus high-risk boost
        """
        if match_count == 0:
            return 0.0

        max_score = self.scoring.max_score
        density = match_count / max(1, word_count)
        base_score = min(max_score, density * 100.0)
        boost = self.scoring.high_risk_boost * high_risk_hits
        return float(min(max_score, base_score + boost))
