"""Safety Service configuration and the built-in crisis keyword catalog.

The phrase table consolidates the server detector, the client detector and
the comprehensive detector from earlier Eunoia releases into one set of
named categories. Matching is case-insensitive substring containment over
the whole message, so short phrases deliberately over-trigger.
"""
import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

from eunoia.shared.models import CrisisCategory


CATALOG_VERSION = "2026.10.19"


@dataclass(frozen=True)
class ScoringConfig:
    """Severity score constants.

    score = min(MAX, density * 100 + HIGH_RISK_BOOST * high_risk_hits)
    """
    max_score: float = 100.0
    high_risk_boost: float = 25.0


@dataclass(frozen=True)
class SafetyConfig:
    """Configuration for crisis scanning and intervention."""

    # Optional JSON catalog that replaces the built-in table
    catalog_path: Optional[str] = None

    # Scores strictly above this trigger an intervention even without a match
    score_threshold: float = 30.0

    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    @classmethod
    def from_env(cls) -> "SafetyConfig":
        """Create config from environment variables.

        Environment variables:
            CRISIS_CATALOG_PATH: JSON catalog override (default built-in)
            CRISIS_SCORE_THRESHOLD: Score trigger threshold (default 30)
        """
        return cls(
            catalog_path=os.getenv("CRISIS_CATALOG_PATH") or None,
            score_threshold=float(os.getenv("CRISIS_SCORE_THRESHOLD", "30")),
        )


# imminent_danger phrases only count when one of these is also present.
# Keeps "I have a meeting tonight" out of the imminent-risk path.
IMMINENT_ANCHOR_TERMS: Tuple[str, ...] = ("die", "end", "hurt")


CRISIS_PHRASES: Dict[CrisisCategory, FrozenSet[str]] = {
    CrisisCategory.SUICIDAL_IDEATION: frozenset({
        "suicide",
        "suicidal",
        "kill myself",
        "end my life",
        "take my life",
        "take my own life",
        "want to die",
        "wish i was dead",
        "better off dead",
        "end it all",
        "not worth living",
        "no point living",
        "no point in living",
        "life is pointless",
        "plan to die",
        "don't want to be here",
        "can't go on",
        "unalive",
        "burden to everyone",
    }),
    CrisisCategory.SELF_HARM: frozenset({
        "self harm",
        "self-harm",
        "self-injury",
        "cut myself",
        "cutting myself",
        "cutting",
        "cut my arms",
        "cut my wrists",
        "hurt myself",
        "harm myself",
        "punish myself",
        "burning myself",
        "hitting myself",
        "punching walls",
        "pain myself",
        "plan to hurt",
        "bleeding",
    }),
    CrisisCategory.OVERDOSE_RISK: frozenset({
        "overdose",
        "too many pills",
        "all the pills",
        "bottle of pills",
        "sleeping pills",
        "taking everything",
        "pain medication",
    }),
    CrisisCategory.METHOD_MENTIONED: frozenset({
        "jump off",
        "hang myself",
        "noose",
        "rope",
        "bridge",
        "gun",
        "knife",
        "razor",
        "pills",
        "poison",
        "suffocate",
        "car crash",
        "in front of a train",
        "off a building",
        "off the building",
    }),
    CrisisCategory.IMMINENT_DANGER: frozenset({
        "tonight",
        "right now",
        "this moment",
        "about to",
        "planning to",
        "plan to",
        "ready to",
        "going to hurt",
        "going to do it",
        "can't wait",
        "final decision",
        "final goodbye",
        "won't see me again",
        "last time",
        "today",
        "goodbye",
        "farewell",
        "ready to end",
        "preparing to",
        "time to go",
        "have the",
        "thought about",
        "considering",
    }),
    CrisisCategory.ABUSE_OR_VIOLENCE: frozenset({
        "abuse",
        "domestic violence",
        "being hurt",
        "afraid for my safety",
        "hitting me",
        "threatening me",
        "touches me",
        "violent",
        "unsafe",
        "scared of",
    }),
    CrisisCategory.MENTAL_HEALTH_CRISIS: frozenset({
        "hearing voices",
        "voices in my head",
        "seeing things",
        "hallucinating",
        "psychotic",
        "losing my mind",
        "going crazy",
        "can't think straight",
        "can't function",
        "completely lost",
        "breakdown",
        "breaking point",
        "unbearable",
        "can't take it",
        "too much pain",
        "at my limit",
        "suffering",
        "torment",
        "agony",
        "hopeless",
    }),
    CrisisCategory.SUBSTANCE_CRISIS: frozenset({
        "can't stop drinking",
        "drinking too much",
        "too much alcohol",
        "using drugs",
        "overdosed",
        "addicted",
        "withdrawal",
        "detox",
        "relapse",
    }),
    CrisisCategory.HOPELESSNESS: frozenset({
        "no point",
        "hopeless",
        "helpless",
        "no hope",
        "trapped",
        "no way out",
        "no future",
        "never get better",
        "stuck forever",
        "can't escape",
        "nothing matters",
        "pointless",
        "meaningless",
        "done trying",
        "give up",
        "quit trying",
        "worthless",
        "useless",
        "nobody cares",
        "all alone",
        "no one understands",
        "isolated",
        "abandoned",
        "rejected",
        "unloved",
        "unwanted",
    }),
}
