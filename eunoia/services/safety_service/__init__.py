"""Safety Service: crisis keyword detection and intervention policy.

Every user message is scanned here BEFORE it can reach a persona
responder. If the policy triggers, the conversation is interrupted and
fixed crisis resources are shown instead of a persona reply.

Components:
- catalog.py: KeywordCatalog, the versioned category -> phrase table
- config.py: Built-in phrases, anchor terms, scoring and policy settings
- scanner.py: CrisisScanner producing a ScanResult
- policy.py: InterventionPolicy producing an InterventionDecision
- handler.py: Flask HTTP endpoints (/health, /ready, /scan)

Usage:
    from eunoia.services.safety_service import CrisisScanner, InterventionPolicy
    scanner = CrisisScanner()
    decision = InterventionPolicy().decide(scanner.scan(text))
"""

from .catalog import KeywordCatalog, ConfigurationError
from .config import SafetyConfig, ScoringConfig, CRISIS_PHRASES, IMMINENT_ANCHOR_TERMS
from .policy import (
    CrisisResource,
    DEFAULT_RESOURCES,
    InterventionDecision,
    InterventionPolicy,
)
from .scanner import CrisisScanner, ScanResult

__all__ = [
    "KeywordCatalog",
    "ConfigurationError",
    "SafetyConfig",
    "ScoringConfig",
    "CRISIS_PHRASES",
    "IMMINENT_ANCHOR_TERMS",
    "CrisisResource",
    "DEFAULT_RESOURCES",
    "InterventionDecision",
    "InterventionPolicy",
    "CrisisScanner",
    "ScanResult",
]
