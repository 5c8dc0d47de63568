"""Crisis Engine: escalation recording.

When the safety policy triggers, the conversation service hands the
message to CrisisHandler, which appends a CrisisEvent to the event log.
A failing event log never blocks the intervention shown to the user.

Components:
- event_log.py: CrisisEventLog contract, in-memory and PostgreSQL backends
- handler.py: CrisisHandler with fail-safe recording
"""

from .event_log import (
    CrisisEventLog,
    InMemoryCrisisEventLog,
    PostgresCrisisEventLog,
    CRISIS_EVENTS_DDL,
)
from .handler import CrisisHandler, ACTION_INTERVENTION_SHOWN

__all__ = [
    "CrisisEventLog",
    "InMemoryCrisisEventLog",
    "PostgresCrisisEventLog",
    "CRISIS_EVENTS_DDL",
    "CrisisHandler",
    "ACTION_INTERVENTION_SHOWN",
]
