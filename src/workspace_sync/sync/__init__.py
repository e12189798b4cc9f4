"""File-change reconciliation: data model, decoding and the engine."""

from .models import (
    ChangeNotification,
    EventKind,
    OutcomeStatus,
    ReconciliationOutcome,
    classify_payload,
)

__all__ = [
    "ChangeNotification",
    "EventKind",
    "OutcomeStatus",
    "ReconciliationOutcome",
    "classify_payload",
]
