"""Request ledger layer.

This package is the single source of truth for service requests and the
only place their status may change.
"""

from azanything.ledger.store import RequestLedger, RequestQuery
from azanything.ledger.transitions import ALLOWED_TRANSITIONS, LedgerEvent, allowed_targets, is_valid_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "LedgerEvent",
    "RequestLedger",
    "RequestQuery",
    "allowed_targets",
    "is_valid_transition",
]
