"""Claim lifecycle: state machine and timeline."""
from .transitions import (
    CLAIM_TRANSITIONS,
    allowed_transitions,
    can_submit,
    validate_transition,
    validate_submission,
    apply_transition,
)
from .timeline import detect_stuck, order_events, latest_event

__all__ = [
    "CLAIM_TRANSITIONS",
    "allowed_transitions",
    "can_submit",
    "validate_transition",
    "validate_submission",
    "apply_transition",
    "detect_stuck",
    "order_events",
    "latest_event",
]
