"""Claim lifecycle state machine."""
from typing import Dict, FrozenSet, List, Optional

from claimshield.models.enums import ClaimStatus, ReadinessStatus
from claimshield.models.exceptions import InvalidTransition, SubmissionBlocked
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


CLAIM_TRANSITIONS: Dict[ClaimStatus, FrozenSet[ClaimStatus]] = {
    ClaimStatus.CREATED: frozenset({ClaimStatus.VERIFIED, ClaimStatus.SUBMITTED}),
    ClaimStatus.VERIFIED: frozenset({ClaimStatus.SUBMITTED}),
    ClaimStatus.SUBMITTED: frozenset({ClaimStatus.ACKNOWLEDGED}),
    ClaimStatus.ACKNOWLEDGED: frozenset({ClaimStatus.PENDING}),
    ClaimStatus.PENDING: frozenset({ClaimStatus.SUSPENDED, ClaimStatus.DENIED, ClaimStatus.PAID}),
    ClaimStatus.SUSPENDED: frozenset({ClaimStatus.PENDING}),
    ClaimStatus.DENIED: frozenset({ClaimStatus.APPEALED}),
    ClaimStatus.APPEALED: frozenset({ClaimStatus.PENDING, ClaimStatus.PAID, ClaimStatus.DENIED}),
    ClaimStatus.PAID: frozenset(),
}


def allowed_transitions(current: ClaimStatus) -> List[ClaimStatus]:
    """
    List the statuses reachable from the current one.

    Args:
        current: Current claim status

    Returns:
        Reachable statuses in declaration order
    """
    targets = CLAIM_TRANSITIONS.get(current, frozenset())
    return [status for status in ClaimStatus if status in targets]


def is_terminal(status: ClaimStatus) -> bool:
    return not CLAIM_TRANSITIONS.get(status)


def can_submit(status: ClaimStatus, readiness: Optional[ReadinessStatus]) -> bool:
    """A claim can be submitted only from created with GREEN readiness."""
    return status == ClaimStatus.CREATED and readiness == ReadinessStatus.GREEN


def validate_transition(
    current: ClaimStatus,
    target: ClaimStatus,
    readiness: Optional[ReadinessStatus] = None,
) -> None:
    """
    Check a status change against the state machine.

    Args:
        current: Current claim status
        target: Requested status
        readiness: Current readiness, required for moves into submitted

    Raises:
        SubmissionBlocked: If the move is into submitted and readiness is not GREEN
        InvalidTransition: If the move is not an edge of the state machine
    """
    if target not in CLAIM_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(current.value, target.value)

    if target == ClaimStatus.SUBMITTED and readiness != ReadinessStatus.GREEN:
        shown = readiness.value if readiness else "unscored"
        raise SubmissionBlocked(
            current.value,
            target.value,
            f"Claim readiness is {shown}; only GREEN claims can be submitted",
        )


def validate_submission(current: ClaimStatus, readiness: Optional[ReadinessStatus]) -> None:
    """
    Check the submit operation, which is stricter than a plain transition.

    Raises:
        SubmissionBlocked: If the claim is not in created or not GREEN
    """
    if current != ClaimStatus.CREATED:
        raise SubmissionBlocked(
            current.value,
            ClaimStatus.SUBMITTED.value,
            f"Only claims in created can be submitted (current status: {current.value})",
        )
    validate_transition(current, ClaimStatus.SUBMITTED, readiness)


def apply_transition(
    claim_id: str,
    current: ClaimStatus,
    target: ClaimStatus,
    readiness: Optional[ReadinessStatus] = None,
) -> ClaimStatus:
    """
    Validate and log a transition.

    Args:
        claim_id: Claim being moved
        current: Current claim status
        target: Requested status
        readiness: Current readiness

    Returns:
        The new status
    """
    validate_transition(current, target, readiness)
    logger.info(
        "Claim transition",
        claim_id=claim_id,
        from_status=current.value,
        to_status=target.value,
    )
    return target
