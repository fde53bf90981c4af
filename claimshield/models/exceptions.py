"""Domain exceptions raised by ClaimShield services."""
from typing import Optional


class ClaimShieldError(Exception):
    """Base class for all domain errors."""
    pass


class InvalidClaimInput(ClaimShieldError):
    """Raised when a claim lacks the payer or CPT codes needed for scoring."""
    pass


class InvalidTransition(ClaimShieldError):
    """Raised when a claim status change is not allowed by the state machine."""

    def __init__(self, from_status: str, to_status: str, message: Optional[str] = None):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message or f"Cannot transition claim from {from_status} to {to_status}")


class SubmissionBlocked(InvalidTransition):
    """Raised when submit is refused because the claim is not ready."""
    pass


class VerificationServiceError(ClaimShieldError):
    """Raised when the eligibility API returns a non-success response."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"VerifyTX API error ({status_code}): {message}")


class AuthenticationError(ClaimShieldError):
    """Raised when eligibility API credentials are rejected or missing."""
    pass


class VerificationInProgressError(ClaimShieldError):
    """Raised when a verification for the same lead is already running."""

    def __init__(self, lead_id: str):
        self.lead_id = lead_id
        super().__init__(f"A verification is already in progress for lead {lead_id}")


class VobIncompleteError(ClaimShieldError):
    """Raised when a claim packet is requested before benefits are fully verified."""
    pass


class RulePatternError(ClaimShieldError):
    """Raised when a prevention rule's trigger pattern cannot be parsed."""
    pass


class ResourceNotFoundError(ClaimShieldError):
    """Raised when a lead, claim, verification or rule does not exist."""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found: {resource_id}")
