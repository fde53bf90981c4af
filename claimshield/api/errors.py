"""Translation of domain errors to HTTP errors."""
from typing import Union

from fastapi import HTTPException

from claimshield.models.exceptions import (
    AuthenticationError,
    ClaimShieldError,
    InvalidClaimInput,
    InvalidTransition,
    ResourceNotFoundError,
    RulePatternError,
    SubmissionBlocked,
    VerificationInProgressError,
    VerificationServiceError,
    VobIncompleteError,
)


def status_code_for(error: Union[ClaimShieldError, ValueError]) -> int:
    """HTTP status code for a domain error."""
    if isinstance(error, ResourceNotFoundError):
        return 404
    # SubmissionBlocked subclasses InvalidTransition, so it is checked first
    if isinstance(error, (InvalidClaimInput, VobIncompleteError, RulePatternError, SubmissionBlocked, ValueError)):
        return 400
    if isinstance(error, (InvalidTransition, VerificationInProgressError)):
        return 409
    if isinstance(error, VerificationServiceError):
        return 502
    if isinstance(error, AuthenticationError):
        return 503
    return 500


def to_http_exception(error: Union[ClaimShieldError, ValueError]) -> HTTPException:
    """
    Build the HTTPException a route raises for a domain error.

    Upstream verification failures carry the upstream status and message so
    callers can tell a payer outage from bad subscriber data.
    """
    status_code = status_code_for(error)
    if isinstance(error, VerificationServiceError):
        return HTTPException(
            status_code=status_code,
            detail={
                "message": "Eligibility verification failed",
                "upstream_status": error.status_code,
                "upstream_message": error.message,
            },
        )
    return HTTPException(status_code=status_code, detail=str(error))
