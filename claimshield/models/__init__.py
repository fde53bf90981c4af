"""Data models for the ClaimShield revenue cycle service."""
from .enums import (
    LeadStatus,
    LeadPriority,
    VobStatus,
    VerificationStatus,
    NetworkStatus,
    CallDisposition,
    ClaimStatus,
    ReadinessStatus,
    RecommendationPriority,
    AlertSeverity,
)
from .exceptions import (
    ClaimShieldError,
    InvalidClaimInput,
    InvalidTransition,
    SubmissionBlocked,
    VerificationServiceError,
    AuthenticationError,
    VerificationInProgressError,
    VobIncompleteError,
    RulePatternError,
    ResourceNotFoundError,
)
from .vob import VobSources, CompletenessResult, VOB_REQUIRED_FIELDS, DEFAULT_VOB_FIELD_WEIGHTS
from .risk import (
    RiskWeights,
    ClaimSnapshot,
    BenefitsSnapshot,
    RuleSnapshot,
    RiskExplanation,
    RiskAssessment,
)
from .claim import TimelineEvent, StuckStatus

__all__ = [
    # Enums
    "LeadStatus",
    "LeadPriority",
    "VobStatus",
    "VerificationStatus",
    "NetworkStatus",
    "CallDisposition",
    "ClaimStatus",
    "ReadinessStatus",
    "RecommendationPriority",
    "AlertSeverity",
    # Errors
    "ClaimShieldError",
    "InvalidClaimInput",
    "InvalidTransition",
    "SubmissionBlocked",
    "VerificationServiceError",
    "AuthenticationError",
    "VerificationInProgressError",
    "VobIncompleteError",
    "RulePatternError",
    "ResourceNotFoundError",
    # VOB
    "VobSources",
    "CompletenessResult",
    "VOB_REQUIRED_FIELDS",
    "DEFAULT_VOB_FIELD_WEIGHTS",
    # Risk
    "RiskWeights",
    "ClaimSnapshot",
    "BenefitsSnapshot",
    "RuleSnapshot",
    "RiskExplanation",
    "RiskAssessment",
    # Timeline
    "TimelineEvent",
    "StuckStatus",
]
