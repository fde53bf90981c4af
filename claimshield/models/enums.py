"""Enumeration types for the ClaimShield revenue cycle service."""
from enum import Enum


class LeadStatus(str, Enum):
    """Lifecycle of an inbound lead."""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    UNQUALIFIED = "unqualified"
    CONVERTED = "converted"  # Claim packet created
    LOST = "lost"


class LeadPriority(str, Enum):
    """Work-queue priority for a lead."""
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"


class VobStatus(str, Enum):
    """Benefit verification progress for a lead."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    VERIFIED = "verified"
    INCOMPLETE = "incomplete"  # Verification ran but required fields are still missing


class VerificationStatus(str, Enum):
    """Outcome of a single VOB verification attempt."""
    PENDING = "pending"
    VERIFIED = "verified"
    ERROR = "error"


class NetworkStatus(str, Enum):
    """Provider network status reported by the payer."""
    IN_NETWORK = "in_network"
    OUT_OF_NETWORK = "out_of_network"
    UNKNOWN = "unknown"


class CallDisposition(str, Enum):
    """Outcome of an intake call."""
    QUALIFIED = "qualified"
    NEEDS_FOLLOW_UP = "needs_follow_up"
    UNQUALIFIED = "unqualified"
    NO_ANSWER = "no_answer"


class ClaimStatus(str, Enum):
    """Claim lifecycle states. Each value doubles as the timeline event type."""
    CREATED = "created"
    VERIFIED = "verified"
    SUBMITTED = "submitted"
    ACKNOWLEDGED = "acknowledged"
    PENDING = "pending"
    SUSPENDED = "suspended"
    DENIED = "denied"
    APPEALED = "appealed"
    PAID = "paid"


class ReadinessStatus(str, Enum):
    """Traffic-light readiness derived from the claim risk score."""
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


class RecommendationPriority(str, Enum):
    """Priority of a recommended pre-submission action."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertSeverity(str, Enum):
    """Severity of a dashboard alert."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
