"""Benefit verification (VOB) models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .enums import VobStatus


# Required checklist, in reporting order
VOB_REQUIRED_FIELDS = ("insuranceCarrier", "memberId", "state", "consent", "serviceType")

DEFAULT_VOB_FIELD_WEIGHTS: Dict[str, int] = {
    "insuranceCarrier": 25,
    "memberId": 25,
    "state": 15,
    "consent": 15,
    "serviceType": 20,
}


@dataclass
class VobSources:
    """
    Everything known about a lead that can satisfy the VOB checklist.

    Each source is a plain dict as produced by the ORM ``to_dict`` methods;
    call extractions use the camelCase keys written by the intake extractor.
    """
    lead: Dict[str, Any] = field(default_factory=dict)
    patient: Optional[Dict[str, Any]] = None
    verification: Optional[Dict[str, Any]] = None  # Latest verified attempt only
    call_extractions: List[Dict[str, Any]] = field(default_factory=list)
    verification_attempted: bool = False


@dataclass
class CompletenessResult:
    """Result of scoring a lead's VOB completeness."""
    score: int
    status: VobStatus
    missing_fields: List[str] = field(default_factory=list)
    satisfied_fields: List[str] = field(default_factory=list)
    field_sources: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": self.score,
            "status": self.status.value,
            "missing_fields": list(self.missing_fields),
            "satisfied_fields": list(self.satisfied_fields),
            "field_sources": dict(self.field_sources),
        }
