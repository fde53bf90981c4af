"""Claim timeline models."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .enums import ClaimStatus


@dataclass(frozen=True)
class TimelineEvent:
    """An immutable entry in a claim's event log."""
    event_id: str
    claim_id: str
    sequence: int
    event_type: ClaimStatus
    timestamp: datetime
    notes: Optional[str] = None
    actor: str = "system"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "event_id": self.event_id,
            "claim_id": self.claim_id,
            "sequence": self.sequence,
            "type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "notes": self.notes,
            "actor": self.actor,
        }


@dataclass(frozen=True)
class StuckStatus:
    """Read-time stuck classification of a claim."""
    is_stuck: bool
    days: int
    last_event_type: Optional[ClaimStatus] = None
    last_event_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_stuck": self.is_stuck,
            "days": self.days,
            "last_event_type": self.last_event_type.value if self.last_event_type else None,
            "last_event_at": self.last_event_at.isoformat() if self.last_event_at else None,
        }
