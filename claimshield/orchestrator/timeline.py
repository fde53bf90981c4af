"""Claim timeline ordering and stuck-claim detection."""
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from claimshield.models.claim import TimelineEvent, StuckStatus
from claimshield.models.enums import ClaimStatus

DEFAULT_STUCK_THRESHOLD_DAYS = 7


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def order_events(events: Iterable[TimelineEvent]) -> List[TimelineEvent]:
    """Order events by (timestamp, sequence) ascending."""
    return sorted(events, key=lambda e: (as_utc(e.timestamp), e.sequence))


def latest_event(events: Iterable[TimelineEvent]) -> Optional[TimelineEvent]:
    ordered = order_events(events)
    return ordered[-1] if ordered else None


def detect_stuck(
    events: Iterable[TimelineEvent],
    now: Optional[datetime] = None,
    threshold_days: int = DEFAULT_STUCK_THRESHOLD_DAYS,
) -> StuckStatus:
    """
    Decide whether a claim is stuck in pending.

    A claim is stuck when its latest event is ``pending`` and more than
    ``threshold_days`` have elapsed since that event. Computed at read time;
    nothing is persisted.

    Args:
        events: The claim's events, in any order
        now: Reference time (defaults to the current UTC time)
        threshold_days: Days in pending before a claim counts as stuck

    Returns:
        StuckStatus with whole days elapsed since the latest event
    """
    last = latest_event(events)
    if last is None:
        return StuckStatus(is_stuck=False, days=0)

    now = as_utc(now or datetime.now(timezone.utc))
    elapsed = now - as_utc(last.timestamp)
    days = max(0, elapsed.days)
    is_stuck = last.event_type == ClaimStatus.PENDING and elapsed > timedelta(days=threshold_days)

    return StuckStatus(
        is_stuck=is_stuck,
        days=days,
        last_event_type=last.event_type,
        last_event_at=last.timestamp,
    )
