"""
Tests for timeline ordering and stuck-claim detection.
"""

from datetime import datetime, timedelta, timezone

from claimshield.models.claim import TimelineEvent
from claimshield.models.enums import ClaimStatus
from claimshield.orchestrator.timeline import detect_stuck, latest_event, order_events


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _event(sequence, event_type, days_ago, hours_ago=0):
    return TimelineEvent(
        event_id=f"EVT-{sequence}",
        claim_id="CLM-1",
        sequence=sequence,
        event_type=event_type,
        timestamp=NOW - timedelta(days=days_ago, hours=hours_ago),
    )


class TestOrdering:

    def test_orders_by_timestamp_then_sequence(self):
        created = _event(1, ClaimStatus.CREATED, 10)
        submitted = _event(2, ClaimStatus.SUBMITTED, 9)
        acknowledged = _event(3, ClaimStatus.ACKNOWLEDGED, 9)
        ordered = order_events([acknowledged, submitted, created])
        assert [e.sequence for e in ordered] == [1, 2, 3]

    def test_naive_timestamps_treated_as_utc(self):
        naive = TimelineEvent(
            event_id="EVT-9",
            claim_id="CLM-1",
            sequence=9,
            event_type=ClaimStatus.PENDING,
            timestamp=datetime(2024, 6, 14, 12, 0),
        )
        aware = _event(1, ClaimStatus.CREATED, 2)
        assert latest_event([naive, aware]) is naive

    def test_empty(self):
        assert latest_event([]) is None


class TestStuckDetection:

    def test_pending_eight_days_is_stuck(self):
        events = [_event(1, ClaimStatus.CREATED, 12), _event(2, ClaimStatus.PENDING, 8)]
        status = detect_stuck(events, now=NOW, threshold_days=7)
        assert status.is_stuck is True
        assert status.days == 8
        assert status.last_event_type == ClaimStatus.PENDING

    def test_pending_six_days_is_not_stuck(self):
        status = detect_stuck([_event(1, ClaimStatus.PENDING, 6)], now=NOW, threshold_days=7)
        assert status.is_stuck is False
        assert status.days == 6

    def test_exactly_threshold_is_not_stuck(self):
        status = detect_stuck([_event(1, ClaimStatus.PENDING, 7)], now=NOW, threshold_days=7)
        assert status.is_stuck is False

    def test_just_past_threshold_is_stuck(self):
        status = detect_stuck([_event(1, ClaimStatus.PENDING, 7, hours_ago=1)], now=NOW, threshold_days=7)
        assert status.is_stuck is True
        assert status.days == 7

    def test_old_non_pending_is_not_stuck(self):
        status = detect_stuck([_event(1, ClaimStatus.SUSPENDED, 30)], now=NOW)
        assert status.is_stuck is False
        assert status.days == 30

    def test_no_events(self):
        status = detect_stuck([], now=NOW)
        assert status.to_dict() == {"is_stuck": False, "days": 0, "last_event_type": None, "last_event_at": None}
