"""Append-only claim event log."""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.storage.models import ClaimEventModel
from claimshield.models.claim import TimelineEvent
from claimshield.models.enums import ClaimStatus
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


def to_timeline_event(row: ClaimEventModel) -> TimelineEvent:
    return TimelineEvent(
        event_id=row.id,
        claim_id=row.claim_id,
        sequence=row.sequence,
        event_type=ClaimStatus(row.event_type),
        timestamp=row.timestamp,
        notes=row.notes,
        actor=row.actor,
    )


class ClaimEventLog:
    """
    Immutable event log for claim lifecycles.
    Events are only ever inserted; there is no update or delete path.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the event log.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def append(
        self,
        claim_id: str,
        event_type: ClaimStatus,
        notes: Optional[str] = None,
        actor: str = "system",
        timestamp: Optional[datetime] = None,
    ) -> TimelineEvent:
        """
        Append one event and flush it.

        Args:
            claim_id: Claim this event belongs to
            event_type: Status the claim moved into
            notes: Free-text context
            actor: Who/what caused the transition
            timestamp: Override for the event time (seeding and tests)

        Returns:
            The stored event
        """
        sequence = await self._next_sequence(claim_id)
        row = ClaimEventModel(
            id=str(uuid4()),
            claim_id=claim_id,
            sequence=sequence,
            event_type=event_type.value,
            timestamp=timestamp or datetime.now(timezone.utc),
            notes=notes,
            actor=actor,
        )
        self.session.add(row)
        await self.session.flush()

        logger.info(
            "Claim event appended",
            claim_id=claim_id,
            event_type=event_type.value,
            sequence=sequence,
        )
        return to_timeline_event(row)

    async def get_events(self, claim_id: str) -> List[TimelineEvent]:
        """Events for one claim in (timestamp, sequence) order."""
        result = await self.session.execute(
            select(ClaimEventModel)
            .where(ClaimEventModel.claim_id == claim_id)
            .order_by(ClaimEventModel.timestamp, ClaimEventModel.sequence)
        )
        return [to_timeline_event(row) for row in result.scalars().all()]

    async def get_events_for_claims(self, claim_ids: Iterable[str]) -> Dict[str, List[TimelineEvent]]:
        """
        Events for many claims at once, grouped by claim.

        Args:
            claim_ids: Claims to load

        Returns:
            Mapping of claim ID to its ordered events (empty list if none)
        """
        ids = list(claim_ids)
        grouped: Dict[str, List[TimelineEvent]] = {claim_id: [] for claim_id in ids}
        if not ids:
            return grouped

        result = await self.session.execute(
            select(ClaimEventModel)
            .where(ClaimEventModel.claim_id.in_(ids))
            .order_by(ClaimEventModel.timestamp, ClaimEventModel.sequence)
        )
        for row in result.scalars().all():
            grouped[row.claim_id].append(to_timeline_event(row))
        return grouped

    async def _next_sequence(self, claim_id: str) -> int:
        result = await self.session.execute(
            select(func.max(ClaimEventModel.sequence)).where(ClaimEventModel.claim_id == claim_id)
        )
        current = result.scalar_one_or_none()
        return (current or 0) + 1
