"""Repository for claim and denial operations."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.storage.models import ClaimModel, DenialModel
from claimshield.models.enums import ClaimStatus, ReadinessStatus
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


class ClaimRepository:
    """Repository for claim database operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create(
        self,
        patient_id: str,
        payer: Optional[str],
        cpt_codes: List[str],
        amount: float,
        encounter_id: Optional[str] = None,
        lead_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> ClaimModel:
        """
        Create a claim in ``created`` status. The caller appends the matching event.

        Args:
            patient_id: Patient the claim is for
            payer: Payer name
            cpt_codes: Procedure codes
            amount: Billed amount
            encounter_id: Encounter the claim bills
            lead_id: Lead the claim packet came from
            created_at: Override for the creation time

        Returns:
            Created claim model
        """
        now = created_at or datetime.now(timezone.utc)
        claim = ClaimModel(
            id=str(uuid4()),
            patient_id=patient_id,
            encounter_id=encounter_id,
            lead_id=lead_id,
            payer=payer,
            cpt_codes=list(cpt_codes),
            amount=amount,
            status=ClaimStatus.CREATED.value,
            fired_rule_ids=[],
            created_at=now,
            updated_at=now,
        )
        self.session.add(claim)
        await self.session.flush()

        logger.info("Claim created", claim_id=claim.id, patient_id=patient_id, payer=payer)
        return claim

    async def get_by_id(self, claim_id: str) -> Optional[ClaimModel]:
        result = await self.session.execute(
            select(ClaimModel).where(ClaimModel.id == claim_id)
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        status: Optional[ClaimStatus] = None,
        readiness: Optional[ReadinessStatus] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[ClaimModel]:
        """
        Get claims with optional filtering, most recently updated first.

        Args:
            status: Filter by lifecycle status
            readiness: Filter by readiness status
            limit: Maximum number of results
            offset: Offset for pagination

        Returns:
            List of claim models
        """
        query = select(ClaimModel)
        if status:
            query = query.where(ClaimModel.status == status.value)
        if readiness:
            query = query.where(ClaimModel.readiness_status == readiness.value)

        query = query.order_by(ClaimModel.updated_at.desc()).limit(limit).offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_recent(self, limit: int = 10) -> List[ClaimModel]:
        result = await self.session.execute(
            select(ClaimModel).order_by(ClaimModel.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def list_all(self) -> List[ClaimModel]:
        """Every claim, for dashboard aggregation."""
        result = await self.session.execute(select(ClaimModel))
        return list(result.scalars().all())

    async def count(self, status: Optional[ClaimStatus] = None) -> int:
        query = select(func.count(ClaimModel.id))
        if status:
            query = query.where(ClaimModel.status == status.value)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def update(self, claim: ClaimModel, updates: Dict[str, Any]) -> ClaimModel:
        """
        Apply field updates to a claim.

        Args:
            claim: Claim to update
            updates: Column values to set

        Returns:
            Updated claim model
        """
        for key, value in updates.items():
            if hasattr(claim, key):
                setattr(claim, key, value)
        claim.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return claim

    # ------------------------------------------------------------------
    # Denials
    # ------------------------------------------------------------------

    async def create_denial(
        self,
        claim: ClaimModel,
        root_cause_tag: str,
        denial_category: Optional[str] = None,
        denial_reason_text: Optional[str] = None,
        cpt_code: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> DenialModel:
        """
        Record a payer denial for a claim.

        Args:
            claim: Denied claim
            root_cause_tag: Root cause used for clustering
            denial_category: Payer's category (e.g. CO-197)
            denial_reason_text: Free-text reason
            cpt_code: Denied code, defaults to the claim's first CPT code
            created_at: Override for the denial time

        Returns:
            Created denial model
        """
        denial = DenialModel(
            id=str(uuid4()),
            claim_id=claim.id,
            payer=claim.payer or "Unknown",
            cpt_code=cpt_code or (claim.cpt_codes[0] if claim.cpt_codes else None),
            denial_category=denial_category,
            denial_reason_text=denial_reason_text,
            root_cause_tag=root_cause_tag,
            resolved=False,
            created_at=created_at or datetime.now(timezone.utc),
        )
        self.session.add(denial)
        await self.session.flush()

        logger.info("Denial recorded", claim_id=claim.id, root_cause=root_cause_tag)
        return denial

    async def get_denials(self, since: Optional[datetime] = None) -> List[DenialModel]:
        query = select(DenialModel)
        if since:
            query = query.where(DenialModel.created_at >= since)
        result = await self.session.execute(query.order_by(DenialModel.created_at.desc()))
        return list(result.scalars().all())
