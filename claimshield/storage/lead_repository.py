"""Repository for leads and the records hanging off them."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.storage.models import (
    LeadModel,
    PatientModel,
    CallModel,
    VobVerificationModel,
    EncounterModel,
)
from claimshield.models.enums import LeadStatus, LeadPriority
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


class LeadRepository:
    """Repository for lead, patient, call, verification and encounter rows."""

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    async def create(self, data: Dict[str, Any]) -> LeadModel:
        """
        Create a new lead.

        Args:
            data: Column values; unknown keys are ignored

        Returns:
            Created lead model
        """
        lead = LeadModel(id=str(uuid4()))
        for key, value in data.items():
            if hasattr(LeadModel, key) and value is not None:
                setattr(lead, key, value)

        self.session.add(lead)
        await self.session.flush()

        logger.info("Lead created", lead_id=lead.id, source=lead.source)
        return lead

    async def get_by_id(self, lead_id: str) -> Optional[LeadModel]:
        result = await self.session.execute(
            select(LeadModel).where(LeadModel.id == lead_id)
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        status: Optional[LeadStatus] = None,
        priority: Optional[LeadPriority] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[LeadModel]:
        """
        Get leads with optional filtering, newest first.

        Args:
            status: Filter by status
            priority: Filter by priority
            limit: Maximum number of results
            offset: Offset for pagination

        Returns:
            List of lead models
        """
        query = select(LeadModel)
        if status:
            query = query.where(LeadModel.status == status.value)
        if priority:
            query = query.where(LeadModel.priority == priority.value)

        query = query.order_by(LeadModel.created_at.desc()).limit(limit).offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self, status: Optional[LeadStatus] = None) -> int:
        query = select(func.count(LeadModel.id))
        if status:
            query = query.where(LeadModel.status == status.value)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def update(self, lead: LeadModel, updates: Dict[str, Any]) -> LeadModel:
        """
        Apply field updates to a lead.

        Args:
            lead: Lead to update
            updates: Column values to set

        Returns:
            Updated lead model
        """
        for key, value in updates.items():
            if hasattr(lead, key):
                setattr(lead, key, value)
        lead.updated_at = datetime.now(timezone.utc)
        await self.session.flush()

        logger.debug("Lead updated", lead_id=lead.id, fields=sorted(updates.keys()))
        return lead

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    async def get_patient(self, lead_id: str) -> Optional[PatientModel]:
        result = await self.session.execute(
            select(PatientModel).where(PatientModel.lead_id == lead_id)
        )
        return result.scalar_one_or_none()

    async def get_patient_by_id(self, patient_id: str) -> Optional[PatientModel]:
        result = await self.session.execute(
            select(PatientModel).where(PatientModel.id == patient_id)
        )
        return result.scalar_one_or_none()

    async def create_patient(self, lead_id: str, data: Dict[str, Any]) -> PatientModel:
        """
        Create the patient for a lead.

        Args:
            lead_id: Owning lead
            data: Column values

        Returns:
            Created patient model
        """
        patient = PatientModel(id=str(uuid4()), lead_id=lead_id)
        for key, value in data.items():
            if hasattr(PatientModel, key) and key not in ("id", "lead_id"):
                setattr(patient, key, value)

        self.session.add(patient)
        await self.session.flush()

        logger.info("Patient created", patient_id=patient.id, lead_id=lead_id)
        return patient

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def add_call(self, lead_id: str, data: Dict[str, Any]) -> CallModel:
        call = CallModel(id=str(uuid4()), lead_id=lead_id, **data)
        self.session.add(call)
        await self.session.flush()

        logger.info("Call recorded", call_id=call.id, lead_id=lead_id, disposition=call.disposition)
        return call

    async def get_calls(self, lead_id: str) -> List[CallModel]:
        result = await self.session.execute(
            select(CallModel)
            .where(CallModel.lead_id == lead_id)
            .order_by(CallModel.created_at.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Verifications
    # ------------------------------------------------------------------

    async def add_verification(self, lead_id: str, data: Dict[str, Any]) -> VobVerificationModel:
        """
        Store one verification attempt. Attempts are never updated.

        Args:
            lead_id: Lead the verification belongs to
            data: Column values, typically from ``map_vob_response``

        Returns:
            Created verification model
        """
        verification = VobVerificationModel(id=str(uuid4()), lead_id=lead_id)
        for key, value in data.items():
            if hasattr(VobVerificationModel, key) and key not in ("id", "lead_id"):
                setattr(verification, key, value)

        self.session.add(verification)
        await self.session.flush()

        logger.info(
            "Verification stored",
            verification_id=verification.id,
            lead_id=lead_id,
            status=verification.status,
        )
        return verification

    async def get_verification(self, verification_id: str) -> Optional[VobVerificationModel]:
        result = await self.session.execute(
            select(VobVerificationModel).where(VobVerificationModel.id == verification_id)
        )
        return result.scalar_one_or_none()

    async def get_verifications(self, lead_id: str) -> List[VobVerificationModel]:
        """All attempts for a lead, latest first."""
        result = await self.session.execute(
            select(VobVerificationModel)
            .where(VobVerificationModel.lead_id == lead_id)
            .order_by(VobVerificationModel.created_at.desc(), VobVerificationModel.verified_at.desc())
        )
        return list(result.scalars().all())

    async def get_latest_verification(
        self,
        lead_id: str,
        status: Optional[str] = None
    ) -> Optional[VobVerificationModel]:
        """
        Get the latest attempt for a lead, by (created_at, verified_at).

        Args:
            lead_id: Lead ID
            status: Only consider attempts with this status

        Returns:
            Latest verification or None
        """
        query = select(VobVerificationModel).where(VobVerificationModel.lead_id == lead_id)
        if status:
            query = query.where(VobVerificationModel.status == status)
        query = query.order_by(
            VobVerificationModel.created_at.desc(),
            VobVerificationModel.verified_at.desc(),
        ).limit(1)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Encounters
    # ------------------------------------------------------------------

    async def create_encounter(self, patient_id: str, data: Dict[str, Any]) -> EncounterModel:
        encounter = EncounterModel(id=str(uuid4()), patient_id=patient_id, **data)
        self.session.add(encounter)
        await self.session.flush()

        logger.info("Encounter created", encounter_id=encounter.id, patient_id=patient_id)
        return encounter
