"""Lead service for intake, VOB completeness and claim packet creation."""
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.agents.intake_agent import CallIntakeAgent, get_call_intake_agent
from claimshield.models.enums import LeadStatus, LeadPriority, VerificationStatus
from claimshield.models.exceptions import ResourceNotFoundError, VobIncompleteError
from claimshield.models.vob import VobSources, CompletenessResult
from claimshield.scoring.vob_completeness import VobCompletenessScorer, get_vob_completeness_scorer
from claimshield.services.claim_service import ClaimService
from claimshield.storage.models import LeadModel
from claimshield.storage.lead_repository import LeadRepository
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


# Claim packet defaults by service type, used when the caller does not supply them
DEFAULT_CPT_CODES: Dict[str, List[str]] = {
    "Outpatient": ["90834"],
    "Intensive Outpatient": ["H0015"],
    "Partial Hospitalization": ["H0035"],
    "Inpatient": ["H0017"],
    "Residential": ["H0018"],
    "Detox": ["H0010"],
}
DEFAULT_CLAIM_AMOUNTS: Dict[str, float] = {
    "Outpatient": 1200.0,
    "Intensive Outpatient": 4500.0,
    "Partial Hospitalization": 9000.0,
    "Inpatient": 18000.0,
    "Residential": 24000.0,
    "Detox": 7500.0,
}
DEFAULT_SERVICE_TYPE = "Outpatient"

# Lead fields copied onto a new or synced patient
_PATIENT_FIELDS = ("first_name", "last_name", "date_of_birth", "state", "insurance_carrier", "member_id", "plan_type")


def _split_name(name: str) -> Dict[str, Optional[str]]:
    parts = (name or "").strip().split()
    if not parts:
        return {"first_name": None, "last_name": None}
    return {"first_name": parts[0], "last_name": " ".join(parts[1:]) or None}


class LeadService:
    """
    Service for managing leads.
    Owns the VOB completeness projection on the lead and the
    lead-to-claim conversion.
    """

    def __init__(
        self,
        session: AsyncSession,
        completeness_scorer: Optional[VobCompletenessScorer] = None,
        intake_agent: Optional[CallIntakeAgent] = None,
        claim_service: Optional[ClaimService] = None
    ):
        """
        Initialize lead service with database session.

        Args:
            session: SQLAlchemy async session
            completeness_scorer: VOB scorer (defaults to the global instance)
            intake_agent: Transcript extractor (defaults to the global instance)
            claim_service: Claim service used for claim packets
        """
        self.session = session
        self.repository = LeadRepository(session)
        self.completeness_scorer = completeness_scorer or get_vob_completeness_scorer()
        self.intake_agent = intake_agent or get_call_intake_agent()
        self.claim_service = claim_service or ClaimService(session)

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    async def create_lead(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a lead and compute its initial VOB completeness.

        Args:
            data: Lead fields; ``name`` is required

        Returns:
            Created lead data
        """
        values = dict(data)
        if not (values.get("name") or "").strip():
            raise ValueError("Lead name is required")
        for key, value in _split_name(values["name"]).items():
            if not values.get(key):
                values[key] = value

        lead = await self.repository.create(values)
        await self.refresh_vob(lead)
        return lead.to_dict()

    async def get_lead(self, lead_id: str) -> Dict[str, Any]:
        lead = await self._get_lead(lead_id)
        return lead.to_dict()

    async def list_leads(
        self,
        status: Optional[LeadStatus] = None,
        priority: Optional[LeadPriority] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """
        List leads with optional filtering.

        Args:
            status: Filter by status
            priority: Filter by priority
            limit: Maximum results
            offset: Pagination offset

        Returns:
            List of lead data
        """
        leads = await self.repository.get_all(status=status, priority=priority, limit=limit, offset=offset)
        return [lead.to_dict() for lead in leads]

    async def count_leads(self, status: Optional[LeadStatus] = None) -> int:
        return await self.repository.count(status=status)

    async def update_lead(self, lead_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply manual edits to a lead and recompute VOB completeness.

        Args:
            lead_id: Lead identifier
            updates: Fields to change

        Returns:
            Updated lead data
        """
        lead = await self._get_lead(lead_id)
        protected = {"id", "created_at", "vob_score", "vob_status", "vob_missing_fields"}
        await self.repository.update(lead, {k: v for k, v in updates.items() if k not in protected})
        await self.refresh_vob(lead)
        logger.info("Lead edited", lead_id=lead_id, fields=sorted(updates.keys()))
        return lead.to_dict()

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def list_calls(self, lead_id: str) -> List[Dict[str, Any]]:
        await self._get_lead(lead_id)
        calls = await self.repository.get_calls(lead_id)
        return [call.to_dict() for call in calls]

    async def record_call(
        self,
        lead_id: str,
        transcript: Optional[str] = None,
        summary: Optional[str] = None,
        disposition: Optional[str] = None,
        extracted_data: Optional[Dict[str, Any]] = None,
        duration_seconds: Optional[int] = None,
        external_call_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Record an intake call and apply what it tells us to the lead.

        Args:
            lead_id: Lead identifier
            transcript: Call transcript
            summary: Caller-supplied summary (generated when omitted)
            disposition: Caller-supplied disposition (derived when omitted)
            extracted_data: camelCase values that override the extractor per field
            duration_seconds: Call length
            external_call_id: Voice platform call ID

        Returns:
            Call data plus the lead's refreshed VOB completeness
        """
        lead = await self._get_lead(lead_id)
        transcript = transcript or ""

        extracted = self.intake_agent.merge(self.intake_agent.extract(transcript), extracted_data)
        outcome = disposition or self.intake_agent.disposition(extracted, transcript).value

        call = await self.repository.add_call(lead_id, {
            "external_call_id": external_call_id,
            "transcript": transcript,
            "summary": summary or self.intake_agent.summarize(extracted, transcript),
            "disposition": outcome,
            "duration_seconds": duration_seconds,
            "extracted_data": extracted.to_dict(),
        })

        updates: Dict[str, Any] = {
            "attempt_count": (lead.attempt_count or 0) + 1,
            "last_contacted_at": datetime.now(timezone.utc),
            "last_outcome": outcome,
        }
        if extracted.qualified and lead.status != LeadStatus.CONVERTED.value:
            updates["status"] = LeadStatus.QUALIFIED.value
        elif lead.status == LeadStatus.NEW.value:
            updates["status"] = LeadStatus.CONTACTED.value
        await self.repository.update(lead, updates)

        if extracted.qualified and not await self.repository.get_patient(lead_id):
            patient_data = {key: getattr(lead, key) for key in _PATIENT_FIELDS}
            patient_data.update({
                "state": extracted.state or lead.state,
                "insurance_carrier": extracted.insurance_carrier or lead.insurance_carrier,
                "member_id": extracted.member_id or lead.member_id,
            })
            await self.repository.create_patient(lead_id, patient_data)

        completeness = await self.refresh_vob(lead)

        logger.info(
            "Intake call processed",
            lead_id=lead_id,
            call_id=call.id,
            qualified=extracted.qualified,
            vob_score=completeness.score,
        )

        data = call.to_dict()
        data["lead_status"] = lead.status
        data["vob"] = completeness.to_dict()
        return data

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    async def get_patient(self, lead_id: str) -> Optional[Dict[str, Any]]:
        await self._get_lead(lead_id)
        patient = await self.repository.get_patient(lead_id)
        return patient.to_dict() if patient else None

    async def sync_patient(self, lead_id: str) -> Dict[str, Any]:
        """
        Copy lead fields and the latest verified benefits onto the patient.

        Verified payer values win over lead values; blanks never overwrite.
        Creates the patient when the lead has none.

        Args:
            lead_id: Lead identifier

        Returns:
            Patient data
        """
        lead = await self._get_lead(lead_id)
        values: Dict[str, Any] = {
            key: getattr(lead, key) for key in _PATIENT_FIELDS if getattr(lead, key) not in (None, "")
        }

        verification = await self.repository.get_latest_verification(
            lead_id, status=VerificationStatus.VERIFIED.value
        )
        if verification:
            for target, source in (
                ("insurance_carrier", verification.payer_name),
                ("member_id", verification.member_id),
                ("plan_type", verification.policy_type),
            ):
                if source:
                    values[target] = source

        patient = await self.repository.get_patient(lead_id)
        if patient:
            for key, value in values.items():
                setattr(patient, key, value)
            await self.session.flush()
        else:
            patient = await self.repository.create_patient(lead_id, values)

        await self.refresh_vob(lead)
        logger.info("Patient synced", lead_id=lead_id, patient_id=patient.id, fields=sorted(values.keys()))
        return patient.to_dict()

    # ------------------------------------------------------------------
    # VOB completeness
    # ------------------------------------------------------------------

    async def get_vob(self, lead_id: str) -> Dict[str, Any]:
        """Current VOB completeness for a lead, with the source of each satisfied field."""
        lead = await self._get_lead(lead_id)
        result = self.completeness_scorer.score(await self._gather_sources(lead))
        data = result.to_dict()
        data["lead_id"] = lead_id
        return data

    async def refresh_vob(self, lead: LeadModel) -> CompletenessResult:
        """
        Recompute VOB completeness and write the projection onto the lead.

        Args:
            lead: Lead to refresh

        Returns:
            Completeness result
        """
        result = self.completeness_scorer.score(await self._gather_sources(lead))
        await self.repository.update(lead, {
            "vob_score": result.score,
            "vob_status": result.status.value,
            "vob_missing_fields": list(result.missing_fields),
        })
        logger.debug(
            "VOB completeness refreshed",
            lead_id=lead.id,
            score=result.score,
            status=result.status.value,
            missing=result.missing_fields,
        )
        return result

    async def _gather_sources(self, lead: LeadModel) -> VobSources:
        patient = await self.repository.get_patient(lead.id)
        verified = await self.repository.get_latest_verification(
            lead.id, status=VerificationStatus.VERIFIED.value
        )
        latest_attempt = await self.repository.get_latest_verification(lead.id)
        calls = await self.repository.get_calls(lead.id)
        return VobSources(
            lead=lead.to_dict(),
            patient=patient.to_dict() if patient else None,
            verification=verified.to_dict() if verified else None,
            call_extractions=[call.extracted_data or {} for call in calls],
            verification_attempted=bool(
                latest_attempt and latest_attempt.status != VerificationStatus.PENDING.value
            ),
        )

    # ------------------------------------------------------------------
    # Verifications (read side)
    # ------------------------------------------------------------------

    async def list_verifications(self, lead_id: str) -> List[Dict[str, Any]]:
        await self._get_lead(lead_id)
        verifications = await self.repository.get_verifications(lead_id)
        return [v.to_dict() for v in verifications]

    async def get_latest_verification(self, lead_id: str) -> Optional[Dict[str, Any]]:
        await self._get_lead(lead_id)
        verification = await self.repository.get_latest_verification(lead_id)
        return verification.to_dict() if verification else None

    # ------------------------------------------------------------------
    # Claim packet
    # ------------------------------------------------------------------

    async def create_claim_packet(
        self,
        lead_id: str,
        payer: Optional[str] = None,
        cpt_codes: Optional[List[str]] = None,
        amount: Optional[float] = None,
        service_type: Optional[str] = None,
        facility_type: str = "Hospital",
        admission_type: str = "Elective",
        expected_start_date: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Convert a fully verified lead into an encounter and a scored claim.

        Args:
            lead_id: Lead identifier
            payer: Payer override (defaults to the verified payer, then the patient's carrier)
            cpt_codes: CPT override (defaults by service type)
            amount: Amount override (defaults by service type)
            service_type: Service override (defaults to the lead's service)
            facility_type: Encounter facility type
            admission_type: Encounter admission type
            expected_start_date: ISO date (defaults to today)

        Returns:
            Claim packet with claim_id, encounter_id and claim data

        Raises:
            ResourceNotFoundError: If the lead does not exist
            VobIncompleteError: If VOB completeness is below 100 or there is no patient
        """
        lead = await self._get_lead(lead_id)
        completeness = await self.refresh_vob(lead)
        if completeness.score < 100:
            raise VobIncompleteError(
                f"VOB completeness is {completeness.score}; missing: {', '.join(completeness.missing_fields)}"
            )

        patient = await self.repository.get_patient(lead_id)
        if not patient:
            raise VobIncompleteError("Patient info not available. Complete VOB call first.")

        service = service_type or lead.service_needed or DEFAULT_SERVICE_TYPE
        encounter = await self.repository.create_encounter(patient.id, {
            "service_type": service,
            "facility_type": facility_type,
            "admission_type": admission_type,
            "expected_start_date": expected_start_date or date.today().isoformat(),
        })

        if not payer:
            verification = await self.repository.get_latest_verification(
                lead_id, status=VerificationStatus.VERIFIED.value
            )
            payer = (verification.payer_name if verification else None) or patient.insurance_carrier

        claim = await self.claim_service.create_claim(
            patient_id=patient.id,
            payer=payer,
            cpt_codes=cpt_codes or DEFAULT_CPT_CODES.get(service, DEFAULT_CPT_CODES[DEFAULT_SERVICE_TYPE]),
            amount=amount if amount is not None else DEFAULT_CLAIM_AMOUNTS.get(service, 1500.0),
            encounter_id=encounter.id,
            lead_id=lead_id,
            notes="Claim packet created from lead intake",
        )

        await self.repository.update(lead, {"status": LeadStatus.CONVERTED.value})
        logger.info("Claim packet created", lead_id=lead_id, claim_id=claim.id, encounter_id=encounter.id)

        return {
            "claim_id": claim.id,
            "encounter_id": encounter.id,
            "claim": await self.claim_service.get_claim(claim.id),
        }

    async def _get_lead(self, lead_id: str) -> LeadModel:
        lead = await self.repository.get_by_id(lead_id)
        if not lead:
            raise ResourceNotFoundError("Lead", lead_id)
        return lead
