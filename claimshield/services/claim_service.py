"""Claim service for scoring, submission and lifecycle transitions."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.models.enums import ClaimStatus, ReadinessStatus, VerificationStatus
from claimshield.models.exceptions import (
    InvalidClaimInput,
    InvalidTransition,
    ResourceNotFoundError,
    SubmissionBlocked,
)
from claimshield.models.risk import ClaimSnapshot, BenefitsSnapshot
from claimshield.models.claim import StuckStatus
from claimshield.orchestrator.transitions import (
    allowed_transitions,
    apply_transition,
    can_submit,
    validate_submission,
)
from claimshield.orchestrator.timeline import detect_stuck
from claimshield.scoring.risk_scorer import ClaimRiskScorer, get_claim_risk_scorer
from claimshield.storage.models import ClaimModel
from claimshield.storage.claim_repository import ClaimRepository
from claimshield.storage.lead_repository import LeadRepository
from claimshield.storage.rule_repository import RuleRepository
from claimshield.storage.claim_event_log import ClaimEventLog
from claimshield.config.settings import get_settings
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

# Readiness is frozen once a claim leaves for the payer
SCORABLE_STATUSES = {ClaimStatus.CREATED.value, ClaimStatus.VERIFIED.value}


class ClaimService:
    """
    Service for the claim lifecycle.
    Scores claims, gates submission on readiness and writes every status
    change through the append-only event log.
    """

    def __init__(
        self,
        session: AsyncSession,
        scorer: Optional[ClaimRiskScorer] = None,
        stuck_threshold_days: Optional[int] = None
    ):
        """
        Initialize claim service with database session.

        Args:
            session: SQLAlchemy async session
            scorer: Risk scorer (defaults to the global instance)
            stuck_threshold_days: Days in pending before a claim is stuck
        """
        self.session = session
        self.claims = ClaimRepository(session)
        self.leads = LeadRepository(session)
        self.rules = RuleRepository(session)
        self.event_log = ClaimEventLog(session)
        self.scorer = scorer or get_claim_risk_scorer()
        self.stuck_threshold_days = stuck_threshold_days or get_settings().stuck_claim_threshold_days

    # ------------------------------------------------------------------
    # Creation and scoring
    # ------------------------------------------------------------------

    async def create_claim(
        self,
        patient_id: str,
        payer: Optional[str],
        cpt_codes: List[str],
        amount: float,
        encounter_id: Optional[str] = None,
        lead_id: Optional[str] = None,
        notes: Optional[str] = None,
        actor: str = "system",
        created_at: Optional[datetime] = None
    ) -> ClaimModel:
        """
        Create a claim, append its ``created`` event and score it.

        A claim that cannot be scored (no payer or no CPT codes) is still
        created; its risk fields stay unset until a later rescore succeeds.

        Args:
            patient_id: Patient the claim is for
            payer: Payer name
            cpt_codes: Procedure codes
            amount: Billed amount
            encounter_id: Encounter being billed
            lead_id: Lead the claim came from
            notes: Notes for the created event
            actor: Who created the claim
            created_at: Backdated creation time (demo seeding)

        Returns:
            Created claim model
        """
        claim = await self.claims.create(
            patient_id=patient_id,
            payer=payer,
            cpt_codes=cpt_codes,
            amount=amount,
            encounter_id=encounter_id,
            lead_id=lead_id,
            created_at=created_at,
        )
        await self.event_log.append(claim.id, ClaimStatus.CREATED, notes=notes, actor=actor, timestamp=created_at)

        try:
            await self.score_claim(claim.id)
        except InvalidClaimInput as e:
            logger.warning("Claim created without a risk score", claim_id=claim.id, error=str(e))

        return claim

    async def score_claim(self, claim_id: str) -> Dict[str, Any]:
        """
        Score or rescore a claim against its latest verified benefits and active rules.

        Args:
            claim_id: Claim identifier

        Returns:
            Claim data with the stored explanation

        Raises:
            ResourceNotFoundError: If the claim does not exist
            InvalidClaimInput: If the claim has no payer or no CPT codes
            InvalidTransition: If the claim was already submitted
        """
        claim = await self._get_claim(claim_id)
        if claim.status not in SCORABLE_STATUSES:
            raise InvalidTransition(
                claim.status,
                "scored",
                f"Claim {claim_id} is {claim.status}; only claims that have not been submitted can be scored",
            )
        benefits = await self._benefits_for(claim)
        rules = await self.rules.get_active_snapshots()

        assessment = self.scorer.assess(
            ClaimSnapshot(
                payer=claim.payer,
                cpt_codes=list(claim.cpt_codes or []),
                amount=float(claim.amount or 0.0),
                claim_id=claim.id,
            ),
            benefits,
            rules,
        )

        await self._update_rule_counters(claim, assessment.fired_rule_ids, assessment.readiness_status)

        await self.claims.update(claim, {
            "risk_score": assessment.score,
            "readiness_status": assessment.readiness_status.value,
            "fired_rule_ids": list(assessment.fired_rule_ids),
            "risk_explanation": assessment.explanation.model_dump(mode="json"),
            "reason": assessment.reason,
            "next_step": assessment.next_step,
            "scored_at": datetime.now(timezone.utc),
        })

        logger.info(
            "Claim scored",
            claim_id=claim.id,
            score=assessment.score,
            readiness=assessment.readiness_status.value,
            rules_fired=len(assessment.fired_rule_ids),
        )

        data = claim.to_dict()
        data["explanation"] = claim.risk_explanation
        return data

    async def _update_rule_counters(
        self,
        claim: ClaimModel,
        fired_rule_ids: List[str],
        readiness: ReadinessStatus
    ) -> None:
        previously_fired = set(claim.fired_rule_ids or [])
        newly_fired = [rule_id for rule_id in fired_rule_ids if rule_id not in previously_fired]
        for rule in await self.rules.get_by_ids(newly_fired):
            rule.triggered_count = (rule.triggered_count or 0) + 1

        newly_red = (
            readiness == ReadinessStatus.RED
            and claim.readiness_status != ReadinessStatus.RED.value
        )
        if newly_red:
            for rule in await self.rules.get_by_ids(fired_rule_ids):
                if rule.risk_contribution > 0:
                    rule.prevented_count = (rule.prevented_count or 0) + 1
                    rule.protected_amount = (rule.protected_amount or 0.0) + float(claim.amount or 0.0)
            logger.info("Claim blocked before submission", claim_id=claim.id, amount=claim.amount)

    async def _benefits_for(self, claim: ClaimModel) -> Optional[BenefitsSnapshot]:
        """Latest verified benefits for the claim's patient, or None."""
        patient = await self.leads.get_patient_by_id(claim.patient_id)
        if not patient:
            return None
        verification = await self.leads.get_latest_verification(
            patient.lead_id, status=VerificationStatus.VERIFIED.value
        )
        if not verification:
            return None
        return BenefitsSnapshot(
            verified=True,
            prior_auth_required=verification.prior_auth_required,
            network_status=verification.network_status,
            policy_status=verification.policy_status,
            policy_type=verification.policy_type,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def submit_claim(
        self,
        claim_id: str,
        notes: Optional[str] = None,
        actor: str = "user"
    ) -> Dict[str, Any]:
        """
        Submit a claim to the payer.

        Args:
            claim_id: Claim identifier
            notes: Notes for the submitted event
            actor: Who submitted the claim

        Returns:
            Updated claim data

        Raises:
            ResourceNotFoundError: If the claim does not exist
            SubmissionBlocked: If the claim is not in created or not GREEN
        """
        claim = await self._get_claim(claim_id)
        readiness = ReadinessStatus(claim.readiness_status) if claim.readiness_status else None

        try:
            validate_submission(ClaimStatus(claim.status), readiness)
        except SubmissionBlocked as e:
            logger.warning("Claim submission blocked", claim_id=claim_id, reason=str(e))
            raise

        await self._record_transition(claim, ClaimStatus.SUBMITTED, notes or "Claim submitted to payer", actor)
        return await self.get_claim(claim_id)

    async def transition_claim(
        self,
        claim_id: str,
        target: ClaimStatus,
        notes: Optional[str] = None,
        actor: str = "system",
        denial: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Move a claim along the state machine.

        Args:
            claim_id: Claim identifier
            target: Requested status
            notes: Notes for the event
            actor: Who caused the transition
            denial: Denial details (root_cause_tag, denial_category,
                denial_reason_text, cpt_code) recorded when target is denied
            timestamp: Backdated event time (demo seeding)

        Returns:
            Updated claim data

        Raises:
            ResourceNotFoundError: If the claim does not exist
            InvalidTransition: If the move is not allowed
        """
        claim = await self._get_claim(claim_id)
        readiness = ReadinessStatus(claim.readiness_status) if claim.readiness_status else None
        await self._record_transition(claim, target, notes, actor, readiness, timestamp)

        if target == ClaimStatus.DENIED and denial:
            await self.claims.create_denial(
                claim,
                root_cause_tag=denial.get("root_cause_tag") or "Unspecified",
                denial_category=denial.get("denial_category"),
                denial_reason_text=denial.get("denial_reason_text"),
                cpt_code=denial.get("cpt_code"),
                created_at=timestamp,
            )

        return await self.get_claim(claim_id)

    async def _record_transition(
        self,
        claim: ClaimModel,
        target: ClaimStatus,
        notes: Optional[str],
        actor: str,
        readiness: Optional[ReadinessStatus] = None,
        timestamp: Optional[datetime] = None
    ) -> None:
        """Validate, append the event, then update the cached status."""
        if readiness is None and claim.readiness_status:
            readiness = ReadinessStatus(claim.readiness_status)
        apply_transition(claim.id, ClaimStatus(claim.status), target, readiness)

        await self.event_log.append(claim.id, target, notes=notes, actor=actor, timestamp=timestamp)
        await self.claims.update(claim, {"status": target.value})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_claim(self, claim_id: str) -> Dict[str, Any]:
        """
        Get a claim with its stuck status and allowed next steps.

        Args:
            claim_id: Claim identifier

        Returns:
            Claim data
        """
        claim = await self._get_claim(claim_id)
        events = await self.event_log.get_events(claim.id)
        return self._claim_view(claim, detect_stuck(events, threshold_days=self.stuck_threshold_days))

    async def list_claims(
        self,
        status: Optional[ClaimStatus] = None,
        readiness: Optional[ReadinessStatus] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """
        List claims with optional filtering.

        Args:
            status: Filter by lifecycle status
            readiness: Filter by readiness
            limit: Maximum results
            offset: Pagination offset

        Returns:
            List of claim data
        """
        claims = await self.claims.get_all(status=status, readiness=readiness, limit=limit, offset=offset)
        return await self._claim_views(claims)

    async def count_claims(self, status: Optional[ClaimStatus] = None) -> int:
        return await self.claims.count(status=status)

    async def get_recent_claims(self, limit: int = 10) -> List[Dict[str, Any]]:
        claims = await self.claims.get_recent(limit=limit)
        return await self._claim_views(claims)

    async def get_timeline(self, claim_id: str) -> List[Dict[str, Any]]:
        claim = await self._get_claim(claim_id)
        events = await self.event_log.get_events(claim.id)
        return [event.to_dict() for event in events]

    async def get_explanation(self, claim_id: str) -> Dict[str, Any]:
        """
        Get the explanation stored at the claim's last successful scoring.

        Args:
            claim_id: Claim identifier

        Returns:
            Score, readiness and explanation (explanation is None if never scored)
        """
        claim = await self._get_claim(claim_id)
        return {
            "claim_id": claim.id,
            "scored": claim.risk_score is not None,
            "risk_score": claim.risk_score,
            "readiness_status": claim.readiness_status,
            "scored_at": claim.scored_at.isoformat() if claim.scored_at else None,
            "explanation": claim.risk_explanation,
        }

    async def get_claim_patient(self, claim_id: str) -> Optional[Dict[str, Any]]:
        claim = await self._get_claim(claim_id)
        patient = await self.leads.get_patient_by_id(claim.patient_id)
        return patient.to_dict() if patient else None

    async def _get_claim(self, claim_id: str) -> ClaimModel:
        claim = await self.claims.get_by_id(claim_id)
        if not claim:
            raise ResourceNotFoundError("Claim", claim_id)
        return claim

    async def _claim_views(self, claims: List[ClaimModel]) -> List[Dict[str, Any]]:
        events_by_claim = await self.event_log.get_events_for_claims(c.id for c in claims)
        now = datetime.now(timezone.utc)
        return [
            self._claim_view(
                claim,
                detect_stuck(events_by_claim.get(claim.id, []), now=now, threshold_days=self.stuck_threshold_days),
            )
            for claim in claims
        ]

    @staticmethod
    def _claim_view(claim: ClaimModel, stuck: StuckStatus) -> Dict[str, Any]:
        status = ClaimStatus(claim.status)
        readiness = ReadinessStatus(claim.readiness_status) if claim.readiness_status else None
        data = claim.to_dict()
        data["stuck"] = stuck.to_dict()
        data["allowed_transitions"] = [s.value for s in allowed_transitions(status)]
        data["can_submit"] = can_submit(status, readiness)
        return data
