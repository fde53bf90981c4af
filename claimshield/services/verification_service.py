"""Verification service: runs benefit verifications through the eligibility gateway."""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.models.enums import VerificationStatus
from claimshield.models.exceptions import (
    AuthenticationError,
    ResourceNotFoundError,
    VerificationInProgressError,
    VerificationServiceError,
)
from claimshield.verification.gateway import EligibilityGateway, VerificationRequest
from claimshield.verification.response_mapper import map_vob_response
from claimshield.verification.verifytx_client import VerifyTxClient, VerifyTxConfig
from claimshield.mock_services.eligibility import MockEligibilityGateway
from claimshield.mock_services.scenarios import get_scenario_manager
from claimshield.services.lead_service import LeadService
from claimshield.storage.models import LeadModel, VobVerificationModel
from claimshield.storage.lead_repository import LeadRepository
from claimshield.config.settings import get_settings
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


class VerificationLeases:
    """
    At most one in-flight verification per lead.

    Acquisition never waits: a second request for a lead that is already
    being verified is refused. Scoped to this process.
    """

    def __init__(self):
        self._held: Set[str] = set()

    def is_held(self, lead_id: str) -> bool:
        return lead_id in self._held

    @asynccontextmanager
    async def acquire(self, lead_id: str) -> AsyncIterator[None]:
        """
        Hold the lease for a lead for the duration of the block.

        Raises:
            VerificationInProgressError: If the lease is already held
        """
        if lead_id in self._held:
            logger.warning("Verification already in progress", lead_id=lead_id)
            raise VerificationInProgressError(lead_id)
        self._held.add(lead_id)
        try:
            yield
        finally:
            self._held.discard(lead_id)


# Global instances
_leases: Optional[VerificationLeases] = None
_gateway: Optional[EligibilityGateway] = None


def get_verification_leases() -> VerificationLeases:
    """Get or create the global lease registry."""
    global _leases
    if _leases is None:
        _leases = VerificationLeases()
    return _leases


def get_eligibility_gateway() -> EligibilityGateway:
    """
    Get or create the global eligibility gateway.

    VerifyTX when credentials are configured, otherwise the scenario-driven
    mock when mock fallback is enabled.

    Raises:
        AuthenticationError: If neither is available
    """
    global _gateway
    if _gateway is None:
        settings = get_settings()
        if settings.verifytx_configured:
            _gateway = VerifyTxClient(VerifyTxConfig.from_settings(settings))
        elif settings.use_mock_eligibility:
            mock = MockEligibilityGateway()
            get_scenario_manager().register_gateway("eligibility", mock)
            _gateway = mock
        else:
            raise AuthenticationError(
                "No eligibility gateway available: configure VerifyTX credentials or enable USE_MOCK_ELIGIBILITY"
            )
        logger.info("Eligibility gateway selected", gateway=_gateway.name)
    return _gateway


async def close_eligibility_gateway() -> None:
    """Close and forget the global gateway."""
    global _gateway
    if _gateway is not None:
        await _gateway.close()
        logger.info("Eligibility gateway closed", gateway=_gateway.name)
    _gateway = None


class VerificationService:
    """
    Service for benefit verification (VOB) attempts.
    Every attempt is stored, including failed ones, and each completed
    attempt refreshes the lead's VOB completeness.
    """

    def __init__(
        self,
        session: AsyncSession,
        gateway: Optional[EligibilityGateway] = None,
        leases: Optional[VerificationLeases] = None,
        lead_service: Optional[LeadService] = None
    ):
        """
        Initialize verification service.

        Args:
            session: SQLAlchemy async session
            gateway: Eligibility gateway (defaults to the global one)
            leases: Lease registry (defaults to the global one)
            lead_service: Lead service used to refresh VOB completeness
        """
        self.session = session
        self.repository = LeadRepository(session)
        self.gateway = gateway or get_eligibility_gateway()
        self.leases = leases or get_verification_leases()
        self.lead_service = lead_service or LeadService(session)

    async def verify_lead(self, lead_id: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run a benefit verification for a lead.

        Args:
            lead_id: Lead identifier
            overrides: Request fields that take precedence over lead and
                patient data (first_name, last_name, date_of_birth,
                member_id, payer_id, payer_name, gender)

        Returns:
            Stored verification plus the lead's refreshed VOB completeness

        Raises:
            ResourceNotFoundError: If the lead does not exist
            ValueError: If subscriber details needed by the payer are missing
            VerificationInProgressError: If the lead is already being verified
            VerificationServiceError: If the eligibility API fails (attempt is still stored)
        """
        lead = await self._get_lead(lead_id)

        async with self.leases.acquire(lead_id):
            request = await self._build_request(lead, overrides or {})
            patient = await self.repository.get_patient(lead_id)
            logger.info(
                "Verification started",
                lead_id=lead_id,
                payer_id=request.payer_id,
                gateway=self.gateway.name,
            )

            try:
                payload = await self.gateway.verify(request)
            except VerificationServiceError as e:
                await self._store_failed_attempt(lead, request, e, patient.id if patient else None)
                raise

            verification = await self.repository.add_verification(lead_id, {
                **map_vob_response(payload, request),
                "patient_id": patient.id if patient else None,
                "gateway": self.gateway.name,
            })
            completeness = await self.lead_service.refresh_vob(lead)

        logger.info(
            "Verification completed",
            lead_id=lead_id,
            verification_id=verification.id,
            status=verification.status,
            vob_score=completeness.score,
        )
        return self._result(verification, completeness.to_dict())

    async def reverify(self, verification_id: str) -> Dict[str, Any]:
        """
        Ask the payer to re-run an earlier verification. The result is stored as a new attempt.

        Args:
            verification_id: Stored verification to re-run

        Returns:
            New verification plus the lead's refreshed VOB completeness
        """
        previous = await self._get_verification(verification_id)
        if not previous.external_vob_id:
            raise ValueError(f"Verification {verification_id} never reached the payer and cannot be re-run")

        lead = await self._get_lead(previous.lead_id)
        async with self.leases.acquire(lead.id):
            try:
                payload = await self.gateway.reverify(previous.external_vob_id)
            except VerificationServiceError as e:
                await self._store_failed_attempt(
                    lead,
                    VerificationRequest(
                        first_name=lead.first_name or "",
                        last_name=lead.last_name or "",
                        date_of_birth=lead.date_of_birth or "",
                        member_id=previous.member_id or "",
                        payer_id=previous.payer_id or "",
                        payer_name=previous.payer_name,
                    ),
                    e,
                    previous.patient_id,
                    external_vob_id=previous.external_vob_id,
                )
                raise

            verification = await self.repository.add_verification(lead.id, {
                **map_vob_response(payload),
                "external_vob_id": payload.get("_id") or previous.external_vob_id,
                "payer_id": payload.get("payer_id") or previous.payer_id,
                "payer_name": payload.get("payer_name") or previous.payer_name,
                "member_id": payload.get("member_id") or previous.member_id,
                "patient_id": previous.patient_id,
                "gateway": self.gateway.name,
            })
            completeness = await self.lead_service.refresh_vob(lead)

        logger.info("Reverification completed", lead_id=lead.id, verification_id=verification.id)
        return self._result(verification, completeness.to_dict())

    async def export_pdf(self, verification_id: str) -> Dict[str, Any]:
        """
        Get the payer's PDF export link for a verification.

        Args:
            verification_id: Stored verification

        Returns:
            Dict with verification_id and url
        """
        verification = await self._get_verification(verification_id)
        if not verification.external_vob_id:
            raise ValueError(f"Verification {verification_id} has no payer record to export")

        result = await self.gateway.export_pdf(verification.external_vob_id)
        url = result.get("url") or result.get("pdf_url") or result.get("link")
        return {"verification_id": verification_id, "external_vob_id": verification.external_vob_id, "url": url}

    async def search_payers(self, query: str) -> List[Dict[str, Any]]:
        return await self.gateway.search_payers(query)

    async def _build_request(self, lead: LeadModel, overrides: Dict[str, Any]) -> VerificationRequest:
        patient = await self.repository.get_patient(lead.id)

        def pick(key: str, *fallbacks: Optional[str]) -> Optional[str]:
            value = overrides.get(key)
            if value:
                return value
            for fallback in fallbacks:
                if fallback:
                    return fallback
            return None

        carrier = pick("payer_name", patient.insurance_carrier if patient else None, lead.insurance_carrier)
        payer_id = overrides.get("payer_id")
        if not payer_id and carrier:
            matches = await self.gateway.search_payers(carrier)
            if matches:
                payer_id = matches[0].get("payer_id") or matches[0].get("id")
                carrier = matches[0].get("payer_name") or matches[0].get("name") or carrier

        fields = {
            "first_name": pick("first_name", lead.first_name),
            "last_name": pick("last_name", lead.last_name),
            "date_of_birth": pick("date_of_birth", patient.date_of_birth if patient else None, lead.date_of_birth),
            "member_id": pick("member_id", patient.member_id if patient else None, lead.member_id),
            "payer_id": payer_id,
        }
        missing = [key for key, value in fields.items() if not value]
        if missing:
            raise ValueError(f"Cannot verify benefits, missing: {', '.join(missing)}")

        return VerificationRequest(
            payer_name=carrier,
            gender=overrides.get("gender"),
            phone=lead.phone,
            email=lead.email,
            **fields,
        )

    async def _store_failed_attempt(
        self,
        lead: LeadModel,
        request: VerificationRequest,
        error: VerificationServiceError,
        patient_id: Optional[str],
        external_vob_id: Optional[str] = None
    ) -> None:
        """Record an error attempt and commit it ahead of the request rollback."""
        await self.repository.add_verification(lead.id, {
            "patient_id": patient_id,
            "gateway": self.gateway.name,
            "external_vob_id": external_vob_id,
            "payer_id": request.payer_id,
            "payer_name": request.payer_name,
            "member_id": request.member_id,
            "status": VerificationStatus.ERROR.value,
            "error_message": str(error),
        })
        await self.lead_service.refresh_vob(lead)
        await self.session.commit()
        logger.error(
            "Verification failed",
            lead_id=lead.id,
            upstream_status=error.status_code,
            error=error.message,
        )

    @staticmethod
    def _result(verification: VobVerificationModel, completeness: Dict[str, Any]) -> Dict[str, Any]:
        data = verification.to_dict()
        data["vob"] = completeness
        return data

    async def _get_lead(self, lead_id: str) -> LeadModel:
        lead = await self.repository.get_by_id(lead_id)
        if not lead:
            raise ResourceNotFoundError("Lead", lead_id)
        return lead

    async def _get_verification(self, verification_id: str) -> VobVerificationModel:
        verification = await self.repository.get_verification(verification_id)
        if not verification:
            raise ResourceNotFoundError("Verification", verification_id)
        return verification
