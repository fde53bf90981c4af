"""Mock eligibility gateway returning VerifyTX-shaped payloads."""
from datetime import datetime, timezone
from typing import Any, Dict, List
from uuid import uuid4

from claimshield.models.exceptions import VerificationServiceError
from claimshield.verification.gateway import EligibilityGateway, VerificationRequest
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


MOCK_PAYERS: List[Dict[str, Any]] = [
    {"payer_id": "60054", "payer_name": "Aetna", "featured": True},
    {"payer_id": "00060", "payer_name": "Blue Cross Blue Shield", "featured": True},
    {"payer_id": "00227", "payer_name": "Anthem", "featured": False},
    {"payer_id": "62308", "payer_name": "Cigna", "featured": True},
    {"payer_id": "61101", "payer_name": "Humana", "featured": False},
    {"payer_id": "87726", "payer_name": "UnitedHealthcare", "featured": True},
    {"payer_id": "00430", "payer_name": "Medicare", "featured": False},
    {"payer_id": "SKTX0", "payer_name": "Medicaid", "featured": False},
    {"payer_id": "99726", "payer_name": "TRICARE", "featured": False},
]


def _plan_benefit(network_key: str, copay: str, coinsurance: str, notes: List[str]) -> Dict[str, Any]:
    return {
        "name": "Health Benefit Plan Coverage",
        "type": "30",
        "status": "Active Coverage",
        "description": notes,
        "deductibles": [{"total": "1500", "amount": "450", "level": "Individual"}],
        "outOfPocket": [{"total": "6000", "amount": "1200", "level": "Individual"}],
        "coPayment": [{"amount": copay}],
        "coInsurance": [{"amount": coinsurance}],
        "noNetwork": network_key == "no_network",
    }


class MockEligibilityGateway(EligibilityGateway):
    """
    Scenario-driven stand-in for VerifyTX.
    Used when no VerifyTX credentials are configured, and in tests.
    """

    def __init__(self, scenario: str = "active_in_network"):
        self._scenario = scenario
        self._vob_store: Dict[str, Dict[str, Any]] = {}
        logger.info("Mock eligibility gateway initialized", scenario=scenario)

    @property
    def name(self) -> str:
        return "mock"

    def set_scenario(self, scenario: str) -> None:
        self._scenario = scenario
        logger.info("Mock eligibility scenario changed", scenario=scenario)

    async def verify(self, request: VerificationRequest) -> Dict[str, Any]:
        if self._scenario == "upstream_error":
            raise VerificationServiceError(503, "Payer connection unavailable")

        vob_id = f"VOB-{uuid4().hex[:12].upper()}"
        payload = self._build_payload(vob_id, request)
        self._vob_store[vob_id] = {"request": request, "payload": payload}
        logger.info("Mock VOB created", vob_id=vob_id, payer=request.payer_name, scenario=self._scenario)
        return payload

    async def reverify(self, vob_id: str) -> Dict[str, Any]:
        stored = self._vob_store.get(vob_id)
        if not stored:
            raise VerificationServiceError(404, f"VOB not found: {vob_id}")
        if self._scenario == "upstream_error":
            raise VerificationServiceError(503, "Payer connection unavailable")
        payload = self._build_payload(vob_id, stored["request"])
        stored["payload"] = payload
        return payload

    async def export_pdf(self, vob_id: str) -> Dict[str, Any]:
        if vob_id not in self._vob_store:
            raise VerificationServiceError(404, f"VOB not found: {vob_id}")
        return {"url": f"https://mock.verifytx.local/vobs/{vob_id}/export.pdf"}

    async def search_payers(self, query: str) -> List[Dict[str, Any]]:
        needle = (query or "").strip().lower()
        return [p for p in MOCK_PAYERS if needle in p["payer_name"].lower()]

    def _build_payload(self, vob_id: str, request: VerificationRequest) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "_id": vob_id,
            "first_name": request.first_name.upper(),
            "last_name": request.last_name.upper(),
            "date_of_birth": request.date_of_birth,
            "member_id": request.member_id,
            "payer_id": request.payer_id,
            "payer_name": request.payer_name,
            "client_type": request.client_type,
            "status": "complete",
            "created_at": now.isoformat(),
        }

        if self._scenario == "subscriber_not_found":
            payload["error"] = "Subscriber/Insured Not Found"
            payload["error_status"] = "75"
            return payload

        if self._scenario == "pending":
            payload["status"] = "pending"
            payload["cache"] = {"status": "Pending"}
            return payload

        coverage = "Active Coverage"
        notes: List[str] = []
        benefits: Dict[str, Any] = {}
        if self._scenario == "inactive_policy":
            coverage = "Inactive"
            benefits["no_network"] = []
        elif self._scenario == "out_of_network":
            benefits["out_of_network"] = [_plan_benefit("out_of_network", "75", "0.4", notes)]
        else:
            if self._scenario == "prior_auth_required":
                notes = ["Prior authorization required for behavioral health services"]
            else:
                notes = ["No prior authorization required for outpatient services"]
            benefits["in_network"] = [_plan_benefit("in_network", "30", "0.2", notes)]
            benefits["out_of_network"] = [_plan_benefit("out_of_network", "75", "0.4", [])]

        payload["cache"] = {
            "status": "Complete",
            "reference_number": f"REF{vob_id[-8:]}",
            "insurance_details": {
                "coverage": coverage,
                "insurance_type": {"label": "PPO", "code": "PR"},
                "coverage_dates": {"start": f"{now.year}-01-01", "end": f"{now.year}-12-31"},
                "plan_sponsor": f"{request.payer_name or 'Payer'} Choice Plus",
                "group_number": "GRP-100245",
                "notes": [{"type": "payer", "message": n} for n in notes],
            },
            "benefits": benefits,
        }
        return payload
