"""
Tests for LeadService and VerificationService - intake, VOB and claim packets.
"""

import httpx
import pytest

from claimshield.models.enums import LeadPriority
from claimshield.models.exceptions import (
    ResourceNotFoundError,
    VerificationInProgressError,
    VerificationServiceError,
    VobIncompleteError,
)
from claimshield.services.verification_service import VerificationService
from claimshield.verification.verifytx_client import VerifyTxClient, VerifyTxConfig


@pytest.fixture
async def new_lead(lead_service):
    return await lead_service.create_lead({
        "name": "Maria Garcia",
        "date_of_birth": "1985-04-12",
        "phone": "555-201-3344",
        "source": "website",
    })


class TestLeads:

    async def test_create_splits_name(self, new_lead):
        assert new_lead["first_name"] == "Maria"
        assert new_lead["last_name"] == "Garcia"
        assert new_lead["status"] == "new"
        assert new_lead["priority"] == "P2"
        assert new_lead["vob_score"] == 0
        assert new_lead["vob_status"] == "not_started"

    async def test_name_required(self, lead_service):
        with pytest.raises(ValueError):
            await lead_service.create_lead({"name": "  "})

    async def test_update_recomputes_vob(self, lead_service, new_lead):
        lead = await lead_service.update_lead(new_lead["lead_id"], {
            "insurance_carrier": "Aetna",
            "member_id": "AET12345678",
            "state": "CA",
            "vob_consent": True,
            "vob_score": 100,
        })
        assert lead["vob_score"] == 80
        assert lead["vob_missing_fields"] == ["serviceType"]
        assert lead["vob_status"] == "in_progress"

    async def test_list_and_filter(self, lead_service, new_lead):
        await lead_service.create_lead({"name": "Urgent Case", "priority": "P0"})
        assert len(await lead_service.list_leads()) == 2
        urgent = await lead_service.list_leads(priority=LeadPriority.P0)
        assert [lead["name"] for lead in urgent] == ["Urgent Case"]
        assert await lead_service.count_leads() == 2

    async def test_unknown_lead(self, lead_service):
        with pytest.raises(ResourceNotFoundError):
            await lead_service.get_lead("missing")


class TestCalls:

    async def test_qualifying_call(self, lead_service, new_lead, qualifying_transcript):
        call = await lead_service.record_call(new_lead["lead_id"], transcript=qualifying_transcript)
        assert call["disposition"] == "qualified"
        assert call["lead_status"] == "qualified"
        assert call["extracted_data"]["memberId"] == "AET12345678"
        assert call["vob"]["score"] == 100

        patient = await lead_service.get_patient(new_lead["lead_id"])
        assert patient["insurance_carrier"] == "Aetna"
        assert patient["state"] == "CA"
        assert patient["date_of_birth"] == "1985-04-12"

        lead = await lead_service.get_lead(new_lead["lead_id"])
        assert lead["attempt_count"] == 1
        assert lead["last_outcome"] == "qualified"

    async def test_non_qualifying_call(self, lead_service, new_lead):
        call = await lead_service.record_call(new_lead["lead_id"], transcript="I have Cigna, call me later.")
        assert call["disposition"] == "needs_follow_up"
        assert call["lead_status"] == "contacted"
        assert call["vob"]["status"] == "in_progress"
        assert await lead_service.get_patient(new_lead["lead_id"]) is None

    async def test_supplied_values_override_extraction(self, lead_service, new_lead):
        call = await lead_service.record_call(
            new_lead["lead_id"],
            transcript="I have Cigna.",
            extracted_data={"consent": True, "state": "TX"},
            summary="Manual summary",
        )
        assert call["summary"] == "Manual summary"
        assert call["lead_status"] == "qualified"
        assert call["extracted_data"]["state"] == "TX"

    async def test_calls_listed(self, lead_service, new_lead):
        await lead_service.record_call(new_lead["lead_id"], transcript="Hello?")
        await lead_service.record_call(new_lead["lead_id"], transcript="")
        calls = await lead_service.list_calls(new_lead["lead_id"])
        assert len(calls) == 2
        assert {c["disposition"] for c in calls} == {"needs_follow_up", "no_answer"}


class TestVerification:

    async def test_verified_lead(self, lead_service, verified_lead):
        latest = await lead_service.get_latest_verification(verified_lead["lead_id"])
        assert latest["status"] == "verified"
        assert latest["payer_id"] == "60054"
        assert latest["network_status"] == "in_network"
        assert latest["gateway"] == "mock"
        assert verified_lead["vob_status"] == "verified"

    async def test_missing_subscriber_details(self, lead_service, verification_service):
        lead = await lead_service.create_lead({"name": "Nobody"})
        with pytest.raises(ValueError):
            await verification_service.verify_lead(lead["lead_id"])

    async def test_overrides_supply_details(self, lead_service, verification_service):
        lead = await lead_service.create_lead({"name": "Ana Ruiz"})
        result = await verification_service.verify_lead(lead["lead_id"], {
            "date_of_birth": "1979-09-30",
            "member_id": "CIG99887766",
            "payer_name": "Cigna",
        })
        assert result["status"] == "verified"
        assert result["payer_name"] == "Cigna"
        assert result["vob"]["field_sources"]["insuranceCarrier"] == "verification"

    async def test_failed_attempt_is_stored(
        self, lead_service, verification_service, mock_gateway, new_lead, qualifying_transcript
    ):
        await lead_service.record_call(new_lead["lead_id"], transcript=qualifying_transcript)
        mock_gateway.set_scenario("upstream_error")

        with pytest.raises(VerificationServiceError) as exc_info:
            await verification_service.verify_lead(new_lead["lead_id"])
        assert exc_info.value.status_code == 503

        attempts = await lead_service.list_verifications(new_lead["lead_id"])
        assert len(attempts) == 1
        assert attempts[0]["status"] == "error"
        assert "Payer connection unavailable" in attempts[0]["error_message"]

    async def test_unreachable_payer_attempt_is_stored(
        self, session, lead_service, leases, new_lead, qualifying_transcript
    ):
        await lead_service.record_call(new_lead["lead_id"], transcript=qualifying_transcript)

        def handler(request):
            if request.url.path == "/oauth/token":
                return httpx.Response(200, json={"access_token": "token-1", "expires_in": 3600})
            if request.url.path == "/payers/search":
                return httpx.Response(200, json={"data": [{"payer_id": "60054", "payer_name": "Aetna"}]})
            raise httpx.ReadTimeout("read timed out", request=request)

        config = VerifyTxConfig(client_id="client", client_secret="secret", base_url="https://verifytx.test")
        async with httpx.AsyncClient(
            base_url=config.base_url, transport=httpx.MockTransport(handler)
        ) as http_client:
            service = VerificationService(
                session,
                gateway=VerifyTxClient(config, http_client=http_client),
                leases=leases,
                lead_service=lead_service,
            )
            with pytest.raises(VerificationServiceError) as exc_info:
                await service.verify_lead(new_lead["lead_id"])

        assert exc_info.value.status_code == 504
        attempts = await lead_service.list_verifications(new_lead["lead_id"])
        assert [a["status"] for a in attempts] == ["error"]
        assert attempts[0]["gateway"] == "verifytx"
        assert "timed out" in attempts[0]["error_message"]

    async def test_one_verification_per_lead(self, verification_service, leases, new_lead):
        async with leases.acquire(new_lead["lead_id"]):
            with pytest.raises(VerificationInProgressError):
                await verification_service.verify_lead(new_lead["lead_id"])
        assert not leases.is_held(new_lead["lead_id"])

    async def test_reverify_adds_attempt(self, lead_service, verification_service, mock_gateway, verified_lead):
        first = await lead_service.get_latest_verification(verified_lead["lead_id"])
        mock_gateway.set_scenario("prior_auth_required")

        result = await verification_service.reverify(first["verification_id"])

        assert result["verification_id"] != first["verification_id"]
        assert result["external_vob_id"] == first["external_vob_id"]
        assert result["prior_auth_required"] is True
        assert len(await lead_service.list_verifications(verified_lead["lead_id"])) == 2

    async def test_export_pdf(self, lead_service, verification_service, verified_lead):
        latest = await lead_service.get_latest_verification(verified_lead["lead_id"])
        export = await verification_service.export_pdf(latest["verification_id"])
        assert export["url"].endswith("/export.pdf")

    async def test_sync_patient_uses_verified_plan(self, lead_service, verified_lead):
        patient = await lead_service.sync_patient(verified_lead["lead_id"])
        assert patient["plan_type"] == "PPO"
        assert patient["insurance_carrier"] == "Aetna"

    async def test_payer_search(self, verification_service):
        payers = await verification_service.search_payers("blue")
        assert [p["payer_name"] for p in payers] == ["Blue Cross Blue Shield"]


class TestClaimPacket:

    async def test_packet_from_verified_lead(self, lead_service, verified_lead):
        packet = await lead_service.create_claim_packet(verified_lead["lead_id"])
        claim = packet["claim"]
        assert claim["payer"] == "Aetna"
        assert claim["cpt_codes"] == ["90834"]
        assert claim["amount"] == 1200.0
        assert claim["lead_id"] == verified_lead["lead_id"]
        assert packet["encounter_id"] == claim["encounter_id"]

        lead = await lead_service.get_lead(verified_lead["lead_id"])
        assert lead["status"] == "converted"

    async def test_packet_defaults_follow_service(self, lead_service, verified_lead):
        packet = await lead_service.create_claim_packet(verified_lead["lead_id"], service_type="Residential")
        assert packet["claim"]["cpt_codes"] == ["H0018"]
        assert packet["claim"]["amount"] == 24000.0

    async def test_packet_requires_complete_vob(self, lead_service, new_lead):
        with pytest.raises(VobIncompleteError):
            await lead_service.create_claim_packet(new_lead["lead_id"])
