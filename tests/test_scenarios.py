"""
Tests for the scenario manager that drives the mock eligibility gateway.
"""

import pytest

from claimshield.mock_services.eligibility import MockEligibilityGateway
from claimshield.mock_services.scenarios import Scenario, ScenarioManager
from claimshield.models.exceptions import VerificationServiceError
from claimshield.verification.gateway import VerificationRequest
from claimshield.verification.response_mapper import map_vob_response


@pytest.fixture
def vob_request():
    return VerificationRequest(
        first_name="Maria",
        last_name="Garcia",
        date_of_birth="1985-04-12",
        member_id="AET12345678",
        payer_id="60054",
        payer_name="Aetna",
    )


class TestScenarioManager:

    async def test_registered_gateway_follows_scenario(self, vob_request):
        manager = ScenarioManager()
        gateway = MockEligibilityGateway("upstream_error")
        manager.register_gateway("eligibility", gateway)

        # Registration applies the active scenario
        payload = await gateway.verify(vob_request)
        assert map_vob_response(payload, vob_request)["status"] == "verified"

        config = manager.set_scenario(Scenario.PAYER_PENDING)
        assert config.gateway_scenario == "pending"
        assert config.expected_readiness is None
        payload = await gateway.verify(vob_request)
        assert map_vob_response(payload, vob_request)["status"] == "pending"

        manager.set_scenario(Scenario.UPSTREAM_ERROR)
        with pytest.raises(VerificationServiceError):
            await gateway.verify(vob_request)

    def test_list_marks_current(self):
        manager = ScenarioManager(Scenario.INACTIVE_POLICY)
        scenarios = {s["id"]: s for s in manager.list_scenarios()}
        assert len(scenarios) == len(Scenario)
        assert scenarios["inactive_policy"]["is_current"] is True
        assert scenarios["inactive_policy"]["expected_readiness"] == "RED"
        assert scenarios["active_in_network"]["is_current"] is False
