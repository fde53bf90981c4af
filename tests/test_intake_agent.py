"""
Tests for CallIntakeAgent - transcript extraction and qualification.
"""

import pytest

from claimshield.agents.intake_agent import CallIntakeAgent, ExtractedCallData
from claimshield.models.enums import CallDisposition


@pytest.fixture
def agent():
    return CallIntakeAgent()


class TestExtraction:

    def test_qualifying_transcript(self, agent, qualifying_transcript):
        data = agent.extract(qualifying_transcript)
        assert data.insurance_carrier == "Aetna"
        assert data.member_id == "AET12345678"
        assert data.state == "CA"
        assert data.service_type == "Outpatient"
        assert data.consent is True
        assert data.qualified is True
        assert agent.disposition(data, qualifying_transcript) == CallDisposition.QUALIFIED

    def test_specific_service_wins(self, agent):
        data = agent.extract("Looking for an intensive outpatient program in New York")
        assert data.service_type == "Intensive Outpatient"
        assert data.state == "NY"

    def test_carrier_aliases(self, agent):
        assert agent.extract("I'm covered by BCBS").insurance_carrier == "Blue Cross Blue Shield"
        assert agent.extract("My plan is through United").insurance_carrier == "UnitedHealthcare"

    def test_member_id_skips_filler_words(self, agent):
        data = agent.extract("Call me at 5551234567, my card says HUM-98765432")
        assert data.member_id == "HUM-98765432"

    def test_refusal_beats_consent_phrase(self, agent):
        data = agent.extract("I have Cigna but I do not consent to that. I agree to call back.")
        assert data.consent is False
        assert data.qualified is False
        assert agent.disposition(data, "transcript") == CallDisposition.UNQUALIFIED

    def test_carrier_without_consent_needs_follow_up(self, agent):
        text = "I have Humana insurance."
        data = agent.extract(text)
        assert data.qualified is False
        assert agent.disposition(data, text) == CallDisposition.NEEDS_FOLLOW_UP

    def test_empty_transcript(self, agent):
        data = agent.extract("")
        assert data == ExtractedCallData(notes="Intake call transcript with 0 exchanges")
        assert agent.disposition(data, "") == CallDisposition.NO_ANSWER


class TestMergeAndSummary:

    def test_overrides_win_and_requalify(self, agent):
        extracted = agent.extract("I have Aetna.")
        merged = agent.merge(extracted, {"consent": True, "state": "TX", "memberId": None})
        assert merged.state == "TX"
        assert merged.insurance_carrier == "Aetna"
        assert merged.qualified is True

    def test_explicit_qualified_override(self, agent, qualifying_transcript):
        extracted = agent.extract(qualifying_transcript)
        merged = agent.merge(extracted, {"qualified": False})
        assert merged.qualified is False

    def test_summary_lists_found_fields(self, agent, qualifying_transcript):
        data = agent.extract(qualifying_transcript)
        summary = agent.summarize(data, qualifying_transcript)
        assert summary.startswith("Patient intake completed.")
        assert "Member ID: AET12345678" in summary
        assert "Consent obtained for VOB" in summary

    def test_summary_without_fields(self, agent):
        text = "Hello?\nHello, anyone there?"
        summary = agent.summarize(agent.extract(text), text)
        assert summary == "Intake call with 2 exchanges. Manual review recommended."

    def test_to_dict_uses_camel_case(self, agent, qualifying_transcript):
        payload = agent.extract(qualifying_transcript).to_dict()
        assert payload["insuranceCarrier"] == "Aetna"
        assert payload["serviceType"] == "Outpatient"
        assert ExtractedCallData.from_dict(payload).member_id == "AET12345678"
