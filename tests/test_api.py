"""
API tests: the FastAPI app over an in-memory database and the mock eligibility gateway.
"""

import pytest

from tests.conftest import QUALIFYING_TRANSCRIPT


API = "/api/v1"


async def _qualified_lead(client, name="Maria Garcia"):
    response = await client.post(f"{API}/leads", json={"name": name, "date_of_birth": "1985-04-12"})
    assert response.status_code == 201
    lead_id = response.json()["lead_id"]
    response = await client.post(f"{API}/leads/{lead_id}/calls", json={"transcript": QUALIFYING_TRANSCRIPT})
    assert response.status_code == 201
    return lead_id


async def _green_claim(client):
    lead_id = await _qualified_lead(client)
    assert (await client.post(f"{API}/leads/{lead_id}/verifications")).status_code == 201
    response = await client.post(f"{API}/leads/{lead_id}/claim-packet")
    assert response.status_code == 201
    return response.json()["claim_id"]


class TestService:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "eligibility_gateway" in data["components"]

    async def test_correlation_id_echoed(self, client):
        response = await client.get("/", headers={"X-Correlation-ID": "abc123"})
        assert response.headers["X-Correlation-ID"] == "abc123"
        generated = await client.get("/")
        assert len(generated.headers["X-Correlation-ID"]) == 16

    async def test_scenarios(self, client):
        response = await client.get(f"{API}/scenarios")
        assert response.status_code == 200
        assert any(s["id"] == "active_in_network" for s in response.json()["scenarios"])

        response = await client.post(f"{API}/scenarios/not_a_scenario")
        assert response.status_code == 400


class TestLeadsApi:

    async def test_intake_to_claim(self, client):
        lead_id = await _qualified_lead(client)

        vob = (await client.get(f"{API}/leads/{lead_id}/vob")).json()
        assert vob["score"] == 100
        assert vob["missing_fields"] == []

        response = await client.post(f"{API}/leads/{lead_id}/verifications")
        assert response.status_code == 201
        assert response.json()["status"] == "verified"

        latest = await client.get(f"{API}/leads/{lead_id}/verifications/latest")
        assert latest.json()["payer_name"] == "Aetna"

        response = await client.post(f"{API}/leads/{lead_id}/claim-packet", json={"service_type": "Detox"})
        assert response.status_code == 201
        packet = response.json()
        assert packet["claim"]["cpt_codes"] == ["H0010"]
        assert packet["claim"]["readiness_status"] == "GREEN"

        lead = (await client.get(f"{API}/leads/{lead_id}")).json()
        assert lead["status"] == "converted"

    async def test_list_filters(self, client):
        await _qualified_lead(client)
        await client.post(f"{API}/leads", json={"name": "Walk In", "priority": "P0"})

        data = (await client.get(f"{API}/leads", params={"status": "qualified"})).json()
        assert data["total"] == 1
        assert data["leads"][0]["name"] == "Maria Garcia"

        assert (await client.get(f"{API}/leads", params={"status": "bogus"})).status_code == 400

    async def test_patch_lead(self, client):
        lead_id = (await client.post(f"{API}/leads", json={"name": "Ana Ruiz"})).json()["lead_id"]
        response = await client.patch(f"{API}/leads/{lead_id}", json={"state": "TX", "insurance_carrier": "Cigna"})
        assert response.status_code == 200
        assert response.json()["vob_score"] == 40

    async def test_calls_listed(self, client):
        lead_id = await _qualified_lead(client)
        calls = (await client.get(f"{API}/leads/{lead_id}/calls")).json()
        assert len(calls) == 1
        assert calls[0]["disposition"] == "qualified"

    async def test_patient_sync(self, client):
        lead_id = await _qualified_lead(client)
        patient = (await client.get(f"{API}/leads/{lead_id}/patient")).json()
        assert patient["member_id"] == "AET12345678"

        response = await client.post(f"{API}/leads/{lead_id}/patient/sync")
        assert response.status_code == 200

    async def test_not_found(self, client):
        assert (await client.get(f"{API}/leads/missing")).status_code == 404
        assert (await client.post(f"{API}/leads/missing/calls", json={"transcript": "hi"})).status_code == 404

    async def test_no_patient_or_verification_yet(self, client):
        lead_id = (await client.post(f"{API}/leads", json={"name": "Nobody Yet"})).json()["lead_id"]
        assert (await client.get(f"{API}/leads/{lead_id}/patient")).status_code == 404
        assert (await client.get(f"{API}/leads/{lead_id}/verifications/latest")).status_code == 404

    async def test_claim_packet_requires_vob(self, client):
        lead_id = (await client.post(f"{API}/leads", json={"name": "Nobody Yet"})).json()["lead_id"]
        response = await client.post(f"{API}/leads/{lead_id}/claim-packet")
        assert response.status_code == 400
        assert "missing" in response.json()["detail"]

    async def test_invalid_body(self, client):
        response = await client.post(f"{API}/leads", json={"phone": "555"})
        assert response.status_code == 422


class TestVerificationApi:

    async def test_upstream_failure(self, client, mock_gateway):
        lead_id = await _qualified_lead(client)
        mock_gateway.set_scenario("upstream_error")

        response = await client.post(f"{API}/leads/{lead_id}/verifications")

        assert response.status_code == 502
        assert response.json()["detail"] == {
            "message": "Eligibility verification failed",
            "upstream_status": 503,
            "upstream_message": "Payer connection unavailable",
        }
        attempts = (await client.get(f"{API}/leads/{lead_id}/verifications")).json()
        assert [a["status"] for a in attempts] == ["error"]

    async def test_verification_in_progress(self, client, leases):
        lead_id = await _qualified_lead(client)
        async with leases.acquire(lead_id):
            response = await client.post(f"{API}/leads/{lead_id}/verifications")
        assert response.status_code == 409

    async def test_missing_details(self, client):
        lead_id = (await client.post(f"{API}/leads", json={"name": "Nobody Yet"})).json()["lead_id"]
        response = await client.post(f"{API}/leads/{lead_id}/verifications")
        assert response.status_code == 400

    async def test_reverify_and_pdf(self, client):
        lead_id = await _qualified_lead(client)
        first = (await client.post(f"{API}/leads/{lead_id}/verifications")).json()

        response = await client.post(f"{API}/verifications/{first['verification_id']}/reverify")
        assert response.status_code == 201
        assert response.json()["external_vob_id"] == first["external_vob_id"]

        pdf = await client.get(f"{API}/verifications/{first['verification_id']}/pdf")
        assert pdf.status_code == 200
        assert pdf.json()["url"].endswith("export.pdf")

    async def test_payer_search(self, client):
        data = (await client.get(f"{API}/payers", params={"query": "cig"})).json()
        assert data["total"] == 1
        assert data["payers"][0]["payer_id"] == "62308"


class TestClaimsApi:

    async def test_lifecycle(self, client):
        claim_id = await _green_claim(client)

        response = await client.post(f"{API}/claims/{claim_id}/submit", json={"actor": "biller"})
        assert response.status_code == 200
        assert response.json()["status"] == "submitted"

        for status in ("acknowledged", "pending"):
            response = await client.post(f"{API}/claims/{claim_id}/transition", json={"status": status})
            assert response.status_code == 200

        response = await client.post(f"{API}/claims/{claim_id}/transition", json={
            "status": "denied",
            "denial": {"root_cause_tag": "Missing Auth", "denial_category": "CO-197"},
        })
        assert response.json()["allowed_transitions"] == ["appealed"]

        events = (await client.get(f"{API}/claims/{claim_id}/events")).json()
        assert [e["type"] for e in events] == ["created", "submitted", "acknowledged", "pending", "denied"]

        clusters = (await client.get(f"{API}/intelligence/clusters")).json()
        assert clusters[0]["root_cause"] == "Missing Auth"
        patterns = (await client.get(f"{API}/intelligence/top-patterns")).json()
        assert patterns[0]["recent_count"] == 1

    async def test_invalid_transition(self, client):
        claim_id = await _green_claim(client)
        response = await client.post(f"{API}/claims/{claim_id}/transition", json={"status": "paid"})
        assert response.status_code == 409

    async def test_rescore_after_submit_conflicts(self, client):
        claim_id = await _green_claim(client)
        assert (await client.post(f"{API}/claims/{claim_id}/submit")).status_code == 200
        response = await client.post(f"{API}/claims/{claim_id}/score")
        assert response.status_code == 409

    async def test_unknown_status_rejected(self, client):
        claim_id = await _green_claim(client)
        response = await client.post(f"{API}/claims/{claim_id}/transition", json={"status": "lost"})
        assert response.status_code == 422

    async def test_unverified_claim_blocked(self, client):
        lead_id = await _qualified_lead(client)
        claim_id = (await client.post(f"{API}/leads/{lead_id}/claim-packet")).json()["claim_id"]

        explanation = (await client.get(f"{API}/claims/{claim_id}/explanation")).json()
        assert explanation["readiness_status"] == "YELLOW"
        assert explanation["explanation"]["factors"][1]["name"] == "Benefits not verified"

        response = await client.post(f"{API}/claims/{claim_id}/submit")
        assert response.status_code == 400

        # Verifying and rescoring clears the block
        await client.post(f"{API}/leads/{lead_id}/verifications")
        rescored = (await client.post(f"{API}/claims/{claim_id}/score")).json()
        assert rescored["readiness_status"] == "GREEN"
        assert (await client.post(f"{API}/claims/{claim_id}/submit")).status_code == 200

    async def test_list_and_patient(self, client):
        claim_id = await _green_claim(client)
        data = (await client.get(f"{API}/claims", params={"readiness": "green"})).json()
        assert data["total"] == 1
        assert data["claims"][0]["claim_id"] == claim_id

        recent = (await client.get(f"{API}/claims/recent")).json()
        assert [c["claim_id"] for c in recent] == [claim_id]

        patient = (await client.get(f"{API}/claims/{claim_id}/patient")).json()
        assert patient["member_id"] == "AET12345678"

        assert (await client.get(f"{API}/claims/missing")).status_code == 404


class TestDashboardAndRulesApi:

    async def test_metrics_and_alerts(self, client):
        await client.post(f"{API}/rules", json={
            "name": "Block Aetna therapy",
            "payer": "Aetna",
            "trigger_pattern": "*",
            "risk_contribution": 75,
        })
        await _green_claim(client)

        metrics = (await client.get(f"{API}/dashboard/metrics")).json()
        assert metrics["denials_prevented"] == 1
        assert metrics["revenue_protected"] == 1200.0
        assert metrics["claims_at_risk"] == 1

        alerts = (await client.get(f"{API}/dashboard/alerts")).json()
        assert [a["type"] for a in alerts] == ["risk"]

    async def test_rule_crud(self, client):
        response = await client.post(f"{API}/rules", json={"name": "Bad", "trigger_pattern": "favoriteColor=red"})
        assert response.status_code == 400

        response = await client.post(f"{API}/rules", json={
            "name": "High dollar",
            "trigger_pattern": "amount>10000",
            "risk_contribution": 15,
        })
        assert response.status_code == 201
        rule_id = response.json()["rule_id"]

        response = await client.patch(f"{API}/rules/{rule_id}", json={"risk_contribution": 20})
        assert response.json()["risk_contribution"] == 20

        assert (await client.delete(f"{API}/rules/{rule_id}")).status_code == 204
        assert (await client.get(f"{API}/rules")).json() == []
        assert (await client.patch(f"{API}/rules/{rule_id}", json={"enabled": False})).status_code == 404

    async def test_generate_rule(self, client):
        response = await client.post(f"{API}/rules/generate", json={
            "payer": "Aetna",
            "cpt_code": "90834",
            "root_cause": "Eligibility Issues",
        })
        assert response.status_code == 201
        rule = response.json()
        assert rule["requires_verification"] is True
        assert rule["trigger_pattern"] == "payer=Aetna AND cptCode=90834"
