"""
Tests for DashboardService and IntelligenceService - metrics, alerts, denial patterns and rules.
"""

from datetime import datetime, timedelta, timezone

import pytest

from claimshield.models.enums import ClaimStatus
from claimshield.models.exceptions import ResourceNotFoundError, RulePatternError
from claimshield.services.dashboard_service import ar_days


TO_PENDING = (ClaimStatus.SUBMITTED, ClaimStatus.ACKNOWLEDGED, ClaimStatus.PENDING)


@pytest.fixture
async def verified_patient_id(lead_service, verified_lead):
    patient = await lead_service.get_patient(verified_lead["lead_id"])
    return patient["patient_id"]


async def _claim_walk(claim_service, patient_id, statuses, start, step=timedelta(hours=1),
                      cpt_codes=("90834",), amount=1200.0, denial=None):
    """Create a claim at ``start`` and move it through ``statuses`` one step apart."""
    claim = await claim_service.create_claim(patient_id, "Aetna", list(cpt_codes), amount, created_at=start)
    for i, status in enumerate(statuses, start=1):
        await claim_service.transition_claim(
            claim.id,
            status,
            denial=denial if status == ClaimStatus.DENIED else None,
            timestamp=start + step * i,
        )
    return claim.id


class TestMetrics:

    async def test_empty(self, dashboard_service):
        metrics = await dashboard_service.get_metrics()
        assert metrics == {
            "denials_prevented": 0,
            "claims_at_risk": 0,
            "avg_ar_days": 0,
            "top_payer_risk": "N/A",
            "revenue_protected": 0.0,
            "total_claims": 0,
            "pending_claims": 0,
        }

    async def test_metrics(self, dashboard_service, claim_service, intelligence_service, verified_patient_id):
        now = datetime.now(timezone.utc)
        await _claim_walk(
            claim_service, verified_patient_id,
            TO_PENDING + (ClaimStatus.PAID,),
            now - timedelta(days=30),
            step=timedelta(days=5),
        )
        await intelligence_service.create_rule({
            "name": "Residential review",
            "payer": "Aetna",
            "cpt_code": "H0018",
            "prevention_action": "Attach level-of-care assessment",
            "risk_contribution": 70,
        })
        await claim_service.create_claim(verified_patient_id, "Aetna", ["H0018"], 24000.0)

        metrics = await dashboard_service.get_metrics()

        assert metrics["total_claims"] == 2
        assert metrics["claims_at_risk"] == 1
        assert metrics["denials_prevented"] == 1
        assert metrics["revenue_protected"] == 24000.0
        assert metrics["top_payer_risk"] == "Aetna"
        assert metrics["avg_ar_days"] == 15.0
        assert metrics["pending_claims"] == 0


class TestAlerts:

    async def test_risk_and_stuck_alerts(
        self, dashboard_service, claim_service, intelligence_service, verified_patient_id
    ):
        now = datetime.now(timezone.utc)
        stuck_id = await _claim_walk(claim_service, verified_patient_id, TO_PENDING, now - timedelta(days=10))
        await intelligence_service.create_rule({"name": "Block everything", "risk_contribution": 80})
        red = await claim_service.create_claim(verified_patient_id, "Aetna", ["90834"], 1200.0)

        alerts = await dashboard_service.get_alerts(now=now)

        assert [a["type"] for a in alerts] == ["risk", "stuck"]
        assert alerts[0]["claim_id"] == red.id
        assert alerts[0]["severity"] == "high"
        assert alerts[1]["claim_id"] == stuck_id
        assert "pending for 9 days" in alerts[1]["description"]

        assert len(await dashboard_service.get_alerts(limit=1, now=now)) == 1

    async def test_recent_pending_not_alerted(self, dashboard_service, claim_service, verified_patient_id):
        now = datetime.now(timezone.utc)
        await _claim_walk(claim_service, verified_patient_id, TO_PENDING, now - timedelta(days=2))
        assert await dashboard_service.get_alerts(now=now) == []

    def test_ar_days_requires_paid(self):
        assert ar_days([]) is None


class TestDenialIntelligence:

    async def _deny(self, claim_service, patient_id, days_ago, root_cause, now):
        start = now - timedelta(days=days_ago, hours=5)
        return await _claim_walk(
            claim_service, patient_id,
            TO_PENDING + (ClaimStatus.DENIED,),
            start,
            denial={"root_cause_tag": root_cause, "denial_category": "CO-197"},
        )

    async def test_clusters_and_patterns(self, claim_service, intelligence_service, verified_patient_id):
        now = datetime.now(timezone.utc)
        await self._deny(claim_service, verified_patient_id, 2, "Missing Auth", now)
        await self._deny(claim_service, verified_patient_id, 10, "Missing Auth", now)
        await self._deny(claim_service, verified_patient_id, 40, "Eligibility Issues", now)

        clusters = await intelligence_service.get_denial_clusters(now=now)
        assert [(c["root_cause"], c["count"]) for c in clusters] == [("Missing Auth", 2), ("Eligibility Issues", 1)]
        top = clusters[0]
        assert top["payer"] == "Aetna"
        assert top["cpt_code"] == "90834"
        assert top["trend"] == [0, 0, 0, 0, 0, 1, 1]
        assert top["suggested_rule"]["trigger_pattern"] == "payer=Aetna AND cptCode=90834"
        assert top["suggested_rule"]["risk_contribution"] == 40
        assert clusters[1]["suggested_rule"]["requires_verification"] is True
        assert clusters[1]["trend"] == [0, 1, 0, 0, 0, 0, 0]

        patterns = await intelligence_service.get_top_patterns(now=now)
        assert patterns == [
            {"root_cause": "Missing Auth", "count": 2, "recent_count": 2, "previous_count": 0, "change": 100},
            {"root_cause": "Eligibility Issues", "count": 1, "recent_count": 0, "previous_count": 1,
             "change": -100},
        ]

    async def test_generated_rule_fires(self, claim_service, intelligence_service, verified_patient_id):
        rule = await intelligence_service.generate_rule(
            payer="Aetna",
            cpt_code="90834",
            root_cause="Missing Auth",
            suggested_rule={"name": "Aetna 90834 auth check"},
        )
        assert rule["name"] == "Aetna 90834 auth check"
        assert rule["enabled"] is True

        claim = await claim_service.create_claim(verified_patient_id, "Aetna", ["90834"], 1200.0)
        data = await claim_service.get_claim(claim.id)
        assert data["fired_rule_ids"] == [rule["rule_id"]]
        assert data["risk_score"] == 50
        assert data["readiness_status"] == "YELLOW"


class TestRules:

    async def test_crud(self, intelligence_service):
        rule = await intelligence_service.create_rule({
            "name": "High dollar",
            "trigger_pattern": "amount>10000",
            "risk_contribution": 15,
        })
        assert [r["rule_id"] for r in await intelligence_service.list_rules()] == [rule["rule_id"]]

        updated = await intelligence_service.update_rule(rule["rule_id"], {"enabled": False})
        assert updated["enabled"] is False

        await intelligence_service.delete_rule(rule["rule_id"])
        assert await intelligence_service.list_rules() == []

    async def test_bad_pattern_rejected(self, intelligence_service):
        with pytest.raises(RulePatternError):
            await intelligence_service.create_rule({"name": "Broken", "trigger_pattern": "shoeSize>9"})

    async def test_missing_rule(self, intelligence_service):
        with pytest.raises(ResourceNotFoundError):
            await intelligence_service.update_rule("missing", {"enabled": False})
        with pytest.raises(ResourceNotFoundError):
            await intelligence_service.delete_rule("missing")
