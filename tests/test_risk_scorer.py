"""
Tests for ClaimRiskScorer - deterministic pre-submission denial risk.
"""

import pytest

from claimshield.models.enums import ReadinessStatus
from claimshield.models.exceptions import InvalidClaimInput
from claimshield.models.risk import BenefitsSnapshot, ClaimSnapshot, RiskWeights, RuleSnapshot
from claimshield.scoring.risk_scorer import ClaimRiskScorer, classify_readiness, is_policy_inactive, rule_applies


@pytest.fixture
def scorer():
    return ClaimRiskScorer()


@pytest.fixture
def claim():
    return ClaimSnapshot(payer="Aetna", cpt_codes=["90834"], amount=1200.0, claim_id="CLM-1")


@pytest.fixture
def clean_benefits():
    return BenefitsSnapshot(
        verified=True,
        prior_auth_required=False,
        network_status="in_network",
        policy_status="Active",
        policy_type="PPO",
    )


class TestReadinessThresholds:

    @pytest.mark.parametrize("score,expected", [
        (0, ReadinessStatus.GREEN),
        (39, ReadinessStatus.GREEN),
        (40, ReadinessStatus.YELLOW),
        (69, ReadinessStatus.YELLOW),
        (70, ReadinessStatus.RED),
        (100, ReadinessStatus.RED),
    ])
    def test_boundaries(self, score, expected):
        assert classify_readiness(score) == expected


class TestRiskAssessment:

    def test_clean_verified_claim_is_green(self, scorer, claim, clean_benefits):
        result = scorer.assess(claim, clean_benefits, [])
        assert result.score == 10
        assert result.readiness_status == ReadinessStatus.GREEN
        assert [f.name for f in result.explanation.factors] == ["Base risk"]
        assert result.explanation.confidence == 0.95
        assert result.reason is None

    def test_unverified_claim(self, scorer, claim):
        result = scorer.assess(claim, None, [])
        assert result.score == 40
        assert result.readiness_status == ReadinessStatus.YELLOW
        assert result.explanation.confidence == 0.5
        assert result.reason == "No verified insurance benefits on file"
        assert result.next_step == "Verify insurance benefits (VOB)"

    def test_inactive_policy_is_red(self, scorer, claim):
        benefits = BenefitsSnapshot(verified=True, prior_auth_required=False,
                                    network_status="in_network", policy_status="Inactive")
        result = scorer.assess(claim, benefits, [])
        assert result.score == 70
        assert result.readiness_status == ReadinessStatus.RED
        assert result.next_step == "Confirm active coverage with the payer"

    def test_prior_auth_and_out_of_network(self, scorer, claim):
        benefits = BenefitsSnapshot(verified=True, prior_auth_required=True,
                                    network_status="out_of_network", policy_status="Active")
        result = scorer.assess(claim, benefits, [])
        assert result.score == 65
        assert result.readiness_status == ReadinessStatus.YELLOW
        names = [f.name for f in result.explanation.factors]
        assert names == ["Base risk", "Prior authorization required", "Out of network"]

    def test_unknown_network_and_high_amount(self, scorer):
        claim = ClaimSnapshot(payer="Cigna", cpt_codes=["H0018"], amount=15000.0)
        benefits = BenefitsSnapshot(verified=True, prior_auth_required=False, network_status=None)
        result = scorer.assess(claim, benefits, [])
        assert result.score == 25
        assert [f.name for f in result.explanation.factors][-1] == "High claim amount"

    def test_score_is_clamped(self, scorer, claim):
        rules = [RuleSnapshot(rule_id=f"R{i}", name=f"Rule {i}", risk_contribution=50) for i in range(3)]
        result = scorer.assess(claim, None, rules)
        assert result.score == 100

    def test_deterministic(self, scorer, claim, clean_benefits):
        rules = [
            RuleSnapshot(rule_id="R2", name="Zeta", risk_contribution=5),
            RuleSnapshot(rule_id="R1", name="Alpha", risk_contribution=5),
        ]
        first = scorer.assess(claim, clean_benefits, rules)
        second = scorer.assess(claim, clean_benefits, list(reversed(rules)))
        assert first.to_dict() == second.to_dict()
        assert first.fired_rule_ids == ["R1", "R2"]

    def test_custom_weights(self, claim):
        scorer = ClaimRiskScorer(RiskWeights.from_overrides({"base": 0, "missing_benefits": 45}))
        assert scorer.assess(claim, None, []).score == 45

    def test_unknown_weight_rejected(self):
        with pytest.raises(ValueError):
            RiskWeights.from_overrides({"moon_phase": 1})

    def test_missing_payer_rejected(self, scorer):
        with pytest.raises(InvalidClaimInput):
            scorer.assess(ClaimSnapshot(payer=" ", cpt_codes=["90834"]), None, [])

    def test_missing_cpt_rejected(self, scorer):
        with pytest.raises(InvalidClaimInput):
            scorer.assess(ClaimSnapshot(payer="Aetna", cpt_codes=[]), None, [])


class TestPreventionRules:

    def test_matching_rule_adds_contribution(self, scorer, claim, clean_benefits):
        rule = RuleSnapshot(
            rule_id="R1",
            name="Aetna therapy",
            description="Aetna reviews psychotherapy claims",
            payer="aetna",
            cpt_code="908*",
            prevention_action="Attach treatment plan",
            risk_contribution=20,
        )
        result = scorer.assess(claim, clean_benefits, [rule])
        assert result.score == 30
        assert result.fired_rule_ids == ["R1"]
        assert result.rule_impacts == {"R1": 20.0}
        actions = [r.action for r in result.explanation.recommendations]
        assert "Attach treatment plan" in actions
        assert actions[-1] == "Submit claim to payer"

    def test_rule_for_other_payer_ignored(self, scorer, claim, clean_benefits):
        rule = RuleSnapshot(rule_id="R1", name="Cigna only", payer="Cigna", risk_contribution=20)
        assert scorer.assess(claim, clean_benefits, [rule]).fired_rule_ids == []

    def test_disabled_rule_ignored(self, claim):
        rule = RuleSnapshot(rule_id="R1", name="Off", risk_contribution=20, enabled=False)
        assert not rule_applies(rule, claim, {"payer": "Aetna"})

    def test_pattern_on_benefits(self, scorer, claim):
        rule = RuleSnapshot(rule_id="R1", name="PA", trigger_pattern="priorAuthRequired=true", risk_contribution=15)
        benefits = BenefitsSnapshot(verified=True, prior_auth_required=True, network_status="in_network")
        assert scorer.assess(claim, benefits, [rule]).fired_rule_ids == ["R1"]
        # Benefit clauses never hold for an unverified claim
        assert scorer.assess(claim, None, [rule]).fired_rule_ids == []

    def test_verification_escalation_reaches_yellow(self, claim):
        scorer = ClaimRiskScorer(RiskWeights(missing_benefits=0, verification_required=5))
        rule = RuleSnapshot(rule_id="R1", name="Verify first", requires_verification=True)
        result = scorer.assess(claim, None, [rule])
        assert result.score == 40
        assert result.readiness_status == ReadinessStatus.YELLOW
        assert result.explanation.factors[-1].name == "Verification required by rule"

    def test_no_escalation_once_verified(self, scorer, claim, clean_benefits):
        rule = RuleSnapshot(rule_id="R1", name="Verify first", requires_verification=True)
        result = scorer.assess(claim, clean_benefits, [rule])
        assert result.score == 10


class TestPolicyStatus:

    @pytest.mark.parametrize("status,inactive", [
        ("Active", False),
        ("Inactive", True),
        ("Terminated", True),
        ("Coverage not active", True),
        (None, False),
    ])
    def test_is_policy_inactive(self, status, inactive):
        assert is_policy_inactive(status) is inactive
