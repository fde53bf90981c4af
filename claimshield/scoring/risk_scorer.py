"""Claim Risk Scorer - deterministic pre-submission denial risk."""
import fnmatch
from typing import Any, Dict, List, Optional

from claimshield.models.enums import ReadinessStatus, RecommendationPriority, NetworkStatus
from claimshield.models.exceptions import InvalidClaimInput
from claimshield.models.risk import (
    RiskWeights,
    ClaimSnapshot,
    BenefitsSnapshot,
    RuleSnapshot,
    RiskInput,
    RiskFactor,
    AppliedRule,
    Recommendation,
    RiskExplanation,
    RiskAssessment,
)
from claimshield.scoring.trigger_pattern import parse_pattern, pattern_matches
from claimshield.config.settings import get_settings
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

GREEN_THRESHOLD = 40  # Scores below this are GREEN
RED_THRESHOLD = 70  # Scores at or above this are RED

# Display weights shown next to each input in the explanation
INPUT_DISPLAY_WEIGHTS = {
    "Payer": 0.3,
    "CPT Codes": 0.25,
    "Amount": 0.15,
    "Insurance Verification": 0.2,
    "Plan Type": 0.1,
}


def classify_readiness(score: int) -> ReadinessStatus:
    """Map a 0-100 risk score onto GREEN / YELLOW / RED."""
    if score < GREEN_THRESHOLD:
        return ReadinessStatus.GREEN
    if score < RED_THRESHOLD:
        return ReadinessStatus.YELLOW
    return ReadinessStatus.RED


def is_policy_inactive(policy_status: Optional[str]) -> bool:
    """True when the payer reports the policy as not active."""
    if not policy_status:
        return False
    text = policy_status.strip().lower()
    return any(marker in text for marker in ("inactive", "terminated", "not active", "cancel"))


def rule_applies(rule: RuleSnapshot, claim: ClaimSnapshot, context: Dict[str, Any]) -> bool:
    """Check a rule's payer, CPT glob and trigger pattern against a claim."""
    if not rule.enabled:
        return False
    if rule.payer and (claim.payer or "").strip().lower() != rule.payer.strip().lower():
        return False
    if rule.cpt_code and not any(fnmatch.fnmatchcase(code, rule.cpt_code) for code in claim.cpt_codes):
        return False
    return pattern_matches(parse_pattern(rule.trigger_pattern), context)


class ClaimRiskScorer:
    """
    Deterministic claim risk scoring.
    NO I/O and NO randomness: the same snapshot always yields the same score
    and the same ordered factor list.

    Score = clamp(base + benefit factors + amount factor + rule contributions
                  + verification escalation, 0, 100)
    """

    def __init__(self, weights: Optional[RiskWeights] = None):
        """
        Initialize the Claim Risk Scorer.

        Args:
            weights: Risk weights (defaults to the standard table)
        """
        self.weights = weights or RiskWeights()

    def assess(
        self,
        claim: ClaimSnapshot,
        benefits: Optional[BenefitsSnapshot],
        rules: List[RuleSnapshot],
    ) -> RiskAssessment:
        """
        Score a claim before submission.

        Args:
            claim: Payer, CPT codes and amount
            benefits: Latest verified benefits, or None when never verified
            rules: Active prevention rules

        Returns:
            Risk assessment with score, readiness and explanation

        Raises:
            InvalidClaimInput: If the claim has no payer or no CPT codes
        """
        if not claim.payer or not claim.payer.strip():
            raise InvalidClaimInput("Claim has no payer")
        if not claim.cpt_codes:
            raise InvalidClaimInput("Claim has no CPT codes")

        w = self.weights
        verified = bool(benefits and benefits.verified)
        factors: List[RiskFactor] = [
            RiskFactor(name="Base risk", contribution=w.base, description="Baseline denial risk for any claim")
        ]

        if not verified:
            factors.append(RiskFactor(
                name="Benefits not verified",
                contribution=w.missing_benefits,
                description="No verified insurance benefits on file",
            ))
        else:
            if is_policy_inactive(benefits.policy_status):
                factors.append(RiskFactor(
                    name="Inactive policy",
                    contribution=w.inactive_policy,
                    description=f"Payer reports policy status: {benefits.policy_status}",
                ))
            if benefits.prior_auth_required:
                factors.append(RiskFactor(
                    name="Prior authorization required",
                    contribution=w.prior_auth_required,
                    description="Payer requires prior authorization for this service",
                ))
            if benefits.network_status == NetworkStatus.OUT_OF_NETWORK.value:
                factors.append(RiskFactor(
                    name="Out of network",
                    contribution=w.out_of_network,
                    description="Provider is out of network for this plan",
                ))
            elif benefits.network_status in (None, NetworkStatus.UNKNOWN.value):
                factors.append(RiskFactor(
                    name="Network status unknown",
                    contribution=w.network_unknown,
                    description="Payer did not report network status",
                ))

        if claim.amount > w.high_amount_threshold:
            factors.append(RiskFactor(
                name="High claim amount",
                contribution=w.high_amount,
                description=f"Amount ${claim.amount:,.2f} exceeds ${w.high_amount_threshold:,.0f}",
            ))

        context = self._build_context(claim, benefits if verified else None)
        matching = sorted(
            (r for r in rules if rule_applies(r, claim, context)),
            key=lambda r: (r.name, r.rule_id),
        )
        applied_rules = []
        for rule in matching:
            factors.append(RiskFactor(
                name=f"Rule: {rule.name}",
                contribution=float(rule.risk_contribution),
                description=rule.description or rule.prevention_action,
            ))
            applied_rules.append(AppliedRule(
                rule_id=rule.rule_id,
                name=rule.name,
                description=rule.description,
                impact=float(rule.risk_contribution),
            ))

        subtotal = sum(f.contribution for f in factors)
        if not verified and any(r.requires_verification for r in matching):
            escalation = max(w.verification_required, GREEN_THRESHOLD - subtotal)
            factors.append(RiskFactor(
                name="Verification required by rule",
                contribution=escalation,
                description="A matching rule requires verified benefits before submission",
            ))
            subtotal += escalation

        score = int(max(0, min(100, round(subtotal))))
        readiness = classify_readiness(score)

        explanation = RiskExplanation(
            score=score,
            readiness_status=readiness,
            inputs=self._build_inputs(claim, benefits, verified),
            factors=factors,
            applied_rules=applied_rules,
            confidence=self._confidence(benefits, verified),
            recommendations=self._build_recommendations(benefits, verified, matching, readiness),
        )

        logger.debug(
            "Claim scored",
            claim_id=claim.claim_id,
            score=score,
            readiness=readiness.value,
            rules_fired=len(matching),
        )

        return RiskAssessment(
            score=score,
            readiness_status=readiness,
            explanation=explanation,
            fired_rule_ids=[r.rule_id for r in matching],
        )

    @staticmethod
    def _build_context(claim: ClaimSnapshot, benefits: Optional[BenefitsSnapshot]) -> Dict[str, Any]:
        return {
            "payer": claim.payer,
            "cptCode": list(claim.cpt_codes),
            "amount": claim.amount,
            "priorAuthRequired": benefits.prior_auth_required if benefits else None,
            "networkStatus": benefits.network_status if benefits else None,
            "policyStatus": benefits.policy_status if benefits else None,
        }

    @staticmethod
    def _build_inputs(
        claim: ClaimSnapshot,
        benefits: Optional[BenefitsSnapshot],
        verified: bool,
    ) -> List[RiskInput]:
        plan_type = benefits.policy_type if benefits and benefits.policy_type else "Unknown"
        values = {
            "Payer": claim.payer,
            "CPT Codes": ", ".join(claim.cpt_codes),
            "Amount": f"${claim.amount:,.2f}",
            "Insurance Verification": "Verified" if verified else "Unverified",
            "Plan Type": plan_type,
        }
        return [
            RiskInput(name=name, value=str(values[name]), weight=weight)
            for name, weight in INPUT_DISPLAY_WEIGHTS.items()
        ]

    @staticmethod
    def _confidence(benefits: Optional[BenefitsSnapshot], verified: bool) -> float:
        """0.5 with nothing verified, up to 0.95 when every benefit signal is known."""
        if not verified:
            return 0.5
        known = sum([
            benefits.prior_auth_required is not None,
            benefits.network_status not in (None, NetworkStatus.UNKNOWN.value),
            benefits.policy_status is not None,
        ])
        return round(0.5 + 0.45 * known / 3, 2)

    @staticmethod
    def _build_recommendations(
        benefits: Optional[BenefitsSnapshot],
        verified: bool,
        matching: List[RuleSnapshot],
        readiness: ReadinessStatus,
    ) -> List[Recommendation]:
        recommendations = [
            Recommendation(
                action="Verify insurance benefits (VOB)",
                priority=RecommendationPriority.HIGH,
                completed=verified,
            )
        ]
        if verified and is_policy_inactive(benefits.policy_status):
            recommendations.append(Recommendation(
                action="Confirm active coverage with the payer",
                priority=RecommendationPriority.HIGH,
            ))
        if verified and benefits.prior_auth_required:
            recommendations.append(Recommendation(
                action="Obtain prior authorization",
                priority=RecommendationPriority.HIGH,
            ))
        if verified and benefits.network_status == NetworkStatus.OUT_OF_NETWORK.value:
            recommendations.append(Recommendation(
                action="Confirm out-of-network benefits and patient responsibility",
                priority=RecommendationPriority.MEDIUM,
            ))

        seen = {r.action for r in recommendations}
        for rule in matching:
            if rule.prevention_action and rule.prevention_action not in seen:
                seen.add(rule.prevention_action)
                recommendations.append(Recommendation(
                    action=rule.prevention_action,
                    priority=RecommendationPriority.MEDIUM,
                ))

        if readiness == ReadinessStatus.GREEN:
            recommendations.append(Recommendation(action="Submit claim to payer", priority=RecommendationPriority.LOW))
        else:
            recommendations.append(Recommendation(
                action="Resolve risk factors before submission",
                priority=RecommendationPriority.LOW,
            ))
        return recommendations


# Global instance
_claim_risk_scorer: Optional[ClaimRiskScorer] = None


def get_claim_risk_scorer() -> ClaimRiskScorer:
    """Get or create the global Claim Risk Scorer instance."""
    global _claim_risk_scorer
    if _claim_risk_scorer is None:
        weights = RiskWeights.from_overrides(get_settings().risk_weights)
        _claim_risk_scorer = ClaimRiskScorer(weights)
        logger.info("Claim risk scorer initialized", weights=weights.to_dict())
    return _claim_risk_scorer
