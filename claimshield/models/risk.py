"""Claim risk scoring models."""
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .enums import ReadinessStatus, RecommendationPriority


@dataclass
class RiskWeights:
    """
    Weight table for the claim risk score.

    Values are points added to a 0-100 score. They are configuration, not
    constants: override any of them through ``RISK_WEIGHTS`` in the environment.
    """
    base: float = 10.0
    missing_benefits: float = 30.0
    inactive_policy: float = 60.0
    prior_auth_required: float = 30.0
    out_of_network: float = 25.0
    network_unknown: float = 5.0
    high_amount: float = 10.0
    high_amount_threshold: float = 10000.0
    verification_required: float = 30.0

    @classmethod
    def from_overrides(cls, overrides: Optional[Dict[str, float]] = None) -> "RiskWeights":
        """Build weights from defaults plus a partial override mapping."""
        overrides = overrides or {}
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown risk weight(s): {', '.join(sorted(unknown))}")
        return cls(**{k: float(v) for k, v in overrides.items()})

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class ClaimSnapshot:
    """The claim fields the scorer reads."""
    payer: Optional[str]
    cpt_codes: List[str] = field(default_factory=list)
    amount: float = 0.0
    claim_id: Optional[str] = None


@dataclass
class BenefitsSnapshot:
    """Latest verified benefits for the claim's patient."""
    verified: bool = False
    prior_auth_required: Optional[bool] = None
    network_status: Optional[str] = None
    policy_status: Optional[str] = None
    policy_type: Optional[str] = None


@dataclass
class RuleSnapshot:
    """A prevention rule as seen by the scorer."""
    rule_id: str
    name: str
    description: str = ""
    payer: Optional[str] = None
    cpt_code: Optional[str] = None
    trigger_pattern: str = ""
    prevention_action: str = ""
    risk_contribution: int = 0
    requires_verification: bool = False
    enabled: bool = True


class RiskInput(BaseModel):
    """One input the score was computed from."""
    name: str
    value: str
    weight: float


class RiskFactor(BaseModel):
    """One signed contribution to the score."""
    name: str
    contribution: float
    description: str


class AppliedRule(BaseModel):
    """A prevention rule that matched the claim."""
    rule_id: str
    name: str
    description: str
    impact: float


class Recommendation(BaseModel):
    """Suggested pre-submission action."""
    action: str
    priority: RecommendationPriority
    completed: bool = False


class RiskExplanation(BaseModel):
    """Ordered, reproducible explanation of a claim risk score."""
    score: int
    readiness_status: ReadinessStatus
    inputs: List[RiskInput] = Field(default_factory=list)
    factors: List[RiskFactor] = Field(default_factory=list)
    applied_rules: List[AppliedRule] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)
    recommendations: List[Recommendation] = Field(default_factory=list)


@dataclass
class RiskAssessment:
    """Full result of scoring one claim."""
    score: int
    readiness_status: ReadinessStatus
    explanation: RiskExplanation
    fired_rule_ids: List[str] = field(default_factory=list)

    @property
    def rule_impacts(self) -> Dict[str, float]:
        return {rule.rule_id: rule.impact for rule in self.explanation.applied_rules}

    @property
    def reason(self) -> Optional[str]:
        """Description of the largest positive factor beyond the base."""
        candidates = [f for f in self.explanation.factors[1:] if f.contribution > 0]
        if not candidates:
            return None
        return max(candidates, key=lambda f: f.contribution).description

    @property
    def next_step(self) -> Optional[str]:
        for recommendation in self.explanation.recommendations:
            if not recommendation.completed:
                return recommendation.action
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": self.score,
            "readiness_status": self.readiness_status.value,
            "fired_rule_ids": list(self.fired_rule_ids),
            "explanation": self.explanation.model_dump(mode="json"),
        }
