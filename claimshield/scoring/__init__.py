"""Deterministic scoring: VOB completeness and claim risk."""
from .vob_completeness import VobCompletenessScorer, get_vob_completeness_scorer
from .risk_scorer import ClaimRiskScorer, classify_readiness, get_claim_risk_scorer
from .trigger_pattern import parse_pattern, pattern_matches

__all__ = [
    "VobCompletenessScorer",
    "get_vob_completeness_scorer",
    "ClaimRiskScorer",
    "classify_readiness",
    "get_claim_risk_scorer",
    "parse_pattern",
    "pattern_matches",
]
