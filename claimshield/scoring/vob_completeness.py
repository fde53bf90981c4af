"""VOB Completeness Scorer - deterministic checklist scoring for leads."""
import math
from typing import Any, Dict, List, Optional, Tuple

from claimshield.models.enums import VobStatus
from claimshield.models.vob import (
    VobSources,
    CompletenessResult,
    VOB_REQUIRED_FIELDS,
    DEFAULT_VOB_FIELD_WEIGHTS,
)
from claimshield.config.settings import get_settings
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


# Where each checklist field lives in each source
_LEAD_KEYS = {
    "insuranceCarrier": "insurance_carrier",
    "memberId": "member_id",
    "state": "state",
    "consent": "vob_consent",
    "serviceType": "service_needed",
}
_PATIENT_KEYS = {
    "insuranceCarrier": "insurance_carrier",
    "memberId": "member_id",
    "state": "state",
}
_VERIFICATION_KEYS = {
    "insuranceCarrier": "payer_name",
    "memberId": "member_id",
}


def _is_present(field_name: str, value: Any) -> bool:
    """Consent only counts as an explicit True; other fields need a non-blank value."""
    if field_name == "consent":
        return value is True
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip()) and value.strip().lower() != "unknown"
    return True


class VobCompletenessScorer:
    """
    Deterministic VOB completeness scoring.
    NO side effects - the caller persists the result onto the lead.

    score = 100 if every required field is satisfied, otherwise
            min(99, floor(100 * satisfied_weight / total_weight))
    """

    def __init__(self, weights: Optional[Dict[str, int]] = None):
        """
        Initialize the scorer.

        Args:
            weights: Partial override of the default field weights
        """
        merged = dict(DEFAULT_VOB_FIELD_WEIGHTS)
        merged.update(weights or {})
        unknown = set(merged) - set(VOB_REQUIRED_FIELDS)
        if unknown:
            raise ValueError(f"Unknown VOB field weight(s): {', '.join(sorted(unknown))}")
        if any(w <= 0 for w in merged.values()):
            raise ValueError("VOB field weights must be positive")
        self.weights = merged
        self.total_weight = sum(merged.values())

    def score(self, sources: VobSources) -> CompletenessResult:
        """
        Score a lead's VOB checklist.

        Args:
            sources: Lead, patient, latest verified verification and call extractions

        Returns:
            Completeness result with score, status and missing fields in checklist order
        """
        satisfied: List[str] = []
        missing: List[str] = []
        field_sources: Dict[str, str] = {}

        for field_name in VOB_REQUIRED_FIELDS:
            source = self._find_source(field_name, sources)
            if source:
                satisfied.append(field_name)
                field_sources[field_name] = source
            else:
                missing.append(field_name)

        has_any_source = bool(satisfied) or bool(sources.call_extractions) or sources.verification_attempted
        if not has_any_source:
            return CompletenessResult(score=0, status=VobStatus.NOT_STARTED, missing_fields=missing)

        if not missing:
            score = 100
        else:
            satisfied_weight = sum(self.weights[f] for f in satisfied)
            score = min(99, math.floor(100 * satisfied_weight / self.total_weight))

        if score == 100:
            status = VobStatus.VERIFIED
        elif sources.verification_attempted:
            status = VobStatus.INCOMPLETE
        else:
            status = VobStatus.IN_PROGRESS

        return CompletenessResult(
            score=score,
            status=status,
            missing_fields=missing,
            satisfied_fields=satisfied,
            field_sources=field_sources,
        )

    @staticmethod
    def _find_source(field_name: str, sources: VobSources) -> Optional[str]:
        """Return the name of the first source that satisfies a field."""
        candidates: List[Tuple[str, Optional[Dict[str, Any]], Optional[str]]] = [
            ("lead", sources.lead, _LEAD_KEYS.get(field_name)),
            ("patient", sources.patient, _PATIENT_KEYS.get(field_name)),
            ("verification", sources.verification, _VERIFICATION_KEYS.get(field_name)),
        ]
        for name, data, key in candidates:
            if data and key and _is_present(field_name, data.get(key)):
                return name

        for extraction in sources.call_extractions:
            if _is_present(field_name, (extraction or {}).get(field_name)):
                return "call"
        return None


# Global instance
_vob_completeness_scorer: Optional[VobCompletenessScorer] = None


def get_vob_completeness_scorer() -> VobCompletenessScorer:
    """Get or create the global VOB completeness scorer."""
    global _vob_completeness_scorer
    if _vob_completeness_scorer is None:
        _vob_completeness_scorer = VobCompletenessScorer(get_settings().vob_field_weights)
        logger.info("VOB completeness scorer initialized", weights=_vob_completeness_scorer.weights)
    return _vob_completeness_scorer
