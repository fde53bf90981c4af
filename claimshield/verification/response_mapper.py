"""Normalize VerifyTX VOB payloads into verification records."""
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from claimshield.models.enums import NetworkStatus, VerificationStatus
from claimshield.verification.gateway import VerificationRequest

# Networks are searched in this order for financial fields
NETWORK_ORDER = ("in_network", "no_network", "out_of_network")
HEALTH_BENEFIT_TYPE = "30"
HEALTH_BENEFIT_NAME = "Health Benefit Plan Coverage"

_PRIOR_AUTH_NEGATIVE = re.compile(
    r"(no|not)\s+(prior\s+)?(auth(orization)?|pre-?certification|pre-?authorization)\s+(is\s+)?required"
    r"|(auth(orization)?|pre-?certification)\s+(is\s+)?not\s+required",
    re.IGNORECASE,
)
_PRIOR_AUTH_POSITIVE = re.compile(
    r"prior\s+auth|pre-?authorization|pre-?certification|authorization\s+required",
    re.IGNORECASE,
)


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace("$", "").replace(",", ""))
    except ValueError:
        return None


def _health_benefit(network: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for benefit in network:
        if benefit.get("type") == HEALTH_BENEFIT_TYPE or benefit.get("name") == HEALTH_BENEFIT_NAME:
            return benefit
    return None


def _networks(benefits: Dict[str, Any]) -> List[List[Dict[str, Any]]]:
    return [benefits.get(key) or [] for key in NETWORK_ORDER]


def extract_deductible(benefits: Dict[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    """Return (deductible total, amount met) from the plan-level benefit."""
    for network in _networks(benefits):
        benefit = _health_benefit(network)
        if benefit and benefit.get("deductibles"):
            entry = benefit["deductibles"][0]
            return _to_float(entry.get("total")), _to_float(entry.get("amount"))
    return None, None


def extract_out_of_pocket(benefits: Dict[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    """Return (out-of-pocket max, amount met) from the plan-level benefit."""
    for network in _networks(benefits):
        benefit = _health_benefit(network)
        if benefit and benefit.get("outOfPocket"):
            entry = benefit["outOfPocket"][0]
            return _to_float(entry.get("total")), _to_float(entry.get("amount"))
    return None, None


def extract_copay(benefits: Dict[str, Any]) -> Optional[float]:
    for network in _networks(benefits):
        for benefit in network:
            for copay in benefit.get("coPayment") or []:
                amount = _to_float(copay.get("amount"))
                if amount is not None:
                    return amount
    return None


def extract_coinsurance(benefits: Dict[str, Any]) -> Optional[float]:
    """First coinsurance found, as a percentage (0.2 becomes 20)."""
    for network in _networks(benefits):
        for benefit in network:
            for coins in benefit.get("coInsurance") or []:
                amount = _to_float(coins.get("amount"))
                if amount is not None:
                    return round(amount * 100, 2) if amount < 1 else amount
    return None


def determine_network_status(benefits: Dict[str, Any]) -> NetworkStatus:
    if benefits.get("in_network"):
        return NetworkStatus.IN_NETWORK
    if benefits.get("out_of_network"):
        return NetworkStatus.OUT_OF_NETWORK
    return NetworkStatus.UNKNOWN


def collect_payer_notes(payload: Dict[str, Any]) -> List[str]:
    notes = []
    insurance_details = (payload.get("cache") or {}).get("insurance_details") or {}
    for note in insurance_details.get("notes") or []:
        if note.get("message"):
            notes.append(note["message"])
    if payload.get("error"):
        notes.append(str(payload["error"]))
    return notes


def detect_prior_auth(notes: List[str], benefits: Dict[str, Any]) -> Optional[bool]:
    """
    Look for prior-authorization language in payer notes and benefit text.

    Returns True or False when the payer says so explicitly, None otherwise.
    """
    texts = list(notes)
    for network in _networks(benefits):
        for benefit in network:
            texts.extend(benefit.get("description") or [])
            for deductible in benefit.get("deductibles") or []:
                texts.extend(deductible.get("payerNotes") or [])

    found_positive = False
    for text in texts:
        if _PRIOR_AUTH_NEGATIVE.search(text):
            return False
        if _PRIOR_AUTH_POSITIVE.search(text):
            found_positive = True
    return True if found_positive else None


def determine_status(payload: Dict[str, Any]) -> VerificationStatus:
    if payload.get("error") or payload.get("error_status"):
        return VerificationStatus.ERROR
    if (payload.get("cache") or {}).get("status") == "Complete":
        return VerificationStatus.VERIFIED
    return VerificationStatus.PENDING


def map_vob_response(
    payload: Dict[str, Any],
    request: Optional[VerificationRequest] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Map a VerifyTX VOB payload onto verification record fields.

    Args:
        payload: Raw VOB payload from the gateway
        request: Original request, used when the payload omits identifiers
        now: Timestamp recorded as verified_at for completed verifications

    Returns:
        Dict keyed by VobVerificationModel column names
    """
    cache = payload.get("cache") or {}
    insurance_details = cache.get("insurance_details") or {}
    insurance_type = insurance_details.get("insurance_type") or payload.get("insurance_type") or {}
    coverage_dates = insurance_details.get("coverage_dates") or {}
    benefits = cache.get("benefits") or {}

    status = determine_status(payload)
    deductible, deductible_met = extract_deductible(benefits)
    out_of_pocket_max, out_of_pocket_met = extract_out_of_pocket(benefits)
    notes = collect_payer_notes(payload)

    benefits_remaining = None
    if out_of_pocket_max is not None and out_of_pocket_met is not None:
        benefits_remaining = round(out_of_pocket_max - out_of_pocket_met, 2)

    group_number = insurance_details.get("group_number")

    return {
        "external_vob_id": payload.get("_id"),
        "payer_id": payload.get("payer_id") or (request.payer_id if request else None),
        "payer_name": payload.get("payer_name") or (request.payer_name if request else None),
        "member_id": payload.get("member_id") or (request.member_id if request else None),
        "status": status.value,
        "policy_status": insurance_details.get("coverage") or payload.get("coverage"),
        "policy_type": insurance_type.get("label"),
        "plan_name": insurance_details.get("plan_sponsor") or insurance_details.get("plan_name"),
        "effective_date": coverage_dates.get("start"),
        "term_date": coverage_dates.get("end"),
        "copay": extract_copay(benefits),
        "coinsurance": extract_coinsurance(benefits),
        "deductible": deductible,
        "deductible_met": deductible_met,
        "out_of_pocket_max": out_of_pocket_max,
        "out_of_pocket_met": out_of_pocket_met,
        "benefits_remaining": benefits_remaining,
        "prior_auth_required": detect_prior_auth(notes, benefits),
        "network_status": determine_network_status(benefits).value,
        "coverage_limits": f"Group: {group_number}" if group_number else None,
        "payer_notes": "\n\n".join(notes) if notes else None,
        "raw_response": payload,
        "error_message": payload.get("error") or payload.get("error_status"),
        "verified_at": (now or datetime.now(timezone.utc)) if status == VerificationStatus.VERIFIED else None,
    }
