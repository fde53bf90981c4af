"""Intake agent for turning call transcripts into structured lead data."""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from claimshield.models.enums import CallDisposition
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


# Keyword -> canonical carrier name, checked in order
CARRIER_KEYWORDS: List[Tuple[str, str]] = [
    ("blue cross", "Blue Cross Blue Shield"),
    ("blue shield", "Blue Cross Blue Shield"),
    ("bcbs", "Blue Cross Blue Shield"),
    ("anthem", "Anthem"),
    ("united", "UnitedHealthcare"),
    ("uhc", "UnitedHealthcare"),
    ("aetna", "Aetna"),
    ("cigna", "Cigna"),
    ("humana", "Humana"),
    ("tricare", "TRICARE"),
    ("medicare", "Medicare"),
    ("medicaid", "Medicaid"),
]

US_STATES: Dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR", "california": "CA",
    "colorado": "CO", "connecticut": "CT", "delaware": "DE", "florida": "FL", "georgia": "GA",
    "hawaii": "HI", "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS", "missouri": "MO",
    "montana": "MT", "nebraska": "NE", "nevada": "NV", "new hampshire": "NH", "new jersey": "NJ",
    "new mexico": "NM", "new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
    "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT", "vermont": "VT",
    "virginia": "VA", "washington": "WA", "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
}

# Most specific first: "intensive outpatient" must win over "outpatient"
SERVICE_KEYWORDS: List[Tuple[str, str]] = [
    ("partial hospitalization", "Partial Hospitalization"),
    ("php", "Partial Hospitalization"),
    ("intensive outpatient", "Intensive Outpatient"),
    ("iop", "Intensive Outpatient"),
    ("outpatient", "Outpatient"),
    ("inpatient", "Inpatient"),
    ("residential", "Residential"),
    ("detox", "Detox"),
]

CONSENT_REFUSALS = (
    "do not consent",
    "don't consent",
    "dont consent",
    "no consent",
    "not consent",
    "do not agree",
    "don't agree",
    "refuse",
)
CONSENT_PHRASES = (
    "i consent",
    "consent to",
    "you have my consent",
    "you have my permission",
    "i agree",
    "go ahead and verify",
    "yes, you can verify",
    "yes you can verify",
)

_MEMBER_ID_RE = re.compile(r"\b([A-Za-z]{2,4})[-\s]?(\d{6,12})\b")
_MEMBER_ID_STOPWORDS = {"call", "at", "is", "me", "my", "id", "no", "to", "or", "and", "num", "the", "its", "it"}

_STATE_PATTERNS = [
    (re.compile(rf"\b{re.escape(name)}\b"), code)
    for name, code in sorted(US_STATES.items(), key=lambda item: -len(item[0]))
]


@dataclass
class ExtractedCallData:
    """Structured data pulled from one intake call."""
    insurance_carrier: Optional[str] = None
    member_id: Optional[str] = None
    service_type: Optional[str] = None
    state: Optional[str] = None
    consent: Optional[bool] = None
    qualified: bool = False
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase dict stored on the call record."""
        return {
            "insuranceCarrier": self.insurance_carrier,
            "memberId": self.member_id,
            "serviceType": self.service_type,
            "state": self.state,
            "consent": self.consent,
            "qualified": self.qualified,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractedCallData":
        return cls(
            insurance_carrier=data.get("insuranceCarrier"),
            member_id=data.get("memberId"),
            service_type=data.get("serviceType"),
            state=data.get("state"),
            consent=data.get("consent"),
            qualified=bool(data.get("qualified")),
            notes=data.get("notes"),
        )


class CallIntakeAgent:
    """
    Deterministic transcript extraction for intake calls.

    Finds carrier, member ID, state, service type and benefit-verification
    consent with keyword and regex matching. A call qualifies the lead when a
    carrier was named and consent was given.
    """

    def extract(self, transcript: str) -> ExtractedCallData:
        """
        Extract structured fields from a transcript.

        Args:
            transcript: Full call transcript text

        Returns:
            Extracted call data (fields left None when not found)
        """
        text = transcript or ""
        lowered = text.lower()

        carrier = self._find_carrier(lowered)
        consent = self._find_consent(lowered)
        data = ExtractedCallData(
            insurance_carrier=carrier,
            member_id=self._find_member_id(text),
            service_type=self._find_service_type(lowered),
            state=self._find_state(lowered),
            consent=consent,
            qualified=bool(carrier and consent is True),
        )
        exchanges = len([line for line in text.splitlines() if line.strip()])
        data.notes = f"Intake call transcript with {exchanges} exchanges"

        logger.info(
            "Transcript extracted",
            carrier=data.insurance_carrier,
            has_member_id=data.member_id is not None,
            state=data.state,
            qualified=data.qualified,
        )
        return data

    def merge(self, extracted: ExtractedCallData, overrides: Optional[Dict[str, Any]]) -> ExtractedCallData:
        """
        Apply caller-supplied values over extracted ones, field by field.

        Args:
            extracted: Values found in the transcript
            overrides: camelCase values supplied with the call (None values ignored)

        Returns:
            Merged data with qualification recomputed unless explicitly supplied
        """
        if not overrides:
            return extracted
        merged = extracted.to_dict()
        for key, value in overrides.items():
            if key in merged and value is not None:
                merged[key] = value
        result = ExtractedCallData.from_dict(merged)
        if overrides.get("qualified") is None:
            result.qualified = bool(result.insurance_carrier and result.consent is True)
        return result

    def summarize(self, data: ExtractedCallData, transcript: str) -> str:
        """Build the one-paragraph call summary stored on the call record."""
        parts = []
        if data.insurance_carrier:
            parts.append(f"Insurance: {data.insurance_carrier}")
        if data.member_id:
            parts.append(f"Member ID: {data.member_id}")
        if data.state:
            parts.append(f"State: {data.state}")
        if data.service_type:
            parts.append(f"Service: {data.service_type}")
        if data.consent is True:
            parts.append("Consent obtained for VOB")
        elif data.consent is False:
            parts.append("Consent for VOB declined")

        if parts:
            return f"Patient intake completed. {'. '.join(parts)}."
        exchanges = len([line for line in (transcript or "").splitlines() if line.strip()])
        return f"Intake call with {exchanges} exchanges. Manual review recommended."

    @staticmethod
    def disposition(data: ExtractedCallData, transcript: str) -> CallDisposition:
        if not (transcript or "").strip():
            return CallDisposition.NO_ANSWER
        if data.qualified:
            return CallDisposition.QUALIFIED
        if data.consent is False:
            return CallDisposition.UNQUALIFIED
        return CallDisposition.NEEDS_FOLLOW_UP

    @staticmethod
    def _find_carrier(lowered: str) -> Optional[str]:
        for keyword, name in CARRIER_KEYWORDS:
            if re.search(rf"\b{re.escape(keyword)}\b", lowered):
                return name
        return None

    @staticmethod
    def _find_member_id(text: str) -> Optional[str]:
        for match in _MEMBER_ID_RE.finditer(text):
            prefix = match.group(1)
            if prefix.lower() in _MEMBER_ID_STOPWORDS:
                continue
            return match.group(0).upper()
        return None

    @staticmethod
    def _find_state(lowered: str) -> Optional[str]:
        for pattern, code in _STATE_PATTERNS:
            if pattern.search(lowered):
                return code
        return None

    @staticmethod
    def _find_service_type(lowered: str) -> Optional[str]:
        for keyword, name in SERVICE_KEYWORDS:
            if re.search(rf"\b{re.escape(keyword)}\b", lowered):
                return name
        return None

    @staticmethod
    def _find_consent(lowered: str) -> Optional[bool]:
        if any(phrase in lowered for phrase in CONSENT_REFUSALS):
            return False
        if any(phrase in lowered for phrase in CONSENT_PHRASES):
            return True
        return None


# Global instance
_call_intake_agent: Optional[CallIntakeAgent] = None


def get_call_intake_agent() -> CallIntakeAgent:
    """Get or create the global call intake agent."""
    global _call_intake_agent
    if _call_intake_agent is None:
        _call_intake_agent = CallIntakeAgent()
    return _call_intake_agent
