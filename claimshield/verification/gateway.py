"""Abstract eligibility (VOB) gateway interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class VerificationRequest:
    """Benefit verification request for one subscriber."""
    first_name: str
    last_name: str
    date_of_birth: str
    member_id: str
    payer_id: str
    payer_name: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    client_type: str = "prospect"

    def to_payload(self, facility_id: Optional[str] = None) -> Dict[str, Any]:
        """Build the VerifyTX ``POST /vobs`` body. Names are sent upper-cased."""
        payload = {
            "first_name": self.first_name.upper(),
            "last_name": self.last_name.upper(),
            "date_of_birth": self.date_of_birth,
            "member_id": self.member_id,
            "payer_id": self.payer_id,
            "payer_name": self.payer_name,
            "facility": facility_id,
            "gender": self.gender,
            "phone": self.phone,
            "email": self.email,
            "client_type": self.client_type or "prospect",
        }
        return {k: v for k, v in payload.items() if v is not None}


class EligibilityGateway(ABC):
    """Abstract base class for eligibility gateway implementations."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the gateway, recorded on each verification."""
        pass

    @abstractmethod
    async def verify(self, request: VerificationRequest) -> Dict[str, Any]:
        """
        Submit a new benefit verification.

        Args:
            request: Subscriber and payer details

        Returns:
            Raw VerifyTX-shaped VOB payload
        """
        pass

    @abstractmethod
    async def reverify(self, vob_id: str) -> Dict[str, Any]:
        """
        Re-run an existing verification against the payer.

        Args:
            vob_id: Upstream VOB identifier

        Returns:
            Raw VOB payload
        """
        pass

    @abstractmethod
    async def export_pdf(self, vob_id: str) -> Dict[str, Any]:
        """
        Export a verification as PDF.

        Args:
            vob_id: Upstream VOB identifier

        Returns:
            Dict with ``url`` or base64 ``data``
        """
        pass

    @abstractmethod
    async def search_payers(self, query: str) -> List[Dict[str, Any]]:
        """
        Search the payer directory.

        Args:
            query: Free-text payer name

        Returns:
            List of payer dicts with ``payer_id`` and ``payer_name``
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None
