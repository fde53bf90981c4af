"""Eligibility (VOB) verification boundary."""
from .gateway import EligibilityGateway, VerificationRequest
from .verifytx_client import VerifyTxClient, VerifyTxConfig
from .response_mapper import map_vob_response

__all__ = [
    "EligibilityGateway",
    "VerificationRequest",
    "VerifyTxClient",
    "VerifyTxConfig",
    "map_vob_response",
]
