"""Service layer for business logic."""
from .claim_service import ClaimService
from .lead_service import LeadService
from .verification_service import VerificationService, get_eligibility_gateway, close_eligibility_gateway
from .dashboard_service import DashboardService
from .intelligence_service import IntelligenceService

__all__ = [
    "ClaimService",
    "LeadService",
    "VerificationService",
    "get_eligibility_gateway",
    "close_eligibility_gateway",
    "DashboardService",
    "IntelligenceService",
]
