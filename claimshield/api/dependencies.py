"""FastAPI dependencies for dependency injection."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.storage.database import get_db
from claimshield.services.claim_service import ClaimService
from claimshield.services.lead_service import LeadService
from claimshield.services.verification_service import (
    VerificationService,
    VerificationLeases,
    get_eligibility_gateway,
    get_verification_leases,
)
from claimshield.services.dashboard_service import DashboardService
from claimshield.services.intelligence_service import IntelligenceService
from claimshield.verification.gateway import EligibilityGateway


def get_claim_service(session: AsyncSession = Depends(get_db)) -> ClaimService:
    """Get claim service dependency."""
    return ClaimService(session)


def get_lead_service(
    session: AsyncSession = Depends(get_db),
    claim_service: ClaimService = Depends(get_claim_service)
) -> LeadService:
    """Get lead service dependency."""
    return LeadService(session, claim_service=claim_service)


def get_gateway() -> EligibilityGateway:
    """Get eligibility gateway dependency."""
    return get_eligibility_gateway()


def get_leases() -> VerificationLeases:
    """Get verification lease registry dependency."""
    return get_verification_leases()


def get_verification_service(
    session: AsyncSession = Depends(get_db),
    gateway: EligibilityGateway = Depends(get_gateway),
    leases: VerificationLeases = Depends(get_leases),
    lead_service: LeadService = Depends(get_lead_service)
) -> VerificationService:
    """Get verification service dependency."""
    return VerificationService(session, gateway=gateway, leases=leases, lead_service=lead_service)


def get_dashboard_service(session: AsyncSession = Depends(get_db)) -> DashboardService:
    """Get dashboard service dependency."""
    return DashboardService(session)


def get_intelligence_service(session: AsyncSession = Depends(get_db)) -> IntelligenceService:
    """Get intelligence service dependency."""
    return IntelligenceService(session)
