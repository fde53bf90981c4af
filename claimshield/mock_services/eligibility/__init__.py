"""Mock eligibility gateway."""
from .mock_gateway import MockEligibilityGateway, MOCK_PAYERS

__all__ = ["MockEligibilityGateway", "MOCK_PAYERS"]
