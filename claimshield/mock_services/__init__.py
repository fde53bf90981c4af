"""Mock services for demonstration and testing."""
from .eligibility import MockEligibilityGateway
from .scenarios import ScenarioManager, Scenario

__all__ = [
    "MockEligibilityGateway",
    "ScenarioManager",
    "Scenario",
]
