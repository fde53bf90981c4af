"""Demo scenarios that drive the mock eligibility gateway."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from claimshield.models.enums import ReadinessStatus
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


class Scenario(str, Enum):
    """Payer responses the mock gateway can play back."""
    ACTIVE_IN_NETWORK = "active_in_network"
    PRIOR_AUTH_REQUIRED = "prior_auth_required"
    OUT_OF_NETWORK = "out_of_network"
    INACTIVE_POLICY = "inactive_policy"
    PAYER_PENDING = "payer_pending"
    SUBSCRIBER_NOT_FOUND = "subscriber_not_found"
    UPSTREAM_ERROR = "upstream_error"


@dataclass(frozen=True)
class ScenarioConfig:
    name: str
    description: str
    gateway_scenario: str
    # Readiness a freshly scored claim lands on; None when no claim can be built
    expected_readiness: Optional[ReadinessStatus] = None


SCENARIO_CONFIGS: Dict[Scenario, ScenarioConfig] = {
    Scenario.ACTIVE_IN_NETWORK: ScenarioConfig(
        name="Active In-Network Coverage",
        description="Active, in-network benefits with no prior authorization",
        gateway_scenario="active_in_network",
        expected_readiness=ReadinessStatus.GREEN,
    ),
    Scenario.PRIOR_AUTH_REQUIRED: ScenarioConfig(
        name="Prior Authorization Required",
        description="Active coverage, payer notes require prior authorization",
        gateway_scenario="prior_auth_required",
        expected_readiness=ReadinessStatus.YELLOW,
    ),
    Scenario.OUT_OF_NETWORK: ScenarioConfig(
        name="Out of Network",
        description="Only out-of-network benefits are reported",
        gateway_scenario="out_of_network",
        expected_readiness=ReadinessStatus.GREEN,
    ),
    Scenario.INACTIVE_POLICY: ScenarioConfig(
        name="Inactive Policy",
        description="Payer reports the policy as inactive",
        gateway_scenario="inactive_policy",
        expected_readiness=ReadinessStatus.RED,
    ),
    Scenario.PAYER_PENDING: ScenarioConfig(
        name="Payer Response Pending",
        description="Eligibility response not complete yet, re-verify later",
        gateway_scenario="pending",
    ),
    Scenario.SUBSCRIBER_NOT_FOUND: ScenarioConfig(
        name="Subscriber Not Found",
        description="Payer rejects the subscriber details",
        gateway_scenario="subscriber_not_found",
    ),
    Scenario.UPSTREAM_ERROR: ScenarioConfig(
        name="Upstream Outage",
        description="Eligibility API answers with a server error",
        gateway_scenario="upstream_error",
    ),
}


class ScenarioManager:
    """
    Holds the active demo scenario and pushes it to every registered mock gateway.
    """

    def __init__(self, scenario: Scenario = Scenario.ACTIVE_IN_NETWORK):
        self._scenario = scenario
        self._gateways: Dict[str, Any] = {}

    @property
    def current_scenario(self) -> Scenario:
        return self._scenario

    def register_gateway(self, name: str, gateway: Any) -> None:
        """
        Track a gateway and bring it onto the active scenario.

        Args:
            name: Registry key; registering the same name again replaces the gateway
            gateway: Anything exposing ``set_scenario(str)``
        """
        self._gateways[name] = gateway
        gateway.set_scenario(SCENARIO_CONFIGS[self._scenario].gateway_scenario)

    def set_scenario(self, scenario: Scenario) -> ScenarioConfig:
        """
        Activate a scenario on all registered gateways.

        Returns:
            The activated scenario's configuration
        """
        config = SCENARIO_CONFIGS[scenario]
        self._scenario = scenario
        for gateway in self._gateways.values():
            gateway.set_scenario(config.gateway_scenario)

        logger.info(
            "Eligibility scenario switched",
            scenario=scenario.value,
            gateways=sorted(self._gateways),
        )
        return config

    def list_scenarios(self) -> List[Dict[str, Any]]:
        scenarios = []
        for scenario, config in SCENARIO_CONFIGS.items():
            scenarios.append({
                "id": scenario.value,
                "name": config.name,
                "description": config.description,
                "expected_readiness": config.expected_readiness.value if config.expected_readiness else None,
                "is_current": scenario is self._scenario,
            })
        return scenarios


_manager: Optional[ScenarioManager] = None


def get_scenario_manager() -> ScenarioManager:
    """Get or create the process-wide scenario manager."""
    global _manager
    if _manager is None:
        _manager = ScenarioManager()
    return _manager
