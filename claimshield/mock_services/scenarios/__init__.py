"""Scenario management for mock services."""
from .scenario_manager import ScenarioManager, Scenario, get_scenario_manager

__all__ = ["ScenarioManager", "Scenario", "get_scenario_manager"]
