"""Deterministic agents for call intake."""
from .intake_agent import CallIntakeAgent, ExtractedCallData, get_call_intake_agent

__all__ = ["CallIntakeAgent", "ExtractedCallData", "get_call_intake_agent"]
