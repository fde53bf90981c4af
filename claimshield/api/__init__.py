"""API module for ClaimShield endpoints."""
from .routes import leads, claims, verification, dashboard, rules

__all__ = ["leads", "claims", "verification", "dashboard", "rules"]
