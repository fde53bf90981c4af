"""Storage module for database operations."""
from .database import get_db, init_db, close_db, get_engine, get_session_factory
from .lead_repository import LeadRepository
from .claim_repository import ClaimRepository
from .rule_repository import RuleRepository
from .claim_event_log import ClaimEventLog

__all__ = [
    "get_db",
    "init_db",
    "close_db",
    "get_engine",
    "get_session_factory",
    "LeadRepository",
    "ClaimRepository",
    "RuleRepository",
    "ClaimEventLog",
]
