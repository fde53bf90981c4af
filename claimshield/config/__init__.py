"""Configuration: settings, logging and request context."""
from .settings import Settings, get_settings
from .logging_config import setup_logging, get_logger

__all__ = ["Settings", "get_settings", "setup_logging", "get_logger"]
