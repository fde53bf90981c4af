"""ClaimShield revenue cycle service."""
__version__ = "0.1.0"
