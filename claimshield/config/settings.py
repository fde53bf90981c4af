"""Application settings loaded from environment variables and .env."""
from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for ClaimShield.

    Every field can be set from the environment (case-insensitive) or a local
    .env file. Dict fields accept JSON, e.g.
    ``VOB_FIELD_WEIGHTS='{"serviceType": 10}'``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    log_level: str = "INFO"
    json_logs: bool = False
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./claimshield.db"
    database_echo: bool = False

    # VerifyTX eligibility API
    verifytx_base_url: str = "https://api.verifytx.com"
    verifytx_client_id: Optional[str] = None
    verifytx_client_secret: Optional[str] = None
    verifytx_username: Optional[str] = None
    verifytx_password: Optional[str] = None
    verifytx_facility_id: Optional[str] = None
    verifytx_timeout_seconds: float = 30.0
    verifytx_token_ttl_seconds: int = 3300
    verifytx_token_refresh_margin_seconds: int = 300
    use_mock_eligibility: bool = True

    # Claim timeline
    stuck_claim_threshold_days: int = 7

    # Scoring overrides, merged onto the defaults in claimshield.scoring
    vob_field_weights: Dict[str, int] = Field(default_factory=dict)
    risk_weights: Dict[str, float] = Field(default_factory=dict)

    # Demo data
    seed_demo_data: bool = False

    @property
    def verifytx_configured(self) -> bool:
        """True when enough credentials exist to talk to VerifyTX."""
        return bool(self.verifytx_client_id and self.verifytx_client_secret)

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
