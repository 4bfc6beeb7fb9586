"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # JWT Configuration (tokens are issued by the auth provider / frontend)
    jwt_secret_key: str = Field(..., description="Secret key for JWT token verification")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")
    database_ssl: str | None = Field(default="require", description="asyncpg ssl mode")

    # Server URLs
    frontend_url: str = Field(default="http://localhost:3000", description="Frontend URL for CORS")

    # Environment
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Admin recovery
    totp_issuer: str = Field(default="TruthLens", description="Issuer shown in authenticator apps")
    recovery_token_ttl_hours: int = Field(default=24, description="Recovery token lifetime")
    totp_valid_window: int = Field(
        default=1, description="Accepted TOTP steps before/after the current one"
    )
    allow_legacy_recovery_tokens: bool = Field(
        default=True,
        description="Accept tokens issued without a TOTP secret (no second factor)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("totp_valid_window", "recovery_token_ttl_hours")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be non-negative")
        return v

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS allowed origins"""
        return [self.frontend_url]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]
