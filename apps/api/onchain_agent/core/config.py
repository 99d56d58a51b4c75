"""
apps/api/onchain_agent/core/config.py
Configuration management using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List, Optional, Literal


DEFAULT_PORT = 5000


class Settings(BaseSettings):
    """
    API Service Configuration
    Read once from the environment (and .env); immutable afterwards.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    APP_NAME: str = "On-chain Security AI Agent API"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False

    # ========================================================================
    # HTTP Listener Settings
    # ========================================================================
    API_HOST: str = "0.0.0.0"
    PORT: int = DEFAULT_PORT
    LISTENER_START_TIMEOUT: float = Field(default=10.0, gt=0)
    SHUTDOWN_TIMEOUT: float = Field(default=10.0, gt=0)  # seconds
    CORS_ORIGINS: List[str] = ["*"]

    # ========================================================================
    # MongoDB Settings
    # ========================================================================
    # Required at run time; checked by the lifecycle controller
    MONGODB_URI: str = ""
    MONGODB_DATABASE: str = "onchain_agent"
    MONGODB_STRICT_QUERY: bool = True
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = Field(default=30000, gt=0)

    # ========================================================================
    # Logging Settings
    # ========================================================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "console"

    # ========================================================================
    # Validators
    # ========================================================================

    @field_validator("PORT", mode="before")
    @classmethod
    def coerce_port(cls, v):
        """Fall back to the default port for anything that isn't a usable port number"""
        try:
            port = int(str(v).strip())
        except (TypeError, ValueError):
            return DEFAULT_PORT
        if not 0 < port < 65536:
            return DEFAULT_PORT
        return port

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def mongodb_uri(self) -> str:
        """Connection string with surrounding whitespace removed"""
        return self.MONGODB_URI.strip()

    def model_dump_safe(self) -> dict:
        """Export config without the connection string (it may carry credentials)"""
        data = self.model_dump()
        data["MONGODB_URI"] = "***" if self.mongodb_uri else ""
        return data


# ============================================================================
# Singleton Pattern - Global Settings Instance
# ============================================================================

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create settings instance (Singleton)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


# ============================================================================
# Export
# ============================================================================

__all__ = ["Settings", "get_settings", "DEFAULT_PORT"]
