"""
Configuration management for the PBX Call Gateway
Uses Pydantic Settings for environment variable management
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    environment: str = Field(default="development")

    # Server Configuration
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8000)

    # CORS Settings
    allowed_origins: str = Field(default="*")

    # PBX probing
    pbx_attempt_timeout_seconds: float = Field(default=15.0, gt=0)
    pbx_diagnostic_body_limit: int = Field(default=500)

    # Call sessions
    inbound_ring_timeout_seconds: float = Field(default=30.0, gt=0)

    # Call log storage
    database_type: str = Field(default="sqlite")
    sqlite_path: str = Field(default="call_logs.db")
    turso_db_url: Optional[str] = Field(default=None)
    turso_db_auth_token: Optional[str] = Field(default=None)

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",")]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
