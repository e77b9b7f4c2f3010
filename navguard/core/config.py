"""
Application configuration management using Pydantic Settings.
"""
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, RedisDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    APP_NAME: str = "NavGuard"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production)$")

    # API
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "NavGuard API"
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"]
    )

    # Privilege backend
    BACKEND_API_URL: str = "http://localhost:8005"
    BACKEND_TIMEOUT_SECONDS: float = 10.0
    BACKEND_MAX_RETRIES: int = 3
    BACKEND_RETRY_BACKOFF_SECONDS: float = 0.5
    BACKEND_RETRY_BACKOFF_MAX_SECONDS: float = 8.0

    # Backend endpoint paths
    ROLE_PRIVILEGES_PATH: str = "/Privilege/role/privileges/{role_id}/"
    SUBMODULE_SCHEMA_PATH: str = "/Privilege/submodules/combined/"
    FUNCTIONALITY_SCHEMA_PATH: str = "/Privilege/functionality/combined/"
    SET_MODULE_PRIVILEGE_PATH: str = "/Privilege/privileges/module/create/"
    SET_SUBMODULE_PRIVILEGE_PATH: str = "/Privilege/submodule/privileges/create/"
    SET_FUNCTIONALITY_PRIVILEGE_PATH: str = "/Privilege/functionality/privileges/create/"
    TOKEN_REFRESH_PATH: str = "/accounts/token/refresh/"

    # Privilege cache
    PRIVILEGE_CACHE_TTL_SECONDS: float = 120.0  # 2 minutes

    # Tokens
    TOKEN_EXPIRY_LEEWAY_SECONDS: int = 0
    LOGIN_PATH: str = "/login"

    # Session Settings
    SESSION_BACKEND: str = Field(default="memory", pattern="^(memory|redis)$")
    SESSION_TTL_SECONDS: int = 86400  # 24 hours
    SESSION_HEADER: str = "X-Session-ID"

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    REDIS_URL: Optional[RedisDsn] = None
    REDIS_MAX_CONNECTIONS: int = 50

    # Page components keyed by slug path
    PAGE_COMPONENTS: Dict[str, str] = Field(
        default={"file/tax": "TaxPage"}
    )

    # Roles allowed per slug path prefix ("*" for every page); ids or role names
    PAGE_ALLOWED_ROLES: Dict[str, List[Union[int, str]]] = Field(default_factory=dict)

    @field_validator("REDIS_URL", mode="before")
    @classmethod
    def assemble_redis_connection(cls, v: Optional[str], info) -> str:
        if v:
            return v
        values = info.data
        host = values.get("REDIS_HOST", "localhost")
        port = values.get("REDIS_PORT", 6379)
        db = values.get("REDIS_DB", 0)
        password = values.get("REDIS_PASSWORD")
        if password:
            return f"redis://:{password}@{host}:{port}/{db}"
        return f"redis://{host}:{port}/{db}"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    @field_validator("BACKEND_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == "development"

    def get_retry_config(self) -> Dict[str, Any]:
        """Get backend retry configuration."""
        return {
            "max_retries": self.BACKEND_MAX_RETRIES,
            "backoff_seconds": self.BACKEND_RETRY_BACKOFF_SECONDS,
            "backoff_max_seconds": self.BACKEND_RETRY_BACKOFF_MAX_SECONDS,
        }


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()


# Create a settings instance for easy import
settings = get_settings()
