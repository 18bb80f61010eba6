"""
Configuration Management Module
Settings for the authentication service, token authority and security middleware
"""
import warnings
from typing import List, Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
import logging
import secrets
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with security configurations"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "Sessionkeep Auth API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production|testing)$")
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    API_V1_PREFIX: str = "/api/v1"
    PASSWORD_MIN_LENGTH: int = Field(
        default=8,
        description="Minimum password length for user accounts"
    )

    ARGON2_TIME_COST: int = 2
    ARGON2_MEMORY_COST: int = 65536  # 64 MB
    ARGON2_PARALLELISM: int = 4
    ARGON2_HASH_LENGTH: int = 32
    ARGON2_SALT_LENGTH: int = 16

    # ========================================================================
    # TOKEN AUTHORITY CONFIGURATION
    # ========================================================================
    JWT_SECRET: str = Field(
        default="",
        description="Shared signing secret for access and refresh tokens (min 32 chars)"
    )
    JWT_ALGORITHM: str = Field(default="HS256", pattern="^HS(256|384|512)$")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=15,
        description="access token expiration time in minutes"
    )
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    ROTATE_REFRESH_TOKENS: bool = Field(
        default=False,
        description="Issue a new refresh token and revoke the presented one on every refresh"
    )

    @model_validator(mode='after')
    def ensure_jwt_secret(self) -> 'Settings':
        """Generate a throwaway secret outside production"""
        if not self.JWT_SECRET:
            if self.ENVIRONMENT == "production":
                raise ValueError("JWT_SECRET must be set in production")
            self.JWT_SECRET = secrets.token_urlsafe(48)
            warnings.warn(
                "JWT_SECRET not set in .env - using generated key. "
                "Issued tokens will not survive a restart!",
                UserWarning
            )
        elif len(self.JWT_SECRET) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters long")
        return self

    # CORS Settings
    CORS_ENABLED: bool = True
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000"], description="List of allowed CORS origins")
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = Field(default=["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default=["*"])
    CORS_MAX_AGE: int = 600

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ========================================================================
    # SECURITY HEADERS CONFIGURATION
    # ========================================================================
    ENABLE_HSTS: bool = True
    HSTS_MAX_AGE: int = 31536000  # 1 year
    ENABLE_CSP: bool = True
    CSP_POLICY: str = (
        "default-src 'self'; "
        "img-src 'self' data: https:; "
        "frame-ancestors 'self'"
    )

    # ========================================================================
    # LOGGING CONFIGURATION
    # ========================================================================
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    LOG_REQUESTS: bool = Field(
        default=True,
        description="Enable request/response logging"
    )
    SLOW_REQUEST_THRESHOLD_MS: int = Field(
        default=1000,
        description="Requests slower than this are logged as warnings"
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid"""
        return v.upper() if isinstance(v, str) else v

    # ========================================================================
    # COMPUTED PROPERTIES
    # ========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.ENVIRONMENT == "production"

    # ========================================================================
    # DATABASE CONFIGURATION
    # ========================================================================
    DATABASE_URL_OVERRIDE: Optional[str] = Field(
        default=None,
        alias="DATABASE_URL",
        description="Full async database URL; takes precedence over DB_* fields"
    )
    DB_USER: str = Field(
        default="postgres",
        description="Database username"
    )
    DB_PASSWORD: str = Field(
        default="",
        description="Database password"
    )
    DB_HOST: str = Field(
        default="localhost",
        description="Database host"
    )
    DB_PORT: int = Field(
        default=5432,
        description="Database port"
    )
    DB_NAME: str = Field(
        default="sessionkeep",
        description="Database name"
    )
    DB_CREATE_TABLES: bool = Field(
        default=False,
        description="Create missing tables on startup instead of relying on Alembic"
    )

    @property
    def DATABASE_URL(self) -> str:
        """Construct async database URL with encoded password"""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        encoded_password = quote_plus(self.DB_PASSWORD)
        return f"postgresql+asyncpg://{self.DB_USER}:{encoded_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def database_url_sync(self) -> str:
        """Get synchronous database URL for Alembic"""
        if self.DATABASE_URL_OVERRIDE:
            url = self.DATABASE_URL_OVERRIDE.replace("+asyncpg", "").replace("+aiosqlite", "")
            return url.replace('%', '%%')
        encoded_password = quote_plus(self.DB_PASSWORD)
        # Double %% ONLY for Alembic's INI file parsing
        encoded_password = encoded_password.replace('%', '%%')
        return f"postgresql://{self.DB_USER}:{encoded_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    def validate_configuration(self) -> List[str]:
        """
        Validate configuration and return list of warnings/issues
        Useful for startup checks
        """
        issues = []

        if self.ENVIRONMENT == "production":
            if self.DEBUG:
                issues.append("DEBUG enabled in production")
            if "*" in self.CORS_ORIGINS:
                issues.append("CORS_ORIGINS allows any origin in production")
            if not self.DB_PASSWORD and not self.DATABASE_URL_OVERRIDE:
                issues.append("DB_PASSWORD not set for production database")

        return issues


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance
    Using lru_cache ensures we only load settings once
    """
    settings = Settings()
    for issue in settings.validate_configuration():
        logger.warning(f"Configuration issue: {issue}")
    return settings


# Export settings instance
settings = get_settings()
