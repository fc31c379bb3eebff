"""
Application settings and configuration for the identity service.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field

# Placeholder values that must never be used to sign real tokens
INSECURE_SECRET_PLACEHOLDERS = {
    "CHANGE_ME_IN_PRODUCTION",
    "CHANGE_ME_IN_PRODUCTION_REFRESH",
    "dev-secret-key-change-in-production",
}


class IdentitySettings(BaseSettings):
    """Identity service configuration settings."""

    # Environment
    environment: str = Field(
        default="development", description="Application environment"
    )

    # Security
    jwt_secret_key: str = Field(
        default="CHANGE_ME_IN_PRODUCTION",
        description="Access token signing key - must be set via environment variable",
    )
    jwt_refresh_secret_key: str = Field(
        default="CHANGE_ME_IN_PRODUCTION_REFRESH",
        description="Refresh token signing key - must differ from the access key",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_seconds: int = Field(
        default=15 * 60, description="Access token lifetime in seconds"
    )
    refresh_token_expire_seconds: int = Field(
        default=7 * 24 * 60 * 60, description="Refresh token lifetime in seconds"
    )
    password_hash_rounds: int = Field(
        default=12, ge=4, le=31, description="bcrypt cost factor"
    )

    # Account lockout
    lockout_max_failed_attempts: int = Field(
        default=3, ge=1, description="Failed logins before the account locks"
    )
    lockout_duration_seconds: int = Field(
        default=15 * 60, description="How long a locked account stays locked"
    )
    lockout_attempt_window_seconds: int = Field(
        default=15 * 60, description="Window in which failed attempts accumulate"
    )

    # Invitations
    invitation_expiry_days: int = Field(
        default=7, ge=1, description="Days before a pending invitation expires"
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    redis_socket_timeout: float = Field(
        default=2.0, description="Redis socket connect/read timeout in seconds"
    )

    # Background bookkeeping
    background_workers: int = Field(
        default=4, ge=1, description="Worker threads for fire-and-forget writes"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="CORS allowed origins (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Application log level")
    log_format: str = Field(default="json", description="Log format")

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def ensure_signing_keys(self) -> None:
        """
        Fail fast when token signing keys are unusable.

        Raises:
            ValueError: If a key is a known placeholder or both keys are equal
        """
        if (
            self.jwt_secret_key in INSECURE_SECRET_PLACEHOLDERS
            or self.jwt_refresh_secret_key in INSECURE_SECRET_PLACEHOLDERS
        ):
            raise ValueError(
                "JWT_SECRET_KEY and JWT_REFRESH_SECRET_KEY environment variables "
                "must be set to secure values"
            )
        if self.jwt_secret_key == self.jwt_refresh_secret_key:
            raise ValueError(
                "Access and refresh tokens must be signed with distinct keys"
            )


@lru_cache()
def get_identity_settings() -> IdentitySettings:
    """Get cached identity settings."""
    return IdentitySettings()
