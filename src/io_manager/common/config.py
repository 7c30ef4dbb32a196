"""Telematics IO Manager configuration via pydantic-settings."""

import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "jwt_secret": "insecure-jwt-secret-change-me",
}


class IOManagerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="IOM_")

    environment: str = "development"
    log_level: str = "INFO"

    # Tokens
    jwt_secret: str = "insecure-jwt-secret-change-me"
    jwt_algorithm: str = "HS256"
    access_token_minutes: int = 15
    refresh_token_days: int = 7
    cookie_secure: bool = False

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/io_manager.db"
    db_pool_size: int = 10
    db_pool_timeout: int = 30  # seconds
    db_echo: bool = False

    # API
    api_title: str = "Telematics IO Manager"
    api_version: str = "0.1.0"
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = ["http://localhost:3000"]

    # Pagination
    default_page_size: int = 10
    audit_default_page_size: int = 25
    max_page_size: int = 10000

    # Accounts
    min_password_length: int = 6
    protected_username: str = "admin"
    admin_role_name: str = "Administrator"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if not self.is_development and insecure_fields:
            env_vars = ", ".join(f"IOM_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if insecure_fields:
            warnings.warn(
                "Using an insecure default token secret; set IOM_JWT_SECRET for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> IOManagerSettings:
    settings = IOManagerSettings()
    settings.validate_for_production()
    return settings
