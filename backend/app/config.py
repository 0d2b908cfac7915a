"""
Caisse Backend — Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before the app serves traffic.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Placeholder signing secret. Only acceptable outside production.
DEV_JWT_SECRET = "CAISSE_DEV_SECRET_CHANGE_ME"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Production deployments MUST
    override JWT_SECRET; startup is refused otherwise.
    """

    # ── Runtime ───────────────────────────────────────────────────────────
    environment: str = Field(default="development")

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=10000, ge=1, le=65535)

    # ── Database ──────────────────────────────────────────────────────────
    # Single SQLite file; its parent directory is created on startup.
    database_path: str = Field(default="./data/caisse.sqlite")

    # ── Authentication ────────────────────────────────────────────────────
    jwt_secret: str = Field(default=DEV_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_hours: int = Field(default=12, ge=1, le=24 * 30)

    # bcrypt cost factor; 4 is the library minimum (used by the test suite)
    bcrypt_rounds: int = Field(default=10, ge=4, le=15)

    # ── Tenancy ───────────────────────────────────────────────────────────
    default_company: str = Field(default="MAIN")

    # Upper bound on rows returned by GET /api/sales
    sales_list_limit: int = Field(default=2000, ge=1, le=100_000)

    # Policy switch: when true, POST /api/users accepts unauthenticated calls
    open_user_creation: bool = Field(default=False)

    # ── Bootstrap administrator ───────────────────────────────────────────
    # Created on first startup only when both email and password are set.
    bootstrap_admin_email: Optional[str] = Field(default=None)
    bootstrap_admin_password: Optional[str] = Field(default=None)
    bootstrap_admin_company: str = Field(default="MAIN")
    bootstrap_admin_agencies: str = Field(default="")

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that security-sensitive settings are configured.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises a single ValueError.
        """
        errors = []
        if not self.jwt_secret or self.jwt_secret == DEV_JWT_SECRET:
            errors.append(
                "JWT_SECRET is not set. Tokens are signed with the development "
                "placeholder secret."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance — imported throughout the application
settings = Settings()
