"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with RELAYCHAT_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: Every component takes a Settings instance so tests can build an
isolated relay with its own policy; production code uses the singleton.
"""

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via RELAYCHAT_* env vars."""

    # Identity tokens (minted by the login service, verified at set-identity)
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    identity_token_expire_minutes: int = 7 * 24 * 60
    require_identity_token: Optional[bool] = None  # None → required outside development

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5001

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Chat policy
    bilateral_join: bool = True  # joining also subscribes an online counterpart
    close_replaced_connections: bool = True
    max_identity_length: int = 64
    max_message_length: int = 4000

    model_config = {"env_prefix": "RELAYCHAT_"}

    @property
    def identity_token_required(self) -> bool:
        if self.require_identity_token is None:
            return self.environment != "development"
        return self.require_identity_token

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if (
            self.environment != "development"
            and self.jwt_secret == "change-me-in-production"
        ):
            raise ValueError(
                "RELAYCHAT_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton, import this everywhere
settings = Settings()
