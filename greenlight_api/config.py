"""
Configuration for Greenlight Offer API.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Later files override earlier ones; real environment variables override both.
ENV_FILES = (".env", ".env.local")


class Settings(BaseSettings):
    """
    API configuration settings.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Server
    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=8081, description="API port")
    debug: bool = Field(default=False, description="Enable debug mode (auto-reload)")
    log_level: str = Field(default="INFO", description="Minimum log level")
    environment: str = Field(
        default="development",
        description="Deployment environment (development/production)",
    )

    # CORS: the offer endpoint is called straight from browsers
    allowed_origins: list[str] = Field(default=["*"], description="CORS allowed origins")
    cors_max_age: int = Field(default=3600, description="CORS preflight cache in seconds")

    # Developer credentials
    # *_CONTENT takes precedence and may be raw PEM or Base64 encoded PEM.
    gl_cert_content: Optional[str] = Field(
        default=None,
        description="Developer certificate content (raw or Base64)",
    )
    gl_key_content: Optional[str] = Field(
        default=None,
        description="Developer key content (raw or Base64)",
    )
    gl_cert_path: str = Field(default="client.crt", description="Developer certificate file")
    gl_key_path: str = Field(default="client-key.pem", description="Developer key file")

    # Greenlight
    gl_network: Literal["bitcoin", "testnet", "signet", "regtest"] = Field(
        default="bitcoin",
        description="Network the hosted node runs on",
    )
    gl_seed_policy: Literal["request", "process"] = Field(
        default="request",
        description="Signing seed lifecycle: fresh per request, or one per process",
    )
    gl_invite_code: Optional[str] = Field(
        default=None,
        description="Optional invite code passed on node registration",
    )
    gl_offer_description: str = Field(
        default="Shopstr username registration",
        description="Description embedded in every created offer",
    )

    # Username registration (BIP-353 via Cloudflare DNS)
    domain: str = Field(default="nitishjha.space", description="Domain usernames live under")
    cloudflare_api_token: str = Field(default="", description="Cloudflare API token")
    cloudflare_zone_id: str = Field(default="", description="Cloudflare zone ID for DOMAIN")
    cloudflare_api_url: str = Field(
        default="https://api.cloudflare.com/client/v4",
        description="Cloudflare API base URL",
    )

    @property
    def is_development(self) -> bool:
        return self.environment.lower() != "production"

    @property
    def cloudflare_configured(self) -> bool:
        return bool(self.cloudflare_api_token and self.cloudflare_zone_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
