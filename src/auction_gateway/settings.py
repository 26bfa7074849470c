"""
auction_gateway.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Keep the deployment's existing env names (PORT, POSTGRES_URL, REDIS_URL, ...).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from auction_gateway.auth.admin import parse_admin_list


class Settings(BaseSettings):
    """
    Env-driven configuration.
    Defaults are safe for local dev; production injects everything via env.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment name only changes log rendering (console vs JSON).
    env: str = Field(
        default="development",
        validation_alias=AliasChoices("env", "APP_ENV", "NODE_ENV"),
    )
    service_name: str = "auction-gateway"
    log_level: str = "info"

    host: str = "0.0.0.0"
    port: int = 3001

    # Stores
    postgres_url: str = Field(default="postgresql+asyncpg://localhost:5432/auction", repr=False)
    redis_url: str = Field(default="redis://localhost:6379", repr=False)
    db_warmup_on_start: bool = False
    db_warmup_timeout_seconds: float = Field(default=30.0, gt=0)

    # HTTP surface
    cors_origin: str = "*"
    trust_proxy: bool = True
    static_dir: str = "public"

    # Auth
    admins: str = "1768"
    quick_auth_origin: str = "https://auth.farcaster.xyz"
    quick_auth_timeout_seconds: float = Field(default=5.0, gt=0)
    jwks_cache_seconds: int = Field(default=3600, ge=0)

    # Admission control
    rate_limit_enabled: bool = True

    @field_validator("postgres_url")
    @classmethod
    def _use_asyncpg_driver(cls, v: str) -> str:
        # Hosting providers hand out libpq-style URLs; SQLAlchemy needs the driver spelled out.
        for prefix in ("postgres://", "postgresql://"):
            if v.startswith(prefix):
                return "postgresql+asyncpg://" + v[len(prefix) :]
        return v

    @field_validator("admins")
    @classmethod
    def _admins_are_integers(cls, v: str) -> str:
        # Fail at boot on typos; an empty list is still accepted (checked per request).
        parse_admin_list(v)
        return v

    @property
    def admin_fids(self) -> tuple[int, ...]:
        return parse_admin_list(self.admins)

    @property
    def is_production(self) -> bool:
        return self.env.lower() in ("production", "prod")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# CORS_ORIGIN doubles as the Quick Auth trust domain (see auth.quick_auth.trust_domain).
