"""
Shared configuration management for the Users API.
"""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseModel):
    """Cache store connection and cache-aside policy settings."""

    backend: Literal["redis", "memory"] = "redis"
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = "users-api"
    io_timeout_seconds: float = Field(default=1.0, gt=0)

    # Per-namespace TTL table
    entity_ttl_seconds: int = Field(default=3600, gt=0)
    collection_ttl_seconds: int = Field(default=600, gt=0)

    negative_results_enabled: bool = False
    negative_ttl_seconds: int = Field(default=60, gt=0)
    empty_collection_enabled: bool = False
    single_flight_enabled: bool = True

    @property
    def redis_url(self) -> str:
        return f"redis://{self.host}:{self.port}/{self.db}"


class StoreSettings(BaseModel):
    """Backing store (PostgreSQL) settings."""

    postgres_dsn: str = "postgres://localhost:5432/users"
    timeout_seconds: float = Field(default=5.0, gt=0)
    failure_threshold: int = 5
    recovery_timeout_seconds: float = 30.0


class AuthSettings(BaseModel):
    """Bearer token validation settings."""

    jwt_secret: str = "myfancysecret"
    jwt_algorithm: str = "HS256"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="USERS_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    cache: CacheSettings = Field(default_factory=CacheSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)

    # Observability
    enable_tracing: bool = False


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service.

    Explicit keyword overrides win over environment values, which is how
    tests pin a cache backend or TTL without touching the process env.
    """
    return ServiceConfig(service_name=service_name, port=port, **overrides)
