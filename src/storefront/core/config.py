# src/storefront/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "Storefront Sync Gateway"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # API Keys: Mapping von API-Key zu Tenant-ID (JSON-String als Env-Var)
    # Format: '{"key_abc123": "eur", "key_xyz789": "km"}'
    api_keys: dict[str, str] = Field(default_factory=dict)

    # Storefront backend
    storefront_base_url: str = "http://localhost:5000"
    storefront_timeout_seconds: float = 10.0

    # Filter debounce
    debounce_ms: int = Field(default=300, ge=0)

    # Query cache policy
    catalog_stale_seconds: float = Field(default=300, ge=0)
    cart_stale_seconds: float = Field(default=120, ge=0)
    categories_stale_seconds: float = Field(default=300, ge=0)
    cache_gc_seconds: float = Field(default=1800, ge=0)
    catalog_retries: int = Field(default=1, ge=0)
    cart_retries: int = Field(default=2, ge=0)
    retry_delay_seconds: float = Field(default=1.0, ge=0)
    retry_delay_max_seconds: float = Field(default=30.0, ge=0)

    # Live sessions idle longer than this are closed and dropped
    session_idle_seconds: float = Field(default=1800, ge=0)

    # Session expired -> login redirect
    login_path: str = "/auth"
    unauthorized_redirect_delay_seconds: float = Field(default=0.5, ge=0)

    # Notifications
    notification_history: int = Field(default=50, ge=1)
    webhook_enabled: bool = False
    webhook_url: str | None = None

    # CORS
    cors_origins: list[str] = Field(default=["*"])

    # Rate Limiting
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


@lru_cache
def get_settings() -> Settings:
    return Settings()
