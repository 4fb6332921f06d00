from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str

    # Redis
    redis_url: str
    redis_socket_timeout_seconds: float = 10.0  # must exceed the worker's XREADGROUP block

    # API
    api_port: int = 8000

    # Security
    internal_auth_secret: str  # HMAC secret shared with the auth gateway

    # User read-through cache (seconds a cached user document may be stale)
    user_cache_ttl_seconds: int = 300

    # Discovery / pagination
    discover_default_limit: int = 20
    discover_max_limit: int = 100
    history_default_limit: int = 20
    history_max_limit: int = 100

    # Match formation
    match_formation_max_attempts: int = 3
    match_formation_backoff_seconds: float = 0.05
    match_reconcile_stream: str = "match.reconcile"
    recent_match_window_days: int = 7

    # Logging
    log_level: str = "INFO"

    # Environment
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


settings = Settings()
