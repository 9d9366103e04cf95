"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with UPDOWN_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="UPDOWN_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    redis_url: str = "redis://localhost:6379/0"
    redis_timeout_seconds: float = 2.0
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    rate_limit_requests: int = 120
    rate_limit_window_seconds: int = 60
    log_level: str = "INFO"
    log_format: str = "json"

    # --- Rounds ---
    round_duration_ms: int = 5 * 60 * 1000
    bet_lock_ms: int = 60 * 1000
    bet_ttl_seconds: int = 24 * 60 * 60
    bet_price_tolerance: float = 0.005  # max relative gap between a client quote and server spot
    pending_max_age_rounds: int = 12  # 1 hour of 5-minute rounds

    # --- Scoring / leaderboard ---
    stats_ttl_seconds: int = 7 * 24 * 60 * 60
    resolved_marker_ttl_seconds: int = 7 * 24 * 60 * 60
    history_max_entries: int = 200
    leaderboard_default_limit: int = 100
    leaderboard_max_limit: int = 200
    leaderboard_fetch_cap: int = 1000

    # --- Admin ---
    admin_token: str = ""
    snapshot_top_n: int = 3

    # --- Price feed ---
    price_feed_url: str = "https://api.coingecko.com/api/v3"
    price_feed_timeout_seconds: float = 5.0
    asset_ids: dict[str, str] = {"BTC": "bitcoin", "ETH": "ethereum", "SOL": "solana"}

    # --- Receipts (audit trail) ---
    receipt_gateway_url: str = ""
    receipt_timeout_seconds: float = 10.0
    receipt_app_tag: str = "updown-predict"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
