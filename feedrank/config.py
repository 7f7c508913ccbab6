"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ── TiDB (MySQL-protocol compatible) ───────────────────────────────────
    tidb_host: str = "tidb"
    tidb_port: int = 4000
    tidb_user: str = "root"
    tidb_password: str = ""
    tidb_database: str = "social_feed"
    # Full SQLAlchemy URL; takes precedence over the tidb_* parts when set
    database_url_override: Optional[str] = None
    db_pool_size: int = 20
    db_max_overflow: int = 10
    db_pool_recycle_seconds: int = 1800

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+aiomysql://{self.tidb_user}:{self.tidb_password}"
            f"@{self.tidb_host}:{self.tidb_port}/{self.tidb_database}"
        )

    # ── Redis ──────────────────────────────────────────────────────────────
    redis_host: str = "redis"
    redis_port: int = 6379
    taste_profile_retention_seconds: int = 7 * 86400   # memory bound only

    # ── Kafka ──────────────────────────────────────────────────────────────
    kafka_bootstrap_servers: str = "kafka:9092"
    kafka_topic_impressions: str = "impressions"

    # ── Feed assembly ──────────────────────────────────────────────────────
    feed_max_page_size: int = 50
    feed_max_page: int = 50
    feed_candidate_pool_cap: int = 500   # per source, home/following
    home_explore_window_days: int = 14
    explore_window_days: int = 30
    explore_pool_size: int = 1000
    explore_max_per_author: int = 2      # diversity cap
    reel_run_length: int = 3             # non-reel items before each reel
    reel_share: float = 0.3              # reel quota as a share of page size

    # ── Taste profile ──────────────────────────────────────────────────────
    taste_ttl_hours: float = 6.0
    taste_lookback_days: int = 30
    taste_history_limit: int = 2000
    taste_decay_days: float = 14.0
    taste_default_reference_ms: int = 8000
    taste_max_hashtags: int = 120
    taste_max_topics: int = 120
    taste_max_authors: int = 200
    taste_max_kinds: int = 10

    # ── Explore interest boost ─────────────────────────────────────────────
    interest_divisor: float = 20.0
    interest_boost_cap: float = 0.6

    # ── Observability ──────────────────────────────────────────────────────
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "feedrank"
    environment: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="FEEDRANK_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
