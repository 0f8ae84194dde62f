from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Enquiries Hub API"
    environment: str = "dev"
    api_prefix: str = "/v1"
    log_level: str = "INFO"

    pg_dsn: str = "sqlite:///./enquiries_hub.db"
    db_pool_size: int = Field(default=10, ge=1, le=200)
    db_max_overflow: int = Field(default=20, ge=0, le=400)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=600)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86400)

    redis_url: str = "redis://redis:6379/0"
    aggregate_cache_enabled: bool = True
    aggregate_cache_ttl_seconds: int = Field(default=600, ge=10, le=86400)
    aggregate_cache_prefix: str = "unified"

    hub_webhook_secret: str = ""
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    shared_prospect_ids: str = "28609,23849,26069"
    shared_prospect_mailbox: str = "prospects@helix-law.com"
    generic_mailbox_local_parts: str = "prospects,team"
    unclaimed_point_of_contacts: str = "team@helix-law.com"
    triage_marker: str = "triage"
    preferred_source_tag: str = "new"

    claim_platform_base_url: str = "https://enquiry-processing-v2.azurewebsites.net"
    claim_platform_api_key: str = ""
    claim_platform_timeout_seconds: float = Field(default=20.0, ge=1.0, le=120.0)

    claim_watcher_enabled: bool = True
    claim_watcher_interval_seconds: float = Field(default=5.0, ge=0.01, le=300.0)
    claim_watcher_seed_window_seconds: int = Field(default=30, ge=0, le=3600)
    claim_watcher_batch_limit: int = Field(default=200, ge=1, le=5000)

    stream_heartbeat_interval_seconds: float = Field(default=30.0, ge=0.01, le=600.0)
    stream_retry_ms: int = Field(default=10000, ge=0, le=600000)
    stream_max_pending_frames: int = Field(default=256, ge=1, le=100000)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
