"""
Central feature flags. One file controls every optional external dependency.

Set via environment variables (prefix FF_) or .env file.
When a flag is OFF, the system uses a local fallback. Nothing crashes.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Realtime fan-out ─────────────────────────────────────────────
    use_redis: bool = Field(default=False, alias="FF_USE_REDIS")
    # ON  → Every session update is also published on Redis channel
    #       session:{id}. Needs REDIS_URL.
    # OFF → Only in-process subscribers (SSE clients of this worker) see updates.

    # ── Identity ─────────────────────────────────────────────────────
    use_anonymous_auth: bool = Field(default=True, alias="FF_USE_ANONYMOUS_AUTH")
    # ON  → /v1/identity/anonymous registers an anonymous user row.
    # OFF → A random UUID is handed out without registration. Session
    #       creation for it is rejected by the users foreign key.


@lru_cache
def get_flags() -> FeatureFlags:
    return FeatureFlags()
