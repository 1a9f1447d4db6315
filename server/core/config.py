"""Environment-driven configuration with Pydantic v2."""

from typing import List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1024, le=65535)
    debug: bool = Field(default=False)
    workers: int = Field(default=1, ge=1, le=8)
    cors_origins: List[str] = Field(default=["*"])

    # Cache Configuration
    # auto: Upstash REST if configured, then Redis URL, then local memory only
    cache_backend: Literal["auto", "upstash", "redis", "local"] = Field(default="auto")
    upstash_redis_rest_url: Optional[str] = Field(default=None)
    upstash_redis_rest_token: Optional[str] = Field(default=None)
    redis_url: Optional[str] = Field(default=None)
    remote_timeout: float = Field(default=5.0, ge=0.5, le=60.0)
    events_cache_ttl: int = Field(default=300, ge=1)
    session_ttl: int = Field(default=86400, ge=60)

    # Admin Authentication
    admin_username: str = Field(default="admin")
    admin_password: str = Field(default="admin123")

    # Esports Schedule API
    esports_api_url: str = Field(default="https://lolesports.com/api/gql")
    esports_locale: str = Field(default="vi-VN")
    esports_leagues: List[str] = Field(default=["98767991310872058", "98767991314006698"])
    esports_query_hash: str = Field(
        default="7246add6f577cf30b304e651bf9e25fc6a41fe49aeafb0754c16b5778060fc0a"
    )
    esports_page_size: int = Field(default=300, ge=1, le=1000)
    esports_timeout: float = Field(default=30.0, ge=1.0, le=120.0)
    esports_max_attempts: int = Field(default=3, ge=1, le=10)
    esports_retry_delay: float = Field(default=1.5, ge=0.0, le=30.0)

    # Schedule display
    timezone: str = Field(default="Asia/Ho_Chi_Minh")
    warm_cache_on_startup: bool = Field(default=True)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("upstash_redis_rest_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Upstash command URLs are built by joining path segments."""
        if v:
            return v.rstrip("/")
        return v

    @property
    def upstash_configured(self) -> bool:
        return bool(self.upstash_redis_rest_url and self.upstash_redis_rest_token)

    @property
    def remote_cache_configured(self) -> bool:
        """Whether create_remote_store will hand back a remote backend."""
        if self.cache_backend == "local":
            return False
        if self.cache_backend == "upstash":
            return self.upstash_configured
        if self.cache_backend == "redis":
            return bool(self.redis_url)
        return self.upstash_configured or bool(self.redis_url)

    @property
    def effective_workers(self) -> int:
        """Worker processes to run. Local-only caches live per process, so pin to one."""
        if self.debug or not self.remote_cache_configured:
            return 1
        return self.workers

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
