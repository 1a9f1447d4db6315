"""Health check utilities for the /health endpoint.

Tracks process uptime and probes the cache round trip.
"""
import time
from typing import Dict, Any, TYPE_CHECKING

from constants import HEALTH_CHECK_KEY

if TYPE_CHECKING:
    from core.config import Settings
    from core.cache import CacheStore

# Module-level startup time tracking
_startup_time: float = 0.0


def set_startup_time() -> None:
    """Record the application startup time. Call once during lifespan startup."""
    global _startup_time
    _startup_time = time.time()


def get_uptime() -> float:
    """Get uptime in seconds since startup."""
    return time.time() - _startup_time if _startup_time else 0.0


async def check_cache(cache: "CacheStore") -> bool:
    """Set, read back and invalidate a throwaway key.

    CacheStore absorbs backend errors, so a broken remote shows up as a
    local-only write rather than an exception.
    """
    await cache.set(HEALTH_CHECK_KEY, "ok", ttl=10)
    result = await cache.get(HEALTH_CHECK_KEY)
    await cache.invalidate(HEALTH_CHECK_KEY)
    return result == "ok"


async def get_health_status(cache: "CacheStore", settings: "Settings") -> Dict[str, Any]:
    """Get health status for /health.

    "degraded" means the cache round trip failed or the remote store is
    configured but currently serving from the local fallback.
    """
    cache_healthy = await check_cache(cache)
    info = cache.get_info()

    remote_ok = not cache.is_remote_available() or info.is_remote_active
    overall_status = "healthy" if (cache_healthy and remote_ok) else "degraded"

    return {
        "status": overall_status,
        "uptime_seconds": round(get_uptime(), 1),
        "checks": {
            "cache": cache_healthy,
            "remote": remote_ok,
        },
        "cache": {
            "backend": info.backend_kind,
            "local_entries": info.local_entry_count,
        },
        "environment": "development" if settings.debug else "production",
    }
