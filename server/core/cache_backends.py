"""
Cache storage backends.

Two layers sit under CacheStore:
- LocalStore: in-process dict of CacheEntry, always available
- RemoteStore: adapter over a key-value service whose ACL may deny any
  single command (GET, SET, SETEX, DEL) independently

Remote implementations:
- UpstashRestStore: REST endpoint (JSON command arrays over HTTPS, via httpx)
- RedisStore: plain RESP connection via redis.asyncio

Adapters hold no state beyond their connection handle. Every failure is
raised as a RemoteStoreError subclass so CacheStore can pick a fallback.

Usage:
    remote = create_remote_store(settings)
    await remote.set_with_expiry("events:2024-01-01:2024-01-03", "[]", 300)
"""

import re
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

import httpx
import redis.asyncio as redis
from redis.exceptions import NoPermissionError, RedisError, ResponseError

from core.config import Settings
from core.logging import get_logger
from models.cache import CacheEntry, now_ms

logger = get_logger(__name__)

PERMISSION_MARKERS = ("noperm", "no permissions")


class RemoteStoreError(Exception):
    """Base exception for remote key-value failures."""

    def __init__(self, command: str, message: str):
        self.command = command
        super().__init__(f"[{command}] {message}")


class PermissionDeniedError(RemoteStoreError):
    """The remote ACL rejected this command."""


class RemoteUnavailableError(RemoteStoreError):
    """Network error, timeout, server error, or any other command failure."""


def is_permission_error(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in PERMISSION_MARKERS)


def compile_glob(pattern: str) -> "re.Pattern[str]":
    """Compile a Redis-style glob into an anchored regex.

    Only ``*`` (any run) and ``?`` (one character) are special; everything
    else, brackets included, matches literally.
    """
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$", re.DOTALL)


# =============================================================================
# LOCAL STORE
# =============================================================================

class LocalStore:
    """In-process fallback map of key -> CacheEntry.

    Owned exclusively by CacheStore. Relies on the event loop for
    exclusion: no method awaits, so operations never interleave.
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self._entries: Dict[str, CacheEntry] = {}
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int]) -> None:
        self._entries[key] = CacheEntry.create(value, ttl_seconds, self._clock())

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def keys(self, pattern: str = "*") -> List[str]:
        regex = compile_glob(pattern)
        return [key for key in self._entries if regex.match(key)]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


# =============================================================================
# REMOTE STORES
# =============================================================================

class RemoteStore(ABC):
    """Abstract remote key-value adapter. Values are pre-serialized strings."""

    kind: str = "remote"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the raw stored string, or None if the key is missing."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store without expiry."""
        pass

    @abstractmethod
    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store with a server-enforced TTL (SETEX)."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    async def close(self) -> None:
        """Release the connection handle."""
        pass


class UpstashRestStore(RemoteStore):
    """
    REST key-value backend (Upstash-compatible).

    Each command is POSTed as a JSON array, e.g. ``["SETEX", "k", 300, "v"]``,
    and answered with ``{"result": ...}`` or ``{"error": "..."}``.
    Restricted tokens answer denied commands with a NOPERM error.
    """

    kind = "upstash"

    def __init__(self, url: str, token: str, timeout: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def _command(self, *args: Any) -> Any:
        command = str(args[0]).upper()
        try:
            response = await self._client.post(self.url, json=list(args))
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(command, f"{type(e).__name__}: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        error = payload.get("error") if isinstance(payload, dict) else None
        if error or response.status_code >= 400:
            message = error or f"HTTP {response.status_code}"
            if response.status_code == 403 or is_permission_error(message):
                raise PermissionDeniedError(command, message)
            raise RemoteUnavailableError(command, message)

        return payload.get("result") if isinstance(payload, dict) else None

    async def get(self, key: str) -> Optional[str]:
        return await self._command("GET", key)

    async def set(self, key: str, value: str) -> None:
        await self._command("SET", key, value)

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._command("SETEX", key, ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._command("DEL", key)

    async def close(self) -> None:
        await self._client.aclose()


class RedisStore(RemoteStore):
    """Plain Redis backend over RESP, for deployments with a redis:// URL."""

    kind = "redis"

    def __init__(self, url: str, timeout: float = 5.0, client: Optional[redis.Redis] = None):
        self._redis = client or redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )

    @contextmanager
    def _translate_errors(self, command: str) -> Iterator[None]:
        try:
            yield
        except NoPermissionError as e:
            raise PermissionDeniedError(command, str(e)) from e
        except ResponseError as e:
            if is_permission_error(str(e)):
                raise PermissionDeniedError(command, str(e)) from e
            raise RemoteUnavailableError(command, str(e)) from e
        except (RedisError, OSError) as e:
            raise RemoteUnavailableError(command, f"{type(e).__name__}: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        with self._translate_errors("GET"):
            return await self._redis.get(key)

    async def set(self, key: str, value: str) -> None:
        with self._translate_errors("SET"):
            await self._redis.set(key, value)

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._translate_errors("SETEX"):
            await self._redis.setex(key, ttl_seconds, value)

    async def delete(self, key: str) -> None:
        with self._translate_errors("DEL"):
            await self._redis.delete(key)

    async def close(self) -> None:
        with self._translate_errors("CLOSE"):
            await self._redis.aclose()


def create_remote_store(settings: Settings) -> Optional[RemoteStore]:
    """
    Factory for the configured remote backend.

    Priority with CACHE_BACKEND=auto:
    1. Upstash REST when URL and token are both set
    2. Redis when REDIS_URL is set
    3. None (local memory only)

    Returns:
        A RemoteStore, or None when the service should run local-only
    """
    backend_type = settings.cache_backend

    if backend_type in ("auto", "upstash") and settings.upstash_configured:
        logger.info("Using UpstashRestStore for cache", url=settings.upstash_redis_rest_url)
        return UpstashRestStore(
            settings.upstash_redis_rest_url,
            settings.upstash_redis_rest_token,
            timeout=settings.remote_timeout,
        )
    if backend_type == "upstash":
        logger.warning("Upstash requested but URL/token missing, using local cache")
        return None

    if backend_type in ("auto", "redis") and settings.redis_url:
        logger.info("Using RedisStore for cache", url=settings.redis_url)
        return RedisStore(settings.redis_url, timeout=settings.remote_timeout)
    if backend_type == "redis":
        logger.warning("Redis requested but REDIS_URL missing, using local cache")
        return None

    logger.info("Using local memory cache", cache_backend=backend_type)
    return None
