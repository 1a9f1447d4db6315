"""Shared fixtures: a scriptable remote store, a controllable clock, settings."""

from typing import Dict, Optional, Set

import pytest

from core.cache import CacheStore
from core.cache_backends import PermissionDeniedError, RemoteStore, RemoteUnavailableError
from core.config import Settings


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeRemoteStore(RemoteStore):
    """In-memory RemoteStore with per-command ACL denials and outage switch.

    ``denied`` holds command names (GET, SET, SETEX, DEL) that raise
    PermissionDeniedError; ``unavailable`` makes every command raise
    RemoteUnavailableError. SETEX expiry follows the shared FakeClock.
    """

    kind = "fake"

    def __init__(self, clock: FakeClock, denied: Optional[Set[str]] = None):
        self.clock = clock
        self.denied = set(denied or ())
        self.unavailable = False
        self.data: Dict[str, str] = {}
        self.expires: Dict[str, int] = {}
        self.calls = []
        self.closed = False

    def _check(self, command: str) -> None:
        self.calls.append(command)
        if self.unavailable:
            raise RemoteUnavailableError(command, "connection refused")
        if command in self.denied:
            raise PermissionDeniedError(command, "NOPERM this user has no permissions")

    async def get(self, key):
        self._check("GET")
        expires_at = self.expires.get(key)
        if expires_at is not None and self.clock() >= expires_at:
            self.data.pop(key, None)
            self.expires.pop(key, None)
        return self.data.get(key)

    async def set(self, key, value):
        self._check("SET")
        self.data[key] = value
        self.expires.pop(key, None)

    async def set_with_expiry(self, key, value, ttl_seconds):
        self._check("SETEX")
        self.data[key] = value
        self.expires[key] = self.clock() + ttl_seconds * 1000

    async def delete(self, key):
        self._check("DEL")
        self.data.pop(key, None)
        self.expires.pop(key, None)

    async def close(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def remote(clock):
    return FakeRemoteStore(clock)


@pytest.fixture
def local_cache(clock):
    return CacheStore(remote=None, clock=clock)


@pytest.fixture
def remote_cache(remote, clock):
    return CacheStore(remote=remote, clock=clock)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        cache_backend="local",
        admin_username="admin",
        admin_password="secret-pass",
        esports_max_attempts=3,
        esports_retry_delay=0.5,
        warm_cache_on_startup=False,
    )
