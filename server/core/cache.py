"""Cache store over a permission-restricted remote backend with local fallback.

The remote key-value service may deny GET, SET, SETEX or DEL independently,
and cannot enumerate keys. CacheStore hides that behind one contract:

- get/lookup: remote first; on error or miss, consult the local fallback
- set: SETEX -> SET (no remote expiry) -> local
- delete: DEL -> tombstone -> local
- invalidate: tombstone only, always drops the local copy
- clear: invalidate well-known keys, wipe local

No read/write/delete error ever leaves this class. Writes are last-writer-wins;
there is no compare-and-swap, so concurrent writers to one key race undetected
and concurrent readers may observe an older value.
"""

import json
from typing import Any, Callable, Iterable, List, Optional, Tuple

from constants import PERMISSION_PROBE_KEY, TOMBSTONE, WELL_KNOWN_CACHE_KEYS
from core.cache_backends import (
    LocalStore,
    PermissionDeniedError,
    RemoteStore,
    RemoteStoreError,
)
from core.logging import get_logger, log_cache_operation
from models.cache import (
    CacheInfo,
    CacheOutcome,
    CacheResult,
    PermissionProfile,
    WriteOutcome,
    now_ms,
)

logger = get_logger(__name__)

# Marks values written with plain SET after SETEX was denied; expiry is then
# enforced on read instead of by the server.
ENVELOPE_MARKER = "__cache_envelope__"


class CacheStore:
    """Async cache with a remote backend and an in-process fallback.

    Backend selection happens outside (see ``create_remote_store``); pass
    ``remote=None`` to run purely on the local store.
    """

    def __init__(
        self,
        remote: Optional[RemoteStore] = None,
        clock: Callable[[], int] = now_ms,
        well_known_keys: Iterable[str] = WELL_KNOWN_CACHE_KEYS,
    ):
        self.remote = remote
        self.local = LocalStore(clock)
        self.permissions: Optional[PermissionProfile] = None
        self._clock = clock
        self._well_known_keys = tuple(well_known_keys)
        self._remote_healthy = remote is not None
        self._get_denied = False

    async def startup(self) -> None:
        """Probe remote permissions once; keep the profile only if the remote answered every check."""
        if self.remote is None:
            logger.info("Cache running on local memory only")
            return

        profile, unreachable = await self._check_permissions()
        if unreachable:
            # An outage is not a denial; every primitive stays enabled
            logger.warning("Remote cache unreachable during permission check, profile not kept",
                           remote_type=self.remote.kind, unreachable=unreachable)
            return

        self.permissions = profile
        logger.info("Remote cache permissions", remote_type=self.remote.kind,
                    **self.permissions.to_dict())

        if not self.permissions.get:
            logger.warning("Remote GET not working, reads will fall back to local cache")
        if not self.permissions.set_with_expiry and self.permissions.set:
            logger.warning("Remote SETEX not allowed, TTL writes will use SET without expiry")
        if not self.permissions.delete:
            logger.warning("Remote DEL not allowed, deletes will write tombstones")

    async def shutdown(self) -> None:
        """Close the remote connection and drop local state."""
        if self.remote is not None:
            try:
                await self.remote.close()
                logger.info("Remote cache connection closed", remote_type=self.remote.kind)
            except RemoteStoreError as e:
                logger.warning("Remote cache close failed", error=str(e))
        self.local.clear()

    def is_remote_available(self) -> bool:
        return self.remote is not None

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def _wrap(self, value: Any, ttl: int) -> Any:
        return {ENVELOPE_MARKER: 1, "expires_at_ms": self._clock() + ttl * 1000, "value": value}

    def _decode(self, key: str, raw: Any) -> Any:
        """Decode a remote value. Tombstones, corrupt JSON and lapsed envelopes read as None."""
        if raw is None:
            return None
        if isinstance(raw, (bytes, str)):
            try:
                value = json.loads(raw)
            except ValueError:
                logger.warning("Malformed cache value treated as miss", key=key)
                return None
        else:
            value = raw

        if isinstance(value, dict) and value.get(ENVELOPE_MARKER) == 1:
            if self._clock() >= value.get("expires_at_ms", 0):
                return None
            return value.get("value")
        return value

    def _remote_readable(self) -> bool:
        if self._get_denied:
            return False
        return self.permissions is None or self.permissions.get

    def _mark_remote(self, healthy: bool) -> None:
        if healthy != self._remote_healthy:
            logger.info("Remote cache health changed", healthy=healthy)
        self._remote_healthy = healthy

    # =========================================================================
    # READS
    # =========================================================================

    async def lookup(self, key: str) -> CacheResult:
        """Look up a key and report which path served it."""
        if self.remote is None:
            return self._lookup_local(key, CacheOutcome.HIT)
        if not self._remote_readable():
            return self._lookup_local(key, CacheOutcome.DEGRADED_LOCAL)

        try:
            raw = await self.remote.get(key)
        except PermissionDeniedError as e:
            self._get_denied = True
            logger.warning("Remote GET not allowed, using local cache", key=key, error=str(e))
            return self._lookup_local(key, CacheOutcome.DEGRADED_LOCAL)
        except RemoteStoreError as e:
            self._mark_remote(False)
            logger.warning("Remote get failed, using local cache", key=key, error=str(e))
            return self._lookup_local(key, CacheOutcome.DEGRADED_LOCAL)

        self._mark_remote(True)
        value = self._decode(key, raw)
        if value is not None:
            log_cache_operation(logger, "get", key, hit=True, source="remote")
            return CacheResult(CacheOutcome.HIT, value)

        # Remote miss: a write that fell back to local may still be held there
        return self._lookup_local(key, CacheOutcome.DEGRADED_LOCAL)

    def _lookup_local(self, key: str, outcome: CacheOutcome) -> CacheResult:
        value = self.local.get(key)
        if value is None:
            log_cache_operation(logger, "get", key, hit=False)
            return CacheResult(CacheOutcome.MISS)
        log_cache_operation(logger, "get", key, hit=True, source="local")
        return CacheResult(outcome, value)

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache; None when absent, tombstoned, expired or corrupt."""
        return (await self.lookup(key)).value

    # =========================================================================
    # WRITES
    # =========================================================================

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> WriteOutcome:
        """Store a JSON-serializable value.

        ``ttl=None`` (or 0) stores a permanent entry. When the remote denies
        SETEX the value is stored with plain SET: the server will then never
        expire it, and the TTL is only honoured on read by this process.
        """
        if not ttl:
            ttl = None

        if self.remote is None:
            self.local.set(key, value, ttl)
            log_cache_operation(logger, "set", key, ttl=ttl, path=WriteOutcome.LOCAL.value)
            return WriteOutcome.LOCAL

        try:
            if ttl is None:
                await self.remote.set(key, json.dumps(value, default=str))
                outcome = WriteOutcome.REMOTE
            else:
                outcome = await self._set_with_expiry(key, value, ttl)
        except RemoteStoreError as e:
            self._mark_remote(False)
            logger.warning("Remote set failed, writing local cache", key=key, error=str(e))
            self.local.set(key, value, ttl)
            return WriteOutcome.LOCAL

        self._mark_remote(True)
        if self._remote_readable():
            # Drop any older fallback copy so a later remote miss cannot resurrect it
            self.local.delete(key)
        else:
            # GET is denied, so this process can only read its own copy back
            self.local.set(key, value, ttl)
        log_cache_operation(logger, "set", key, ttl=ttl, path=outcome.value)
        return outcome

    async def _set_with_expiry(self, key: str, value: Any, ttl: int) -> WriteOutcome:
        if self.permissions is None or self.permissions.set_with_expiry:
            try:
                await self.remote.set_with_expiry(key, json.dumps(value, default=str), ttl)
                return WriteOutcome.REMOTE
            except PermissionDeniedError:
                logger.warning("SETEX not allowed, trying SET", key=key)

        await self.remote.set(key, json.dumps(self._wrap(value, ttl), default=str))
        return WriteOutcome.REMOTE_NO_EXPIRY

    async def delete(self, key: str) -> WriteOutcome:
        """Delete a key: DEL, else tombstone, else local only."""
        self.local.delete(key)
        if self.remote is None:
            log_cache_operation(logger, "delete", key, path=WriteOutcome.LOCAL.value)
            return WriteOutcome.LOCAL

        if self.permissions is None or self.permissions.delete:
            try:
                await self.remote.delete(key)
                self._mark_remote(True)
                log_cache_operation(logger, "delete", key, path=WriteOutcome.REMOTE.value)
                return WriteOutcome.REMOTE
            except PermissionDeniedError:
                logger.warning("DEL not allowed, setting tombstone", key=key)
            except RemoteStoreError as e:
                self._mark_remote(False)
                logger.warning("Remote delete failed, local cache only", key=key, error=str(e))
                return WriteOutcome.LOCAL

        return await self._write_tombstone(key, "delete")

    async def invalidate(self, key: str) -> WriteOutcome:
        """Tombstone a key without attempting DEL; always drops the local copy."""
        self.local.delete(key)
        if self.remote is None:
            log_cache_operation(logger, "invalidate", key, path=WriteOutcome.LOCAL.value)
            return WriteOutcome.LOCAL
        return await self._write_tombstone(key, "invalidate")

    async def _write_tombstone(self, key: str, operation: str) -> WriteOutcome:
        try:
            await self.remote.set(key, TOMBSTONE)
        except RemoteStoreError as e:
            self._mark_remote(False)
            logger.warning("Cannot tombstone key, local cache only", key=key,
                           operation=operation, error=str(e))
            return WriteOutcome.LOCAL
        self._mark_remote(True)
        log_cache_operation(logger, operation, key, path=WriteOutcome.TOMBSTONE.value)
        return WriteOutcome.TOMBSTONE

    async def clear(self, extra_keys: Iterable[str] = ()) -> None:
        """Invalidate well-known keys (plus ``extra_keys``) and wipe the local store."""
        keys = list(dict.fromkeys([*self._well_known_keys, *extra_keys]))
        for key in keys:
            await self.invalidate(key)
        self.local.clear()
        logger.info("Cache cleared", invalidated=len(keys))

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    async def list_keys(self, pattern: str = "*") -> List[str]:
        """List keys matching a glob. Remote enumeration is unsupported."""
        if self.remote is not None:
            logger.info("Key pattern matching not supported on remote cache", pattern=pattern)
            return []
        return self.local.keys(pattern)

    async def test_permissions(self) -> PermissionProfile:
        """Probe GET, SET, SETEX and DEL independently against the probe key."""
        profile, _ = await self._check_permissions()
        return profile

    async def _check_permissions(self) -> Tuple[PermissionProfile, List[str]]:
        """Return the profile plus the primitives that could not be reached at all."""
        profile = PermissionProfile()
        unreachable: List[str] = []
        if self.remote is None:
            return profile, unreachable

        probes = (
            ("get", lambda: self.remote.get(PERMISSION_PROBE_KEY)),
            ("set", lambda: self.remote.set(PERMISSION_PROBE_KEY, '"test"')),
            ("set_with_expiry", lambda: self.remote.set_with_expiry(PERMISSION_PROBE_KEY, '"test"', 60)),
            ("delete", lambda: self.remote.delete(PERMISSION_PROBE_KEY)),
        )
        for name, probe in probes:
            try:
                await probe()
                setattr(profile, name, True)
            except PermissionDeniedError as e:
                logger.info("Permission check denied", primitive=name, error=str(e))
            except RemoteStoreError as e:
                unreachable.append(name)
                logger.info("Permission check failed", primitive=name, error=str(e))

        return profile, unreachable

        probes = (
            ("get", lambda: self.remote.get(PERMISSION_PROBE_KEY)),
            ("set", lambda: self.remote.set(PERMISSION_PROBE_KEY, '"test"')),
            ("set_with_expiry", lambda: self.remote.set_with_expiry(PERMISSION_PROBE_KEY, '"test"', 60)),
            ("delete", lambda: self.remote.delete(PERMISSION_PROBE_KEY)),
        )
        for name, probe in probes:
            try:
                await probe()
                setattr(profile, name, True)
            except RemoteStoreError as e:
                logger.info("Permission probe failed", primitive=name, error=str(e))

        return profile

    def get_info(self) -> CacheInfo:
        """Backend kind, remote health and local entry count."""
        return CacheInfo(
            backend_kind="remote" if self.remote is not None else "local",
            is_remote_active=self.remote is not None and self._remote_healthy,
            local_entry_count=len(self.local),
            remote_type=self.remote.kind if self.remote is not None else None,
            permissions=self.permissions.to_dict() if self.permissions else None,
        )
