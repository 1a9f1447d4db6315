"""Admin session store with sliding 24h expiry.

Lifecycle per session id:
    absent -> active (create)
    active -> active (touch; expiry pushed forward)
    active -> absent (destroy, or read after expires_at)

expires_at is checked on every read because the remote backend may have
stored the entry without a server-side TTL.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from constants import SESSION_KEY_PREFIX, SESSION_TTL
from core.cache import CacheStore
from core.logging import get_logger
from models.auth import Session
from models.cache import now_ms

logger = get_logger(__name__)


def session_cache_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}:{session_id}"


class SessionStore:
    """Sessions kept in CacheStore, one key per session id."""

    def __init__(self, cache: CacheStore, ttl: int = SESSION_TTL,
                 clock: Callable[[], int] = now_ms):
        self.cache = cache
        self.ttl = ttl
        self._clock = clock

    def _expiry_from(self, current_ms: int) -> int:
        return current_ms + self.ttl * 1000

    async def _save(self, session_id: str, session: Session) -> None:
        await self.cache.set(session_cache_key(session_id), session.to_dict(), self.ttl)

    async def create(self, session_id: str, initial_data: Dict[str, Any]) -> Session:
        """Start a session; ``initial_data`` must carry ``username``."""
        current = self._clock()
        data = {
            "login_time": datetime.fromtimestamp(current / 1000, tz=timezone.utc).isoformat(),
            "last_access": current,
            **initial_data,
            "expires_at": self._expiry_from(current),
        }
        session = Session.from_dict(data)
        await self._save(session_id, session)
        logger.info("Session created", username=session.username, expires_at=session.expires_at)
        return session

    async def read(self, session_id: str) -> Optional[Session]:
        """Return the live session, or None if absent, tombstoned, corrupt or expired."""
        raw = await self.cache.get(session_cache_key(session_id))
        if not isinstance(raw, dict):
            return None

        try:
            session = Session.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed session treated as absent", error=str(e))
            return None

        if self._clock() > session.expires_at:
            logger.info("Session expired", username=session.username)
            await self.destroy(session_id)
            return None

        return session

    async def touch(self, session_id: str, patch: Optional[Dict[str, Any]] = None) -> Optional[Session]:
        """Merge ``patch``, push expiry forward and re-write the whole session."""
        session = await self.read(session_id)
        if session is None:
            return None

        updated = session.merged(patch)
        updated.expires_at = self._expiry_from(self._clock())
        await self._save(session_id, updated)
        return updated

    async def destroy(self, session_id: str) -> None:
        await self.cache.delete(session_cache_key(session_id))

    async def list_ids(self) -> List[str]:
        """Session ids visible in the local store (remote enumeration is unsupported)."""
        prefix = f"{SESSION_KEY_PREFIX}:"
        keys = await self.cache.list_keys(f"{prefix}*")
        return [key[len(prefix):] for key in keys]
