"""Cache data models.

All models are plain dataclasses; anything that crosses the HTTP boundary
goes through ``to_dict()``.
"""

import time
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Dict, Optional


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """Local fallback entry.

    ``permanent`` is True iff the entry was stored without a TTL. Non-permanent
    entries are never purged proactively; ``is_expired`` is checked on read.
    """
    value: Any
    inserted_at_ms: int
    permanent: bool
    ttl_seconds: Optional[int] = None

    @classmethod
    def create(cls, value: Any, ttl_seconds: Optional[int], inserted_at_ms: int) -> "CacheEntry":
        permanent = ttl_seconds is None
        return cls(
            value=value,
            inserted_at_ms=inserted_at_ms,
            permanent=permanent,
            ttl_seconds=None if permanent else ttl_seconds,
        )

    def is_expired(self, current_ms: int) -> bool:
        if self.permanent:
            return False
        return current_ms - self.inserted_at_ms >= self.ttl_seconds * 1000


@dataclass
class PermissionProfile:
    """Which remote primitives the configured backend accepts."""
    get: bool = False
    set: bool = False
    set_with_expiry: bool = False
    delete: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


class CacheOutcome(str, Enum):
    """Which path served a lookup.

    HIT             -> value came from the remote store (or local-only mode)
    MISS            -> nothing usable anywhere
    DEGRADED_LOCAL  -> remote failed or missed; value came from the local fallback
    """
    HIT = "hit"
    MISS = "miss"
    DEGRADED_LOCAL = "degraded_local"


class WriteOutcome(str, Enum):
    """Which path a set/delete/invalidate took.

    REMOTE            -> the requested remote primitive succeeded
    REMOTE_NO_EXPIRY  -> SETEX denied; stored with plain SET (no remote expiry)
    TOMBSTONE         -> DEL denied or skipped; key overwritten with the tombstone
    LOCAL             -> remote missing or failing; local store only
    """
    REMOTE = "remote"
    REMOTE_NO_EXPIRY = "remote_no_expiry"
    TOMBSTONE = "tombstone"
    LOCAL = "local"


@dataclass
class CacheResult:
    outcome: CacheOutcome
    value: Any = None

    @property
    def found(self) -> bool:
        return self.outcome is not CacheOutcome.MISS


@dataclass
class CacheInfo:
    backend_kind: str  # "remote" | "local"
    is_remote_active: bool
    local_entry_count: int
    remote_type: Optional[str] = None
    permissions: Optional[Dict[str, bool]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
