"""Centralized cache keys and lifetimes.

Single source of truth for key families and well-known document keys shared
by the cache layer, the services and the routers.
"""

from typing import FrozenSet, Tuple

# =============================================================================
# KEY FAMILIES
# =============================================================================

EVENTS_KEY_PREFIX = "events"
SESSION_KEY_PREFIX = "session"

# =============================================================================
# WELL-KNOWN KEYS
# =============================================================================

# Remote SCAN/KEYS is unavailable, so clear() can only reach keys named here
WELL_KNOWN_CACHE_KEYS: Tuple[str, ...] = (
    "events:all",
    "leagues:all",
    "stats:all",
)

# Probe key used by the permission self-test
PERMISSION_PROBE_KEY = "test:permissions"

# Health check round-trip key
HEALTH_CHECK_KEY = "_health_check"

# Admin-managed documents, stored without TTL
BANNER_TYPES: FrozenSet[str] = frozenset(["banner1", "banner2"])
VIDEO_KEY = "video_frame"
SOCIALS_KEY = "socials"
POPUP_KEY = "popup"

# =============================================================================
# LIFETIMES (seconds)
# =============================================================================

EVENTS_CACHE_TTL = 300
SESSION_TTL = 24 * 60 * 60

# =============================================================================
# TOMBSTONE
# =============================================================================

# Raw value written in place of DEL. Decodes to JSON null, read as absent.
TOMBSTONE = "null"
