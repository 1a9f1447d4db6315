"""Range-keyed cache for "events in window" queries.

Key schema:
    events:{startDate}:{endDate} -> JSON list of event dicts (TTL 300s)

Each (start, end) pair is an independent entry: overlapping ranges are not
deduplicated. Results are stored exactly as the refresh function returns them,
so the caller owns ordering (ascending start time).
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from constants import EVENTS_CACHE_TTL, EVENTS_KEY_PREFIX
from core.cache import CacheStore
from core.logging import get_logger
from services.exceptions import InvalidRangeError

logger = get_logger(__name__)

Event = Dict[str, Any]
RefreshFn = Callable[[str, str], Awaitable[List[Event]]]


def events_cache_key(start_date: str, end_date: str) -> str:
    return f"{EVENTS_KEY_PREFIX}:{start_date}:{end_date}"


def _parse_bound(start_date: str, end_date: str, value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidRangeError(start_date, end_date, f"{value!r} is not an ISO date")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_range(start_date: str, end_date: str) -> None:
    """Raise InvalidRangeError unless both bounds parse and end >= start."""
    start = _parse_bound(start_date, end_date, start_date)
    end = _parse_bound(start_date, end_date, end_date)
    if end < start:
        raise InvalidRangeError(start_date, end_date)


class RangeEventCache:
    """Cache-aside wrapper around an event fetcher, keyed by date range."""

    def __init__(self, cache: CacheStore, ttl: int = EVENTS_CACHE_TTL):
        self.cache = cache
        self.ttl = ttl

    async def get_or_refresh(self, start_date: str, end_date: str,
                             refresh_fn: RefreshFn) -> List[Event]:
        """Return cached events for the range, fetching and caching on miss.

        Empty results are cached too, so an empty upstream window is not
        refetched until the TTL lapses.

        Raises:
            InvalidRangeError: bounds unparseable or end before start
        """
        validate_range(start_date, end_date)
        key = events_cache_key(start_date, end_date)

        result = await self.cache.lookup(key)
        if result.found:
            logger.debug("Events cache hit", key=key, outcome=result.outcome.value)
            return result.value

        logger.info("Events cache miss, refreshing", start_date=start_date, end_date=end_date)
        events = await refresh_fn(start_date, end_date)
        await self.cache.set(key, events, self.ttl)
        logger.info("Cached events for range", key=key, count=len(events), ttl=self.ttl)
        return events

    async def peek(self, start_date: str, end_date: str) -> Optional[List[Event]]:
        """Cache-only read; never triggers a refresh."""
        validate_range(start_date, end_date)
        return await self.cache.get(events_cache_key(start_date, end_date))

    async def invalidate(self, start_date: str, end_date: str) -> None:
        await self.cache.invalidate(events_cache_key(start_date, end_date))
