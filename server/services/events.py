"""Event schedule service: date ranges, upstream refresh and lookups."""

import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from core.config import Settings
from core.logging import get_logger, log_execution_time
from services.esports_client import EsportsClient
from services.event_cache import RangeEventCache
from services.event_parser import parse_events, sort_events_by_time
from services.exceptions import ScheduleError

logger = get_logger(__name__)

EXTENDED_RANGE_DAYS = 3


class EventService:
    """Schedule lookups backed by RangeEventCache and the esports API."""

    def __init__(self, event_cache: RangeEventCache, client: EsportsClient, settings: Settings):
        self.event_cache = event_cache
        self.client = client
        self.settings = settings

    def default_date_range(self, now: Optional[datetime] = None) -> Tuple[str, str]:
        """Yesterday..tomorrow in the display timezone, as YYYY-MM-DD."""
        tz = ZoneInfo(self.settings.timezone)
        today = (now or datetime.now(tz)).astimezone(tz).date()
        return (
            (today - timedelta(days=1)).isoformat(),
            (today + timedelta(days=1)).isoformat(),
        )

    def extended_date_range(self, current_end_date: str) -> Tuple[str, str]:
        """Next window for continuous loading: current end .. end + 3 days."""
        end = datetime.fromisoformat(current_end_date).date()
        return current_end_date, (end + timedelta(days=EXTENDED_RANGE_DAYS)).isoformat()

    async def fetch_range(self, start_date: str, end_date: str) -> List[Dict[str, Any]]:
        """Refresh function for RangeEventCache: fetch, parse, sort ascending."""
        start_time = time.time()
        raw = await self.client.fetch_events(start_date, end_date)
        events = sort_events_by_time(parse_events(raw), "asc")
        log_execution_time(logger, "fetch_range", start_time, time.time(),
                           start_date=start_date, end_date=end_date, count=len(events))
        return events

    async def list_events(self, start_date: Optional[str] = None,
                          end_date: Optional[str] = None) -> Tuple[List[Dict[str, Any]], str, str]:
        """Events for a range; the default range is used unless both bounds are given."""
        if not start_date or not end_date:
            start_date, end_date = self.default_date_range()
        events = await self.event_cache.get_or_refresh(start_date, end_date, self.fetch_range)
        return events, start_date, end_date

    async def get_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        """Find one event in the default range."""
        events, _, _ = await self.list_events()
        return next((e for e in events if e.get("id") == event_id), None)

    async def cached_default_range(self) -> Tuple[List[Dict[str, Any]], str, str]:
        """Cached events for the default range without triggering a fetch."""
        start_date, end_date = self.default_date_range()
        events = await self.event_cache.peek(start_date, end_date)
        return events or [], start_date, end_date

    async def warm_default_range(self) -> None:
        """Populate the default range at startup; failures only log."""
        start_date, end_date = self.default_date_range()
        try:
            events, _, _ = await self.list_events(start_date, end_date)
            logger.info("Default range loaded", start_date=start_date,
                        end_date=end_date, count=len(events))
        except ScheduleError as e:
            logger.warning("Failed to load default range", error=str(e))
