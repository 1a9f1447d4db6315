"""Cache introspection routes."""

from fastapi import APIRouter, Depends

from core.cache import CacheStore
from core.container import container
from services.events import EventService

router = APIRouter(prefix="/api/cache", tags=["cache"])


def get_cache() -> CacheStore:
    return container.cache()


def get_event_service() -> EventService:
    return container.event_service()


@router.get("/info")
async def cache_info(
    cache: CacheStore = Depends(get_cache),
    service: EventService = Depends(get_event_service)
):
    """Backend info, cached default-range events and remote permissions."""
    info = cache.get_info().to_dict()
    if cache.is_remote_available() and info["permissions"] is None:
        # No profile kept at startup; report a fresh check
        info["permissions"] = (await cache.test_permissions()).to_dict()
    events, start_date, end_date = await service.cached_default_range()

    return {
        **info,
        "cachedEvents": len(events),
        "lastEventTime": events[-1].get("startTime") if events else None,
        "currentRange": {"startDate": start_date, "endDate": end_date},
    }
