"""Public schedule routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from core.config import Settings
from core.container import container
from core.logging import get_logger
from services.event_parser import filter_events, with_display_fields
from services.events import EventService
from services.exceptions import InvalidRangeError, UpstreamError

logger = get_logger(__name__)
router = APIRouter(prefix="/api/events", tags=["events"])


def get_event_service() -> EventService:
    return container.event_service()


def get_settings() -> Settings:
    return container.settings()


@router.get("")
async def list_events(
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    league: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    service: EventService = Depends(get_event_service),
    settings: Settings = Depends(get_settings)
):
    """
    Events for a date range (defaults to yesterday..tomorrow).
    Includes the next window for continuous loading.
    """
    try:
        events, start_date, end_date = await service.list_events(start_date, end_date)
    except InvalidRangeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamError as e:
        logger.error("Failed to load events", error=str(e))
        raise HTTPException(status_code=502, detail="Schedule provider unavailable")

    events = filter_events(events, league=league, state=state)
    next_start, next_end = service.extended_date_range(end_date)

    return {
        "events": [with_display_fields(event, settings.timezone) for event in events],
        "dateRange": {"startDate": start_date, "endDate": end_date},
        "nextRange": {"startDate": next_start, "endDate": next_end},
    }


@router.get("/{event_id}")
async def get_event(
    event_id: str,
    service: EventService = Depends(get_event_service),
    settings: Settings = Depends(get_settings)
):
    """Single event from the default range."""
    try:
        event = await service.get_event(event_id)
    except UpstreamError as e:
        logger.error("Failed to load event", event_id=event_id, error=str(e))
        raise HTTPException(status_code=502, detail="Schedule provider unavailable")

    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")

    return {"event": with_display_fields(event, settings.timezone)}
