"""Parse and shape esports schedule events.

Raw GraphQL payloads are flattened into plain dicts so they can be cached as
JSON and returned to the frontend unchanged.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

DISPLAY_TIMEZONE = "Asia/Ho_Chi_Minh"

STATE_LABELS = {
    "unstarted": "Chưa bắt đầu",
    "inProgress": "Đang diễn ra",
    "completed": "Đã kết thúc",
}

WEEKDAYS_VI = ["Thứ Hai", "Thứ Ba", "Thứ Tư", "Thứ Năm", "Thứ Sáu", "Thứ Bảy", "Chủ Nhật"]


def _parse_start(start_time: str) -> datetime:
    return datetime.fromisoformat(start_time.replace("Z", "+00:00"))


def parse_events(raw_data: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten ``data.esports.events`` from a homeEvents response."""
    events = ((raw_data or {}).get("esports") or {}).get("events") or []
    parsed = []
    for event in events:
        league = event.get("league") or {}
        strategy = (event.get("match") or {}).get("strategy") or {}
        tournament = event.get("tournament") or {}
        parsed.append({
            "id": event.get("id"),
            "league": {
                "image": league.get("image") or "",
                "name": league.get("name") or "",
                "slug": league.get("slug") or "",
            },
            "matchFormat": f"BO{strategy.get('count') or 1}",
            "matchTeams": [
                {
                    "name": team.get("name") or "",
                    "code": team.get("code") or "",
                    "image": team.get("image") or team.get("lightImage") or "",
                    "gameWins": (team.get("result") or {}).get("gameWins") or 0,
                    "outcome": (team.get("result") or {}).get("outcome"),
                }
                for team in event.get("matchTeams") or []
            ],
            "startTime": event.get("startTime"),
            "state": event.get("state"),
            "type": event.get("type"),
            "blockName": event.get("blockName") or "",
            "tournament": {
                "name": tournament.get("name") or "",
                "id": tournament.get("id") or "",
            },
        })
    return parsed


def sort_events_by_time(events: List[Dict[str, Any]], order: str = "asc") -> List[Dict[str, Any]]:
    """Return a new list sorted by startTime; ties keep upstream order."""
    return sorted(events, key=lambda e: _parse_start(e["startTime"]), reverse=order == "desc")


def filter_events(
    events: List[Dict[str, Any]],
    league: Optional[str] = None,
    state: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Filter by league slug (case-insensitive), state and start-time bounds."""
    filtered = list(events)
    if league:
        filtered = [e for e in filtered if e["league"]["slug"].lower() == league.lower()]
    if state:
        filtered = [e for e in filtered if e["state"] == state]
    if date_from:
        lower = _parse_start(date_from)
        filtered = [e for e in filtered if _parse_start(e["startTime"]) >= lower]
    if date_to:
        upper = _parse_start(date_to)
        filtered = [e for e in filtered if _parse_start(e["startTime"]) <= upper]
    return filtered


def translate_state(state: Optional[str]) -> Optional[str]:
    return STATE_LABELS.get(state, state)


def format_time(start_time: str, tz_name: str = DISPLAY_TIMEZONE) -> Dict[str, Any]:
    """Display fields for a start time in the schedule's local timezone."""
    local = _parse_start(start_time).astimezone(ZoneInfo(tz_name))
    date_str = local.strftime("%d/%m/%Y")
    time_str = local.strftime("%H:%M")
    return {
        "date": date_str,
        "time": time_str,
        "full": f"{date_str} {time_str}",
        "fullDate": f"{WEEKDAYS_VI[local.weekday()]}, {local.day} tháng {local.month}, {local.year}",
        "dateKey": date_str,
        "timestamp": int(local.timestamp() * 1000),
        "iso": start_time,
    }


def with_display_fields(event: Dict[str, Any], tz_name: str = DISPLAY_TIMEZONE) -> Dict[str, Any]:
    """Copy of ``event`` with formattedTime and stateLabel added."""
    return {
        **event,
        "formattedTime": format_time(event["startTime"], tz_name),
        "stateLabel": translate_state(event.get("state")),
    }
