"""GraphQL client for the esports schedule API.

Queries are persisted queries sent as GET requests:
    GET {base}?operationName=homeEvents&variables={json}&extensions={json}

Failures are retried with exponential backoff; HTTP 429 adds an extra wait.
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from core.config import Settings
from core.logging import get_logger, log_upstream_call
from services.exceptions import UpstreamError

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "accept": "*/*",
    "accept-language": "en-US,en;q=0.9,vi;q=0.8",
    "apollographql-client-name": "Esports Web",
    "apollographql-client-version": "b6d7821",
    "cache-control": "no-cache",
    "content-type": "application/json",
    "pragma": "no-cache",
    "referer": "https://lolesports.com/en-GB",
    "user-agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36"
    ),
}

EVENT_STATES = ["inProgress", "completed", "unstarted"]


@dataclass
class RetryPolicy:
    """Exponential backoff for upstream calls.

    Delay before attempt n+1: initial_delay * (backoff_multiplier ^ (n - 1)).
    A 429 response waits an extra initial_delay * rate_limit_multiplier.
    """
    max_attempts: int = 3
    initial_delay: float = 2.0
    backoff_multiplier: float = 2.0
    rate_limit_multiplier: float = 3.0

    def calculate_delay(self, attempt: int) -> float:
        return self.initial_delay * (self.backoff_multiplier ** (attempt - 1))

    def rate_limit_delay(self) -> float:
        return self.initial_delay * self.rate_limit_multiplier


def to_utc_iso(date_value: str) -> str:
    """``2024-01-01`` -> ``2024-01-01T00:00:00.000Z`` (naive values are UTC)."""
    parsed = datetime.fromisoformat(date_value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + \
        f"{parsed.microsecond // 1000:03d}Z"


class EsportsClient:
    """Schedule API client. One shared httpx.AsyncClient per process."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self.base_url = settings.esports_api_url
        self.retry = RetryPolicy(
            max_attempts=settings.esports_max_attempts,
            initial_delay=settings.esports_retry_delay,
        )
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            headers=DEFAULT_HEADERS,
            timeout=settings.esports_timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def send_query(self, operation_name: str, variables: Dict[str, Any],
                         extensions: Dict[str, Any]) -> Dict[str, Any]:
        """Run a persisted GraphQL query and return the decoded body.

        GraphQL ``errors`` in an otherwise successful response are logged,
        not raised.

        Raises:
            UpstreamError: every attempt failed
        """
        params = {
            "operationName": operation_name,
            "variables": json.dumps(variables, separators=(",", ":")),
            "extensions": json.dumps(extensions, separators=(",", ":")),
        }
        last_error = "no attempts made"
        last_status = None

        for attempt in range(1, self.retry.max_attempts + 1):
            rate_limited = False
            try:
                response = await self._client.get(self.base_url, params=params)
                response.raise_for_status()
                payload = response.json()
                if not isinstance(payload, dict):
                    raise ValueError("response body is not a JSON object")
            except httpx.HTTPStatusError as e:
                last_status = e.response.status_code
                last_error = f"HTTP {last_status}"
                rate_limited = last_status == 429
                log_upstream_call(logger, operation_name, attempt, False, status_code=last_status)
            except (httpx.HTTPError, ValueError) as e:
                last_status = None
                last_error = f"{type(e).__name__}: {e}"
                log_upstream_call(logger, operation_name, attempt, False, error=last_error)
            else:
                log_upstream_call(logger, operation_name, attempt, True,
                                  status_code=response.status_code)
                if payload.get("errors"):
                    logger.warning("GraphQL errors in response", operation=operation_name,
                                   errors=payload["errors"])
                return payload

            if attempt == self.retry.max_attempts:
                break
            if rate_limited:
                logger.warning("Rate limited by upstream, waiting longer", operation=operation_name)
                await self._sleep(self.retry.rate_limit_delay())
            await self._sleep(self.retry.calculate_delay(attempt))

        raise UpstreamError(operation_name, last_error, status_code=last_status)

    async def fetch_events(self, start_date: str, end_date: str) -> Dict[str, Any]:
        """Fetch the raw ``data`` block of a homeEvents query for a date window."""
        variables = {
            "hl": self.settings.esports_locale,
            "sport": "lol",
            "eventDateStart": to_utc_iso(start_date),
            "eventDateEnd": to_utc_iso(end_date),
            "eventState": EVENT_STATES,
            "eventType": "all",
            "vodType": ["recap"],
            "pageSize": self.settings.esports_page_size,
            "leagues": self.settings.esports_leagues,
        }
        extensions = {
            "persistedQuery": {
                "version": 1,
                "sha256Hash": self.settings.esports_query_hash,
            }
        }
        payload = await self.send_query("homeEvents", variables, extensions)
        return payload.get("data") or {}
