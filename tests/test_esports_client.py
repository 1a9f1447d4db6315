"""EsportsClient request shape and retry behaviour."""

import asyncio
import json

import httpx
import pytest

from services.esports_client import EsportsClient, RetryPolicy, to_utc_iso
from services.exceptions import UpstreamError


def run(coro):
    return asyncio.run(coro)


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def scripted(responses):
    """Handler returning queued responses in order and recording requests."""
    requests = []
    queue = list(responses)

    def handler(request):
        requests.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return handler, requests


EVENTS_BODY = {"data": {"esports": {"events": [{"id": "1"}]}}}


def test_fetch_events_sends_persisted_query(settings):
    handler, requests = scripted([httpx.Response(200, json=EVENTS_BODY)])
    client = EsportsClient(settings, transport=httpx.MockTransport(handler), sleep=SleepRecorder())

    data = run(client.fetch_events("2024-01-01", "2024-01-03"))
    assert data == EVENTS_BODY["data"]

    request = requests[0]
    assert request.method == "GET"
    assert request.url.params["operationName"] == "homeEvents"
    variables = json.loads(request.url.params["variables"])
    assert variables["eventDateStart"] == "2024-01-01T00:00:00.000Z"
    assert variables["eventDateEnd"] == "2024-01-03T00:00:00.000Z"
    assert variables["leagues"] == settings.esports_leagues
    assert variables["hl"] == "vi-VN"
    extensions = json.loads(request.url.params["extensions"])
    assert extensions["persistedQuery"]["sha256Hash"] == settings.esports_query_hash


def test_retries_with_exponential_backoff(settings):
    handler, requests = scripted([
        httpx.Response(500),
        httpx.Response(503),
        httpx.Response(200, json=EVENTS_BODY),
    ])
    sleep = SleepRecorder()
    client = EsportsClient(settings, transport=httpx.MockTransport(handler), sleep=sleep)

    assert run(client.fetch_events("2024-01-01", "2024-01-03")) == EVENTS_BODY["data"]
    assert len(requests) == 3
    assert sleep.delays == [0.5, 1.0]


def test_rate_limit_waits_longer(settings):
    handler, _ = scripted([httpx.Response(429), httpx.Response(200, json=EVENTS_BODY)])
    sleep = SleepRecorder()
    client = EsportsClient(settings, transport=httpx.MockTransport(handler), sleep=sleep)

    run(client.fetch_events("2024-01-01", "2024-01-03"))
    assert sleep.delays == [1.5, 0.5]


def test_gives_up_after_max_attempts(settings):
    handler, requests = scripted([
        httpx.ConnectError("refused"),
        httpx.Response(502),
        httpx.Response(200, text="<html>maintenance</html>"),
    ])
    sleep = SleepRecorder()
    client = EsportsClient(settings, transport=httpx.MockTransport(handler), sleep=sleep)

    with pytest.raises(UpstreamError) as exc_info:
        run(client.fetch_events("2024-01-01", "2024-01-03"))
    assert len(requests) == 3
    # no sleep after the final attempt
    assert sleep.delays == [0.5, 1.0]
    assert exc_info.value.operation == "homeEvents"


def test_graphql_errors_are_returned_not_raised(settings):
    body = {"data": None, "errors": [{"message": "PersistedQueryNotFound"}]}
    handler, _ = scripted([httpx.Response(200, json=body)])
    client = EsportsClient(settings, transport=httpx.MockTransport(handler), sleep=SleepRecorder())
    assert run(client.fetch_events("2024-01-01", "2024-01-03")) == {}


def test_retry_policy_delays():
    policy = RetryPolicy(max_attempts=4, initial_delay=2.0)
    assert [policy.calculate_delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]
    assert policy.rate_limit_delay() == 6.0


def test_to_utc_iso():
    assert to_utc_iso("2024-01-01") == "2024-01-01T00:00:00.000Z"
    assert to_utc_iso("2024-01-01T07:00:00+07:00") == "2024-01-01T00:00:00.000Z"
