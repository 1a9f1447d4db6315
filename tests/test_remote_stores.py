"""Remote adapters: Upstash REST wire format and Redis error translation."""

import asyncio
import json

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import NoPermissionError, ResponseError

from core.cache_backends import (
    PermissionDeniedError,
    RedisStore,
    RemoteUnavailableError,
    UpstashRestStore,
    compile_glob,
    create_remote_store,
    is_permission_error,
)
from core.config import Settings


def run(coro):
    return asyncio.run(coro)


class UpstashRecorder:
    """MockTransport handler that records commands and answers from a dict."""

    def __init__(self, denied=()):
        self.denied = set(denied)
        self.requests = []
        self.data = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        command = json.loads(request.content)
        self.requests.append((request, command))
        name = command[0]
        if name in self.denied:
            return httpx.Response(200, json={
                "error": f"NOPERM this user has no permissions to run the '{name.lower()}' command"
            })
        if name == "GET":
            return httpx.Response(200, json={"result": self.data.get(command[1])})
        if name == "SET":
            self.data[command[1]] = command[2]
            return httpx.Response(200, json={"result": "OK"})
        if name == "SETEX":
            self.data[command[1]] = command[3]
            return httpx.Response(200, json={"result": "OK"})
        if name == "DEL":
            return httpx.Response(200, json={"result": int(self.data.pop(command[1], None) is not None)})
        return httpx.Response(400, json={"error": "ERR unknown command"})


def make_upstash(handler):
    return UpstashRestStore("https://example.upstash.io/", "tok",
                            transport=httpx.MockTransport(handler))


# =============================================================================
# Upstash REST
# =============================================================================

def test_upstash_sends_json_command_array_with_bearer_token():
    recorder = UpstashRecorder()
    store = make_upstash(recorder)

    async def scenario():
        await store.set_with_expiry("k", '"v"', 300)
        value = await store.get("k")
        await store.close()
        return value

    assert run(scenario()) == '"v"'
    request, command = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.host == "example.upstash.io"
    assert request.headers["authorization"] == "Bearer tok"
    assert command == ["SETEX", "k", 300, '"v"']


def test_upstash_get_missing_key_returns_none():
    assert run(make_upstash(UpstashRecorder()).get("missing")) is None


def test_upstash_noperm_raises_permission_denied():
    store = make_upstash(UpstashRecorder(denied={"DEL"}))
    with pytest.raises(PermissionDeniedError) as exc_info:
        run(store.delete("k"))
    assert exc_info.value.command == "DEL"


def test_upstash_403_raises_permission_denied():
    store = make_upstash(lambda request: httpx.Response(403, text="forbidden"))
    with pytest.raises(PermissionDeniedError):
        run(store.get("k"))


def test_upstash_server_error_raises_unavailable():
    store = make_upstash(lambda request: httpx.Response(500, json={"error": "ERR internal"}))
    with pytest.raises(RemoteUnavailableError):
        run(store.set("k", "v"))


def test_upstash_network_error_raises_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteUnavailableError):
        run(make_upstash(handler).get("k"))


# =============================================================================
# Redis
# =============================================================================

class FailingRedis:
    def __init__(self, exc):
        self.exc = exc

    async def get(self, key):
        raise self.exc

    async def set(self, key, value):
        raise self.exc

    async def setex(self, key, ttl, value):
        raise self.exc

    async def delete(self, key):
        raise self.exc

    async def aclose(self):
        pass


@pytest.mark.parametrize("exc, expected", [
    (NoPermissionError("this user has no permissions"), PermissionDeniedError),
    (ResponseError("NOPERM User default has no permissions to run the 'setex' command"),
     PermissionDeniedError),
    (ResponseError("WRONGTYPE Operation against a key"), RemoteUnavailableError),
    (RedisConnectionError("Error 111 connecting"), RemoteUnavailableError),
])
def test_redis_errors_are_translated(exc, expected):
    store = RedisStore("redis://localhost:6379", client=FailingRedis(exc))
    with pytest.raises(expected):
        run(store.set_with_expiry("k", "v", 10))


# =============================================================================
# Helpers and factory
# =============================================================================

def test_is_permission_error():
    assert is_permission_error("NOPERM this user has no permissions")
    assert is_permission_error("User has No Permissions")
    assert not is_permission_error("ERR syntax error")


def test_compile_glob_is_anchored():
    regex = compile_glob("session:*")
    assert regex.match("session:abc")
    assert regex.match("session:")
    assert not regex.match("xsession:abc")
    assert compile_glob("a.b").match("a.b")
    assert not compile_glob("a.b").match("axb")


def test_factory_prefers_upstash_then_redis():
    upstash = create_remote_store(Settings(
        _env_file=None,
        upstash_redis_rest_url="https://example.upstash.io/",
        upstash_redis_rest_token="tok",
        redis_url="redis://localhost:6379",
    ))
    assert isinstance(upstash, UpstashRestStore)
    assert upstash.url == "https://example.upstash.io"
    run(upstash.close())

    redis_store = create_remote_store(Settings(_env_file=None, redis_url="redis://localhost:6379"))
    assert isinstance(redis_store, RedisStore)


def test_factory_local_only():
    assert create_remote_store(Settings(_env_file=None)) is None
    assert create_remote_store(Settings(
        _env_file=None, cache_backend="local", redis_url="redis://localhost:6379"
    )) is None
    assert create_remote_store(Settings(_env_file=None, cache_backend="upstash")) is None
