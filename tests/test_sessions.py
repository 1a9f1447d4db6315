"""SessionStore and AdminAuthService."""

import asyncio

from conftest import FakeRemoteStore
from core.cache import CacheStore
from services.admin_auth import AdminAuthService
from services.sessions import SessionStore, session_cache_key


def run(coro):
    return asyncio.run(coro)


def test_create_then_read(local_cache, clock):
    store = SessionStore(local_cache, clock=clock)
    created = run(store.create("abc", {"username": "admin"}))

    session = run(store.read("abc"))
    assert session.username == "admin"
    assert session.expires_at == clock() + 86400 * 1000
    assert session.last_access == created.last_access


def test_touch_pushes_expiry_forward(remote_cache, clock):
    store = SessionStore(remote_cache, clock=clock)

    async def scenario():
        created = await store.create("abc", {"username": "admin"})
        clock.advance(5)
        await store.touch("abc", {"last_access": clock()})
        return created, await store.read("abc")

    created, session = run(scenario())
    assert session.expires_at > created.expires_at
    assert session.last_access == clock()


def test_touch_keeps_unknown_fields(local_cache, clock):
    store = SessionStore(local_cache, clock=clock)
    run(store.create("abc", {"username": "admin", "role": "editor"}))
    session = run(store.touch("abc", {"theme": "dark"}))
    assert session.extra == {"role": "editor", "theme": "dark"}
    assert run(store.read("abc")).extra["theme"] == "dark"


def test_touch_missing_session(local_cache, clock):
    store = SessionStore(local_cache, clock=clock)
    assert run(store.touch("nope")) is None


def test_destroy_then_read_is_absent(remote_cache, clock):
    store = SessionStore(remote_cache, clock=clock)

    async def scenario():
        await store.create("abc", {"username": "admin"})
        await store.destroy("abc")
        return await store.read("abc")

    assert run(scenario()) is None


def test_destroy_with_del_denied(clock):
    remote = FakeRemoteStore(clock, denied={"DEL"})
    store = SessionStore(CacheStore(remote=remote, clock=clock), clock=clock)

    async def scenario():
        await store.create("abc", {"username": "admin"})
        await store.destroy("abc")
        return await store.read("abc")

    assert run(scenario()) is None
    assert remote.data[session_cache_key("abc")] == "null"


def test_session_round_trip_with_get_denied(clock):
    remote = FakeRemoteStore(clock, denied={"GET"})
    cache = CacheStore(remote=remote, clock=clock)
    run(cache.startup())
    store = SessionStore(cache, clock=clock)

    async def scenario():
        await store.create("abc", {"username": "admin"})
        return await store.read("abc")

    session = run(scenario())
    assert session is not None
    assert session.username == "admin"
    assert session_cache_key("abc") in remote.data


def test_expired_session_is_destroyed_on_read(clock):
    # SETEX denied: the server never expires the entry, so the read-side check must
    remote = FakeRemoteStore(clock, denied={"SETEX"})
    cache = CacheStore(remote=remote, clock=clock)
    store = SessionStore(cache, ttl=60, clock=clock)

    run(store.create("abc", {"username": "admin"}))
    clock.advance(61)
    assert run(store.read("abc")) is None


def test_malformed_session_is_absent(local_cache, clock):
    store = SessionStore(local_cache, clock=clock)
    run(local_cache.set(session_cache_key("bad"), {"username": "admin"}))
    run(local_cache.set(session_cache_key("str"), "not a session"))
    assert run(store.read("bad")) is None
    assert run(store.read("str")) is None


def test_list_ids_local_only(local_cache, remote_cache, clock):
    local_store = SessionStore(local_cache, clock=clock)
    run(local_store.create("a1", {"username": "admin"}))
    run(local_store.create("b2", {"username": "admin"}))
    assert sorted(run(local_store.list_ids())) == ["a1", "b2"]

    remote_store = SessionStore(remote_cache, clock=clock)
    run(remote_store.create("c3", {"username": "admin"}))
    assert run(remote_store.list_ids()) == []


def test_public_dict_is_camel_case(local_cache, clock):
    session = run(SessionStore(local_cache, clock=clock).create("abc", {"username": "admin"}))
    assert set(session.to_public_dict()) == {"username", "loginTime", "lastAccess", "expiresAt"}


# =============================================================================
# AdminAuthService
# =============================================================================

def make_auth(cache, settings):
    return AdminAuthService(SessionStore(cache), settings)


def test_login_success_and_authenticate(local_cache, settings):
    auth = make_auth(local_cache, settings)

    async def scenario():
        result, error = await auth.login("admin", "secret-pass")
        session_id, session = result
        return error, session, await auth.authenticate(session_id)

    error, session, authenticated = run(scenario())
    assert error is None
    assert session.username == "admin"
    assert authenticated.username == "admin"
    assert authenticated.expires_at >= session.expires_at


def test_login_rejects_bad_credentials(local_cache, settings):
    auth = make_auth(local_cache, settings)
    assert run(auth.login("admin", "wrong")) == (None, "Invalid username or password")
    assert run(auth.login("", "secret-pass")) == (None, "Username and password are required")


def test_logout_invalidates_session(local_cache, settings):
    auth = make_auth(local_cache, settings)

    async def scenario():
        (session_id, _), _ = await auth.login("admin", "secret-pass")
        await auth.logout(session_id)
        return await auth.authenticate(session_id)

    assert run(scenario()) is None


def test_authenticate_without_token(local_cache, settings):
    assert run(make_auth(local_cache, settings).authenticate("")) is None
