"""Admin session and cache management routes.

Every route except /login sits behind AdminAuthMiddleware, which puts the
live session on ``request.state.admin_session``.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from core.cache import CacheStore
from core.container import container
from core.logging import get_logger
from services.admin_auth import AdminAuthService
from services.event_cache import events_cache_key
from services.events import EventService
from services.sessions import SessionStore

logger = get_logger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


def get_admin_auth_service() -> AdminAuthService:
    return container.admin_auth_service()


def get_session_store() -> SessionStore:
    return container.session_store()


def get_cache() -> CacheStore:
    return container.cache()


def get_event_service() -> EventService:
    return container.event_service()


@router.post("/login")
async def login(
    request: LoginRequest,
    admin_auth: AdminAuthService = Depends(get_admin_auth_service)
):
    """Exchange admin credentials for a bearer session id."""
    if not request.username or not request.password:
        raise HTTPException(status_code=400, detail="Username and password are required")

    result, error = await admin_auth.login(request.username, request.password)
    if error:
        raise HTTPException(status_code=401, detail=error)

    session_id, session = result
    return {
        "success": True,
        "sessionId": session_id,
        "message": "Logged in",
        "expiresAt": session.expires_at,
    }


@router.post("/logout")
async def logout(
    request: Request,
    admin_auth: AdminAuthService = Depends(get_admin_auth_service)
):
    await admin_auth.logout(request.state.session_id)
    return {"success": True, "message": "Logged out"}


@router.get("/check")
async def check_session(request: Request):
    """Current session details."""
    session = request.state.admin_session
    public = session.to_public_dict()
    return {
        "success": True,
        "session": {
            "username": public["username"],
            "loginTime": public["loginTime"],
            "expiresAt": public["expiresAt"],
        },
    }


@router.get("/sessions")
async def list_sessions(sessions: SessionStore = Depends(get_session_store)):
    """
    Session ids known to this process.
    Remote key enumeration is unavailable, so this is empty on a remote backend.
    """
    session_ids = await sessions.list_ids()
    return {
        "success": True,
        "sessions": session_ids,
        "note": "Only sessions held in the local cache can be listed",
    }


@router.delete("/sessions/{session_id}")
async def delete_session(
    session_id: str,
    sessions: SessionStore = Depends(get_session_store)
):
    await sessions.destroy(session_id)
    return {"success": True, "message": "Session deleted"}


@router.post("/sessions/cleanup")
async def cleanup_sessions(sessions: SessionStore = Depends(get_session_store)):
    """Drop expired sessions visible locally; remote ones lapse via TTL or on next read."""
    removed = 0
    for session_id in await sessions.list_ids():
        # read() destroys sessions past expires_at
        if await sessions.read(session_id) is None:
            removed += 1
    return {
        "success": True,
        "removed": removed,
        "message": "Sessions expire automatically after 24 hours",
    }


@router.delete("/cache")
async def clear_cache(
    cache: CacheStore = Depends(get_cache),
    service: EventService = Depends(get_event_service)
):
    """Invalidate well-known keys plus the default event range; wipe local cache."""
    start_date, end_date = service.default_date_range()
    await cache.clear(extra_keys=[events_cache_key(start_date, end_date)])
    return {"success": True, "message": "Cache cleared"}
