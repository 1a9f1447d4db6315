"""Admin authentication middleware for route protection."""

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.logging import get_logger

logger = get_logger(__name__)

# Everything under this prefix requires a live admin session
PROTECTED_PREFIX = "/api/admin/"

# Admin routes reachable without a session
PUBLIC_PATHS = frozenset([
    "/api/admin/login",
])


def extract_bearer(request: Request) -> str:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return ""


class AdminAuthMiddleware(BaseHTTPMiddleware):
    """Checks the bearer session id on admin routes and slides its expiry."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not self._is_protected_path(path):
            return await call_next(request)

        session_id = extract_bearer(request)
        if not session_id:
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})

        admin_auth = container.admin_auth_service()
        session = await admin_auth.authenticate(session_id)
        if session is None:
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})

        # Attach session for downstream handlers
        request.state.session_id = session_id
        request.state.admin_session = session

        return await call_next(request)

    def _is_protected_path(self, path: str) -> bool:
        if path in PUBLIC_PATHS:
            return False
        return path.startswith(PROTECTED_PREFIX)
