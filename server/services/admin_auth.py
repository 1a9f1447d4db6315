"""Admin authentication on top of SessionStore.

A single admin account comes from settings; the session id doubles as the
bearer token.
"""

import secrets
from typing import Optional, Tuple

from core.config import Settings
from core.logging import get_logger
from models.auth import Session
from models.cache import now_ms
from services.sessions import SessionStore

logger = get_logger(__name__)


def generate_session_id() -> str:
    return secrets.token_urlsafe(24)


class AdminAuthService:
    """Handles admin login, logout and per-request session refresh."""

    def __init__(self, sessions: SessionStore, settings: Settings):
        self.sessions = sessions
        self.settings = settings

    def verify_credentials(self, username: str, password: str) -> bool:
        user_ok = secrets.compare_digest(username.encode(), self.settings.admin_username.encode())
        password_ok = secrets.compare_digest(password.encode(), self.settings.admin_password.encode())
        return user_ok and password_ok

    async def login(self, username: str, password: str) -> Tuple[Optional[Tuple[str, Session]], Optional[str]]:
        """
        Authenticate and open a session.
        Returns ((session_id, session), None) on success, (None, error_message) on failure.
        """
        if not username or not password:
            return None, "Username and password are required"

        if not self.verify_credentials(username, password):
            logger.warning("Admin login rejected", username=username)
            return None, "Invalid username or password"

        session_id = generate_session_id()
        session = await self.sessions.create(session_id, {"username": self.settings.admin_username})
        logger.info("Admin logged in", username=session.username)
        return (session_id, session), None

    async def logout(self, session_id: str) -> None:
        await self.sessions.destroy(session_id)
        logger.info("Admin logged out")

    async def authenticate(self, session_id: Optional[str]) -> Optional[Session]:
        """Validate a bearer session id and slide its expiry forward."""
        if not session_id:
            return None
        return await self.sessions.touch(session_id, {"last_access": now_ms()})
