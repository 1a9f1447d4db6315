"""Admin session model."""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional


@dataclass
class Session:
    """Admin session stored under ``session:{id}``.

    Timestamps are epoch milliseconds except ``login_time`` (ISO 8601).
    Keys the model does not know are kept in ``extra`` and round-trip.
    """
    username: str
    login_time: str
    last_access: int
    expires_at: int
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "username": self.username,
            "login_time": self.login_time,
            "last_access": self.last_access,
            "expires_at": self.expires_at,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        known = {f.name for f in fields(cls)} - {"extra"}
        return cls(
            username=data["username"],
            login_time=data["login_time"],
            last_access=int(data["last_access"]),
            expires_at=int(data["expires_at"]),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def merged(self, patch: Optional[Dict[str, Any]]) -> "Session":
        """Return a copy with ``patch`` applied over the current fields."""
        data = self.to_dict()
        data.update(patch or {})
        return Session.from_dict(data)

    def to_public_dict(self) -> Dict[str, Any]:
        """camelCase view returned by the admin API."""
        return {
            "username": self.username,
            "loginTime": self.login_time,
            "lastAccess": self.last_access,
            "expiresAt": self.expires_at,
        }
