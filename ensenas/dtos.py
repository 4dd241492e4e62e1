"""Request and response shapes for the user API."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class AddExperiencePayload:
    """Body of a request that grants experience to a user."""

    gained_exp: int

    @classmethod
    def from_json(cls, data: Any) -> "AddExperiencePayload":
        """Validate decoded JSON and build the payload; raises ValueError."""
        if not isinstance(data, dict):
            raise ValueError("payload must be a JSON object")
        if "gained_exp" not in data:
            raise ValueError("missing field `gained_exp`")
        value = data["gained_exp"]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("`gained_exp` must be an integer")
        if not _I32_MIN <= value <= _I32_MAX:
            raise ValueError("`gained_exp` is out of range")
        return cls(gained_exp=value)


@dataclass
class UserResponse:
    """Public view of a user."""

    id: str
    name: str
    email: str
    streak: int
    level: int
    experience: int
    last_experience_at: Optional[datetime]
    timezone: str

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        """Build the response from a stored user."""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            streak=user.streak,
            level=user.level,
            experience=user.experience,
            last_experience_at=user.last_experience_at,
            timezone=user.timezone,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dictionary."""
        data = asdict(self)
        data["last_experience_at"] = _format_timestamp(self.last_experience_at)
        return data


@dataclass(frozen=True)
class FirebaseUser:
    """Identity claims taken from a verified authentication token."""

    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None