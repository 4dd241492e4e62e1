"""Database model for application users."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

_COLUMNS = (
    "id",
    "name",
    "email",
    "streak",
    "level",
    "experience",
    "last_experience_at",
    "timezone",
)


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class _UtcDateTime(TypeDecorator):
    """Timestamp column that always stores and yields UTC-aware datetimes."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class _Base(DeclarativeBase):
    pass


class User(_Base):
    """A registered user with progress information."""

    __tablename__ = "user"

    id: Mapped[str] = mapped_column(String, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False)
    streak: Mapped[int] = mapped_column(Integer, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    experience: Mapped[int] = mapped_column(Integer, nullable=False)
    last_experience_at: Mapped[Optional[datetime]] = mapped_column(
        _UtcDateTime(), nullable=True
    )
    timezone: Mapped[str] = mapped_column(String, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        """Return the user as a JSON-ready dictionary."""
        data = {column: getattr(self, column) for column in _COLUMNS}
        data["last_experience_at"] = _format_timestamp(self.last_experience_at)
        return data

    @classmethod
    def from_row(cls, row) -> "User":
        """Build a user from a result row or a mapping of column values."""
        mapping: Mapping[str, Any] = getattr(row, "_mapping", row)
        return cls(**{column: mapping[column] for column in _COLUMNS})

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, name={self.name!r}, level={self.level!r})"