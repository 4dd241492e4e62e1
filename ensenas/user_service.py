"""User operations: lookup, creation, deletion and experience tracking."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ensenas.dtos import FirebaseUser, UserResponse
from ensenas.models import User

_FALLBACK_TIMEZONE = "America/Lima"


class UserNotFoundError(LookupError):
    """Raised when a user id has no stored user."""

    def __init__(self, user_id: str):
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


def experience_required_for_level(level: int) -> int:
    """Experience needed to advance past the given level."""
    return 100 + (level - 1) * 10


def apply_experience(current_level: int, current_exp: int, gained_exp: int) -> tuple[int, int]:
    """Add experience and carry it over into levels; return (level, experience)."""
    level = current_level
    exp = current_exp + gained_exp
    while exp >= experience_required_for_level(level):
        exp -= experience_required_for_level(level)
        level += 1
    return level, exp


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def is_new_day(last_time: Optional[datetime], now: datetime, tz: tzinfo) -> bool:
    """Whether ``now`` falls on a later calendar day than ``last_time`` in ``tz``."""
    if last_time is None:
        return True
    last_local = _as_utc(last_time).astimezone(tz).date()
    now_local = _as_utc(now).astimezone(tz).date()
    return now_local > last_local


def resolve_timezone(name: str) -> ZoneInfo:
    """Look up a time zone by name, falling back to America/Lima."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(_FALLBACK_TIMEZONE)


class UserService:
    """Operations on stored users."""

    def __init__(self, engine: Engine):
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def get_user(self, user_id: str) -> Optional[UserResponse]:
        """Return the user with this id, or None."""
        with self._sessions() as session:
            user = session.get(User, user_id)
            return UserResponse.from_user(user) if user is not None else None

    def get_all_users(self) -> list[UserResponse]:
        """Return every stored user."""
        with self._sessions() as session:
            return [UserResponse.from_user(user) for user in session.scalars(select(User))]

    def create_user_from_token(self, user: FirebaseUser) -> User:
        """Store a fresh user from verified token claims."""
        new_user = User(
            id=user.user_id,
            name=user.name or "",
            email=user.email or "",
            level=1,
            streak=0,
            experience=0,
            last_experience_at=None,
            timezone="UTC",
        )
        with self._sessions() as session:
            session.add(new_user)
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise RuntimeError("Failed to insert user into database") from exc
        return new_user

    def delete_user(self, user_id: str) -> None:
        """Delete the user with this id; a missing user is not an error."""
        with self._sessions() as session:
            session.execute(delete(User).where(User.id == user_id))
            session.commit()

    def add_experience(
        self, user_id: str, gained_exp: int, now: Optional[datetime] = None
    ) -> User:
        """Grant experience, level up as needed and update the daily streak."""
        now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        with self._sessions() as session:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError(user_id)

            user.level, user.experience = apply_experience(
                user.level, user.experience, gained_exp
            )
            if is_new_day(user.last_experience_at, now, resolve_timezone(user.timezone)):
                user.streak += 1
            user.last_experience_at = now
            session.commit()
            return user