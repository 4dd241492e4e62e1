from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from ensenas.db import create_tables
from ensenas.dtos import FirebaseUser
from ensenas.models import User
from ensenas.user_service import (
    UserNotFoundError,
    UserService,
    apply_experience,
    experience_required_for_level,
    is_new_day,
    resolve_timezone,
)

UTC = timezone.utc


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def service(engine):
    return UserService(engine)


def _token(user_id="u1"):
    return FirebaseUser(user_id=user_id, name="Ana", email="ana@example.com")


def test_experience_required_for_first_level():
    assert experience_required_for_level(1) == 100


@pytest.mark.parametrize("level", [1, 2, 5, 30])
def test_experience_required_grows(level):
    assert experience_required_for_level(level + 1) > experience_required_for_level(level)


@pytest.mark.parametrize(
    "level, exp, gained",
    [(1, 0, 0), (1, 0, 99), (1, 0, 100), (1, 50, 500), (3, 10, 1234), (1, 0, -20)],
)
def test_apply_experience_invariants(level, exp, gained):
    new_level, new_exp = apply_experience(level, exp, gained)
    assert new_level >= level
    assert new_exp < experience_required_for_level(new_level)
    spent = sum(experience_required_for_level(lv) for lv in range(level, new_level))
    assert spent + new_exp == exp + gained


def test_apply_experience_below_threshold_keeps_level():
    assert apply_experience(1, 0, 99) == (1, 99)


def test_is_new_day_without_history():
    assert is_new_day(None, datetime(2024, 1, 1, tzinfo=UTC), ZoneInfo("UTC")) is True


def test_is_new_day_same_day():
    moment = datetime(2024, 1, 1, 10, tzinfo=UTC)
    assert is_new_day(moment, moment + timedelta(hours=5), ZoneInfo("UTC")) is False


def test_is_new_day_depends_on_timezone():
    last = datetime(2024, 1, 1, 4, tzinfo=UTC)
    now = datetime(2024, 1, 1, 6, tzinfo=UTC)
    assert is_new_day(last, now, ZoneInfo("UTC")) is False
    assert is_new_day(last, now, ZoneInfo("America/Lima")) is True


def test_resolve_timezone():
    assert resolve_timezone("UTC") == ZoneInfo("UTC")
    assert resolve_timezone("Invalid/Zone") == ZoneInfo("America/Lima")
    assert resolve_timezone("") == ZoneInfo("America/Lima")


def test_create_user_from_token(service):
    created = service.create_user_from_token(
        FirebaseUser(user_id="u1", name=None, email="ana@example.com")
    )
    assert created.name == ""
    assert created.email == "ana@example.com"
    assert (created.level, created.streak, created.experience) == (1, 0, 0)
    assert created.timezone == "UTC"
    assert created.last_experience_at is None
    assert service.get_user("u1").to_dict() == created.to_dict()


def test_create_duplicate_user_fails(service):
    service.create_user_from_token(_token())
    with pytest.raises(RuntimeError, match="Failed to insert user"):
        service.create_user_from_token(_token())


def test_get_missing_user(service):
    assert service.get_user("nobody") is None


def test_get_all_users(service):
    service.create_user_from_token(_token("a"))
    service.create_user_from_token(_token("b"))
    assert sorted(user.id for user in service.get_all_users()) == ["a", "b"]


def test_delete_user(service):
    service.create_user_from_token(_token())
    service.delete_user("u1")
    assert service.get_user("u1") is None
    assert service.get_all_users() == []


def test_delete_missing_user_is_quiet(service):
    service.create_user_from_token(_token())
    service.delete_user("nobody")
    assert [user.id for user in service.get_all_users()] == ["u1"]


def test_add_experience_levels_up(service):
    service.create_user_from_token(_token())
    now = datetime(2024, 5, 1, 12, tzinfo=UTC)
    updated = service.add_experience("u1", 250, now=now)
    assert (updated.level, updated.experience) == apply_experience(1, 0, 250)
    assert updated.last_experience_at == now
    stored = service.get_user("u1")
    assert (stored.level, stored.experience) == (updated.level, updated.experience)
    assert stored.last_experience_at == now


def test_add_experience_streak(service):
    service.create_user_from_token(_token())
    start = datetime(2024, 5, 1, 8, tzinfo=UTC)
    first = service.add_experience("u1", 10, now=start)
    same_day = service.add_experience("u1", 10, now=start + timedelta(hours=3))
    next_day = service.add_experience("u1", 10, now=start + timedelta(days=1))
    assert first.streak == 1
    assert same_day.streak == first.streak
    assert next_day.streak == first.streak + 1


def test_add_experience_unknown_timezone_uses_lima(service, engine):
    service.create_user_from_token(_token())
    with Session(engine) as session:
        session.get(User, "u1").timezone = "Invalid/Zone"
        session.commit()
    first = service.add_experience("u1", 5, now=datetime(2024, 1, 1, 4, tzinfo=UTC))
    second = service.add_experience("u1", 5, now=datetime(2024, 1, 1, 6, tzinfo=UTC))
    assert second.streak == first.streak + 1


def test_add_experience_missing_user(service):
    with pytest.raises(UserNotFoundError) as info:
        service.add_experience("ghost", 10)
    assert info.value.user_id == "ghost"
    assert str(info.value) == "User not found: ghost"