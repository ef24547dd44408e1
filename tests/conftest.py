from datetime import UTC, datetime

import pytest

from loccal.auth.verify import auth_dependency, google_access_token
from loccal.models.domain.calendar_domain import CalendarEvent
from loccal.models.domain.location_domain import DayLocation, InferredEvent
from loccal.services.social.social_store import SocialStore


@pytest.fixture
def auth_override():
    def _override():
        return {
            "sub": "user-123",
            "email": "owner@example.com",
            "name": "Owner",
            "picture": "https://example.com/owner.png",
        }

    return _override


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.fail_writes = False

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        if self.fail_writes:
            return False
        self.store[key] = value
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> bool:
        return self.store.pop(key, None) is not None

    async def ping(self) -> bool:
        return True


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def social_store(fake_redis):
    return SocialStore(fake_redis)


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override
        app.dependency_overrides[google_access_token] = lambda: "google-token"

    return _apply


def timed_event(title: str, location: str | None, start: str, end: str) -> CalendarEvent:
    return CalendarEvent(
        title=title,
        location=location,
        start=datetime.fromisoformat(start).astimezone(UTC),
        end=datetime.fromisoformat(end).astimezone(UTC),
    )


def all_day_event(title: str, location: str | None, start_key: str, end_key: str) -> CalendarEvent:
    return CalendarEvent(
        title=title,
        location=location,
        is_all_day=True,
        start=datetime.fromisoformat(start_key).replace(tzinfo=UTC),
        end=datetime.fromisoformat(end_key).replace(tzinfo=UTC),
        all_day_start_key=start_key,
        all_day_end_key_exclusive=end_key,
    )


def day_entry(location: str, title: str = "Trip") -> DayLocation:
    return DayLocation(
        location=location,
        events=[
            InferredEvent(
                title=title,
                is_all_day=True,
                start_iso="2024-06-10T00:00:00.000Z",
                end_iso="2024-06-11T00:00:00.000Z",
                inferred_from=location,
                maps_url="https://www.google.com/maps/search/x",
            )
        ],
    )


@pytest.fixture
def make_timed_event():
    return timed_event


@pytest.fixture
def make_all_day_event():
    return all_day_event


@pytest.fixture
def make_day_entry():
    return day_entry
