"""
Event classification for the location rollup.

An event survives only if it has a location string that resolved to a
place. Timed events are bucketed by wall-clock date in the calendar's
time zone; all-day events keep their own date keys and skip time-zone
conversion entirely.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import quote
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loccal.infrastructure.observability.logging import get_logger
from loccal.models.domain.calendar_domain import CalendarEvent
from loccal.models.domain.location_domain import InferredEvent
from loccal.services.location.interval_merger import DayRange, date_key_to_epoch_day

logger = get_logger(__name__)

MAPS_SEARCH_URL = "https://www.google.com/maps/search/"


@dataclass(frozen=True)
class ClassifiedEvent:
    """
    An event with a resolved place.

    Exactly one of ``date_key`` (timed) or ``day_range`` (all-day with
    date keys) is set.
    """

    place: str
    evidence: InferredEvent
    start: datetime
    date_key: str | None = None
    day_range: tuple[int, int] | None = None

    def to_day_range(self) -> DayRange:
        start_day, end_day_exclusive = self.day_range
        return DayRange(start_day, end_day_exclusive, [self.evidence])


def source_location(event: CalendarEvent) -> str:
    return (event.location or "").strip()


def maps_url(location: str) -> str:
    return MAPS_SEARCH_URL + quote(location, safe="")


def to_utc_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def resolve_zone(time_zone: str | None) -> ZoneInfo:
    """Calendar zone, or UTC when missing/unknown."""
    if time_zone:
        try:
            return ZoneInfo(time_zone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown calendar time zone, using UTC", time_zone=time_zone)
    return ZoneInfo("UTC")


def to_date_key(value: datetime, zone: ZoneInfo) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(zone).strftime("%Y-%m-%d")


def _all_day_range(event: CalendarEvent) -> tuple[int, int] | None:
    if not (event.all_day_start_key and event.all_day_end_key_exclusive):
        return None
    if event.end <= event.start:
        return None
    try:
        start_day = date_key_to_epoch_day(event.all_day_start_key)
        end_day = date_key_to_epoch_day(event.all_day_end_key_exclusive)
    except ValueError:
        return None
    return (start_day, end_day) if end_day > start_day else None


def classify_event(
    event: CalendarEvent,
    resolved: Mapping[str, str | None],
    zone: ZoneInfo,
) -> ClassifiedEvent | None:
    """Attach a place and day bucket to an event, or drop it (None)."""
    location = source_location(event)
    if not location:
        return None

    place = resolved.get(location)
    if not place:
        return None

    evidence = InferredEvent(
        title=event.title,
        is_all_day=event.is_all_day,
        start_iso=to_utc_iso(event.start),
        end_iso=to_utc_iso(event.end),
        inferred_from=location,
        maps_url=maps_url(location),
    )

    if event.is_all_day:
        day_range = _all_day_range(event)
        if day_range:
            return ClassifiedEvent(place=place, evidence=evidence, start=event.start, day_range=day_range)
        # All-day starts are midnight UTC; no zone shift
        return ClassifiedEvent(
            place=place,
            evidence=evidence,
            start=event.start,
            date_key=to_date_key(event.start, ZoneInfo("UTC")),
        )

    return ClassifiedEvent(
        place=place,
        evidence=evidence,
        start=event.start,
        date_key=to_date_key(event.start, zone),
    )
