"""
Location rollup builder.

Turns raw calendar events into a deterministic day -> places map for a
month or a year:

    1. resolve every distinct location string once (PlaceResolver)
    2. classify events (timed -> date key, all-day -> day range)
    3. merge all-day ranges per place and expand them into days
    4. keep only days inside the period, dedupe and sort everything
"""

import re
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime, timedelta

from loccal.infrastructure.observability.logging import get_logger
from loccal.models.domain.calendar_domain import CalendarEvent
from loccal.models.domain.location_domain import (
    DayLocation,
    DayMap,
    InferredEvent,
    PeriodKind,
    Rollup,
)
from loccal.services.location.event_classifier import (
    classify_event,
    resolve_zone,
    source_location,
)
from loccal.services.location.interval_merger import (
    DayRange,
    expand_day_range,
    merge_day_ranges,
)
from loccal.services.location.place_resolver import PlaceResolver

logger = get_logger(__name__)

MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")
YEAR_KEY_RE = re.compile(r"^\d{4}$")

MONTH_WINDOW_PAST = timedelta(days=30)
MONTH_WINDOW_FUTURE = timedelta(days=365)


class PeriodValidationError(ValueError):
    """Raised when a month or year key is malformed."""

    def __init__(self, message: str, value: str | None = None):
        self.value = value
        super().__init__(message)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def normalize_month_key(value: str | None, now: datetime | None = None) -> str:
    """``YYYY-MM`` with month 01-12; defaults to the current month."""
    if not value:
        now = now or _utcnow()
        return f"{now.year:04d}-{now.month:02d}"

    match = MONTH_KEY_RE.match(value)
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise PeriodValidationError("Invalid month. Use YYYY-MM.", value)
    return value


def normalize_year_key(value: str | None, now: datetime | None = None) -> str:
    """``YYYY``; defaults to the current year."""
    if not value:
        now = now or _utcnow()
        return f"{now.year:04d}"

    if not YEAR_KEY_RE.match(value):
        raise PeriodValidationError("Invalid year. Use YYYY.", value)
    return value


def month_bounds(month_key: str) -> tuple[datetime, datetime]:
    """First instant of the month and first instant of the next one (UTC)."""
    year, month = (int(part) for part in month_key.split("-"))
    start = datetime(year, month, 1, tzinfo=UTC)
    if month == 12:
        return start, datetime(year + 1, 1, 1, tzinfo=UTC)
    return start, datetime(year, month + 1, 1, tzinfo=UTC)


def month_fetch_window(
    now: datetime | None = None, month_key: str | None = None
) -> tuple[datetime, datetime]:
    """
    Calendar window for a month rollup: 30 days back to a year ahead.

    When ``month_key`` falls outside that window it is widened (by one day
    on each side to absorb time-zone offsets) to cover the month.
    """
    now = now or _utcnow()
    time_min = now - MONTH_WINDOW_PAST
    time_max = now + MONTH_WINDOW_FUTURE

    if month_key:
        month_start, month_end = month_bounds(month_key)
        time_min = min(time_min, month_start - timedelta(days=1))
        time_max = max(time_max, month_end + timedelta(days=1))

    return time_min, time_max


def year_fetch_window(year_key: str) -> tuple[datetime, datetime]:
    year = int(year_key)
    return (
        datetime(year, 1, 1, tzinfo=UTC),
        datetime(year, 12, 31, 23, 59, 59, 999000, tzinfo=UTC),
    )


def _dedupe_events(events: Iterable[InferredEvent]) -> list[InferredEvent]:
    unique: dict[tuple[str, str, str, str], InferredEvent] = {}
    for event in events:
        unique.setdefault(event.dedupe_key(), event)
    return sorted(unique.values(), key=lambda item: (item.start_iso, item.title))


def assemble_rollup(
    events: Iterable[CalendarEvent],
    resolved: Mapping[str, str | None],
    period: str,
    kind: PeriodKind,
    time_zone: str | None,
) -> Rollup:
    """
    Build a rollup from events and an already-resolved location map.

    Pure: the same inputs always produce the same rollup.
    """
    zone = resolve_zone(time_zone)
    prefix = f"{period}-"

    evidence: dict[str, dict[str, list[InferredEvent]]] = defaultdict(lambda: defaultdict(list))
    ranges_by_place: dict[str, list[DayRange]] = defaultdict(list)

    for event in events:
        classified = classify_event(event, resolved, zone)
        if classified is None:
            continue
        if classified.day_range is not None:
            ranges_by_place[classified.place].append(classified.to_day_range())
        else:
            evidence[classified.date_key][classified.place].append(classified.evidence)

    for place, ranges in ranges_by_place.items():
        for merged in merge_day_ranges(ranges):
            for date_key in expand_day_range(merged):
                if date_key.startswith(prefix):
                    evidence[date_key][place].extend(merged.events)

    days: DayMap = {}
    for date_key in sorted(evidence):
        if not date_key.startswith(prefix):
            continue
        places = evidence[date_key]
        entries = [
            DayLocation(location=place, events=_dedupe_events(places[place]))
            for place in sorted(places, key=lambda label: (label.casefold(), label))
        ]
        if entries:
            days[date_key] = entries

    return Rollup(period=period, kind=kind, days=days)


async def build_rollup(
    events: list[CalendarEvent],
    period: str,
    kind: PeriodKind,
    time_zone: str | None,
    resolver: PlaceResolver,
) -> Rollup:
    """Resolve each distinct location once, then assemble."""
    resolved = await resolver.resolve_many(source_location(event) for event in events)
    rollup = assemble_rollup(events, resolved, period, kind, time_zone)

    logger.info(
        "Built location rollup",
        kind=kind,
        period=period,
        events=len(events),
        unique_locations=len(resolved),
        days=len(rollup.days),
    )
    return rollup


async def build_monthly_rollup(
    events: list[CalendarEvent],
    month_key: str,
    time_zone: str | None,
    resolver: PlaceResolver,
) -> Rollup:
    return await build_rollup(events, month_key, "month", time_zone, resolver)


async def build_yearly_rollup(
    events: list[CalendarEvent],
    year_key: str,
    time_zone: str | None,
    resolver: PlaceResolver,
) -> Rollup:
    return await build_rollup(events, year_key, "year", time_zone, resolver)
