# loccal/models/domain/calendar_domain.py
"""
Calendar Domain Models
Raw calendar events as produced by the calendar fetch client and consumed
by the location rollup pipeline.
"""

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True)
class CalendarEvent:
    """
    One calendar event.

    All-day events carry date-only keys (``YYYY-MM-DD``, end exclusive) so
    that day bucketing never depends on a time zone. Timed events carry
    absolute instants.
    """

    title: str
    start: datetime
    end: datetime
    is_all_day: bool = False
    location: str | None = None
    all_day_start_key: str | None = None
    all_day_end_key_exclusive: str | None = None

    @classmethod
    def from_google(cls, data: dict) -> "CalendarEvent | None":
        """
        Build an event from a Google Calendar API item.

        Returns None for items without a summary, start or end, or with
        unparseable times.
        """
        start_data = data.get("start") or {}
        end_data = data.get("end") or {}
        summary = data.get("summary")
        if not summary or not start_data or not end_data:
            return None

        is_all_day = bool(start_data.get("date") and not start_data.get("dateTime"))
        if is_all_day:
            start = _parse_date_key(start_data.get("date"))
            end = _parse_date_key(end_data.get("date"))
        else:
            start = _parse_datetime(start_data.get("dateTime"))
            end = _parse_datetime(end_data.get("dateTime"))

        if start is None or end is None:
            return None

        return cls(
            title=summary,
            location=data.get("location"),
            is_all_day=is_all_day,
            start=start,
            end=end,
            all_day_start_key=start_data.get("date") if is_all_day else None,
            all_day_end_key_exclusive=end_data.get("date") if is_all_day else None,
        )


def _parse_date_key(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=UTC)
    except ValueError:
        return None


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class CalendarFetchResult:
    """Events from every readable calendar plus the account's time zone."""

    events: list[CalendarEvent]
    time_zone: str
