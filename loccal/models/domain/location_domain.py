# loccal/models/domain/location_domain.py
"""
Location Domain Models
Inferred places per day and the evidence behind them.
Rollups and snapshots share the same day map shape:
``{date_key: [DayLocation, ...]}``.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

PeriodKind = Literal["month", "year"]


@dataclass(frozen=True)
class InferredEvent:
    """A calendar event that placed the user in a city on a given day."""

    title: str
    is_all_day: bool
    start_iso: str
    end_iso: str
    inferred_from: str
    maps_url: str

    def dedupe_key(self) -> tuple[str, str, str, str]:
        return (self.title, self.start_iso, self.end_iso, self.inferred_from)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "isAllDay": self.is_all_day,
            "startIso": self.start_iso,
            "endIso": self.end_iso,
            "inferredFrom": self.inferred_from,
            "mapsUrl": self.maps_url,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "InferredEvent | None":
        """Coerce a stored event; anything malformed yields None."""
        if not isinstance(data, dict):
            return None

        title = data.get("title")
        is_all_day = data.get("isAllDay")
        start_iso = data.get("startIso")
        end_iso = data.get("endIso")
        inferred_from = data.get("inferredFrom")
        maps_url = data.get("mapsUrl")

        if not isinstance(is_all_day, bool):
            return None
        values = (title, start_iso, end_iso, inferred_from, maps_url)
        if not all(isinstance(value, str) and value for value in values):
            return None

        return cls(
            title=title,
            is_all_day=is_all_day,
            start_iso=start_iso,
            end_iso=end_iso,
            inferred_from=inferred_from,
            maps_url=maps_url,
        )


@dataclass
class DayLocation:
    """One resolved place on one day, with its supporting events."""

    location: str
    events: list[InferredEvent] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": self.location,
            "events": [event.to_dict() for event in self.events],
        }


DayMap = dict[str, list[DayLocation]]


@dataclass
class Rollup:
    """Day -> places map for one month (``YYYY-MM``) or year (``YYYY``)."""

    period: str
    kind: PeriodKind
    days: DayMap = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            self.kind: self.period,
            "days": day_map_to_dict(self.days),
        }


def day_map_to_dict(days: DayMap) -> dict[str, list[dict[str, Any]]]:
    return {
        date_key: [entry.to_dict() for entry in entries]
        for date_key, entries in sorted(days.items())
    }


def coerce_day_location_record(data: Any) -> DayMap:
    """
    Rebuild a day map from stored JSON.

    Entries without a string location and events missing any field are
    dropped; a non-dict payload yields an empty map.
    """
    if not isinstance(data, dict):
        return {}

    result: DayMap = {}
    for date_key, value in data.items():
        if not isinstance(value, list):
            continue

        entries: list[DayLocation] = []
        for candidate in value:
            if not isinstance(candidate, dict):
                continue
            location = candidate.get("location")
            if not isinstance(location, str) or not location:
                continue
            raw_events = candidate.get("events")
            if not isinstance(raw_events, list):
                raw_events = []
            events = [
                event
                for event in (InferredEvent.from_dict(raw) for raw in raw_events)
                if event is not None
            ]
            entries.append(DayLocation(location=location, events=events))

        result[date_key] = entries

    return result
