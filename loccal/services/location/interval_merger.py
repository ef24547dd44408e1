"""
Multi-day all-day range merging.

Ranges are half-open ``[start_day, end_day_exclusive)`` in days since the
Unix epoch. Touching ranges (``end == next.start``) merge too, so two
back-to-back all-day events in one city read as a single stay.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, timedelta

from loccal.models.domain.location_domain import InferredEvent

EPOCH = date(1970, 1, 1)


@dataclass
class DayRange:
    start_day: int
    end_day_exclusive: int
    events: list[InferredEvent] = field(default_factory=list)


def date_key_to_epoch_day(date_key: str) -> int:
    return (date.fromisoformat(date_key) - EPOCH).days


def epoch_day_to_date_key(epoch_day: int) -> str:
    return (EPOCH + timedelta(days=epoch_day)).isoformat()


def merge_day_ranges(ranges: list[DayRange]) -> list[DayRange]:
    """Sweep-merge overlapping or touching ranges, concatenating evidence."""
    if not ranges:
        return []

    ordered = sorted(ranges, key=lambda item: item.start_day)
    first = ordered[0]
    current = DayRange(first.start_day, first.end_day_exclusive, list(first.events))
    merged: list[DayRange] = []

    for following in ordered[1:]:
        if current.end_day_exclusive >= following.start_day:
            current.end_day_exclusive = max(current.end_day_exclusive, following.end_day_exclusive)
            current.events.extend(following.events)
            continue

        merged.append(current)
        current = DayRange(
            following.start_day, following.end_day_exclusive, list(following.events)
        )

    merged.append(current)
    return merged


def expand_day_range(day_range: DayRange) -> Iterator[str]:
    """Date keys covered by a range."""
    for day in range(day_range.start_day, day_range.end_day_exclusive):
        yield epoch_day_to_date_key(day)
