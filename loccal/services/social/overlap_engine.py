"""
Friend overlap engine.

Two people overlap on a day when both day maps list a place whose
canonical form (trimmed, single-spaced, lowercased) matches. Cities are
reported with the owner's casing.
"""

import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from loccal.models.domain.location_domain import DayMap
from loccal.models.domain.social_domain import FriendAvailability, FriendSnapshot, Overlap

DEFAULT_STALE_HOURS = 72.0

_WHITESPACE_RE = re.compile(r"\s+")


def canonical_location(label: str) -> str:
    return _WHITESPACE_RE.sub(" ", label.strip()).lower()


def compute_overlap(own_days: DayMap, friend_days: DayMap) -> dict[str, list[str]]:
    """Shared cities per date key, labelled with the owner's casing."""
    overlaps: dict[str, list[str]] = {}

    for date_key in sorted(own_days.keys() & friend_days.keys()):
        own_entries = own_days.get(date_key) or []
        friend_entries = friend_days.get(date_key) or []
        if not own_entries or not friend_entries:
            continue

        own_labels: dict[str, str] = {}
        for entry in own_entries:
            own_labels.setdefault(canonical_location(entry.location), entry.location)

        shared: list[str] = []
        for entry in friend_entries:
            label = own_labels.get(canonical_location(entry.location))
            if label and label not in shared:
                shared.append(label)

        if shared:
            overlaps[date_key] = shared

    return overlaps


def build_friend_overlaps(own_days: DayMap, friends: Iterable[FriendSnapshot]) -> dict[str, Overlap]:
    """
    Union per-friend overlaps into one map keyed by date.

    Friends with sharing off or no visible days are skipped.
    """
    overlaps: dict[str, Overlap] = {}

    for friend in friends:
        friend_days = friend.visible_days()
        if not friend_days:
            continue

        for date_key, cities in compute_overlap(own_days, friend_days).items():
            overlaps.setdefault(date_key, Overlap()).add(friend.user.id, friend.user.name, cities)

    return dict(sorted(overlaps.items()))


def is_snapshot_stale(
    generated_at: datetime | None,
    threshold_hours: float = DEFAULT_STALE_HOURS,
    now: datetime | None = None,
) -> bool:
    """Missing snapshots are stale; so are ones older than the threshold."""
    if generated_at is None:
        return True
    if threshold_hours <= 0:
        threshold_hours = DEFAULT_STALE_HOURS
    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=UTC)

    now = now or datetime.now(UTC)
    return now - generated_at > timedelta(hours=threshold_hours)


def friend_availability(friend: FriendSnapshot) -> FriendAvailability:
    if not friend.user.sharing_enabled():
        return "hidden"
    if friend.snapshot is None or not friend.snapshot.days:
        return "no_data"
    return "available"
