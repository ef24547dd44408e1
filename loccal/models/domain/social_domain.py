# loccal/models/domain/social_domain.py
"""
Social Domain Models
Users, follow requests, monthly snapshots and the friend-overlap view.
Stored documents use camelCase keys to match the API payloads.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from loccal.models.domain.location_domain import DayMap, coerce_day_location_record, day_map_to_dict

ShareMode = Literal["friends", "private"]
SHARE_MODES: tuple[str, ...] = ("friends", "private")

RequestStatus = Literal["pending", "approved", "denied"]

FriendAvailability = Literal["available", "hidden", "no_data"]


def parse_iso(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class SocialUser:
    id: str
    email: str
    name: str
    avatar_url: str | None = None
    share_mode: ShareMode = "friends"
    last_shared_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def sharing_enabled(self) -> bool:
        return self.share_mode == "friends"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatarUrl": self.avatar_url,
            "shareMode": self.share_mode,
            "lastSharedAt": to_iso(self.last_shared_at),
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SocialUser":
        share_mode = data.get("shareMode")
        return cls(
            id=data["id"],
            email=data.get("email", ""),
            name=data.get("name", ""),
            avatar_url=data.get("avatarUrl"),
            share_mode="private" if share_mode == "private" else "friends",
            last_shared_at=parse_iso(data.get("lastSharedAt")),
            created_at=parse_iso(data.get("createdAt")),
            updated_at=parse_iso(data.get("updatedAt")),
        )

    def profile(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "avatarUrl": self.avatar_url,
        }


@dataclass
class FollowRequest:
    id: str
    requester_id: str
    target_id: str
    status: RequestStatus = "pending"
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "requesterId": self.requester_id,
            "targetId": self.target_id,
            "status": self.status,
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FollowRequest":
        status = data.get("status")
        return cls(
            id=data["id"],
            requester_id=data["requesterId"],
            target_id=data["targetId"],
            status=status if status in ("approved", "denied") else "pending",
            created_at=parse_iso(data.get("createdAt")),
        )


@dataclass
class MonthlySnapshot:
    """A user's published day map for one month."""

    user_id: str
    month: str
    time_zone: str
    generated_at: datetime | None
    days: DayMap = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "month": self.month,
            "timeZone": self.time_zone,
            "generatedAt": to_iso(self.generated_at),
            "days": day_map_to_dict(self.days),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MonthlySnapshot":
        return cls(
            user_id=data["userId"],
            month=data["month"],
            time_zone=data.get("timeZone") or "UTC",
            generated_at=parse_iso(data.get("generatedAt")),
            days=coerce_day_location_record(data.get("days")),
        )


@dataclass
class FriendSnapshot:
    """A friend as seen by the overlap engine."""

    user: SocialUser
    snapshot: MonthlySnapshot | None = None

    def visible_days(self) -> DayMap:
        if not self.user.sharing_enabled() or self.snapshot is None:
            return {}
        return self.snapshot.days


@dataclass
class Overlap:
    """Friends sharing at least one city with the owner on one day."""

    friend_ids: list[str] = field(default_factory=list)
    friend_names: list[str] = field(default_factory=list)
    cities: list[str] = field(default_factory=list)

    def add(self, friend_id: str, friend_name: str, cities: list[str]) -> None:
        _append_unique(self.friend_ids, [friend_id])
        _append_unique(self.friend_names, [friend_name])
        _append_unique(self.cities, cities)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "friendIds": list(self.friend_ids),
            "friendNames": list(self.friend_names),
            "cities": list(self.cities),
        }


def _append_unique(target: list[str], values: list[str]) -> None:
    for value in values:
        if value not in target:
            target.append(value)
