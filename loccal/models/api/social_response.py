# loccal/models/api/social_response.py
"""
Social API response models.
Follows the same pattern as loccal_response.py.
"""

from typing import Literal

from pydantic import Field

from loccal.models.api.loccal_response import CamelModel, DayLocationResponse


class FriendProfileResponse(CamelModel):
    id: str = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    avatar_url: str | None = Field(None, description="Profile picture URL")


class IncomingRequestResponse(FriendProfileResponse):
    requester_id: str = Field(..., description="Who sent the request")
    status: Literal["pending"] = "pending"


class UserSearchResult(FriendProfileResponse):
    relationship_status: Literal["none", "friends", "pendingOutgoing", "pendingIncoming"]
    incoming_request_id: str | None = None


class ConnectionStatusResponse(CamelModel):
    status: Literal["friends", "pending"]
    mutual: bool | None = None


class RequestActionResponse(CamelModel):
    ok: bool = True
    mutual: bool | None = None


class SharingPreferencesResponse(CamelModel):
    share_mode: Literal["friends", "private"] = Field(..., description="Who can see snapshots")
    last_shared_at: str | None = Field(None, description="When a snapshot was last published")


class FriendScheduleResponse(FriendProfileResponse):
    generated_at: str | None = None
    time_zone: str | None = None
    days: dict[str, list[DayLocationResponse]] = Field(default_factory=dict)
    sharing_enabled: bool
    is_stale: bool
    last_shared_at: str | None = None
    availability: Literal["available", "hidden", "no_data"]


class OverlapResponse(CamelModel):
    friend_ids: list[str] = Field(default_factory=list)
    friend_names: list[str] = Field(default_factory=list)
    cities: list[str] = Field(default_factory=list)


class FriendMonthResponse(CamelModel):
    month: str
    own_snapshot_available: bool
    friends: list[FriendScheduleResponse] = Field(default_factory=list)
    overlaps: dict[str, OverlapResponse] = Field(default_factory=dict)
