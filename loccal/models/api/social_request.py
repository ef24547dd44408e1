# loccal/models/api/social_request.py
"""
Social API request models.
Fields are optional so that missing values reach the social graph and
come back as its 400 messages.
"""

from pydantic import BaseModel, Field


class FriendRequestBody(BaseModel):
    targetId: str | None = Field(default=None, description="User to connect with")


class FriendRequestAction(BaseModel):
    """Approve or deny an incoming request."""

    requestId: str | None = Field(default=None, description="Incoming request ID")


class SharingPreferencesUpdate(BaseModel):
    shareMode: str | None = Field(default=None, description="friends | private")
