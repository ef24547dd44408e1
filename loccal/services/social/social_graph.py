"""
Social graph operations: friends, follow requests, user search and the
friend month view.

A friendship is a pair of follows (A -> B and B -> A). Requests move
pending -> approved | denied; approving creates both follows.
"""

from datetime import datetime
from typing import Any

from loccal.config import settings
from loccal.infrastructure.observability.logging import get_logger
from loccal.models.domain.social_domain import FriendSnapshot, SocialUser, to_iso
from loccal.services.social.overlap_engine import (
    build_friend_overlaps,
    friend_availability,
    is_snapshot_stale,
)
from loccal.services.social.social_store import SocialStore

logger = get_logger(__name__)

SEARCH_MIN_QUERY_LENGTH = 2
SEARCH_RESULT_LIMIT = 10


class SocialGraphError(Exception):
    """A social action the caller asked for cannot be performed."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class SocialGraph:
    def __init__(self, store: SocialStore, stale_hours: float | None = None):
        self.store = store
        self.stale_hours = stale_hours if stale_hours is not None else settings.snapshot_stale_hours()

    async def _friend_ids(self, user_id: str) -> list[str]:
        """Mutual follows in the user's follow order (newest first)."""
        friend_ids = []
        for entry in await self.store.list_follows(user_id):
            followee_id = entry["followeeId"]
            if await self.store.is_following(followee_id, user_id):
                friend_ids.append(followee_id)
        return friend_ids

    async def _friends(self, user_id: str) -> list[SocialUser]:
        return await self.store.get_users(await self._friend_ids(user_id))

    async def list_friends(self, user_id: str) -> list[dict[str, Any]]:
        return [friend.profile() for friend in await self._friends(user_id)]

    async def list_incoming_requests(self, user_id: str) -> list[dict[str, Any]]:
        results = []
        for request in await self.store.list_incoming_requests(user_id):
            requester = await self.store.get_user(request.requester_id)
            if requester is None:
                continue
            results.append(
                {
                    "id": request.id,
                    "requesterId": request.requester_id,
                    "name": requester.name,
                    "email": requester.email,
                    "avatarUrl": requester.avatar_url,
                    "status": "pending",
                }
            )
        return results

    async def search_users(self, user_id: str, query: str | None) -> list[dict[str, Any]]:
        normalized = (query or "").strip()
        if len(normalized) < SEARCH_MIN_QUERY_LENGTH:
            raise SocialGraphError("Query must be at least 2 characters", 400)

        users = await self.store.search_users(user_id, normalized, limit=SEARCH_RESULT_LIMIT)
        results = []
        for candidate in users:
            results.append({**candidate.profile(), **await self._relationship(user_id, candidate.id)})
        return results

    async def _relationship(self, user_id: str, other_id: str) -> dict[str, Any]:
        follows_other = await self.store.is_following(user_id, other_id)
        followed_by_other = await self.store.is_following(other_id, user_id)
        outgoing = await self.store.get_request_between(user_id, other_id)
        incoming = await self.store.get_request_between(other_id, user_id)
        incoming_id = incoming.id if incoming and incoming.status == "pending" else None

        if follows_other and followed_by_other:
            status = "friends"
        elif outgoing and outgoing.status == "pending":
            status = "pendingOutgoing"
        elif incoming_id:
            status = "pendingIncoming"
        else:
            status = "none"

        return {
            "relationshipStatus": status,
            "incomingRequestId": incoming_id if status == "pendingIncoming" else None,
        }

    async def request_connection(self, requester_id: str, target_id: str | None) -> dict[str, Any]:
        """
        Ask to connect with ``target_id``.

        A pending request in the other direction, an earlier approval or
        an existing one-way follow completes the friendship immediately.
        """
        if not target_id:
            raise SocialGraphError("targetId is required", 400)
        if target_id == requester_id:
            raise SocialGraphError("You cannot send a request to yourself", 400)
        if await self.store.get_user(target_id) is None:
            raise SocialGraphError("Target user not found", 404)

        viewer_to_target = await self.store.is_following(requester_id, target_id)
        target_to_viewer = await self.store.is_following(target_id, requester_id)
        outgoing = await self.store.get_request_between(requester_id, target_id)
        incoming = await self.store.get_request_between(target_id, requester_id)

        if incoming and incoming.status == "pending":
            incoming.status = "approved"
            await self.store.save_request(incoming)
            await self.store.add_mutual_follow(requester_id, target_id)
            logger.info("Reciprocal request completed friendship", user_id=requester_id, friend_id=target_id)
            return {"status": "friends", "mutual": True}

        if viewer_to_target and target_to_viewer:
            return {"status": "friends", "mutual": True}

        if outgoing and outgoing.status == "pending":
            return {"status": "pending"}

        if (outgoing and outgoing.status == "approved") or viewer_to_target:
            await self.store.add_mutual_follow(requester_id, target_id)
            return {"status": "friends", "mutual": True}

        await self.store.create_or_reset_request(requester_id, target_id)
        logger.info("Friend request sent", user_id=requester_id, target_id=target_id)
        return {"status": "pending"}

    async def approve_connection(self, target_id: str, request_id: str | None) -> dict[str, Any]:
        if not request_id:
            raise SocialGraphError("requestId is required", 400)

        request = await self.store.get_request(request_id)
        if request is None or request.target_id != target_id:
            raise SocialGraphError("Request not found", 404)
        if request.status == "denied":
            raise SocialGraphError("This request was already denied", 409)

        if request.status != "approved":
            request.status = "approved"
            await self.store.save_request(request)

        await self.store.add_mutual_follow(request.requester_id, request.target_id)
        logger.info("Friend request approved", user_id=target_id, request_id=request_id)
        return {"ok": True, "mutual": True}

    async def deny_connection(self, target_id: str, request_id: str | None) -> dict[str, Any]:
        if not request_id:
            raise SocialGraphError("requestId is required", 400)

        request = await self.store.get_request(request_id)
        if request is None or request.target_id != target_id:
            raise SocialGraphError("Request not found", 404)
        if request.status == "approved":
            raise SocialGraphError("Request already approved", 409)

        if request.status != "denied":
            request.status = "denied"
            await self.store.save_request(request)

        logger.info("Friend request denied", user_id=target_id, request_id=request_id)
        return {"ok": True}

    async def build_friend_month_response(
        self, user_id: str, month: str, now: datetime | None = None
    ) -> dict[str, Any]:
        """Friends' schedules for ``month`` plus the days the owner shares a city with them."""
        own_snapshot = await self.store.get_monthly_snapshot(user_id, month)

        friends: list[FriendSnapshot] = []
        for friend in await self._friends(user_id):
            snapshot = await self.store.get_monthly_snapshot(friend.id, month)
            friends.append(FriendSnapshot(user=friend, snapshot=snapshot))

        schedules = [self._schedule(friend, now) for friend in friends]
        overlaps = build_friend_overlaps(own_snapshot.days, friends) if own_snapshot else {}

        return {
            "month": month,
            "ownSnapshotAvailable": own_snapshot is not None,
            "friends": schedules,
            "overlaps": {date_key: overlap.to_dict() for date_key, overlap in overlaps.items()},
        }

    def _schedule(self, friend: FriendSnapshot, now: datetime | None) -> dict[str, Any]:
        user = friend.user
        sharing_enabled = user.sharing_enabled()
        visible = friend.snapshot if sharing_enabled else None
        generated_at = visible.generated_at if visible else None

        return {
            **user.profile(),
            "generatedAt": to_iso(generated_at),
            "timeZone": visible.time_zone if visible else None,
            "days": {
                date_key: [entry.to_dict() for entry in entries]
                for date_key, entries in sorted(friend.visible_days().items())
            },
            "sharingEnabled": sharing_enabled,
            "isStale": is_snapshot_stale(generated_at, self.stale_hours, now),
            "lastSharedAt": to_iso(user.last_shared_at),
            "availability": friend_availability(friend),
        }
