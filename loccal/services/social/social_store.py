"""
Social Store - Redis-backed persistence for users, follows and snapshots.

Every record is a JSON document stored under a namespaced key:

    loccal:user:{user_id}                       SocialUser
    loccal:user_email:{email}                   user id
    loccal:users                                [user_id, ...]
    loccal:snapshot:{user_id}:{month}           MonthlySnapshot
    loccal:follows:{user_id}                    [{"followeeId", "createdAt"}, ...] newest first
    loccal:follow_request:{request_id}          FollowRequest
    loccal:follow_request_pair:{from}:{to}      request id
    loccal:incoming_requests:{user_id}          [request_id, ...] newest first

Reads are lenient (missing or malformed documents read as absent); a
write the backend refuses raises SocialStoreError.
"""

import json
import uuid
from datetime import UTC, datetime
from typing import Any, Protocol

from loccal.infrastructure.observability.logging import get_logger
from loccal.models.domain.location_domain import DayMap
from loccal.models.domain.social_domain import (
    SHARE_MODES,
    FollowRequest,
    MonthlySnapshot,
    SocialUser,
    to_iso,
)
from loccal.services.redis_client import fast_redis

logger = get_logger(__name__)

KEY_PREFIX = "loccal"
USER_INDEX_KEY = f"{KEY_PREFIX}:users"


class SocialStoreError(Exception):
    """Raised when a social record cannot be persisted."""

    pass


class KeyValueBackend(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool: ...

    async def delete(self, key: str) -> bool: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def fallback_email_for_user(user_id: str) -> str:
    return f"{user_id}@loccal.local"


class SocialStore:
    def __init__(self, backend: KeyValueBackend = fast_redis):
        self._backend = backend

    # ---- keys -------------------------------------------------------------

    @staticmethod
    def _user_key(user_id: str) -> str:
        return f"{KEY_PREFIX}:user:{user_id}"

    @staticmethod
    def _email_key(email: str) -> str:
        return f"{KEY_PREFIX}:user_email:{email.strip().lower()}"

    @staticmethod
    def _snapshot_key(user_id: str, month: str) -> str:
        return f"{KEY_PREFIX}:snapshot:{user_id}:{month}"

    @staticmethod
    def _follows_key(user_id: str) -> str:
        return f"{KEY_PREFIX}:follows:{user_id}"

    @staticmethod
    def _request_key(request_id: str) -> str:
        return f"{KEY_PREFIX}:follow_request:{request_id}"

    @staticmethod
    def _request_pair_key(requester_id: str, target_id: str) -> str:
        return f"{KEY_PREFIX}:follow_request_pair:{requester_id}:{target_id}"

    @staticmethod
    def _incoming_key(user_id: str) -> str:
        return f"{KEY_PREFIX}:incoming_requests:{user_id}"

    # ---- raw JSON ---------------------------------------------------------

    async def _read_json(self, key: str) -> Any:
        raw = await self._backend.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding malformed social record", key=key)
            return None

    async def _write_json(self, key: str, value: Any) -> None:
        ok = await self._backend.set_with_ttl(key, json.dumps(value, separators=(",", ":")))
        if not ok:
            logger.error("Social store write failed", key=key)
            raise SocialStoreError(f"Failed to write {key.split(':')[1]} record")

    async def _read_list(self, key: str) -> list:
        value = await self._read_json(key)
        return value if isinstance(value, list) else []

    # ---- users ------------------------------------------------------------

    async def get_user(self, user_id: str) -> SocialUser | None:
        data = await self._read_json(self._user_key(user_id))
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return SocialUser.from_dict(data)

    async def get_users(self, user_ids: list[str]) -> list[SocialUser]:
        users = []
        for user_id in user_ids:
            user = await self.get_user(user_id)
            if user is not None:
                users.append(user)
        return users

    async def list_user_ids(self) -> list[str]:
        return [value for value in await self._read_list(USER_INDEX_KEY) if isinstance(value, str)]

    async def _save_user(self, user: SocialUser) -> None:
        await self._write_json(self._user_key(user.id), user.to_dict())

    async def upsert_user(
        self,
        user_id: str,
        email: str | None,
        name: str | None,
        avatar_url: str | None = None,
        now: datetime | None = None,
    ) -> SocialUser:
        """
        Create or refresh a user from session claims.

        When the email already belongs to a different id (a re-linked
        account), that record is moved under the new id so preferences
        and sharing history survive.
        """
        now = now or _utcnow()
        email = (email or "").strip() or fallback_email_for_user(user_id)
        name = (name or "").strip() or email

        user = await self.get_user(user_id)
        previous_id = await self._backend.get(self._email_key(email))

        if user is None and previous_id and previous_id != user_id:
            user = await self.get_user(previous_id)
            if user is not None:
                logger.info("Re-linking social user", previous_user_id=previous_id, user_id=user_id)
                await self._backend.delete(self._user_key(previous_id))
                user.id = user_id

        if user is None:
            user = SocialUser(id=user_id, email=email, name=name, avatar_url=avatar_url, created_at=now)

        if user.email.strip().lower() != email.lower():
            await self._backend.delete(self._email_key(user.email))

        user.email = email
        user.name = name
        user.avatar_url = avatar_url
        user.updated_at = now
        await self._save_user(user)

        if not await self._backend.set_with_ttl(self._email_key(email), user_id):
            raise SocialStoreError("Failed to write user_email record")

        index = await self.list_user_ids()
        if previous_id and previous_id != user_id and previous_id in index:
            index.remove(previous_id)
        if user_id not in index:
            index.append(user_id)
            await self._write_json(USER_INDEX_KEY, index)

        return user

    async def search_users(self, exclude_user_id: str, query: str, limit: int = 10) -> list[SocialUser]:
        """Case-insensitive substring match on name or email."""
        needle = query.strip().lower()
        matches: list[SocialUser] = []
        if not needle:
            return matches

        for user_id in await self.list_user_ids():
            if user_id == exclude_user_id:
                continue
            user = await self.get_user(user_id)
            if user is None:
                continue
            if needle in user.name.lower() or needle in user.email.lower():
                matches.append(user)
                if len(matches) >= limit:
                    break
        return matches

    # ---- preferences ------------------------------------------------------

    @staticmethod
    def _preferences(user: SocialUser) -> dict[str, Any]:
        return {"shareMode": user.share_mode, "lastSharedAt": to_iso(user.last_shared_at)}

    async def get_preferences(self, user_id: str) -> dict[str, Any] | None:
        user = await self.get_user(user_id)
        return self._preferences(user) if user else None

    async def update_preferences(self, user_id: str, share_mode: str) -> dict[str, Any] | None:
        if share_mode not in SHARE_MODES:
            raise ValueError(f"Unsupported share mode: {share_mode}")

        user = await self.get_user(user_id)
        if user is None:
            return None

        user.share_mode = share_mode
        user.updated_at = _utcnow()
        await self._save_user(user)
        logger.info("Updated sharing preferences", user_id=user_id, share_mode=share_mode)
        return self._preferences(user)

    # ---- snapshots --------------------------------------------------------

    async def save_monthly_snapshot(
        self,
        user_id: str,
        month: str,
        time_zone: str,
        generated_at: datetime,
        days: DayMap,
    ) -> MonthlySnapshot:
        """Replace the user's snapshot for ``month`` and stamp lastSharedAt."""
        snapshot = MonthlySnapshot(
            user_id=user_id,
            month=month,
            time_zone=time_zone,
            generated_at=generated_at,
            days=days,
        )
        await self._write_json(self._snapshot_key(user_id, month), snapshot.to_dict())

        user = await self.get_user(user_id)
        if user is not None:
            user.last_shared_at = generated_at
            user.updated_at = generated_at
            await self._save_user(user)

        logger.info("Saved monthly snapshot", user_id=user_id, month=month, days=len(days))
        return snapshot

    async def get_monthly_snapshot(self, user_id: str, month: str) -> MonthlySnapshot | None:
        data = await self._read_json(self._snapshot_key(user_id, month))
        if not isinstance(data, dict):
            return None
        try:
            return MonthlySnapshot.from_dict(data)
        except KeyError:
            logger.warning("Discarding incomplete snapshot", user_id=user_id, month=month)
            return None

    # ---- follows ----------------------------------------------------------

    async def list_follows(self, user_id: str) -> list[dict[str, str]]:
        """Outgoing follows, newest first."""
        return [
            entry
            for entry in await self._read_list(self._follows_key(user_id))
            if isinstance(entry, dict) and isinstance(entry.get("followeeId"), str)
        ]

    async def is_following(self, follower_id: str, followee_id: str) -> bool:
        return any(entry["followeeId"] == followee_id for entry in await self.list_follows(follower_id))

    async def add_follow(self, follower_id: str, followee_id: str, now: datetime | None = None) -> bool:
        """Idempotent; returns False when the follow already existed."""
        follows = await self.list_follows(follower_id)
        if any(entry["followeeId"] == followee_id for entry in follows):
            return False

        follows.insert(0, {"followeeId": followee_id, "createdAt": to_iso(now or _utcnow())})
        await self._write_json(self._follows_key(follower_id), follows)
        return True

    async def add_mutual_follow(self, user_a: str, user_b: str, now: datetime | None = None) -> None:
        now = now or _utcnow()
        await self.add_follow(user_a, user_b, now)
        await self.add_follow(user_b, user_a, now)

    # ---- follow requests --------------------------------------------------

    async def get_request(self, request_id: str) -> FollowRequest | None:
        data = await self._read_json(self._request_key(request_id))
        if not isinstance(data, dict):
            return None
        try:
            return FollowRequest.from_dict(data)
        except KeyError:
            return None

    async def get_request_between(self, requester_id: str, target_id: str) -> FollowRequest | None:
        request_id = await self._backend.get(self._request_pair_key(requester_id, target_id))
        return await self.get_request(request_id) if request_id else None

    async def save_request(self, request: FollowRequest) -> FollowRequest:
        """Persist a request and keep the pair and incoming indexes in step."""
        await self._write_json(self._request_key(request.id), request.to_dict())

        pair_key = self._request_pair_key(request.requester_id, request.target_id)
        if not await self._backend.set_with_ttl(pair_key, request.id):
            raise SocialStoreError("Failed to write follow_request_pair record")

        incoming = [value for value in await self._read_list(self._incoming_key(request.target_id)) if value != request.id]
        if request.status == "pending":
            incoming.insert(0, request.id)
        await self._write_json(self._incoming_key(request.target_id), incoming)
        return request

    async def create_or_reset_request(
        self, requester_id: str, target_id: str, now: datetime | None = None
    ) -> FollowRequest:
        """Upsert the pair's request back to pending."""
        now = now or _utcnow()
        request = await self.get_request_between(requester_id, target_id)
        if request is None:
            request = FollowRequest(
                id=str(uuid.uuid4()),
                requester_id=requester_id,
                target_id=target_id,
                created_at=now,
            )
        else:
            request.status = "pending"
            request.created_at = now
        return await self.save_request(request)

    async def list_incoming_requests(self, user_id: str) -> list[FollowRequest]:
        """Pending requests addressed to the user, newest first."""
        requests = []
        for request_id in await self._read_list(self._incoming_key(user_id)):
            if not isinstance(request_id, str):
                continue
            request = await self.get_request(request_id)
            if request is not None and request.status == "pending" and request.target_id == user_id:
                requests.append(request)
        return requests
