"""
Friends API Routes
Mutual connections, follow requests and the shared friend month view.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from loccal.infrastructure.observability.logging import get_logger
from loccal.models.api.social_request import FriendRequestAction, FriendRequestBody
from loccal.models.api.social_response import (
    ConnectionStatusResponse,
    FriendMonthResponse,
    FriendProfileResponse,
    IncomingRequestResponse,
    RequestActionResponse,
)
from loccal.models.domain.social_domain import SocialUser
from loccal.routes.dependencies import current_user, get_social_graph
from loccal.services.location.rollup_builder import PeriodValidationError, normalize_month_key
from loccal.services.social.social_graph import SocialGraph, SocialGraphError
from loccal.services.social.social_store import SocialStoreError

logger = get_logger(__name__)

router = APIRouter(prefix="/friends", tags=["friends"])


def _failed(action: str, user_id: str, error: Exception) -> HTTPException:
    logger.error(f"Failed to {action}", user_id=user_id, error=str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {error}",
    )


@router.get("", response_model=list[FriendProfileResponse])
async def list_friends(
    user: SocialUser = Depends(current_user),
    graph: SocialGraph = Depends(get_social_graph),
):
    """Mutual connections, most recent first."""
    try:
        return await graph.list_friends(user.id)
    except SocialStoreError as e:
        raise _failed("load friends", user.id, e) from e


@router.get("/requests", response_model=list[IncomingRequestResponse])
async def list_requests(
    user: SocialUser = Depends(current_user),
    graph: SocialGraph = Depends(get_social_graph),
):
    try:
        return await graph.list_incoming_requests(user.id)
    except SocialStoreError as e:
        raise _failed("load requests", user.id, e) from e


@router.post("/request", response_model=ConnectionStatusResponse, response_model_exclude_none=True)
async def send_request(
    body: FriendRequestBody,
    user: SocialUser = Depends(current_user),
    graph: SocialGraph = Depends(get_social_graph),
):
    try:
        return await graph.request_connection(user.id, body.targetId)
    except SocialGraphError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except SocialStoreError as e:
        raise _failed("send request", user.id, e) from e


@router.post("/approve", response_model=RequestActionResponse, response_model_exclude_none=True)
async def approve_request(
    body: FriendRequestAction,
    user: SocialUser = Depends(current_user),
    graph: SocialGraph = Depends(get_social_graph),
):
    try:
        return await graph.approve_connection(user.id, body.requestId)
    except SocialGraphError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except SocialStoreError as e:
        raise _failed("approve request", user.id, e) from e


@router.post("/deny", response_model=RequestActionResponse, response_model_exclude_none=True)
async def deny_request(
    body: FriendRequestAction,
    user: SocialUser = Depends(current_user),
    graph: SocialGraph = Depends(get_social_graph),
):
    try:
        return await graph.deny_connection(user.id, body.requestId)
    except SocialGraphError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except SocialStoreError as e:
        raise _failed("deny request", user.id, e) from e


@router.get("/month", response_model=FriendMonthResponse)
async def friend_month(
    month: str | None = Query(None, description="Month key (YYYY-MM), defaults to the current month"),
    user: SocialUser = Depends(current_user),
    graph: SocialGraph = Depends(get_social_graph),
):
    """Friends' published months and the days you share a city."""
    try:
        month_key = normalize_month_key(month)
    except PeriodValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    try:
        return await graph.build_friend_month_response(user.id, month_key)
    except SocialStoreError as e:
        raise _failed("load friend month", user.id, e) from e
