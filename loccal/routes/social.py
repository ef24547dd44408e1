"""
Social API Routes
Sharing preferences and user search.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from loccal.infrastructure.observability.logging import get_logger
from loccal.models.api.social_request import SharingPreferencesUpdate
from loccal.models.api.social_response import SharingPreferencesResponse, UserSearchResult
from loccal.models.domain.social_domain import SHARE_MODES, SocialUser
from loccal.routes.dependencies import current_user, get_social_graph, get_social_store
from loccal.services.social.social_graph import SocialGraph, SocialGraphError
from loccal.services.social.social_store import SocialStore, SocialStoreError

logger = get_logger(__name__)

router = APIRouter(tags=["social"])


@router.get("/social/preferences", response_model=SharingPreferencesResponse)
async def get_preferences(
    user: SocialUser = Depends(current_user),
    store: SocialStore = Depends(get_social_store),
):
    try:
        preferences = await store.get_preferences(user.id)
    except SocialStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load sharing preferences: {e}",
        ) from e

    if preferences is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return preferences


@router.patch("/social/preferences", response_model=SharingPreferencesResponse)
async def update_preferences(
    body: SharingPreferencesUpdate,
    user: SocialUser = Depends(current_user),
    store: SocialStore = Depends(get_social_store),
):
    """Switch between sharing with friends and keeping snapshots private."""
    if body.shareMode not in SHARE_MODES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="shareMode is required and must be one of: friends, private",
        )

    try:
        preferences = await store.update_preferences(user.id, body.shareMode)
    except SocialStoreError as e:
        logger.error("Failed to update sharing preferences", user_id=user.id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update sharing preferences: {e}",
        ) from e

    if preferences is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return preferences


@router.get("/users/search", response_model=list[UserSearchResult])
async def search_users(
    q: str | None = Query(None, description="Name or email fragment (2+ characters)"),
    user: SocialUser = Depends(current_user),
    graph: SocialGraph = Depends(get_social_graph),
):
    try:
        return await graph.search_users(user.id, q)
    except SocialGraphError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except SocialStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to search users: {e}",
        ) from e
