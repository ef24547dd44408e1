"""
Shared FastAPI dependencies.
Services are process-wide singletons; tests swap them through
``app.dependency_overrides``.
"""

import httpx
from fastapi import Depends, HTTPException, status

from loccal.auth.verify import auth_dependency
from loccal.config import settings
from loccal.infrastructure.observability.logging import get_logger
from loccal.middleware.rate_limiter import MinimumIntervalRateLimiter, city_search_limiter
from loccal.models.domain.social_domain import SocialUser
from loccal.services.calendar.google_client import GoogleCalendarService
from loccal.services.location.geocoders import NominatimGeocoder
from loccal.services.location.place_resolver import PlaceResolver, build_place_resolver
from loccal.services.social.social_graph import SocialGraph
from loccal.services.social.social_store import SocialStore, SocialStoreError

logger = get_logger(__name__)

GEOCODER_HTTP_TIMEOUT_S = 10.0

_http_client: httpx.AsyncClient | None = None
_calendar_service: GoogleCalendarService | None = None
_social_store = SocialStore()


def get_http_client() -> httpx.AsyncClient:
    """Shared outbound client for geocoding."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(timeout=httpx.Timeout(GEOCODER_HTTP_TIMEOUT_S))
    return _http_client


async def close_http_clients() -> None:
    global _http_client, _calendar_service
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
    if _calendar_service is not None:
        await _calendar_service.close()
        _calendar_service = None


def get_calendar_service() -> GoogleCalendarService:
    global _calendar_service
    if _calendar_service is None:
        _calendar_service = GoogleCalendarService()
    return _calendar_service


def get_place_resolver() -> PlaceResolver:
    return build_place_resolver(settings, get_http_client())


def get_city_search_geocoder() -> NominatimGeocoder:
    return NominatimGeocoder(
        get_http_client(),
        user_agent=settings.LOCCAL_GEOCODER_USER_AGENT,
        timeout_s=settings.OSM_GEOCODE_TIMEOUT_S,
    )


def get_city_search_limiter() -> MinimumIntervalRateLimiter:
    return city_search_limiter


def get_social_store() -> SocialStore:
    return _social_store


def get_social_graph(store: SocialStore = Depends(get_social_store)) -> SocialGraph:
    return SocialGraph(store)


async def current_user(
    claims: dict = Depends(auth_dependency),
    store: SocialStore = Depends(get_social_store),
) -> SocialUser:
    """Authenticated user, upserted from session claims on every request."""
    try:
        return await store.upsert_user(
            user_id=claims["sub"],
            email=claims.get("email"),
            name=claims.get("name"),
            avatar_url=claims.get("picture"),
        )
    except SocialStoreError as e:
        logger.error("Failed to upsert session user", user_id=claims.get("sub"), error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load user: {e}",
        ) from e
