"""
Loccal API Routes
Month and year location rollups built from the user's Google Calendar,
plus the city autocomplete used when correcting a place by hand.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from loccal.auth.verify import google_access_token
from loccal.infrastructure.observability.logging import get_logger
from loccal.middleware.rate_limiter import MinimumIntervalRateLimiter
from loccal.models.api.loccal_response import (
    CitySearchResponse,
    CitySearchResult,
    MonthRollupResponse,
    YearRollupResponse,
)
from loccal.models.domain.social_domain import SocialUser
from loccal.routes.dependencies import (
    current_user,
    get_calendar_service,
    get_city_search_geocoder,
    get_city_search_limiter,
    get_place_resolver,
    get_social_store,
)
from loccal.services.calendar.google_client import GoogleCalendarError, GoogleCalendarService
from loccal.services.location.event_classifier import resolve_zone
from loccal.services.location.geocoders import NominatimGeocoder
from loccal.services.location.place_parser import format_resolved_location
from loccal.services.location.place_resolver import PlaceResolver
from loccal.services.location.rollup_builder import (
    PeriodValidationError,
    build_monthly_rollup,
    build_yearly_rollup,
    month_fetch_window,
    normalize_month_key,
    normalize_year_key,
    year_fetch_window,
)
from loccal.services.social.social_store import SocialStore, SocialStoreError

logger = get_logger(__name__)

router = APIRouter(prefix="/loccal", tags=["loccal"])

GENERATED_BY = "@Loccal"
CITY_SEARCH_MIN_QUERY_LENGTH = 2
CITY_SEARCH_LIMIT = 5


def _generated_at() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


@router.get("/month", response_model=MonthRollupResponse)
async def get_month_rollup(
    month: str | None = Query(None, description="Month key (YYYY-MM), defaults to the current month"),
    user: SocialUser = Depends(current_user),
    access_token: str = Depends(google_access_token),
    calendar: GoogleCalendarService = Depends(get_calendar_service),
    resolver: PlaceResolver = Depends(get_place_resolver),
    store: SocialStore = Depends(get_social_store),
):
    """Days of one month with the cities the user was in."""
    try:
        month_key = normalize_month_key(month)
    except PeriodValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    time_min, time_max = month_fetch_window(month_key=month_key)

    try:
        fetched = await calendar.fetch_events_from_all_calendars(access_token, time_min, time_max)
        rollup = await build_monthly_rollup(fetched.events, month_key, fetched.time_zone, resolver)
    except GoogleCalendarError as e:
        logger.error("Failed to build monthly data", user_id=user.id, month=month_key, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to build monthly data: {e}",
        ) from e

    generated_at = _generated_at()
    snapshot_saved = False

    # Only the live month is published to friends
    current_month = normalize_month_key(None, datetime.now(resolve_zone(fetched.time_zone)))
    if month_key == current_month:
        try:
            await store.save_monthly_snapshot(
                user_id=user.id,
                month=month_key,
                time_zone=fetched.time_zone,
                generated_at=datetime.fromisoformat(generated_at.replace("Z", "+00:00")),
                days=rollup.days,
            )
            snapshot_saved = True
        except SocialStoreError as e:
            logger.warning("Monthly snapshot not saved", user_id=user.id, month=month_key, error=str(e))

    return MonthRollupResponse.model_validate(
        {
            **rollup.to_dict(),
            "timeZone": fetched.time_zone,
            "generatedAt": generated_at,
            "generatedBy": GENERATED_BY,
            "socialSnapshotSaved": snapshot_saved,
        }
    )


@router.get("/year", response_model=YearRollupResponse)
async def get_year_rollup(
    year: str | None = Query(None, description="Year key (YYYY), defaults to the current year"),
    user: SocialUser = Depends(current_user),
    access_token: str = Depends(google_access_token),
    calendar: GoogleCalendarService = Depends(get_calendar_service),
    resolver: PlaceResolver = Depends(get_place_resolver),
):
    """Every day of one year with the cities the user was in."""
    try:
        year_key = normalize_year_key(year)
    except PeriodValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    time_min, time_max = year_fetch_window(year_key)

    try:
        fetched = await calendar.fetch_events_from_all_calendars(access_token, time_min, time_max)
        rollup = await build_yearly_rollup(fetched.events, year_key, fetched.time_zone, resolver)
    except GoogleCalendarError as e:
        logger.error("Failed to build yearly data", user_id=user.id, year=year_key, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to build yearly data: {e}",
        ) from e

    return YearRollupResponse.model_validate(
        {
            **rollup.to_dict(),
            "timeZone": fetched.time_zone,
            "generatedAt": _generated_at(),
            "generatedBy": GENERATED_BY,
        }
    )


@router.get("/city-search", response_model=CitySearchResponse)
async def city_search(
    q: str | None = Query(None, description="Partial city name"),
    limiter: MinimumIntervalRateLimiter = Depends(get_city_search_limiter),
    geocoder: NominatimGeocoder = Depends(get_city_search_geocoder),
):
    """City suggestions from OpenStreetMap, one upstream call per second."""
    query = (q or "").strip()
    if len(query) < CITY_SEARCH_MIN_QUERY_LENGTH:
        return CitySearchResponse(results=[])

    if not limiter.try_acquire():
        retry_after = limiter.retry_after()
        logger.warning("City search rate limit exceeded", retry_after=retry_after)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "rate_limit_exceeded",
                "message": f"Too many requests. Try again in {retry_after} seconds.",
                "results": [],
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    results: list[CitySearchResult] = []
    for candidate in await geocoder.search(query, limit=CITY_SEARCH_LIMIT, city_only=True):
        city, region, country = geocoder.address_parts(candidate)
        display = format_resolved_location(city, region, country)
        if not display or any(result.display == display for result in results):
            continue
        results.append(
            CitySearchResult(display=display, city=city or "", region=region or "", country=country or "")
        )

    return CitySearchResponse(results=results)
