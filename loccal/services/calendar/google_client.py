"""
Google Calendar API client for the location rollup.
Read-only: the account time zone, the calendar list and event pages for
every readable calendar in a time window.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import httpx

from loccal.infrastructure.observability.logging import get_logger
from loccal.models.domain.calendar_domain import CalendarEvent, CalendarFetchResult

logger = get_logger(__name__)

# Google Calendar API configuration
CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
CALENDAR_LIST_PAGE_SIZE = 250
EVENTS_PAGE_SIZE = 2500
DEFAULT_TIME_ZONE = "UTC"

# Request timeouts and retry configuration
REQUEST_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
BACKOFF_FACTOR = 2
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class GoogleCalendarError(Exception):
    """Custom exception for Google Calendar API errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code
        self.response_data = response_data or {}


def _to_rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


class GoogleCalendarService:
    """
    Service for Google Calendar API reads.

    Handles pagination, retry with exponential backoff on 429/5xx, and
    maps API failures to GoogleCalendarError.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, backoff_factor: float = BACKOFF_FACTOR):
        self._client = client or self._create_client()
        self._backoff_factor = backoff_factor

    def _create_client(self) -> httpx.AsyncClient:
        """Create async HTTP client for Calendar API."""
        timeout = httpx.Timeout(REQUEST_TIMEOUT)
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        return httpx.AsyncClient(timeout=timeout, limits=limits)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    backoff = self._backoff_factor * (2 ** (attempt - 1))
                    logger.debug(
                        "Calendar API retrying request",
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= MAX_RETRIES:
                    raise
                backoff = self._backoff_factor * (2 ** (attempt - 1))
                logger.debug(
                    "Calendar API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Calendar API retry loop exhausted")

    def _get_auth_headers(self, access_token: str) -> dict:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Handle and validate Calendar API response.

        Raises:
            GoogleCalendarError: If response contains errors
        """
        logger.debug(
            f"Calendar API {operation} response",
            status_code=response.status_code,
            response_size=len(response.text) if response.text else 0,
        )

        if response.is_success:
            try:
                return response.json() if response.text else {}
            except ValueError as e:
                logger.error(f"Failed to parse Calendar API {operation} response", error=str(e))
                raise GoogleCalendarError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json() if response.text else {}
            error_info = error_data.get("error", {})
            if not isinstance(error_info, dict):
                error_info = {"message": str(error_info)}

            error_code = error_info.get("code", response.status_code)
            error_message = error_info.get("message", "Unknown Calendar API error")

            logger.error(
                f"Calendar API {operation} failed",
                status_code=response.status_code,
                error_code=error_code,
                error_message=error_message,
            )

            raise GoogleCalendarError(
                self._map_calendar_error(str(error_code), error_message),
                error_code=str(error_code),
                status_code=response.status_code,
                response_data=error_data,
            )

        except ValueError:
            logger.error(
                f"Calendar API {operation} failed with non-JSON response",
                status_code=response.status_code,
                response_text=response.text[:200] if response.text else "",
            )
            raise GoogleCalendarError(
                f"Calendar API error (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from None

    def _map_calendar_error(self, error_code: str, error_message: str) -> str:
        error_mappings = {
            "403": "Calendar access denied. Please check permissions.",
            "404": "Calendar not found.",
            "400": "Invalid calendar request format.",
            "401": "Calendar authorization expired. Please reconnect.",
            "429": "Too many calendar requests. Please try again later.",
            "500": "Google Calendar service temporarily unavailable.",
        }

        return error_mappings.get(error_code, f"Calendar error: {error_message}")

    async def _get_json(self, access_token: str, url: str, operation: str, params: dict | None = None) -> dict:
        response = await self._request_with_retry(
            "GET", url, headers=self._get_auth_headers(access_token), params=params
        )
        return self._handle_api_response(response, operation)

    async def get_time_zone(self, access_token: str) -> str:
        """The account's ``timezone`` setting, UTC when unset."""
        data = await self._get_json(
            access_token, f"{CALENDAR_API_BASE_URL}/users/me/settings/timezone", "get_time_zone"
        )
        return data.get("value") or DEFAULT_TIME_ZONE

    async def list_calendar_ids(self, access_token: str) -> list[str]:
        """Every calendar the user can read, hidden ones excluded."""
        ids: list[str] = []
        page_token: str | None = None

        while True:
            params: dict[str, Any] = {
                "minAccessRole": "reader",
                "showHidden": "false",
                "maxResults": CALENDAR_LIST_PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token

            data = await self._get_json(
                access_token, f"{CALENDAR_API_BASE_URL}/users/me/calendarList", "list_calendars", params
            )
            ids.extend(item["id"] for item in data.get("items", []) if item.get("id"))

            page_token = data.get("nextPageToken")
            if not page_token:
                return ids

    async def list_events(
        self,
        access_token: str,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
    ) -> list[CalendarEvent]:
        """All expanded, non-deleted events of one calendar in the window."""
        url = f"{CALENDAR_API_BASE_URL}/calendars/{quote(calendar_id, safe='')}/events"
        events: list[CalendarEvent] = []
        skipped = 0
        page_token: str | None = None

        while True:
            params: dict[str, Any] = {
                "timeMin": _to_rfc3339(time_min),
                "timeMax": _to_rfc3339(time_max),
                "singleEvents": "true",
                "showDeleted": "false",
                "maxResults": EVENTS_PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token

            data = await self._get_json(access_token, url, "list_events", params)
            for item in data.get("items", []):
                event = CalendarEvent.from_google(item)
                if event is None:
                    skipped += 1
                    continue
                events.append(event)

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.debug("Events listed", calendar_id=calendar_id, event_count=len(events), skipped=skipped)
        return events

    async def fetch_events_from_all_calendars(
        self,
        access_token: str,
        time_min: datetime,
        time_max: datetime,
    ) -> CalendarFetchResult:
        """
        Events from every readable calendar plus the account time zone.

        Raises:
            GoogleCalendarError: If any Calendar API call fails
        """
        try:
            time_zone = await self.get_time_zone(access_token)
            calendar_ids = await self.list_calendar_ids(access_token)

            event_lists = await asyncio.gather(
                *(self.list_events(access_token, calendar_id, time_min, time_max) for calendar_id in calendar_ids)
            )
            events = [event for events in event_lists for event in events]

            logger.info(
                "Fetched calendar events",
                calendar_count=len(calendar_ids),
                event_count=len(events),
                time_zone=time_zone,
            )
            return CalendarFetchResult(events=events, time_zone=time_zone)

        except GoogleCalendarError:
            raise
        except Exception as e:
            logger.error("Unexpected error fetching calendar events", error=str(e))
            raise GoogleCalendarError(f"Failed to fetch calendar events: {e}") from e
