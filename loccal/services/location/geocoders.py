"""
Geocoding backends for location resolution.

Both backends are optional and best-effort: every transport error,
timeout, non-2xx status or unexpected payload is logged and treated as
"no answer" so the resolver can fall through to the next strategy.
"""

import asyncio
from typing import Any

import httpx

from loccal.infrastructure.observability.logging import get_logger
from loccal.services.location.place_parser import (
    DEFAULT_COUNTRIES,
    CountryLookup,
    format_resolved_location,
)

logger = get_logger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"

GOOGLE_CITY_TYPES = ("locality", "postal_town", "sublocality", "administrative_area_level_3")
NOMINATIM_CITY_KEYS = ("city", "town", "village", "municipality", "hamlet")


def _text(value: Any) -> str | None:
    """Non-blank string payload values only."""
    return value if isinstance(value, str) and value.strip() else None


class GoogleGeocoder:
    """Google Geocoding API (``address`` + ``key``)."""

    name = "google"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        timeout_s: float = 2.8,
        countries: CountryLookup = DEFAULT_COUNTRIES,
    ):
        self._client = client
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._countries = countries

    async def __call__(self, text: str) -> str | None:
        try:
            response = await asyncio.wait_for(
                self._client.get(
                    GOOGLE_GEOCODE_URL,
                    params={"address": text, "key": self._api_key},
                ),
                timeout=self._timeout_s,
            )
        except (TimeoutError, httpx.HTTPError) as e:
            logger.debug("Google geocode request failed", error=str(e), error_type=type(e).__name__)
            return None

        if not response.is_success:
            logger.debug("Google geocode non-2xx response", status_code=response.status_code)
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.debug("Google geocode returned invalid JSON")
            return None

        if not isinstance(payload, dict) or payload.get("status") != "OK":
            return None

        results = payload.get("results")
        for result in results if isinstance(results, list) else []:
            resolved = self._resolve_result(result)
            if resolved:
                return resolved
        return None

    def _resolve_result(self, result: Any) -> str | None:
        if not isinstance(result, dict):
            return None

        city = region = country = None
        components = result.get("address_components")
        for component in components if isinstance(components, list) else []:
            if not isinstance(component, dict):
                continue
            types = component.get("types")
            if not isinstance(types, list):
                continue
            long_name = _text(component.get("long_name"))
            short_name = _text(component.get("short_name"))
            if city is None and any(kind in types for kind in GOOGLE_CITY_TYPES):
                city = long_name
            elif "administrative_area_level_1" in types:
                region = short_name or long_name
            elif "country" in types:
                country = long_name or short_name

        return format_resolved_location(city, region, country, self._countries)


class NominatimGeocoder:
    """OpenStreetMap Nominatim search (``q`` + ``format=jsonv2`` + ``addressdetails=1``)."""

    name = "osm"

    def __init__(
        self,
        client: httpx.AsyncClient,
        user_agent: str = "Loccal/1.0",
        timeout_s: float = 2.5,
        countries: CountryLookup = DEFAULT_COUNTRIES,
    ):
        self._client = client
        self._user_agent = user_agent
        self._timeout_s = timeout_s
        self._countries = countries

    def _headers(self) -> dict:
        return {"User-Agent": self._user_agent, "Accept-Language": "en"}

    async def search(self, query: str, limit: int = 3, city_only: bool = False) -> list[dict]:
        """Raw Nominatim results; empty on any failure."""
        params = {"q": query, "format": "jsonv2", "addressdetails": "1", "limit": str(limit)}
        if city_only:
            params["featuretype"] = "city"

        try:
            response = await asyncio.wait_for(
                self._client.get(NOMINATIM_SEARCH_URL, params=params, headers=self._headers()),
                timeout=self._timeout_s,
            )
        except (TimeoutError, httpx.HTTPError) as e:
            logger.debug("Nominatim request failed", error=str(e), error_type=type(e).__name__)
            return []

        if not response.is_success:
            logger.debug("Nominatim non-2xx response", status_code=response.status_code)
            return []

        try:
            payload = response.json()
        except ValueError:
            logger.debug("Nominatim returned invalid JSON")
            return []

        return [item for item in payload if isinstance(item, dict)] if isinstance(payload, list) else []

    def address_parts(self, candidate: dict) -> tuple[str | None, str | None, str | None]:
        """(city, region, country) tokens from one result's ``address`` block."""
        address = candidate.get("address")
        if not isinstance(address, dict):
            return None, None, None

        city = next(filter(None, (_text(address.get(key)) for key in NOMINATIM_CITY_KEYS)), None)
        region = _text(address.get("state")) or _text(address.get("province"))
        country = _text(address.get("country"))
        country_code = _text(address.get("country_code"))
        if not country and country_code:
            country = country_code.upper()
        return city, region, country

    async def __call__(self, text: str) -> str | None:
        for candidate in await self.search(text):
            city, region, country = self.address_parts(candidate)
            resolved = format_resolved_location(city, region, country, self._countries)
            if resolved:
                return resolved
        return None
