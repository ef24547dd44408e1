"""
Place resolution pipeline.

resolve(text):
    1. validity gate      -> None
    2. airport gate       -> None
    3. strategies in order (geocoders only for geocode-worthy text),
       the rule-based parser last; first non-null answer wins.

resolve_many(texts) deduplicates and runs a small worker pool over a
shared queue so outbound geocoding stays bounded regardless of input size.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence

import httpx

from loccal.config import Settings
from loccal.infrastructure.observability.logging import get_logger
from loccal.services.location.geocoders import GoogleGeocoder, NominatimGeocoder
from loccal.services.location.place_parser import (
    DEFAULT_COUNTRIES,
    CountryLookup,
    is_airport,
    is_geocode_worthy,
    is_valid_location_text,
    parser_candidate,
)

logger = get_logger(__name__)

ResolverStrategy = Callable[[str], Awaitable[str | None]]


async def first_resolved(strategies: Sequence[ResolverStrategy], text: str) -> str | None:
    """
    Try each strategy in order and stop at the first non-null place.

    A strategy that raises counts as no answer.
    """
    for strategy in strategies:
        try:
            resolved = await strategy(text)
        except Exception as e:
            logger.warning(
                "Location strategy failed",
                strategy=getattr(strategy, "name", type(strategy).__name__),
                error=str(e),
                error_type=type(e).__name__,
            )
            continue
        if resolved:
            return resolved
    return None


class ParserStrategy:
    """Rule-based parser exposed as a resolver strategy."""

    name = "parser"

    def __init__(self, countries: CountryLookup = DEFAULT_COUNTRIES):
        self._countries = countries

    async def __call__(self, text: str) -> str | None:
        return parser_candidate(text, self._countries)


class PlaceResolver:
    """Resolve free-text locations to canonical place labels."""

    def __init__(
        self,
        geocoders: Sequence[ResolverStrategy] = (),
        countries: CountryLookup = DEFAULT_COUNTRIES,
        concurrency: int = 2,
    ):
        self._geocoders = list(geocoders)
        self._parser = ParserStrategy(countries)
        self.concurrency = max(1, concurrency)

    def strategies_for(self, text: str) -> list[ResolverStrategy]:
        if self._geocoders and is_geocode_worthy(text):
            return [*self._geocoders, self._parser]
        return [self._parser]

    async def resolve(self, text: str) -> str | None:
        """Canonical place for one string, or None. Never raises for bad input."""
        if not is_valid_location_text(text) or is_airport(text):
            return None
        return await first_resolved(self.strategies_for(text), text.strip())

    async def resolve_many(self, texts: Iterable[str | None]) -> dict[str, str | None]:
        """
        Resolve each distinct non-blank string once.

        Workers pop from one shared queue; results are keyed by the
        original string, so no two workers write the same key.
        """
        unique = list(dict.fromkeys(text for text in texts if text and text.strip()))
        results: dict[str, str | None] = {}
        if not unique:
            return results

        queue: asyncio.Queue[str] = asyncio.Queue()
        for text in unique:
            queue.put_nowait(text)

        async def worker() -> None:
            while True:
                try:
                    text = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                results[text] = await self.resolve(text)

        worker_count = min(self.concurrency, len(unique))
        await asyncio.gather(*(worker() for _ in range(worker_count)))

        logger.debug(
            "Resolved locations",
            unique_locations=len(unique),
            resolved=sum(1 for value in results.values() if value),
            workers=worker_count,
        )
        return results


def build_place_resolver(
    settings: Settings,
    client: httpx.AsyncClient | None,
    countries: CountryLookup = DEFAULT_COUNTRIES,
) -> PlaceResolver:
    """Wire geocoders from configuration: Google first, then OpenStreetMap."""
    geocoders: list[ResolverStrategy] = []

    if client is not None and settings.geocoding_enabled():
        api_key = settings.google_maps_api_key()
        if api_key:
            geocoders.append(
                GoogleGeocoder(
                    client,
                    api_key,
                    timeout_s=settings.GOOGLE_GEOCODE_TIMEOUT_S,
                    countries=countries,
                )
            )
        if settings.LOCCAL_OSM_GEOCODING_ENABLED:
            geocoders.append(
                NominatimGeocoder(
                    client,
                    user_agent=settings.LOCCAL_GEOCODER_USER_AGENT,
                    timeout_s=settings.OSM_GEOCODE_TIMEOUT_S,
                    countries=countries,
                )
            )

    return PlaceResolver(
        geocoders=geocoders,
        countries=countries,
        concurrency=settings.resolver_concurrency(),
    )
