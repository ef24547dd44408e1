import asyncio

import httpx
import pytest

from loccal.config import Settings
from loccal.services.location.geocoders import GoogleGeocoder, NominatimGeocoder
from loccal.services.location.place_resolver import (
    PlaceResolver,
    build_place_resolver,
    first_resolved,
)


def google_payload(city: str, state: str, country: str) -> dict:
    return {
        "status": "OK",
        "results": [
            {
                "address_components": [
                    {"long_name": city, "short_name": city, "types": ["locality", "political"]},
                    {
                        "long_name": state,
                        "short_name": state,
                        "types": ["administrative_area_level_1", "political"],
                    },
                    {"long_name": country, "short_name": country[:2], "types": ["country", "political"]},
                ]
            }
        ],
    }


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_first_resolved_stops_at_first_answer():
    calls = []

    def strategy(name, answer):
        async def _strategy(text):
            calls.append(name)
            return answer

        return _strategy

    result = await first_resolved(
        [strategy("a", None), strategy("b", "Austin, TX, USA"), strategy("c", "Other")],
        "Austin",
    )

    assert result == "Austin, TX, USA"
    assert calls == ["a", "b"]


@pytest.mark.asyncio
async def test_parser_only_resolution():
    resolver = PlaceResolver()

    assert await resolver.resolve("Austin TX") == "Austin, TX, USA"
    assert await resolver.resolve("https://meet.google.com/abc") is None
    assert await resolver.resolve("San Francisco International Airport (SFO)") is None


@pytest.mark.asyncio
async def test_google_geocoder_answer_wins_over_parser():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["address"] == "Franklin Barbecue, Austin"
        assert request.url.params["key"] == "test-key"
        return httpx.Response(200, json=google_payload("Austin", "TX", "United States"))

    async with mock_client(handler) as client:
        resolver = PlaceResolver(geocoders=[GoogleGeocoder(client, "test-key")])
        assert await resolver.resolve("Franklin Barbecue, Austin") == "Austin, TX, USA"


@pytest.mark.asyncio
async def test_geocoder_failure_falls_back_to_parser():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    async with mock_client(handler) as client:
        resolver = PlaceResolver(geocoders=[GoogleGeocoder(client, "test-key")])
        assert await resolver.resolve("Springfield IL 62701") == "Springfield, IL, USA"


@pytest.mark.asyncio
async def test_malformed_google_components_fall_back_to_parser():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": [
                    "bogus",
                    {"address_components": ["bogus", {"long_name": 5, "types": "locality"}]},
                ],
            },
        )

    async with mock_client(handler) as client:
        resolver = PlaceResolver(geocoders=[GoogleGeocoder(client, "test-key")])
        results = await resolver.resolve_many(["Austin TX", "Paris France"])

    assert results == {"Austin TX": "Austin, TX, USA", "Paris France": "Paris, France"}


@pytest.mark.asyncio
async def test_non_string_nominatim_address_falls_back_to_parser():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json=[{"address": {"city": 123, "state": ["x"], "country": None, "country_code": 7}}]
        )

    async with mock_client(handler) as client:
        geocoder = NominatimGeocoder(client)
        assert await geocoder("Austin TX") is None

        resolver = PlaceResolver(geocoders=[geocoder])
        results = await resolver.resolve_many(["Austin TX", "Paris France"])

    assert results == {"Austin TX": "Austin, TX, USA", "Paris France": "Paris, France"}


@pytest.mark.asyncio
async def test_raising_strategy_counts_as_no_answer():
    async def broken(text):
        raise RuntimeError("unexpected payload")

    resolver = PlaceResolver(geocoders=[broken])

    assert await resolver.resolve("Austin TX") == "Austin, TX, USA"
    assert await resolver.resolve_many(["Tokyo Japan"]) == {"Tokyo Japan": "Tokyo, Japan"}


@pytest.mark.asyncio
async def test_airport_text_never_reaches_geocoders():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.params["address"])
        return httpx.Response(200, json=google_payload("San Francisco", "CA", "United States"))

    async with mock_client(handler) as client:
        resolver = PlaceResolver(geocoders=[GoogleGeocoder(client, "test-key")])

        assert await resolver.resolve("San Francisco International Airport (SFO)") is None
        assert await resolver.resolve("LAX airport") is None

    assert calls == []


@pytest.mark.asyncio
async def test_google_non_ok_status_is_no_answer():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

    async with mock_client(handler) as client:
        assert await GoogleGeocoder(client, "test-key")("Nowhere Town") is None


@pytest.mark.asyncio
async def test_google_geocoder_times_out():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json=google_payload("Austin", "TX", "United States"))

    async with mock_client(handler) as client:
        geocoder = GoogleGeocoder(client, "test-key", timeout_s=0.01)
        assert await geocoder("Austin") is None


@pytest.mark.asyncio
async def test_nominatim_geocoder_uses_address_details():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["format"] == "jsonv2"
        assert request.url.params["addressdetails"] == "1"
        assert request.headers["User-Agent"] == "Loccal-Test/1.0"
        return httpx.Response(
            200,
            json=[
                {"address": {"village": "Nowhere"}},
                {"address": {"town": "Hallstatt", "state": "Upper Austria", "country": "Austria"}},
            ],
        )

    async with mock_client(handler) as client:
        geocoder = NominatimGeocoder(client, user_agent="Loccal-Test/1.0")
        assert await geocoder("Hallstatt lake") == "Hallstatt, Austria"


@pytest.mark.asyncio
async def test_nominatim_city_search_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json=[{"address": {"city": "Paris", "country_code": "fr"}}])

    async with mock_client(handler) as client:
        geocoder = NominatimGeocoder(client)
        results = await geocoder.search("Paris", limit=5, city_only=True)

    assert seen["featuretype"] == "city"
    assert seen["limit"] == "5"
    assert geocoder.address_parts(results[0]) == ("Paris", None, "FR")


@pytest.mark.asyncio
async def test_geocoders_skipped_for_unworthy_text():
    calls = []

    async def geocoder(text):
        calls.append(text)
        return "Somewhere, USA"

    resolver = PlaceResolver(geocoders=[geocoder])
    long_text = "Team offsite planning session with the whole group in Austin TX"

    assert await resolver.resolve(long_text) == "Austin, TX, USA"
    assert calls == []


@pytest.mark.asyncio
async def test_resolve_many_dedupes_and_bounds_workers():
    in_flight = 0
    peak = 0
    calls = []

    async def geocoder(text):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        calls.append(text)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return None

    resolver = PlaceResolver(geocoders=[geocoder], concurrency=2)
    texts = ["Austin TX", "Austin TX", "Paris, France", "Tokyo Japan", "London UK", "", None, "  "]

    results = await resolver.resolve_many(texts)

    assert results == {
        "Austin TX": "Austin, TX, USA",
        "Paris, France": "Paris, France",
        "Tokyo Japan": "Tokyo, Japan",
        "London UK": "London, UK",
    }
    assert sorted(calls) == ["Austin TX", "London UK", "Paris, France", "Tokyo Japan"]
    assert peak <= 2


@pytest.mark.asyncio
async def test_build_place_resolver_from_settings():
    async with httpx.AsyncClient() as client:
        parser_only = build_place_resolver(Settings(GOOGLE_MAPS_API_KEY=None), client)
        with_google = build_place_resolver(
            Settings(GOOGLE_MAPS_API_KEY="key", LOCCAL_OSM_GEOCODING_ENABLED=True), client
        )

    assert parser_only.concurrency == 2
    assert len(parser_only.strategies_for("Austin TX")) == 1

    assert with_google.concurrency == 3
    strategies = with_google.strategies_for("Austin TX")
    assert [strategy.name for strategy in strategies] == ["google", "osm", "parser"]
