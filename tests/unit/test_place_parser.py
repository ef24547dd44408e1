import pytest

from loccal.services.location.place_parser import (
    CountryLookup,
    format_resolved_location,
    is_airport,
    is_geocode_worthy,
    is_likely_city,
    is_valid_location_text,
    parser_candidate,
)


@pytest.mark.parametrize(
    "text",
    [
        "https://zoom.us/j/123456",
        "www.example.com",
        "bob@example.com",
        "Room <5>",
        "Call me!",
        "Austin\tTX",
        "ab",
        "x" * 141,
        "a, b, c, d, e, f, g",
        None,
    ],
)
def test_invalid_location_text(text):
    assert is_valid_location_text(text) is False


def test_valid_location_text():
    assert is_valid_location_text("  Austin TX  ") is True


@pytest.mark.parametrize(
    "text",
    [
        "San Francisco International Airport (SFO)",
        "Gate 12 (JFK)",
        "Heathrow Terminal 5",
        "LAX airport",
    ],
)
def test_airport_strings(text):
    assert is_airport(text) is True


def test_city_is_not_an_airport():
    assert is_airport("Austin, TX") is False


@pytest.mark.parametrize(
    "text,expected",
    [
        ("123 Main St, Springfield, IL 62701", "Springfield, IL, USA"),
        ("Austin TX", "Austin, TX, USA"),
        ("Springfield IL 62701", "Springfield, IL, USA"),
        ("Austin Texas USA", "Austin, TX, USA"),
        ("Los Angeles, CA", "Los Angeles, CA, USA"),
        ("Toronto, ON, Canada", "Toronto, ON, Canada"),
        ("Paris, France", "Paris, France"),
        ("London UK", "London, UK"),
        ("Tokyo Japan", "Tokyo, Japan"),
        ("austin tx", "Austin, TX, USA"),
        ("san antonio tx 78205", "San Antonio, TX, USA"),
    ],
)
def test_parser_candidate(text, expected):
    assert parser_candidate(text) == expected


@pytest.mark.parametrize(
    "text",
    ["Zoom Meeting", "Conference Room B", "Seattle USA", "Somewhere", "lunch in", "meet me", "Austin tx"],
)
def test_parser_candidate_rejects(text):
    assert parser_candidate(text) is None


def test_format_requires_us_state():
    assert format_resolved_location("Austin", None, "United States") is None
    assert format_resolved_location("Austin", "Texas", "United States") == "Austin, TX, USA"


def test_format_country_aliases():
    assert format_resolved_location("Manchester", "England", "GB") == "Manchester, UK"
    assert format_resolved_location("Vancouver", "British Columbia", "CA") == "Vancouver, BC, Canada"
    assert format_resolved_location("Montreal", None, "Canada") == "Montreal, Canada"
    assert format_resolved_location("Berlin", "Berlin", "DE") == "Berlin, Germany"


def test_format_infers_usa_from_state():
    assert format_resolved_location("Boise", "ID", None) == "Boise, ID, USA"
    assert format_resolved_location("Boise", None, None) is None


def test_format_title_cases_unknown_country():
    assert format_resolved_location("Atlantis", None, "ATLANTIS") == "Atlantis, Atlantis"


def test_format_rejects_unlikely_city():
    assert format_resolved_location("Zoom call", "TX", "USA") is None
    assert format_resolved_location("Unit 12345", "TX", "USA") is None


def test_likely_city_limits():
    assert is_likely_city("Salt Lake City") is True
    assert is_likely_city("A Very Long Five Word") is False
    assert is_likely_city("X") is False


def test_geocode_worthiness():
    assert is_geocode_worthy("Franklin Barbecue, Austin") is True
    assert is_geocode_worthy("one two three four five six seven eight nine ten eleven") is False
    assert is_geocode_worthy("Office hours") is False


def test_custom_country_table():
    countries = CountryLookup(names={"FR": "France"}, aliases={})

    assert parser_candidate("Paris, France", countries) == "Paris, France"
    assert parser_candidate("Tokyo Japan", countries) is None
