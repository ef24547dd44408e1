"""
Rule-based place parsing for free-text calendar locations.

Turns strings such as ``"123 Main St, Springfield, IL 62701"`` or
``"Austin TX"`` into canonical labels:

- ``"City, ST, USA"``
- ``"City, PR, Canada"`` / ``"City, Canada"``
- ``"City, Country"``

Everything here is pure and synchronous. The geocoders and the resolver
pipeline in :mod:`loccal.services.location.place_resolver` reuse
:func:`format_resolved_location` so both paths emit the same shapes.
"""

import re
from collections.abc import Mapping

US_STATE_MAP: dict[str, str] = {
    "ALABAMA": "AL",
    "ALASKA": "AK",
    "ARIZONA": "AZ",
    "ARKANSAS": "AR",
    "CALIFORNIA": "CA",
    "COLORADO": "CO",
    "CONNECTICUT": "CT",
    "DELAWARE": "DE",
    "FLORIDA": "FL",
    "GEORGIA": "GA",
    "HAWAII": "HI",
    "IDAHO": "ID",
    "ILLINOIS": "IL",
    "INDIANA": "IN",
    "IOWA": "IA",
    "KANSAS": "KS",
    "KENTUCKY": "KY",
    "LOUISIANA": "LA",
    "MAINE": "ME",
    "MARYLAND": "MD",
    "MASSACHUSETTS": "MA",
    "MICHIGAN": "MI",
    "MINNESOTA": "MN",
    "MISSISSIPPI": "MS",
    "MISSOURI": "MO",
    "MONTANA": "MT",
    "NEBRASKA": "NE",
    "NEVADA": "NV",
    "NEW HAMPSHIRE": "NH",
    "NEW JERSEY": "NJ",
    "NEW MEXICO": "NM",
    "NEW YORK": "NY",
    "NORTH CAROLINA": "NC",
    "NORTH DAKOTA": "ND",
    "OHIO": "OH",
    "OKLAHOMA": "OK",
    "OREGON": "OR",
    "PENNSYLVANIA": "PA",
    "RHODE ISLAND": "RI",
    "SOUTH CAROLINA": "SC",
    "SOUTH DAKOTA": "SD",
    "TENNESSEE": "TN",
    "TEXAS": "TX",
    "UTAH": "UT",
    "VERMONT": "VT",
    "VIRGINIA": "VA",
    "WASHINGTON": "WA",
    "WEST VIRGINIA": "WV",
    "WISCONSIN": "WI",
    "WYOMING": "WY",
    "DISTRICT OF COLUMBIA": "DC",
    "WASHINGTON DC": "DC",
}

US_STATE_CODES: frozenset[str] = frozenset(US_STATE_MAP.values())

# Lowercase codes that are also everyday words ("lunch in", "ping me")
AMBIGUOUS_LOWERCASE_CODES: frozenset[str] = frozenset({"in", "or", "me", "hi", "oh", "ok", "id"})

CANADIAN_PROVINCE_MAP: dict[str, str] = {
    "ALBERTA": "AB",
    "BRITISH COLUMBIA": "BC",
    "MANITOBA": "MB",
    "NEW BRUNSWICK": "NB",
    "NEWFOUNDLAND AND LABRADOR": "NL",
    "NEWFOUNDLAND": "NL",
    "NOVA SCOTIA": "NS",
    "NORTHWEST TERRITORIES": "NT",
    "NUNAVUT": "NU",
    "ONTARIO": "ON",
    "PRINCE EDWARD ISLAND": "PE",
    "QUEBEC": "QC",
    "QUÉBEC": "QC",
    "SASKATCHEWAN": "SK",
    "YUKON": "YT",
}

CANADIAN_PROVINCE_CODES: frozenset[str] = frozenset(CANADIAN_PROVINCE_MAP.values())

# ISO 3166-1 alpha-2 -> English short name
COUNTRY_NAMES: dict[str, str] = {
    "AE": "United Arab Emirates", "AF": "Afghanistan", "AL": "Albania",
    "AM": "Armenia", "AO": "Angola", "AR": "Argentina", "AT": "Austria",
    "AU": "Australia", "AZ": "Azerbaijan", "BA": "Bosnia and Herzegovina",
    "BB": "Barbados", "BD": "Bangladesh", "BE": "Belgium", "BG": "Bulgaria",
    "BH": "Bahrain", "BO": "Bolivia", "BR": "Brazil", "BS": "Bahamas",
    "BT": "Bhutan", "BW": "Botswana", "BY": "Belarus", "BZ": "Belize",
    "CA": "Canada", "CH": "Switzerland", "CI": "Côte d'Ivoire", "CL": "Chile",
    "CM": "Cameroon", "CN": "China", "CO": "Colombia", "CR": "Costa Rica",
    "CU": "Cuba", "CY": "Cyprus", "CZ": "Czechia", "DE": "Germany",
    "DK": "Denmark", "DO": "Dominican Republic", "DZ": "Algeria",
    "EC": "Ecuador", "EE": "Estonia", "EG": "Egypt", "ES": "Spain",
    "ET": "Ethiopia", "FI": "Finland", "FJ": "Fiji", "FR": "France",
    "GB": "United Kingdom", "GE": "Georgia", "GH": "Ghana", "GR": "Greece",
    "GT": "Guatemala", "HK": "Hong Kong", "HN": "Honduras", "HR": "Croatia",
    "HU": "Hungary", "ID": "Indonesia", "IE": "Ireland", "IL": "Israel",
    "IN": "India", "IQ": "Iraq", "IR": "Iran", "IS": "Iceland", "IT": "Italy",
    "JM": "Jamaica", "JO": "Jordan", "JP": "Japan", "KE": "Kenya",
    "KH": "Cambodia", "KR": "South Korea", "KW": "Kuwait", "KZ": "Kazakhstan",
    "LA": "Laos", "LB": "Lebanon", "LK": "Sri Lanka", "LT": "Lithuania",
    "LU": "Luxembourg", "LV": "Latvia", "MA": "Morocco", "MC": "Monaco",
    "MD": "Moldova", "ME": "Montenegro", "MG": "Madagascar",
    "MK": "North Macedonia", "MM": "Myanmar", "MN": "Mongolia", "MO": "Macao",
    "MT": "Malta", "MU": "Mauritius", "MV": "Maldives", "MX": "Mexico",
    "MY": "Malaysia", "MZ": "Mozambique", "NA": "Namibia", "NG": "Nigeria",
    "NI": "Nicaragua", "NL": "Netherlands", "NO": "Norway", "NP": "Nepal",
    "NZ": "New Zealand", "OM": "Oman", "PA": "Panama", "PE": "Peru",
    "PH": "Philippines", "PK": "Pakistan", "PL": "Poland", "PR": "Puerto Rico",
    "PT": "Portugal", "PY": "Paraguay", "QA": "Qatar", "RO": "Romania",
    "RS": "Serbia", "RU": "Russia", "RW": "Rwanda", "SA": "Saudi Arabia",
    "SE": "Sweden", "SG": "Singapore", "SI": "Slovenia", "SK": "Slovakia",
    "SN": "Senegal", "SV": "El Salvador", "TH": "Thailand", "TN": "Tunisia",
    "TR": "Türkiye", "TT": "Trinidad and Tobago", "TW": "Taiwan",
    "TZ": "Tanzania", "UA": "Ukraine", "UG": "Uganda", "US": "United States",
    "UY": "Uruguay", "UZ": "Uzbekistan", "VE": "Venezuela", "VN": "Vietnam",
    "ZA": "South Africa", "ZM": "Zambia", "ZW": "Zimbabwe",
}

# Aliases win over COUNTRY_NAMES entries for the same token
COUNTRY_ALIASES: dict[str, str] = {
    "US": "USA",
    "USA": "USA",
    "U.S.": "USA",
    "U.S.A.": "USA",
    "UNITED STATES": "USA",
    "UNITED STATES OF AMERICA": "USA",
    "CA": "Canada",
    "CANADA": "Canada",
    "UK": "UK",
    "U.K.": "UK",
    "GB": "UK",
    "GREAT BRITAIN": "UK",
    "UNITED KINGDOM": "UK",
    "ENGLAND": "UK",
    "SCOTLAND": "UK",
    "WALES": "UK",
    "NORTHERN IRELAND": "UK",
    "UAE": "United Arab Emirates",
    "TURKEY": "Türkiye",
    "CZECH REPUBLIC": "Czechia",
    "KOREA": "South Korea",
    "HOLLAND": "Netherlands",
}

# Words that mark a string as a meeting/venue note rather than a place
DISALLOWED_WORDS: frozenset[str] = frozenset(
    {
        "zoom",
        "meet",
        "meeting",
        "teams",
        "webex",
        "hangout",
        "hangouts",
        "skype",
        "facetime",
        "slack",
        "discord",
        "webinar",
        "livestream",
        "online",
        "virtual",
        "remote",
        "tbd",
        "tba",
        "call",
        "phone",
        "dial",
        "link",
        "room",
        "conference",
        "office",
        "home",
        "desk",
        "lobby",
        "floor",
        "suite",
        "details",
        "description",
        "anywhere",
        "various",
    }
)

STREET_SUFFIXES: frozenset[str] = frozenset(
    {
        "ST",
        "ST.",
        "STREET",
        "AVE",
        "AVE.",
        "AVENUE",
        "RD",
        "RD.",
        "ROAD",
        "DR",
        "DR.",
        "DRIVE",
        "BLVD",
        "BLVD.",
        "BOULEVARD",
        "LANE",
        "LN",
        "LN.",
        "WAY",
        "PL",
        "PL.",
        "CT",
        "CT.",
        "HWY",
        "HIGHWAY",
        "PKWY",
        "PARKWAY",
    }
)

# Tokens that end a city when walking left from a state/country suffix
CITY_STOPWORDS: frozenset[str] = frozenset(
    {"AT", "IN", "NEAR", "WITH", "AND", "FOR", "TO", "FROM", "BY", "@", "-", "|", "/"}
)

MIN_LOCATION_LENGTH = 3
MAX_LOCATION_LENGTH = 140
MAX_LOCATION_COMMAS = 5
MAX_GEOCODE_WORDS = 10
MAX_GEOCODE_COMMAS = 4
MAX_CITY_WORDS = 4

URL_RE = re.compile(r"(https?://|www\.|\b[\w-]+\.(com|net|org|io|us|co|app|gov|edu)\b)", re.I)
EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
FORBIDDEN_CHARS_RE = re.compile(r"[<>:;!?]")
CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
AIRPORT_KEYWORD_RE = re.compile(r"\b(airport|intl\.?|international|terminal|airfield)\b", re.I)
PAREN_IATA_RE = re.compile(r"\(([A-Z]{3})\)")
DIGIT_RUN_RE = re.compile(r"\d{2,}")
LETTER_RE = re.compile(r"[^\W\d_]")
WORD_RE = re.compile(r"[a-z]+")
ADDRESS_MARKER_RE = re.compile(r"(#|\b(suite|ste|unit|apt|floor)\b)", re.I)
ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")


class CountryLookup:
    """
    Country name/code table.

    Built once at import (``DEFAULT_COUNTRIES``) and passed into the parser
    and geocoders, so tests can swap in a smaller table.
    """

    def __init__(
        self,
        names: Mapping[str, str] = COUNTRY_NAMES,
        aliases: Mapping[str, str] = COUNTRY_ALIASES,
    ):
        self._codes: dict[str, str] = {}
        self._names: dict[str, str] = {}

        for code, name in names.items():
            self._codes[code.upper()] = name
            self._names[name.upper()] = name
        for alias, canonical in aliases.items():
            key = alias.upper()
            if len(key) == 2:
                self._codes[key] = canonical
            else:
                self._names[key] = canonical

    @staticmethod
    def _key(token: str) -> str:
        return " ".join(token.split()).upper()

    def lookup(self, token: str | None, allow_codes: bool = True) -> str | None:
        """Return the canonical country for a name/alias (and code), else None."""
        if not token:
            return None
        key = self._key(token)
        if key in self._names:
            return self._names[key]
        if allow_codes and key in self._codes:
            return self._codes[key]
        return None

    def is_code(self, token: str) -> bool:
        return self._key(token) in self._codes

    def normalize(self, token: str | None) -> str | None:
        """Canonical name for known tokens; unknown names are title-cased."""
        if not token or not token.strip():
            return None
        known = self.lookup(token)
        if known:
            return known
        cleaned = " ".join(token.split())
        if cleaned.isupper() or cleaned.islower():
            return cleaned.title()
        return cleaned


DEFAULT_COUNTRIES = CountryLookup()


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _words(text: str) -> set[str]:
    return set(WORD_RE.findall(text.lower()))


def has_disallowed_word(text: str) -> bool:
    return bool(_words(text) & DISALLOWED_WORDS)


def normalize_us_state(token: str | None) -> str | None:
    """Two-letter code for a US state/DC code or name, else None."""
    if not token:
        return None
    normalized = _collapse(token.replace(".", "")).upper()
    if normalized in US_STATE_CODES:
        return normalized
    return US_STATE_MAP.get(normalized)


def normalize_canadian_province(token: str | None) -> str | None:
    if not token:
        return None
    normalized = _collapse(token.replace(".", "")).upper()
    if normalized in CANADIAN_PROVINCE_CODES:
        return normalized
    return CANADIAN_PROVINCE_MAP.get(normalized)


def is_valid_location_text(text: str | None) -> bool:
    """Validity gate: reject strings that cannot be a place."""
    if not text:
        return False
    if CONTROL_CHARS_RE.search(text):
        return False

    normalized = text.strip()
    if not MIN_LOCATION_LENGTH <= len(normalized) <= MAX_LOCATION_LENGTH:
        return False
    if FORBIDDEN_CHARS_RE.search(normalized):
        return False
    if URL_RE.search(normalized) or EMAIL_RE.search(normalized):
        return False
    if normalized.count(",") > MAX_LOCATION_COMMAS:
        return False
    return True


def is_airport(text: str) -> bool:
    """Airport/terminal strings say where someone transited, not stayed."""
    if AIRPORT_KEYWORD_RE.search(text):
        return True
    # A bare IATA code next to "airport" is already caught by the keyword match
    return bool(PAREN_IATA_RE.search(text))


def is_likely_city(city: str | None) -> bool:
    if not city:
        return False
    city = _collapse(city)
    if not 2 <= len(city) <= 40:
        return False
    if not LETTER_RE.search(city):
        return False
    if len(city.split(" ")) > MAX_CITY_WORDS:
        return False
    if DIGIT_RUN_RE.search(city):
        return False
    return not has_disallowed_word(city)


def is_geocode_worthy(text: str) -> bool:
    """Only short, place-like strings are worth an upstream geocoding call."""
    normalized = _collapse(text)
    if len(normalized.split(" ")) > MAX_GEOCODE_WORDS:
        return False
    if normalized.count(",") > MAX_GEOCODE_COMMAS:
        return False
    return not has_disallowed_word(normalized)


def format_resolved_location(
    city: str | None,
    region: str | None,
    country: str | None,
    countries: CountryLookup = DEFAULT_COUNTRIES,
) -> str | None:
    """
    Assemble the canonical label or reject.

    A US place must carry a valid state (even when the country says USA);
    Canadian places keep their province code when one is known.
    """
    city = _collapse(city or "")
    if not is_likely_city(city):
        return None

    region = _collapse(region or "")
    country_name = countries.normalize(country)

    if country_name is None:
        if not normalize_us_state(region):
            return None
        country_name = "USA"

    if country_name == "USA":
        state = normalize_us_state(region)
        return f"{city}, {state}, USA" if state else None

    if country_name == "Canada":
        province = normalize_canadian_province(region)
        return f"{city}, {province}, Canada" if province else f"{city}, Canada"

    return f"{city}, {country_name}"


def _strip_postal_codes(part: str) -> str:
    """Drop tokens carrying digits ("IL 62701" -> "IL", "ON M5V 3L9" -> "ON")."""
    return " ".join(token for token in part.split() if not any(ch.isdigit() for ch in token))


def _is_address_like(part: str) -> bool:
    tokens = part.split()
    if not tokens:
        return True
    if tokens[0][0].isdigit():
        return True
    if ADDRESS_MARKER_RE.search(part):
        return True
    return tokens[-1].upper() in STREET_SUFFIXES


def _resolve_region(
    city: str, region: str, countries: CountryLookup
) -> str | None:
    """Region without an explicit country: US state, Canadian province, then country."""
    if not region:
        return None
    if normalize_us_state(region):
        return format_resolved_location(city, region, "USA", countries)

    province = normalize_canadian_province(region)
    if province and not countries.is_code(region):
        return format_resolved_location(city, province, "Canada", countries)

    country = countries.lookup(region)
    if country:
        return format_resolved_location(city, None, country, countries)
    return None


def _parse_comma_form(text: str, countries: CountryLookup) -> str | None:
    parts = [part.strip() for part in text.split(",") if part.strip()]
    if len(parts) < 2:
        return None

    for index, part in enumerate(parts[:-1]):
        if _is_address_like(part) or not is_likely_city(part):
            continue

        region = _strip_postal_codes(parts[index + 1])
        country_part = _strip_postal_codes(parts[index + 2]) if index + 2 < len(parts) else ""
        country = countries.lookup(country_part) if country_part else None

        if country:
            resolved = format_resolved_location(part, region, country, countries)
        else:
            resolved = _resolve_region(part, region, countries)
        if resolved:
            return resolved

    return None


def _city_before(tokens: list[str]) -> str:
    """Walk left from a suffix collecting up to four city tokens."""
    has_address_number = any(any(ch.isdigit() for ch in token) for token in tokens)
    city_tokens: list[str] = []

    for token in reversed(tokens):
        upper = token.upper()
        if any(ch.isdigit() for ch in token) or upper in CITY_STOPWORDS:
            break
        if has_address_number and upper in STREET_SUFFIXES:
            break
        city_tokens.insert(0, token)
        if len(city_tokens) >= MAX_CITY_WORDS:
            break

    return " ".join(city_tokens)


def _drop_trailing(tokens: list[str], predicate) -> list[str]:
    while tokens and predicate(tokens[-1]):
        tokens = tokens[:-1]
    return tokens


def _parse_state_suffix(text: str, countries: CountryLookup) -> str | None:
    """``"Austin TX"``, ``"Springfield IL 62701"``, ``"Austin Texas USA"``."""
    tokens = _drop_trailing(text.split(), lambda token: bool(ZIP_RE.match(token)))
    for size in (4, 3, 2, 1):
        if len(tokens) > size and countries.lookup(" ".join(tokens[-size:])) == "USA":
            tokens = tokens[:-size]
            break

    if len(tokens) < 2:
        return None

    last = tokens[-1]
    if len(last) == 2 and last.isupper() and last in US_STATE_CODES:
        return format_resolved_location(_city_before(tokens[:-1]), last, "USA", countries)

    # "austin tx": an all-lowercase string may carry a lowercase code
    if (
        len(last) == 2
        and last.islower()
        and last.upper() in US_STATE_CODES
        and last not in AMBIGUOUS_LOWERCASE_CODES
    ):
        city = _city_before(tokens[:-1])
        if city.islower() and is_likely_city(city):
            return format_resolved_location(city.title(), last.upper(), "USA", countries)

    for size in (3, 2, 1):
        if len(tokens) <= size:
            continue
        state = US_STATE_MAP.get(" ".join(tokens[-size:]).upper())
        if state:
            return format_resolved_location(_city_before(tokens[:-size]), state, "USA", countries)

    return None


def _parse_country_suffix(text: str, countries: CountryLookup) -> str | None:
    """``"London UK"``, ``"Toronto Canada"``, ``"Lisbon Portugal"``."""
    tokens = text.split()
    for size in (4, 3, 2, 1):
        if len(tokens) <= size:
            continue
        tail = " ".join(tokens[-size:])
        allow_codes = tail.upper() in ("UK", "US")
        country = countries.lookup(tail, allow_codes=allow_codes)
        if country:
            return format_resolved_location(_city_before(tokens[:-size]), None, country, countries)
    return None


def parser_candidate(text: str, countries: CountryLookup = DEFAULT_COUNTRIES) -> str | None:
    """
    Rule-based resolution, in order: comma form, ``City ST``, ``City Country``.

    Does not apply the validity/airport gates; callers do that first.
    """
    normalized = _collapse(text)
    if not normalized:
        return None

    if "," in normalized:
        resolved = _parse_comma_form(normalized, countries)
        if resolved:
            return resolved

    last_segment = normalized.rsplit(",", 1)[-1].strip()
    return _parse_state_suffix(last_segment, countries) or _parse_country_suffix(
        last_segment, countries
    )
