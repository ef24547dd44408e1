from loccal.config import DEFAULT_SNAPSHOT_STALE_HOURS, Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_defaults_are_parser_only():
    settings = make_settings(GOOGLE_MAPS_API_KEY=None)

    assert settings.google_maps_api_key() is None
    assert settings.geocoding_enabled() is False
    assert settings.resolver_concurrency() == 2
    assert settings.snapshot_stale_hours() == DEFAULT_SNAPSHOT_STALE_HOURS


def test_blank_google_key_is_ignored():
    settings = make_settings(GOOGLE_MAPS_API_KEY="   ")

    assert settings.google_maps_api_key() is None
    assert settings.resolver_concurrency() == 2


def test_google_key_enables_geocoding():
    settings = make_settings(GOOGLE_MAPS_API_KEY=" abc ")

    assert settings.google_maps_api_key() == "abc"
    assert settings.geocoding_enabled() is True
    assert settings.resolver_concurrency() == 3


def test_osm_only():
    settings = make_settings(GOOGLE_MAPS_API_KEY=None, LOCCAL_OSM_GEOCODING_ENABLED=True)

    assert settings.geocoding_enabled() is True
    assert settings.resolver_concurrency() == 2


def test_stale_hours_fallback():
    assert make_settings(LOCCAL_SNAPSHOT_STALE_HOURS=0).snapshot_stale_hours() == 72.0
    assert make_settings(LOCCAL_SNAPSHOT_STALE_HOURS=-1).snapshot_stale_hours() == 72.0
    assert make_settings(LOCCAL_SNAPSHOT_STALE_HOURS=12).snapshot_stale_hours() == 12.0


def test_environment_variables_are_read(monkeypatch):
    monkeypatch.setenv("LOCCAL_OSM_GEOCODING_ENABLED", "true")
    monkeypatch.setenv("CITY_SEARCH_MIN_INTERVAL_S", "2.5")

    settings = make_settings()

    assert settings.LOCCAL_OSM_GEOCODING_ENABLED is True
    assert settings.CITY_SEARCH_MIN_INTERVAL_S == 2.5
