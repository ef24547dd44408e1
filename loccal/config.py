from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"

DEFAULT_SNAPSHOT_STALE_HOURS = 72.0


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Redis settings (users, follows, monthly snapshots)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20

    # Session token issued by the auth layer
    SESSION_JWT_SECRET: str | None = None
    SESSION_JWT_AUDIENCE: str | None = None

    # =================================================================
    # GEOCODING - both backends optional, parser-only when neither is on
    # =================================================================
    GOOGLE_MAPS_API_KEY: str | None = None
    LOCCAL_OSM_GEOCODING_ENABLED: bool = False
    LOCCAL_GEOCODER_USER_AGENT: str = "Loccal/1.0"
    GOOGLE_GEOCODE_TIMEOUT_S: float = 2.8
    OSM_GEOCODE_TIMEOUT_S: float = 2.5

    # City search endpoint gate (one upstream call per interval)
    CITY_SEARCH_MIN_INTERVAL_S: float = 1.0

    # Friend snapshots older than this are flagged stale
    LOCCAL_SNAPSHOT_STALE_HOURS: float = DEFAULT_SNAPSHOT_STALE_HOURS

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def google_maps_api_key(self) -> str | None:
        """Return the trimmed Google key, or None when unset/blank."""
        key = (self.GOOGLE_MAPS_API_KEY or "").strip()
        return key or None

    def geocoding_enabled(self) -> bool:
        return bool(self.google_maps_api_key() or self.LOCCAL_OSM_GEOCODING_ENABLED)

    def resolver_concurrency(self) -> int:
        """Worker count for location resolution: 3 with a Google key, else 2."""
        return 3 if self.google_maps_api_key() else 2

    def snapshot_stale_hours(self) -> float:
        """Stale threshold with a fallback for non-positive values."""
        if self.LOCCAL_SNAPSHOT_STALE_HOURS <= 0:
            return DEFAULT_SNAPSHOT_STALE_HOURS
        return self.LOCCAL_SNAPSHOT_STALE_HOURS


settings = Settings()
