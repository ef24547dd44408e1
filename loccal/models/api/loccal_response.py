# loccal/models/api/loccal_response.py
"""
Location rollup API response models.
Payload keys are camelCase; fields are snake_case with generated aliases.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InferredEventResponse(CamelModel):
    """Calendar event that placed the user somewhere."""

    title: str = Field(..., description="Event title")
    is_all_day: bool = Field(..., description="Is this an all-day event")
    start_iso: str = Field(..., description="Event start (UTC, ISO 8601)")
    end_iso: str = Field(..., description="Event end (UTC, ISO 8601)")
    inferred_from: str = Field(..., description="Raw location string the place came from")
    maps_url: str = Field(..., description="Google Maps search link for the raw location")


class DayLocationResponse(CamelModel):
    location: str = Field(..., description="Canonical place label")
    events: list[InferredEventResponse] = Field(default_factory=list)


class RollupMetadata(CamelModel):
    time_zone: str = Field(..., description="Calendar time zone used for day bucketing")
    generated_at: str = Field(..., description="When this rollup was generated")
    generated_by: str = Field(default="@Loccal", description="Generator tag")


class MonthRollupResponse(RollupMetadata):
    month: str = Field(..., description="Month key (YYYY-MM)")
    days: dict[str, list[DayLocationResponse]] = Field(default_factory=dict)
    social_snapshot_saved: bool = Field(
        default=False, description="Whether this month was published to friends"
    )


class YearRollupResponse(RollupMetadata):
    year: str = Field(..., description="Year key (YYYY)")
    days: dict[str, list[DayLocationResponse]] = Field(default_factory=dict)


class CitySearchResult(CamelModel):
    display: str = Field(..., description="Canonical place label")
    city: str = Field(default="")
    region: str = Field(default="")
    country: str = Field(default="")


class CitySearchResponse(CamelModel):
    results: list[CitySearchResult] = Field(default_factory=list)
