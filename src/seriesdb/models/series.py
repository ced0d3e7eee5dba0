"""Pydantic models for series and their points."""

from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware datetime, reading naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Series(BaseModel):
    """A named stream of timestamped values."""

    id: int = Field(..., description="Database-assigned identifier")
    name: str = Field(
        ...,
        description="Unique series name",
        validation_alias=AliasChoices("name", "series_name"),
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Point(BaseModel):
    """Single observation belonging to one series."""

    series_id: int = Field(
        ...,
        description="Owning series id",
        validation_alias=AliasChoices("series_id", "data_series_id"),
    )
    ts: datetime = Field(
        ...,
        description="Observation instant (timezone-aware)",
        validation_alias=AliasChoices("ts", "timestamp"),
    )
    value: float = Field(..., description="Observed value")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("ts")
    @classmethod
    def ensure_aware(cls, value: datetime) -> datetime:
        return as_utc(value)
