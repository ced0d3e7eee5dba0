"""Tests for Pydantic models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from seriesdb.models import ConnectionConfig, Point, Series


def test_series_accepts_column_name() -> None:
    """Series can be built straight from a ``series_name`` column."""
    series = Series.model_validate({"id": 1, "series_name": "temperature"})

    assert series.name == "temperature"
    assert series == Series(id=1, name="temperature")


def test_series_is_immutable() -> None:
    series = Series(id=1, name="temperature")

    with pytest.raises(ValidationError):
        series.name = "other"  # type: ignore[misc]


def test_point_accepts_storage_aliases() -> None:
    point = Point.model_validate(
        {"data_series_id": 3, "timestamp": datetime(2024, 1, 1, 12, 0, tzinfo=UTC), "value": 12.5}
    )

    assert point.series_id == 3
    assert point.value == 12.5


def test_point_naive_timestamp_is_utc() -> None:
    point = Point(series_id=1, ts=datetime(2024, 1, 1, 12, 0), value=1.0)

    assert point.ts.tzinfo is UTC
    assert point.ts.hour == 12


def test_point_keeps_offset_instant() -> None:
    """Offsets are preserved, so the instant is exact."""
    helsinki = timezone(timedelta(hours=2))
    point = Point(series_id=1, ts=datetime(2024, 1, 1, 14, 0, tzinfo=helsinki), value=1.0)

    assert point.ts == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert point.ts.utcoffset() == timedelta(hours=2)


def test_connection_config_database_alias() -> None:
    config = ConnectionConfig.model_validate(
        {"host": "db.local", "username": "u", "password": "p", "database": "analytics"}
    )

    assert config.schema_name == "analytics"
    assert config.password.get_secret_value() == "p"
    assert "p" not in repr(config.password)


def test_connection_config_requires_password() -> None:
    """A missing password is a validation error, not a silent empty login."""
    with pytest.raises(ValidationError, match="password"):
        ConnectionConfig(host="db.local", username="u")  # type: ignore[call-arg]


def test_connection_config_address() -> None:
    assert ConnectionConfig(host="db.local", username="u", password="p").address == "db.local"
    assert ConnectionConfig(host="db.local", port=1521, username="u", password="p").address == "db.local:1521"
