"""Data models for series, points and connection settings."""

from seriesdb.models.connection import ConnectionConfig
from seriesdb.models.series import Point, Series, as_utc

__all__ = ["ConnectionConfig", "Point", "Series", "as_utc"]
