"""Data-access layer for named time series stored in PostgreSQL."""

from seriesdb.db import SeriesStore
from seriesdb.errors import NotConnectedError, QueryError, ReconnectExhaustedError, SeriesDbError
from seriesdb.models import ConnectionConfig, Point, Series

__all__ = [
    "ConnectionConfig",
    "NotConnectedError",
    "Point",
    "QueryError",
    "ReconnectExhaustedError",
    "Series",
    "SeriesDbError",
    "SeriesStore",
]
