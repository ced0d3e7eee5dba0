"""PostgreSQL data layer for named series and their points.

A single managed connection, a gateway that reconnects on transport loss,
and repositories for series metadata and point ranges.
"""

from .connection import ConnectionManager, build_url
from .gateway import QueryGateway, QueryResult, is_disconnect_error
from .points import PointRepository, group_by_series
from .series import SeriesRepository
from .set_filter import ArraySetFilter, CsvSetEncoder, SetFilter, make_set_filter
from .store import SeriesStore

__all__ = [
    "ArraySetFilter",
    "ConnectionManager",
    "CsvSetEncoder",
    "PointRepository",
    "QueryGateway",
    "QueryResult",
    "SeriesRepository",
    "SeriesStore",
    "SetFilter",
    "build_url",
    "group_by_series",
    "is_disconnect_error",
    "make_set_filter",
]
