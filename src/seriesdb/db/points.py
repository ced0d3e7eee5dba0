"""Point storage and range queries."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

import polars as pl

from seriesdb.db.gateway import QueryGateway, QueryResult
from seriesdb.db.set_filter import CsvSetEncoder, SetFilter, unique
from seriesdb.logging import get_logger
from seriesdb.models import Point, as_utc

logger = get_logger(__name__)

POINTS_SCHEMA = {
    "series_id": pl.Int64,
    "ts": pl.Datetime(time_unit="us", time_zone="UTC"),
    "value": pl.Float64,
}

INSERT_POINT_SQL = """
    INSERT INTO data_point (ts, data_series_id, value)
    VALUES (:ts, :series_id, :value)
"""


def _as_point(point: Point | Mapping[str, Any]) -> Point:
    return point if isinstance(point, Point) else Point.model_validate(point)


def group_by_series(points: Iterable[Point]) -> dict[int, list[Point]]:
    """Partition points per series, keeping their original (time) order."""
    grouped: dict[int, list[Point]] = {}
    for point in points:
        grouped.setdefault(point.series_id, []).append(point)
    return grouped


class PointRepository:
    """Insertion and time-window selection of ``data_point`` rows."""

    def __init__(self, gateway: QueryGateway, set_filter: SetFilter | None = None) -> None:
        self.gateway = gateway
        self.set_filter = set_filter or CsvSetEncoder()

    def insert_point(self, point: Point | Mapping[str, Any]) -> QueryResult:
        """Insert one point.

        The generated row id is requested but only available in the raw
        result; it is not part of the point.
        """
        point = _as_point(point)
        return self.gateway.execute(
            INSERT_POINT_SQL + " RETURNING id",
            {"ts": point.ts, "series_id": point.series_id, "value": point.value},
        )

    def insert_points(self, points: Iterable[Point | Mapping[str, Any]]) -> int:
        """Insert many points in one batch and return how many were written.

        Raises:
            QueryError: if the batch failed
        """
        records = [
            {"ts": p.ts, "series_id": p.series_id, "value": p.value}
            for p in map(_as_point, points)
        ]
        if not records:
            return 0

        result = self.gateway.execute(INSERT_POINT_SQL, records)
        result.unwrap()
        logger.debug(f"Inserted {len(records)} points")
        return len(records)

    def select_points(
        self,
        series_ids: Sequence[int],
        start: datetime,
        end: datetime,
    ) -> list[Point]:
        """Points of ``series_ids`` with ``start <= ts < end``, oldest first.

        Ordering is across all requested series; use ``group_by_series`` for
        per-series lists.

        Raises:
            ValueError: if ``start`` is after ``end``
            QueryError: if the query failed
        """
        rows = self._select_rows(series_ids, start, end)
        return [Point(series_id=row[0], ts=row[1], value=row[2]) for row in rows]

    def select_points_frame(
        self,
        series_ids: Sequence[int],
        start: datetime,
        end: datetime,
    ) -> pl.DataFrame:
        """Same selection as ``select_points`` as a Polars DataFrame."""
        rows = self._select_rows(series_ids, start, end)
        if not rows:
            return pl.DataFrame(schema=POINTS_SCHEMA)
        return pl.DataFrame(rows, schema=POINTS_SCHEMA, orient="row")

    def _select_rows(
        self,
        series_ids: Sequence[int],
        start: datetime,
        end: datetime,
    ) -> list[tuple[Any, ...]]:
        start, end = as_utc(start), as_utc(end)
        if start > end:
            raise ValueError(f"start ({start}) is after end ({end})")

        ids = unique(int(series_id) for series_id in series_ids)
        if not ids:
            return []

        result = self.gateway.query(
            f"""
            WITH {self.set_filter.cte("series_ids")}
            SELECT dp.data_series_id, dp.ts, dp.value
            FROM data_point dp
            JOIN id_generator g ON dp.data_series_id = CAST(g.token AS BIGINT)
            WHERE dp.ts >= :start_ts AND dp.ts < :end_ts
            ORDER BY dp.ts ASC
            """,
            {
                "series_ids": self.set_filter.bind(ids),
                "start_ts": start,
                "end_ts": end,
            },
        )
        rows = result.unwrap()
        if rows:
            logger.debug(f"Points - sample row: {rows[0]}")
        return rows
