"""Facade bundling one connection with the gateway and both repositories."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from types import TracebackType
from typing import Any

import polars as pl
from sqlalchemy.engine import Connection

from seriesdb.config import Settings, settings
from seriesdb.db.connection import ConnectionManager
from seriesdb.db.gateway import QueryGateway, QueryResult
from seriesdb.db.points import PointRepository
from seriesdb.db.series import SeriesRepository
from seriesdb.db.set_filter import SetFilter, make_set_filter
from seriesdb.models import ConnectionConfig, Point, Series


class SeriesStore:
    """Series and point access over a single managed connection.

    Architecture:
    - ConnectionManager owns the connection and the last config
    - QueryGateway executes statements and reconnects on transport loss
    - SeriesRepository / PointRepository build SQL and map rows to models

    Tables:
    - data_series: (id, series_name) with series_name unique
    - data_point: (id, ts, data_series_id, value)
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        manager: ConnectionManager | None = None,
        gateway: QueryGateway | None = None,
        set_filter: SetFilter | None = None,
    ) -> None:
        self.manager = manager or ConnectionManager(config)
        self.gateway = gateway or QueryGateway(self.manager)
        set_filter = set_filter or make_set_filter(settings.set_filter)
        self.series = SeriesRepository(self.gateway, set_filter)
        self.points = PointRepository(self.gateway, set_filter)

    @classmethod
    def from_settings(cls, app_settings: Settings | None = None) -> SeriesStore:
        """Build a store configured from ``Settings`` (env / .env)."""
        app_settings = app_settings or settings
        manager = ConnectionManager(app_settings.connection_config())
        gateway = QueryGateway(
            manager,
            reconnect_attempts=app_settings.reconnect_attempts,
            backoff_seconds=app_settings.reconnect_backoff_seconds,
            backoff_max_seconds=app_settings.reconnect_backoff_max_seconds,
        )
        return cls(
            manager=manager,
            gateway=gateway,
            set_filter=make_set_filter(app_settings.set_filter),
        )

    # Connection lifecycle

    def connect(self, config: ConnectionConfig | None = None) -> Connection:
        return self.manager.connect(config)

    def end(self) -> None:
        self.manager.end()

    def commit(self) -> None:
        self.gateway.commit()

    def __enter__(self) -> SeriesStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.manager.is_connected:
            self.end()

    # Series

    def get_series(self, name: str) -> Series | None:
        return self.series.get_series(name)

    def create_series(self, name: str) -> Series:
        return self.series.create_series(name)

    def fetch_series(self, name: str) -> Series:
        return self.series.fetch_series(name)

    def select_series_by_names(self, names: Sequence[str] | None = None) -> list[Series]:
        return self.series.select_series_by_names(names)

    # Points

    def insert_point(self, point: Point | Mapping[str, Any]) -> QueryResult:
        return self.points.insert_point(point)

    def insert_points(self, points: Iterable[Point | Mapping[str, Any]]) -> int:
        return self.points.insert_points(points)

    def select_points(self, series_ids: Sequence[int], start: datetime, end: datetime) -> list[Point]:
        return self.points.select_points(series_ids, start, end)

    def select_points_frame(
        self, series_ids: Sequence[int], start: datetime, end: datetime
    ) -> pl.DataFrame:
        return self.points.select_points_frame(series_ids, start, end)
