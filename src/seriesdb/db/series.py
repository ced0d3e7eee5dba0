"""Series metadata access."""

from __future__ import annotations

from collections.abc import Sequence

from seriesdb.db.gateway import QueryGateway
from seriesdb.db.set_filter import CsvSetEncoder, SetFilter, unique
from seriesdb.errors import SeriesDbError
from seriesdb.logging import get_logger
from seriesdb.models import Series

logger = get_logger(__name__)


class SeriesRepository:
    """Lookup and creation of ``data_series`` rows."""

    def __init__(self, gateway: QueryGateway, set_filter: SetFilter | None = None) -> None:
        self.gateway = gateway
        self.set_filter = set_filter or CsvSetEncoder()

    def get_series(self, name: str) -> Series | None:
        """Return the series called ``name``, or None if there is none.

        Raises:
            QueryError: if the lookup failed
        """
        result = self.gateway.query(
            "SELECT id FROM data_series WHERE series_name = :series_name",
            {"series_name": name},
        )
        series_id = result.scalar()
        if series_id is None:
            return None
        return Series(id=series_id, name=name)

    def create_series(self, name: str) -> Series:
        """Insert a series and return it with its generated id.

        If a concurrent writer created the same name first, the existing row
        is returned instead of a duplicate.
        """
        result = self.gateway.execute(
            """
            INSERT INTO data_series (series_name)
            VALUES (:series_name)
            ON CONFLICT (series_name) DO NOTHING
            RETURNING id
            """,
            {"series_name": name},
        )
        series_id = result.scalar()
        if series_id is not None:
            logger.info(f"Created series {name!r} with id {series_id}")
            return Series(id=series_id, name=name)

        existing = self.get_series(name)
        if existing is None:
            raise SeriesDbError(f"Series {name!r} was neither inserted nor found")
        logger.debug(f"Series {name!r} already existed with id {existing.id}")
        return existing

    def fetch_series(self, name: str) -> Series:
        """Get-or-create the series called ``name``."""
        return self.get_series(name) or self.create_series(name)

    def select_series_by_names(self, names: Sequence[str] | None = None) -> list[Series]:
        """Return the series whose names are in ``names`` (all series when None).

        Order is not guaranteed; names without a series are skipped.
        """
        if names is None:
            result = self.gateway.query("SELECT id, series_name FROM data_series")
        else:
            wanted = unique(names)
            if not wanted:
                return []
            result = self.gateway.query(
                f"""
                WITH {self.set_filter.cte("series_names")}
                SELECT ds.id, ds.series_name
                FROM data_series ds
                JOIN id_generator g ON ds.series_name = g.token
                """,
                {"series_names": self.set_filter.bind(wanted)},
            )

        rows = result.unwrap()
        if rows:
            logger.debug(f"Series by names - sample row: {rows[0]}")
        return [Series(id=row[0], name=row[1]) for row in rows]
