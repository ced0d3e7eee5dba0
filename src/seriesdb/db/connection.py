"""Single-connection lifecycle management.

``ConnectionManager`` owns exactly one live SQLAlchemy connection plus the
configuration it was opened with, so the connection can be re-established
after a transport failure without the caller supplying credentials again.
There is no pool: the engine uses ``NullPool`` and each
``connect()`` opens a fresh DBAPI connection.
"""

from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from seriesdb.errors import NotConnectedError
from seriesdb.logging import get_logger
from seriesdb.models import ConnectionConfig

logger = get_logger(__name__)

DRIVER = "postgresql+psycopg"


def build_url(config: ConnectionConfig) -> URL:
    """Build the SQLAlchemy URL for ``config``."""
    return URL.create(
        DRIVER,
        username=config.username,
        password=config.password.get_secret_value() or None,
        host=config.host,
        port=config.port,
        database=config.dbname,
    )


class ConnectionManager:
    """Owns the live connection and the last configuration used to open it."""

    def __init__(self, config: ConnectionConfig | None = None) -> None:
        self._config: ConnectionConfig | None = config
        self._engine: Engine | None = None
        self._connection: Connection | None = None

    @property
    def last_config(self) -> ConnectionConfig | None:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    @property
    def connection(self) -> Connection:
        """The live connection."""
        if self._connection is None:
            raise NotConnectedError("Not connected; call connect() first")
        return self._connection

    def _make_engine(self, config: ConnectionConfig) -> Engine:
        return create_engine(build_url(config), poolclass=NullPool)

    def connect(self, config: ConnectionConfig | None = None) -> Connection:
        """Open a session, reusing the last configuration when none is given.

        A new ``config`` replaces the stored default. When the configuration
        names a schema it is pinned on the search path. Driver errors (bad
        credentials, unreachable host) propagate.
        """
        if config is None:
            if self._config is None:
                raise NotConnectedError("No connection config to reconnect with")
            config = self._config

        self._discard_connection()
        if config != self._config:
            self._dispose_engine()
            self._config = config
        if self._engine is None:
            self._engine = self._make_engine(config)

        logger.info(f"Connecting to {config.address}")
        connection = self._engine.connect()

        if config.schema_name:
            quoted = connection.dialect.identifier_preparer.quote_identifier(config.schema_name)
            try:
                connection.execute(
                    text("SELECT set_config('search_path', :search_path, false)"),
                    {"search_path": quoted},
                )
                # a later rollback would otherwise undo the session setting
                connection.commit()
            except SQLAlchemyError:
                connection.close()
                raise
            logger.debug(f"Search path set to {quoted}")

        self._connection = connection
        return connection

    def end(self) -> None:
        """Close the current connection.

        Raises:
            NotConnectedError: if no connection is open
        """
        if self._connection is None:
            raise NotConnectedError("No open connection to close")
        connection, self._connection = self._connection, None
        try:
            connection.close()
        finally:
            self._dispose_engine()
        logger.info("Connection closed")

    def _discard_connection(self) -> None:
        """Invalidate the previous handle, if any, before replacing it."""
        if self._connection is None:
            return
        previous, self._connection = self._connection, None
        try:
            previous.invalidate()
        except SQLAlchemyError as e:
            logger.debug(f"Ignoring error while discarding stale connection: {e}")

    def _dispose_engine(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
