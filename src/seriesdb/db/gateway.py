"""Resilient statement execution over the managed connection.

Every statement runs against ``ConnectionManager.connection`` inside its own
savepoint. A transport failure (see ``is_disconnect_error``) triggers a
reconnect with the stored configuration and the same statement is retried;
anything else is logged, the connection is rolled back to the statement's
savepoint and a failed ``QueryResult`` is returned instead of raising. Earlier
uncommitted writes in the same transaction survive a failed statement.
"""

from __future__ import annotations

import errno
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from opentelemetry.trace import Span, Status, StatusCode
from sqlalchemy import text
from sqlalchemy.engine import CursorResult, NestedTransaction
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.sql.expression import TextClause

from seriesdb.config import settings
from seriesdb.db.connection import ConnectionManager
from seriesdb.errors import QueryError, ReconnectExhaustedError
from seriesdb.logging import ATTR_ERROR_CODE, ATTR_RECONNECTS, get_logger, statement_span

logger = get_logger(__name__)

Params = Mapping[str, Any] | Sequence[Mapping[str, Any]] | None

_DISCONNECT_ERRNOS = frozenset({errno.EPIPE, errno.ECONNRESET})
_TRANSPORT_ERRORS = (BrokenPipeError, ConnectionResetError)


def is_disconnect_error(exc: BaseException) -> bool:
    """True when ``exc`` means the connection itself is unusable.

    Covers SQLAlchemy's dialect-level disconnect detection
    (``connection_invalidated``) and broken-pipe / reset transport errors,
    whether raised directly or wrapped by the driver.
    """
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return True
        if exc.orig is None:
            return False
        exc = exc.orig
    if isinstance(exc, _TRANSPORT_ERRORS):
        return True
    return isinstance(exc, OSError) and exc.errno in _DISCONNECT_ERRNOS


@dataclass(frozen=True)
class QueryResult:
    """Outcome of one gateway call.

    A successful call with no rows has ``ok`` set and an empty ``rows`` list;
    a failed call carries ``error``.
    """

    rows: list[tuple[Any, ...]] = field(default_factory=list)
    rowcount: int = 0
    error: QueryError | None = None

    @classmethod
    def success(cls, rows: list[tuple[Any, ...]], rowcount: int = 0) -> QueryResult:
        return cls(rows=rows, rowcount=rowcount)

    @classmethod
    def failure(cls, error: QueryError) -> QueryResult:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> list[tuple[Any, ...]]:
        """Return the rows, raising the carried error if the call failed."""
        if self.error is not None:
            raise self.error
        return self.rows

    def first(self) -> tuple[Any, ...] | None:
        rows = self.unwrap()
        return rows[0] if rows else None

    def scalar(self) -> Any:
        row = self.first()
        return None if row is None else row[0]


class QueryGateway:
    """Runs statements on the managed connection, reconnecting on transport loss.

    Args:
        manager: Owner of the live connection
        reconnect_attempts: Reconnects per call before giving up, 0 = never give up
        backoff_seconds: Delay before the first reconnect, doubled each attempt
        backoff_max_seconds: Upper bound for the delay
        sleep: Delay function (swapped out in tests)
    """

    def __init__(
        self,
        manager: ConnectionManager,
        *,
        reconnect_attempts: int | None = None,
        backoff_seconds: float | None = None,
        backoff_max_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.manager = manager
        self.reconnect_attempts = (
            settings.reconnect_attempts if reconnect_attempts is None else reconnect_attempts
        )
        self.backoff_seconds = (
            settings.reconnect_backoff_seconds if backoff_seconds is None else backoff_seconds
        )
        self.backoff_max_seconds = (
            settings.reconnect_backoff_max_seconds
            if backoff_max_seconds is None
            else backoff_max_seconds
        )
        self._sleep = sleep

    def query(
        self,
        sql: str | TextClause,
        params: Params = None,
        *,
        max_rows: int | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """Run a read statement and return its rows as positional tuples."""

        def fetch(result: CursorResult[Any]) -> QueryResult:
            if max_rows:
                rows = result.fetchmany(max_rows)
                # Drop the unread remainder so the cursor is not left open.
                result.close()
            else:
                rows = result.fetchall()
            return QueryResult.success([tuple(row) for row in rows], len(rows))

        return self._run("query", sql, params, options, fetch)

    def execute(
        self,
        sql: str | TextClause,
        params: Params = None,
        *,
        options: Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """Run a write statement.

        ``RETURNING`` output (e.g. generated ids) comes back in ``rows``; a
        list of parameter mappings is executed as a batch.
        """

        def fetch(result: CursorResult[Any]) -> QueryResult:
            rows = [tuple(row) for row in result.fetchall()] if result.returns_rows else []
            return QueryResult.success(rows, result.rowcount)

        return self._run("execute", sql, params, options, fetch)

    def commit(self) -> None:
        """Commit the current transaction."""
        self.manager.connection.commit()

    def rollback(self) -> None:
        """Roll back the current transaction."""
        self.manager.connection.rollback()

    def _run(
        self,
        kind: str,
        sql: str | TextClause,
        params: Params,
        options: Mapping[str, Any] | None,
        fetch: Callable[[CursorResult[Any]], QueryResult],
    ) -> QueryResult:
        statement = sql if isinstance(sql, TextClause) else text(sql)
        attempts = 0

        with statement_span(kind, str(statement)) as span:
            while True:
                savepoint = None
                try:
                    connection = self.manager.connection
                    savepoint = connection.begin_nested()
                    result = connection.execute(
                        statement,
                        list(params) if isinstance(params, Sequence) else params,
                        execution_options=dict(options) if options else None,
                    )
                    outcome = fetch(result)
                    savepoint.commit()
                except (SQLAlchemyError, *_TRANSPORT_ERRORS) as e:
                    if not is_disconnect_error(e):
                        return self._fail(kind, statement, e, span, savepoint)
                    logger.warning(f"Connection lost during {kind}: {e}")
                else:
                    span.set_attribute(ATTR_RECONNECTS, attempts)
                    return outcome

                attempts, error = self._reconnect(attempts)
                if error is not None:
                    span.set_status(Status(StatusCode.ERROR, error.message))
                    return QueryResult.failure(error)

    def _reconnect(self, attempts: int) -> tuple[int, ReconnectExhaustedError | None]:
        """Reconnect until it works or the budget runs out."""
        last_error: BaseException | None = None
        while True:
            attempts += 1
            if self.reconnect_attempts and attempts > self.reconnect_attempts:
                message = f"Gave up after {self.reconnect_attempts} reconnect attempts"
                if last_error is not None:
                    message += f": {last_error}"
                logger.error(message)
                return attempts, ReconnectExhaustedError(
                    message, name=type(last_error).__name__ if last_error else None
                )

            delay = min(self.backoff_seconds * 2 ** (attempts - 1), self.backoff_max_seconds)
            if delay > 0:
                logger.info(f"Reconnecting in {delay:.2f}s (attempt {attempts})")
                self._sleep(delay)
            try:
                self.manager.connect()
            except (SQLAlchemyError, OSError) as e:
                last_error = e
                logger.warning(f"Reconnect attempt {attempts} failed: {e}")
            else:
                return attempts, None

    def _fail(
        self,
        kind: str,
        statement: TextClause,
        exc: BaseException,
        span: Span,
        savepoint: NestedTransaction | None,
    ) -> QueryResult:
        error = QueryError.from_exception(exc, str(statement))
        logger.error(
            f"{kind} failed: name={error.name} code={error.code} message={error.message} "
            f"statement={error.statement}"
        )
        span.record_exception(exc)
        span.set_status(Status(StatusCode.ERROR, error.message))
        if error.code:
            span.set_attribute(ATTR_ERROR_CODE, error.code)
        # Only this statement is undone; earlier writes stay pending.
        if savepoint is not None and savepoint.is_active:
            try:
                savepoint.rollback()
            except SQLAlchemyError as e:
                logger.warning(f"Rollback to savepoint after failed {kind} did not complete: {e}")
        return QueryResult.failure(error)
