"""Shared fakes standing in for a live PostgreSQL connection."""

from __future__ import annotations

import errno
from typing import Any

from sqlalchemy.exc import IntegrityError, OperationalError

from seriesdb.db.gateway import QueryGateway


class FakeResult:
    """Minimal CursorResult: rows, rowcount and returns_rows."""

    def __init__(self, rows: list[tuple[Any, ...]] | None = None, rowcount: int | None = None) -> None:
        self._rows = list(rows or [])
        self.rowcount = len(self._rows) if rowcount is None else rowcount
        self.returns_rows = rows is not None
        self.closed = False

    def fetchall(self) -> list[tuple[Any, ...]]:
        return list(self._rows)

    def fetchmany(self, size: int) -> list[tuple[Any, ...]]:
        return list(self._rows[:size])

    def close(self) -> None:
        self.closed = True


class FakeSavepoint:
    """Nested transaction that reports back to its connection."""

    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self.is_active = True

    def commit(self) -> None:
        self.is_active = False
        self.connection.savepoint_commits += 1

    def rollback(self) -> None:
        self.is_active = False
        self.connection.savepoint_rollbacks += 1


class FakeConnection:
    """Replays scripted responses (FakeResult or exception) per execute call."""

    def __init__(self, *responses: FakeResult | BaseException) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[str, Any, Any]] = []
        self.commits = 0
        self.rollbacks = 0
        self.savepoint_commits = 0
        self.savepoint_rollbacks = 0

    def begin_nested(self) -> FakeSavepoint:
        return FakeSavepoint(self)

    def execute(self, statement: Any, params: Any = None, execution_options: Any = None) -> FakeResult:
        self.calls.append((str(statement), params, execution_options))
        response = self.responses.pop(0) if self.responses else FakeResult([])
        if isinstance(response, BaseException):
            raise response
        return response

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    @property
    def statements(self) -> list[str]:
        return [" ".join(sql.split()) for sql, _, _ in self.calls]


class FakeManager:
    """ConnectionManager stand-in handing out queued connections on connect()."""

    def __init__(self, connection: FakeConnection, *reconnects: FakeConnection | BaseException) -> None:
        self.connection = connection
        self.pending = list(reconnects)
        self.connects = 0

    def connect(self, config: Any = None) -> FakeConnection:
        self.connects += 1
        if not self.pending:
            raise OperationalError("connect", {}, ConnectionRefusedError("connection refused"))
        nxt = self.pending.pop(0)
        if isinstance(nxt, BaseException):
            raise nxt
        self.connection = nxt
        return nxt


def broken_pipe(statement: str = "SELECT 1") -> OperationalError:
    """Driver error wrapping a broken pipe."""
    return OperationalError(statement, {}, BrokenPipeError(errno.EPIPE, "Broken pipe"))


class UniqueViolation(Exception):
    sqlstate = "23505"


def unique_violation(statement: str = "INSERT") -> IntegrityError:
    """Constraint violation as raised through SQLAlchemy."""
    return IntegrityError(statement, {}, UniqueViolation("duplicate key value violates unique constraint"))


def make_gateway(manager: FakeManager, **kwargs: Any) -> tuple[QueryGateway, list[float]]:
    """Gateway over ``manager`` recording backoff delays instead of sleeping."""
    delays: list[float] = []
    kwargs.setdefault("reconnect_attempts", 3)
    kwargs.setdefault("backoff_seconds", 0.1)
    kwargs.setdefault("backoff_max_seconds", 1.0)
    gateway = QueryGateway(manager, sleep=delays.append, **kwargs)  # type: ignore[arg-type]
    return gateway, delays
