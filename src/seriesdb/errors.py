"""Exception types raised by the data-access layer."""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError, SQLAlchemyError


class SeriesDbError(Exception):
    """Base class for seriesdb errors."""


class NotConnectedError(SeriesDbError):
    """No open connection, or no stored configuration to reconnect with."""


class QueryError(SeriesDbError):
    """A statement was rejected or could not be executed.

    Attributes:
        name: Class name of the underlying driver error
        code: SQLSTATE when the driver reports one, otherwise SQLAlchemy's code
        message: Driver message
        statement: SQL text that failed
    """

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        code: str | None = None,
        statement: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.name = name
        self.code = code
        self.statement = statement

    @classmethod
    def from_exception(cls, exc: BaseException, statement: str | None = None) -> QueryError:
        """Build a QueryError carrying the diagnostics of ``exc``."""
        orig = exc.orig if isinstance(exc, DBAPIError) else None
        source = orig if orig is not None else exc
        code = getattr(orig, "sqlstate", None)
        if code is None and isinstance(exc, SQLAlchemyError):
            code = exc.code
        message = str(source).strip() or type(source).__name__
        return cls(message, name=type(source).__name__, code=code, statement=statement)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, code={self.code!r}, message={self.message!r})"


class ReconnectExhaustedError(QueryError):
    """The connection kept dropping and the reconnect budget ran out."""
