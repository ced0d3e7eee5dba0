"""Set-membership filters for ``column IN (<caller supplied set>)`` queries.

A filter turns a sequence of identifiers into one bind parameter and renders a
CTE producing one ``token`` row per member. Queries join against the CTE, so
the repositories never depend on how the set travels to the database.

``CsvSetEncoder`` packs the members into a comma-delimited string and
unpacks them server side with ``generate_series`` + ``split_part``: row ``n``
carries the n-th token for ``n`` in ``1 .. count(',') + 1``. ``ArraySetFilter``
binds a native PostgreSQL array instead.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol


class SetFilter(Protocol):
    """Binds a set of values and renders the CTE that expands it into rows."""

    def bind(self, values: Sequence[object]) -> object:
        """Return the parameter value carrying ``values``."""
        ...

    def cte(self, param: str, name: str = "id_generator") -> str:
        """Return ``name AS (...)`` yielding one ``token`` (text) row per member."""
        ...


def unique(values: Iterable[object]) -> list[object]:
    """Drop repeated values, keeping first-seen order."""
    return list(dict.fromkeys(values))


class CsvSetEncoder:
    """Comma-delimited string encoding of a set of identifiers."""

    delimiter = ","

    def encode(self, values: Sequence[object]) -> str:
        """Join ``values`` into a single delimited string.

        Raises:
            ValueError: if ``values`` is empty or a value contains the delimiter
        """
        if not values:
            raise ValueError("Cannot encode an empty set")
        tokens = [str(value) for value in values]
        for token in tokens:
            if self.delimiter in token:
                raise ValueError(f"Value {token!r} contains the delimiter {self.delimiter!r}")
        return self.delimiter.join(tokens)

    def token_count(self, encoded: str) -> int:
        """Number of rows the CTE generates for ``encoded``."""
        return encoded.count(self.delimiter) + 1

    def decode(self, encoded: str) -> list[str]:
        """Tokens exactly as the generated SQL extracts them, in position order."""
        # split_part(encoded, delimiter, n) for n in 1..token_count
        parts = encoded.split(self.delimiter)
        return [parts[n - 1] for n in range(1, self.token_count(encoded) + 1)]

    def bind(self, values: Sequence[object]) -> str:
        return self.encode(values)

    def cte(self, param: str, name: str = "id_generator") -> str:
        d = self.delimiter
        return (
            f"{name} AS ("
            f"SELECT split_part(s.packed, '{d}', n) AS token "
            f"FROM (SELECT CAST(:{param} AS text) AS packed) AS s, "
            f"generate_series(1, length(s.packed) - length(replace(s.packed, '{d}', '')) + 1) AS n"
            ")"
        )


class ArraySetFilter:
    """Native array bind: ``unnest(:param)`` over a list parameter."""

    def bind(self, values: Sequence[object]) -> list[str]:
        if not values:
            raise ValueError("Cannot bind an empty set")
        return [str(value) for value in values]

    def cte(self, param: str, name: str = "id_generator") -> str:
        return f"{name} AS (SELECT DISTINCT unnest(CAST(:{param} AS text[])) AS token)"


def make_set_filter(kind: str) -> SetFilter:
    """Return the filter registered under ``kind`` (``csv`` or ``array``)."""
    if kind == "csv":
        return CsvSetEncoder()
    if kind == "array":
        return ArraySetFilter()
    raise ValueError(f"Unknown set filter: {kind!r}")
