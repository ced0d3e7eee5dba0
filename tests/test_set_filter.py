"""Tests for the delimited-string set encoding."""

import pytest

from seriesdb.db.set_filter import ArraySetFilter, CsvSetEncoder, make_set_filter


def test_single_value_yields_one_token() -> None:
    encoder = CsvSetEncoder()

    encoded = encoder.encode([7])

    assert encoded == "7"
    assert encoder.token_count(encoded) == 1
    assert encoder.decode(encoded) == ["7"]


def test_multiple_values_keep_order_and_count() -> None:
    encoder = CsvSetEncoder()

    encoded = encoder.encode([7, 42, 100])

    assert encoded == "7,42,100"
    assert encoder.decode(encoded) == ["7", "42", "100"]
    assert encoder.token_count(encoded) == encoded.count(",") + 1 == 3


def test_last_token_is_not_dropped_or_repeated() -> None:
    encoder = CsvSetEncoder()

    tokens = encoder.decode(encoder.encode(["a", "bb", "ccc"]))

    assert tokens[-1] == "ccc"
    assert len(tokens) == len(set(tokens)) == 3


def test_encode_rejects_empty_set() -> None:
    with pytest.raises(ValueError):
        CsvSetEncoder().encode([])


def test_encode_rejects_embedded_delimiter() -> None:
    with pytest.raises(ValueError, match="delimiter"):
        CsvSetEncoder().encode(["a,b"])


def test_csv_cte_generates_one_row_per_token() -> None:
    sql = CsvSetEncoder().cte("ids")

    assert sql.startswith("id_generator AS (")
    assert "CAST(:ids AS text) AS packed" in sql
    assert "split_part(s.packed, ',', n) AS token" in sql
    assert "generate_series(1, length(s.packed) - length(replace(s.packed, ',', '')) + 1)" in sql


def test_array_filter_binds_text_list() -> None:
    array_filter = ArraySetFilter()

    assert array_filter.bind([1, 2]) == ["1", "2"]
    assert "unnest(CAST(:ids AS text[]))" in array_filter.cte("ids")


def test_make_set_filter() -> None:
    assert isinstance(make_set_filter("csv"), CsvSetEncoder)
    assert isinstance(make_set_filter("array"), ArraySetFilter)
    with pytest.raises(ValueError):
        make_set_filter("json")
