from __future__ import annotations

import math

import pytest

from tabular_io.exceptions import CoercionError, DataError
from tabular_io.normalize import (
    clean_column_names,
    coerce_values,
    concat_tables,
    unify_schemas,
)
from tabular_io.table import Table
from tabular_io.types import ColumnType


# ---------------------------------------------------------------------------
# Coercion rules
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "values, source, target, expected",
    [
        ([1, 2], ColumnType.INTEGER, ColumnType.FLOAT, [1.0, 2.0]),
        ([1.0, -3.0], ColumnType.FLOAT, ColumnType.INTEGER, [1, -3]),
        ([True, False], ColumnType.BOOLEAN, ColumnType.INTEGER, [1, 0]),
        ([True, False], ColumnType.BOOLEAN, ColumnType.FLOAT, [1.0, 0.0]),
        ([0, 1], ColumnType.INTEGER, ColumnType.BOOLEAN, [False, True]),
        ([1.0, 0.0], ColumnType.FLOAT, ColumnType.BOOLEAN, [True, False]),
        (["TRUE", "F"], ColumnType.TEXT, ColumnType.BOOLEAN, [True, False]),
        (["7", " 8"], ColumnType.TEXT, ColumnType.INTEGER, [7, 8]),
        ([62, 124], ColumnType.INTEGER, ColumnType.TEXT, ["62", "124"]),
        ([True], ColumnType.BOOLEAN, ColumnType.TEXT, ["True"]),
    ],
)
def test_coercion_rules(
    values: list,
    source: ColumnType,
    target: ColumnType,
    expected: list,
) -> None:
    assert coerce_values(values, source, target) == expected


def test_float_to_text_marks_undefined_as_na() -> None:
    assert coerce_values([0.5, float("nan")], ColumnType.FLOAT, ColumnType.TEXT) == ["0.5", "NA"]


def test_text_to_boolean_follows_configured_tokens(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABULAR_IO_DELIMITED__TRUE_TOKENS", '["Y"]')
    monkeypatch.setenv("TABULAR_IO_DELIMITED__FALSE_TOKENS", '["N"]')

    assert coerce_values(["Y", "N"], ColumnType.TEXT, ColumnType.BOOLEAN) == [True, False]


def test_missing_text_becomes_undefined_float() -> None:
    result = coerce_values(["1.5", ""], ColumnType.TEXT, ColumnType.FLOAT)

    assert result[0] == 1.5
    assert math.isnan(result[1])


@pytest.mark.parametrize(
    "values, source, target, bad_row",
    [
        ([1.0, 2.5], ColumnType.FLOAT, ColumnType.INTEGER, 1),
        ([float("nan")], ColumnType.FLOAT, ColumnType.INTEGER, 0),
        ([0, 1, 2], ColumnType.INTEGER, ColumnType.BOOLEAN, 2),
        (["1", "two"], ColumnType.TEXT, ColumnType.INTEGER, 1),
        (["yes"], ColumnType.TEXT, ColumnType.BOOLEAN, 0),
    ],
)
def test_coercion_failures_name_the_row(
    values: list,
    source: ColumnType,
    target: ColumnType,
    bad_row: int,
) -> None:
    with pytest.raises(CoercionError) as ctx:
        coerce_values(values, source, target, column="c")

    assert ctx.value.context["row"] == bad_row
    assert ctx.value.context["source_type"] == source.value


# ---------------------------------------------------------------------------
# Column names
# ---------------------------------------------------------------------------


def test_clean_column_names() -> None:
    assert clean_column_names([" a ", "", "a", None, "a", 2019]) == [
        "a",
        "column_2",
        "a_2",
        "column_4",
        "a_3",
        "2019",
    ]


def test_clean_column_names_avoids_collisions_with_generated_names() -> None:
    assert clean_column_names(["a_2", "a", "a"]) == ["a_2", "a", "a_3"]


# ---------------------------------------------------------------------------
# Schema unification
# ---------------------------------------------------------------------------


def test_unify_widens_integer_and_float() -> None:
    first = Table({"x": [1, 2]})
    second = Table({"x": [0.5]})

    unified = unify_schemas([first, second])

    assert [t.types["x"] for t in unified] == [ColumnType.FLOAT, ColumnType.FLOAT]
    assert unified[0].column("x").values == (1.0, 2.0)
    # Inputs are untouched
    assert first.types["x"] is ColumnType.INTEGER


def test_unify_falls_back_to_text() -> None:
    unified = unify_schemas([Table({"x": [1]}), Table({"x": ["a"]})])

    assert unified[0].types["x"] is ColumnType.TEXT
    assert unified[0].column("x").values == ("1",)


def test_unify_uses_first_table_column_order() -> None:
    first = Table({"a": [1], "b": ["x"]})
    second = Table({"b": ["y"], "a": [2]})

    unified = unify_schemas([first, second])

    assert unified[1].columns == ["a", "b"]


def test_unify_rejects_different_columns() -> None:
    with pytest.raises(DataError) as ctx:
        unify_schemas([Table({"a": [1]}), Table({"b": [1]})])

    assert ctx.value.code == "schema_column_mismatch"
    assert ctx.value.context["missing_columns"] == ["a"]


def test_concat_tables_stacks_rows() -> None:
    combined = concat_tables(
        [
            Table({"school": ["North"], "admitted": [62]}),
            Table({"school": ["South", "East"], "admitted": [124.5, 140.0]}),
        ]
    )

    assert combined.shape == (3, 2)
    assert combined.types["admitted"] is ColumnType.FLOAT
    assert combined.column("school").values == ("North", "South", "East")


def test_concat_of_nothing_is_an_empty_table() -> None:
    assert concat_tables([]).shape == (0, 0)
