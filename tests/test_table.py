from __future__ import annotations

import math

import pandas as pd
import pytest

from tabular_io.exceptions import CoercionError, DataError, NotFoundError, NumericError
from tabular_io.table import Column, Table, Vector
from tabular_io.types import ColumnType


@pytest.fixture
def admissions() -> Table:
    return Table(
        {
            "school": ["North", "South", "East"],
            "admitted": [62, 124, 140],
            "selective": [True, False, True],
        }
    )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_types_are_inferred_from_native_values(admissions: Table) -> None:
    assert admissions.types == {
        "school": ColumnType.TEXT,
        "admitted": ColumnType.INTEGER,
        "selective": ColumnType.BOOLEAN,
    }
    assert admissions.shape == (3, 3)
    assert len(admissions) == 3
    assert "school" in admissions


def test_declared_types_override_inference() -> None:
    table = Table({"admitted": [62, 124]}, types={"admitted": "float"})

    assert table.types["admitted"] is ColumnType.FLOAT
    assert table.column("admitted").values == (62.0, 124.0)


def test_columns_must_have_equal_length() -> None:
    with pytest.raises(DataError) as ctx:
        Table({"a": [1, 2], "b": [1]})

    assert ctx.value.code == "table_length_mismatch"


def test_types_for_unknown_columns_are_rejected() -> None:
    with pytest.raises(NotFoundError):
        Table({"a": [1]}, types={"b": "integer"})


def test_from_records_rejects_duplicate_names() -> None:
    with pytest.raises(DataError) as ctx:
        Table.from_records(["a", "a"], [(1, 2)])

    assert ctx.value.code == "table_duplicate_column"


def test_from_records_parses_text_when_asked() -> None:
    table = Table.from_records(["n", "flag"], [("1", "TRUE"), ("2", "F")], parse_text=True)

    assert table.types == {"n": ColumnType.INTEGER, "flag": ColumnType.BOOLEAN}
    assert table.column("n").values == (1, 2)


def test_from_dataframe_maps_dtypes() -> None:
    df = pd.DataFrame(
        {
            "a": [1, 2],
            "b": [0.5, 1.5],
            "c": ["x", "y"],
            "d": [True, False],
        }
    )

    table = Table.from_dataframe(df)

    assert table.types == {
        "a": ColumnType.INTEGER,
        "b": ColumnType.FLOAT,
        "c": ColumnType.TEXT,
        "d": ColumnType.BOOLEAN,
    }
    assert table.column("c").values == ("x", "y")
    assert table.to_dataframe()["a"].tolist() == [1, 2]


def test_empty_table() -> None:
    table = Table()

    assert table.shape == (0, 0)
    assert table.columns == []


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------


def test_row_access_supports_negative_positions(admissions: Table) -> None:
    assert admissions.row(0) == {"school": "North", "admitted": 62, "selective": True}
    assert admissions.row(-1)["school"] == "East"

    with pytest.raises(NotFoundError):
        admissions.row(3)


def test_column_snapshot(admissions: Table) -> None:
    column = admissions.column("admitted")

    assert isinstance(column, Column)
    assert column.dtype is ColumnType.INTEGER
    assert column.values == (62, 124, 140)
    assert len(column) == 3


def test_unknown_column_is_not_found(admissions: Table) -> None:
    with pytest.raises(NotFoundError) as ctx:
        admissions["missing"]

    assert ctx.value.context["available_columns"] == ["school", "admitted", "selective"]


def test_getitem_returns_a_copy(admissions: Table) -> None:
    series = admissions["admitted"]
    series[0] = 0

    assert admissions.row(0)["admitted"] == 62


def test_rows_slice_head_select(admissions: Table) -> None:
    assert [row["school"] for row in admissions.rows()] == ["North", "South", "East"]
    assert admissions.head(2).n_rows == 2
    assert admissions.slice(1).column("school").values == ("South", "East")

    selected = admissions.select(["admitted", "school"])
    assert selected.columns == ["admitted", "school"]
    assert selected.types["admitted"] is ColumnType.INTEGER


def test_summary_lists_types_and_counts() -> None:
    table = Table({"school": ["North", "South"], "rate": [0.5, None]})

    summary = table.summary()

    assert summary.column("column").values == ("school", "rate")
    assert summary.column("type").values == ("text", "float")
    assert summary.column("non_missing").values == (2, 1)
    assert table.describe() == summary


def test_equality_and_copy(admissions: Table) -> None:
    clone = admissions.copy()
    assert clone == admissions

    clone.add_column("year", 2019)
    assert clone != admissions
    assert "year" not in admissions


def test_repr_and_str(admissions: Table) -> None:
    assert "admitted:integer" in repr(admissions)
    assert "North" in str(admissions)


# ---------------------------------------------------------------------------
# add_column + coerce
# ---------------------------------------------------------------------------


def test_add_column_broadcasts_scalars(admissions: Table) -> None:
    admissions.add_column("weight", 1.5)

    assert admissions.types["weight"] is ColumnType.FLOAT
    assert admissions.column("weight").values == (1.5, 1.5, 1.5)


def test_add_column_rejects_wrong_length(admissions: Table) -> None:
    with pytest.raises(DataError) as ctx:
        admissions.add_column("rank", [1, 2])

    assert ctx.value.code == "table_length_mismatch"
    assert "rank" not in admissions


def test_add_column_rejects_existing_name(admissions: Table) -> None:
    with pytest.raises(DataError) as ctx:
        admissions.add_column("school", ["a", "b", "c"])

    assert ctx.value.code == "table_duplicate_column"


def test_coerce_text_to_integer() -> None:
    table = Table({"n": ["1", "2"]})

    table.coerce("n", "integer")

    assert table.types["n"] is ColumnType.INTEGER
    assert table.column("n").values == (1, 2)


def test_failed_coercion_leaves_the_column_untouched() -> None:
    table = Table({"n": ["1", "2", "x"]})
    before = table.copy()

    with pytest.raises(CoercionError) as ctx:
        table.coerce("n", ColumnType.INTEGER)

    assert ctx.value.context["row"] == 2
    assert ctx.value.context["column"] == "n"
    assert table == before


def test_coerce_uses_configured_tokens(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABULAR_IO_DELIMITED__TRUE_TOKENS", '["yes"]')
    monkeypatch.setenv("TABULAR_IO_DELIMITED__FALSE_TOKENS", '["no"]')
    table = Table({"ok": ["yes", "no"]})

    table.coerce("ok", "boolean")

    assert table.types["ok"] is ColumnType.BOOLEAN
    assert table.column("ok").values == (True, False)
    with pytest.raises(CoercionError):
        Table({"ok": ["TRUE"]}).coerce("ok", "boolean")


# ---------------------------------------------------------------------------
# derive
# ---------------------------------------------------------------------------


def test_percentage_of_total(admissions: Table) -> None:
    admissions.derive(
        "percentage",
        lambda c: c["admitted"] / c["admitted"].sum() * 100,
    )

    assert admissions.types["percentage"] is ColumnType.FLOAT
    assert list(admissions.column("percentage").values) == pytest.approx(
        [19.018404907975462, 38.036809815950924, 42.94478527607362]
    )


def test_integer_arithmetic_stays_integer(admissions: Table) -> None:
    admissions.derive("plus_one", lambda c: c["admitted"] + 1)
    admissions.derive("doubled", lambda c: 2 * c["admitted"])
    admissions.derive("negated", lambda c: -c["admitted"])

    assert admissions.types["plus_one"] is ColumnType.INTEGER
    assert admissions.column("plus_one").values == (63, 125, 141)
    assert admissions.column("doubled").values == (124, 248, 280)
    assert admissions.column("negated").values == (-62, -124, -140)


def test_true_division_and_power_are_float(admissions: Table) -> None:
    admissions.derive("half", lambda c: c["admitted"] / 2)
    admissions.derive("squared", lambda c: c["admitted"] ** 2)

    assert admissions.types["half"] is ColumnType.FLOAT
    assert admissions.column("half").values == (31.0, 62.0, 70.0)
    assert admissions.column("squared").values == (3844.0, 15376.0, 19600.0)


def test_booleans_count_as_integers(admissions: Table) -> None:
    admissions.derive("flag_plus", lambda c: c["selective"] + 1)

    assert admissions.types["flag_plus"] is ColumnType.INTEGER
    assert admissions.column("flag_plus").values == (2, 1, 2)


def test_comparisons_give_booleans(admissions: Table) -> None:
    admissions.derive("large", lambda c: c["admitted"] > 100)
    admissions.derive("is_north", lambda c: c["school"] == "North")

    assert admissions.types["large"] is ColumnType.BOOLEAN
    assert admissions.column("large").values == (False, True, True)
    assert admissions.column("is_north").values == (True, False, False)


def test_derive_accepts_sequences_and_scalars(admissions: Table) -> None:
    admissions.derive("rank", lambda c: [3, 2, 1])
    admissions.derive("year", lambda c: "2019")

    assert admissions.column("rank").values == (3, 2, 1)
    assert admissions.column("year").values == ("2019", "2019", "2019")


def test_derive_rejects_wrong_length(admissions: Table) -> None:
    with pytest.raises(DataError) as ctx:
        admissions.derive("rank", lambda c: [1, 2])

    assert ctx.value.code == "table_length_mismatch"
    assert "rank" not in admissions


def test_text_operands_are_rejected(admissions: Table) -> None:
    with pytest.raises(DataError) as ctx:
        admissions.derive("bad", lambda c: c["school"] + 1)

    assert ctx.value.code == "derive_type_error"
    assert "bad" not in admissions


def test_operands_must_come_from_the_same_table(admissions: Table) -> None:
    other = Table({"admitted": [1, 2, 3]})
    captured: dict[str, Vector] = {}
    other.derive("copy", lambda c: captured.setdefault("admitted", c["admitted"]))

    with pytest.raises(DataError) as ctx:
        admissions.derive("sum", lambda c: c["admitted"] + captured["admitted"])

    assert ctx.value.code == "derive_length_mismatch"


def test_division_by_zero_propagates_undefined_marker(
    package_caplog: pytest.LogCaptureFixture,
) -> None:
    table = Table({"a": [1, 2], "b": [0, 1]})

    table.derive("ratio", lambda c: c["a"] / c["b"])

    values = table.column("ratio").values
    assert math.isnan(values[0])
    assert values[1] == 2.0
    assert any("Zero denominator" in r.getMessage() for r in package_caplog.records)


def test_integer_floor_division_by_zero_becomes_float() -> None:
    table = Table({"a": [4, 3], "b": [2, 0]})

    table.derive("q", lambda c: c["a"] // c["b"])

    assert table.types["q"] is ColumnType.FLOAT
    q = table.column("q").values
    assert q[0] == 2.0
    assert math.isnan(q[1])


def test_division_by_zero_raises_when_requested() -> None:
    table = Table({"a": [1, 2], "b": [0, 1]})

    with pytest.raises(NumericError) as ctx:
        table.derive("ratio", lambda c: c["a"] / c["b"], on_undefined="raise")

    assert ctx.value.context["rows"] == [0]
    assert "ratio" not in table


def test_undefined_policy_comes_from_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABULAR_IO_DERIVE__ON_UNDEFINED", "raise")
    table = Table({"a": [1], "b": [0]})

    with pytest.raises(NumericError):
        table.derive("ratio", lambda c: 1 / c["b"])


def test_unknown_undefined_policy() -> None:
    table = Table({"a": [1]})

    with pytest.raises(DataError) as ctx:
        table.derive("x", lambda c: c["a"], on_undefined="ignore")

    assert ctx.value.code == "derive_bad_policy"


# ---------------------------------------------------------------------------
# Vector helpers
# ---------------------------------------------------------------------------


def test_map_infers_result_type(admissions: Table) -> None:
    admissions.derive("upper", lambda c: c["school"].map(str.upper))
    admissions.derive("length", lambda c: c["school"].map(len))

    assert admissions.column("upper").values == ("NORTH", "SOUTH", "EAST")
    assert admissions.types["length"] is ColumnType.INTEGER


def test_map_errors_name_the_row(admissions: Table) -> None:
    def explode(value: int) -> int:
        if value > 100:
            raise ValueError("too big")
        return value

    with pytest.raises(DataError) as ctx:
        admissions.derive("checked", lambda c: c["admitted"].map(explode))

    assert ctx.value.code == "derive_map_error"
    assert ctx.value.context["row"] == 1


def test_aggregates(admissions: Table) -> None:
    captured: dict[str, object] = {}

    def grab(c):
        vector = c["admitted"]
        captured.update(
            total=vector.sum(),
            mean=vector.mean(),
            low=vector.min(),
            high=vector.max(),
        )
        return vector

    admissions.derive("same", grab)

    assert captured == {"total": 326, "mean": pytest.approx(108.6666666), "low": 62, "high": 140}


def test_round_and_abs() -> None:
    table = Table({"x": [1.26, -2.5]})

    table.derive("rounded", lambda c: c["x"].round(1))
    table.derive("magnitude", lambda c: abs(c["x"]))

    assert list(table.column("rounded").values) == pytest.approx([1.3, -2.5])
    assert table.column("magnitude").values == (1.26, 2.5)


def test_min_of_empty_column_is_undefined() -> None:
    table = Table({"x": []}, types={"x": "integer"})

    with pytest.raises(NumericError):
        table.derive("m", lambda c: c["x"].min())
