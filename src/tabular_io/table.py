"""
In-memory Table store.

A :class:`Table` is an ordered set of uniquely named columns of equal length,
each with a declared :class:`~tabular_io.types.ColumnType`. Storage is a
pandas DataFrame whose dtypes always agree with the declared types.

Tables only grow sideways: columns can be appended (``add_column``,
``derive``) or re-typed in place (``coerce``), but never dropped or
resized. Every mutation is computed in full before it is applied, so a
failure leaves the Table exactly as it was.

Derived columns are built from :class:`Vector` operands:

    table.derive(
        "percentage",
        lambda c: c["admitted"] / c["admitted"].sum() * 100,
    )
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from tabular_io.exceptions import DataError, NotFoundError, NumericError
from tabular_io.logging_config import get_logger
from tabular_io.types import (
    ColumnType,
    Tokens,
    UNDEFINED,
    convert_values,
    default_tokens,
    infer_type,
)

logger = get_logger(__name__)
_LOCATION_PREFIX = __name__

_UNDEFINED_POLICIES = ("propagate", "raise")


@dataclass(frozen=True)
class Column:
    """Read-only snapshot of one Table column."""

    name: str
    dtype: ColumnType
    values: tuple[Any, ...]

    def __len__(self) -> int:
        return len(self.values)


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, bytes)) or not ptypes.is_list_like(value)


def _build_series(values: Sequence[Any], dtype: ColumnType) -> pd.Series:
    if dtype is ColumnType.TEXT:
        series = pd.Series(list(values), dtype="object")
    else:
        series = pd.Series(list(values), dtype=dtype.pandas_dtype)
    return series.reset_index(drop=True)


def _default_policy() -> str:
    from tabular_io.config import get_config

    return get_config().derive.on_undefined


class Table:
    """Named, typed, equal-length columns.

    Parameters
    ----------
    data:
        Mapping of column name to a sequence of values. Column order follows
        the mapping's order.
    types:
        Optional declared types per column; missing entries are inferred
        from native Python values (strings stay text).

    Raises
    ------
    DataError
        If columns differ in length or a name is not a non-empty string.
    CoercionError
        If a value does not fit its declared type.
    """

    def __init__(
        self,
        data: Mapping[str, Sequence[Any]] | None = None,
        types: Mapping[str, ColumnType | str] | None = None,
    ) -> None:
        data = dict(data or {})
        declared = {name: ColumnType.parse(t) for name, t in (types or {}).items()}

        unknown = set(declared).difference(data)
        if unknown:
            raise NotFoundError(
                "Types declared for columns that do not exist",
                context={"columns": sorted(unknown)},
                location=f"{_LOCATION_PREFIX}.Table",
            )

        lengths = {name: len(values) for name, values in data.items()}
        if len(set(lengths.values())) > 1:
            raise DataError(
                "All columns of a Table must have the same length",
                code="table_length_mismatch",
                context={"lengths": lengths},
                location=f"{_LOCATION_PREFIX}.Table",
            )

        series: dict[str, pd.Series] = {}
        column_types: dict[str, ColumnType] = {}
        for name, values in data.items():
            self._check_name(name)
            values = list(values)
            dtype = declared.get(name) or infer_type(values, parse_text=False)
            converted = convert_values(values, dtype, column=name, parse_text=False)
            series[name] = _build_series(converted, dtype)
            column_types[name] = dtype

        n_rows = next(iter(lengths.values()), 0)
        self._frame = pd.DataFrame(series, index=pd.RangeIndex(n_rows))
        self._types = column_types

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def _from_parts(cls, frame: pd.DataFrame, types: Mapping[str, ColumnType]) -> Table:
        table = cls.__new__(cls)
        table._frame = frame.reset_index(drop=True)
        table._types = dict(types)
        return table

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        types: Mapping[str, ColumnType | str] | None = None,
    ) -> Table:
        """Build a Table from a DataFrame (copied; the index is dropped).

        Numeric and bool dtypes map directly; object columns are inferred
        from their values.
        """
        if df.columns.has_duplicates:
            raise DataError(
                "DataFrame has duplicate column names",
                code="table_duplicate_column",
                context={"columns": [str(c) for c in df.columns]},
                location=f"{_LOCATION_PREFIX}.Table.from_dataframe",
            )

        declared = {str(k): ColumnType.parse(v) for k, v in (types or {}).items()}
        data: dict[str, list[Any]] = {}
        column_types: dict[str, ColumnType] = {}
        for label in df.columns:
            name = str(label)
            values = df[label].tolist()
            data[name] = values
            if name in declared:
                column_types[name] = declared[name]
            elif ptypes.is_object_dtype(df[label].dtype):
                column_types[name] = infer_type(values, parse_text=False)
            else:
                column_types[name] = ColumnType.from_dtype(df[label].dtype)
        return cls(data, column_types)

    @classmethod
    def from_records(
        cls,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]],
        types: Mapping[str, ColumnType | str] | None = None,
        *,
        tokens: Tokens | None = None,
        parse_text: bool = False,
    ) -> Table:
        """Build a Table from a header and row tuples.

        With ``parse_text=True`` string cells are parsed as tokens
        ("42" -> integer, "TRUE" -> boolean), as the delimited reader does.
        """
        columns = list(columns)
        if len(set(columns)) != len(columns):
            raise DataError(
                "Column names must be unique",
                code="table_duplicate_column",
                context={"columns": columns},
                location=f"{_LOCATION_PREFIX}.Table.from_records",
            )

        for name in columns:
            cls._check_name(name)

        cells: list[list[Any]] = [[] for _ in columns]
        for index, row in enumerate(rows):
            if len(row) != len(columns):
                raise DataError(
                    f"Row {index} has {len(row)} values; expected {len(columns)}",
                    code="table_length_mismatch",
                    context={"row": index, "n_values": len(row), "n_cols": len(columns)},
                    location=f"{_LOCATION_PREFIX}.Table.from_records",
                )
            for i, value in enumerate(row):
                cells[i].append(value)

        declared = {name: ColumnType.parse(t) for name, t in (types or {}).items()}
        unknown = set(declared).difference(columns)
        if unknown:
            raise NotFoundError(
                "Types declared for columns that do not exist",
                context={"columns": sorted(unknown), "available_columns": columns},
                location=f"{_LOCATION_PREFIX}.Table.from_records",
            )

        series: dict[str, pd.Series] = {}
        column_types: dict[str, ColumnType] = {}
        for name, values in zip(columns, cells):
            dtype = declared.get(name) or infer_type(values, tokens, parse_text=parse_text)
            converted = convert_values(
                values, dtype, tokens, column=name, parse_text=parse_text
            )
            series[name] = _build_series(converted, dtype)
            column_types[name] = dtype

        n_rows = len(cells[0]) if cells else 0
        return cls._from_parts(pd.DataFrame(series, index=pd.RangeIndex(n_rows)), column_types)

    # ------------------------------------------------------------------
    # Shape + access
    # ------------------------------------------------------------------

    @property
    def columns(self) -> list[str]:
        return list(self._types)

    @property
    def types(self) -> dict[str, ColumnType]:
        return dict(self._types)

    @property
    def n_rows(self) -> int:
        return int(self._frame.shape[0])

    @property
    def n_cols(self) -> int:
        return len(self._types)

    @property
    def shape(self) -> tuple[int, int]:
        return self.n_rows, self.n_cols

    def __len__(self) -> int:
        return self.n_rows

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __getitem__(self, name: str) -> pd.Series:
        self._require(name)
        return self._frame[name].copy()

    def column(self, name: str) -> Column:
        self._require(name)
        return Column(name, self._types[name], tuple(self._frame[name].tolist()))

    def row(self, index: int) -> dict[str, Any]:
        if not -self.n_rows <= index < self.n_rows:
            raise NotFoundError(
                f"Row {index} is out of range for a table with {self.n_rows} rows",
                context={"row": index, "n_rows": self.n_rows},
                location=f"{_LOCATION_PREFIX}.Table.row",
            )
        position = index % self.n_rows
        return {
            name: self._frame[name].iloc[position : position + 1].tolist()[0]
            for name in self._types
        }

    def rows(self) -> Iterator[dict[str, Any]]:
        lists = [self._frame[name].tolist() for name in self._types]
        for values in zip(*lists):
            yield dict(zip(self._types, values))

    def slice(self, start: int | None = None, stop: int | None = None) -> Table:
        """Rows ``start:stop`` as a new Table."""
        return Table._from_parts(self._frame.iloc[start:stop].copy(), self._types)

    def head(self, n: int = 5) -> Table:
        return self.slice(0, n)

    def select(self, names: Sequence[str]) -> Table:
        """A new Table with only ``names``, in that order."""
        for name in names:
            self._require(name)
        if len(set(names)) != len(names):
            raise DataError(
                "Selected column names must be unique",
                code="table_duplicate_column",
                context={"columns": list(names)},
                location=f"{_LOCATION_PREFIX}.Table.select",
            )
        frame = self._frame[list(names)].copy()
        return Table._from_parts(frame, {name: self._types[name] for name in names})

    def to_dataframe(self) -> pd.DataFrame:
        return self._frame.copy()

    def copy(self) -> Table:
        return Table._from_parts(self._frame.copy(), self._types)

    def summary(self) -> Table:
        """One row per column: name, declared type and non-missing count."""
        names = self.columns
        return Table(
            {
                "column": names,
                "type": [self._types[name].value for name in names],
                "non_missing": [int(self._frame[name].notna().sum()) for name in names],
            },
            types={
                "column": ColumnType.TEXT,
                "type": ColumnType.TEXT,
                "non_missing": ColumnType.INTEGER,
            },
        )

    describe = summary

    # ------------------------------------------------------------------
    # Mutation (append-only / in-place coercion)
    # ------------------------------------------------------------------

    def add_column(
        self,
        name: str,
        values: Any,
        dtype: ColumnType | str | None = None,
    ) -> None:
        """Append a new column of length N; a scalar is broadcast."""
        self._check_name(name)
        self._require_new(name)

        if isinstance(values, Vector):
            self._require_own(values)
            self._append(name, values._series.copy(), values.dtype)
            return

        if _is_scalar(values):
            values = [values] * self.n_rows
        else:
            values = list(values)

        if len(values) != self.n_rows:
            raise DataError(
                f"Column {name!r} has {len(values)} values; the table has {self.n_rows} rows",
                code="table_length_mismatch",
                context={"column": name, "length": len(values), "n_rows": self.n_rows},
                location=f"{_LOCATION_PREFIX}.Table.add_column",
            )

        column_type = ColumnType.parse(dtype) if dtype is not None else infer_type(
            values, parse_text=False
        )
        converted = convert_values(values, column_type, column=name, parse_text=False)
        self._append(name, _build_series(converted, column_type), column_type)

    def coerce(
        self,
        name: str,
        target: ColumnType | str,
        *,
        tokens: Tokens | None = None,
    ) -> None:
        """Re-type column ``name`` in place; unchanged if any value fails.

        Raises
        ------
        CoercionError
            Naming the first row whose value does not convert.
        """
        from tabular_io.normalize import coerce_values

        self._require(name)
        target_type = ColumnType.parse(target)
        source_type = self._types[name]
        if target_type is source_type:
            return

        converted = coerce_values(
            self._frame[name].tolist(),
            source_type,
            target_type,
            tokens=tokens or default_tokens(),
            column=name,
        )
        self._frame[name] = _build_series(converted, target_type)
        self._types[name] = target_type
        logger.debug(
            "Coerced column",
            extra={"column": name, "from": source_type.value, "to": target_type.value},
        )

    def derive(
        self,
        name: str,
        fn: Callable[[_Scope], Any],
        *,
        on_undefined: str | None = None,
    ) -> None:
        """Append a column computed element-wise from existing columns.

        ``fn`` receives a scope; ``scope["col"]`` is a :class:`Vector`. It
        returns a Vector, a scalar (broadcast) or a sequence of length N.

        ``on_undefined`` overrides the configured policy for undefined
        results (``x / 0``): "propagate" stores NaN, "raise" fails with
        :class:`NumericError`.
        """
        policy = on_undefined or _default_policy()
        if policy not in _UNDEFINED_POLICIES:
            raise DataError(
                f"Unknown undefined-result policy: {policy!r}",
                code="derive_bad_policy",
                context={"policy": policy, "allowed": list(_UNDEFINED_POLICIES)},
                location=f"{_LOCATION_PREFIX}.Table.derive",
            )
        self._check_name(name)
        self._require_new(name)

        result = fn(_Scope(self, policy))

        if isinstance(result, Vector):
            self._require_own(result)
            self._append(name, result._series.copy(), result.dtype)
        else:
            self.add_column(name, result)

        logger.debug("Derived column", extra={"column": name, "policy": policy})

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return (
            self.columns == other.columns
            and self._types == other._types
            and self._frame.equals(other._frame)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        cols = ", ".join(f"{name}:{dtype.value}" for name, dtype in self._types.items())
        return f"Table(n_rows={self.n_rows}, columns=[{cols}])"

    def __str__(self) -> str:
        return self._frame.to_string(index=False)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _check_name(name: Any) -> None:
        if not isinstance(name, str) or not name:
            raise DataError(
                f"Column names must be non-empty strings, got {name!r}",
                code="table_bad_column_name",
                context={"column": repr(name)},
                location=f"{_LOCATION_PREFIX}.Table",
            )

    def _require(self, name: str) -> None:
        if name not in self._types:
            raise NotFoundError(
                f"No column named {name!r}",
                context={"column": name, "available_columns": self.columns},
                location=f"{_LOCATION_PREFIX}.Table",
            )

    def _require_new(self, name: str) -> None:
        if name in self._types:
            raise DataError(
                f"Column {name!r} already exists",
                code="table_duplicate_column",
                context={"column": name},
                location=f"{_LOCATION_PREFIX}.Table",
            )

    def _require_own(self, vector: Vector) -> None:
        if vector._owner is not self:
            raise DataError(
                "Derived values must come from columns of the same table",
                code="derive_length_mismatch",
                context={"n_rows": self.n_rows, "vector_length": len(vector)},
                location=f"{_LOCATION_PREFIX}.Table",
            )

    def _append(self, name: str, series: pd.Series, dtype: ColumnType) -> None:
        self._frame[name] = series.reset_index(drop=True).astype(dtype.pandas_dtype)
        self._types[name] = dtype


# ----------------------------------------------------------------------
# Vectors: operands of derived-column expressions
# ----------------------------------------------------------------------


class _Scope:
    """Column lookup handed to ``Table.derive`` callbacks."""

    def __init__(self, table: Table, policy: str) -> None:
        self._table = table
        self._policy = policy

    @property
    def n_rows(self) -> int:
        return self._table.n_rows

    def __getitem__(self, name: str) -> Vector:
        self._table._require(name)
        return Vector(
            self._table._frame[name].copy(),
            self._table._types[name],
            owner=self._table,
            policy=self._policy,
        )


_ARITH_SYMBOLS = {
    operator.add: "+",
    operator.sub: "-",
    operator.mul: "*",
    operator.truediv: "/",
    operator.floordiv: "//",
    operator.mod: "%",
    operator.pow: "**",
}
_DIVISIONS = (operator.truediv, operator.floordiv, operator.mod)
_FLOAT_RESULT = (operator.truediv, operator.pow)


def _scalar_type(value: Any) -> ColumnType:
    if isinstance(value, (bool, np.bool_)):
        return ColumnType.BOOLEAN
    if isinstance(value, (int, np.integer)):
        return ColumnType.INTEGER
    if isinstance(value, (float, np.floating)):
        return ColumnType.FLOAT
    if isinstance(value, str):
        return ColumnType.TEXT
    raise DataError(
        f"Unsupported operand {value!r} of type {type(value).__name__}",
        code="derive_type_error",
        context={"operand_type": type(value).__name__},
        location=f"{_LOCATION_PREFIX}.Vector",
    )


class Vector:
    """A column-shaped operand bound to one Table.

    Arithmetic broadcasts scalars to the table's length. Aggregates
    (``sum``, ``mean``, ``min``, ``max``) return plain Python scalars.
    """

    __slots__ = ("_series", "dtype", "_owner", "_policy")

    def __init__(
        self,
        series: pd.Series,
        dtype: ColumnType,
        *,
        owner: Table,
        policy: str = "propagate",
    ) -> None:
        self._series = series.reset_index(drop=True)
        self.dtype = dtype
        self._owner = owner
        self._policy = policy

    def __len__(self) -> int:
        return len(self._series)

    def __repr__(self) -> str:
        return f"Vector(dtype={self.dtype.value}, length={len(self)})"

    @property
    def values(self) -> list[Any]:
        return self._series.tolist()

    def _new(self, series: pd.Series, dtype: ColumnType) -> Vector:
        return Vector(series, dtype, owner=self._owner, policy=self._policy)

    # -- operand plumbing ----------------------------------------------

    def _operand(self, other: Any) -> tuple[Any, ColumnType]:
        if isinstance(other, Vector):
            if other._owner is not self._owner:
                raise DataError(
                    "Operands come from different tables",
                    code="derive_length_mismatch",
                    context={"left_length": len(self), "right_length": len(other)},
                    location=f"{_LOCATION_PREFIX}.Vector",
                )
            return other._series, other.dtype
        return other, _scalar_type(other)

    @staticmethod
    def _numeric(value: Any, dtype: ColumnType, symbol: str) -> Any:
        if dtype is ColumnType.TEXT:
            raise DataError(
                f"Cannot apply {symbol!r} to a text operand",
                code="derive_type_error",
                context={"operator": symbol},
                location=f"{_LOCATION_PREFIX}.Vector",
            )
        if dtype is ColumnType.BOOLEAN:
            if isinstance(value, pd.Series):
                return value.astype("int64")
            return int(value)
        return value

    def _arith(self, other: Any, op: Callable[[Any, Any], Any], *, reflected: bool = False) -> Vector:
        symbol = _ARITH_SYMBOLS[op]
        other_value, other_type = self._operand(other)
        left, left_type = self._numeric(self._series, self.dtype, symbol), self.dtype
        right, right_type = self._numeric(other_value, other_type, symbol), other_type
        if reflected:
            left, right = right, left
            left_type, right_type = right_type, left_type

        integral = {left_type, right_type} <= {ColumnType.INTEGER, ColumnType.BOOLEAN}
        result_type = ColumnType.INTEGER if integral and op not in _FLOAT_RESULT else ColumnType.FLOAT

        if op is operator.pow or result_type is ColumnType.FLOAT:
            left = left.astype("float64") if isinstance(left, pd.Series) else float(left)

        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            result = op(left, right)

        if op in _DIVISIONS:
            if isinstance(right, pd.Series):
                zero = (right == 0).to_numpy()
            else:
                zero = np.full(len(self), right == 0)
            if zero.any():
                result, result_type = self._undefined(result, zero, symbol)

        return self._new(result.astype(result_type.pandas_dtype), result_type)

    def _undefined(
        self,
        result: pd.Series,
        mask: np.ndarray,
        symbol: str,
    ) -> tuple[pd.Series, ColumnType]:
        rows = [int(i) for i in np.flatnonzero(mask)]
        if self._policy == "raise":
            raise NumericError(
                f"Undefined result of {symbol!r} (zero denominator) at rows {rows}",
                context={"operator": symbol, "rows": rows},
                location=f"{_LOCATION_PREFIX}.Vector",
            )
        logger.warning(
            "Zero denominator; storing undefined marker",
            extra={"operator": symbol, "rows": rows},
        )
        result = result.astype("float64")
        result[mask] = UNDEFINED
        return result, ColumnType.FLOAT

    def _compare(self, other: Any, op: Callable[[Any, Any], Any]) -> Vector:
        other_value, other_type = self._operand(other)
        if (self.dtype is ColumnType.TEXT) != (other_type is ColumnType.TEXT):
            raise DataError(
                "Cannot compare text with a non-text operand",
                code="derive_type_error",
                context={"left": self.dtype.value, "right": other_type.value},
                location=f"{_LOCATION_PREFIX}.Vector",
            )
        result = op(self._series, other_value)
        return self._new(result.astype("bool"), ColumnType.BOOLEAN)

    # -- operators -----------------------------------------------------

    def __add__(self, other: Any) -> Vector:
        return self._arith(other, operator.add)

    def __radd__(self, other: Any) -> Vector:
        return self._arith(other, operator.add, reflected=True)

    def __sub__(self, other: Any) -> Vector:
        return self._arith(other, operator.sub)

    def __rsub__(self, other: Any) -> Vector:
        return self._arith(other, operator.sub, reflected=True)

    def __mul__(self, other: Any) -> Vector:
        return self._arith(other, operator.mul)

    def __rmul__(self, other: Any) -> Vector:
        return self._arith(other, operator.mul, reflected=True)

    def __truediv__(self, other: Any) -> Vector:
        return self._arith(other, operator.truediv)

    def __rtruediv__(self, other: Any) -> Vector:
        return self._arith(other, operator.truediv, reflected=True)

    def __floordiv__(self, other: Any) -> Vector:
        return self._arith(other, operator.floordiv)

    def __rfloordiv__(self, other: Any) -> Vector:
        return self._arith(other, operator.floordiv, reflected=True)

    def __mod__(self, other: Any) -> Vector:
        return self._arith(other, operator.mod)

    def __rmod__(self, other: Any) -> Vector:
        return self._arith(other, operator.mod, reflected=True)

    def __pow__(self, other: Any) -> Vector:
        return self._arith(other, operator.pow)

    def __rpow__(self, other: Any) -> Vector:
        return self._arith(other, operator.pow, reflected=True)

    def __neg__(self) -> Vector:
        return self._arith(-1, operator.mul)

    def __abs__(self) -> Vector:
        series = self._numeric(self._series, self.dtype, "abs")
        dtype = ColumnType.FLOAT if self.dtype is ColumnType.FLOAT else ColumnType.INTEGER
        return self._new(series.abs().astype(dtype.pandas_dtype), dtype)

    def __eq__(self, other: Any) -> Vector:  # type: ignore[override]
        return self._compare(other, operator.eq)

    def __ne__(self, other: Any) -> Vector:  # type: ignore[override]
        return self._compare(other, operator.ne)

    def __lt__(self, other: Any) -> Vector:
        return self._compare(other, operator.lt)

    def __le__(self, other: Any) -> Vector:
        return self._compare(other, operator.le)

    def __gt__(self, other: Any) -> Vector:
        return self._compare(other, operator.gt)

    def __ge__(self, other: Any) -> Vector:
        return self._compare(other, operator.ge)

    __hash__ = None  # type: ignore[assignment]

    # -- element-wise + aggregates -------------------------------------

    def round(self, ndigits: int = 0) -> Vector:
        series = self._numeric(self._series, self.dtype, "round")
        if self.dtype is not ColumnType.FLOAT:
            return self._new(series.astype("int64"), ColumnType.INTEGER)
        return self._new(series.round(ndigits), ColumnType.FLOAT)

    def map(self, func: Callable[[Any], Any], dtype: ColumnType | str | None = None) -> Vector:
        """Apply ``func`` to every value; the result type is inferred if not given."""
        results: list[Any] = []
        for row, value in enumerate(self._series.tolist()):
            try:
                results.append(func(value))
            except Exception as exc:
                raise DataError(
                    f"Function failed on value {value!r} at row {row}",
                    code="derive_map_error",
                    cause=exc,
                    context={"row": row, "value": repr(value)},
                    location=f"{_LOCATION_PREFIX}.Vector.map",
                ) from exc

        result_type = ColumnType.parse(dtype) if dtype is not None else infer_type(
            results, parse_text=False
        )
        converted = convert_values(results, result_type, parse_text=False)
        return self._new(_build_series(converted, result_type), result_type)

    def _aggregate_input(self, name: str) -> pd.Series:
        return self._numeric(self._series, self.dtype, name)

    def sum(self) -> int | float:
        total = self._aggregate_input("sum").sum(skipna=False)
        return float(total) if self.dtype is ColumnType.FLOAT else int(total)

    def mean(self) -> float:
        if len(self) == 0:
            return UNDEFINED
        return float(self._aggregate_input("mean").mean(skipna=False))

    def min(self) -> Any:
        return self._extreme("min")

    def max(self) -> Any:
        return self._extreme("max")

    def _extreme(self, name: str) -> Any:
        if len(self) == 0:
            raise NumericError(
                f"{name}() of an empty column is undefined",
                context={"aggregate": name},
                location=f"{_LOCATION_PREFIX}.Vector.{name}",
            )
        value = getattr(self._series, name)(skipna=False)
        if self.dtype is ColumnType.FLOAT:
            return float(value)
        if self.dtype is ColumnType.INTEGER:
            return int(value)
        if self.dtype is ColumnType.BOOLEAN:
            return bool(value)
        return value


__all__ = ["Column", "Table", "Vector"]
