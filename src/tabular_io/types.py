"""
Column types, token sets and the type-inference rule shared by every source.

A raw cell is either text (delimited files) or a native Python value
(spreadsheet cells, database rows). Both go through the same classification:

    missing -> None, NaN or a missing token ("", "NA", ...)
    int     -> whole number ("42", "-7", or an ``int``)
    float   -> any other number ("3.5", "1e-3", "inf", or a ``float``)
    bool    -> a true/false token ("TRUE", "F", ...) or a ``bool``
    text    -> everything else

and a column's declared type follows from the set of classes it contains.

A delimited field that was quoted in the source arrives as :class:`QuotedText`
and is always text, so "02139" written as text reads back as text.
"""

from __future__ import annotations

import enum
import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from tabular_io.exceptions import CoercionError

_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?|[+-]?(?:inf|infinity|nan)",
    re.IGNORECASE,
)

# int64 bounds; larger whole numbers cannot live in an INTEGER column.
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1

UNDEFINED = float("nan")


class ColumnType(str, enum.Enum):
    """Declared scalar type of a column."""

    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    BOOLEAN = "boolean"

    @property
    def pandas_dtype(self) -> str:
        return _PANDAS_DTYPES[self]

    @property
    def is_numeric(self) -> bool:
        return self in (ColumnType.INTEGER, ColumnType.FLOAT)

    @classmethod
    def from_dtype(cls, dtype: Any) -> ColumnType:
        """Map a pandas/numpy dtype onto a ColumnType (object -> TEXT)."""
        if ptypes.is_bool_dtype(dtype):
            return cls.BOOLEAN
        if ptypes.is_integer_dtype(dtype):
            return cls.INTEGER
        if ptypes.is_float_dtype(dtype):
            return cls.FLOAT
        return cls.TEXT

    @classmethod
    def parse(cls, value: str | ColumnType) -> ColumnType:
        """Accept a member or its name/value ("int", "integer", "FLOAT", ...)."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {
            "int": cls.INTEGER,
            "integer": cls.INTEGER,
            "float": cls.FLOAT,
            "double": cls.FLOAT,
            "numeric": cls.FLOAT,
            "str": cls.TEXT,
            "string": cls.TEXT,
            "text": cls.TEXT,
            "character": cls.TEXT,
            "bool": cls.BOOLEAN,
            "boolean": cls.BOOLEAN,
            "logical": cls.BOOLEAN,
        }
        try:
            return aliases[key]
        except KeyError:
            raise ValueError(f"Unknown column type: {value!r}") from None


_PANDAS_DTYPES = {
    ColumnType.INTEGER: "int64",
    ColumnType.FLOAT: "float64",
    ColumnType.TEXT: "object",
    ColumnType.BOOLEAN: "bool",
}


@dataclass(frozen=True)
class Tokens:
    """String tokens recognised as booleans and missing values."""

    true: frozenset[str] = frozenset({"TRUE", "True", "true", "T"})
    false: frozenset[str] = frozenset({"FALSE", "False", "false", "F"})
    missing: frozenset[str] = frozenset({"", "NA", "NaN", "nan"})

    @classmethod
    def from_config(cls, cfg: Any) -> Tokens:
        """Build from a ``DelimitedConfig``-shaped object."""
        return cls(
            true=frozenset(cfg.true_tokens),
            false=frozenset(cfg.false_tokens),
            missing=frozenset(cfg.missing_tokens),
        )


def default_tokens() -> Tokens:
    """Tokens from the active AppConfig."""
    from tabular_io.config import get_config

    return Tokens.from_config(get_config().delimited)


def is_undefined(value: Any) -> bool:
    """True for the undefined marker (and any other float NaN)."""
    return isinstance(value, float) and math.isnan(value)


class QuotedText(str):
    """A delimited field that was enclosed in quotes."""

    __slots__ = ()


# ----------------------------------------------------------------------
# Classification
# ----------------------------------------------------------------------


def _classify(value: Any, tokens: Tokens, parse_text: bool) -> str:
    if value is None or value is pd.NA:
        return "missing"
    if isinstance(value, (bool, np.bool_)):
        return "bool"
    if isinstance(value, (int, np.integer)):
        return "int"
    if isinstance(value, (float, np.floating)):
        return "missing" if math.isnan(value) else "float"
    if isinstance(value, Decimal):
        return "float"
    if isinstance(value, QuotedText):
        return "text"
    if isinstance(value, str):
        if not parse_text:
            return "text"
        if value in tokens.missing:
            return "missing"
        if value in tokens.true or value in tokens.false:
            return "bool"
        stripped = value.strip()
        if _INT_RE.fullmatch(stripped):
            return "int"
        if _FLOAT_RE.fullmatch(stripped):
            return "float"
        return "text"
    return "text"


def infer_type(
    values: Iterable[Any],
    tokens: Tokens | None = None,
    *,
    parse_text: bool = True,
) -> ColumnType:
    """Infer the declared type of a column from its raw values.

    With ``parse_text=False`` strings are taken literally as text; use that
    for sources whose cells are already typed (spreadsheets, query results).
    """
    tokens = tokens or Tokens()
    kinds: set[str] = set()
    n_values = 0
    for value in values:
        n_values += 1
        kinds.add(_classify(value, tokens, parse_text))

    has_missing = "missing" in kinds
    kinds.discard("missing")

    if n_values == 0 or "text" in kinds:
        return ColumnType.TEXT
    if not kinds:
        # All missing: NaN is the only representable value.
        return ColumnType.FLOAT
    if kinds == {"int"} and not has_missing:
        return ColumnType.INTEGER
    if kinds <= {"int", "float"}:
        return ColumnType.FLOAT
    if kinds == {"bool"} and not has_missing:
        return ColumnType.BOOLEAN
    return ColumnType.TEXT


# ----------------------------------------------------------------------
# Conversion + formatting
# ----------------------------------------------------------------------


def _fail(value: Any, row: int, column_type: ColumnType, column: str | None) -> CoercionError:
    where = f" in column {column!r}" if column is not None else ""
    return CoercionError(
        f"Cannot convert {value!r} at row {row}{where} to {column_type.value}",
        context={
            "column": column,
            "row": row,
            "value": repr(value),
            "target_type": column_type.value,
        },
        location=f"{__name__}.convert_values",
    )


def _to_int(value: Any, kind: str) -> int | None:
    if kind == "int":
        result = int(value.strip()) if isinstance(value, str) else int(value)
    elif kind == "float" and not isinstance(value, str):
        number = float(value)
        if not (math.isfinite(number) and number.is_integer()):
            return None
        result = int(number)
    else:
        return None
    if not _INT_MIN <= result <= _INT_MAX:
        return None
    return result


def convert_values(
    values: Sequence[Any],
    column_type: ColumnType,
    tokens: Tokens | None = None,
    *,
    column: str | None = None,
    parse_text: bool = True,
) -> list[Any]:
    """Convert raw cells to Python values of ``column_type``.

    All-or-nothing: the first value that does not convert raises
    :class:`CoercionError` naming its (0-based) row and nothing is returned.
    """
    tokens = tokens or Tokens()
    out: list[Any] = []

    for row, value in enumerate(values):
        if isinstance(value, QuotedText):
            # A declared type decides how quoted content converts.
            value = str(value)
        kind = _classify(value, tokens, parse_text)

        if column_type is ColumnType.TEXT:
            if isinstance(value, str):
                out.append(value)
            elif kind == "missing":
                out.append("")
            else:
                out.append(format_value(value, infer_type([value], tokens, parse_text=False)))
            continue

        if column_type is ColumnType.INTEGER:
            converted = _to_int(value, kind)
            if converted is None:
                raise _fail(value, row, column_type, column)
            out.append(converted)
        elif column_type is ColumnType.FLOAT:
            if kind == "missing":
                out.append(UNDEFINED)
            elif kind in ("int", "float"):
                out.append(float(value.strip()) if isinstance(value, str) else float(value))
            else:
                raise _fail(value, row, column_type, column)
        elif column_type is ColumnType.BOOLEAN:
            if kind != "bool":
                raise _fail(value, row, column_type, column)
            out.append(value in tokens.true if isinstance(value, str) else bool(value))

    return out


def format_value(value: Any, column_type: ColumnType) -> str:
    """Canonical text form of a value; the delimited reader parses it back."""
    if column_type is ColumnType.FLOAT:
        number = float(value)
        return "NA" if is_undefined(number) else repr(number)
    if column_type is ColumnType.INTEGER:
        return str(int(value))
    if column_type is ColumnType.BOOLEAN:
        return "True" if bool(value) else "False"
    if value is None:
        return ""
    return str(value)


__all__ = [
    "ColumnType",
    "QuotedText",
    "Tokens",
    "UNDEFINED",
    "convert_values",
    "default_tokens",
    "format_value",
    "infer_type",
    "is_undefined",
]
