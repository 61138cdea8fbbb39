from __future__ import annotations

import math
from typing import Any, Sequence

import pandas as pd

from tabular_io.exceptions import CoercionError, DataError
from tabular_io.logging_config import get_logger
from tabular_io.table import Table
from tabular_io.types import ColumnType, Tokens, convert_values, default_tokens, format_value

logger = get_logger(__name__)
_LOCATION_PREFIX = __name__


def _coercion_failure(
    value: Any,
    row: int,
    source: ColumnType,
    target: ColumnType,
    column: str | None,
) -> CoercionError:
    where = f" in column {column!r}" if column is not None else ""
    return CoercionError(
        f"Cannot coerce {value!r} at row {row}{where} from {source.value} to {target.value}",
        context={
            "column": column,
            "row": row,
            "value": repr(value),
            "source_type": source.value,
            "target_type": target.value,
        },
        location=f"{_LOCATION_PREFIX}.coerce_values",
    )


def coerce_values(
    values: Sequence[Any],
    source: ColumnType,
    target: ColumnType,
    *,
    tokens: Tokens | None = None,
    column: str | None = None,
) -> list[Any]:
    """Recompute ``values`` (declared as ``source``) as ``target``.

    Total-or-nothing: either every value converts and the new list is
    returned, or :class:`CoercionError` names the first bad row.

    Rules
    -----
    - anything -> text: canonical formatting, always succeeds
    - text -> integer / float / boolean: token parsing
    - integer -> float, boolean -> integer / float: always succeed
    - float -> integer: finite whole numbers only
    - integer / float -> boolean: 0 and 1 only
    """
    if source is target:
        return list(values)

    if target is ColumnType.TEXT:
        return [format_value(value, source) for value in values]

    if source is ColumnType.TEXT:
        tokens = tokens or default_tokens()
        try:
            return convert_values(values, target, tokens, column=column, parse_text=True)
        except CoercionError as exc:
            exc.add_context(source_type=source.value)
            raise

    if target is ColumnType.FLOAT:
        return [float(value) for value in values]

    if target is ColumnType.INTEGER:
        if source is ColumnType.BOOLEAN:
            return [int(value) for value in values]
        out: list[Any] = []
        for row, value in enumerate(values):
            number = float(value)
            if not (math.isfinite(number) and number.is_integer()):
                raise _coercion_failure(value, row, source, target, column)
            out.append(int(number))
        return out

    # target is BOOLEAN, source is numeric
    flags: list[bool] = []
    for row, value in enumerate(values):
        if value == 1:
            flags.append(True)
        elif value == 0:
            flags.append(False)
        else:
            raise _coercion_failure(value, row, source, target, column)
    return flags


def clean_column_names(names: Sequence[Any]) -> list[str]:
    """Make header cells usable as unique column names.

    Whitespace is stripped, blank names become ``column_<i>`` (1-based) and
    repeats get ``_2``, ``_3``, ... suffixes.
    """
    cleaned: list[str] = []
    seen: set[str] = set()
    for position, raw in enumerate(names, start=1):
        name = "" if raw is None else str(raw).strip()
        if not name:
            name = f"column_{position}"
        candidate = name
        suffix = 2
        while candidate in seen:
            candidate = f"{name}_{suffix}"
            suffix += 1
        seen.add(candidate)
        cleaned.append(candidate)
    return cleaned


def _widest(types: Sequence[ColumnType]) -> ColumnType:
    distinct = set(types)
    if len(distinct) == 1:
        return types[0]
    if distinct <= {ColumnType.INTEGER, ColumnType.FLOAT}:
        return ColumnType.FLOAT
    return ColumnType.TEXT


def unify_schemas(tables: Sequence[Table]) -> list[Table]:
    """Give Tables that feed one logical table the same columns and types.

    Columns follow the first table's order; per column the widest type
    wins (integer + float -> float, any other disagreement -> text). The
    inputs are not modified.

    Raises
    ------
    DataError
        If the tables do not share the same set of column names.
    """
    if not tables:
        return []

    reference = tables[0].columns
    for index, table in enumerate(tables[1:], start=1):
        if set(table.columns) != set(reference):
            raise DataError(
                f"Table {index} does not have the same columns as table 0",
                code="schema_column_mismatch",
                context={
                    "table_index": index,
                    "missing_columns": sorted(set(reference) - set(table.columns)),
                    "extra_columns": sorted(set(table.columns) - set(reference)),
                },
                location=f"{_LOCATION_PREFIX}.unify_schemas",
            )

    targets = {
        name: _widest([table.types[name] for table in tables])
        for name in reference
    }

    unified: list[Table] = []
    for table in tables:
        copy = table.select(reference)
        for name, target in targets.items():
            copy.coerce(name, target)
        unified.append(copy)

    logger.debug(
        "Unified table schemas",
        extra={"n_tables": len(tables), "types": {k: v.value for k, v in targets.items()}},
    )
    return unified


def concat_tables(tables: Sequence[Table]) -> Table:
    """Stack Tables row-wise after :func:`unify_schemas`."""
    unified = unify_schemas(tables)
    if not unified:
        return Table()
    frame = pd.concat([table.to_dataframe() for table in unified], ignore_index=True)
    types = unified[0].types
    frame = frame.astype({name: dtype.pandas_dtype for name, dtype in types.items()})
    return Table._from_parts(frame, types)


__all__ = ["clean_column_names", "coerce_values", "concat_tables", "unify_schemas"]
