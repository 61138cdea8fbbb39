from __future__ import annotations

import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook

from tabular_io.exceptions import NotFoundError, ParseError
from tabular_io.logging_config import get_logger
from tabular_io.normalize import clean_column_names
from tabular_io.table import Table
from tabular_io.types import ColumnType

logger = get_logger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xlsm")

Selector = int | str


@contextmanager
def _open_workbook(path: str | Path) -> Iterator[Workbook]:
    """Open a workbook read-only and always close it."""
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(
            f"Spreadsheet not found: {path}",
            code="data_file_not_found",
            context={"path": str(path)},
            location=f"{__name__}._open_workbook",
        )
    try:
        workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ParseError.from_exception(
            exc,
            message=f"Not a readable spreadsheet: {path}",
            code="parse_bad_workbook",
            context={"path": str(path)},
            location=f"{__name__}._open_workbook",
        ) from exc
    try:
        yield workbook
    finally:
        workbook.close()


def list_sheets(path: str | Path) -> list[str]:
    """Sheet names in workbook order; call this before choosing a selector."""
    with _open_workbook(path) as workbook:
        return list(workbook.sheetnames)


def resolve_sheet(sheet_names: list[str], sheet: Selector) -> str:
    """Map a 1-based position or a name onto a sheet name.

    Raises
    ------
    NotFoundError
        If the position is out of range or the name is unknown.
    """
    if isinstance(sheet, bool) or not isinstance(sheet, (int, str)):
        raise NotFoundError(
            f"Sheet selector must be a 1-based position or a name, got {sheet!r}",
            context={"selector": repr(sheet), "sheets": sheet_names},
            location=f"{__name__}.resolve_sheet",
        )
    if isinstance(sheet, int):
        if not 1 <= sheet <= len(sheet_names):
            raise NotFoundError(
                f"Sheet {sheet} does not exist; the workbook has {len(sheet_names)} sheet(s)",
                context={"selector": sheet, "sheets": sheet_names},
                location=f"{__name__}.resolve_sheet",
            )
        return sheet_names[sheet - 1]
    if sheet not in sheet_names:
        raise NotFoundError(
            f"No sheet named {sheet!r}; available: {', '.join(sheet_names)}",
            context={"selector": sheet, "sheets": sheet_names},
            location=f"{__name__}.resolve_sheet",
        )
    return sheet


def _trim(rows: list[list[Any]]) -> list[list[Any]]:
    """Drop trailing empty rows and pad the rest to a common width."""
    while rows and all(value is None for value in rows[-1]):
        rows.pop()
    width = max((len(row) for row in rows), default=0)
    # Trailing columns that are empty everywhere are formatting leftovers.
    while width and all(len(row) < width or row[width - 1] is None for row in rows):
        width -= 1
    return [list(row[:width]) + [None] * (width - len(row)) for row in rows]


def read_sheet(
    path: str | Path,
    sheet: Selector = 1,
    *,
    header: bool = True,
    types: Mapping[str, ColumnType | str] | None = None,
) -> Table:
    """Read one worksheet into a Table.

    Parameters
    ----------
    path:
        Path to an ``.xlsx``/``.xlsm`` workbook.
    sheet:
        1-based sheet position or sheet name.
    header:
        If True the first row holds column names; otherwise columns are
        named ``column_1``, ``column_2``, ...
    types:
        Optional declared types overriding inference per column.

    Cells keep their spreadsheet types (numbers, booleans, text); text
    cells are not re-parsed.
    """
    source = str(path)
    logger.info("Loading sheet", extra={"source": source, "selector": sheet})

    with _open_workbook(path) as workbook:
        sheet_name = resolve_sheet(list(workbook.sheetnames), sheet)
        worksheet = workbook[sheet_name]
        rows = _trim([list(row) for row in worksheet.iter_rows(values_only=True)])

    if header:
        if not rows:
            raise ParseError(
                f"Sheet {sheet_name!r} is empty; expected a header row",
                code="parse_empty",
                context={"source": source, "sheet": sheet_name},
                location=f"{__name__}.read_sheet",
            )
        columns = clean_column_names(rows[0])
        body = rows[1:]
    else:
        columns = clean_column_names([None] * (len(rows[0]) if rows else 0))
        body = rows

    table = Table.from_records(columns, body, types, parse_text=False)

    logger.info(
        "Loaded sheet",
        extra={
            "source": source,
            "sheet": sheet_name,
            "n_rows": table.n_rows,
            "n_cols": table.n_cols,
        },
    )
    return table


__all__ = ["SPREADSHEET_SUFFIXES", "list_sheets", "read_sheet", "resolve_sheet"]
