from __future__ import annotations

import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

import openpyxl

from tabular_io.collection import Collection
from tabular_io.config import get_config
from tabular_io.exceptions import DataError
from tabular_io.logging_config import get_logger
from tabular_io.table import Table
from tabular_io.types import ColumnType, format_value, is_undefined

logger = get_logger(__name__)

WRITE_FORMATS = ("csv", "tsv", "xlsx")


def _infer_format(path: Path) -> str:
    """Infer output format from suffix, defaulting to 'csv'."""
    suffix = path.suffix.lower()
    if suffix == ".tsv":
        return "tsv"
    if suffix in {".xlsx", ".xlsm"}:
        return "xlsx"
    return "csv"


@contextmanager
def atomic_target(path: str | Path) -> Iterator[Path]:
    """Yield a temporary sibling of ``path`` that replaces it on success.

    On any failure the temporary file is removed and an existing ``path``
    is left untouched. Parent directories are created.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.stem}.", suffix=target.suffix, dir=target.parent
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        yield tmp_path
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def _header_cell(name: str, sep: str) -> str:
    if any(c in name for c in (sep, '"', "\n", "\r")):
        return _quote(name)
    return name


def _delimited_lines(table: Table, sep: str) -> Iterator[str]:
    """Header line then one line per row; text cells are always quoted."""
    types = table.types
    yield sep.join(_header_cell(name, sep) for name in table.columns)
    for row in table.rows():
        cells = []
        for name, value in row.items():
            text = format_value(value, types[name])
            cells.append(_quote(text) if types[name] is ColumnType.TEXT else text)
        yield sep.join(cells)


def _cell(value: Any, dtype: ColumnType) -> Any:
    if dtype is ColumnType.FLOAT and is_undefined(value):
        return None
    return value


def _fill_sheet(worksheet: Any, table: Table) -> None:
    worksheet.append(table.columns)
    types = table.types
    for row in table.rows():
        worksheet.append([_cell(value, types[name]) for name, value in row.items()])


def write_table(
    table: Table,
    path: str | Path,
    format: str | None = None,
    *,
    delimiter: str | None = None,
    encoding: str | None = None,
) -> Path:
    """Serialize a Table to delimited text or a single-sheet workbook.

    Delimited output uses the canonical value formatting and quotes every
    text cell, so reading the file back with default inference reproduces
    the Table's types and values, including text such as ``"02139"`` or
    ``"T"``. A zero-row Table carries no values to infer from: its columns
    read back as text unless their types are passed to the reader.

    The file is written atomically: readers never see a partial file.

    Raises
    ------
    DataError
        If the format is unsupported or the file cannot be written.
    """
    target = Path(path)
    fmt = (format or _infer_format(target)).lower()
    if fmt not in WRITE_FORMATS:
        raise DataError(
            f"Unsupported output format: {fmt}",
            code="data_unsupported_format",
            context={"path": str(target), "format": fmt, "supported": list(WRITE_FORMATS)},
            location=f"{__name__}.write_table",
        )

    cfg = get_config().delimited
    logger.info(
        "Writing table",
        extra={"path": str(target), "format": fmt, "n_rows": table.n_rows, "n_cols": table.n_cols},
    )

    try:
        with atomic_target(target) as tmp_path:
            if fmt == "xlsx":
                workbook = openpyxl.Workbook()
                _fill_sheet(workbook.active, table)
                workbook.save(tmp_path)
            else:
                sep = delimiter or ("\t" if fmt == "tsv" else cfg.delimiter)
                with tmp_path.open("w", encoding=encoding or cfg.encoding, newline="") as handle:
                    for line in _delimited_lines(table, sep):
                        handle.write(line + "\n")
    except OSError as exc:
        raise DataError(
            f"Failed to write table to {target}",
            code="data_write_error",
            cause=exc,
            context={"path": str(target), "format": fmt},
            location=f"{__name__}.write_table",
        ) from exc

    logger.info("Wrote table", extra={"path": str(target), "format": fmt})
    return target


_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
_MAX_SHEET_TITLE = 31


def sheet_title(name: str | None, position: int) -> str:
    """Excel-safe sheet title; unnamed entries become ``Sheet<position>``."""
    if name is None:
        return f"Sheet{position}"
    cleaned = _INVALID_SHEET_CHARS.sub(" ", name).strip()
    return (cleaned or f"Sheet{position}")[:_MAX_SHEET_TITLE]


def sheet_titles(names: Sequence[str | None]) -> list[str]:
    """Unique Excel-safe titles, one per name.

    Repeats get ``_2``, ``_3``, ... suffixes that fit inside the 31
    character limit. Excel compares titles case-insensitively.
    """
    titles: list[str] = []
    seen: set[str] = set()
    for position, name in enumerate(names, start=1):
        base = sheet_title(name, position)
        candidate = base
        suffix = 2
        while candidate.lower() in seen:
            tail = f"_{suffix}"
            candidate = base[: _MAX_SHEET_TITLE - len(tail)] + tail
            suffix += 1
        seen.add(candidate.lower())
        titles.append(candidate)
    return titles


def write_sheets(collection: Collection, path: str | Path) -> Path:
    """Write every Table of a Collection to its own sheet of one workbook."""
    target = Path(path)
    if len(collection) == 0:
        raise DataError(
            "Cannot write an empty collection to a workbook",
            code="data_empty_collection",
            context={"path": str(target)},
            location=f"{__name__}.write_sheets",
        )

    titles = sheet_titles(collection.names)
    logger.info("Writing workbook", extra={"path": str(target), "sheets": titles})

    try:
        with atomic_target(target) as tmp_path:
            workbook = openpyxl.Workbook()
            workbook.remove(workbook.active)
            for title, table in zip(titles, collection):
                _fill_sheet(workbook.create_sheet(title=title), table)
            workbook.save(tmp_path)
    except OSError as exc:
        raise DataError(
            f"Failed to write workbook to {target}",
            code="data_write_error",
            cause=exc,
            context={"path": str(target)},
            location=f"{__name__}.write_sheets",
        ) from exc

    return target


__all__ = [
    "WRITE_FORMATS",
    "atomic_target",
    "sheet_title",
    "sheet_titles",
    "write_sheets",
    "write_table",
]
