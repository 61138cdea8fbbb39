"""
Source dispatch and batch loading.

``enumerate_sources`` tells how many tables a location holds (sheets of a
workbook, delimited files in a directory, or a single table) before any of
them is read; ``load_all`` then loads every one of them into a Collection,
in enumeration order, failing fast on the first error.

    selectors = enumerate_sources("admissions.xlsx")   # ["2017", "2018", "2019"]
    years = load_all("admissions.xlsx")
    years["2019"].summary()
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from tabular_io.collection import Collection
from tabular_io.data.delimited import DELIMITED_SUFFIXES, is_url, read_delimited
from tabular_io.data.spreadsheet import SPREADSHEET_SUFFIXES, list_sheets, read_sheet
from tabular_io.exceptions import AppError, NotFoundError
from tabular_io.logging_config import get_logger
from tabular_io.table import Table

logger = get_logger(__name__)

Selector = int | str
Loader = Callable[[Any, Selector], Table]


def _kind(location: str | Path) -> str:
    if is_url(location):
        return "url"
    path = Path(location)
    if path.is_dir():
        return "directory"
    if not path.exists():
        raise NotFoundError(
            f"Source not found: {path}",
            code="data_file_not_found",
            context={"path": str(path)},
            location=f"{__name__}._kind",
        )
    if path.suffix.lower() in SPREADSHEET_SUFFIXES:
        return "spreadsheet"
    return "delimited"


def _directory_files(path: Path) -> list[str]:
    return sorted(
        child.name
        for child in path.iterdir()
        if child.is_file() and child.suffix.lower() in DELIMITED_SUFFIXES
    )


def enumerate_sources(location: str | Path) -> list[Selector]:
    """Selectors of every table available at ``location``, in load order.

    - workbook: its sheet names
    - directory: the names of its delimited files, sorted
    - single delimited file or URL: ``[1]``

    Raises
    ------
    NotFoundError
        If ``location`` does not exist.
    """
    kind = _kind(location)
    if kind == "spreadsheet":
        selectors: list[Selector] = list(list_sheets(location))
    elif kind == "directory":
        selectors = list(_directory_files(Path(location)))
    else:
        selectors = [1]

    logger.info(
        "Enumerated sources",
        extra={"source": str(location), "kind": kind, "selectors": selectors},
    )
    return selectors


def _not_found(location: str | Path, selector: Any, available: list[Any]) -> NotFoundError:
    return NotFoundError(
        f"Selector {selector!r} does not exist in {location}",
        context={"source": str(location), "selector": repr(selector), "available": available},
        location=f"{__name__}.load_table",
    )


def load_table(location: str | Path, selector: Selector | None = None, **options: Any) -> Table:
    """Load one Table from any supported source.

    ``selector`` picks a sheet (1-based position or name) from a workbook
    or a file (position or file name) from a directory; single-table
    sources accept only ``None`` or ``1``. Remaining keyword arguments go
    to the underlying reader (``read_sheet`` / ``read_delimited``).
    """
    kind = _kind(location)

    if kind == "spreadsheet":
        return read_sheet(location, 1 if selector is None else selector, **options)

    if kind == "directory":
        directory = Path(location)
        files = _directory_files(directory)
        if isinstance(selector, int) and not isinstance(selector, bool):
            if not 1 <= selector <= len(files):
                raise _not_found(location, selector, files)
            name = files[selector - 1]
        elif selector is None:
            if not files:
                raise _not_found(location, selector, files)
            name = files[0]
        elif selector in files:
            name = str(selector)
        else:
            raise _not_found(location, selector, files)
        return read_delimited(directory / name, **options)

    if selector not in (None, 1):
        raise _not_found(location, selector, [1])
    return read_delimited(location, **options)


def load_all(
    location: str | Path,
    *,
    loader: Loader | None = None,
    **options: Any,
) -> Collection:
    """Load every enumerated table of ``location`` into a Collection.

    Tables keep enumeration order and are named by their selector when it
    is a name. The first failing load aborts the whole call: its error
    propagates (with the selector added to its context) and no Collection
    is returned.

    Parameters
    ----------
    loader:
        ``loader(location, selector) -> Table``; defaults to
        :func:`load_table` with ``options``.
    """
    selectors = enumerate_sources(location)
    load = loader or (lambda loc, sel: load_table(loc, sel, **options))

    collection = Collection()
    for position, selector in enumerate(selectors, start=1):
        try:
            table = load(location, selector)
        except AppError as exc:
            logger.error(
                "Batch load failed",
                extra={"source": str(location), "selector": selector, "position": position},
            )
            raise exc.add_context(selector=selector, position=position)
        collection.append(table, name=selector if isinstance(selector, str) else None)

    logger.info(
        "Loaded all sources",
        extra={"source": str(location), "n_tables": len(collection)},
    )
    return collection


__all__ = ["enumerate_sources", "load_all", "load_table"]
