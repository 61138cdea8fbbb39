"""
tabular_io: one in-memory Table for delimited text, spreadsheets and SQL results.

The package exposes a small, stable public API:

    from tabular_io import Table, load_table, load_all, write_table

    admissions = load_table("admissions.csv")
    admissions.derive(
        "percentage",
        lambda c: c["admitted"] / c["admitted"].sum() * 100,
    )
    write_table(admissions, "output/admissions.csv")
"""

from __future__ import annotations

from importlib import metadata as _metadata

# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

try:
    __version__ = _metadata.version("tabular-io")
except _metadata.PackageNotFoundError:
    # Running from a source checkout without installation
    __version__ = "0.0.0"

# ---------------------------------------------------------------------------
# Public API re-exports
# ---------------------------------------------------------------------------

from .collection import Collection  # noqa: E402,F401
from .config import AppConfig, get_config, get_paths  # noqa: E402,F401
from .data.bundle import list_bundle, read_bundle, write_bundle  # noqa: E402,F401
from .data.delimited import read_delimited  # noqa: E402,F401
from .data.sources import enumerate_sources, load_all, load_table  # noqa: E402,F401
from .data.spreadsheet import list_sheets, read_sheet  # noqa: E402,F401
from .data.sql import ConnectionHandle, query_table, read_query  # noqa: E402,F401
from .data.writing import write_sheets, write_table  # noqa: E402,F401
from .exceptions import (  # noqa: E402,F401
    AppError,
    CoercionError,
    ConfigError,
    ConnectionError,
    DataError,
    NotFoundError,
    NumericError,
    ParseError,
)
from .logging_config import get_logger  # noqa: E402,F401
from .normalize import concat_tables, unify_schemas  # noqa: E402,F401
from .table import Column, Table, Vector  # noqa: E402,F401
from .types import ColumnType, Tokens  # noqa: E402,F401

__all__ = [
    "__version__",
    # Config
    "AppConfig",
    "get_config",
    "get_paths",
    # Logging
    "get_logger",
    # Exceptions
    "AppError",
    "CoercionError",
    "ConfigError",
    "ConnectionError",
    "DataError",
    "NotFoundError",
    "NumericError",
    "ParseError",
    # Data model
    "Collection",
    "Column",
    "ColumnType",
    "Table",
    "Tokens",
    "Vector",
    "concat_tables",
    "unify_schemas",
    # Sources
    "ConnectionHandle",
    "enumerate_sources",
    "list_sheets",
    "load_all",
    "load_table",
    "query_table",
    "read_delimited",
    "read_query",
    "read_sheet",
    # Sinks
    "list_bundle",
    "read_bundle",
    "write_bundle",
    "write_sheets",
    "write_table",
]
