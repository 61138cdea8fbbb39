"""
Bundles: one file holding any number of named values.

A bundle stores Tables, Collections, DataFrames and plain scalars (and
lists/tuples/dicts of those) under names, and restores them with the same
names, order and shapes. The file is two consecutive pickles: a small
header (format tag, version, names) followed by the payload, so the names
can be listed without loading the values.

Bundles are pickles: only read files you trust.
"""

from __future__ import annotations

import pickle
from pathlib import Path
from typing import Any, Mapping

import pandas as pd

from tabular_io.collection import Collection
from tabular_io.data.writing import atomic_target
from tabular_io.exceptions import DataError, NotFoundError, ParseError
from tabular_io.logging_config import get_logger
from tabular_io.table import Table

logger = get_logger(__name__)

BUNDLE_FORMAT = "tabular-io-bundle"
BUNDLE_VERSION = 1

_SCALARS = (type(None), bool, int, float, str)


def _check_value(value: Any, trail: str) -> None:
    if isinstance(value, (Table, Collection, pd.DataFrame) + _SCALARS):
        return
    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_value(item, f"{trail}[{i}]")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise DataError(
                    f"Bundle value {trail} has a non-string key {key!r}",
                    code="bundle_unsupported_value",
                    context={"value": trail, "key": repr(key)},
                    location=f"{__name__}.write_bundle",
                )
            _check_value(item, f"{trail}[{key!r}]")
        return
    raise DataError(
        f"Bundle value {trail} has unsupported type {type(value).__name__}",
        code="bundle_unsupported_value",
        context={"value": trail, "type": type(value).__name__},
        location=f"{__name__}.write_bundle",
    )


def write_bundle(values: Mapping[str, Any], path: str | Path) -> Path:
    """Store named values in a single bundle file (atomically).

    Raises
    ------
    DataError
        If a name is not a non-empty string, a value has an unsupported
        type (nothing is written), or the file cannot be written.
    """
    target = Path(path)
    names = list(values)
    for name in names:
        if not isinstance(name, str) or not name:
            raise DataError(
                f"Bundle names must be non-empty strings, got {name!r}",
                code="bundle_bad_name",
                context={"name": repr(name)},
                location=f"{__name__}.write_bundle",
            )
        _check_value(values[name], name)

    header = {"format": BUNDLE_FORMAT, "version": BUNDLE_VERSION, "names": names}
    logger.info("Writing bundle", extra={"path": str(target), "names": names})

    try:
        with atomic_target(target) as tmp_path, tmp_path.open("wb") as handle:
            pickle.dump(header, handle, protocol=pickle.HIGHEST_PROTOCOL)
            pickle.dump(dict(values), handle, protocol=pickle.HIGHEST_PROTOCOL)
    except (OSError, pickle.PicklingError) as exc:
        raise DataError(
            f"Failed to write bundle to {target}",
            code="data_write_error",
            cause=exc,
            context={"path": str(target)},
            location=f"{__name__}.write_bundle",
        ) from exc

    return target


def _open(path: Path) -> Any:
    if not path.is_file():
        raise NotFoundError(
            f"Bundle not found: {path}",
            code="data_file_not_found",
            context={"path": str(path)},
            location=f"{__name__}.read_bundle",
        )
    return path.open("rb")


def _corrupt(path: Path, reason: str, exc: BaseException | None = None) -> ParseError:
    return ParseError(
        f"{path} is not a readable bundle: {reason}",
        code="parse_bad_bundle",
        cause=exc,
        context={"path": str(path)},
        location=f"{__name__}.read_bundle",
    )


_UNPICKLE_ERRORS = (
    pickle.UnpicklingError,
    EOFError,
    AttributeError,
    ImportError,
    IndexError,
    TypeError,
    ValueError,
)


def _read_header(handle: Any, path: Path) -> list[str]:
    try:
        header = pickle.load(handle)
    except _UNPICKLE_ERRORS as exc:
        raise _corrupt(path, "unreadable header", exc) from exc
    if not isinstance(header, dict) or header.get("format") != BUNDLE_FORMAT:
        raise _corrupt(path, "missing bundle header")
    if header.get("version") != BUNDLE_VERSION:
        raise _corrupt(path, f"unsupported version {header.get('version')!r}")
    return list(header.get("names", []))


def list_bundle(path: str | Path) -> list[str]:
    """Names stored in a bundle, without loading the values."""
    source = Path(path)
    with _open(source) as handle:
        return _read_header(handle, source)


def read_bundle(path: str | Path) -> dict[str, Any]:
    """Restore the named values of a bundle, in their original order.

    Raises
    ------
    NotFoundError
        If the file does not exist.
    ParseError
        If the file is not a bundle, has an unknown version, or is corrupt.
    """
    source = Path(path)
    logger.info("Reading bundle", extra={"path": str(source)})

    with _open(source) as handle:
        names = _read_header(handle, source)
        try:
            payload = pickle.load(handle)
        except _UNPICKLE_ERRORS as exc:
            raise _corrupt(source, "unreadable payload", exc) from exc

    if not isinstance(payload, dict) or list(payload) != names:
        raise _corrupt(source, "payload does not match header")

    return {name: payload[name] for name in names}


__all__ = ["BUNDLE_FORMAT", "BUNDLE_VERSION", "list_bundle", "read_bundle", "write_bundle"]
