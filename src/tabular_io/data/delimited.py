from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator, Mapping

import requests

from tabular_io.config import get_config
from tabular_io.exceptions import ConnectionError, NotFoundError, ParseError
from tabular_io.logging_config import get_logger
from tabular_io.normalize import clean_column_names
from tabular_io.table import Table
from tabular_io.types import ColumnType, QuotedText, Tokens

logger = get_logger(__name__)

Fetcher = Callable[[str], bytes]

DELIMITED_SUFFIXES = (".csv", ".tsv", ".txt")


def is_url(location: str | Path) -> bool:
    return isinstance(location, str) and location.lower().startswith(("http://", "https://"))


def _default_delimiter(location: str | Path, configured: str) -> str:
    """Tab for .tsv files, otherwise the configured delimiter."""
    suffix = Path(str(location).split("?", 1)[0]).suffix.lower()
    if suffix == ".tsv":
        return "\t"
    return configured


def fetch_url(url: str, *, timeout: float = 30.0) -> bytes:
    """Download ``url`` and return the body.

    Raises
    ------
    ConnectionError
        If the host is unreachable, the request times out, or the server
        answers with an error status.
    """
    logger.info("Fetching delimited file", extra={"url": url, "timeout": timeout})
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ConnectionError(
            f"Failed to fetch {url}",
            cause=exc,
            context={"url": url},
            location=f"{__name__}.fetch_url",
        ) from exc
    return response.content


def _read_bytes(location: str | Path, fetcher: Fetcher | None, timeout: float) -> bytes:
    if is_url(location):
        fetch = fetcher or (lambda url: fetch_url(url, timeout=timeout))
        return fetch(str(location))

    path = Path(location)
    if not path.is_file():
        raise NotFoundError(
            f"Delimited file not found: {path}",
            code="data_file_not_found",
            context={"path": str(path)},
            location=f"{__name__}.read_delimited",
        )
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ParseError(
            f"Failed to read {path}",
            code="data_read_error",
            cause=exc,
            context={"path": str(path)},
            location=f"{__name__}.read_delimited",
        ) from exc


def _field(chars: list[str], quoted: bool) -> str:
    text = "".join(chars)
    return QuotedText(text) if quoted else text


def split_records(text: str, delimiter: str = ",") -> Iterator[tuple[int, list[str]]]:
    """Split delimited text into ``(line, fields)`` records.

    Follows the usual CSV quoting rules: a field that starts with ``"`` runs
    to the matching closing quote, may contain the delimiter and line breaks,
    and writes a literal quote as ``""``. Quoted fields are yielded as
    :class:`QuotedText` so inference keeps them as text. ``line`` is the
    1-based line the record starts on. Blank lines yield nothing.

    Raises
    ------
    ParseError
        If a quoted field is never closed.
    """
    if len(delimiter) != 1:
        raise ValueError("delimiter must be a single character")

    fields: list[str] = []
    chars: list[str] = []
    quoted = in_quotes = False
    line = start = 1
    i, n = 0, len(text)

    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if text[i + 1 : i + 2] == '"':
                    chars.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                if ch == "\n" or (ch == "\r" and text[i + 1 : i + 2] != "\n"):
                    line += 1
                chars.append(ch)
        elif ch == '"' and not chars and not quoted:
            quoted = in_quotes = True
        elif ch == delimiter:
            fields.append(_field(chars, quoted))
            chars, quoted = [], False
        elif ch in "\r\n":
            if ch == "\r" and text[i + 1 : i + 2] == "\n":
                i += 1
            if fields or chars or quoted:
                fields.append(_field(chars, quoted))
                yield start, fields
            fields, chars, quoted = [], [], False
            line += 1
            start = line
        else:
            chars.append(ch)
        i += 1

    if in_quotes:
        raise ParseError(
            f"Unterminated quoted field starting on line {start}",
            code="parse_unterminated_quote",
            context={"line": start},
            location=f"{__name__}.split_records",
        )
    if fields or chars or quoted:
        fields.append(_field(chars, quoted))
        yield start, fields


def parse_delimited(
    text: str,
    *,
    delimiter: str = ",",
    tokens: Tokens | None = None,
    types: Mapping[str, ColumnType | str] | None = None,
    source: str | None = None,
) -> Table:
    """Parse delimited text whose first line is the header row.

    Blank lines are skipped. Each column's type is inferred from its
    values unless given in ``types``; a quoted field only ever counts as
    text, so a column holding ``"02139"`` stays text.

    Raises
    ------
    ParseError
        If there is no header row, a quoted field is never closed, or a
        row's field count differs from the header's (the message names the
        line).
    CoercionError
        If a value does not fit a type given in ``types``.
    """
    try:
        numbered = list(split_records(text, delimiter))
    except ParseError as exc:
        exc.add_context(source=source)
        raise

    if not numbered:
        raise ParseError(
            "Delimited text is empty; expected a header row",
            code="parse_empty",
            context={"source": source},
            location=f"{__name__}.parse_delimited",
        )

    (_, header), *body = numbered
    columns = clean_column_names(header)
    width = len(columns)

    for line, row in body:
        if len(row) != width:
            raise ParseError(
                f"Line {line} has {len(row)} fields; the header has {width}",
                code="parse_ragged_row",
                context={
                    "source": source,
                    "line": line,
                    "n_fields": len(row),
                    "expected_fields": width,
                },
                location=f"{__name__}.parse_delimited",
            )

    return Table.from_records(
        columns,
        (row for _, row in body),
        types,
        tokens=tokens,
        parse_text=True,
    )


def read_delimited(
    location: str | Path,
    *,
    delimiter: str | None = None,
    encoding: str | None = None,
    tokens: Tokens | None = None,
    types: Mapping[str, ColumnType | str] | None = None,
    fetcher: Fetcher | None = None,
) -> Table:
    """Read a delimited file (local path or http(s) URL) into a Table.

    Parameters
    ----------
    location:
        File path or URL.
    delimiter:
        Field delimiter. Defaults to tab for ``.tsv`` files and to
        ``delimited.delimiter`` from the config otherwise.
    encoding:
        Text encoding; defaults to ``delimited.encoding``. A UTF-8 byte
        order mark is tolerated.
    tokens:
        Boolean/missing tokens; defaults to the configured ones.
    types:
        Optional declared types overriding inference per column.
    fetcher:
        ``fetcher(url) -> bytes`` used for URLs; defaults to a requests
        GET with ``delimited.fetch_timeout``.

    Raises
    ------
    NotFoundError
        If a local file does not exist.
    ConnectionError
        If a URL cannot be fetched.
    ParseError
        If the file cannot be decoded or has ragged rows.
    """
    cfg = get_config().delimited
    effective_delimiter = delimiter or _default_delimiter(location, cfg.delimiter)
    effective_encoding = encoding or cfg.encoding
    if effective_encoding.replace("-", "").lower() == "utf8":
        effective_encoding = "utf-8-sig"
    tokens = tokens or Tokens.from_config(cfg)
    source = str(location)

    logger.info(
        "Loading delimited table",
        extra={"source": source, "delimiter": effective_delimiter, "encoding": effective_encoding},
    )

    raw = _read_bytes(location, fetcher, cfg.fetch_timeout)
    try:
        text = raw.decode(effective_encoding)
    except (UnicodeDecodeError, LookupError) as exc:
        raise ParseError(
            f"Cannot decode {source} as {effective_encoding}",
            code="parse_decode_error",
            cause=exc,
            context={"source": source, "encoding": effective_encoding},
            location=f"{__name__}.read_delimited",
        ) from exc

    table = parse_delimited(
        text,
        delimiter=effective_delimiter,
        tokens=tokens,
        types=types,
        source=source,
    )

    logger.info(
        "Loaded delimited table",
        extra={"source": source, "n_rows": table.n_rows, "n_cols": table.n_cols},
    )
    return table


__all__ = [
    "DELIMITED_SUFFIXES",
    "fetch_url",
    "is_url",
    "parse_delimited",
    "read_delimited",
    "split_records",
]
