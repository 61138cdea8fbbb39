from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError, DBAPIError, SQLAlchemyError

from tabular_io.config import DatabaseConfig, get_config
from tabular_io.exceptions import ConnectionError, DataError
from tabular_io.logging_config import get_logger
from tabular_io.normalize import clean_column_names
from tabular_io.table import Table
from tabular_io.types import ColumnType

logger = get_logger(__name__)


def _safe_url_context(url: str | URL | None) -> dict[str, Any]:
    """Return a non-sensitive description of a database URL.

    Full URLs may carry credentials; only the driver and host are logged.
    """
    if url is None:
        return {"driver": None, "host": None}
    try:
        parsed = make_url(url)
    except ArgumentError:
        return {"driver": str(url).split("://", 1)[0], "host": None}
    return {"driver": parsed.drivername, "host": parsed.host}


def _preview(sql: str) -> str:
    return sql if len(sql) <= 500 else sql[:497] + "..."


def build_url(db: DatabaseConfig | None = None) -> URL:
    """Build a SQLAlchemy URL from ``db`` (defaults to AppConfig.database).

    ``db.url`` wins when set; otherwise the URL is assembled from the
    driver, host, port, credentials and database name.

    Raises
    ------
    DataError
        If neither a URL nor a database name is configured, or the URL is
        malformed.
    """
    db = db or get_config().database
    location = f"{__name__}.build_url"

    if db.url:
        try:
            return make_url(db.url)
        except ArgumentError as exc:
            raise DataError(
                "Database URL is malformed",
                code="sql_bad_url",
                cause=exc,
                context=_safe_url_context(db.url),
                location=location,
            ) from exc

    if not db.database:
        raise DataError(
            "Database configuration needs either 'url' or 'database'",
            code="sql_missing_config",
            context={"url_present": False, "database_present": False},
            location=location,
        )

    return URL.create(
        drivername=db.drivername,
        username=db.username,
        password=db.password.get_secret_value() if db.password is not None else None,
        host=db.host,
        port=db.port,
        database=db.database,
    )


def get_engine(url: str | URL | None = None, *, echo: bool | None = None) -> Engine:
    """Construct a SQLAlchemy Engine.

    Parameters
    ----------
    url:
        Database URL. If None, :func:`build_url` derives it from the config.
    echo:
        Optional override for the SQLAlchemy ``echo`` flag; defaults to
        ``database.echo``.

    Raises
    ------
    DataError
        If the configuration is incomplete or the engine cannot be created.
    """
    db = get_config().database
    effective_url = url if url is not None else build_url(db)
    effective_echo = db.echo if echo is None else echo
    log_ctx = _safe_url_context(effective_url)

    logger.info("Creating SQLAlchemy engine", extra={**log_ctx, "echo": effective_echo})

    try:
        return create_engine(effective_url, echo=effective_echo, pool_pre_ping=True)
    except (SQLAlchemyError, ImportError) as exc:
        # ImportError: the DB-API driver named in the URL is not installed.
        raise DataError(
            "Failed to create SQLAlchemy engine",
            code="sql_engine_error",
            cause=exc,
            context=log_ctx,
            location=f"{__name__}.get_engine",
        ) from exc


class ConnectionHandle:
    """Scoped link to a database, good for one query/fetch cycle.

    Use it as a context manager so the connection is released on every exit
    path, including errors:

        with ConnectionHandle(engine) as handle:
            table = read_query(handle, "SELECT * FROM admissions")
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._connection: Connection | None = None
        self._used = False

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def open(self) -> ConnectionHandle:
        if self._connection is not None:
            return self
        log_ctx = _safe_url_context(self._engine.url)
        try:
            self._connection = self._engine.connect()
        except DBAPIError as exc:
            raise ConnectionError(
                "Could not connect to the database",
                cause=exc,
                context=log_ctx,
                location=f"{__name__}.ConnectionHandle.open",
            ) from exc
        logger.debug("Opened database connection", extra=log_ctx)
        return self

    def close(self) -> None:
        if self._connection is None:
            return
        try:
            self._connection.close()
        finally:
            self._connection = None
            logger.debug("Closed database connection", extra=_safe_url_context(self._engine.url))

    def __enter__(self) -> ConnectionHandle:
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _claim(self, operation: str) -> Connection:
        if self._connection is None:
            raise DataError(
                "Connection handle is not open",
                code="sql_handle_closed",
                location=f"{__name__}.ConnectionHandle.{operation}",
            )
        if self._used:
            raise DataError(
                "Connection handle has already run its query",
                code="sql_handle_used",
                location=f"{__name__}.ConnectionHandle.{operation}",
            )
        self._used = True
        return self._connection

    def execute(self, statement: str, params: Mapping[str, Any] | None = None) -> int:
        """Run a DML/DDL statement in its own transaction; return the rowcount."""
        connection = self._claim("execute")
        with connection.begin():
            result = connection.execute(text(statement), dict(params or {}))
            return int(getattr(result, "rowcount", -1))

    def fetch(self, query: str, params: Mapping[str, Any] | None = None) -> tuple[list[str], list[tuple]]:
        """Run ``query`` and return ``(column_names, rows)``.

        The server-side result is closed before returning.
        """
        connection = self._claim("fetch")
        result = connection.execute(text(query), dict(params or {}))
        try:
            if not result.returns_rows:
                raise DataError(
                    "Statement did not return rows; use execute_sql for DML/DDL",
                    code="sql_no_rows",
                    context={"query_preview": _preview(query)},
                    location=f"{__name__}.ConnectionHandle.fetch",
                )
            columns = [str(key) for key in result.keys()]
            rows = [tuple(row) for row in result.fetchall()]
        finally:
            result.close()
        return columns, rows


def read_query(
    source: ConnectionHandle | Engine,
    query: str,
    *,
    params: Mapping[str, Any] | None = None,
    types: Mapping[str, ColumnType | str] | None = None,
) -> Table:
    """Execute ``query`` and materialise the full result set as a Table.

    Parameters
    ----------
    source:
        An open :class:`ConnectionHandle`, or an Engine (a handle is then
        opened and closed around the query).
    query:
        SQL text; prefer named parameters (``:start_date``) with ``params``.
    types:
        Optional declared types overriding inference per column.

    Raises
    ------
    ConnectionError
        If the database cannot be reached.
    DataError
        If the query fails.
    """
    if isinstance(source, Engine):
        with ConnectionHandle(source) as handle:
            return read_query(handle, query, params=params, types=types)

    preview = _preview(query)
    logger.info(
        "Executing SQL query",
        extra={"query_preview": preview, "has_params": bool(params)},
    )

    try:
        columns, rows = source.fetch(query, params)
    except DBAPIError as exc:
        if not exc.connection_invalidated:
            raise DataError(
                "Database error during query execution",
                code="sql_query_error",
                cause=exc,
                context={"query_preview": preview, "has_params": bool(params)},
                location=f"{__name__}.read_query",
            ) from exc
        raise ConnectionError(
            "Database connection was lost during the query",
            cause=exc,
            context={"query_preview": preview},
            location=f"{__name__}.read_query",
        ) from exc
    except SQLAlchemyError as exc:
        raise DataError(
            "SQLAlchemy error during query execution",
            code="sql_query_error",
            cause=exc,
            context={"query_preview": preview, "has_params": bool(params)},
            location=f"{__name__}.read_query",
        ) from exc

    table = Table.from_records(clean_column_names(columns), rows, types, parse_text=False)
    logger.info(
        "Loaded table from SQL query",
        extra={"n_rows": table.n_rows, "n_cols": table.n_cols},
    )
    return table


def query_table(
    query: str,
    *,
    host: str | None = None,
    username: str | None = None,
    password: str | None = None,
    database: str | None = None,
    drivername: str | None = None,
    port: int | None = None,
    params: Mapping[str, Any] | None = None,
) -> Table:
    """Connect, run one query, fetch everything and disconnect.

    Unset arguments fall back to AppConfig.database. The engine is
    disposed before returning, whatever happens.
    """
    base = get_config().database
    overrides = {
        key: value
        for key, value in {
            "host": host,
            "username": username,
            "password": password,
            "database": database,
            "drivername": drivername,
            "port": port,
        }.items()
        if value is not None
    }
    db = DatabaseConfig(**{**base.model_dump(), **overrides, "url": None}) if overrides else base

    engine = get_engine(build_url(db))
    try:
        return read_query(engine, query, params=params)
    finally:
        engine.dispose()


def read_sql_table(
    table_name: str,
    *,
    schema: str | None = None,
    limit: int | None = None,
    columns: Iterable[str] | None = None,
    engine: Engine | None = None,
) -> Table:
    """Load a whole database table (or a subset of its columns) as a Table.

    ``table_name``, ``schema`` and ``columns`` are trusted identifiers, not
    user input.
    """
    effective_schema = schema if schema is not None else get_config().database.schema_name
    column_list = list(columns) if columns else None
    cols_expr = ", ".join(column_list) if column_list else "*"
    full_name = f"{effective_schema}.{table_name}" if effective_schema else table_name

    query = f"SELECT {cols_expr} FROM {full_name}"
    if limit is not None and limit > 0:
        query += f" LIMIT {int(limit)}"

    logger.info(
        "Loading table via SQL",
        extra={"table": table_name, "schema": effective_schema, "limit": limit},
    )

    owns_engine = engine is None
    engine = engine or get_engine()
    try:
        return read_query(engine, query)
    finally:
        if owns_engine:
            engine.dispose()


def execute_sql(
    statement: str,
    *,
    params: Mapping[str, Any] | None = None,
    engine: Engine | None = None,
) -> int:
    """Execute a non-SELECT statement (INSERT, UPDATE, DELETE, DDL) in a transaction.

    Returns the affected row count when the driver reports one (-1 otherwise).
    """
    owns_engine = engine is None
    engine = engine or get_engine()
    preview = _preview(statement)

    logger.info(
        "Executing SQL statement",
        extra={"statement_preview": preview, "has_params": bool(params)},
    )

    try:
        with ConnectionHandle(engine) as handle:
            rowcount = handle.execute(statement, params)
    except DataError:
        raise
    except SQLAlchemyError as exc:
        raise DataError(
            "SQLAlchemy error during statement execution",
            code="sql_execution_error",
            cause=exc,
            context={"statement_preview": preview, "has_params": bool(params)},
            location=f"{__name__}.execute_sql",
        ) from exc
    finally:
        if owns_engine:
            engine.dispose()

    logger.info(
        "Executed SQL statement",
        extra={"statement_preview": preview, "rowcount": rowcount},
    )
    return int(rowcount)


__all__ = [
    "ConnectionHandle",
    "build_url",
    "execute_sql",
    "get_engine",
    "query_table",
    "read_query",
    "read_sql_table",
]
