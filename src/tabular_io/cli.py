"""
Command-line interface for tabular_io.

The CLI is a thin shell over the library: every command loads through
``tabular_io.data.sources`` and writes through ``tabular_io.data.writing``,
so it behaves exactly like the Python API.

Typical usage (after installing the package):

    tabular-io sheets  admissions.xlsx
    tabular-io inspect admissions.xlsx --sheet 2019 --rows 10
    tabular-io convert admissions.xlsx admissions_2019.csv --sheet 2019
    tabular-io query --url sqlite:///school.db --sql "SELECT * FROM admissions" --out out.csv

The console script entry point in pyproject.toml:

    [project.scripts]
    tabular-io = "tabular_io.cli:app"
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .config import get_config
from .data.sources import enumerate_sources, load_table
from .data.sql import get_engine, read_query
from .data.writing import WRITE_FORMATS, write_table
from .exceptions import AppError
from .logging_config import configure_logging_from_app_config, get_logger

app = typer.Typer(
    help="Read delimited text, spreadsheets and SQL results into one Table model.",
    no_args_is_help=True,
)

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _selector(location: str, value: Optional[str]) -> int | str | None:
    """Sheet/file names win; other digit strings are 1-based positions."""
    if value is None or not value.isdigit():
        return value
    names = [s for s in enumerate_sources(location) if isinstance(s, str)]
    return value if value in names else int(value)


def _fail(exc: AppError) -> None:
    logger.error("Command failed", extra={"error": exc.to_dict()})
    typer.echo(f"[{exc.code}] {exc.message}", err=True)
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        dir_okay=False,
        help="Path to a tabular_io YAML config file. Defaults to discovery.",
    ),
    env: Optional[str] = typer.Option(
        None,
        "--env",
        help="Config environment/profile name (e.g. 'dev', 'prod').",
    ),
) -> None:
    """Load the configuration before any command runs."""
    try:
        cfg = get_config(config, env=env, force_reload=True)
    except AppError as exc:
        _fail(exc)
    configure_logging_from_app_config(cfg, force=True)


@app.command("version")
def version() -> None:
    """Print the installed tabular_io version."""
    typer.echo(f"tabular_io version: {__version__}")


@app.command("sheets")
def sheets(
    location: str = typer.Argument(..., help="Workbook, delimited file, directory or URL."),
) -> None:
    """List the selectors (sheets, files) available at LOCATION."""
    try:
        selectors = enumerate_sources(location)
    except AppError as exc:
        _fail(exc)
    for selector in selectors:
        typer.echo(str(selector))


@app.command("inspect")
def inspect(
    location: str = typer.Argument(..., help="Workbook, delimited file, directory or URL."),
    sheet: Optional[str] = typer.Option(
        None,
        "--sheet",
        "-s",
        help="Sheet/file name, or 1-based position.",
    ),
    rows: int = typer.Option(5, "--rows", "-n", min=0, help="Number of rows to show."),
) -> None:
    """Print the shape, column types and first rows of one table."""
    try:
        table = load_table(location, _selector(location, sheet))
    except AppError as exc:
        _fail(exc)

    n_rows, n_cols = table.shape
    typer.echo(f"{n_rows} rows x {n_cols} columns")
    for name, dtype in table.types.items():
        typer.echo(f"  {name}: {dtype.value}")
    if rows and n_rows:
        typer.echo("")
        typer.echo(str(table.head(rows)))


@app.command("convert")
def convert(
    source: str = typer.Argument(..., help="Input location."),
    dest: Path = typer.Argument(..., dir_okay=False, help="Output file."),
    sheet: Optional[str] = typer.Option(
        None,
        "--sheet",
        "-s",
        help="Sheet/file name, or 1-based position.",
    ),
    fmt: Optional[str] = typer.Option(
        None,
        "--format",
        "-f",
        help=f"Output format ({', '.join(WRITE_FORMATS)}); inferred from DEST by default.",
    ),
) -> None:
    """Read one table from SOURCE and write it to DEST."""
    try:
        table = load_table(source, _selector(source, sheet))
        written = write_table(table, dest, fmt)
    except AppError as exc:
        _fail(exc)
    typer.echo(f"Wrote {table.n_rows} rows to {written}")


@app.command("query")
def query(
    url: Optional[str] = typer.Option(
        None,
        "--url",
        help="SQLAlchemy database URL. Defaults to the configured database.",
    ),
    sql: str = typer.Option(..., "--sql", help="Query to run."),
    out: Path = typer.Option(..., "--out", "-o", dir_okay=False, help="Output file."),
    fmt: Optional[str] = typer.Option(None, "--format", "-f", help="Output format."),
) -> None:
    """Run a SQL query and write its result set to a file."""
    try:
        engine = get_engine(url)
        try:
            table = read_query(engine, sql)
        finally:
            engine.dispose()
        written = write_table(table, out, fmt)
    except AppError as exc:
        _fail(exc)
    typer.echo(f"Wrote {table.n_rows} rows to {written}")


# ---------------------------------------------------------------------------
# Entry point for `python -m tabular_io.cli`
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    app()
