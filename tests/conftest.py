from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Generator

import openpyxl
import pytest
import yaml
from sqlalchemy import create_engine, text

import tabular_io.config as config_module


# ---------------------------------------------------------------------------
# Isolation: every test starts from a clean configuration
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_config(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Drop TABULAR_IO_* variables, the config cache and any ./tabular_io.yaml.

    The working directory is moved to ``tmp_path`` so config discovery and
    the .env lookup never see files from the developer's checkout.
    """
    for key in list(os.environ):
        if key.startswith("TABULAR_IO_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "_config_cache", None)
    yield


@pytest.fixture
def package_caplog(caplog: pytest.LogCaptureFixture) -> Generator[pytest.LogCaptureFixture, None, None]:
    """caplog that also sees records from the (non-propagating) package logger."""
    package_logger = logging.getLogger("tabular_io")
    package_logger.addHandler(caplog.handler)
    try:
        yield caplog
    finally:
        package_logger.removeHandler(caplog.handler)


# ---------------------------------------------------------------------------
# Sample data: university admissions per school
# ---------------------------------------------------------------------------

ADMISSIONS_HEADER = ["school", "admitted", "rate", "selective"]
ADMISSIONS_ROWS = [
    ["North", 62, 0.5, True],
    ["South", 124, 0.75, False],
    ["East", 140, 0.25, True],
]

YEARLY_ROWS = {
    "2017": [["North", 50, 0.5, True], ["South", 80, 0.25, False]],
    "2018": [["North", 55, 0.5, True], ["South", 90, 0.75, False]],
    "2019": [["North", 62, 0.5, True], ["South", 124, 0.75, False], ["East", 140, 0.25, True]],
}


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def admissions_csv(data_dir: Path) -> Path:
    """Three-row CSV with one column of each type (text, integer, float, boolean)."""
    csv_path = data_dir / "admissions.csv"
    csv_path.write_text(
        "school,admitted,rate,selective\n"
        "North,62,0.5,TRUE\n"
        "South,124,0.75,FALSE\n"
        "East,140,0.25,TRUE\n",
        encoding="utf-8",
    )
    return csv_path


@pytest.fixture
def admissions_xlsx(data_dir: Path) -> Path:
    """Workbook with one sheet per year ("2017", "2018", "2019")."""
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for title, rows in YEARLY_ROWS.items():
        sheet = workbook.create_sheet(title=title)
        sheet.append(ADMISSIONS_HEADER)
        for row in rows:
            sheet.append(row)

    xlsx_path = data_dir / "admissions.xlsx"
    workbook.save(xlsx_path)
    return xlsx_path


@pytest.fixture
def csv_directory(tmp_path: Path) -> Path:
    """Directory with four small CSV files plus a file that is not delimited."""
    directory = tmp_path / "monthly"
    directory.mkdir()
    for i, month in enumerate(["01", "02", "03", "04"], start=1):
        (directory / f"month_{month}.csv").write_text(
            f"month,admitted\n{month},{i * 10}\n",
            encoding="utf-8",
        )
    (directory / "README.md").write_text("not a table\n", encoding="utf-8")
    return directory


@pytest.fixture
def sqlite_path(tmp_path: Path) -> Path:
    """SQLite database file with an ``admissions`` table."""
    db_path = tmp_path / "school.db"
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        with engine.begin() as connection:
            connection.execute(
                text("CREATE TABLE admissions (school TEXT, admitted INTEGER, rate REAL)")
            )
            connection.execute(
                text("INSERT INTO admissions VALUES (:school, :admitted, :rate)"),
                [
                    {"school": school, "admitted": admitted, "rate": rate}
                    for school, admitted, rate, _ in ADMISSIONS_ROWS
                ],
            )
    finally:
        engine.dispose()
    return db_path


@pytest.fixture
def sqlite_url(sqlite_path: Path) -> str:
    return f"sqlite:///{sqlite_path}"


# ---------------------------------------------------------------------------
# Temporary YAML config that matches AppConfig
# ---------------------------------------------------------------------------


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Write a minimal-but-realistic config YAML under tmp_path.

      env: "dev"
      log_level: "INFO"
      paths:
        base_dir: "<tmp_path>"
        data_dir: "data"
        output_dir: "output"
      delimited:
        missing_tokens: ["", "NA", "-"]
      derive:
        on_undefined: "propagate"
    """
    config = {
        "env": "dev",
        "log_level": "INFO",
        "paths": {
            "base_dir": str(tmp_path),
            "data_dir": "data",
            "output_dir": "output",
        },
        "delimited": {
            "missing_tokens": ["", "NA", "-"],
        },
        "derive": {
            "on_undefined": "propagate",
        },
    }

    path = tmp_path / "tabular_io_test.yaml"
    path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")
    return path
