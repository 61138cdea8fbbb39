"""
Source and sink adapters for tabular_io.

- ``delimited``: CSV/TSV files and URLs.
- ``spreadsheet``: xlsx/xlsm workbooks, one sheet at a time.
- ``sql``: relational query results through SQLAlchemy.
- ``sources``: dispatch by location, selector enumeration and batch loads.
- ``writing`` / ``bundle``: delimited/workbook output and named-value bundles.

Import the concrete modules directly, for example:

    from tabular_io.data.sql import read_query

to keep dependencies and side effects explicit.
"""

from __future__ import annotations

__all__: list[str] = []
