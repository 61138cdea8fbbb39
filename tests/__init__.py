"""
Test suite for the tabular_io package.

This package is organized by concern:

- data/       – tests for the source and sink adapters (delimited, spreadsheet,
                SQL, batch loading, writing, bundles)
- cli/        – tests for the Typer-based command-line interface
- test_*.py   – data model (types, table, normalize, collection) and the
                ambient stack (config, logging, exceptions)
- conftest.py – shared fixtures and test configuration

Pytest discovers tests based on file names (test_*.py), not by importing
the tests package directly, so this file is primarily documentation.
"""

__all__: list[str] = []
