from __future__ import annotations

import pickle
from pathlib import Path

import pandas as pd
import pytest

from tabular_io.collection import Collection
from tabular_io.data.bundle import BUNDLE_FORMAT, list_bundle, read_bundle, write_bundle
from tabular_io.exceptions import DataError, NotFoundError, ParseError
from tabular_io.table import Table


@pytest.fixture
def values() -> dict:
    table = Table({"school": ["North", "South"], "admitted": [62, 124]})
    return {
        "admissions": table,
        "years": Collection([("2019", table), ("2020", table.copy())]),
        "frame": pd.DataFrame({"a": [1.5, 2.5]}),
        "total": 186,
        "label": "spring intake",
        "meta": {"sources": ["a.csv", "b.csv"], "checked": True, "ratio": None},
    }


def test_round_trip_keeps_names_order_and_values(values: dict, tmp_path: Path) -> None:
    path = write_bundle(values, tmp_path / "session.bundle")

    restored = read_bundle(path)

    assert list(restored) == list(values)
    assert restored["admissions"] == values["admissions"]
    assert restored["years"] == values["years"]
    assert restored["years"].names == ["2019", "2020"]
    pd.testing.assert_frame_equal(restored["frame"], values["frame"])
    assert restored["total"] == 186
    assert restored["meta"] == values["meta"]


def test_list_bundle_reads_names_only(values: dict, tmp_path: Path) -> None:
    path = write_bundle(values, tmp_path / "session.bundle")

    assert list_bundle(path) == list(values)


def test_empty_bundle(tmp_path: Path) -> None:
    path = write_bundle({}, tmp_path / "empty.bundle")

    assert read_bundle(path) == {}


@pytest.mark.parametrize(
    "bad",
    [
        {"handle": object()},
        {"nested": [1, {"deep": object()}]},
        {"keys": {1: "not a string key"}},
        {"a_set": {1, 2}},
    ],
)
def test_unsupported_values_write_nothing(bad: dict, tmp_path: Path) -> None:
    target = tmp_path / "bad.bundle"

    with pytest.raises(DataError) as ctx:
        write_bundle(bad, target)

    assert ctx.value.code == "bundle_unsupported_value"
    assert not target.exists()


@pytest.mark.parametrize("name", ["", 3])
def test_names_must_be_non_empty_strings(name: object, tmp_path: Path) -> None:
    with pytest.raises(DataError) as ctx:
        write_bundle({name: 1}, tmp_path / "bad.bundle")  # type: ignore[dict-item]

    assert ctx.value.code == "bundle_bad_name"


def test_missing_bundle(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        read_bundle(tmp_path / "nope.bundle")


def test_garbage_is_not_a_bundle(tmp_path: Path) -> None:
    path = tmp_path / "garbage.bundle"
    path.write_bytes(b"\x00\x01 definitely not a pickle")

    with pytest.raises(ParseError) as ctx:
        read_bundle(path)

    assert ctx.value.code == "parse_bad_bundle"


def test_foreign_pickle_is_not_a_bundle(tmp_path: Path) -> None:
    path = tmp_path / "foreign.bundle"
    path.write_bytes(pickle.dumps({"some": "dict"}))

    with pytest.raises(ParseError):
        list_bundle(path)


def test_unknown_version(tmp_path: Path) -> None:
    path = tmp_path / "future.bundle"
    with path.open("wb") as handle:
        pickle.dump({"format": BUNDLE_FORMAT, "version": 99, "names": []}, handle)
        pickle.dump({}, handle)

    with pytest.raises(ParseError) as ctx:
        read_bundle(path)

    assert "version" in ctx.value.message


def test_truncated_payload(values: dict, tmp_path: Path) -> None:
    path = write_bundle(values, tmp_path / "session.bundle")
    path.write_bytes(path.read_bytes()[:-20])

    with pytest.raises(ParseError):
        read_bundle(path)
