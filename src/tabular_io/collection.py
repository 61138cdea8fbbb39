from __future__ import annotations

from typing import Any, Iterable, Iterator, Sequence, Tuple

from tabular_io.exceptions import DataError, NotFoundError
from tabular_io.table import Table

_LOCATION_PREFIX = __name__


class Collection:
    """Ordered, optionally named group of Tables.

    Used when one source yields several tables (a workbook's sheets, a
    directory of CSV files). Positional lookup is valid for
    ``0 <= i < len(collection)``; names, where given, are unique.

        sheets = Collection()
        sheets.append(table, name="2019")
        sheets["2019"] is sheets[0]
    """

    def __init__(self, items: Iterable[Table | Tuple[str | None, Table]] = ()) -> None:
        self._tables: list[Table] = []
        self._names: list[str | None] = []
        for item in items:
            if isinstance(item, Table):
                self.append(item)
            else:
                name, table = item
                self.append(table, name=name)

    def append(self, table: Table, name: str | None = None) -> None:
        if not isinstance(table, Table):
            raise DataError(
                f"Collections hold Tables, got {type(table).__name__}",
                code="collection_bad_item",
                context={"item_type": type(table).__name__},
                location=f"{_LOCATION_PREFIX}.Collection.append",
            )
        if name is not None and name in self._names:
            raise DataError(
                f"A table named {name!r} is already in the collection",
                code="collection_duplicate_name",
                context={"name": name, "names": self.names},
                location=f"{_LOCATION_PREFIX}.Collection.append",
            )
        self._tables.append(table)
        self._names.append(name)

    @property
    def names(self) -> list[str | None]:
        return list(self._names)

    def items(self) -> list[tuple[str | None, Table]]:
        return list(zip(self._names, self._tables))

    def get(self, name: str, default: Any = None) -> Any:
        if name in self._names:
            return self._tables[self._names.index(name)]
        return default

    def __len__(self) -> int:
        return len(self._tables)

    def __iter__(self) -> Iterator[Table]:
        return iter(list(self._tables))

    def __contains__(self, name: object) -> bool:
        return name is not None and name in self._names

    def __getitem__(self, key: int | str) -> Table:
        if isinstance(key, str):
            if key not in self._names:
                raise NotFoundError(
                    f"No table named {key!r}",
                    context={"name": key, "names": self.names},
                    location=f"{_LOCATION_PREFIX}.Collection",
                )
            return self._tables[self._names.index(key)]

        if isinstance(key, bool) or not isinstance(key, int) or not 0 <= key < len(self):
            raise NotFoundError(
                f"Position {key!r} is out of range for a collection of {len(self)}",
                context={"position": repr(key), "length": len(self)},
                location=f"{_LOCATION_PREFIX}.Collection",
            )
        return self._tables[key]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Collection):
            return NotImplemented
        return self._names == other._names and self._tables == other._tables

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        labels: Sequence[str] = [
            name if name is not None else f"#{i}" for i, name in enumerate(self._names)
        ]
        return f"Collection({len(self)} tables: {', '.join(labels)})"


__all__ = ["Collection"]
