"""Generic in-memory table with dense ids and secondary indexes.

A table owns its rows (keyed by id), the id counter and every index declared
for it. Index keys are computed for the incoming record before anything is
written, so a row and its index entries are always written together.

Unique indexes map key -> id. Multi-valued (inverted) indexes map
key -> ordered set of ids. A key function returning ``None`` leaves the row
out of that index.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Hashable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from blastradius.config.constants import ID_START
from blastradius.core.errors import InternalError

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class IndexSpec(Generic[RecordT]):
    """Declaration of one secondary index."""

    name: str
    key: Callable[[RecordT], Hashable | None]
    unique: bool = False


class Table(Generic[RecordT]):
    """Rows of one entity kind plus their indexes.

    Usage::

        services = Table("services", Service, [IndexSpec("by_name", lambda s: s.name, unique=True)])
        svc = services.insert(lambda new_id: Service(id=new_id, name="network"))
        services.lookup("by_name", "network")
    """

    def __init__(
        self,
        name: str,
        record_type: type[RecordT],
        indexes: Sequence[IndexSpec[RecordT]] = (),
    ) -> None:
        self.name = name
        self.record_type = record_type
        self._specs = {spec.name: spec for spec in indexes}
        self._rows: dict[int, RecordT] = {}
        self._unique: dict[str, dict[Hashable, int]] = {}
        self._multi: dict[str, dict[Hashable, dict[int, None]]] = {}
        self._next_id = ID_START
        self._reset_indexes()

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, row_id: object) -> bool:
        return row_id in self._rows

    def __iter__(self) -> Iterator[RecordT]:
        return iter(self._rows.values())

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def index_names(self) -> list[str]:
        return list(self._specs)

    def get(self, row_id: int | None) -> RecordT | None:
        if row_id is None:
            return None
        return self._rows.get(row_id)

    def insert(self, build: Callable[[int], RecordT]) -> RecordT:
        """Build a record with the next id and write it with its index entries."""
        row_id = self._next_id
        record = build(row_id)
        self._write(row_id, record)
        self._next_id = row_id + 1
        return record

    def load(self, record: RecordT) -> None:
        """Insert a record carrying its own id (bulk import).

        The counter is advanced past the loaded id so later inserts never
        collide with imported rows.
        """
        row_id: int = record.id  # type: ignore[attr-defined]
        if row_id in self._rows:
            raise InternalError.unexpected("duplicate id on load", table=self.name, id=row_id)
        self._write(row_id, record)
        self._next_id = max(self._next_id, row_id + 1)

    def replace(self, row_id: int, **changes: Any) -> RecordT | None:
        """Swap in an updated copy of a row. Returns None when the id is absent."""
        old = self._rows.get(row_id)
        if old is None:
            return None
        new = dataclasses.replace(old, **changes)  # type: ignore[type-var]
        new_keys = self._keys_for(new)
        self._check_unique(new_keys, row_id)
        self._unindex(row_id, self._keys_for(old))
        self._index(row_id, new_keys)
        self._rows[row_id] = new
        return new

    def lookup(self, index: str, key: Hashable) -> RecordT | None:
        row_id = self._unique[index].get(key)
        return None if row_id is None else self._rows[row_id]

    def lookup_all(self, index: str, key: Hashable) -> list[RecordT]:
        if index in self._unique:
            found = self.lookup(index, key)
            return [] if found is None else [found]
        ids = self._multi[index].get(key, {})
        return [self._rows[row_id] for row_id in ids]

    def index_entries(self, index: str) -> dict[Hashable, set[int]]:
        """Current contents of an index as key -> ids."""
        if index in self._unique:
            return {key: {row_id} for key, row_id in self._unique[index].items()}
        return {key: set(ids) for key, ids in self._multi[index].items() if ids}

    def expected_index_entries(self, index: str) -> dict[Hashable, set[int]]:
        """Index contents recomputed from the rows."""
        spec = self._specs[index]
        expected: dict[Hashable, set[int]] = {}
        for row_id, record in self._rows.items():
            key = spec.key(record)
            if key is not None:
                expected.setdefault(key, set()).add(row_id)
        return expected

    def reset(self) -> None:
        self._rows.clear()
        self._reset_indexes()
        self._next_id = ID_START

    def _reset_indexes(self) -> None:
        self._unique = {name: {} for name, spec in self._specs.items() if spec.unique}
        self._multi = {name: {} for name, spec in self._specs.items() if not spec.unique}

    def _keys_for(self, record: RecordT) -> dict[str, Hashable | None]:
        return {name: spec.key(record) for name, spec in self._specs.items()}

    def _check_unique(self, keys: dict[str, Hashable | None], row_id: int) -> None:
        for name, key in keys.items():
            if key is None or name not in self._unique:
                continue
            holder = self._unique[name].get(key)
            if holder is not None and holder != row_id:
                raise InternalError.unexpected(
                    "unique index conflict", table=self.name, index=name, key=repr(key)
                )

    def _write(self, row_id: int, record: RecordT) -> None:
        keys = self._keys_for(record)
        self._check_unique(keys, row_id)
        self._rows[row_id] = record
        self._index(row_id, keys)

    def _index(self, row_id: int, keys: dict[str, Hashable | None]) -> None:
        for name, key in keys.items():
            if key is None:
                continue
            if name in self._unique:
                self._unique[name][key] = row_id
            else:
                bucket = self._multi[name].setdefault(key, {})
                if bucket and row_id < next(reversed(bucket)):
                    # a re-keyed row joins out of order; buckets stay ascending
                    bucket[row_id] = None
                    self._multi[name][key] = dict.fromkeys(sorted(bucket))
                else:
                    bucket[row_id] = None

    def _unindex(self, row_id: int, keys: dict[str, Hashable | None]) -> None:
        for name, key in keys.items():
            if key is None:
                continue
            if name in self._unique:
                if self._unique[name].get(key) == row_id:
                    del self._unique[name][key]
            else:
                bucket = self._multi[name].get(key)
                if bucket is not None:
                    bucket.pop(row_id, None)
                    if not bucket:
                        del self._multi[name][key]
