"""InMemoryRecordStore: dict-backed store for tests and local use."""

from __future__ import annotations

import copy
import numbers
import operator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from ..ports import Comparison, IQueryBuilder, IRecordStore

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from ..ports import Meta, Record

_COMPARE: dict[Comparison, Callable[[Any, Any], bool]] = {
    Comparison.EQ: operator.eq,
    Comparison.NE: operator.ne,
    Comparison.GT: operator.gt,
    Comparison.GE: operator.ge,
    Comparison.LT: operator.lt,
    Comparison.LE: operator.le,
    Comparison.IN: lambda value, options: value in options,
    Comparison.NOT_IN: lambda value, options: value not in options,
}

_ORDERED = {Comparison.GT, Comparison.GE, Comparison.LT, Comparison.LE}


def _sort_key(value: Any) -> tuple[bool, str, Any]:
    """Sort None last and group other values by type, numbers first.

    Values of different types never compare with each other, so a field
    holding mixed types still sorts deterministically.
    """
    if value is None:
        return (True, "", 0)
    if isinstance(value, (numbers.Real, Decimal)):
        return (False, "", value)
    return (False, type(value).__name__, value)


@dataclass(frozen=True)
class MemoryQuery(IQueryBuilder):
    """Immutable query over one in-memory kind."""

    kind: str
    id_attribute: str = "id"
    filters: tuple[tuple[str, Comparison, Any], ...] = ()
    orders: tuple[tuple[str, bool], ...] = ()
    skip: int | None = None
    take: int | None = None

    def filter(self, field: str, comparison: Comparison, value: Any) -> MemoryQuery:
        return replace(self, filters=(*self.filters, (field, Comparison(comparison), value)))

    def order(self, field: str, *, descending: bool = False) -> MemoryQuery:
        return replace(self, orders=(*self.orders, (field, descending)))

    def offset(self, count: int) -> MemoryQuery:
        return replace(self, skip=count)

    def limit(self, count: int) -> MemoryQuery:
        return replace(self, take=count)

    def matches(self, record: Record) -> bool:
        for name, comparison, value in self.filters:
            if name not in record:
                return False
            current = record[name]
            if comparison in _ORDERED and (current is None or value is None):
                return False
            try:
                if not _COMPARE[comparison](current, value):
                    return False
            except TypeError:
                return False
        return True

    def apply(self, records: list[Record]) -> list[Record]:
        """Filter, sort, skip and limit *records*."""
        result = [record for record in records if self.matches(record)]
        # Stable sorts applied last-key-first keep multi-key ordering
        for name, descending in reversed(self.orders):
            result.sort(
                key=lambda record, _name=name: _sort_key(record.get(_name)),
                reverse=descending,
            )
        if self.skip:
            result = result[self.skip :]
        if self.take:
            result = result[: self.take]
        return result


@dataclass
class _State:
    tables: dict[str, dict[Any, Record]] = field(default_factory=dict)
    counters: dict[str, int] = field(default_factory=dict)


class InMemoryRecordStore(IRecordStore):
    """In-memory implementation of ``IRecordStore``.

    Records are deep-copied on the way in and out, so callers never share
    state with the store. Keys are per-kind integers starting at 1.
    """

    def __init__(self) -> None:
        self._state = _State()

    # -- transactions --------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[_State]:
        """Stage writes on a copy; publish only if the block succeeds."""
        staged = copy.deepcopy(self._state)
        yield staged
        self._state = staged

    def _allocate(self, state: _State, kind: str, count: int) -> list[int]:
        start = state.counters.get(kind, 0)
        state.counters[kind] = start + count
        return list(range(start + 1, start + count + 1))

    def _put(self, state: _State, kind: str, record_id: Any, record: Record) -> None:
        state.tables.setdefault(kind, {})[record_id] = copy.deepcopy(record)

    # -- IRecordStore --------------------------------------------------------

    def create_query(self, kind: str, id_attribute: str) -> MemoryQuery:
        return MemoryQuery(kind, id_attribute)

    async def run_query(self, query: IQueryBuilder) -> tuple[Meta, list[Record]]:
        if not isinstance(query, MemoryQuery):
            raise TypeError(f"Expected MemoryQuery, got {type(query).__name__}")
        table = self._state.tables.get(query.kind, {})
        records = query.apply([copy.deepcopy(record) for record in table.values()])
        return {"count": len(records)}, records

    async def get(self, kind: str, id_attribute: str, record_id: Any) -> Record | None:  # noqa: ARG002
        record = self._state.tables.get(kind, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def insert_many(
        self, kind: str, id_attribute: str, records: Sequence[Record]
    ) -> tuple[Meta, list[Record]]:
        created: list[Record] = []
        with self._transaction() as staged:
            keys = self._allocate(staged, kind, len(records))
            for record, key in zip(records, keys):
                record = {**record, id_attribute: key}
                self._put(staged, kind, key, record)
                created.append(record)
        return {"inserted_ids": keys}, created

    async def save_many(
        self, kind: str, id_attribute: str, records: Sequence[Record]
    ) -> Meta:
        with self._transaction() as staged:
            for record in records:
                self._put(staged, kind, record[id_attribute], record)
        return {"matched": len(records)}

    async def delete(self, kind: str, record_id: Any) -> Meta:
        removed = self._state.tables.get(kind, {}).pop(record_id, None)
        return {"deleted": 0 if removed is None else 1}

    async def delete_many(self, kind: str, record_ids: Sequence[Any]) -> Meta:
        table = self._state.tables.get(kind, {})
        deleted = sum(1 for record_id in record_ids if table.pop(record_id, None) is not None)
        return {"deleted": deleted}

    # ── Test helpers ─────────────────────────────────────────────

    def records(self, kind: str) -> list[Record]:
        return [copy.deepcopy(record) for record in self._state.tables.get(kind, {}).values()]

    def clear(self) -> None:
        self._state = _State()

    def __len__(self) -> int:
        return sum(len(table) for table in self._state.tables.values())
