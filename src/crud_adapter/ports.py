"""Store-facing and caller-facing protocols.

A backend plugs in by satisfying :class:`IRecordStore` and providing an
:class:`IQueryBuilder`; no base class is required.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .mapper import Mapper

Record = dict[str, Any]
Meta = dict[str, Any]


class Comparison(str, Enum):
    """Native comparisons every query builder understands."""

    EQ = "="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    IN = "in"
    NOT_IN = "not_in"


@runtime_checkable
class IQueryBuilder(Protocol):
    """Immutable, chainable native query.

    Every method returns a new builder; the receiver is left untouched.
    """

    def filter(self, field: str, comparison: Comparison, value: Any) -> IQueryBuilder: ...

    def order(self, field: str, *, descending: bool = False) -> IQueryBuilder: ...

    def offset(self, count: int) -> IQueryBuilder: ...

    def limit(self, count: int) -> IQueryBuilder: ...


@runtime_checkable
class IRecordStore(Protocol):
    """Persistence collaborator used by :class:`~crud_adapter.adapter.CrudAdapter`."""

    def create_query(self, kind: str, id_attribute: str) -> IQueryBuilder: ...

    async def run_query(self, query: IQueryBuilder) -> tuple[Meta, list[Record]]: ...

    async def get(self, kind: str, id_attribute: str, record_id: Any) -> Record | None: ...

    async def insert_many(
        self, kind: str, id_attribute: str, records: Sequence[Record]
    ) -> tuple[Meta, list[Record]]:
        """Allocate ``len(records)`` fresh keys and persist all records atomically.

        The allocated keys are written onto the returned records under
        ``id_attribute``. Either every record is persisted or none is.
        """
        ...

    async def save_many(
        self, kind: str, id_attribute: str, records: Sequence[Record]
    ) -> Meta: ...

    async def delete(self, kind: str, record_id: Any) -> Meta: ...

    async def delete_many(self, kind: str, record_ids: Sequence[Any]) -> Meta: ...


@runtime_checkable
class ICrudAdapter(Protocol):
    """The nine backend-agnostic CRUD operations.

    ``opts`` is always the last argument; with ``opts["raw"]`` the call returns
    a :class:`~crud_adapter.response.Response`, otherwise the bare data.
    """

    async def create(
        self, mapper: Mapper, props: Record, opts: Mapping[str, Any] | None = None
    ) -> Any: ...

    async def create_many(
        self, mapper: Mapper, props: Sequence[Record], opts: Mapping[str, Any] | None = None
    ) -> Any: ...

    async def find(
        self, mapper: Mapper, record_id: Any, opts: Mapping[str, Any] | None = None
    ) -> Any: ...

    async def find_all(
        self,
        mapper: Mapper,
        query: Mapping[str, Any] | None = None,
        opts: Mapping[str, Any] | None = None,
    ) -> Any: ...

    async def destroy(
        self, mapper: Mapper, record_id: Any, opts: Mapping[str, Any] | None = None
    ) -> Any: ...

    async def destroy_all(
        self,
        mapper: Mapper,
        query: Mapping[str, Any] | None = None,
        opts: Mapping[str, Any] | None = None,
    ) -> Any: ...

    async def update(
        self,
        mapper: Mapper,
        record_id: Any,
        props: Record,
        opts: Mapping[str, Any] | None = None,
    ) -> Any: ...

    async def update_all(
        self,
        mapper: Mapper,
        props: Record,
        query: Mapping[str, Any] | None = None,
        opts: Mapping[str, Any] | None = None,
    ) -> Any: ...

    async def update_many(
        self,
        mapper: Mapper,
        records: Sequence[Record],
        opts: Mapping[str, Any] | None = None,
    ) -> Any: ...
