"""CrudAdapter: hook-wrapped CRUD pipelines over a pluggable record store."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import RecordNotFoundError
from .hooks import HookContext, LifecycleHooks
from .mapper import MapperRegistry
from .operators import OperatorTable
from .ports import ICrudAdapter
from .query import QueryTranslator
from .records import get_id, merge_update, strip_relations
from .relations import RelationLoader, check_multi_record_relations, check_single_record_relations
from .response import Response, respond

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .hooks import ILifecycleHooks
    from .mapper import Mapper
    from .operators import Predicate
    from .ports import IRecordStore, Meta, Record

logger = logging.getLogger("crud_adapter.adapter")

# Options forwarded to the internal find/find_all calls made by other operations
_INNER_OPTION_KEYS = ("kind", "operators")


class CrudAdapter(ICrudAdapter):
    """Backend-agnostic CRUD operations on mapper collections.

    Every operation runs the same pipeline: the ``before`` hook (which may
    replace the primary argument), the core action against the store, the
    :class:`~crud_adapter.response.Response` envelope, then the ``after`` hook
    (which may replace the response). Each step finishes before the next
    starts, and any failure aborts the call.

    Example::

        adapter = CrudAdapter(InMemoryRecordStore(), registry=registry)
        user = await adapter.create(registry.get("user"), {"name": "John"})
        users = await adapter.find_all(
            registry.get("user"), {"age": {">=": 30}, "orderBy": [["name", "desc"]]}
        )
    """

    def __init__(
        self,
        store: IRecordStore,
        *,
        registry: MapperRegistry | None = None,
        hooks: ILifecycleHooks | None = None,
        operators: OperatorTable | Mapping[str, Predicate] | None = None,
        raw: bool = False,
    ) -> None:
        """
        Args:
            store: Persistence backend.
            registry: Mappers used to resolve relation targets.
            hooks: Lifecycle hooks; defaults to pass-through hooks.
            operators: Instance-level operator overrides (or a ready table).
            raw: Default for ``opts["raw"]``.
        """
        self._store = store
        self._registry = registry or MapperRegistry()
        self._hooks = hooks or LifecycleHooks()
        if not isinstance(operators, OperatorTable):
            operators = OperatorTable(operators)
        self._translator = QueryTranslator(store, operators)
        self._relations = RelationLoader(self, self._registry)
        self._raw = raw

    @property
    def store(self) -> IRecordStore:
        return self._store

    @property
    def registry(self) -> MapperRegistry:
        return self._registry

    @property
    def operators(self) -> OperatorTable:
        return self._translator.operators

    @property
    def translator(self) -> QueryTranslator:
        return self._translator

    # -- pipeline helpers ----------------------------------------------------

    async def _before(
        self,
        operation: str,
        mapper: Mapper,
        opts: dict[str, Any],
        value: Any,
        key: Any = None,
    ) -> Any:
        opts["op"] = f"before_{operation}"
        ctx = HookContext(operation, opts["op"], mapper, opts, key)
        result = await self._hooks.before(ctx, value)
        return value if result is None else result

    async def _finish(
        self,
        operation: str,
        mapper: Mapper,
        opts: dict[str, Any],
        value: Any,
        response: Response,
        key: Any = None,
    ) -> Any:
        raw = opts.get("raw")
        result = respond(response, self._raw if raw is None else bool(raw))
        opts["op"] = f"after_{operation}"
        ctx = HookContext(operation, opts["op"], mapper, opts, key)
        replaced = await self._hooks.after(ctx, value, result)
        return result if replaced is None else replaced

    @staticmethod
    def _inner_opts(opts: Mapping[str, Any]) -> dict[str, Any]:
        inner: dict[str, Any] = {"raw": False}
        for name in _INNER_OPTION_KEYS:
            if opts.get(name) is not None:
                inner[name] = opts[name]
        return inner

    # -- batch internals -----------------------------------------------------

    async def _create(
        self, mapper: Mapper, records: Sequence[Record], opts: Mapping[str, Any]
    ) -> tuple[Meta, list[Record]]:
        """Strip relations, then allocate keys and persist all records atomically."""
        if not records:
            return {}, []
        stripped = [strip_relations(mapper, record) for record in records]
        kind = mapper.resolve_kind(opts)
        logger.debug("Inserting %d %s record(s) into %s", len(stripped), mapper.name, kind)
        return await self._store.insert_many(kind, mapper.id_attribute, stripped)

    async def _update(
        self,
        mapper: Mapper,
        pairs: Sequence[tuple[Record | None, Mapping[str, Any]]],
        opts: Mapping[str, Any],
    ) -> tuple[Meta, list[Record]]:
        """Merge each partial onto its record and write the batch in one call.

        Missing records and records without a primary key are skipped; an
        empty write set makes no store call.
        """
        written: list[Record] = []
        payload: list[Record] = []
        for record, partial in pairs:
            record_id = get_id(record, mapper.id_attribute)
            if record is None or record_id is None:
                logger.debug("Skipping %s record without primary key", mapper.name)
                continue
            merge_update(record, partial)
            record[mapper.id_attribute] = record_id
            written.append(record)
            payload.append(strip_relations(mapper, record))
        if not payload:
            return {}, []
        meta = await self._store.save_many(
            mapper.resolve_kind(opts), mapper.id_attribute, payload
        )
        return meta, written

    # -- create --------------------------------------------------------------

    async def create(
        self, mapper: Mapper, props: Record, opts: Mapping[str, Any] | None = None
    ) -> Any:
        """Create one record; ``created`` is 1, or 0 if nothing was written."""
        opts = dict(opts or {})
        props = await self._before("create", mapper, opts, props or {})
        meta, records = await self._create(mapper, [props], opts)
        record = records[0] if records else None
        response = Response(record, "create", meta, created=1 if record is not None else 0)
        return await self._finish("create", mapper, opts, props, response)

    async def create_many(
        self, mapper: Mapper, props: Sequence[Record], opts: Mapping[str, Any] | None = None
    ) -> Any:
        """Create every record in one all-or-nothing batch."""
        opts = dict(opts or {})
        props = await self._before("create_many", mapper, opts, list(props or []))
        meta, records = await self._create(mapper, props, opts)
        response = Response(records, "create_many", meta, created=len(records))
        return await self._finish("create_many", mapper, opts, props, response)

    # -- read ----------------------------------------------------------------

    async def find(
        self, mapper: Mapper, record_id: Any, opts: Mapping[str, Any] | None = None
    ) -> Any:
        """Fetch one record by primary key and load the requested relations."""
        opts = dict(opts or {})
        record_id = await self._before("find", mapper, opts, record_id)
        check_single_record_relations(mapper, opts)
        record = await self._store.get(
            mapper.resolve_kind(opts), mapper.id_attribute, record_id
        )
        if record is not None:
            await self._relations.load(mapper, record, opts)
        response = Response(record, "find", {}, found=0 if record is None else 1)
        return await self._finish("find", mapper, opts, record_id, response)

    async def find_all(
        self,
        mapper: Mapper,
        query: Mapping[str, Any] | None = None,
        opts: Mapping[str, Any] | None = None,
    ) -> Any:
        """Fetch the records matching *query*. Relations are never eager-loaded."""
        opts = dict(opts or {})
        query = await self._before("find_all", mapper, opts, query or {})
        check_multi_record_relations(mapper, opts)
        builder = self._translator.translate(mapper, query, opts)
        meta, records = await self._store.run_query(builder)
        response = Response(records, "find_all", meta, found=len(records))
        return await self._finish("find_all", mapper, opts, query, response)

    # -- destroy -------------------------------------------------------------

    async def destroy(
        self, mapper: Mapper, record_id: Any, opts: Mapping[str, Any] | None = None
    ) -> Any:
        """Delete by primary key without checking that the record exists."""
        opts = dict(opts or {})
        record_id = await self._before("destroy", mapper, opts, record_id)
        meta = await self._store.delete(mapper.resolve_kind(opts), record_id)
        response = Response(None, "destroy", meta)
        return await self._finish("destroy", mapper, opts, record_id, response)

    async def destroy_all(
        self,
        mapper: Mapper,
        query: Mapping[str, Any] | None = None,
        opts: Mapping[str, Any] | None = None,
    ) -> Any:
        """Resolve *query* with ``find_all`` and delete the matches in one call."""
        opts = dict(opts or {})
        query = await self._before("destroy_all", mapper, opts, query or {})
        records = await self.find_all(mapper, query, self._inner_opts(opts))
        record_ids = []
        for record in records:
            record_id = get_id(record, mapper.id_attribute)
            if record_id is not None:
                record_ids.append(record_id)
        meta: Meta = {}
        if record_ids:
            meta = await self._store.delete_many(mapper.resolve_kind(opts), record_ids)
        else:
            logger.debug("Nothing to delete for %s", mapper.name)
        response = Response(None, "destroy_all", meta)
        return await self._finish("destroy_all", mapper, opts, query, response)

    # -- update --------------------------------------------------------------

    async def update(
        self,
        mapper: Mapper,
        record_id: Any,
        props: Record,
        opts: Mapping[str, Any] | None = None,
    ) -> Any:
        """Merge *props* onto an existing record.

        Raises:
            RecordNotFoundError: No record has primary key *record_id*.
        """
        opts = dict(opts or {})
        props = await self._before("update", mapper, opts, props or {}, key=record_id)
        record = await self.find(mapper, record_id, self._inner_opts(opts))
        if record is None:
            raise RecordNotFoundError(mapper.name, record_id)
        meta, records = await self._update(mapper, [(record, props)], opts)
        response = Response(records[0], "update", meta, updated=len(records))
        return await self._finish("update", mapper, opts, props, response, key=record_id)

    async def update_all(
        self,
        mapper: Mapper,
        props: Record,
        query: Mapping[str, Any] | None = None,
        opts: Mapping[str, Any] | None = None,
    ) -> Any:
        """Apply the same partial update to every record matching *query*."""
        opts = dict(opts or {})
        query = query or {}
        props = await self._before("update_all", mapper, opts, props or {}, key=query)
        records = await self.find_all(mapper, query, self._inner_opts(opts))
        meta, written = await self._update(mapper, [(record, props) for record in records], opts)
        response = Response(written, "update_all", meta, updated=len(written))
        return await self._finish("update_all", mapper, opts, props, response, key=query)

    async def update_many(
        self,
        mapper: Mapper,
        records: Sequence[Record],
        opts: Mapping[str, Any] | None = None,
    ) -> Any:
        """Update each record identified by its own primary key, in one batch.

        Records without a primary key, or whose key matches nothing, are
        dropped; ``updated`` counts the records actually written.
        """
        opts = dict(opts or {})
        records = await self._before("update_many", mapper, opts, list(records or []))
        keyed = [record for record in records if get_id(record, mapper.id_attribute) is not None]
        inner = self._inner_opts(opts)
        found = await asyncio.gather(
            *(self.find(mapper, get_id(record, mapper.id_attribute), inner) for record in keyed)
        )
        meta, written = await self._update(mapper, list(zip(found, keyed)), opts)
        response = Response(written, "update_many", meta, updated=len(written))
        return await self._finish("update_many", mapper, opts, records, response)
