"""Relation selection and eager loading for single-record fetches."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import UnsupportedOperationError
from .mapper import BelongsTo, HasMany, HasManyByForeignKeys, HasManyByLocalKeys, HasOne

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterator, Mapping

    from .mapper import Mapper, MapperRegistry, RelationDefinition
    from .ports import ICrudAdapter, Record

logger = logging.getLogger("crud_adapter.relations")


def iter_requested_relations(
    mapper: Mapper, opts: Mapping[str, Any]
) -> Iterator[tuple[RelationDefinition, dict[str, Any]]]:
    """Yield each relation requested by ``opts`` with the options for its load.

    A relation is requested when ``opts["with"]`` names its ``relation`` or
    ``local_field`` (directly or as the head of a dotted path), or when
    ``opts["with_all"]`` is set. Dotted tails are forwarded as the nested
    ``with`` list.
    """
    requested = [entry for entry in opts.get("with") or [] if entry]
    with_all = bool(opts.get("with_all"))
    for relation in mapper.relations:
        nested: list[str] = []
        matched = with_all
        for name in (relation.relation, relation.local_field):
            prefix = f"{name}."
            for entry in requested:
                if entry == name:
                    matched = True
                elif entry.startswith(prefix):
                    matched = True
                    nested.append(entry[len(prefix) :])
        if not matched:
            continue
        sub_opts: dict[str, Any] = {"raw": False, "with": list(dict.fromkeys(nested))}
        if opts.get("operators"):
            sub_opts["operators"] = opts["operators"]
        yield relation, sub_opts


def check_single_record_relations(mapper: Mapper, opts: Mapping[str, Any]) -> None:
    """Reject requested relations that ``find`` cannot load."""
    for relation, _ in iter_requested_relations(mapper, opts):
        if isinstance(relation, HasManyByLocalKeys):
            raise UnsupportedOperationError("find with hasMany & localKeys not supported!")
        if isinstance(relation, HasManyByForeignKeys):
            raise UnsupportedOperationError("find with hasMany & foreignKeys not supported!")


def check_multi_record_relations(mapper: Mapper, opts: Mapping[str, Any]) -> None:
    """Reject every requested relation: ``find_all`` never eager-loads."""
    for relation, _ in iter_requested_relations(mapper, opts):
        if isinstance(relation, HasManyByLocalKeys):
            detail = "hasMany & localKeys"
        elif isinstance(relation, HasManyByForeignKeys):
            detail = "hasMany & foreignKeys"
        else:
            detail = relation.type
        raise UnsupportedOperationError(f"findAll with {detail} not supported!")


class RelationLoader:
    """Attach related records to one record loaded by ``find``.

    Related records are fetched through the adapter itself, so their own
    lifecycle hooks run.
    """

    def __init__(self, adapter: ICrudAdapter, registry: MapperRegistry) -> None:
        self._adapter = adapter
        self._registry = registry

    async def load(self, mapper: Mapper, record: Record, opts: Mapping[str, Any]) -> None:
        """Load every requested relation concurrently; the first failure propagates."""
        check_single_record_relations(mapper, opts)
        tasks: list[Awaitable[None]] = []
        for relation, sub_opts in iter_requested_relations(mapper, opts):
            if isinstance(relation, BelongsTo):
                tasks.append(self.load_belongs_to(relation, record, sub_opts))
            elif isinstance(relation, HasOne):
                tasks.append(self.load_has_one(mapper, relation, record, sub_opts))
            elif isinstance(relation, HasMany):
                tasks.append(self.load_has_many(mapper, relation, record, sub_opts))
        if tasks:
            logger.debug("Loading %d relation(s) for %s", len(tasks), mapper.name)
            await asyncio.gather(*tasks)

    async def load_belongs_to(
        self, relation: BelongsTo, record: Record, opts: dict[str, Any]
    ) -> None:
        foreign_id = record.get(relation.foreign_key)
        if foreign_id is None:
            record[relation.local_field] = None
            return
        related = self._registry.related(relation)
        record[relation.local_field] = await self._adapter.find(related, foreign_id, opts)

    async def load_has_many(
        self,
        mapper: Mapper,
        relation: HasMany | HasOne,
        record: Record,
        opts: dict[str, Any],
    ) -> None:
        related = self._registry.related(relation)
        query = {"where": {relation.foreign_key: {"==": record.get(mapper.id_attribute)}}}
        record[relation.local_field] = await self._adapter.find_all(related, query, opts)

    async def load_has_one(
        self, mapper: Mapper, relation: HasOne, record: Record, opts: dict[str, Any]
    ) -> None:
        await self.load_has_many(mapper, relation, record, opts)
        related_items = record.get(relation.local_field)
        record[relation.local_field] = related_items[0] if related_items else None
