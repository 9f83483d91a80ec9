"""Selection-query normalization and translation to a native query builder."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .exceptions import QueryError
from .operators import OperatorTable

if TYPE_CHECKING:
    from .mapper import Mapper
    from .ports import IQueryBuilder, IRecordStore

logger = logging.getLogger("crud_adapter.query")

RESERVED_KEYS = frozenset({"where", "orderBy", "sort", "limit", "skip", "offset"})


@dataclass(frozen=True)
class NormalizedQuery:
    """Canonical form of a selection query.

    ``where`` maps each field to ``{operator: value}``; ``order_by`` holds
    ``(field, descending)`` pairs in application order.
    """

    where: dict[str, dict[str, Any]] = field(default_factory=dict)
    order_by: tuple[tuple[str, bool], ...] = ()
    limit: int | None = None
    skip: int | None = None


def normalize_query(query: Mapping[str, Any] | None) -> NormalizedQuery:
    """Fold shorthand fields into ``where`` and canonicalize sort/offset.

    ``orderBy`` wins over ``sort`` and ``skip`` wins over ``offset`` whenever
    it is present and not ``None``, even when empty or zero. The input mapping
    is not modified.
    """
    if query is None:
        query = {}
    if not isinstance(query, Mapping):
        raise QueryError(f"Query must be a mapping, got {type(query).__name__}")
    remaining = dict(query)

    raw_where = remaining.pop("where", None) or {}
    if not isinstance(raw_where, Mapping):
        raise QueryError("'where' must be a mapping of field -> criteria")
    where: dict[str, Any] = dict(raw_where)

    order_by = remaining.pop("orderBy", None)
    sort = remaining.pop("sort", None)
    skip = remaining.pop("skip", None)
    offset = remaining.pop("offset", None)
    limit = remaining.pop("limit", None)

    # Transform non-keyword properties to "where" clauses
    for keyword, config in remaining.items():
        where[keyword] = config

    return NormalizedQuery(
        where={name: _criteria(value) for name, value in where.items()},
        order_by=_order_clauses(sort if order_by is None else order_by),
        limit=_count(limit, "limit"),
        skip=_count(offset if skip is None else skip, "skip"),
    )


def _criteria(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    return {"==": value}


def _order_clauses(order_by: Any) -> tuple[tuple[str, bool], ...]:
    if not order_by:
        return ()
    if isinstance(order_by, str):
        return ((order_by, False),)
    if not isinstance(order_by, Sequence):
        raise QueryError(f"Invalid orderBy: {order_by!r}")
    clauses: list[tuple[str, bool]] = []
    for clause in order_by:
        if isinstance(clause, str):
            clauses.append((clause, False))
        elif isinstance(clause, Sequence) and clause:
            direction = clause[1] if len(clause) > 1 else "asc"
            clauses.append((str(clause[0]), str(direction).lower() == "desc"))
        else:
            raise QueryError(f"Invalid orderBy clause: {clause!r}")
    return tuple(clauses)


def _count(value: Any, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise QueryError(f"'{name}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise QueryError(f"'{name}' must be an integer, got {value!r}") from e


class QueryTranslator:
    """Apply a selection query to a store's native query builder."""

    def __init__(self, store: IRecordStore, operators: OperatorTable | None = None) -> None:
        self._store = store
        self._operators = operators or OperatorTable()

    @property
    def operators(self) -> OperatorTable:
        return self._operators

    def translate(
        self,
        mapper: Mapper,
        query: Mapping[str, Any] | None,
        opts: Mapping[str, Any] | None = None,
        *,
        builder: IQueryBuilder | None = None,
    ) -> IQueryBuilder:
        """Return a builder with filters, ordering and pagination applied.

        The query is not executed. Filters compose with AND, in ``where``
        insertion order.
        """
        opts = opts or {}
        if builder is None:
            builder = self._store.create_query(mapper.resolve_kind(opts), mapper.id_attribute)
        normalized = normalize_query(query)
        per_call = opts.get("operators")

        for field_name, criteria in normalized.where.items():
            for operator, value in criteria.items():
                predicate = self._operators.resolve(str(operator), per_call)
                builder = predicate(builder, field_name, value)

        for field_name, descending in normalized.order_by:
            builder = builder.order(field_name, descending=descending)

        if normalized.skip:
            builder = builder.offset(normalized.skip)
        if normalized.limit:
            builder = builder.limit(normalized.limit)

        logger.debug("Translated query for %s: %r", mapper.name, normalized)
        return builder
