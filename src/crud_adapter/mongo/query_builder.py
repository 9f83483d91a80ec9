"""MongoQuery: immutable native query compiled to find() arguments."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from ..ports import Comparison, IQueryBuilder
from .exceptions import MongoQueryError
from .serialization import to_bson

_MONGO_OP_MAP: dict[Comparison, str] = {
    Comparison.EQ: "$eq",
    Comparison.NE: "$ne",
    Comparison.GT: "$gt",
    Comparison.GE: "$gte",
    Comparison.LT: "$lt",
    Comparison.LE: "$lte",
    Comparison.IN: "$in",
    Comparison.NOT_IN: "$nin",
}


@dataclass(frozen=True)
class MongoQuery(IQueryBuilder):
    """Filters, sort and pagination for one collection.

    The mapper's id attribute is addressed as ``_id``.
    """

    collection: str
    id_attribute: str = "id"
    conditions: tuple[dict[str, Any], ...] = ()
    sort: tuple[tuple[str, int], ...] = ()
    skip: int | None = None
    take: int | None = None

    def _field(self, field: str) -> str:
        return "_id" if field == self.id_attribute else field

    def filter(self, field: str, comparison: Comparison, value: Any) -> MongoQuery:
        try:
            mongo_op = _MONGO_OP_MAP[Comparison(comparison)]
        except ValueError as e:
            raise MongoQueryError(f"Unknown comparison: {comparison!r}") from e
        if mongo_op in {"$in", "$nin"}:
            if not isinstance(value, (list, tuple, set, frozenset)):
                raise MongoQueryError(f"{mongo_op} requires a list of values")
            value = list(value)
        condition = {self._field(field): {mongo_op: to_bson(value)}}
        return replace(self, conditions=(*self.conditions, condition))

    def order(self, field: str, *, descending: bool = False) -> MongoQuery:
        return replace(self, sort=(*self.sort, (self._field(field), -1 if descending else 1)))

    def offset(self, count: int) -> MongoQuery:
        return replace(self, skip=count)

    def limit(self, count: int) -> MongoQuery:
        return replace(self, take=count)

    def build_match(self) -> dict[str, Any]:
        """Filter document; several conditions are combined with ``$and``."""
        if not self.conditions:
            return {}
        if len(self.conditions) == 1:
            return dict(self.conditions[0])
        return {"$and": list(self.conditions)}

    def find_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``Collection.find`` besides the filter."""
        kwargs: dict[str, Any] = {}
        if self.sort:
            kwargs["sort"] = list(self.sort)
        if self.skip:
            kwargs["skip"] = self.skip
        if self.take:
            kwargs["limit"] = self.take
        return kwargs
