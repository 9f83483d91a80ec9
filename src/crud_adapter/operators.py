"""Filter operator table: operator symbol -> predicate builder."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .exceptions import OperatorNotSupportedError
from .ports import Comparison

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .ports import IQueryBuilder

    Predicate = Callable[[IQueryBuilder, str, Any], IQueryBuilder]

OR_PREFIX = "|"


class Operator(str, Enum):
    """Operators supported out of the box."""

    EQ = "=="
    STRICT_EQ = "==="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="


def _comparison(comparison: Comparison) -> Predicate:
    def predicate(query: IQueryBuilder, field: str, value: Any) -> IQueryBuilder:
        return query.filter(field, comparison, value)

    predicate.__name__ = f"filter_{comparison.name.lower()}"
    return predicate


_equal = _comparison(Comparison.EQ)

DEFAULT_OPERATORS: Mapping[str, Predicate] = MappingProxyType(
    {
        Operator.EQ.value: _equal,
        Operator.STRICT_EQ.value: _equal,
        Operator.GT.value: _comparison(Comparison.GT),
        Operator.GE.value: _comparison(Comparison.GE),
        Operator.LT.value: _comparison(Comparison.LT),
        Operator.LE.value: _comparison(Comparison.LE),
    }
)


class OperatorTable:
    """Resolve operator symbols to predicates.

    Precedence: per-call overrides, then the instance overrides given here,
    then :data:`DEFAULT_OPERATORS`. The table is never mutated after
    construction, so one instance can serve overlapping operations.
    """

    def __init__(
        self,
        overrides: Mapping[str, Predicate] | None = None,
        *,
        defaults: Mapping[str, Predicate] = DEFAULT_OPERATORS,
    ) -> None:
        self._overrides: Mapping[str, Predicate] = MappingProxyType(dict(overrides or {}))
        self._defaults = defaults

    @property
    def overrides(self) -> Mapping[str, Predicate]:
        return self._overrides

    def get_operator(
        self, operator: str, per_call: Mapping[str, Predicate] | None = None
    ) -> Predicate | None:
        """Return the predicate for *operator*, or ``None`` if nowhere found."""
        if per_call and operator in per_call:
            return per_call[operator]
        if operator in self._overrides:
            return self._overrides[operator]
        return self._defaults.get(operator)

    def resolve(
        self, operator: str, per_call: Mapping[str, Predicate] | None = None
    ) -> Predicate:
        """Like :meth:`get_operator` but raise instead of returning ``None``.

        Disjunctive (``|``-prefixed) operators are rejected even when the bare
        operator exists.
        """
        if operator.startswith(OR_PREFIX):
            raise OperatorNotSupportedError(operator)
        predicate = self.get_operator(operator, per_call)
        if predicate is None:
            raise OperatorNotSupportedError(operator)
        return predicate
