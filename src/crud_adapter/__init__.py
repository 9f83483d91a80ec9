"""crud-adapter - backend-agnostic CRUD and query operations over mappers."""

from __future__ import annotations

from .adapter import CrudAdapter
from .exceptions import (
    CrudAdapterError,
    MapperDefinitionError,
    NotFoundError,
    OperatorNotSupportedError,
    PersistenceError,
    QueryError,
    RecordNotFoundError,
    UnsupportedOperationError,
)
from .hooks import HookChain, HookContext, ILifecycleHooks, LifecycleHooks, LoggingHooks
from .mapper import (
    BelongsTo,
    HasMany,
    HasManyByForeignKeys,
    HasManyByLocalKeys,
    HasOne,
    Mapper,
    MapperRegistry,
    RelationDefinition,
)
from .memory import InMemoryRecordStore, MemoryQuery
from .operators import DEFAULT_OPERATORS, Operator, OperatorTable
from .ports import Comparison, ICrudAdapter, IQueryBuilder, IRecordStore
from .query import NormalizedQuery, QueryTranslator, normalize_query
from .records import merge_update, strip_relations
from .response import Response

__all__ = [
    # Adapter
    "CrudAdapter",
    "ICrudAdapter",
    "Response",
    # Mappers
    "Mapper",
    "MapperRegistry",
    "RelationDefinition",
    "BelongsTo",
    "HasOne",
    "HasMany",
    "HasManyByLocalKeys",
    "HasManyByForeignKeys",
    # Queries
    "Operator",
    "OperatorTable",
    "DEFAULT_OPERATORS",
    "Comparison",
    "NormalizedQuery",
    "QueryTranslator",
    "normalize_query",
    # Records
    "strip_relations",
    "merge_update",
    # Hooks
    "HookContext",
    "ILifecycleHooks",
    "LifecycleHooks",
    "HookChain",
    "LoggingHooks",
    # Stores
    "IRecordStore",
    "IQueryBuilder",
    "InMemoryRecordStore",
    "MemoryQuery",
    # Exceptions
    "CrudAdapterError",
    "UnsupportedOperationError",
    "OperatorNotSupportedError",
    "NotFoundError",
    "RecordNotFoundError",
    "QueryError",
    "MapperDefinitionError",
    "PersistenceError",
]
