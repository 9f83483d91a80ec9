"""Exceptions raised by the CRUD adapter and its stores."""

from __future__ import annotations


class CrudAdapterError(Exception):
    """Root exception for the crud-adapter package."""


# --- Unsupported operations ---


class UnsupportedOperationError(CrudAdapterError):
    """Raised when a relation/operation combination has no implementation.

    Always raised before the store is touched.
    """


class OperatorNotSupportedError(UnsupportedOperationError):
    """Raised when a filter operator cannot be resolved or is disjunctive."""

    def __init__(self, operator: str) -> None:
        self.operator = operator
        super().__init__(f"Operator {operator} not supported!")


# --- Lookups ---


class NotFoundError(CrudAdapterError):
    """Raised when a record or resource is not found."""


class RecordNotFoundError(NotFoundError):
    """Raised when ``update`` targets a primary key with no record."""

    def __init__(self, mapper_name: str, record_id: object) -> None:
        self.mapper_name = mapper_name
        self.record_id = record_id
        super().__init__(f"{mapper_name} with id={record_id!r} not found")


# --- Definitions / queries ---


class QueryError(CrudAdapterError):
    """Raised when a selection query has an invalid shape."""


class MapperDefinitionError(CrudAdapterError):
    """Raised for invalid mapper definitions or unknown mapper names."""


# --- Persistence ---


class PersistenceError(CrudAdapterError):
    """Base class for store configuration errors raised by this package.

    Driver errors are not wrapped; they propagate unchanged.
    """
