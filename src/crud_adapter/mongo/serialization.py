"""Record <-> BSON document mapping (Decimal, UUID, primary key)."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, cast
from uuid import UUID

from bson import Decimal128

from .exceptions import MongoPersistenceError

if TYPE_CHECKING:
    from ..ports import Record


def to_bson(value: Any) -> Any:
    """Convert Python values to BSON-safe values."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, Mapping):
        return {k: to_bson(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_bson(v) for v in value]
    return value


def from_bson(value: Any) -> Any:
    """Convert BSON values back to Python values."""
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, dict):
        return {k: from_bson(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_bson(v) for v in value]
    return value


def record_to_doc(record: Mapping[str, Any], id_attribute: str) -> dict[str, Any]:
    """Build a document, storing ``record[id_attribute]`` as ``_id``."""
    doc = cast("dict[str, Any]", to_bson(record))
    if id_attribute in doc:
        doc["_id"] = doc.pop(id_attribute)
    return doc


def doc_to_record(doc: Mapping[str, Any], id_attribute: str) -> Record:
    """Inverse of :func:`record_to_doc`."""
    if not isinstance(doc, Mapping):
        raise MongoPersistenceError("Document must be a mapping")
    data = dict(doc)
    if "_id" in data:
        data[id_attribute] = data.pop("_id")
    return cast("Record", from_bson(data))
