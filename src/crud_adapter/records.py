"""Record helpers applied before every write."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .mapper import Mapper
    from .ports import Record


def strip_relations(mapper: Mapper, record: Mapping[str, Any]) -> Record:
    """Return a copy of *record* without the mapper's relation fields."""
    relation_fields = mapper.relation_fields
    return {key: value for key, value in record.items() if key not in relation_fields}


def merge_update(record: Record, partial: Mapping[str, Any]) -> Record:
    """Deep-merge *partial* onto *record* in place and return *record*.

    Nested mappings merge recursively; anything else (lists included)
    overwrites.
    """
    for key, value in partial.items():
        current = record.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merge_update(current, value)
        elif isinstance(value, Mapping):
            record[key] = merge_update({}, value)
        else:
            record[key] = value
    return record


def get_id(record: Mapping[str, Any] | None, id_attribute: str) -> Any:
    """Primary key of *record*, or ``None`` when absent."""
    if not record:
        return None
    return record.get(id_attribute)
