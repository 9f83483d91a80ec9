"""Mapper and relation definitions.

Mappers are immutable pydantic models, so they can be declared in code or
validated from plain configuration dicts (camelCase keys are accepted)::

    registry = MapperRegistry()
    registry.define(
        {
            "name": "user",
            "relations": [
                {"type": "hasMany", "relation": "post",
                 "foreignKey": "userId", "localField": "posts"},
            ],
        }
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel

from .exceptions import MapperDefinitionError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

_MODEL_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class _Relation(BaseModel):
    model_config = _MODEL_CONFIG

    relation: str
    local_field: str


class BelongsTo(_Relation):
    """The current record stores the related record's primary key."""

    type: Literal["belongsTo"] = "belongsTo"
    foreign_key: str


class HasOne(_Relation):
    """One related record points back at the current record."""

    type: Literal["hasOne"] = "hasOne"
    foreign_key: str


class HasMany(_Relation):
    """Related records point back at the current record via ``foreign_key``."""

    type: Literal["hasMany"] = "hasMany"
    foreign_key: str


class HasManyByLocalKeys(_Relation):
    """The current record stores a list of related keys. Not loadable."""

    type: Literal["hasMany"] = "hasMany"
    local_keys: str


class HasManyByForeignKeys(_Relation):
    """Related records store a list of keys. Not loadable."""

    type: Literal["hasMany"] = "hasMany"
    foreign_keys: str


_TAGS: dict[type[_Relation], str] = {
    BelongsTo: "belongsTo",
    HasOne: "hasOne",
    HasMany: "hasMany",
    HasManyByLocalKeys: "hasManyByLocalKeys",
    HasManyByForeignKeys: "hasManyByForeignKeys",
}


def _has_key(data: Mapping[str, Any], name: str) -> bool:
    return data.get(name) is not None or data.get(to_camel(name)) is not None


def _relation_tag(value: Any) -> str | None:
    if isinstance(value, _Relation):
        return _TAGS.get(type(value))
    if not isinstance(value, dict):
        return None
    kind = value.get("type")
    if kind == "hasMany":
        if _has_key(value, "local_keys"):
            return "hasManyByLocalKeys"
        if _has_key(value, "foreign_keys"):
            return "hasManyByForeignKeys"
    return kind


RelationDefinition = Annotated[
    Union[
        Annotated[BelongsTo, Tag("belongsTo")],
        Annotated[HasOne, Tag("hasOne")],
        Annotated[HasMany, Tag("hasMany")],
        Annotated[HasManyByLocalKeys, Tag("hasManyByLocalKeys")],
        Annotated[HasManyByForeignKeys, Tag("hasManyByForeignKeys")],
    ],
    Discriminator(_relation_tag),
]


class Mapper(BaseModel):
    """Schema descriptor for one entity collection."""

    model_config = _MODEL_CONFIG

    name: str
    kind: str | None = None
    id_attribute: str = "id"
    relations: tuple[RelationDefinition, ...] = ()
    declared_relation_fields: tuple[str, ...] = Field(default=(), alias="relationFields")

    @property
    def relation_fields(self) -> frozenset[str]:
        """Fields holding relation data; never sent to the store."""
        return frozenset(self.declared_relation_fields) | {
            relation.local_field for relation in self.relations
        }

    def resolve_kind(self, opts: Mapping[str, Any] | None = None) -> str:
        """Backend collection name: ``opts["kind"]``, then ``kind``, then ``name``."""
        if opts and opts.get("kind") is not None:
            return str(opts["kind"])
        return self.kind if self.kind is not None else self.name


class MapperRegistry:
    """Named collection of mappers used to resolve relation targets."""

    def __init__(self, mappers: Iterable[Mapper | Mapping[str, Any]] = ()) -> None:
        self._mappers: dict[str, Mapper] = {}
        for mapper in mappers:
            self.define(mapper)

    def define(self, mapper: Mapper | Mapping[str, Any]) -> Mapper:
        """Register *mapper* (a :class:`Mapper` or a definition dict)."""
        if not isinstance(mapper, Mapper):
            mapper = Mapper.model_validate(mapper)
        if mapper.name in self._mappers:
            raise MapperDefinitionError(f"Mapper '{mapper.name}' is already defined")
        self._mappers[mapper.name] = mapper
        return mapper

    def get(self, name: str) -> Mapper:
        try:
            return self._mappers[name]
        except KeyError:
            raise MapperDefinitionError(f"Mapper '{name}' is not defined") from None

    def related(self, relation: _Relation) -> Mapper:
        """Return the target mapper of *relation*."""
        return self.get(relation.relation)

    def __contains__(self, name: object) -> bool:
        return name in self._mappers

    def __iter__(self) -> Iterator[Mapper]:
        return iter(self._mappers.values())

    def __len__(self) -> int:
        return len(self._mappers)
