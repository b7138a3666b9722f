"""
Schema types for denormalizr.

This module provides the vocabulary that drives denormalization:
- EntitySchema: A record stored in a named partition, addressed by id
- CollectionSchema: An ordered sequence of items sharing one schema
- UnionSchema: A tagged choice between several schemas
- ObjectSchema: A plain composite whose fields hold other schemas

Plain ``dict`` mappings of field name to schema are accepted anywhere an
ObjectSchema is, so envelopes can be described inline.

Invariants:
    - Every schema node classifies to exactly one SchemaKind
    - Non-schema values (None, strings, numbers) classify to None and mean
      "leave the value as it is"
    - Field names starting with an underscore are private and never traversed

Example:
    >>> Book = EntitySchema("books")
    >>> Author = EntitySchema("authors")
    >>> Book.define({"author": Author, "reviews": array_of(Review)})
    >>> Author.define({"books": array_of(Book)})
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from difflib import get_close_matches
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional

from .errors import SchemaDefinitionError, SchemaMismatchError

PRIVATE_PREFIX = "_"


class SchemaKind(Enum):
    """Shapes a schema node can take."""

    ENTITY = "entity"
    COLLECTION = "collection"
    UNION = "union"
    PLAIN = "plain"


def is_private(name: Any) -> bool:
    """Whether a field name is excluded from traversal."""
    return isinstance(name, str) and name.startswith(PRIVATE_PREFIX)


class Schema:
    """Base class for schema nodes. Subclasses set ``kind``."""

    kind: SchemaKind


class EntitySchema(Schema):
    """Schema of an entity stored at ``entities[key][id]``.

    Fields can be declared after construction with ``define()``, which is
    how mutually recursive schemas are built.

    Attributes:
        key: Name of the store partition holding these entities
        id_attribute: Field that holds the entity id
        fields: Read-only view of declared field schemas
    """

    kind = SchemaKind.ENTITY

    def __init__(
        self,
        key: str,
        fields: Optional[Mapping[str, Any]] = None,
        *,
        id_attribute: str = "id",
    ) -> None:
        if not key:
            raise SchemaDefinitionError("Entity schema key cannot be empty")
        if not id_attribute:
            raise SchemaDefinitionError(
                f"Entity schema '{key}' needs an id attribute", name=key
            )
        self._key = key
        self._id_attribute = id_attribute
        self._fields: dict[str, Any] = dict(fields or {})

    @property
    def key(self) -> str:
        return self._key

    @property
    def id_attribute(self) -> str:
        return self._id_attribute

    @property
    def fields(self) -> Mapping[str, Any]:
        return MappingProxyType(self._fields)

    def define(self, fields: Mapping[str, Any]) -> EntitySchema:
        """Declare (or redeclare) field schemas. Returns self for chaining."""
        self._fields.update(fields)
        return self

    def field_items(self) -> Iterator[tuple[str, Any]]:
        """Iterate over traversable (non-private) fields."""
        for name, schema in self._fields.items():
            if not is_private(name):
                yield name, schema

    def __repr__(self) -> str:
        return f"EntitySchema({self._key!r}, id_attribute={self._id_attribute!r})"


class CollectionSchema(Schema):
    """Schema of a sequence whose items all share ``item_schema``."""

    kind = SchemaKind.COLLECTION

    def __init__(self, item_schema: Any) -> None:
        self._item_schema = item_schema

    @property
    def item_schema(self) -> Any:
        return self._item_schema

    def __repr__(self) -> str:
        return f"CollectionSchema({self._item_schema!r})"


class UnionSchema(Schema):
    """Schema choosing between several schemas by a discriminator field.

    A value described by a union must carry ``schema_attribute``; its value
    is the tag selecting which member schema applies.

    Attributes:
        schemas: Read-only mapping of tag to member schema
        schema_attribute: Name of the discriminator field
    """

    kind = SchemaKind.UNION

    def __init__(
        self,
        schemas: Mapping[Any, Any],
        *,
        schema_attribute: str = "schema",
    ) -> None:
        if not isinstance(schemas, Mapping) or not schemas:
            raise SchemaDefinitionError("Union schema needs a non-empty mapping of tag to schema")
        for tag, member in schemas.items():
            if classify(member) is None:
                raise SchemaDefinitionError(
                    f"Union member '{tag}' is not a schema: {member!r}", name=str(tag)
                )
        self._schemas = dict(schemas)
        self._schema_attribute = schema_attribute

    @property
    def schemas(self) -> Mapping[Any, Any]:
        return MappingProxyType(self._schemas)

    @property
    def schema_attribute(self) -> str:
        return self._schema_attribute

    def schema_for(self, tag: Any) -> Any:
        """Get the member schema for a tag.

        Raises:
            SchemaMismatchError: If the tag is not declared
        """
        try:
            return self._schemas[tag]
        except (KeyError, TypeError):
            known = [str(t) for t in self._schemas]
            raise SchemaMismatchError(
                f"Unknown union tag {tag!r} in '{self._schema_attribute}'",
                attribute=self._schema_attribute,
                tag=tag,
                suggestions=get_close_matches(str(tag), known, n=3),
            ) from None

    def __repr__(self) -> str:
        return f"UnionSchema({sorted(map(str, self._schemas))!r})"


class ObjectSchema(Schema):
    """Plain composite: a non-entity object whose fields hold schemas."""

    kind = SchemaKind.PLAIN

    def __init__(self, fields: Mapping[str, Any]) -> None:
        self._fields = dict(fields)

    @property
    def fields(self) -> Mapping[str, Any]:
        return MappingProxyType(self._fields)

    def field_items(self) -> Iterator[tuple[str, Any]]:
        for name, schema in self._fields.items():
            if not is_private(name):
                yield name, schema

    def __repr__(self) -> str:
        return f"ObjectSchema({list(self._fields)!r})"


def array_of(item_schema: Any) -> CollectionSchema:
    """Describe a sequence of ``item_schema`` values."""
    return CollectionSchema(item_schema)


def union_of(schemas: Mapping[Any, Any], *, schema_attribute: str = "schema") -> UnionSchema:
    """Describe a tagged choice between ``schemas``."""
    return UnionSchema(schemas, schema_attribute=schema_attribute)


def classify(schema: Any) -> Optional[SchemaKind]:
    """Classify a schema node.

    Returns:
        The node's SchemaKind, PLAIN for bare mappings, or None when the
        value is not a schema and no denormalization applies
    """
    kind = getattr(schema, "kind", None)
    if isinstance(kind, SchemaKind):
        return kind
    if isinstance(schema, Mapping):
        return SchemaKind.PLAIN
    return None


def field_items(schema: Any) -> Iterator[tuple[str, Any]]:
    """Iterate over traversable fields of an ENTITY or PLAIN schema."""
    if isinstance(schema, Mapping):
        for name, field_schema in schema.items():
            if not is_private(name):
                yield name, field_schema
        return
    yield from schema.field_items()
