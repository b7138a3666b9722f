"""
Entity and union reference resolution.

Turns an id, a partial entity, or a full entity into the canonical
``(id, entity)`` pair by looking the id up in the entity store. The stored
copy always wins over data embedded in the input, because the store holds
the most complete, merged version of every entity.

Invariants:
    - The store is only read, never written
    - A missing id yields ``entity=None``; nothing is raised unless the
      caller asks for it with ``ResolvedEntity.require()``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .accessor import get_in, is_mapping
from .errors import MissingEntityError, SchemaMismatchError
from .schema import EntitySchema, UnionSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedEntity:
    """Result of resolving an entity reference.

    Attributes:
        key: Store partition searched
        id: Entity id read from the reference
        entity: Stored entity, or None if the id is not in the store
    """

    key: str
    id: Any
    entity: Any = None

    @property
    def found(self) -> bool:
        """Whether the store held the entity."""
        return self.entity is not None

    @property
    def cache_key(self) -> tuple[str, str]:
        """Namespace key identifying this entity across partitions.

        Ids are compared as strings, so ``1`` and ``"1"`` name the same
        entity the way they do once a store has been through JSON.
        """
        return (self.key, str(self.id))

    def require(self) -> Any:
        """Get the entity, failing if it could not be resolved.

        Raises:
            MissingEntityError: If the store has no entity for the id
        """
        if self.entity is None:
            raise MissingEntityError(self.key, self.id)
        return self.entity


def resolve_entity(entity_or_id: Any, entities: Any, schema: EntitySchema) -> ResolvedEntity:
    """Resolve an id or (partial) entity against the store.

    Args:
        entity_or_id: Bare id, or a mapping carrying the id attribute
        entities: Entity store (partition key -> id -> entity)
        schema: Entity schema naming the partition and id attribute

    Returns:
        ResolvedEntity with the stored entity, or entity=None when absent

    Example:
        >>> resolve_entity(1, {"books": {1: {"id": 1}}}, Book).entity
        {'id': 1}
    """
    if is_mapping(entity_or_id):
        entity_id = get_in(entity_or_id, [schema.id_attribute])
    else:
        entity_id = entity_or_id

    partition = get_in(entities, [schema.key])
    entity = get_in(partition, [entity_id])
    if entity is None and entity_id is not None and not isinstance(entity_id, str):
        # Stores decoded from JSON key their partitions by string id
        entity = get_in(partition, [str(entity_id)])
    if entity is None:
        logger.debug(f"Entity '{schema.key}' id={entity_id!r} not in store")

    return ResolvedEntity(key=schema.key, id=entity_id, entity=entity)


def resolve_union_member(value: Any, schema: UnionSchema) -> Any:
    """Pick the member schema a union value declares.

    Raises:
        SchemaMismatchError: If the discriminator is missing or unknown
    """
    tag = get_in(value, [schema.schema_attribute]) if is_mapping(value) else None
    if tag is None:
        raise SchemaMismatchError(
            f"Expected value to have a '{schema.schema_attribute}' key "
            f"naming its union member, got {value!r}",
            attribute=schema.schema_attribute,
        )
    return schema.schema_for(tag)
