"""
One-shot denormalization.

Rebuilds the nested graph for a value in a single pass, without memoization.
Each entity is expanded at most once per call. Expanded entities are kept in
a per-call arena keyed by ``(key, id)``, and an entity's copy enters the
arena *before* its fields are expanded. A field that refers back to an
entity already under construction therefore gets that same (partially
built) object instead of recursing forever.

Invariants:
    - Caller-owned inputs are never mutated: plain entities and envelopes are
      shallow-copied before their fields are replaced, persistent ones are
      rebuilt through the accessor
    - Circular references resolve to the same object instance
    - Entities missing from the store become None
"""

from __future__ import annotations

from typing import Any, Optional

from .accessor import MISSING, accessor_for, is_mapping, is_structured
from .resolve import resolve_entity, resolve_union_member
from .schema import SchemaKind, classify, field_items


class EntityArena:
    """Per-call record of entities expanded so far.

    Maps ``(key, id)`` to the object that stands for the entity in the
    output. Never shared between top-level calls.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], Any] = {}

    def __contains__(self, cache_key: tuple[str, str]) -> bool:
        return cache_key in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def get(self, cache_key: tuple[str, str]) -> Any:
        return self._objects.get(cache_key)

    def put(self, cache_key: tuple[str, str], obj: Any) -> None:
        self._objects[cache_key] = obj


def denormalize_plain(
    value: Any,
    entities: Any,
    schema: Any,
    arena: Optional[EntityArena] = None,
) -> Any:
    """Denormalize value against schema in one pass.

    Args:
        value: Id, (partial) entity, sequence, or envelope matching schema
        entities: Entity store (partition key -> id -> entity)
        schema: Schema node describing value
        arena: Arena of this call; created when omitted

    Returns:
        The rebuilt value, in the same container family as the input

    Raises:
        SchemaMismatchError: If a union value has no usable discriminator
    """
    if arena is None:
        arena = EntityArena()

    kind = classify(schema)
    if value is None or kind is None:
        return value

    if kind is SchemaKind.ENTITY:
        return _denormalize_entity(value, entities, schema, arena)
    if kind is SchemaKind.COLLECTION:
        return _denormalize_collection(value, entities, schema, arena)
    if kind is SchemaKind.UNION:
        member = resolve_union_member(value, schema)
        return denormalize_plain(value, entities, member, arena)

    if not is_mapping(value):
        return value
    return _denormalize_fields(accessor_for(value).copy(value), entities, schema, arena)


def _denormalize_entity(entity_or_id: Any, entities: Any, schema: Any, arena: EntityArena) -> Any:
    resolved = resolve_entity(entity_or_id, entities, schema)
    cache_key = resolved.cache_key

    if cache_key in arena:
        return arena.get(cache_key)

    entity = resolved.entity
    if not is_mapping(entity):
        arena.put(cache_key, entity)
        return entity

    obj = accessor_for(entity).copy(entity)
    # Register before descending so back-references find this object
    arena.put(cache_key, obj)
    obj = _denormalize_fields(obj, entities, schema, arena)
    arena.put(cache_key, obj)
    return obj


def _denormalize_collection(items: Any, entities: Any, schema: Any, arena: EntityArena) -> Any:
    if not is_structured(items):
        return items
    item_schema = schema.item_schema
    return accessor_for(items).map_items(
        items, lambda item: denormalize_plain(item, entities, item_schema, arena)
    )


def _denormalize_fields(obj: Any, entities: Any, schema: Any, arena: EntityArena) -> Any:
    """Replace each declared field present on obj with its denormalized form.

    Plain objects are updated in place, so obj must already be a copy.
    """
    accessor = accessor_for(obj)
    for name, field_schema in field_items(schema):
        item = accessor.get(obj, name)
        if item is MISSING:
            continue
        obj = accessor.set(obj, name, denormalize_plain(item, entities, field_schema, arena))
    return obj
