"""
Incremental, reference-preserving denormalization.

Same traversal as the plain denormalizer, but every entity goes through a
DenormalizationCache. An entity whose stored object is unchanged (by
identity) starts from its previous result, and only fields whose
denormalized value changed are replaced. When nothing changed, the previous
object itself is returned.

The consequence is structural sharing across calls: for an unchanged store
every level of the result is identical (``is``) to the last result, and a
store change produces new objects only along the paths leading to the
changed entity. Siblings keep their references.

Invariants:
    - Results are never mutated after being returned; changes go into new
      objects built by shallow merge
    - A circular reference back to an entity still being built surfaces as
      the entity's bare id, not as an object
    - Entities missing from the store become None
    - The in-progress set is per call; only the cache is shared
"""

from __future__ import annotations

from typing import Any, Optional

from .accessor import MISSING, accessor_for, is_mapping, is_structured
from .cache import DenormalizationCache, get_default_cache
from .resolve import resolve_entity, resolve_union_member
from .schema import SchemaKind, classify, field_items


def denormalize_memoized(
    value: Any,
    entities: Any,
    schema: Any,
    in_progress: Optional[set[tuple[str, str]]] = None,
    cache: Optional[DenormalizationCache] = None,
) -> Any:
    """Denormalize value, reusing unchanged results from cache.

    Args:
        value: Id, (partial) entity, sequence, or envelope matching schema
        entities: Entity store (partition key -> id -> entity)
        schema: Schema node describing value
        in_progress: Entities being built by this call; created when omitted
        cache: Cache to read and update; the default cache when omitted

    Returns:
        The rebuilt value. Identical to the previous result for any
        branch whose entities did not change.

    Raises:
        SchemaMismatchError: If a union value has no usable discriminator
    """
    if in_progress is None:
        in_progress = set()
    if cache is None:
        cache = get_default_cache()

    kind = classify(schema)
    if value is None or kind is None:
        return value

    if kind is SchemaKind.ENTITY:
        return _denormalize_entity(value, entities, schema, in_progress, cache)
    if kind is SchemaKind.COLLECTION:
        return _denormalize_collection(value, entities, schema, in_progress, cache)
    if kind is SchemaKind.UNION:
        member = resolve_union_member(value, schema)
        return denormalize_memoized(value, entities, member, in_progress, cache)

    return _merge_changed_fields(value, entities, schema, in_progress, cache)


def _denormalize_entity(
    entity_or_id: Any,
    entities: Any,
    schema: Any,
    in_progress: set[tuple[str, str]],
    cache: DenormalizationCache,
) -> Any:
    resolved = resolve_entity(entity_or_id, entities, schema)
    if resolved.entity is None:
        return None

    cache_key = resolved.cache_key
    slot = cache.slot(cache_key, resolved.entity)
    # Read once; another call may reset the slot while fields are rebuilt
    previous = slot.denormalized

    if cache_key in in_progress:
        return resolved.id

    in_progress.add(cache_key)
    try:
        result = _merge_changed_fields(previous, entities, schema, in_progress, cache)
        cache.store(slot, resolved.entity, result)
    finally:
        in_progress.discard(cache_key)
    return result


def _denormalize_collection(
    items: Any,
    entities: Any,
    schema: Any,
    in_progress: set[tuple[str, str]],
    cache: DenormalizationCache,
) -> Any:
    if not is_structured(items):
        return items

    item_schema = schema.item_schema
    changed = False

    def visit(item: Any) -> Any:
        nonlocal changed
        denormalized = denormalize_memoized(item, entities, item_schema, in_progress, cache)
        if denormalized is not item:
            changed = True
        return denormalized

    new_items = accessor_for(items).map_items(items, visit)
    return new_items if changed else items


def _merge_changed_fields(
    obj: Any,
    entities: Any,
    schema: Any,
    in_progress: set[tuple[str, str]],
    cache: DenormalizationCache,
) -> Any:
    """Denormalize obj's declared fields; new object only if one changed."""
    if not is_mapping(obj):
        return obj

    accessor = accessor_for(obj)
    changes: dict[str, Any] = {}
    for name, field_schema in field_items(schema):
        item = accessor.get(obj, name)
        if item is MISSING:
            continue
        denormalized = denormalize_memoized(item, entities, field_schema, in_progress, cache)
        if denormalized is not item:
            changes[name] = denormalized

    if not changes:
        return obj
    return accessor.merge(obj, changes)
