"""
denormalizr - Rebuild nested object graphs from normalized entity stores.

This package reverses normalization:
- Schema types (EntitySchema, array_of, union_of, ObjectSchema)
- One-shot, cycle-safe denormalization
- Memoized denormalization that keeps unchanged branches identical
- Explicit caches so unrelated datasets never collide

Example:
    >>> from denormalizr import EntitySchema, array_of, denormalize
    >>>
    >>> Book = EntitySchema("books")
    >>> Author = EntitySchema("authors")
    >>> Book.define({"author": Author})
    >>> Author.define({"books": array_of(Book)})
    >>>
    >>> entities = {
    ...     "books": {1: {"id": 1, "title": "Dune", "author": 1}},
    ...     "authors": {1: {"id": 1, "name": "Herbert", "books": [1]}},
    ... }
    >>> book = denormalize(1, entities, Book)
    >>> book["author"]["books"][0] is book
    True

Invariants:
    - The entity store is never written
    - Inputs are never mutated
    - Memoized results are identical (``is``) for unchanged entities

Version: 1.0.0
"""

__version__ = "1.0.0"

from .accessor import (
    PersistentAccessor,
    PlainAccessor,
    ValueAccessor,
    accessor_for,
    get_in,
    is_structured,
    set_in,
)
from .api import denormalize
from .cache import (
    CacheSlot,
    DenormalizationCache,
    get_default_cache,
    reset_default_cache,
)
from .config import DenormalizeOptions, DenormalizrSettings, get_settings, reset_settings
from .errors import (
    ConfigurationError,
    DenormalizrError,
    MissingEntityError,
    SchemaDefinitionError,
    SchemaMismatchError,
)
from .memoized import denormalize_memoized
from .plain import EntityArena, denormalize_plain
from .resolve import ResolvedEntity, resolve_entity, resolve_union_member
from .schema import (
    CollectionSchema,
    EntitySchema,
    ObjectSchema,
    SchemaKind,
    UnionSchema,
    array_of,
    classify,
    union_of,
)
from .schema_format import (
    load_schemas,
    load_schemas_file,
    load_schemas_json,
    load_schemas_yaml,
)

__all__ = [
    # Version
    "__version__",
    # Entry point
    "denormalize",
    "denormalize_plain",
    "denormalize_memoized",
    "EntityArena",
    # Schema types
    "SchemaKind",
    "EntitySchema",
    "CollectionSchema",
    "UnionSchema",
    "ObjectSchema",
    "array_of",
    "union_of",
    "classify",
    # Schema documents
    "load_schemas",
    "load_schemas_yaml",
    "load_schemas_json",
    "load_schemas_file",
    # Resolution
    "ResolvedEntity",
    "resolve_entity",
    "resolve_union_member",
    # Value access
    "ValueAccessor",
    "PlainAccessor",
    "PersistentAccessor",
    "accessor_for",
    "get_in",
    "set_in",
    "is_structured",
    # Cache
    "CacheSlot",
    "DenormalizationCache",
    "get_default_cache",
    "reset_default_cache",
    # Configuration
    "DenormalizeOptions",
    "DenormalizrSettings",
    "get_settings",
    "reset_settings",
    # Errors
    "DenormalizrError",
    "SchemaMismatchError",
    "MissingEntityError",
    "SchemaDefinitionError",
    "ConfigurationError",
]
