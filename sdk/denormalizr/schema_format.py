"""
YAML/JSON schema documents for denormalizr.

Builds schema graphs from a declarative document instead of Python code.
Entities may reference each other in any order, including cyclically.

Example document:
    entities:
      books:
        fields:
          author: authors
          reviews: [reviews]
      authors:
        id_attribute: slug
        fields:
          books: [books]
      reviews: {}
      magazines: {}

    unions:
      publication:
        schema_attribute: type
        schemas:
          book: books
          magazine: magazines

Field references:
    - ``name``: the entity or union declared under that name
    - ``[name]``: a collection of it
    - ``{field: ref, ...}``: an inline plain composite
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from difflib import get_close_matches
from pathlib import Path
from typing import Any

import yaml

from .errors import SchemaDefinitionError
from .schema import EntitySchema, ObjectSchema, UnionSchema, array_of


def load_schemas(document: Mapping[str, Any]) -> dict[str, Any]:
    """Build schemas from a parsed document.

    Args:
        document: Mapping with optional ``entities`` and ``unions`` sections

    Returns:
        Mapping of declared name to schema

    Raises:
        SchemaDefinitionError: If the document is malformed or references
            an undeclared name
    """
    if not isinstance(document, Mapping):
        raise SchemaDefinitionError(
            f"Schema document must be a mapping, got {type(document).__name__}"
        )

    entity_defs = _section(document, "entities")
    union_defs = _section(document, "unions")

    clashes = set(entity_defs) & set(union_defs)
    if clashes:
        raise SchemaDefinitionError(
            f"Names declared as both entity and union: {sorted(clashes)}",
            name=sorted(clashes)[0],
        )

    schemas: dict[str, Any] = {}
    for name, definition in entity_defs.items():
        definition = _definition(definition, name, "Entity")
        schemas[name] = EntitySchema(
            definition.get("key", name),
            id_attribute=definition.get("id_attribute", "id"),
        )

    # Unions may only reference entities and unions declared before them
    for name, definition in union_defs.items():
        definition = _definition(definition, name, "Union")
        members = definition.get("schemas")
        if not isinstance(members, Mapping) or not members:
            raise SchemaDefinitionError(f"Union '{name}' needs a 'schemas' mapping", name=name)
        schemas[name] = UnionSchema(
            {tag: _parse_ref(ref, schemas, f"{name}.{tag}") for tag, ref in members.items()},
            schema_attribute=definition.get("schema_attribute", "schema"),
        )

    for name, definition in entity_defs.items():
        fields = _definition(definition, name, "Entity").get("fields") or {}
        if not isinstance(fields, Mapping):
            raise SchemaDefinitionError(f"Entity '{name}' fields must be a mapping", name=name)
        schemas[name].define(
            {field_name: _parse_ref(ref, schemas, f"{name}.{field_name}") for field_name, ref in fields.items()}
        )

    return schemas


def load_schemas_yaml(yaml_str: str) -> dict[str, Any]:
    """Build schemas from a YAML string."""
    data = yaml.safe_load(yaml_str)
    return load_schemas(data or {})


def load_schemas_json(json_str: str) -> dict[str, Any]:
    """Build schemas from a JSON string."""
    data = json.loads(json_str)
    return load_schemas(data or {})


def load_schemas_file(path: str | Path) -> dict[str, Any]:
    """Build schemas from a ``.json``, ``.yaml`` or ``.yml`` file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        return load_schemas_json(text)
    return load_schemas_yaml(text)


def _section(document: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = document.get(name) or {}
    if not isinstance(section, Mapping):
        raise SchemaDefinitionError(f"'{name}' must be a mapping of name to definition", name=name)
    return section


def _definition(definition: Any, name: str, what: str) -> Mapping[str, Any]:
    """An entity or union definition; an empty one means all defaults."""
    if definition is None:
        return {}
    if not isinstance(definition, Mapping):
        raise SchemaDefinitionError(
            f"{what} '{name}' definition must be a mapping, got {type(definition).__name__}",
            name=name,
        )
    return definition


def _parse_ref(ref: Any, schemas: dict[str, Any], where: str) -> Any:
    """Resolve a field reference to a schema node."""
    if isinstance(ref, str):
        if ref not in schemas:
            raise SchemaDefinitionError(
                f"'{where}' references undeclared schema '{ref}'",
                name=ref,
                suggestions=get_close_matches(ref, list(schemas), n=3),
            )
        return schemas[ref]

    if isinstance(ref, list):
        if len(ref) != 1:
            raise SchemaDefinitionError(
                f"'{where}': collection reference must list exactly one schema, got {ref!r}",
                name=where,
            )
        return array_of(_parse_ref(ref[0], schemas, where))

    if isinstance(ref, Mapping):
        return ObjectSchema(
            {name: _parse_ref(sub, schemas, f"{where}.{name}") for name, sub in ref.items()}
        )

    raise SchemaDefinitionError(f"'{where}': invalid schema reference {ref!r}", name=where)
