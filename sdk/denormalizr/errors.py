"""
Error types for denormalizr.

This module defines all exception types raised by the library:
- DenormalizrError: Base exception
- SchemaMismatchError: Value does not match the shape its schema expects
- MissingEntityError: Referenced entity is absent from the store
- SchemaDefinitionError: Malformed schema object or schema document
- ConfigurationError: Unknown or invalid options

Invariants:
    - All errors inherit from DenormalizrError
    - Errors include context for debugging
    - MissingEntityError is never raised by the traversal itself; absent
      entities surface as None and callers opt in to failing on them
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class DenormalizrError(Exception):
    """Base exception for all denormalizr errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "DENORMALIZR_ERROR"
        self.details = details or {}


class SchemaMismatchError(DenormalizrError):
    """Value does not carry what its schema needs.

    Raised when:
    - A union value lacks the discriminator field
    - A union value names a tag the union does not declare
    """

    def __init__(
        self,
        message: str,
        attribute: Optional[str] = None,
        tag: Optional[Any] = None,
        suggestions: Optional[List[str]] = None,
    ) -> None:
        suggestions = suggestions or []
        if suggestions:
            message += f". Did you mean: {', '.join(suggestions)}?"

        super().__init__(
            message,
            code="SCHEMA_MISMATCH",
            details={
                "attribute": attribute,
                "tag": tag,
                "suggestions": suggestions,
            },
        )
        self.attribute = attribute
        self.tag = tag
        self.suggestions = suggestions


class MissingEntityError(DenormalizrError):
    """Entity id is not present in the store.

    Attributes:
        key: Store partition that was searched
        entity_id: The id that could not be resolved
    """

    def __init__(self, key: str, entity_id: Any) -> None:
        super().__init__(
            f"Entity '{key}' with id {entity_id!r} not found in store",
            code="MISSING_ENTITY",
            details={"key": key, "entity_id": entity_id},
        )
        self.key = key
        self.entity_id = entity_id


class SchemaDefinitionError(DenormalizrError):
    """Schema object or schema document is malformed.

    Raised when:
    - An entity schema has an empty key or id attribute
    - A schema document references an undeclared schema
    - A union maps tags to non-schema values
    """

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
    ) -> None:
        suggestions = suggestions or []
        if suggestions:
            message += f". Did you mean: {', '.join(suggestions)}?"

        super().__init__(
            message,
            code="SCHEMA_DEFINITION",
            details={"name": name, "suggestions": suggestions},
        )
        self.name = name
        self.suggestions = suggestions


class ConfigurationError(DenormalizrError):
    """Options could not be interpreted.

    Raised when:
    - An options mapping contains unrecognized keys
    - An option has the wrong type
    """

    def __init__(
        self,
        message: str,
        option: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details={"option": option},
        )
        self.option = option
