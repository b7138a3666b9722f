"""
Uniform value access over plain and persistent containers.

The traversal reads and writes fields without caring whether a value is a
plain ``dict``/``list`` or a persistent (read-only) ``MappingProxyType``/
``tuple``. Two accessors implement the same protocol:

- PlainAccessor: mutates plain containers in place
- PersistentAccessor: never mutates; every write returns a new container

Invariants:
    - A persistent input never changes; writes produce new persistent values
    - Output keeps the container family of its input
    - Strings and bytes are scalars, never containers

Example:
    >>> accessor = accessor_for(entity)
    >>> accessor.get(entity, "author")
    >>> entity = accessor.set(entity, "author", author)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any, Iterable, Protocol, runtime_checkable

MISSING: Any = object()

PERSISTENT_TYPES = (MappingProxyType, tuple)


def is_structured(value: Any) -> bool:
    """Whether value is an object-like or sequence container."""
    return isinstance(value, (Mapping, list, tuple))


def is_mapping(value: Any) -> bool:
    """Whether value is an object-like container."""
    return isinstance(value, Mapping)


def is_persistent(value: Any) -> bool:
    """Whether value is a read-only container."""
    return isinstance(value, PERSISTENT_TYPES)


@runtime_checkable
class ValueAccessor(Protocol):
    """Capability interface for reading and writing container fields."""

    def get(self, container: Any, name: Any, default: Any = MISSING) -> Any:
        """Read a single field or index."""
        ...

    def set(self, container: Any, name: Any, value: Any) -> Any:
        """Write a single field or index, returning the resulting container."""
        ...

    def is_container(self, value: Any) -> bool:
        """Whether this accessor handles value."""
        ...

    def copy(self, container: Any) -> Any:
        """Copy a container so later writes don't reach the original."""
        ...

    def merge(self, container: Any, changes: Mapping[str, Any]) -> Any:
        """New container with changes applied over container."""
        ...

    def map_items(self, items: Any, fn: Callable[[Any], Any]) -> Any:
        """Map a sequence (or a mapping's values), keeping its container family."""
        ...


def _read(container: Any, name: Any, default: Any) -> Any:
    if isinstance(container, Mapping):
        return container.get(name, default)
    if isinstance(container, (list, tuple)) and isinstance(name, int):
        if -len(container) <= name < len(container):
            return container[name]
    return default


class PlainAccessor:
    """Accessor for ``dict`` and ``list`` containers."""

    def get(self, container: Any, name: Any, default: Any = MISSING) -> Any:
        return _read(container, name, default)

    def set(self, container: Any, name: Any, value: Any) -> Any:
        container[name] = value
        return container

    def is_container(self, value: Any) -> bool:
        return is_structured(value) and not is_persistent(value)

    def copy(self, container: Any) -> Any:
        if isinstance(container, Mapping):
            return dict(container)
        return list(container)

    def merge(self, container: Any, changes: Mapping[str, Any]) -> Any:
        return {**container, **changes}

    def map_items(self, items: Any, fn: Callable[[Any], Any]) -> Any:
        if isinstance(items, Mapping):
            return {name: fn(item) for name, item in items.items()}
        return [fn(item) for item in items]


class PersistentAccessor:
    """Accessor for ``MappingProxyType`` and ``tuple`` containers.

    Writes never touch the original container. A ``set`` on a mapping
    builds a new ``MappingProxyType`` over a fresh dict.
    """

    def get(self, container: Any, name: Any, default: Any = MISSING) -> Any:
        return _read(container, name, default)

    def set(self, container: Any, name: Any, value: Any) -> Any:
        if isinstance(container, Mapping):
            updated = dict(container)
            updated[name] = value
            return MappingProxyType(updated)
        items = list(container)
        items[name] = value
        return tuple(items)

    def is_container(self, value: Any) -> bool:
        return is_persistent(value)

    def copy(self, container: Any) -> Any:
        # Read-only values are safe to share
        return container

    def merge(self, container: Any, changes: Mapping[str, Any]) -> Any:
        return MappingProxyType({**container, **changes})

    def map_items(self, items: Any, fn: Callable[[Any], Any]) -> Any:
        if isinstance(items, Mapping):
            return MappingProxyType({name: fn(item) for name, item in items.items()})
        return tuple(fn(item) for item in items)


PLAIN = PlainAccessor()
PERSISTENT = PersistentAccessor()


def accessor_for(value: Any) -> ValueAccessor:
    """Select the accessor matching value's container family.

    Non-container values get the plain accessor, whose reads return the
    default for anything it cannot index.
    """
    if is_persistent(value):
        return PERSISTENT
    return PLAIN


def get_in(container: Any, path: Iterable[Any], default: Any = None) -> Any:
    """Read a nested value, returning default when any step is missing.

    Example:
        >>> get_in({"books": {1: {"title": "Dune"}}}, ["books", 1, "title"])
        'Dune'
    """
    current = container
    for name in path:
        current = _read(current, name, MISSING)
        if current is MISSING:
            return default
    return current


def set_in(container: Any, path: Iterable[Any], value: Any) -> Any:
    """Write a nested value, returning the updated root container.

    Plain containers along the path are mutated in place. Persistent ones
    are rebuilt, so the caller must use the returned root.

    Raises:
        KeyError: If an intermediate step is missing
    """
    names = list(path)
    if not names:
        return value
    head, rest = names[0], names[1:]
    accessor = accessor_for(container)
    if rest:
        child = accessor.get(container, head)
        if child is MISSING:
            raise KeyError(head)
        value = set_in(child, rest, value)
    return accessor.set(container, head, value)
