"""
Public entry point for denormalization.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .cache import DenormalizationCache
from .config import DenormalizeOptions
from .memoized import denormalize_memoized
from .plain import denormalize_plain

logger = logging.getLogger(__name__)


def denormalize(
    value: Any,
    entities: Any,
    schema: Any,
    options: Any = None,
    *,
    cache: Optional[DenormalizationCache] = None,
) -> Any:
    """Rebuild the nested form of value from a normalized entity store.

    For a mapping or sequence the same container family is returned. For an
    id, the entity object is returned. None, or a value whose schema is not
    a schema, is returned unchanged.

    Args:
        value: Id, (partial) entity, sequence of them, or envelope object
        entities: Entity store (partition key -> id -> entity)
        schema: Schema node describing value
        options: ``{"memoized": bool}`` or DenormalizeOptions; None uses
            process-wide settings, as do keys left out of a mapping
        cache: Cache for memoized calls; the process-wide default when omitted

    Returns:
        The denormalized value

    Raises:
        SchemaMismatchError: If a union value has no usable discriminator
        ConfigurationError: If options are not recognized

    Example:
        >>> denormalize(1, {"books": {1: {"id": 1, "author": 7}},
        ...                 "authors": {7: {"id": 7, "name": "Le Guin"}}}, Book)
        {'id': 1, 'author': {'id': 7, 'name': 'Le Guin'}}
    """
    opts = DenormalizeOptions.coerce(options)
    if opts.memoized:
        return denormalize_memoized(value, entities, schema, cache=cache)

    if cache is not None:
        logger.debug("Cache given to a non-memoized denormalize() call, ignoring it")
    return denormalize_plain(value, entities, schema)
