"""
Memoization cache for incremental denormalization.

The cache remembers, per entity, the stored entity object it last saw and
the denormalized object it built from it. When the store still holds the
very same entity object, the previous result is reused so unchanged
branches keep their identity across calls.

Caches are explicit objects. Pass one to ``denormalize()`` to keep
unrelated datasets apart; callers that pass none share the process-wide
default cache.

Invariants:
    - Slots are keyed by ``(partition key, str(id))``
    - ``slot.denormalized`` was built from ``slot.source_entity``; a slot
      whose source differs from the store's current entity is reset before use,
      and a result built from any other entity is never stored
    - The traversal never removes slots; only capacity eviction, ``clear()``
      and ``invalidate()`` do
    - Thread-safe for concurrent access to slots

Example:
    >>> cache = DenormalizationCache(max_entries=10_000)
    >>> denormalize(1, entities, Book, {"memoized": True}, cache=cache)
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Optional

from .config import get_settings

logger = logging.getLogger(__name__)

# Global cache
_default_cache: DenormalizationCache | None = None
_default_cache_lock = threading.Lock()


@dataclass
class CacheSlot:
    """Memoized state of one entity.

    Attributes:
        source_entity: Store entity the result was built from
        denormalized: Last denormalized form of source_entity
    """

    source_entity: Any
    denormalized: Any


class DenormalizationCache:
    """Entity-level memo for the memoized denormalizer.

    Attributes:
        max_entries: Capacity; least recently used slots are evicted past it.
            None means unbounded.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._max_entries = max_entries
        self._slots: OrderedDict[tuple[str, str], CacheSlot] = OrderedDict()
        self._evictions = 0
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> Optional[int]:
        return self._max_entries

    @property
    def evictions(self) -> int:
        """Number of slots dropped for capacity so far."""
        return self._evictions

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, cache_key: tuple[str, str]) -> bool:
        return cache_key in self._slots

    def get(self, cache_key: tuple[str, str]) -> Optional[CacheSlot]:
        """Get a slot without creating or refreshing it."""
        return self._slots.get(cache_key)

    def slot(self, cache_key: tuple[str, str], entity: Any) -> CacheSlot:
        """Fetch the slot for an entity, creating or refreshing it.

        A new slot, or one whose source is not ``entity`` (by identity),
        starts over from the raw entity with no fields expanded.

        Args:
            cache_key: ``(key, str(id))`` of the entity
            entity: Entity currently in the store

        Returns:
            The slot, whose source_entity is entity
        """
        with self._lock:
            slot = self._slots.get(cache_key)
            if slot is None:
                slot = CacheSlot(source_entity=entity, denormalized=entity)
                self._slots[cache_key] = slot
                self._evict()
            elif slot.source_entity is not entity:
                logger.debug(f"Entity {cache_key[0]}:{cache_key[1]} changed, resetting slot")
                slot.source_entity = entity
                slot.denormalized = entity

            if self._max_entries is not None:
                self._slots.move_to_end(cache_key)
            return slot

    def store(self, slot: CacheSlot, entity: Any, denormalized: Any) -> bool:
        """Record the latest denormalized form for a slot.

        The write only happens while the slot still tracks ``entity``. A
        slot reset to a newer store entity in the meantime keeps the result
        built from that newer entity.

        Args:
            slot: Slot returned by ``slot()``
            entity: Store entity the result was built from
            denormalized: The result

        Returns:
            True if the result was stored
        """
        with self._lock:
            if slot.source_entity is not entity:
                logger.debug("Discarding result built from a superseded entity")
                return False
            slot.denormalized = denormalized
            return True

    def invalidate(self, key: str, entity_id: Any = None) -> int:
        """Drop slots of one entity, or of a whole partition.

        Args:
            key: Store partition
            entity_id: Entity id; None drops every slot of the partition

        Returns:
            Number of slots dropped
        """
        with self._lock:
            if entity_id is not None:
                return 1 if self._slots.pop((key, str(entity_id)), None) is not None else 0
            doomed = [cache_key for cache_key in self._slots if cache_key[0] == key]
            for cache_key in doomed:
                del self._slots[cache_key]
            return len(doomed)

    def clear(self) -> None:
        """Drop every slot."""
        with self._lock:
            self._slots.clear()

    def _evict(self) -> None:
        """Drop least recently used slots past capacity. Caller holds the lock."""
        if self._max_entries is None:
            return
        while len(self._slots) > self._max_entries:
            cache_key, _ = self._slots.popitem(last=False)
            if self._evictions == 0:
                logger.warning(
                    f"Denormalization cache reached capacity ({self._max_entries}), evicting"
                )
            self._evictions += 1
            logger.debug(f"Evicted {cache_key[0]}:{cache_key[1]}")


def get_default_cache() -> DenormalizationCache:
    """Get the process-wide cache, creating it from settings on first use."""
    global _default_cache
    with _default_cache_lock:
        if _default_cache is None:
            settings = get_settings()
            _default_cache = DenormalizationCache(max_entries=settings.cache_max_entries)
            logger.info(
                f"Created default denormalization cache (max_entries={settings.cache_max_entries})"
            )
        return _default_cache


def reset_default_cache() -> None:
    """Discard the process-wide cache (mainly for tests)."""
    global _default_cache
    with _default_cache_lock:
        _default_cache = None
        logger.info("Reset default denormalization cache")
