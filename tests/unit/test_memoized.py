"""
Unit tests for memoized denormalization.

Tests cover:
- Full reuse when the store is unchanged
- Partial reuse when some entities change
- Circular references (surface as ids)
- Collections fed back in
- Unions, envelopes and missing entities
- Independent caches
- Persistent containers and private fields
- A rebuild interleaved with another call
"""

from types import MappingProxyType

import pytest

from denormalizr import (
    DenormalizationCache,
    EntitySchema,
    array_of,
    denormalize,
    denormalize_memoized,
    get_default_cache,
    union_of,
)

MEMOIZED = {"memoized": True}


class TestFullReuse:
    """Unchanged store returns identical objects."""

    def test_same_objects_on_second_call(self, library, entities):
        """Every level is reused."""
        Book = library["Book"]
        first = denormalize(1, entities, Book, MEMOIZED)
        second = denormalize(1, entities, Book, MEMOIZED)

        assert first is second
        assert first["author"] is second["author"]
        assert first["reviews"] is second["reviews"]
        assert first["reviews"][0] is second["reviews"][0]

    def test_values_are_denormalized(self, library, entities):
        """Memoized results match plain results."""
        Book = library["Book"]
        memoized = denormalize(1, entities, Book, MEMOIZED)
        plain = denormalize(1, entities, Book)
        assert memoized == plain

    def test_store_not_mutated(self, library, entities):
        """Stored entities keep their ids."""
        denormalize(1, entities, library["Book"], MEMOIZED)
        assert entities["books"][1]["author"] == 1
        assert entities["books"][1]["reviews"] == [1, 2]


class TestPartialReuse:
    """Changed entities invalidate only their own paths."""

    def test_author_change(self, library, entities):
        """New book and author, same reviews."""
        Book = library["Book"]
        first = denormalize(1, entities, Book, MEMOIZED)

        entities["authors"][1] = {**entities["authors"][1], "name": "Georges RR Updated"}
        second = denormalize(1, entities, Book, MEMOIZED)

        assert first is not second
        assert first["author"] is not second["author"]
        assert second["author"]["name"] == "Georges RR Updated"
        assert first["reviews"] is second["reviews"]

    def test_chained_updates(self, library, entities):
        """An entity unchanged since the last call keeps its object."""
        Book = library["Book"]
        first = denormalize(1, entities, Book, MEMOIZED)

        entities["authors"][1] = {**entities["authors"][1], "name": "Georges RR Updated"}
        second = denormalize(1, entities, Book, MEMOIZED)

        entities["reviews"][1] = {**entities["reviews"][1], "content": "I got updated !"}
        third = denormalize(1, entities, Book, MEMOIZED)

        assert first is not second
        assert second is not third

        assert first["author"] is not second["author"]
        assert first["author"] is not third["author"]
        assert second["author"] is third["author"]

        assert first["reviews"] is second["reviews"]
        assert second["reviews"] is not third["reviews"]
        assert first["reviews"] is not third["reviews"]
        assert second["reviews"][1] is third["reviews"][1]
        assert third["reviews"][0]["content"] == "I got updated !"

    def test_root_change_keeps_children(self, library, entities):
        """Changing the book alone keeps author and reviews."""
        Book = library["Book"]
        first = denormalize(1, entities, Book, MEMOIZED)

        entities["books"][1] = {**entities["books"][1], "title": "A Clash of Kings"}
        second = denormalize(1, entities, Book, MEMOIZED)

        assert first is not second
        assert second["title"] == "A Clash of Kings"
        assert first["author"] is second["author"]
        assert first["reviews"][0] is second["reviews"][0]


class TestCycles:
    """Circular references in the memoized path."""

    @pytest.fixture
    def cyclic_store(self, entities):
        entities["authors"][1]["books"] = [1, 2]
        entities["books"][2] = {"id": 2, "title": "Livre 2", "author": 1}
        return entities

    def test_reuse_with_cycle(self, library, cyclic_store):
        """Cyclic graphs are reused fully."""
        Book = library["Book"]
        first = denormalize(1, cyclic_store, Book, MEMOIZED)
        second = denormalize(1, cyclic_store, Book, MEMOIZED)

        assert first is second
        assert first["author"] is second["author"]
        assert first["reviews"] is second["reviews"]

    def test_back_reference_is_id(self, library, cyclic_store):
        """An entity still being built shows up as its id."""
        book = denormalize(1, cyclic_store, library["Book"], MEMOIZED)

        books = book["author"]["books"]
        assert books[0] == 1
        assert books[1]["title"] == "Livre 2"
        assert books[1]["author"] == 1


class TestCollections:
    """Memoized collections."""

    @pytest.fixture
    def two_books(self, library, entities):
        entities["books"][2] = {"id": 2, "title": "Harry Potter", "author": 2}
        entities["authors"][2] = {"id": 2, "name": "JK Rowling"}
        return entities

    def test_result_fed_back_is_same_list(self, library, two_books):
        """Feeding a result back returns it unchanged."""
        Books = array_of(library["Book"])
        books1 = denormalize([1, 2], two_books, Books, MEMOIZED)
        books2 = denormalize(books1, two_books, Books, MEMOIZED)
        books3 = denormalize([1, 2], two_books, Books, MEMOIZED)

        assert books1 is books2
        assert books3 is not books2
        assert books3[0] is books1[0]

    def test_order_preserved(self, library, entities):
        """[3, 1, 2] keeps its order."""
        entities["reviews"][3] = {"id": 3, "content": "Meh"}
        reviews = denormalize([3, 1, 2], entities, array_of(library["Review"]), MEMOIZED)
        assert [r["id"] for r in reviews] == [3, 1, 2]


class TestShapes:
    """Unions, envelopes and missing entities."""

    def test_union(self, library, entities):
        """Union resolves through the tagged member."""
        publication = union_of({"book": library["Book"], "magazine": EntitySchema("magazines")})
        value = {"id": 1, "schema": "book"}

        first = denormalize(value, entities, publication, MEMOIZED)
        second = denormalize(value, entities, publication, MEMOIZED)

        assert first["author"]["name"] == "Georges RR Martin"
        assert first is second

    def test_envelope_reused(self, library, entities):
        """An envelope whose fields are unchanged is returned as is."""
        schema = {"featured": library["Book"]}
        first = denormalize({"featured": 1}, entities, schema, MEMOIZED)
        second = denormalize(first, entities, schema, MEMOIZED)

        assert first["featured"]["title"] == "Game of Thrones"
        assert second is first

    def test_missing_entity_is_none(self, library, entities):
        """Unknown id becomes None."""
        assert denormalize(42, entities, library["Book"], MEMOIZED) is None


class TestCaches:
    """Explicit and default caches."""

    def test_default_cache_used(self, library, entities):
        """Calls without a cache fill the default one."""
        denormalize(1, entities, library["Book"], MEMOIZED)
        assert ("books", "1") in get_default_cache()

    def test_independent_caches(self, library):
        """Same keys in two caches do not collide."""
        Book = library["Book"]
        store_a = {"books": {1: {"id": 1, "title": "A"}}}
        store_b = {"books": {1: {"id": 1, "title": "B"}}}
        cache_a = DenormalizationCache()
        cache_b = DenormalizationCache()

        a1 = denormalize(1, store_a, Book, MEMOIZED, cache=cache_a)
        b1 = denormalize(1, store_b, Book, MEMOIZED, cache=cache_b)
        a2 = denormalize(1, store_a, Book, MEMOIZED, cache=cache_a)

        assert a1["title"] == "A"
        assert b1["title"] == "B"
        assert a1 is a2
        assert len(get_default_cache()) == 0

    def test_evicted_entity_rebuilt(self, library, entities):
        """A bounded cache still returns correct values."""
        cache = DenormalizationCache(max_entries=1)
        Book = library["Book"]

        first = denormalize_memoized(1, entities, Book, cache=cache)
        second = denormalize_memoized(1, entities, Book, cache=cache)

        assert second == first
        assert cache.evictions > 0
        assert len(cache) == 1


class TestPersistent:
    """Memoized denormalization over persistent (read-only) containers."""

    @pytest.fixture
    def frozen_store(self):
        return MappingProxyType({
            "books": MappingProxyType({
                1: MappingProxyType({"id": 1, "title": "Dune", "author": 1, "reviews": (1,)}),
            }),
            "authors": MappingProxyType({
                1: MappingProxyType({"id": 1, "name": "Herbert"}),
            }),
            "reviews": MappingProxyType({
                1: MappingProxyType({"id": 1, "content": "Classic"}),
            }),
        })

    def test_keeps_container_family(self, library, frozen_store):
        """Persistent entities and tuples come back persistent."""
        book = denormalize(1, frozen_store, library["Book"], MEMOIZED)

        assert isinstance(book, MappingProxyType)
        assert isinstance(book["reviews"], tuple)
        assert isinstance(book["reviews"][0], MappingProxyType)
        assert book["author"]["name"] == "Herbert"
        assert frozen_store["books"][1]["author"] == 1

    def test_reused_across_calls(self, library, frozen_store):
        """Unchanged persistent store returns identical objects."""
        Book = library["Book"]
        first = denormalize(1, frozen_store, Book, MEMOIZED)
        second = denormalize(1, frozen_store, Book, MEMOIZED)

        assert first is second
        assert first["reviews"] is second["reviews"]

    def test_tuple_collection(self, library, frozen_store):
        """A tuple of ids stays a tuple."""
        books = denormalize((1,), frozen_store, array_of(library["Book"]), MEMOIZED)
        assert isinstance(books, tuple)
        assert books[0]["title"] == "Dune"


class TestPrivateFields:
    """Underscore fields in the memoized path."""

    def test_private_field_left_raw(self):
        """Private fields are never expanded."""
        Author = EntitySchema("authors")
        Book = EntitySchema("books", {"author": Author, "_editor": Author})
        store = {
            "books": {1: {"id": 1, "author": 1, "_editor": 1}},
            "authors": {1: {"id": 1, "name": "Herbert"}},
        }

        book = denormalize(1, store, Book, MEMOIZED)

        assert book["author"]["name"] == "Herbert"
        assert book["_editor"] == 1

    def test_private_envelope_field_left_raw(self, library, entities):
        """Private envelope fields are never expanded."""
        schema = {"featured": library["Book"], "_pinned": library["Book"]}
        result = denormalize({"featured": 1, "_pinned": 1}, entities, schema, MEMOIZED)

        assert result["featured"]["title"] == "Game of Thrones"
        assert result["_pinned"] == 1


class ReplacingPartition(dict):
    """Author partition that swaps book 1 and denormalizes it again on first read."""

    def __init__(self, authors, on_first_read):
        super().__init__(authors)
        self._on_first_read = on_first_read

    def get(self, key, default=None):
        hook, self._on_first_read = self._on_first_read, None
        if hook is not None:
            hook()
        return super().get(key, default)


class TestInterleavedRebuild:
    """A call that rebuilds an entity while another call is building it."""

    def test_newer_result_kept(self, library):
        """The slower call cannot overwrite a result built from a newer entity."""
        Book = library["Book"]
        cache = DenormalizationCache()
        store = {"books": {1: {"id": 1, "title": "Old", "author": 1}}}

        def replace_and_rebuild():
            store["books"][1] = {**store["books"][1], "title": "New"}
            nested = denormalize_memoized(1, store, Book, cache=cache)
            assert nested["title"] == "New"

        store["authors"] = ReplacingPartition(
            {1: {"id": 1, "name": "Author"}}, replace_and_rebuild
        )

        outer = denormalize_memoized(1, store, Book, cache=cache)
        assert outer["title"] == "Old"

        slot = cache.get(("books", "1"))
        assert slot.source_entity is store["books"][1]
        assert slot.denormalized["title"] == "New"

        latest = denormalize_memoized(1, store, Book, cache=cache)
        assert latest["title"] == "New"
        assert latest["author"]["name"] == "Author"
