"""
Shared fixtures for denormalizr tests.
"""

import pytest

from denormalizr import EntitySchema, array_of, reset_default_cache, reset_settings


@pytest.fixture(autouse=True)
def fresh_process_state():
    """Start every test with an empty process-wide cache and unread settings."""
    reset_settings()
    reset_default_cache()
    yield
    reset_default_cache()
    reset_settings()


@pytest.fixture
def library():
    """Book/Author/Review schemas with a Book <-> Author cycle."""
    Book = EntitySchema("books")
    Author = EntitySchema("authors")
    Review = EntitySchema("reviews")
    Book.define({"author": Author, "reviews": array_of(Review)})
    Author.define({"books": array_of(Book)})
    return {"Book": Book, "Author": Author, "Review": Review}


@pytest.fixture
def entities():
    """Normalized store for one book with an author and two reviews."""
    return {
        "books": {
            1: {"id": 1, "title": "Game of Thrones", "author": 1, "reviews": [1, 2]},
        },
        "authors": {
            1: {"id": 1, "name": "Georges RR Martin"},
        },
        "reviews": {
            1: {"id": 1, "content": "Super livre"},
            2: {"id": 2, "content": "Bof bof"},
        },
    }
