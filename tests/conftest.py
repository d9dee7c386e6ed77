"""
Pytest configuration and shared fixtures.

The in-memory stores below follow the same contract as the MongoDB
stores in `library.database` (integer ids from 1, `author_ids` links,
EntityNotFoundError on missing entities) and build their entities with
the same document converters.
"""

import copy
import re
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient

from api.authors import AuthorRequestHandler
from api.books import BookRequestHandler
from api.main import create_app
from api.routes import get_author_handler, get_book_handler
from library.database import author_from_document, book_from_document, book_to_document
from library.errors import EntityNotFoundError
from library.models import Author, Book


class InMemoryLibrary:
    """Author and book documents shared by the in-memory stores."""

    def __init__(self):
        self.authors: Dict[int, dict] = {}
        self.books: Dict[int, dict] = {}
        self.counters = {"authors": 0, "books": 0}

    def next_id(self, sequence: str) -> int:
        self.counters[sequence] += 1
        return self.counters[sequence]

    def author_document(self, author_id: int, with_books: bool = False) -> dict:
        doc = copy.deepcopy(self.authors[author_id])
        if with_books:
            doc["books"] = [
                copy.deepcopy(book) for book in self.books.values()
                if author_id in book["author_ids"]
            ]
        return doc

    def book_document(self, book_id: int) -> dict:
        doc = copy.deepcopy(self.books[book_id])
        doc["authors"] = [
            copy.deepcopy(self.authors[author_id])
            for author_id in doc["author_ids"] if author_id in self.authors
        ]
        return doc


class InMemoryAuthorStore:
    def __init__(self, library: InMemoryLibrary):
        self.library = library

    async def list(self) -> List[Author]:
        return [author_from_document(self.library.author_document(i)) for i in sorted(self.library.authors)]

    async def search_by_name(self, text: str) -> List[Author]:
        pattern = re.compile(re.escape(text), re.IGNORECASE)
        return [
            author for author in await self.list()
            if author.full_name and pattern.search(author.full_name)
        ]

    async def get(self, author_id: int) -> Author:
        if author_id not in self.library.authors:
            raise EntityNotFoundError("Author", author_id)
        return author_from_document(self.library.author_document(author_id, with_books=True))

    async def save(self, author: Author) -> Author:
        author.id = self.library.next_id("authors")
        self.library.authors[author.id] = {"_id": author.id, "full_name": author.full_name}
        return author

    async def update(self, author: Author) -> Author:
        if author.id not in self.library.authors:
            raise EntityNotFoundError("Author", author.id)
        self.library.authors[author.id]["full_name"] = author.full_name
        return author

    async def delete(self, author_id: int) -> None:
        if self.library.authors.pop(author_id, None) is None:
            raise EntityNotFoundError("Author", author_id)
        for book in self.library.books.values():
            if author_id in book["author_ids"]:
                book["author_ids"].remove(author_id)


class InMemoryBookStore:
    def __init__(self, library: InMemoryLibrary):
        self.library = library

    def _books(self, predicate=lambda doc: True) -> List[Book]:
        return [
            book_from_document(self.library.book_document(book_id))
            for book_id in sorted(self.library.books)
            if predicate(self.library.books[book_id])
        ]

    async def list(self) -> List[Book]:
        return self._books()

    async def find_by_title(self, text: str) -> List[Book]:
        pattern = re.compile(re.escape(text), re.IGNORECASE)
        return self._books(lambda doc: bool(doc["title"] and pattern.search(doc["title"])))

    async def find_by_author(self, author_id: int) -> List[Book]:
        return self._books(lambda doc: author_id in doc["author_ids"])

    async def find_without_authors(self) -> List[Book]:
        return self._books(lambda doc: not doc["author_ids"])

    async def get(self, book_id: int) -> Book:
        if book_id not in self.library.books:
            raise EntityNotFoundError("Book", book_id)
        return book_from_document(self.library.book_document(book_id))

    async def save(self, author_id: int, book: Book) -> Book:
        if author_id not in self.library.authors:
            raise EntityNotFoundError("Author", author_id)
        book.authors = [author_from_document(self.library.author_document(author_id))]
        book.id = self.library.next_id("books")
        self.library.books[book.id] = {"_id": book.id, **book_to_document(book)}
        return book

    async def update(self, book: Book) -> Book:
        if book.id not in self.library.books:
            raise EntityNotFoundError("Book", book.id)
        self.library.books[book.id] = {"_id": book.id, **book_to_document(book)}
        return await self.get(book.id)

    async def delete(self, book_id: int) -> None:
        if self.library.books.pop(book_id, None) is None:
            raise EntityNotFoundError("Book", book_id)


@pytest.fixture
def memory_library():
    """Create an empty in-memory library."""
    return InMemoryLibrary()


@pytest.fixture
def author_store(memory_library):
    return InMemoryAuthorStore(memory_library)


@pytest.fixture
def book_store(memory_library):
    return InMemoryBookStore(memory_library)


@pytest.fixture
def author_handler(author_store, book_store):
    """Create an author handler over the in-memory stores."""
    return AuthorRequestHandler(author_store, book_store)


@pytest.fixture
def book_handler(book_store, author_handler):
    """Create a book handler over the in-memory stores."""
    return BookRequestHandler(book_store, author_handler)


@pytest.fixture
def sample_book_payload():
    """A book body that passes every creation check."""
    return {
        "title": "Book A",
        "isbn": 123456789012,
        "year": 2020,
        "publisher": "Gallimard",
        "language": "ENGLISH",
    }


@pytest.fixture
def client(author_handler, book_handler):
    """Create a test client whose handlers use the in-memory stores."""
    app = create_app()
    app.dependency_overrides[get_author_handler] = lambda: author_handler
    app.dependency_overrides[get_book_handler] = lambda: book_handler
    return TestClient(app)
