"""
Request handling for books.

Validates book requests (title, year, ISBN, language), creates books
under an author, updates them and links additional authors.
"""

from typing import List, Optional

import structlog

from library.database import BookStore
from library.errors import EntityNotFoundError, InvalidInputError
from library.models import Author, Book, Language, is_blank, is_valid_isbn, is_valid_year

from api.authors import AuthorRequestHandler
from api.mappers import book_to_payload, payload_to_book
from api.models import AuthorPayload, BookPayload

logger = structlog.get_logger(__name__)


class BookRequestHandler:
    """Book CRUD and author linking on top of the book store."""

    def __init__(self, books: BookStore, authors: AuthorRequestHandler):
        self.books = books
        self.authors = authors

    async def list(self, query: Optional[str] = None) -> List[Book]:
        """List all books, or those whose title matches query."""
        if query is None:
            return await self.books.list()
        return await self.books.find_by_title(query)

    async def list_by_author(self, author_id: int) -> List[Book]:
        """
        List the books of an author.

        Raises:
            EntityNotFoundError: If the author does not exist
        """
        await self.authors.get(author_id)
        return await self.books.find_by_author(author_id)

    async def get(self, book_id: int) -> Book:
        """
        Get a book by ID.

        Raises:
            EntityNotFoundError: If the book does not exist
        """
        return await self.books.get(book_id)

    async def create(self, author_id: int, payload: BookPayload) -> Book:
        """
        Create a book written by an existing author.

        Checks run in this order: language name, author existence, then
        title, year, ISBN. A missing year is accepted.

        Raises:
            InvalidInputError: If a field is invalid, or the store cannot
                link the book to the author
            EntityNotFoundError: If the author does not exist
        """
        if payload.language is not None and Language.parse(payload.language) is None:
            self._reject("create", author_id=author_id, reason="unknown language",
                         language=payload.language)

        author = await self.authors.get(author_id)

        book = payload_to_book(payload)
        if is_blank(book.title):
            self._reject("create", author_id=author_id, reason="blank title")
        if book.year is not None and not is_valid_year(book.year):
            self._reject("create", author_id=author_id, reason="year out of range", year=book.year)
        if not is_valid_isbn(book.isbn):
            self._reject("create", author_id=author_id, reason="invalid isbn", isbn=book.isbn)
        if author is None:
            self._reject("create", author_id=author_id, reason="author unresolved")

        book.id = None
        try:
            saved = await self.books.save(author_id, book)
        except EntityNotFoundError as e:
            logger.info("Rejected book creation", author_id=author_id, reason="author vanished")
            raise InvalidInputError(e.message) from e

        logger.info("Book created", book_id=saved.id, author_id=author_id)
        return saved

    async def update(self, book_id: int, payload: BookPayload) -> Book:
        """
        Overwrite year, ISBN, title and publisher of an existing book.

        Values are copied as given; the create-time checks are not applied.

        Raises:
            InvalidInputError: If the body ID differs from the path ID
            EntityNotFoundError: If the book does not exist
        """
        self._check_identifier(book_id, payload)
        existing = await self.books.get(book_id)
        return await self._overwrite(existing, payload)

    async def delete(self, book_id: int) -> None:
        """
        Delete a book.

        Raises:
            InvalidInputError: If the book does not exist
        """
        try:
            await self.books.get(book_id)
        except EntityNotFoundError as e:
            logger.info("Rejected book deletion", book_id=book_id, reason="not found")
            raise InvalidInputError(e.message) from e

        await self.books.delete(book_id)
        logger.info("Book deleted", book_id=book_id)

    async def attach_author(self, book_id: int, payload: AuthorPayload) -> Book:
        """
        Link an author to a book and save the book through the update path.

        A payload with an ID must name an existing author; a payload
        without one describes a new author, which is created first.

        Raises:
            EntityNotFoundError: If the book, or the referenced author, does not exist
            InvalidInputError: If a new author has a blank name
        """
        book = await self.books.get(book_id)
        author = await self._resolve_author(payload)

        if not book.add_author(author):
            logger.info("Author already linked to book", book_id=book_id, author_id=author.id)

        book_payload = book_to_payload(book)
        self._check_identifier(book_id, book_payload)
        updated = await self._overwrite(book, book_payload)
        logger.info("Author attached to book", book_id=book_id, author_id=author.id)
        return updated

    async def _resolve_author(self, payload: AuthorPayload) -> Author:
        if payload.id is not None:
            return await self.authors.get(payload.id)
        return await self.authors.create(payload)

    async def _overwrite(self, existing: Book, payload: BookPayload) -> Book:
        existing.year = payload.year
        existing.isbn = payload.isbn
        existing.title = payload.title
        existing.id = payload.id
        existing.publisher = payload.publisher
        updated = await self.books.update(existing)
        logger.info("Book updated", book_id=existing.id)
        return updated

    def _check_identifier(self, book_id: int, payload: BookPayload) -> None:
        if payload.id != book_id:
            self._reject("update", book_id=book_id, reason="identifier mismatch", body_id=payload.id)

    def _reject(self, operation: str, reason: str, **context) -> None:
        logger.info(f"Rejected book {operation}", reason=reason, **context)
        raise InvalidInputError(f"Invalid book {operation}: {reason}")
