"""
Request handling for authors.

Validates author requests and orchestrates the author and book stores,
including the removal of co-authored books when an author is deleted.
"""

from typing import List, Optional

import structlog
from pymongo.errors import PyMongoError

from library.database import AuthorStore, BookStore
from library.errors import EntityNotFoundError, InvalidInputError, LibraryError
from library.models import Author, is_blank

from api.mappers import payload_to_author
from api.models import AuthorPayload

logger = structlog.get_logger(__name__)


class AuthorRequestHandler:
    """Author CRUD on top of the author and book stores."""

    def __init__(self, authors: AuthorStore, books: BookStore):
        self.authors = authors
        self.books = books

    async def list(self, query: Optional[str] = None) -> List[Author]:
        """
        List authors.

        Args:
            query: Optional search text matched against author names

        Returns:
            All authors when no query is given, otherwise the matching ones
        """
        if query is None:
            return await self.authors.list()
        return await self.authors.search_by_name(query)

    async def get(self, author_id: int) -> Author:
        """
        Get an author by ID.

        Raises:
            EntityNotFoundError: If the author does not exist
        """
        return await self.authors.get(author_id)

    async def create(self, payload: AuthorPayload) -> Author:
        """
        Create an author. The full name must not be blank; duplicate
        names are allowed.

        Raises:
            InvalidInputError: If the full name is missing or blank
        """
        author = payload_to_author(payload)
        if is_blank(author.full_name):
            logger.info("Rejected author creation", reason="blank full name")
            raise InvalidInputError("Author full name is required")

        author.id = None
        saved = await self.authors.save(author)
        logger.info("Author created", author_id=saved.id)
        return saved

    async def update(self, author_id: int, payload: AuthorPayload) -> Author:
        """
        Replace the name of an existing author.

        The name is copied as given, without the blank check of `create`.

        Raises:
            EntityNotFoundError: If the body ID differs from the path ID,
                or the author does not exist
        """
        if payload.id != author_id:
            logger.info("Rejected author update", author_id=author_id, body_id=payload.id,
                        reason="identifier mismatch")
            raise EntityNotFoundError(
                "Author", author_id,
                message=f"Author ID in body ({payload.id}) does not match path ID ({author_id})"
            )

        existing = await self.authors.get(author_id)
        existing.full_name = payload.full_name
        updated = await self.authors.update(existing)
        logger.info("Author updated", author_id=author_id)
        return updated

    async def delete(self, author_id: int) -> None:
        """
        Delete an author.

        Every linked book that currently has more than one author is deleted
        with it. Books whose only author is this one are kept and simply
        lose the link.

        Raises:
            InvalidInputError: If the author does not exist or any step of
                the deletion fails
        """
        try:
            author = await self.authors.get(author_id)
        except EntityNotFoundError as e:
            logger.info("Rejected author deletion", author_id=author_id, reason="not found")
            raise InvalidInputError(e.message) from e

        try:
            for book in author.books:
                if len(book.authors) > 1:
                    await self.books.delete(book.id)
                    logger.info("Deleted co-authored book with author", author_id=author_id,
                                book_id=book.id, author_count=len(book.authors))
            await self.authors.delete(author_id)
        except (LibraryError, PyMongoError) as e:
            logger.warning("Author deletion failed", author_id=author_id, error=str(e))
            raise InvalidInputError(f"Could not delete author {author_id}") from e

        logger.info("Author deleted", author_id=author_id)
