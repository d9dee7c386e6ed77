"""
MongoDB persistence for authors and books.
Handles connection, indexing, identifier assignment and the
author/book many-to-many link.

Book documents carry the link as an `author_ids` array; an author's
books are always derived from it, so both sides stay consistent.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, PyMongoError

from .errors import EntityNotFoundError, LibraryError
from .models import Author, Book, Language

logger = structlog.get_logger(__name__)

AUTHORS_COLLECTION = "authors"
BOOKS_COLLECTION = "books"
COUNTERS_COLLECTION = "counters"


async def next_id(database: AsyncIOMotorDatabase, sequence: str) -> int:
    """
    Allocate the next integer identifier of a sequence.

    Identifiers start at 1 and are never reused.
    """
    counter = await database[COUNTERS_COLLECTION].find_one_and_update(
        {"_id": sequence},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER
    )
    return counter["seq"]


def _contains(text: str) -> Dict[str, Any]:
    return {"$regex": re.escape(text), "$options": "i"}


def author_from_document(doc: Dict[str, Any]) -> Author:
    """Build an Author from a stored document, with any looked-up books."""
    return Author(
        id=doc["_id"],
        full_name=doc.get("full_name"),
        books=[book_from_document(book_doc) for book_doc in doc.get("books", [])]
    )


def book_from_document(doc: Dict[str, Any]) -> Book:
    """
    Build a Book from a stored document.

    When the document went through the authors lookup, linked authors carry
    their names and ids without a matching author document are skipped.
    Otherwise each linked id becomes a bare Author reference.
    """
    author_ids = doc.get("author_ids", [])
    if "authors" in doc:
        found = {author_doc["_id"]: author_doc for author_doc in doc["authors"]}
        authors = [
            Author(id=author_id, full_name=found[author_id].get("full_name"))
            for author_id in author_ids if author_id in found
        ]
    else:
        authors = [Author(id=author_id) for author_id in author_ids]

    language = doc.get("language")
    return Book(
        id=doc["_id"],
        isbn=doc.get("isbn"),
        title=doc.get("title"),
        year=doc.get("year"),
        publisher=doc.get("publisher"),
        language=Language(language) if language else None,
        authors=authors
    )


def book_to_document(book: Book) -> Dict[str, Any]:
    """Scalar fields and author links of a book, as stored."""
    return {
        "isbn": book.isbn,
        "title": book.title,
        "year": book.year,
        "publisher": book.publisher,
        "language": book.language.value if book.language else None,
        "author_ids": book.author_ids,
    }


class AuthorStore:
    """Author persistence: list, search, get, save, update, delete."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.collection = database[AUTHORS_COLLECTION]

    async def list(self) -> List[Author]:
        """Return every author ordered by identifier."""
        return await self._find({})

    async def search_by_name(self, text: str) -> List[Author]:
        """Return authors whose name contains text, ignoring case."""
        return await self._find({"full_name": _contains(text)})

    async def _find(self, query: Dict[str, Any]) -> List[Author]:
        try:
            cursor = self.collection.find(query).sort("_id", 1)
            docs = await cursor.to_list(length=None)
            return [author_from_document(doc) for doc in docs]
        except PyMongoError as e:
            logger.error("Failed to list authors", query=str(query), error=str(e))
            raise

    async def get(self, author_id: int) -> Author:
        """
        Load an author together with the books linked to it.

        Raises:
            EntityNotFoundError: If no author has this identifier
        """
        pipeline = [
            {"$match": {"_id": author_id}},
            {"$lookup": {
                "from": BOOKS_COLLECTION,
                "localField": "_id",
                "foreignField": "author_ids",
                "as": "books"
            }},
        ]
        try:
            cursor = self.collection.aggregate(pipeline)
            docs = await cursor.to_list(length=1)
        except PyMongoError as e:
            logger.error("Failed to get author", author_id=author_id, error=str(e))
            raise

        if not docs:
            raise EntityNotFoundError("Author", author_id)
        return author_from_document(docs[0])

    async def save(self, author: Author) -> Author:
        """Persist a new author and assign its identifier."""
        try:
            author.id = await next_id(self.database, AUTHORS_COLLECTION)
            await self.collection.insert_one({"_id": author.id, "full_name": author.full_name})
            logger.debug("Inserted author", author_id=author.id)
            return author
        except PyMongoError as e:
            logger.error("Failed to insert author", error=str(e))
            raise

    async def update(self, author: Author) -> Author:
        """
        Overwrite the stored name of an existing author.

        Raises:
            EntityNotFoundError: If the author no longer exists
        """
        try:
            result = await self.collection.update_one(
                {"_id": author.id},
                {"$set": {"full_name": author.full_name}}
            )
        except PyMongoError as e:
            logger.error("Failed to update author", author_id=author.id, error=str(e))
            raise

        if result.matched_count == 0:
            logger.warning("Author not found for update", author_id=author.id)
            raise EntityNotFoundError("Author", author.id)
        logger.debug("Updated author", author_id=author.id)
        return author

    async def delete(self, author_id: int) -> None:
        """
        Delete an author and unlink it from every book.
        Books themselves are kept.

        Raises:
            EntityNotFoundError: If no author has this identifier
        """
        try:
            result = await self.collection.delete_one({"_id": author_id})
            if result.deleted_count == 0:
                logger.warning("Author not found for deletion", author_id=author_id)
                raise EntityNotFoundError("Author", author_id)

            unlinked = await self.database[BOOKS_COLLECTION].update_many(
                {"author_ids": author_id},
                {"$pull": {"author_ids": author_id}}
            )
            logger.debug("Deleted author", author_id=author_id, books_unlinked=unlinked.modified_count)
        except LibraryError:
            raise
        except PyMongoError as e:
            logger.error("Failed to delete author", author_id=author_id, error=str(e))
            raise


class BookStore:
    """Book persistence: list, search, get, save, update, delete."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.collection = database[BOOKS_COLLECTION]

    def _pipeline(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {"$match": query},
            {"$lookup": {
                "from": AUTHORS_COLLECTION,
                "localField": "author_ids",
                "foreignField": "_id",
                "as": "authors"
            }},
            {"$sort": {"_id": 1}},
        ]

    async def _aggregate(self, query: Dict[str, Any], length: Optional[int] = None) -> List[Book]:
        try:
            cursor = self.collection.aggregate(self._pipeline(query))
            docs = await cursor.to_list(length=length)
            return [book_from_document(doc) for doc in docs]
        except PyMongoError as e:
            logger.error("Failed to query books", query=str(query), error=str(e))
            raise

    async def list(self) -> List[Book]:
        """Return every book ordered by identifier."""
        return await self._aggregate({})

    async def find_by_title(self, text: str) -> List[Book]:
        """Return books whose title contains text, ignoring case."""
        return await self._aggregate({"title": _contains(text)})

    async def find_by_author(self, author_id: int) -> List[Book]:
        """Return the books linked to an author."""
        return await self._aggregate({"author_ids": author_id})

    async def find_without_authors(self) -> List[Book]:
        """Return books that are no longer linked to any author."""
        return await self._aggregate({"author_ids": {"$size": 0}})

    async def get(self, book_id: int) -> Book:
        """
        Load a book with its authors.

        Raises:
            EntityNotFoundError: If no book has this identifier
        """
        books = await self._aggregate({"_id": book_id}, length=1)
        if not books:
            raise EntityNotFoundError("Book", book_id)
        return books[0]

    async def save(self, author_id: int, book: Book) -> Book:
        """
        Persist a new book linked to one author.

        Raises:
            EntityNotFoundError: If the author does not exist
        """
        try:
            author_doc = await self.database[AUTHORS_COLLECTION].find_one({"_id": author_id})
            if author_doc is None:
                logger.warning("Author not found for new book", author_id=author_id)
                raise EntityNotFoundError("Author", author_id)

            book.authors = [author_from_document(author_doc)]
            book.id = await next_id(self.database, BOOKS_COLLECTION)
            await self.collection.insert_one({"_id": book.id, **book_to_document(book)})
            logger.debug("Inserted book", book_id=book.id, author_id=author_id)
            return book
        except LibraryError:
            raise
        except PyMongoError as e:
            logger.error("Failed to insert book", author_id=author_id, error=str(e))
            raise

    async def update(self, book: Book) -> Book:
        """
        Overwrite the stored fields and author links of a book.

        Raises:
            EntityNotFoundError: If the book no longer exists
        """
        try:
            result = await self.collection.update_one(
                {"_id": book.id},
                {"$set": book_to_document(book)}
            )
        except PyMongoError as e:
            logger.error("Failed to update book", book_id=book.id, error=str(e))
            raise

        if result.matched_count == 0:
            logger.warning("Book not found for update", book_id=book.id)
            raise EntityNotFoundError("Book", book.id)
        logger.debug("Updated book", book_id=book.id)
        return await self.get(book.id)

    async def delete(self, book_id: int) -> None:
        """
        Delete a book.

        Raises:
            EntityNotFoundError: If no book has this identifier
        """
        try:
            result = await self.collection.delete_one({"_id": book_id})
        except PyMongoError as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise

        if result.deleted_count == 0:
            logger.warning("Book not found for deletion", book_id=book_id)
            raise EntityNotFoundError("Book", book_id)
        logger.debug("Deleted book", book_id=book_id)

    async def find_dangling_references(self) -> Dict[int, List[int]]:
        """
        Map each book id to the linked author ids that have no author document.
        Books without dangling links are left out.
        """
        pipeline = [
            {"$lookup": {
                "from": AUTHORS_COLLECTION,
                "localField": "author_ids",
                "foreignField": "_id",
                "as": "authors"
            }},
            {"$project": {"author_ids": 1, "authors._id": 1}},
        ]
        dangling = {}
        async for doc in self.collection.aggregate(pipeline):
            found = {author["_id"] for author in doc.get("authors", [])}
            missing = [author_id for author_id in doc.get("author_ids", []) if author_id not in found]
            if missing:
                dangling[doc["_id"]] = missing
        return dangling

    async def remove_author_references(self, author_ids: List[int]) -> int:
        """Unlink the given author ids from every book. Returns books modified."""
        if not author_ids:
            return 0
        result = await self.collection.update_many(
            {"author_ids": {"$in": author_ids}},
            {"$pull": {"author_ids": {"$in": author_ids}}}
        )
        logger.info("Removed author references", author_ids=author_ids, books_modified=result.modified_count)
        return result.modified_count


class LibraryDatabase:
    """
    Async MongoDB manager for the library.
    Owns the client connection and exposes the author and book stores.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize the database manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.authors: Optional[AuthorStore] = None
        self.books: Optional[BookStore] = None

    async def connect(self) -> None:
        """Establish the connection and build the stores."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]

            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()
        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

        self.authors = AuthorStore(self.database)
        self.books = BookStore(self.database)

    async def disconnect(self) -> None:
        """Close the MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create indexes for name/title search and author-to-book lookups."""
        try:
            await self.database[AUTHORS_COLLECTION].create_index("full_name")
            await self.database[BOOKS_COLLECTION].create_index("title")
            await self.database[BOOKS_COLLECTION].create_index("author_ids")
            logger.info("Successfully created MongoDB indexes")
        except PyMongoError as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform a database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            return {
                "status": "healthy",
                "authors_count": await self.database[AUTHORS_COLLECTION].count_documents({}),
                "books_count": await self.database[BOOKS_COLLECTION].count_documents({}),
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }

    async def get_database_stats(self) -> Dict[str, Any]:
        """Get library statistics for monitoring."""
        try:
            dangling = await self.books.find_dangling_references()
            return {
                "total_authors": await self.database[AUTHORS_COLLECTION].count_documents({}),
                "total_books": await self.database[BOOKS_COLLECTION].count_documents({}),
                "books_without_authors": await self.database[BOOKS_COLLECTION].count_documents(
                    {"author_ids": {"$size": 0}}
                ),
                "books_with_dangling_authors": len(dangling),
                "last_updated": datetime.utcnow().isoformat()
            }
        except PyMongoError as e:
            logger.error("Failed to get database stats", error=str(e))
            raise
