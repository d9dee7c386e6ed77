"""
Conversions between API payloads/responses and library entities.
"""

from library.models import Author, Book, Language

from api.models import AuthorPayload, AuthorResponse, BookPayload, BookResponse


def payload_to_author(payload: AuthorPayload) -> Author:
    return Author(id=payload.id, full_name=payload.full_name)


def author_to_response(author: Author) -> AuthorResponse:
    return AuthorResponse(id=author.id, full_name=author.full_name)


def author_to_payload(author: Author) -> AuthorPayload:
    return AuthorPayload(id=author.id, full_name=author.full_name)


def payload_to_book(payload: BookPayload) -> Book:
    """
    Build a Book entity from a request body.
    An unknown language name maps to no language; callers validate it first.
    """
    return Book(
        id=payload.id,
        isbn=payload.isbn,
        title=payload.title,
        year=payload.year,
        publisher=payload.publisher,
        language=Language.parse(payload.language),
        authors=[payload_to_author(author) for author in payload.authors]
    )


def book_to_response(book: Book) -> BookResponse:
    return BookResponse(
        id=book.id,
        isbn=book.isbn,
        title=book.title,
        year=book.year,
        publisher=book.publisher,
        language=book.language.value if book.language else None,
        authors=[author_to_response(author) for author in book.authors]
    )


def book_to_payload(book: Book) -> BookPayload:
    return BookPayload(
        id=book.id,
        isbn=book.isbn,
        title=book.title,
        year=book.year,
        publisher=book.publisher,
        language=book.language.value if book.language else None,
        authors=[author_to_payload(author) for author in book.authors]
    )
