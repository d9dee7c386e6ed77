"""
Endpoints and the routing table of the Library API.

Every route is declared in the tables below and installed on the
application by `register_routes`; endpoints reach their handler through
the application state.
"""

from datetime import datetime
from typing import Annotated, Any, Callable, List, NamedTuple, Optional, Type

from fastapi import Depends, FastAPI, Path, Request, Response, status

from library.models import MAX_STORED_INT, MIN_STORED_INT

from api.authors import AuthorRequestHandler
from api.books import BookRequestHandler
from api.config import config as api_config
from api.mappers import author_to_response, book_to_response
from api.models import AuthorPayload, AuthorResponse, BookPayload, BookResponse, HealthResponse

EntityId = Annotated[int, Path(ge=MIN_STORED_INT, le=MAX_STORED_INT)]


class Route(NamedTuple):
    method: str
    path: str
    endpoint: Callable
    status_code: int = status.HTTP_200_OK
    response_model: Optional[Type[Any]] = None
    summary: Optional[str] = None


def get_author_handler(request: Request) -> AuthorRequestHandler:
    return request.app.state.author_handler


def get_book_handler(request: Request) -> BookRequestHandler:
    return request.app.state.book_handler


# Health endpoint
async def health_check(request: Request) -> HealthResponse:
    """Report service and database status."""
    database = getattr(request.app.state, "database", None)
    db_status = "unavailable"
    if database is not None:
        health_info = await database.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=api_config.api_version,
        database_status=db_status
    )


# Author endpoints
async def list_authors(
    q: Optional[str] = None,
    handler: AuthorRequestHandler = Depends(get_author_handler)
) -> List[AuthorResponse]:
    """
    List authors.

    - **q**: Only return authors whose name contains this text
    """
    authors = await handler.list(q)
    return [author_to_response(author) for author in authors]


async def get_author(
    author_id: EntityId,
    handler: AuthorRequestHandler = Depends(get_author_handler)
) -> AuthorResponse:
    return author_to_response(await handler.get(author_id))


async def create_author(
    payload: AuthorPayload,
    handler: AuthorRequestHandler = Depends(get_author_handler)
) -> AuthorResponse:
    return author_to_response(await handler.create(payload))


async def update_author(
    author_id: EntityId,
    payload: AuthorPayload,
    handler: AuthorRequestHandler = Depends(get_author_handler)
) -> AuthorResponse:
    return author_to_response(await handler.update(author_id, payload))


async def delete_author(
    author_id: EntityId,
    handler: AuthorRequestHandler = Depends(get_author_handler)
) -> Response:
    await handler.delete(author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Book endpoints
async def list_books(
    q: Optional[str] = None,
    handler: BookRequestHandler = Depends(get_book_handler)
) -> List[BookResponse]:
    """
    List books.

    - **q**: Only return books whose title contains this text
    """
    books = await handler.list(q)
    return [book_to_response(book) for book in books]


async def list_books_by_author(
    author_id: EntityId,
    handler: BookRequestHandler = Depends(get_book_handler)
) -> List[BookResponse]:
    books = await handler.list_by_author(author_id)
    return [book_to_response(book) for book in books]


async def get_book(
    book_id: EntityId,
    handler: BookRequestHandler = Depends(get_book_handler)
) -> BookResponse:
    return book_to_response(await handler.get(book_id))


async def create_book(
    author_id: EntityId,
    payload: BookPayload,
    handler: BookRequestHandler = Depends(get_book_handler)
) -> BookResponse:
    """
    Create a book written by an author.

    - **isbn**: Positive, at least 12 digits
    - **year**: Between 0 and the current year
    - **language**: Language name, case-insensitive
    """
    return book_to_response(await handler.create(author_id, payload))


async def update_book(
    book_id: EntityId,
    payload: BookPayload,
    handler: BookRequestHandler = Depends(get_book_handler)
) -> BookResponse:
    return book_to_response(await handler.update(book_id, payload))


async def delete_book(
    book_id: EntityId,
    handler: BookRequestHandler = Depends(get_book_handler)
) -> Response:
    await handler.delete(book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def attach_author(
    book_id: EntityId,
    payload: AuthorPayload,
    handler: BookRequestHandler = Depends(get_book_handler)
) -> BookResponse:
    return book_to_response(await handler.attach_author(book_id, payload))


HEALTH_ROUTES = [
    Route("GET", "/health", health_check, response_model=HealthResponse, summary="Health check"),
]

AUTHOR_ROUTES = [
    Route("GET", "/authors", list_authors,
          response_model=List[AuthorResponse], summary="List or search authors"),
    Route("GET", "/authors/{author_id}", get_author,
          response_model=AuthorResponse, summary="Get an author"),
    Route("POST", "/authors", create_author, status.HTTP_201_CREATED,
          response_model=AuthorResponse, summary="Create an author"),
    Route("PUT", "/authors/{author_id}", update_author,
          response_model=AuthorResponse, summary="Update an author"),
    Route("DELETE", "/authors/{author_id}", delete_author, status.HTTP_204_NO_CONTENT,
          summary="Delete an author"),
]

BOOK_ROUTES = [
    Route("GET", "/books", list_books,
          response_model=List[BookResponse], summary="List or search books"),
    Route("GET", "/authors/{author_id}/books", list_books_by_author,
          response_model=List[BookResponse], summary="List the books of an author"),
    Route("GET", "/books/{book_id}", get_book,
          response_model=BookResponse, summary="Get a book"),
    Route("POST", "/authors/{author_id}/books", create_book, status.HTTP_201_CREATED,
          response_model=BookResponse, summary="Create a book for an author"),
    Route("PUT", "/books/{book_id}", update_book,
          response_model=BookResponse, summary="Update a book"),
    Route("DELETE", "/books/{book_id}", delete_book, status.HTTP_204_NO_CONTENT,
          summary="Delete a book"),
    Route("PUT", "/books/{book_id}/authors", attach_author,
          response_model=BookResponse, summary="Attach an author to a book"),
]


def register_routes(app: FastAPI, authors_prefix: str = "", books_prefix: str = "/v1") -> None:
    """Install the routing tables on the application."""
    tables = [
        ("", "Health", HEALTH_ROUTES),
        (authors_prefix, "Authors", AUTHOR_ROUTES),
        (books_prefix, "Books", BOOK_ROUTES),
    ]
    for prefix, tag, routes in tables:
        for route in routes:
            app.add_api_route(
                prefix + route.path,
                route.endpoint,
                methods=[route.method],
                status_code=route.status_code,
                response_model=route.response_model,
                summary=route.summary,
                tags=[tag],
            )
