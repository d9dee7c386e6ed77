"""
FastAPI main application for the Library API.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from library.database import LibraryDatabase
from library.errors import LibraryError
from utilities.config import config
from utilities.logger import setup_logging

from api.authors import AuthorRequestHandler
from api.books import BookRequestHandler
from api.config import config as api_config
from api.models import ErrorResponse
from api.routes import register_routes

logger = structlog.get_logger(__name__)


def build_handlers(database: LibraryDatabase):
    """Wire the request handlers to the stores of a connected database."""
    author_handler = AuthorRequestHandler(database.authors, database.books)
    book_handler = BookRequestHandler(database.books, author_handler)
    return author_handler, book_handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Library API")

    database = LibraryDatabase(config.mongodb_url, config.mongodb_database)
    try:
        await database.connect()
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    app.state.database = database
    app.state.author_handler, app.state.book_handler = build_handlers(database)

    yield

    logger.info("Shutting down Library API")
    await database.disconnect()


async def library_error_handler(request: Request, exc: LibraryError):
    """Render library errors with their status."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message,
            status_code=exc.status_code
        ).model_dump()
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            status_code=exc.status_code
        ).model_dump(),
        headers=exc.headers
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render unreadable or out-of-range request input as a client error."""
    errors = exc.errors()
    logger.info("Rejected malformed request", path=request.url.path, errors=len(errors))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="Invalid request",
            detail="; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in errors
            ),
            status_code=status.HTTP_400_BAD_REQUEST
        ).model_dump()
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if api_config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).model_dump()
    )


def create_app() -> FastAPI:
    """Build the Library API application."""
    app = FastAPI(
        title=api_config.api_title,
        description=api_config.api_description,
        version=api_config.api_version,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=api_config.cors_allow_credentials,
        allow_methods=api_config.cors_allow_methods,
        allow_headers=api_config.cors_allow_headers,
    )

    app.add_exception_handler(LibraryError, library_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    register_routes(app, api_config.authors_prefix, api_config.books_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=config.log_level.lower()
    )
