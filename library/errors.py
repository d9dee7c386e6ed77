"""
Error kinds raised by the library stores and request handlers.
Each error carries the HTTP status the API reports it with.
"""

from typing import Optional


class LibraryError(Exception):
    """Base class for library errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class EntityNotFoundError(LibraryError):
    """A required author or book does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id, message: Optional[str] = None):
        super().__init__(message or f"{entity} with ID '{entity_id}' not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidInputError(LibraryError):
    """A request failed validation or referential checks."""

    status_code = 400
