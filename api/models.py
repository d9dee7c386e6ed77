"""
API models and schemas for the FastAPI application.

Request payloads are lenient: every field is optional so that the
request handlers decide which inputs are rejected and how. Integer
fields are bounded to what MongoDB stores; values of the wrong type or
out of that range are rendered as 400 by the application.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from library.models import MAX_STORED_INT, MIN_STORED_INT


class AuthorPayload(BaseModel):
    """Author request body."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(None, ge=MIN_STORED_INT, le=MAX_STORED_INT, description="Author identifier")
    full_name: Optional[str] = Field(None, alias="fullName", description="Full name of the author")


class AuthorResponse(BaseModel):
    """Author response model for API."""
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="Author identifier")
    full_name: Optional[str] = Field(None, alias="fullName", description="Full name of the author")


class BookPayload(BaseModel):
    """Book request body."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(None, ge=MIN_STORED_INT, le=MAX_STORED_INT, description="Book identifier")
    isbn: Optional[int] = Field(None, ge=MIN_STORED_INT, le=MAX_STORED_INT, description="ISBN, at least 12 digits")
    title: Optional[str] = Field(None, description="Book title")
    year: Optional[int] = Field(None, ge=MIN_STORED_INT, le=MAX_STORED_INT, description="Publication year")
    publisher: Optional[str] = Field(None, description="Publisher name")
    language: Optional[str] = Field(None, description="Language name, e.g. ENGLISH")
    authors: List[AuthorPayload] = Field(default_factory=list, description="Linked authors")


class BookResponse(BaseModel):
    """Book response model for API."""
    id: int = Field(..., description="Book identifier")
    isbn: Optional[int] = Field(None, description="ISBN")
    title: Optional[str] = Field(None, description="Book title")
    year: Optional[int] = Field(None, description="Publication year")
    publisher: Optional[str] = Field(None, description="Publisher name")
    language: Optional[str] = Field(None, description="Language name")
    authors: List[AuthorResponse] = Field(default_factory=list, description="Linked authors")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
