"""
Pydantic models for the library domain.
Defines the Author and Book entities, their many-to-many link,
and the validation helpers shared by the request handlers.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

MIN_ISBN_DIGITS = 12

# Integers are stored as BSON int64
MIN_STORED_INT = -2 ** 63
MAX_STORED_INT = 2 ** 63 - 1


class Language(str, Enum):
    """Languages a book can be written in."""
    FRENCH = "FRENCH"
    ENGLISH = "ENGLISH"

    @classmethod
    def parse(cls, text: Optional[str]) -> Optional["Language"]:
        """
        Match a language name case-insensitively.

        Args:
            text: Language name as supplied by a client

        Returns:
            The matching Language, or None if nothing matches
        """
        if text is None:
            return None
        for language in cls:
            if language.name.lower() == text.lower():
                return language
        return None


class Author(BaseModel):
    """
    Author entity. Authors do not own books; `books` is the
    back-reference populated by the store.
    """
    id: Optional[int] = Field(None, description="Store-assigned identifier")
    full_name: Optional[str] = Field(None, description="Full name of the author")
    books: List["Book"] = Field(default_factory=list, description="Books linked to this author")


class Book(BaseModel):
    """Book entity with its linked authors."""
    id: Optional[int] = Field(None, description="Store-assigned identifier")
    isbn: Optional[int] = Field(None, description="ISBN as an integer")
    title: Optional[str] = Field(None, description="Book title")
    year: Optional[int] = Field(None, description="Publication year")
    publisher: Optional[str] = Field(None, description="Publisher name")
    language: Optional[Language] = Field(None, description="Language of the book")
    authors: List[Author] = Field(default_factory=list, description="Authors linked to this book")

    @property
    def author_ids(self) -> List[int]:
        """Identifiers of the linked authors, in link order."""
        return [author.id for author in self.authors if author.id is not None]

    def add_author(self, author: Author) -> bool:
        """
        Link an author to this book.

        Returns:
            True if the author was added, False if already linked
        """
        if author.id is not None and author.id in self.author_ids:
            return False
        self.authors.append(author)
        return True


Author.model_rebuild()


def is_blank(text: Optional[str]) -> bool:
    """True when text is missing or only whitespace."""
    return text is None or not text.strip()


def is_valid_isbn(isbn: Optional[int]) -> bool:
    """An ISBN must be positive, have at least 12 decimal digits and fit in a stored integer."""
    if isbn is None:
        return False
    return 0 < isbn <= MAX_STORED_INT and len(str(isbn)) >= MIN_ISBN_DIGITS


def current_year() -> int:
    return datetime.now().year


def is_valid_year(year: int) -> bool:
    """A year must lie between 0 and the current calendar year."""
    return 0 <= year <= current_year()
