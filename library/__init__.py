"""
Library domain package.

This package contains:
- Author and Book entity models
- Error kinds raised by stores and request handlers
- MongoDB-backed author and book stores
"""

__version__ = "1.0.0"
