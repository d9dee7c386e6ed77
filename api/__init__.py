"""
FastAPI RESTful API for the Library service.

This package provides:
- Author listing, search, retrieval, creation, update and deletion
- Book listing, search, retrieval, creation, update and deletion
- Linking authors to books
- Health reporting
"""
