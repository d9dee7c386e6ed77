"""
Tests for the FastAPI application.
"""

import pytest
from unittest.mock import AsyncMock

from api.main import create_app
from library.models import current_year


@pytest.fixture
def jane(client):
    """Create an author through the API."""
    response = client.post("/authors", json={"fullName": "Jane Doe"})
    assert response.status_code == 201
    return response.json()


def test_health_check_without_database(client):
    """Test health check endpoint when no database is attached."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database_status"] == "unavailable"
    assert "timestamp" in data
    assert "version" in data


def test_health_check_with_database(client):
    """Test health check endpoint with a healthy database."""
    database = AsyncMock()
    database.health_check.return_value = {"status": "healthy"}
    client.app.state.database = database

    response = client.get("/health")

    assert response.json()["status"] == "healthy"


def test_routing_table_paths():
    """Test that every documented route is installed."""
    app = create_app()
    routes = {(method, route.path) for route in app.routes for method in getattr(route, "methods", [])}

    assert ("GET", "/authors") in routes
    assert ("GET", "/authors/{author_id}") in routes
    assert ("POST", "/authors") in routes
    assert ("PUT", "/authors/{author_id}") in routes
    assert ("DELETE", "/authors/{author_id}") in routes
    assert ("GET", "/v1/books") in routes
    assert ("GET", "/v1/authors/{author_id}/books") in routes
    assert ("GET", "/v1/books/{book_id}") in routes
    assert ("POST", "/v1/authors/{author_id}/books") in routes
    assert ("PUT", "/v1/books/{book_id}") in routes
    assert ("DELETE", "/v1/books/{book_id}") in routes
    assert ("PUT", "/v1/books/{book_id}/authors") in routes


class TestAuthorEndpoints:
    """Test cases for the author endpoints."""

    def test_create_author(self, client):
        """Test creating an author."""
        response = client.post("/authors", json={"fullName": "Jane Doe"})

        assert response.status_code == 201
        assert response.json() == {"id": 1, "fullName": "Jane Doe"}

    def test_create_author_blank_name(self, client):
        """Test that a blank name yields 400."""
        response = client.post("/authors", json={"fullName": "  "})

        assert response.status_code == 400
        assert response.json()["status_code"] == 400
        assert client.get("/authors").json() == []

    def test_list_and_search_authors(self, client, jane):
        """Test listing and searching authors."""
        client.post("/authors", json={"fullName": "John Smith"})

        assert len(client.get("/authors").json()) == 2
        assert client.get("/authors", params={"q": "doe"}).json() == [jane]

    def test_get_author(self, client, jane):
        """Test reading an author back."""
        response = client.get(f"/authors/{jane['id']}")

        assert response.status_code == 200
        assert response.json() == jane

    def test_get_missing_author(self, client):
        """Test that a missing author yields 404."""
        response = client.get("/authors/1")

        assert response.status_code == 404
        assert "not found" in response.json()["error"]

    def test_update_author(self, client, jane):
        """Test updating an author."""
        response = client.put(f"/authors/{jane['id']}", json={"id": jane["id"], "fullName": "Jane Roe"})

        assert response.status_code == 200
        assert response.json()["fullName"] == "Jane Roe"

    def test_update_author_id_mismatch(self, client, jane):
        """Test that mismatched identifiers yield 404 and leave the author alone."""
        response = client.put(f"/authors/{jane['id']}", json={"id": 2, "fullName": "Jane Roe"})

        assert response.status_code == 404
        assert client.get(f"/authors/{jane['id']}").json()["fullName"] == "Jane Doe"

    def test_delete_author(self, client, jane):
        """Test deleting an author."""
        response = client.delete(f"/authors/{jane['id']}")

        assert response.status_code == 204
        assert client.get(f"/authors/{jane['id']}").status_code == 404

    def test_delete_missing_author(self, client):
        """Test that deleting a missing author yields 400."""
        assert client.delete("/authors/3").status_code == 400

    def test_create_author_mistyped_name(self, client):
        """Test that a name of the wrong type yields 400 with the error shape."""
        response = client.post("/authors", json={"fullName": 42})

        assert response.status_code == 400
        data = response.json()
        assert data["status_code"] == 400
        assert "fullName" in data["detail"]
        assert client.get("/authors").json() == []

    def test_create_author_unreadable_body(self, client):
        """Test that a body that is not a JSON object yields 400."""
        response = client.post("/authors", content="not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400

    def test_get_author_unstorable_id(self, client):
        """Test that an identifier beyond the stored integer range yields 400."""
        assert client.get(f"/authors/{10 ** 20}").status_code == 400


class TestBookEndpoints:
    """Test cases for the book endpoints."""

    def test_create_book(self, client, jane, sample_book_payload):
        """Test creating a book for an author."""
        response = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload)

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == 1
        assert data["title"] == "Book A"
        assert data["isbn"] == 123456789012
        assert data["language"] == "ENGLISH"
        assert data["authors"] == [jane]

    def test_create_book_short_isbn(self, client, jane):
        """Test that a short ISBN yields 400 and creates nothing."""
        response = client.post(f"/v1/authors/{jane['id']}/books", json={"isbn": 123})

        assert response.status_code == 400
        assert client.get("/v1/books").json() == []

    def test_create_book_future_year(self, client, jane, sample_book_payload):
        """Test that a future year yields 400."""
        sample_book_payload["year"] = current_year() + 1

        response = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload)

        assert response.status_code == 400

    def test_create_book_unknown_language(self, client, jane, sample_book_payload):
        """Test that an unknown language yields 400."""
        sample_book_payload["language"] = "esperanto"

        response = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload)

        assert response.status_code == 400

    def test_create_book_missing_author(self, client, sample_book_payload):
        """Test that an unknown author yields 404."""
        response = client.post("/v1/authors/9/books", json=sample_book_payload)

        assert response.status_code == 404

    def test_list_books_by_author(self, client, jane, sample_book_payload):
        """Test listing the books of an author."""
        client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload)

        response = client.get(f"/v1/authors/{jane['id']}/books")

        assert response.status_code == 200
        assert [book["title"] for book in response.json()] == ["Book A"]
        assert client.get("/v1/authors/9/books").status_code == 404

    def test_search_books(self, client, jane, sample_book_payload):
        """Test searching books by title."""
        client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload)

        assert len(client.get("/v1/books", params={"q": "book"}).json()) == 1
        assert client.get("/v1/books", params={"q": "nothing"}).json() == []

    def test_get_book(self, client, jane, sample_book_payload):
        """Test reading a book."""
        created = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload).json()

        assert client.get(f"/v1/books/{created['id']}").json() == created
        assert client.get("/v1/books/99").status_code == 404

    def test_update_book(self, client, jane, sample_book_payload):
        """Test updating a book."""
        created = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload).json()

        response = client.put(f"/v1/books/{created['id']}", json={
            "id": created["id"], "title": "Book B", "isbn": 987654321098, "year": 2001
        })

        assert response.status_code == 200
        assert response.json()["title"] == "Book B"

    def test_update_book_id_mismatch(self, client):
        """Test that mismatched identifiers yield 400 regardless of the body."""
        response = client.put("/v1/books/5", json={"id": 6, "title": "Valid", "isbn": 123456789012})

        assert response.status_code == 400

    def test_update_book_id_mismatch_mistyped_body(self, client):
        """Test that a mismatched and mistyped body yields 400."""
        response = client.put("/v1/books/5", json={"id": 6, "isbn": "abc"})

        assert response.status_code == 400

    def test_create_book_unstorable_isbn(self, client, jane, sample_book_payload):
        """Test that an ISBN beyond the stored integer range yields 400 and creates nothing."""
        sample_book_payload["isbn"] = 10 ** 20

        response = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload)

        assert response.status_code == 400
        assert client.get("/v1/books").json() == []

    def test_update_book_unstorable_isbn(self, client, jane, sample_book_payload):
        """Test that an update with an unstorable ISBN yields 400 and keeps the book."""
        created = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload).json()

        response = client.put(f"/v1/books/{created['id']}", json={"id": created["id"], "isbn": 10 ** 20})

        assert response.status_code == 400
        assert client.get(f"/v1/books/{created['id']}").json()["isbn"] == 123456789012

    def test_delete_book(self, client, jane, sample_book_payload):
        """Test deleting a book."""
        created = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload).json()

        assert client.delete(f"/v1/books/{created['id']}").status_code == 204
        assert client.delete(f"/v1/books/{created['id']}").status_code == 400

    def test_attach_author(self, client, jane, sample_book_payload):
        """Test attaching a second author to a book."""
        created = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload).json()
        john = client.post("/authors", json={"fullName": "John Smith"}).json()

        response = client.put(f"/v1/books/{created['id']}/authors", json=john)

        assert response.status_code == 200
        assert response.json()["authors"] == [jane, john]

    def test_attach_unknown_author(self, client, jane, sample_book_payload):
        """Test that attaching a missing author yields 404."""
        created = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload).json()

        response = client.put(f"/v1/books/{created['id']}/authors", json={"id": 50, "fullName": "Ghost"})

        assert response.status_code == 404


class TestScenarios:
    """End-to-end scenarios across authors and books."""

    def test_deleting_sole_author_keeps_book(self, client, sample_book_payload):
        """Test that a book whose only author is deleted survives."""
        author = client.post("/authors", json={"fullName": "Jane Doe"}).json()
        assert author == {"id": 1, "fullName": "Jane Doe"}
        book = client.post("/v1/authors/1/books", json=sample_book_payload).json()
        assert book["authors"] == [author]

        assert client.delete("/authors/1").status_code == 204

        assert client.get("/authors/1").status_code == 404
        survivor = client.get(f"/v1/books/{book['id']}")
        assert survivor.status_code == 200
        assert survivor.json()["authors"] == []

    def test_deleting_co_author_removes_book(self, client, sample_book_payload):
        """Test that a co-authored book is deleted with one of its authors."""
        jane = client.post("/authors", json={"fullName": "Jane Doe"}).json()
        john = client.post("/authors", json={"fullName": "John Smith"}).json()
        book = client.post(f"/v1/authors/{jane['id']}/books", json=sample_book_payload).json()
        client.put(f"/v1/books/{book['id']}/authors", json={"id": john["id"]})

        assert client.delete(f"/authors/{john['id']}").status_code == 204

        assert client.get(f"/v1/books/{book['id']}").status_code == 404
        assert client.get(f"/authors/{jane['id']}").status_code == 200
