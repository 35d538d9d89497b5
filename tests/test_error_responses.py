"""
Tests for the error body shape on unexpected failures.
"""

import pytest
from fastapi.testclient import TestClient

from app.config.database import get_db
from app.main import app


@pytest.fixture
def broken_client():
    """Client whose database dependency fails with a non-domain error."""
    def broken_db():
        raise RuntimeError("connection pool exhausted")

    app.dependency_overrides[get_db] = broken_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestUnhandledErrors:
    def test_unexpected_error_returns_json_500(self, broken_client, auth_headers):
        response = broken_client.get("/marcas", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Error interno del servidor"}

    def test_internals_are_not_leaked(self, broken_client, auth_headers):
        response = broken_client.get("/marcas", headers=auth_headers)

        assert "pool" not in response.text

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/no-existe")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
