"""
Basic application tests.

Validates that the FastAPI app starts correctly and the
health endpoint responds as expected.
"""

from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from app.interfaces.dca.dependencies import get_db_engine
from app.main import app

client = TestClient(app)


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_response_body(self, engine) -> None:
        """Health endpoint must return status, version and database fields."""
        app.dependency_overrides[get_db_engine] = lambda: engine
        try:
            response = client.get("/api/v1/health")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"] == "ok"
        assert "version" in body

    def test_health_reports_unreachable_database(self, tmp_path) -> None:
        """An unusable database degrades the status instead of failing."""
        missing = tmp_path / "missing" / "db.sqlite"
        broken = create_engine(f"sqlite:///{missing}")
        app.dependency_overrides[get_db_engine] = lambda: broken
        try:
            response = client.get("/api/v1/health")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["database"] == "unavailable"

    def test_docs_hidden_outside_debug(self) -> None:
        assert client.get("/docs").status_code == 404
