"""
Tests for health check endpoints.
"""

from contextlib import asynccontextmanager

import pytest
from unittest.mock import AsyncMock, MagicMock, Mock, patch
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.cache import MemoryCache, RedisCache
from app.deps import get_cache
from app.main import create_app
from app.routes.health import check_cache_health, check_database_health


def client_with_cache(cache):
    app = create_app()
    app.dependency_overrides[get_cache] = lambda: cache
    return TestClient(app)


def fake_session(db):
    @asynccontextmanager
    async def session():
        yield db
    return session


class TestHealthEndpoints:
    """Test health check endpoints."""

    @pytest.fixture
    def client(self):
        return client_with_cache(MemoryCache())

    def test_root_health_check_healthy(self, client):
        """Test root health endpoint when all services are healthy."""
        with patch("app.routes.health.check_database_health", new_callable=AsyncMock) as mock_db, \
             patch("app.routes.health.check_cache_health", new_callable=AsyncMock) as mock_cache:

            mock_db.return_value = {"status": "ok"}
            mock_cache.return_value = {"status": "ok"}

            response = client.get("/health/")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "ok"
            assert data["db"]["status"] == "ok"
            assert data["cache"]["status"] == "ok"
            assert "version" in data
            assert "timestamp" in data

    def test_root_health_check_db_down(self, client):
        """Test health endpoint when database is down."""
        with patch("app.routes.health.check_database_health", new_callable=AsyncMock) as mock_db, \
             patch("app.routes.health.check_cache_health", new_callable=AsyncMock) as mock_cache:

            mock_db.return_value = {"status": "down", "error": "Connection failed"}
            mock_cache.return_value = {"status": "ok"}

            data = client.get("/health/").json()

            assert data["status"] == "down"
            assert "error" in data["db"]

    def test_root_health_check_cache_down(self, client):
        """Cache down is degraded, not down: reads fall back to the database."""
        with patch("app.routes.health.check_database_health", new_callable=AsyncMock) as mock_db, \
             patch("app.routes.health.check_cache_health", new_callable=AsyncMock) as mock_cache:

            mock_db.return_value = {"status": "ok"}
            mock_cache.return_value = {"status": "down", "error": "Cache ping failed"}

            data = client.get("/health/").json()

            assert data["status"] == "degraded"
            assert data["cache"]["status"] == "down"

    def test_root_health_check_cache_disabled(self):
        with patch("app.routes.health.check_database_health", new_callable=AsyncMock) as mock_db:
            mock_db.return_value = {"status": "ok"}

            data = client_with_cache(RedisCache(enabled=False)).get("/health/").json()

            assert data["status"] == "ok"
            assert data["cache"]["status"] == "disabled"

    def test_database_health_detailed(self, client):
        """Test detailed database health check."""
        db = Mock()
        results = []
        for count in (100, 50, 200, 30, 10):
            result = Mock()
            result.scalar.return_value = count
            results.append(result)
        db.execute = AsyncMock(side_effect=results)

        with patch("app.routes.health.check_database_health", new_callable=AsyncMock) as mock_check, \
             patch("app.routes.health.get_session", fake_session(db)):
            mock_check.return_value = {"status": "ok"}

            response = client.get("/health/db")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "ok"
            assert data["tables"] == {
                "users": 100, "posts": 50, "comments": 200, "post_likes": 30, "comment_likes": 10,
            }

    def test_database_health_connection_error(self, client):
        with patch("app.routes.health.check_database_health", new_callable=AsyncMock) as mock_check:
            mock_check.return_value = {"status": "down", "error": "Connection failed"}

            data = client.get("/health/db").json()

            assert data["status"] == "down"
            assert "tables" not in data

    def test_cache_health_operations(self, client):
        data = client.get("/health/cache").json()

        assert data["status"] == "ok"
        assert data["operations"] == {"set": True, "get": True, "delete": True}

    def test_cache_health_disabled(self):
        data = client_with_cache(RedisCache(enabled=False)).get("/health/cache").json()

        assert data["status"] == "disabled"
        assert "operations" not in data


class TestHealthChecks:
    async def test_database_check_reports_errors(self):
        db = Mock()
        db.execute = AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("refused")))

        with patch("app.routes.health.get_session", fake_session(db)):
            result = await check_database_health()

        assert result["status"] == "down"
        assert "Database error" in result["error"]

    async def test_cache_check_ping_failure(self):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=ConnectionRefusedError("refused"))

        result = await check_cache_health(RedisCache(enabled=True, client=client))

        assert result == {"status": "down", "error": "Cache ping failed"}

    async def test_cache_check_ok(self):
        assert await check_cache_health(MemoryCache()) == {"status": "ok"}
