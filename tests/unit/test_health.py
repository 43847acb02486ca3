"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from escrow.main import app

client = TestClient(app)

HEALTHY_DB = {"healthy": True, "pool_stats": {"pool_size": 2, "pool_available": 2}}


def _configured():
    return (
        patch("escrow.routes.health.settings.JWT_SECRET", "jwt-secret"),
        patch("escrow.routes.health.settings.CRON_SECRET", "cron-secret"),
        patch("escrow.routes.health.settings.MAIL_API_KEY", "re_test"),
    )


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_readyz_endpoint_all_healthy():
    jwt, cron, mail = _configured()
    with (
        patch("escrow.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
        jwt,
        cron,
        mail,
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["database"]["ok"] is True
    assert data["checks"]["database"]["pool_size"] == 2
    assert data["checks"]["configuration"]["ok"] is True
    assert isinstance(data["checks"]["database"]["latency_ms"], (int, float))


def test_readyz_endpoint_database_unhealthy():
    jwt, cron, mail = _configured()
    unhealthy = AsyncMock(return_value={"healthy": False, "error": "Connection failed"})
    with patch("escrow.routes.health.db_health_check", unhealthy), jwt, cron, mail:
        response = client.get("/readyz")

    # Should still return 200, but overall_ok should be False
    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Connection failed"


def test_readyz_endpoint_database_raises():
    jwt, cron, mail = _configured()
    with (
        patch("escrow.routes.health.db_health_check", AsyncMock(side_effect=RuntimeError("down"))),
        jwt,
        cron,
        mail,
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "RuntimeError: down"


def test_readyz_endpoint_missing_cron_secret():
    jwt, _, mail = _configured()
    with (
        patch("escrow.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
        patch("escrow.routes.health.settings.CRON_SECRET", None),
        jwt,
        mail,
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["configuration"]["issues"] == ["CRON_SECRET not set"]
