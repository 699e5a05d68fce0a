# =============================================================================
# tests/test_health.py - Health Endpoint Tests
# =============================================================================
# Run with: pytest tests/test_health.py -v
# =============================================================================

from app.routers.health import readiness_checks


def test_health(make_client):
    body = make_client().get("/api/v1/health").json()
    assert body["status"] == "healthy"
    assert body["environment"] == "development"
    assert body["version"] == "1.0.0"


def test_live(make_client):
    body = make_client().get("/api/v1/health/live").json()
    assert body["status"] == "alive"
    assert "environment" not in body


def test_ready(make_client):
    body = make_client().get("/api/v1/health/ready").json()
    assert body["status"] == "ready"
    assert body["checks"] == {"database": "healthy", "storage": "healthy", "billing": "configured"}


def test_ready_degraded_when_database_fails(make_client, fake_db):
    fake_db.failures[("ambassadors", "select")] = RuntimeError("connection refused")

    body = make_client().get("/api/v1/health/ready").json()

    assert body["status"] == "degraded"
    assert body["checks"]["database"].startswith("unhealthy: connection refused")


def test_storage_failure_reason_is_trimmed(fake_clients, monkeypatch):
    def down():
        raise RuntimeError("x" * 200)

    monkeypatch.setattr(fake_clients.db.storage, "list_buckets", down)

    checks = readiness_checks(fake_clients)

    assert checks["database"] == "healthy"
    assert checks["storage"] == "unhealthy: " + "x" * 50
