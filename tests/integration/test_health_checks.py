"""
Integration tests for the health check endpoints.

- /health - Health check básico
- /health/live - Liveness probe para Kubernetes
- /health/ready - Readiness probe completo
"""

from fastapi.testclient import TestClient


class TestHealthChecks:
    def test_basic_health_endpoint(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "escrow-payments-api"}

    def test_liveness_probe(self, client: TestClient):
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_readiness_in_memory_mode(self, client: TestClient):
        response = client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["database"] == "in_memory"
        assert data["checks"]["stripe_circuit"] == "closed"
