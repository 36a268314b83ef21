"""
Tests for the controller health endpoints
"""

# Third Party
from fastapi.testclient import TestClient

# Local
from myapp_operator.health import HealthServerThread, make_health_app


def test_health():
    client = TestClient(make_health_app())
    assert client.get("/health").json()["status"] == "healthy"


def test_ready():
    """Make sure readiness follows the ready check"""
    ready = [False]
    client = TestClient(make_health_app(ready_check=lambda: ready[0]))
    resp = client.get("/ready")
    assert resp.status_code == 503
    assert resp.json() == {"status": "not ready"}
    ready[0] = True
    assert client.get("/ready").json() == {"status": "ready"}


def test_metrics(prometheus_metrics):
    """Make sure the registry is rendered on /metrics"""
    prometheus_metrics.error("store_error", "ns1")
    client = TestClient(make_health_app(prometheus_metrics))
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert 'myapp_errors_total{error_type="store_error",namespace="ns1"} 1.0' in (
        resp.text
    )


def test_metrics_without_sink():
    assert TestClient(make_health_app()).get("/metrics").text == ""


def test_server_thread_stop():
    """Make sure stopping the thread asks uvicorn to exit"""
    thread = HealthServerThread(make_health_app(), port=18080)
    assert thread.server.config.port == 18080
    thread.stop_thread()
    assert thread.server.should_exit
    assert thread.should_stop()
