"""
Tests for health server

Tests Flask-based health check endpoints for liveness and readiness probes.

Fun fact: The concept of "health checks" in distributed systems was pioneered by Amazon
in the early 2000s when building their highly available retail platform. Today, every
cloud-native system uses similar patterns!
"""

from pathlib import Path

import pytest

from ubi_ledger.health_server import app, initialize_health_server, reset_health_server
from ubi_ledger.ledger import UBILedger
from ubi_ledger.metrics_server import build_parser


@pytest.fixture
def client():
    """Flask test client"""
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
    reset_health_server()


def test_liveness(client) -> None:
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.get_json() == {"status": "alive", "service": "ubi-ledger"}


def test_readiness_without_initialization(client) -> None:
    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.get_json()["reason"] == "database_path_not_initialized"


def test_readiness_missing_database(client, tmp_path: Path) -> None:
    initialize_health_server(tmp_path / "missing.db")

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.get_json()["reason"] == "database_file_not_found"


def test_readiness_with_ledger_database(client, ledger: UBILedger) -> None:
    ledger.approve("bob", 1, caller="alice")
    initialize_health_server(ledger.sqlite_path)

    response = client.get("/health/ready")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "ready"
    assert data["event_count"] == 1


def test_detailed_health_includes_ledger_stats(client, ledger: UBILedger) -> None:
    initialize_health_server(ledger.sqlite_path, ledger)

    response = client.get("/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["database"]["status"] == "healthy"
    assert data["ledger"]["symbol"] == "UBI"
    assert data["ledger"]["total_supply"] == "0"
    assert data["ledger"]["live_streams"] == 0


def test_detailed_health_degraded_without_database(client) -> None:
    response = client.get("/health")

    assert response.status_code == 503
    assert response.get_json()["status"] == "degraded"


def test_metrics_server_arguments() -> None:
    args = build_parser().parse_args(["--port", "9191", "--json-logs"])

    assert args.port == 9191
    assert args.json_logs is True
    assert args.log_level == "INFO"
