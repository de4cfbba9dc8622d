"""
Health endpoints for a UBI ledger process

    /health/live   the process answers
    /health/ready  the ledger database holds a committed state
    /health        database figures plus ledger stats, when a ledger is attached

Checks open their own short-lived SQLite connection, so they never touch
the ledger's in-memory state or its reentrancy guard.
"""

import sqlite3
from pathlib import Path
from typing import Any

from flask import Flask, jsonify

from ubi_ledger.kernel.logging import get_logger

logger = get_logger(__name__)

app = Flask(__name__)

SERVICE = "ubi-ledger"

_db_path: Path | None = None
_ledger: Any = None


def initialize_health_server(db_path: str | Path, ledger: Any = None) -> None:
    """Point the endpoints at a ledger database and, optionally, a live UBILedger"""
    global _db_path, _ledger
    _db_path = Path(db_path)
    _ledger = ledger
    logger.info("Health server initialized", db_path=str(_db_path))


def reset_health_server() -> None:
    global _db_path, _ledger
    _db_path = None
    _ledger = None


def _database_unavailable() -> str | None:
    """Reason the database cannot be checked, or None"""
    if _db_path is None:
        return "database_path_not_initialized"
    if not _db_path.exists():
        return "database_file_not_found"
    return None


def _inspect_database(path: Path) -> dict[str, int]:
    """Row counts and size of the ledger database"""
    conn = sqlite3.connect(str(path), timeout=1.0)
    try:
        return {
            "state_rows": conn.execute("SELECT COUNT(*) FROM ledger_state").fetchone()[0],
            "event_count": conn.execute("SELECT COUNT(*) FROM events").fetchone()[0],
            "size_bytes": conn.execute("PRAGMA page_count").fetchone()[0]
            * conn.execute("PRAGMA page_size").fetchone()[0],
        }
    finally:
        conn.close()


@app.route("/health/live", methods=["GET"])
def liveness() -> tuple[Any, int]:
    return jsonify({"status": "alive", "service": SERVICE}), 200


@app.route("/health/ready", methods=["GET"])
def readiness() -> tuple[Any, int]:
    """503 until a committed ledger state can be read"""
    reason = _database_unavailable()
    if reason is not None:
        logger.error("Readiness check failed", reason=reason, db_path=str(_db_path))
        return jsonify({"status": "not_ready", "reason": reason}), 503

    try:
        figures = _inspect_database(_db_path)
    except sqlite3.Error as e:
        logger.error("Readiness check failed", reason="database_error", error=str(e))
        return jsonify({"status": "not_ready", "reason": "database_error", "error": str(e)}), 503

    if figures["state_rows"] == 0:
        return jsonify({"status": "not_ready", "reason": "ledger_not_initialized"}), 503

    return (
        jsonify(
            {"status": "ready", "database": "accessible", "event_count": figures["event_count"]}
        ),
        200,
    )


@app.route("/health", methods=["GET"])
def detailed_health() -> tuple[Any, int]:
    body: dict[str, Any] = {"status": "healthy", "service": SERVICE}

    reason = _database_unavailable()
    if reason is not None:
        body["status"] = "degraded"
        body["database"] = {"status": "not_initialized", "reason": reason}
    else:
        try:
            figures = _inspect_database(_db_path)
            body["database"] = {
                "status": "healthy",
                "path": str(_db_path),
                "event_count": figures["event_count"],
                "size_mb": round(figures["size_bytes"] / (1024 * 1024), 2),
            }
        except sqlite3.Error as e:
            logger.error("Database health check failed", error=str(e))
            body["status"] = "degraded"
            body["database"] = {"status": "unhealthy", "error": str(e)}

    if _ledger is not None:
        stats = _ledger.stats()
        # Amounts at 18 decimals overflow JSON-safe integers
        stats["total_supply"] = str(stats["total_supply"])
        stats["accrued_per_second"] = str(stats["accrued_per_second"])
        body["ledger"] = stats

    return jsonify(body), 200 if body["status"] == "healthy" else 503


def run_health_server(port: int = 8080, debug: bool = False) -> None:
    logger.info("Starting health check server", port=port)
    app.run(host="0.0.0.0", port=port, debug=debug)
