"""
Health check HTTP server for liveness and readiness probes.

/health additionally runs the ledger audit when a TokenLedger instance
is attached, and reports 503 if the supply invariant is broken.
"""

import sqlite3
from pathlib import Path
from typing import Any

from flask import Flask, jsonify

from token_ledger.kernel.logging import get_logger

logger = get_logger(__name__)

app = Flask(__name__)

# Set by initialize_health_server()
_db_path: Path | None = None
_ledger: Any = None  # TokenLedger instance for audit checks


def initialize_health_server(db_path: str | Path, ledger: Any = None) -> None:
    """
    Initialize the health server with a database path and optional ledger.

    Args:
        db_path: Path to SQLite database
        ledger: Optional TokenLedger instance for the audit section
    """
    global _db_path, _ledger
    _db_path = Path(db_path)
    _ledger = ledger
    logger.info("Health server initialized", db_path=str(_db_path))


@app.route("/health/live", methods=["GET"])
def liveness() -> tuple[Any, int]:
    """Liveness probe - the process is running."""
    return jsonify({"status": "alive", "service": "token-ledger"}), 200


@app.route("/health/ready", methods=["GET"])
def readiness() -> tuple[Any, int]:
    """
    Readiness probe - the event store can be queried.

    Returns:
        200 with the event count, or 503 with a reason
    """
    if _db_path is None:
        logger.error("Readiness check failed: DB path not initialized")
        return jsonify({"status": "not_ready", "reason": "database_path_not_initialized"}), 503

    if not _db_path.exists():
        logger.error("Readiness check failed: DB file does not exist", db_path=str(_db_path))
        return (
            jsonify(
                {
                    "status": "not_ready",
                    "reason": "database_file_not_found",
                    "db_path": str(_db_path),
                }
            ),
            503,
        )

    try:
        conn = sqlite3.connect(str(_db_path), timeout=1.0)
        try:
            event_count = conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]
        finally:
            conn.close()
    except sqlite3.OperationalError as e:
        logger.error("Readiness check failed: DB operational error", error=str(e))
        return (
            jsonify(
                {
                    "status": "not_ready",
                    "reason": "database_operational_error",
                    "error": str(e),
                }
            ),
            503,
        )

    return jsonify({"status": "ready", "database": "accessible", "event_count": event_count}), 200


@app.route("/health", methods=["GET"])
def detailed_health() -> tuple[Any, int]:
    """
    Detailed health check - database stats plus the ledger audit.

    Returns:
        200 when healthy, 503 when degraded
    """
    from token_ledger import __version__

    health_data: dict[str, Any] = {
        "status": "healthy",
        "service": "token-ledger",
        "version": __version__,
    }

    if _db_path and _db_path.exists():
        try:
            conn = sqlite3.connect(str(_db_path), timeout=1.0)
            try:
                event_count = conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]
                page_count = conn.execute("PRAGMA page_count").fetchone()[0]
                page_size = conn.execute("PRAGMA page_size").fetchone()[0]
            finally:
                conn.close()
            health_data["database"] = {
                "status": "healthy",
                "path": str(_db_path),
                "event_count": event_count,
                "size_mb": round((page_count * page_size) / (1024 * 1024), 2),
            }
        except sqlite3.Error as e:
            logger.error("Database health check failed", error=str(e))
            health_data["database"] = {"status": "unhealthy", "error": str(e)}
            health_data["status"] = "degraded"
    else:
        health_data["database"] = {"status": "not_initialized"}
        health_data["status"] = "degraded"

    if _ledger is not None:
        report = _ledger.audit()
        health_data["ledger"] = {
            "supply_consistent": report.supply_consistent,
            "total_supply": str(report.total_supply),
            "admin_count": report.admin_count,
            "paused": report.paused,
            "pending_proposals": len(report.pending_proposals),
            "window_utilization": round(report.window_utilization, 4),
            "logic_version": report.logic_version,
        }
        if not report.is_healthy:
            health_data["status"] = "degraded"

    status_code = 200 if health_data["status"] == "healthy" else 503
    return jsonify(health_data), status_code


def run_health_server(port: int = 8080, debug: bool = False) -> None:
    """
    Run the health check server.

    Args:
        port: Port to listen on (default: 8080)
        debug: Enable Flask debug mode (default: False)
    """
    logger.info("Starting health check server", port=port)
    app.run(host="0.0.0.0", port=port, debug=debug)
