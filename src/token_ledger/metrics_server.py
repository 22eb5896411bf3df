"""
Prometheus metrics server for the token ledger.

Exposes the ledger metrics at /metrics. With --db, the server also loads
the ledger and re-runs the audit every --interval seconds so the supply,
window and proposal gauges follow the event log.

Usage:
    python -m token_ledger.metrics_server --port 9090 --db ledger.db
"""

import argparse
import time

from token_ledger.kernel.logging import configure_logging, get_logger
from token_ledger.kernel.metrics import start_metrics_server

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Start the Prometheus metrics server."""
    parser = argparse.ArgumentParser(description="Token Ledger Metrics Server")
    parser.add_argument("--port", type=int, default=9090, help="Port to listen on (default: 9090)")
    parser.add_argument("--db", type=str, default=None, help="Ledger database to audit")
    parser.add_argument(
        "--interval",
        type=float,
        default=15.0,
        help="Seconds between audits when --db is given (default: 15)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs in JSON format (default: False)",
    )

    args = parser.parse_args(argv)
    configure_logging(json_output=args.json_logs, log_level=args.log_level)

    logger.info(
        "Starting Prometheus metrics server",
        port=args.port,
        endpoint=f"http://0.0.0.0:{args.port}/metrics",
    )
    start_metrics_server(port=args.port)

    try:
        if args.db:
            from token_ledger.ledger import TokenLedger

            while True:
                # Reopen each round so commits from other processes are seen
                report = TokenLedger(args.db).audit()
                logger.debug("Ledger audited", summary=report.summary())
                time.sleep(args.interval)
        else:
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down metrics server")


if __name__ == "__main__":
    main()
