"""
Structured logging for the token ledger

Every façade operation logs through LogOperation with the operation's
command id bound as correlation id, so the handler, the event store and
the retry layer all tag their lines with the id stored on the events.

Console output for development, JSON lines for production. Logs go to
stderr; stdout belongs to the CLI.

Fun fact: Correlation IDs were popularized by Google's Dapper tracing
paper. Here the "trace" is one mint or one withdrawal.
"""

import contextvars
import logging
import os
import secrets
import sys
import time
from typing import Any

import structlog

from token_ledger.kernel.errors import LedgerError

SERVICE_NAME = "token-ledger"

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def generate_correlation_id() -> str:
    """128 random bits, URL-safe; used when no command is in flight"""
    return secrets.token_urlsafe(16)


def get_correlation_id() -> str:
    """Current correlation id, minting one on first use in this context"""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def add_service_name(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    log_level: str = "INFO",
) -> None:
    """
    Configure structlog on top of stdlib logging

    Args:
        json_output: JSON lines (production) instead of console rendering
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger().setLevel(level)

    # Flask's dev server logs every request at INFO
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        add_service_name,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.ExceptionRenderer(),
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def is_production() -> bool:
    """ENVIRONMENT=production hides stack traces from failure logs"""
    return os.getenv("ENVIRONMENT", "development").lower() == "production"


# Who moved how much stays out of operation logs; the event log is the record
REDACTED_FIELDS = {
    "caller",
    "account",
    "to",
    "owner",
    "spender",
    "amount",
    "private_key",
    "secret",
}


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """
    Example:
        >>> redact_context({"caller": "0xabc...", "operation": "mint"})
        {"caller": "***REDACTED***", "operation": "mint"}
    """
    return {k: "***REDACTED***" if k in REDACTED_FIELDS else v for k, v in context.items()}


class LogOperation:
    """
    Time one ledger operation and log its outcome

    completed -> info, rejected (any LedgerError) -> warning,
    anything else -> error with traceback outside production.
    The exception always propagates.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.context = redact_context(context)
        self.start_time: float = 0.0

    def __enter__(self) -> "LogOperation":
        self.start_time = time.perf_counter()
        self.logger.debug(f"{self.operation} started", operation=self.operation, **self.context)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        fields = {
            "operation": self.operation,
            "duration_ms": round((time.perf_counter() - self.start_time) * 1000, 2),
            **self.context,
        }

        if exc_type is None:
            self.logger.info(f"{self.operation} completed", **fields)
        elif issubclass(exc_type, LedgerError):
            self.logger.warning(
                f"{self.operation} rejected",
                error_type=exc_type.__name__,
                error=str(exc_val),
                **fields,
            )
        else:
            self.logger.error(
                f"{self.operation} failed", exc_info=not is_production(), **fields
            )
