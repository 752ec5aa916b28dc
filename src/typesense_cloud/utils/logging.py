"""Structured logging utilities for the Typesense Cloud reconciler."""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

# Event keys whose values are secrets and must never be rendered.
SENSITIVE_KEYS = frozenset(
    [
        "api_key",
        "admin_key",
        "search_only_key",
        "key",
        "authorization",
        "x-typesense-cloud-management-api-key",
    ]
)

MASK = "***MASKED***"


def mask_secrets(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Structlog processor replacing secret values with a mask.

    Args:
        _logger: Wrapped logger (unused)
        _method_name: Log method name (unused)
        event_dict: Event dictionary

    Returns:
        Event dictionary with sensitive values masked
    """
    for key in list(event_dict.keys()):
        if key.lower() in SENSITIVE_KEYS and event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def setup_logging(level: str = "INFO", format: str = "json", output: str = "stderr") -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        output: Output destination (stdout or stderr)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    stream = sys.stdout if output == "stdout" else sys.stderr

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)
    # basicConfig leaves an already configured root logger alone.
    logging.root.setLevel(log_level)

    # Secrets are masked before any renderer sees the event.
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        mask_secrets,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if format == "json":
        processors += [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


def log_error(
    logger: structlog.BoundLogger,
    error: Exception,
    operation: str | None = None,
    **kwargs: Any,
) -> None:
    """Log an error with structured context.

    Reconciler errors contribute their category, cluster id and remote
    detail to the event.

    Args:
        logger: Logger instance
        error: Exception instance
        operation: Operation name (optional)
        **kwargs: Additional context fields
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **kwargs,
    }

    category = getattr(error, "category", None)
    if category:
        context["category"] = category
    cluster_id = getattr(error, "cluster_id", None)
    if cluster_id:
        context.setdefault("cluster_id", cluster_id)
    detail = getattr(error, "detail", None)
    if detail:
        context["detail"] = detail

    if operation:
        context["operation"] = operation

    logger.error("operation_failed", **context)
