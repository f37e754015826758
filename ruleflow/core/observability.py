"""
Observability module for the rule flow compiler.

Provides:
- Structured logging with JSON format and correlation IDs
- Correlation ID propagation for one validation or export request
- Prometheus metrics for the validators and the compiler

Usage:
    from ruleflow.core.observability import (
        configure_structured_logging,
        set_correlation_id,
        metrics,
    )
"""

from __future__ import annotations

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from ruleflow.core.config import settings

if TYPE_CHECKING:
    from ruleflow.domain.results import ValidationResult

logger = logging.getLogger(__name__)

# ============================================================================
# Correlation
# ============================================================================

# Links all log lines emitted for one validation or export request
_correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Get the current correlation ID from context."""
    return _correlation_id_ctx.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id_ctx.set(correlation_id)


# ============================================================================
# Structured Logging Configuration
# ============================================================================

_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
        "message",
        "asctime",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs as JSON with standard fields:
    - timestamp: ISO 8601 format
    - level: Log level
    - logger: Logger name
    - message: Log message
    - correlation_id: Correlation ID (if set)
    - extra: Any additional context from logging.extra
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_entry["correlation_id"] = correlation_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        log_entry["file"] = record.pathname
        log_entry["line"] = record.lineno
        log_entry["function"] = record.funcName

        # Fields passed as logger.info("msg", extra={"key": "value"})
        extra_keys = {
            k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_KEYS
        }
        if extra_keys:
            log_entry["extra"] = extra_keys

        return json.dumps(log_entry, default=str)


def configure_structured_logging(level: str | None = None, structured: bool | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level (defaults to settings.app_log_level)
        structured: Emit JSON lines (defaults to settings.observability_structured_logs)
    """
    level = level or settings.app_log_level
    if structured is None:
        structured = settings.observability_structured_logs

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root_logger.addHandler(handler)


# ============================================================================
# Prometheus Metrics
# ============================================================================

# Custom registry to avoid clashing with a host application's metrics
_registry = CollectorRegistry()


class Metrics:
    """
    Centralized metrics collection.

    Metrics groups:
    - Validation: runs by scope and outcome, issues by type
    - Compiler: export outcome, duration, rule count, document size
    """

    def __init__(self, registry: CollectorRegistry) -> None:
        self.registry = registry

        # -------------------------------------------------------------------
        # Validation Metrics
        # -------------------------------------------------------------------

        self.validation_runs_total = Counter(
            "validation_runs_total",
            "Total validation runs",
            ["scope", "outcome"],
            registry=self.registry,
        )

        self.validation_issues_total = Counter(
            "validation_issues_total",
            "Total validation errors reported",
            ["type"],
            registry=self.registry,
        )

        # -------------------------------------------------------------------
        # Compiler Metrics
        # -------------------------------------------------------------------

        self.compiler_compilations_total = Counter(
            "compiler_compilations_total",
            "Total workflow exports",
            ["status"],
            registry=self.registry,
        )

        self.compiler_duration_seconds = Histogram(
            "compiler_duration_seconds",
            "Workflow export duration in seconds",
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
            registry=self.registry,
        )

        self.compiler_rules_count = Histogram(
            "compiler_rules_count",
            "Number of rules in an exported workflow",
            buckets=(1, 2, 5, 10, 25, 50, 100),
            registry=self.registry,
        )

        self.compiler_document_bytes = Histogram(
            "compiler_document_bytes",
            "Size of the exported workflow document in bytes",
            buckets=(256, 1024, 4096, 16384, 65536, 262144),
            registry=self.registry,
        )


# Global metrics instance
metrics = Metrics(_registry)


def record_validation(scope: str, result: ValidationResult) -> None:
    """
    Record one validation run.

    Metric failures are logged and ignored; they must never change a
    validation outcome.
    """
    if not settings.metrics_enabled:
        return
    try:
        outcome = "valid" if result.is_valid else "invalid"
        metrics.validation_runs_total.labels(scope=scope, outcome=outcome).inc()
        for issue in result.errors:
            metrics.validation_issues_total.labels(type=issue.type.value).inc()
    except Exception:
        logger.debug("Failed to record validation metrics", exc_info=True)


def record_compilation(status: str, duration: float, rule_count: int, document_bytes: int) -> None:
    """Record one workflow export. Same failure policy as record_validation."""
    if not settings.metrics_enabled:
        return
    try:
        metrics.compiler_compilations_total.labels(status=status).inc()
        metrics.compiler_duration_seconds.observe(duration)
        if status == "success":
            metrics.compiler_rules_count.observe(rule_count)
            metrics.compiler_document_bytes.observe(document_bytes)
    except Exception:
        logger.debug("Failed to record compiler metrics", exc_info=True)


def metrics_text() -> bytes:
    """Prometheus exposition text for the private registry."""
    return generate_latest(_registry)
