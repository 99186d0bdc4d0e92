"""
Structured logging for the alert clustering service.

Every event carries the service metadata and, inside an HTTP request, the
request and trace ids. Alert payloads are raw event data from upstream
detectors and can be large or hold customer data; log calls that pass one
as ``data=`` or ``payload=`` get a short summary instead of the contents.

JSON rendering is for production, console rendering for development.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, Processor

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)

PAYLOAD_FIELDS = frozenset({"data", "payload", "alert_data"})
MAX_PAYLOAD_PREVIEW = 64
MAX_PAYLOAD_KEYS = 5


def add_request_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach request_id and trace_id when logging inside a request."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    trace_id = trace_id_var.get()
    if trace_id:
        event_dict["trace_id"] = trace_id

    return event_dict


def add_service_metadata(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach service, version and environment from LOGGING_* settings."""
    # Settings are read lazily so that tests can override the environment first
    from alertcluster.config import get_settings

    settings = get_settings()
    event_dict["service"] = settings.logging.service_name
    event_dict["version"] = settings.logging.service_version
    event_dict["environment"] = settings.logging.environment
    return event_dict


def _summarize_payload(value: Any) -> Any:
    if isinstance(value, dict):
        keys = sorted(str(k) for k in value)
        shown = ", ".join(keys[:MAX_PAYLOAD_KEYS])
        if len(keys) > MAX_PAYLOAD_KEYS:
            shown += ", ..."
        return f"<payload: {len(keys)} keys [{shown}]>"
    if isinstance(value, str) and len(value) > MAX_PAYLOAD_PREVIEW:
        return f"{value[:MAX_PAYLOAD_PREVIEW]}... <{len(value)} chars>"
    return value


def summarize_alert_payloads(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Replace alert payload fields with a summary.

    Dict payloads are reduced to their key count and first keys (sorted);
    long string payloads are cut to a preview with the original length.
    """
    for key in PAYLOAD_FIELDS & event_dict.keys():
        event_dict[key] = _summarize_payload(event_dict[key])
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    colorized: bool = False,
) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines when True, console rendering otherwise
        colorized: Colorize console output

    A JSON event looks like:
        {"event": "dbscan completed", "alerts": 250, "eps": 0.3,
         "latency_ms": 45.2, "request_id": "req_...", "service": "alertcluster",
         "level": "info", "timestamp": "2026-01-15T10:30:45.123456Z"}
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_context,
        add_service_metadata,
        summarize_alert_payloads,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colorized)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def get_request_id() -> str | None:
    return request_id_var.get()


def get_trace_id() -> str | None:
    return trace_id_var.get()


class RequestContext:
    """
    Bind request_id/trace_id for the duration of a request.

    Ids are generated when the caller has none (no inbound header).
    """

    def __init__(self, trace_id: str | None = None, request_id: str | None = None):
        self.request_id = request_id or f"req_{uuid.uuid4().hex[:16]}"
        self.trace_id = trace_id or f"trace_{uuid.uuid4().hex[:16]}"
        self._tokens = ()

    def __enter__(self):
        self._tokens = (
            request_id_var.set(self.request_id),
            trace_id_var.set(self.trace_id),
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        request_token, trace_token = self._tokens
        request_id_var.reset(request_token)
        trace_id_var.reset(trace_token)


class OperationContext:
    """
    Time a unit of work and log its outcome.

    ``duration_seconds`` is set on exit so callers can feed it to metrics:

        with OperationContext("dbscan", alerts=250, eps=0.3) as op:
            labels = run()
        track_clustering_run(duration_seconds=op.duration_seconds, ...)
    """

    def __init__(self, operation: str, **fields: Any):
        self.operation = operation
        self.logger = get_logger(f"operation.{operation}").bind(**fields)
        self.duration_seconds = 0.0
        self._started = 0.0

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.debug(f"{self.operation} started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_seconds = time.perf_counter() - self._started
        latency_ms = round(self.duration_seconds * 1000, 2)

        if exc_type is None:
            self.logger.info(f"{self.operation} completed", latency_ms=latency_ms)
        else:
            self.logger.error(
                f"{self.operation} failed",
                latency_ms=latency_ms,
                exception_type=exc_type.__name__,
                exc_info=(exc_type, exc_val, exc_tb),
            )
