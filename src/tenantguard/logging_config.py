"""Structured logging configuration using structlog.

Modules log through the standard library (``logging.getLogger(__name__)``);
structlog renders every record, adds the request context bound by the trace
middleware, and masks credentials before anything is written.
"""

import logging
import sys

import structlog

_SECRET_KEYS = frozenset({"authorization", "token", "bearer_token", "client_secret", "password"})
_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _mask_secrets(logger, method_name, event_dict):
    """Replace values of credential-looking keys with a fixed mask."""
    for key in list(event_dict):
        if key.lower() in _SECRET_KEYS and event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _mask_secrets,
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Route stdlib and structlog records through one structlog formatter.

    Args:
        log_level: debug/info/warning/error.
        json_output: JSON lines for log shipping; otherwise a console renderer.
    """
    processors = _shared_processors()
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=processors,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(trace_id: str, tenant_filter: str | None = None, session_id: str | None = None) -> None:
    """Attach trace, tenant and session ids to every log line in this context."""
    context = {"trace_id": trace_id}
    if tenant_filter:
        context["tenant"] = tenant_filter
    if session_id:
        context["session_id"] = session_id
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
