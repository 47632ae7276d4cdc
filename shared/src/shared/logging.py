"""Structured logging with request_id/trace_id correlation and secret masking."""
import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

REQUEST_ID_HEADER = "X-Request-ID"
TRACE_ID_HEADER = "X-Trace-ID"

SECRET_KEYS = frozenset({"authorization", "api_key", "openai_key", "dalle_key", "yandex_key"})

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def get_request_id() -> str:
    return request_id_var.get() or ""


def get_trace_id() -> str:
    return trace_id_var.get() or ""


def set_request_context(request_id: str | None = None, trace_id: str | None = None) -> None:
    request_id_var.set(request_id or str(uuid.uuid4()))
    trace_id_var.set(trace_id or request_id_var.get() or str(uuid.uuid4()))


def clear_request_context() -> None:
    request_id_var.set("")
    trace_id_var.set("")


def correlation_headers() -> dict[str, str]:
    """Headers that carry the current request/trace ids to the next hop."""
    out: dict[str, str] = {}
    rid = get_request_id()
    tid = get_trace_id()
    if rid:
        out[REQUEST_ID_HEADER] = rid
    if tid:
        out[TRACE_ID_HEADER] = tid
    return out


def mask_secret(value: str | None) -> str:
    """'Api-Key abcdef' -> 'Api-Key ***'; empty stays 'missing'."""
    if not value:
        return "missing"
    scheme, _, rest = value.partition(" ")
    return f"{scheme} ***" if rest else "***"


def add_request_context(
    logger: Any,
    method: str,
    event: dict[str, Any],
) -> dict[str, Any]:
    """Processor to inject request_id and trace_id into log events."""
    rid = get_request_id()
    tid = get_trace_id()
    if rid:
        event.setdefault("request_id", rid)
    if tid:
        event.setdefault("trace_id", tid)
    return event


def mask_secrets(
    logger: Any,
    method: str,
    event: dict[str, Any],
) -> dict[str, Any]:
    """Processor that masks credential-looking keys, including inside `headers`."""
    for key in list(event):
        if key.lower() in SECRET_KEYS and isinstance(event[key], str):
            event[key] = mask_secret(event[key])
    headers = event.get("headers")
    if isinstance(headers, dict):
        event["headers"] = {
            k: mask_secret(v) if k.lower() in SECRET_KEYS else v for k, v in headers.items()
        }
    return event


def configure_logging(json_logs: bool = True, level: str = "INFO") -> None:
    """Configure structlog for JSON output and request correlation."""
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        add_request_context,
        mask_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
