"""
Logging setup for the Drug Check Service.

Loggers come from ``get_logger``; keyword arguments on a log call become
structured ``fields`` on the record. Every record is tagged with the ID of
the HTTP request being served, when there is one.
"""
import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

SERVICE_NAME = "drug-check"

# Arguments Logger.log understands; anything else on a call is a field
_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request ID (generated when omitted) to the current context."""
    request_id = request_id or uuid.uuid4().hex[:8]
    _request_id.set(request_id)
    return request_id


class RequestIdFilter(logging.Filter):
    """Copies the current request ID onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


class ServiceLogger(logging.LoggerAdapter):
    """``logger.info("verify completed", overall_status_color="green")``"""

    def process(self, msg, kwargs):
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _LOGGING_KWARGS}
        extra = dict(kwargs.get("extra") or {})
        if fields:
            extra["fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> ServiceLogger:
    return ServiceLogger(logging.getLogger(name), {})


class JSONFormatter(logging.Formatter):
    """One JSON object per line; Japanese text is kept readable."""

    def __init__(self, service_name: str = SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": self.service_name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            entry["request_id"] = request_id
        fields = getattr(record, "fields", None)
        if fields:
            entry.update(fields)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: int | str = logging.INFO, use_json: bool = True) -> None:
    """Route all logging to stderr, as JSON lines or plain text."""
    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(RequestIdFilter())
    if use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"
        ))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for noisy in ("httpx", "httpcore", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def mask_ip(ip: str) -> str:
    """Keep the first two octets of an IPv4 address."""
    parts = ip.split(".")
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.xxx.xxx"
    return "xxx"


_http_logger = get_logger("http")


def log_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str] = None,
) -> None:
    """One line per served request; 5xx responses log at ERROR."""
    level = logging.ERROR if status_code >= 500 else logging.INFO
    _http_logger.log(
        level,
        f"{method} {path} {status_code}",
        status_code=status_code,
        duration_ms=round(duration_ms, 2),
        client_ip=mask_ip(client_ip) if client_ip else None,
    )
