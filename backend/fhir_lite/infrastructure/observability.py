"""Structured Logging — JSON formatter, request-id propagation and setup.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (request_id, resource_id, error_code, path) surfaced when present
    - request_id comes from the inbound X-Request-ID header or a fresh UUID, and is
      echoed on the response
    - JSON format in production, human-readable in development

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - ContextVar + logging.Filter for request_id: every logger picks it up without
      threading it through call signatures
    - setup_logging called once on startup via lifespan
    - Unhandled exceptions rendered inside the middleware: the catch-all handler runs
      outside it, after request_id_var has been reset
"""

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request

from fhir_lite.api.responses import FhirJSONResponse
from fhir_lite.core.operation_outcome import internal_error

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Stamp the current request id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("request_id", "resource_id", "error_code", "path"):
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s",
        ))
    handler.addFilter(RequestIdFilter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))


async def request_id_middleware(request: Request, call_next):
    """HTTP middleware: bind X-Request-ID for the duration of the request.

    Unhandled exceptions are rendered here as the generic 500 outcome, while the
    request id is still bound, so error responses carry X-Request-ID too.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"Unhandled exception on {request.url.path}: {e}",
            exc_info=True, extra={"path": request.url.path},
        )
        response = FhirJSONResponse(status_code=500, content=internal_error())
    finally:
        request_id_var.reset(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response
