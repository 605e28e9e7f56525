"""Structured logging with request and model context for the CarbonFlow API.

Every record emitted while a request is handled carries the request ID and,
for ``/models/{id}/...`` routes, the model ID, so engine logs from a run can
be traced back to the model they were computed for.
"""

from __future__ import annotations

import json
import logging
import re
import time
import uuid
from contextvars import ContextVar
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
model_id_var: ContextVar[str] = ContextVar("model_id", default="")

_MODEL_PATH_RE = re.compile(r"/models/([0-9a-fA-F-]{36})(?:/|$)")

ACCESS_FIELDS: tuple[str, ...] = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_ip",
)


def model_id_from_path(path: str) -> str:
    """Model UUID addressed by *path*, or ``""`` for routes without one."""
    match = _MODEL_PATH_RE.search(path)
    return match.group(1).lower() if match else ""


class RequestContextFilter(logging.Filter):
    """Attach ``request_id`` and ``model_id`` to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        record.model_id = model_id_var.get("") or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with request context and access fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("request_id", "model_id"):
            value = getattr(record, key, "-")
            if value and value != "-":
                entry[key] = value

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)

        for key in ACCESS_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        return json.dumps(entry)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Set request context, echo ``X-Request-ID`` and write one access line."""

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        rid = request.headers.get("x-request-id", str(uuid.uuid4())[:8])
        path = str(request.url.path)
        rid_token = request_id_var.set(rid)
        model_token = model_id_var.set(model_id_from_path(path))
        try:
            start = time.perf_counter()
            response: Response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 1)

            response.headers["X-Request-ID"] = rid
            logging.getLogger("carbonflow.access").info(
                "%s %s -> %s (%.1fms)",
                request.method,
                path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                    "client_ip": request.client.host if request.client else "unknown",
                },
            )
            return response
        finally:
            model_id_var.reset(model_token)
            request_id_var.reset(rid_token)


def setup_logging(json_format: bool = False) -> None:
    """Configure the root logger; ``json_format=True`` for production."""
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    handler = logging.StreamHandler()
    handler.addFilter(RequestContextFilter())
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s [%(name)s] [%(request_id)s %(model_id)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root.handlers.clear()
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
