"""JSON logging with request correlation and token redaction."""

from __future__ import annotations

import json
import logging
import re
import sys
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, TextIO
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# ``extra=`` keys rendered as top-level JSON fields
AUTH_EXTRA_KEYS = ("endpoint", "elapsed_ms", "guard", "reason", "user_id")

# header.payload.signature, each part base64url; JWT headers start with ``{"``
_JWT_RE = re.compile(r"eyJ[\w-]+\.[\w-]+\.[\w-]*")
REDACTED = "[redacted-jwt]"


def redact(text: str) -> str:
    """Replace compact JWS strings in ``text``."""
    return _JWT_RE.sub(REDACTED, text)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    :param extra_keys: Record attributes copied into the payload when set.
    """

    def __init__(self, extra_keys: Iterable[str] = AUTH_EXTRA_KEYS) -> None:
        super().__init__()
        self.extra_keys = tuple(extra_keys)

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": redact(record.getMessage()),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = redact(self.formatException(record.exc_info))
        payload.update(
            {key: getattr(record, key) for key in self.extra_keys if hasattr(record, key)}
        )
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on every record (``None`` outside requests)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def ensure_request_id() -> str:
    """
    Return the request identifier, creating it on first use.

    Taken from the first correlation header present, else a fresh UUID4.
    Outside a request every call returns a new UUID4.
    """
    if not has_request_context():
        return str(uuid4())
    request_id = g.get("request_id")
    if request_id is None:
        request_id = next(
            (request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)),
            str(uuid4()),
        )
        g.request_id = request_id
    return request_id


def _resolve_level(level: str | int) -> int | str:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else level.upper()


def configure_logging(level: str | int = "INFO", *, stream: TextIO | None = None) -> logging.Handler:
    """
    Replace the root handlers with one JSON handler.

    :param level: Level name or number for the root logger.
    :param stream: Output stream; stdout by default.
    :returns: The installed handler.
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))
    return handler


def init_app(app: Flask) -> None:
    """Seed a request id per request and echo it back in the response."""

    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["configure_logging", "ensure_request_id", "init_app", "redact"]
