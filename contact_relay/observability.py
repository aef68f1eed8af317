from __future__ import annotations

import json
import logging
import os
import time
import uuid
from typing import Any, Mapping

LOGGER_NAME = "contact_relay"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def configure_logging(level_name: str | None = None) -> None:
    """Configure application logging.

    Emits **JSON lines** on a dedicated logger so hosted log pipelines parse
    the fields, and so Uvicorn's logging config doesn't clobber the format.
    """

    name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper().strip()
    level = getattr(logging, name, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))

    # Replace handlers so repeated imports don't duplicate logs.
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False


def log_event(event: str, *, severity: str = "INFO", exc_info: bool = False, **fields: Any) -> None:
    """Emit one structured application event."""

    logger = logging.getLogger(LOGGER_NAME)
    payload: dict[str, Any] = {"severity": severity, "event": event}
    payload.update({k: v for k, v in fields.items() if v is not None})
    logger.log(
        _LEVELS.get(severity, logging.INFO),
        json.dumps(payload, ensure_ascii=False, default=str),
        exc_info=exc_info,
    )


def request_id_from_headers(headers: Mapping[str, str]) -> str:
    """Determine a request ID.

    Preference order:
      1) X-Request-Id (reverse proxies)
      2) X-Correlation-Id (some enterprise setups)
      3) generated UUID4
    """

    rid = headers.get("x-request-id") or headers.get("x-correlation-id")
    return (rid.strip() if rid else "") or str(uuid.uuid4())


def client_address_from_headers(headers: Mapping[str, str]) -> str:
    """Source address used as the rate-limit key.

    First hop of X-Forwarded-For, then X-Real-IP, then the literal "unknown".
    The socket peer is deliberately ignored: behind the hosting proxy it is
    always the proxy.
    """

    xff = headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first
    real = (headers.get("x-real-ip") or "").strip()
    return real or "unknown"


def log_http_request(
    *,
    request_id: str,
    method: str,
    path: str,
    status: int,
    latency_ms: float,
    remote_ip: str,
    user_agent: str,
    error_type: str | None = None,
    severity: str = "INFO",
) -> None:
    """Emit a Cloud Logging-friendly structured request log."""

    logger = logging.getLogger(LOGGER_NAME)

    payload: dict[str, Any] = {
        "severity": severity,
        "message": "http_request",
        "service": os.getenv("K_SERVICE", "contact-relay"),
        "request_id": request_id,
        "path": path,
        "latency_ms": round(latency_ms, 2),
        "httpRequest": {
            "requestMethod": method,
            "status": status,
            # Cloud Logging expects a duration string, e.g. "0.123s".
            "latency": f"{latency_ms / 1000.0:.3f}s",
            "remoteIp": remote_ip,
            "userAgent": user_agent,
        },
    }
    if error_type:
        payload["error_type"] = error_type

    logger.log(_LEVELS.get(severity, logging.INFO), json.dumps(payload, ensure_ascii=False))


class Timer:
    """Tiny helper for timing blocks."""

    def __init__(self) -> None:
        self._t0 = time.perf_counter()

    def ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000.0
