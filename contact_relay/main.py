from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from .config import Settings, settings
from .handler import SubmissionHandler
from .observability import (
    LOGGER_NAME,
    Timer,
    client_address_from_headers,
    configure_logging,
    log_event,
    log_http_request,
    request_id_from_headers,
)
from .ratelimit import FixedWindowRateLimiter
from .relay import ResendRelay

# The handler owns the method check so every verb gets the same JSON 405.
CONTACT_PATH = "/api/send-email"
_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

_FORM_TYPES = {"application/x-www-form-urlencoded", "multipart/form-data"}


def build_handler(s: Settings = settings) -> SubmissionHandler:
    limiter = FixedWindowRateLimiter(
        window_s=s.rate_limit_window_s,
        max_requests=s.rate_limit_max_requests,
        sweep_every=s.rate_limit_sweep_every,
    )
    relay = ResendRelay(s.relay_api_key, api_url=s.relay_api_url, timeout_s=s.relay_timeout_s)
    return SubmissionHandler(
        relay,
        limiter,
        sender=s.mail_from,
        to=s.mail_to,
        min_submit_s=s.min_submit_s,
    )


_handler = build_handler()


def get_handler() -> SubmissionHandler:
    return _handler


@asynccontextmanager
async def lifespan(_: FastAPI):
    if not settings.relay_configured:
        log_event("config.relay_key_missing", severity="WARNING", hint="set RESEND_API_KEY")
    yield


app = FastAPI(
    title="Contact Relay",
    version=settings.version,
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

configure_logging(settings.log_level)

logger = logging.getLogger(LOGGER_NAME)


def _no_store_headers(request: Request) -> dict[str, str]:
    headers = {
        "Cache-Control": "no-store",
        "X-Content-Type-Options": "nosniff",
    }
    rid = getattr(request.state, "request_id", None)
    if rid:
        headers["X-Request-Id"] = rid
    return headers


@app.middleware("http")
async def _request_middleware(request: Request, call_next):
    """Attach request ID and emit one structured log line per request."""

    timer = Timer()
    lowered = {k.lower(): v for k, v in request.headers.items()}
    rid = request_id_from_headers(lowered)
    request.state.request_id = rid
    remote_ip = client_address_from_headers(lowered)
    user_agent = request.headers.get("user-agent", "")

    try:
        response = await call_next(request)
    except Exception as e:
        log_http_request(
            request_id=rid,
            method=request.method,
            path=request.url.path,
            status=500,
            latency_ms=timer.ms(),
            remote_ip=remote_ip,
            user_agent=user_agent,
            error_type=type(e).__name__,
            severity="ERROR",
        )
        raise

    response.headers["X-Request-Id"] = rid
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Cache-Control", "no-store")

    status_code = int(response.status_code)
    log_http_request(
        request_id=rid,
        method=request.method,
        path=request.url.path,
        status=status_code,
        latency_ms=timer.ms(),
        remote_ip=remote_ip,
        user_agent=user_agent,
        severity="INFO" if status_code < 500 else "ERROR",
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=_no_store_headers(request))


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    """Return a safe JSON 500 that keeps request correlation."""
    logger.exception("Unhandled exception on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Server error"}, headers=_no_store_headers(request))


async def _read_payload(request: Request) -> Any:
    """Decode a JSON or form body. Missing or malformed bodies read as empty."""

    ctype = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if ctype in _FORM_TYPES:
        try:
            form = await request.form()
        except (StarletteHTTPException, MultiPartException):
            return {}
        return {k: v for k, v in form.items() if isinstance(v, str)}

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        return {}


# ---- Health ----
@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/ready")
def ready() -> dict[str, object]:
    return {
        "ready": True,
        "version": app.version,
        "relay_configured": settings.relay_configured,
    }


# ---- Contact ----
@app.api_route(CONTACT_PATH, methods=_ALL_METHODS)
async def send_email(request: Request, handler: SubmissionHandler = Depends(get_handler)) -> JSONResponse:
    payload = await _read_payload(request) if request.method == "POST" else None
    headers = {k.lower(): v for k, v in request.headers.items()}
    result = await handler.handle(
        request.method,
        headers,
        payload,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=result.status_code, content=result.body)
