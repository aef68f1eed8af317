from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .version import get_version

# Load a local .env for developer convenience.
# - Does NOT override already-set environment variables (the platform wins)
# - Safe: if .env doesn't exist, no-op
load_dotenv: Callable[..., object] | None
try:
    from dotenv import load_dotenv as _load_dotenv  # python-dotenv
except Exception:  # pragma: no cover
    load_dotenv = None
else:
    load_dotenv = _load_dotenv

_REPO_ROOT = Path(__file__).resolve().parents[1]
_ENV_PATH = _REPO_ROOT / ".env"
if load_dotenv is not None and _ENV_PATH.exists():
    load_dotenv(dotenv_path=_ENV_PATH, override=False)


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return v if v is not None and v.strip() != "" else default


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(v.strip())
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return float(v.strip())
    except Exception:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    v = os.getenv(name)
    if v is None:
        return list(default)
    items = [part.strip() for part in v.split(",") if part.strip()]
    return items or list(default)


DEFAULT_RELAY_API_URL = "https://api.resend.com/emails"
DEFAULT_MAIL_FROM = "Contact Form <contact@example.com>"
DEFAULT_MAIL_TO = "contact@example.com"


@dataclass(frozen=True)
class Settings:
    """Central configuration for the contact relay.

    Everything except the relay credential has a working default, so the app
    boots (and answers /health) with an empty environment.
    """

    # ---- Build / runtime ----
    version: str
    log_level: str

    # ---- Outbound relay ----
    relay_api_key: str | None
    relay_api_url: str
    relay_timeout_s: float

    # Fixed sender / recipients for every relayed message
    mail_from: str
    mail_to: tuple[str, ...]

    # ---- Anti-abuse ----
    rate_limit_window_s: int
    rate_limit_max_requests: int
    rate_limit_sweep_every: int  # 0 disables the periodic sweep
    min_submit_s: float

    @property
    def relay_configured(self) -> bool:
        return bool(self.relay_api_key)


def load_settings() -> Settings:
    window_s = _env_int("RATE_LIMIT_WINDOW_S", 60)
    max_requests = _env_int("RATE_LIMIT_MAX_REQUESTS", 3)

    return Settings(
        version=_env_str("APP_VERSION", get_version()),
        log_level=_env_str("LOG_LEVEL", "INFO").upper().strip(),
        relay_api_key=os.getenv("RESEND_API_KEY") or None,
        relay_api_url=_env_str("RELAY_API_URL", DEFAULT_RELAY_API_URL),
        relay_timeout_s=_env_float("RELAY_TIMEOUT_S", 10.0),
        mail_from=_env_str("MAIL_FROM", DEFAULT_MAIL_FROM),
        mail_to=tuple(_env_list("MAIL_TO", [DEFAULT_MAIL_TO])),
        rate_limit_window_s=window_s if window_s > 0 else 60,
        rate_limit_max_requests=max_requests if max_requests > 0 else 3,
        rate_limit_sweep_every=max(0, _env_int("RATE_LIMIT_SWEEP_EVERY", 0)),
        min_submit_s=max(0.0, _env_float("MIN_SUBMIT_S", 3.0)),
    )


settings = load_settings()
