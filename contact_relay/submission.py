from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# local@domain.tld: no whitespace, exactly one "@", a "." somewhere after it.
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")

REQUIRED_FIELDS = ("name", "email", "message")


def _as_text(value: Any) -> str:
    """Collapse a form value to text, with falsy scalars meaning "not provided"."""
    if value is None or value is False:
        return ""
    if value is True:
        return "true"
    if isinstance(value, (int, float)):
        return "" if value == 0 else str(value)
    return value if isinstance(value, str) else str(value)


class Submission(BaseModel):
    """One contact-form payload. Every field is optional at this layer."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    email: str = ""
    phone: str = ""
    service: str = ""
    message: str = ""
    website: str = ""  # honeypot
    timestamp: Any = None  # client page-load time, epoch milliseconds

    @field_validator("name", "email", "phone", "service", "message", "website", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _as_text(v)

    @classmethod
    def from_payload(cls, payload: Any) -> "Submission":
        if not isinstance(payload, Mapping):
            return cls()
        return cls.model_validate(dict(payload))

    @property
    def is_honeypot(self) -> bool:
        return bool(self.website)

    def missing_fields(self) -> dict[str, bool]:
        """Per-field presence flags for the required fields (True = present)."""
        return {f: bool(getattr(self, f)) for f in REQUIRED_FIELDS}


def parse_client_timestamp(value: Any) -> float | None:
    """Parse a client epoch-millisecond timestamp.

    Accepts numbers or strings with a leading integer ("1700000000000",
    "1700000000000ms"). Returns None for anything absent or unparseable,
    including non-finite numbers. Digit strings too long for a float read as
    infinity.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, float):
        return float(math.trunc(value)) if math.isfinite(value) else None
    if isinstance(value, str):
        m = _LEADING_INT_RE.match(value)
        # float() has no digit limit, unlike int()
        return float(m.group(1)) if m else None
    return None


def submitted_too_fast(timestamp: Any, *, now_s: float, min_submit_s: float) -> bool:
    """True when the form came back sooner after page load than a human could manage.

    Missing or unparseable timestamps never count as too fast. A timestamp in
    the future gives a negative elapsed time and does.
    """
    if not timestamp:
        return False
    ts_ms = parse_client_timestamp(timestamp)
    if ts_ms is None:
        return False
    elapsed_ms = now_s * 1000.0 - ts_ms
    return elapsed_ms < min_submit_s * 1000.0


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.fullmatch(value or ""))
