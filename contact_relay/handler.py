from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .errors import ContactError, MethodNotAllowed, RateLimited, RelayError, UnexpectedError, ValidationError
from .observability import client_address_from_headers, log_event
from .ratelimit import FixedWindowRateLimiter
from .relay import MailRelay, build_relay_message
from .submission import Submission, is_valid_email, submitted_too_fast


@dataclass(frozen=True)
class HandlerResponse:
    status_code: int
    body: dict[str, Any]


# Bots get the same answer a real sender would, and nothing is logged.
def _silent_accept() -> HandlerResponse:
    return HandlerResponse(200, {"success": True})


class SubmissionHandler:
    """Runs one contact-form request through the guard pipeline.

    Order: method, rate limit, honeypot, timing, required fields, email shape,
    relay. The first failing guard decides the response. The relay is called
    at most once, and only for submissions that pass every guard.
    """

    def __init__(
        self,
        relay: MailRelay,
        limiter: FixedWindowRateLimiter,
        *,
        sender: str,
        to: list[str] | tuple[str, ...],
        min_submit_s: float = 3.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.relay = relay
        self.limiter = limiter
        self.sender = sender
        self.to = list(to)
        self.min_submit_s = float(min_submit_s)
        self.clock = clock

    async def handle(
        self,
        method: str,
        headers: Mapping[str, str],
        payload: Any,
        *,
        request_id: str | None = None,
    ) -> HandlerResponse:
        address = client_address_from_headers(headers)
        try:
            return await self._run(method, address, payload, request_id=request_id)
        except ContactError as e:
            log_event(
                e.event,
                severity="WARNING" if e.status_code < 500 else "ERROR",
                request_id=request_id,
                address=address,
                **e.log_fields(),
            )
            return HandlerResponse(e.status_code, e.to_body())
        except Exception as e:
            err = UnexpectedError()
            log_event(
                err.event,
                severity="ERROR",
                exc_info=True,
                request_id=request_id,
                address=address,
                error_type=type(e).__name__,
            )
            return HandlerResponse(err.status_code, err.to_body())

    async def _run(self, method: str, address: str, payload: Any, *, request_id: str | None) -> HandlerResponse:
        if (method or "").upper() != "POST":
            raise MethodNotAllowed()

        if self.limiter.is_limited(address):
            raise RateLimited()

        submission = Submission.from_payload(payload)

        if submission.is_honeypot:
            return _silent_accept()

        if submitted_too_fast(submission.timestamp, now_s=self.clock(), min_submit_s=self.min_submit_s):
            return _silent_accept()

        present = submission.missing_fields()
        if not all(present.values()):
            raise ValidationError("Missing required fields", details=present, event="contact.missing_fields")

        if not is_valid_email(submission.email):
            raise ValidationError("Invalid email format", event="contact.invalid_email")

        message = build_relay_message(submission, sender=self.sender, to=self.to)
        result = await self.relay.send(message)
        if not result.ok:
            raise RelayError(provider_status=result.status_code, provider_payload=result.payload)

        log_event("contact.sent", request_id=request_id, relay=self.relay.name, id=result.message_id)
        body: dict[str, Any] = {"success": True}
        if result.message_id is not None:
            body["id"] = result.message_id
        return HandlerResponse(200, body)
