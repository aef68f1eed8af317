from __future__ import annotations

from typing import Any


class ContactError(Exception):
    """Base for every failure the contact endpoint reports to the caller.

    `message` is what the caller sees; `event` is the server-side log event.
    """

    status_code: int = 500
    message: str = "Server error"
    event: str = "contact.error"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        event: str | None = None,
    ) -> None:
        self.message = message or self.message
        self.details = details
        self.event = event or self.event
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body

    def log_fields(self) -> dict[str, Any]:
        return {"status": self.status_code, "details": self.details}


class MethodNotAllowed(ContactError):
    status_code = 405
    message = "Method not allowed"
    event = "contact.method_not_allowed"


class RateLimited(ContactError):
    status_code = 429
    message = "Too many requests. Please try again later."
    event = "contact.rate_limited"


class ValidationError(ContactError):
    status_code = 400
    message = "Invalid submission"
    event = "contact.invalid_submission"


class RelayError(ContactError):
    """The mail provider rejected the message or could not be reached."""

    status_code = 500
    message = "Failed to send email"
    event = "contact.relay_failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        provider_status: int | None = None,
        provider_payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.provider_status = provider_status
        self.provider_payload = provider_payload

    def log_fields(self) -> dict[str, Any]:
        fields = super().log_fields()
        fields["provider_status"] = self.provider_status
        fields["provider_payload"] = self.provider_payload
        return fields


class UnexpectedError(ContactError):
    status_code = 500
    message = "Server error"
    event = "contact.server_error"
