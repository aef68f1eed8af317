from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from .errors import RelayError
from .submission import Submission


@dataclass(frozen=True)
class RelayMessage:
    sender: str
    to: list[str]
    subject: str
    reply_to: str
    html: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "from": self.sender,
            "to": list(self.to),
            "subject": self.subject,
            "reply_to": self.reply_to,
            "html": self.html,
        }


@dataclass(frozen=True)
class RelayResult:
    ok: bool
    status_code: int
    message_id: str | None = None
    payload: Any = field(default=None, compare=False)


class MailRelay(Protocol):
    name: str

    async def send(self, message: RelayMessage) -> RelayResult:
        """Submit one message. Raises RelayError if the provider is unreachable."""
        ...


def build_relay_message(submission: Submission, *, sender: str, to: list[str] | tuple[str, ...]) -> RelayMessage:
    """Format a submission as the notification email sent to the site owner."""

    def esc(value: str) -> str:
        return html.escape(value, quote=True)

    subject = f"New Contact: {submission.service or 'General Inquiry'} - {submission.name}"
    message_html = "<br>".join(esc(line) for line in submission.message.split("\n"))

    body = (
        "\n"
        "  <h2>New Contact Form Submission</h2>\n"
        f"  <p><strong>Name:</strong> {esc(submission.name)}</p>\n"
        f"  <p><strong>Email:</strong> {esc(submission.email)}</p>\n"
        f"  <p><strong>Phone:</strong> {esc(submission.phone or 'Not provided')}</p>\n"
        f"  <p><strong>Service:</strong> {esc(submission.service or 'Not specified')}</p>\n"
        "  <hr>\n"
        "  <p><strong>Message:</strong></p>\n"
        f"  <p>{message_html}</p>\n"
    )

    return RelayMessage(
        sender=sender,
        to=list(to),
        subject=subject,
        reply_to=submission.email,
        html=body,
    )


class ResendRelay:
    """Transactional email relay speaking the Resend `POST /emails` API.

    A fresh AsyncClient is opened per send; nothing is pooled across requests.
    """

    name = "resend"

    def __init__(
        self,
        api_key: str | None,
        *,
        api_url: str = "https://api.resend.com/emails",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or ""
        self.api_url = api_url
        self.timeout_s = float(timeout_s)
        # Tests inject httpx.MockTransport here.
        self._transport = transport

    async def send(self, message: RelayMessage) -> RelayResult:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                r = await client.post(self.api_url, json=message.to_payload(), headers=headers)
        except httpx.HTTPError as e:
            raise RelayError(provider_payload=f"{type(e).__name__}: {e}") from e

        try:
            data: Any = r.json()
        except ValueError:
            data = r.text

        message_id = None
        if isinstance(data, dict) and data.get("id") is not None:
            message_id = str(data["id"])

        return RelayResult(
            ok=r.is_success,
            status_code=r.status_code,
            message_id=message_id,
            payload=data,
        )
