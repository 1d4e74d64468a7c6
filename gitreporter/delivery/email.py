"""Email transports: the Resend HTTP API and a logging mock.

Usage
-----
>>> transport = ResendEmailTransport(ResendConfig.from_env())
>>> await transport.send("dev@example.com", OutboundMessage("Report", "Body"))

"""

from __future__ import annotations

import dataclasses
import html
import os
import typing as typ
import uuid

import httpx

from gitreporter.delivery.errors import TransportConfigError, TransportError
from gitreporter.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from gitreporter.delivery.models import OutboundMessage

logger = get_logger(__name__)

_DEFAULT_ENDPOINT = "https://api.resend.com"
_DEFAULT_FROM_NAME = "gitreporter"
_HTTP_ERROR_STATUS_THRESHOLD = 400


@dataclasses.dataclass(frozen=True, slots=True)
class ResendConfig:
    """Credentials and sender identity for the Resend email API."""

    api_key: str
    from_email: str
    from_name: str = _DEFAULT_FROM_NAME
    endpoint: str = _DEFAULT_ENDPOINT
    timeout_s: float = 20.0

    @property
    def sender(self) -> str:
        """Return the RFC 5322 ``From`` header value."""
        return f'"{self.from_name}" <{self.from_email}>'

    @classmethod
    def from_env(cls) -> ResendConfig:
        """Build configuration from environment variables.

        Reads ``GITREPORTER_RESEND_API_KEY`` and ``GITREPORTER_EMAIL_FROM``
        (both required) plus the optional ``GITREPORTER_EMAIL_FROM_NAME``.

        Raises
        ------
        TransportConfigError
            If a required variable is missing or blank.

        """
        api_key = os.environ.get("GITREPORTER_RESEND_API_KEY", "").strip()
        if not api_key:
            raise TransportConfigError.missing("GITREPORTER_RESEND_API_KEY")
        from_email = os.environ.get("GITREPORTER_EMAIL_FROM", "").strip()
        if not from_email:
            raise TransportConfigError.missing("GITREPORTER_EMAIL_FROM")
        from_name = os.environ.get("GITREPORTER_EMAIL_FROM_NAME", "").strip()
        return cls(
            api_key=api_key,
            from_email=from_email,
            from_name=from_name or _DEFAULT_FROM_NAME,
        )


def render_email_html(body: str) -> str:
    """Return a minimal HTML rendition of a plain-text report."""
    escaped = html.escape(body).replace("\n", "<br>")
    return (
        '<!DOCTYPE html><html><body style="font-family: sans-serif;">'
        f"<div>{escaped}</div></body></html>"
    )


class ResendEmailTransport:
    """Send reports through the Resend ``/emails`` endpoint."""

    def __init__(
        self,
        config: ResendConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the transport with API configuration."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={"Authorization": f"Bearer {config.api_key}"},
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def send(self, recipient: str, message: OutboundMessage) -> str | None:
        """Send one email and return the provider message id."""
        if not message.body.strip():
            raise TransportError.empty_message()
        response = await self._client.post(
            f"{self._config.endpoint}/emails",
            json={
                "from": self._config.sender,
                "to": [recipient],
                "subject": message.subject,
                "text": message.body,
                "html": render_email_html(message.body),
            },
        )
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise TransportError.http_error("Resend", response.status_code)
        payload = response.json()
        message_id = payload.get("id") if isinstance(payload, dict) else None
        return message_id if isinstance(message_id, str) else None


class LoggingEmailTransport:
    """Mock email transport that only logs what would have been sent."""

    def __init__(self) -> None:
        """Start with an empty outbox."""
        self.sent: list[tuple[str, OutboundMessage]] = []

    async def send(self, recipient: str, message: OutboundMessage) -> str | None:
        """Record and log the message instead of sending it."""
        self.sent.append((recipient, message))
        log_info(
            logger,
            "Mock email to %s subject=%r length=%d",
            recipient,
            message.subject,
            len(message.body),
        )
        return f"mock-{uuid.uuid4()}"
