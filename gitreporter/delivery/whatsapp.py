"""Chat-message transport backed by the Twilio WhatsApp API."""

from __future__ import annotations

import dataclasses
import os
import typing as typ

import httpx

from gitreporter.delivery.errors import TransportConfigError, TransportError
from gitreporter.delivery.recipients import normalize_chat_number

if typ.TYPE_CHECKING:
    from gitreporter.delivery.models import OutboundMessage

MAX_MESSAGE_LENGTH = 1600
_ELLIPSIS = "..."
_DEFAULT_ENDPOINT = "https://api.twilio.com/2010-04-01"
_HTTP_ERROR_STATUS_THRESHOLD = 400


@dataclasses.dataclass(frozen=True, slots=True)
class TwilioConfig:
    """Twilio account credentials and the sending WhatsApp number."""

    account_sid: str
    auth_token: str
    whatsapp_number: str
    endpoint: str = _DEFAULT_ENDPOINT
    timeout_s: float = 20.0

    @classmethod
    def from_env(cls) -> TwilioConfig:
        """Build configuration from ``GITREPORTER_TWILIO_*`` variables.

        Raises
        ------
        TransportConfigError
            If any of the account SID, auth token or sender number is missing.

        """
        values: dict[str, str] = {}
        for field, env_var in (
            ("account_sid", "GITREPORTER_TWILIO_ACCOUNT_SID"),
            ("auth_token", "GITREPORTER_TWILIO_AUTH_TOKEN"),
            ("whatsapp_number", "GITREPORTER_TWILIO_WHATSAPP_NUMBER"),
        ):
            value = os.environ.get(env_var, "").strip()
            if not value:
                raise TransportConfigError.missing(env_var)
            values[field] = value
        return cls(**values)


def truncate_message(body: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Clip ``body`` to ``limit`` characters, marking the cut with ``...``."""
    if len(body) <= limit:
        return body
    return body[: limit - len(_ELLIPSIS)] + _ELLIPSIS


def _whatsapp_address(number: str) -> str:
    return f"whatsapp:{normalize_chat_number(number)}"


class TwilioWhatsAppTransport:
    """Send report bodies as WhatsApp messages through Twilio."""

    def __init__(
        self,
        config: TwilioConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the transport with account configuration."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            auth=(config.account_sid, config.auth_token),
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def send(self, recipient: str, message: OutboundMessage) -> str | None:
        """Send the message body and return the Twilio message SID."""
        if not message.body.strip():
            raise TransportError.empty_message()
        url = (
            f"{self._config.endpoint}/Accounts/"
            f"{self._config.account_sid}/Messages.json"
        )
        response = await self._client.post(
            url,
            data={
                "From": _whatsapp_address(self._config.whatsapp_number),
                "To": _whatsapp_address(recipient),
                "Body": truncate_message(message.body),
            },
        )
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise TransportError.http_error("Twilio", response.status_code)
        payload = response.json()
        sid = payload.get("sid") if isinstance(payload, dict) else None
        return sid if isinstance(sid, str) else None
