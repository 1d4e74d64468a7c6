"""Value types shared by the delivery dispatcher and its transports."""

from __future__ import annotations

import dataclasses as dc
import enum

import msgspec


class Channel(enum.StrEnum):
    """Delivery mechanisms a schedule can target."""

    EMAIL = "email"
    CHAT_MESSAGE = "chat-message"


@dc.dataclass(frozen=True, slots=True)
class OutboundMessage:
    """Rendered report ready for delivery.

    Attributes
    ----------
    subject
        Short title; used by channels that support one (email).
    body
        Rendered report text.

    """

    subject: str
    body: str


class DeliveryResult(msgspec.Struct, kw_only=True, frozen=True):
    """Normalised outcome of a successful delivery."""

    channel: Channel
    recipient: str
    provider_message_id: str | None = None
