"""Recipient shape validation per delivery channel."""

from __future__ import annotations

import re

from gitreporter.delivery.errors import InvalidRecipientError
from gitreporter.delivery.models import Channel

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_E164 = re.compile(r"^\+[1-9]\d{1,14}$")
_WHATSAPP_PREFIX = "whatsapp:"

_EXPECTED_SHAPES = {
    Channel.EMAIL: "an email address",
    Channel.CHAT_MESSAGE: "an E.164 phone number such as +33612345678",
}


def is_valid_email(address: str) -> bool:
    """Return whether ``address`` looks like ``local@domain.tld``."""
    return bool(_EMAIL.match(address))


def normalize_chat_number(identifier: str) -> str:
    """Strip an optional ``whatsapp:`` prefix and surrounding whitespace."""
    number = identifier.strip()
    if number.startswith(_WHATSAPP_PREFIX):
        number = number.removeprefix(_WHATSAPP_PREFIX)
    return number


def is_valid_chat_number(identifier: str) -> bool:
    """Return whether ``identifier`` is an E.164 number, optionally prefixed."""
    return bool(_E164.match(normalize_chat_number(identifier)))


def validate_recipient(channel: Channel | str, recipient: str) -> str:
    """Validate ``recipient`` for ``channel`` and return it stripped.

    Raises
    ------
    InvalidRecipientError
        If the recipient does not have the shape the channel expects, or the
        channel is unknown.

    """
    candidate = recipient.strip()
    try:
        resolved = Channel(channel)
    except ValueError as exc:
        raise InvalidRecipientError(str(channel), recipient, "a known channel") from exc

    valid = (
        is_valid_email(candidate)
        if resolved is Channel.EMAIL
        else is_valid_chat_number(candidate)
    )
    if not valid:
        raise InvalidRecipientError(resolved, recipient, _EXPECTED_SHAPES[resolved])
    return candidate
