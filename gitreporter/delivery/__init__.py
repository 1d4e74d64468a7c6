"""Delivery of rendered reports over email and chat-message channels.

Public API
----------
DeliveryDispatcher
    Channel registry performing one validated delivery attempt per call.
Transport
    Protocol implemented by delivery back-ends.
ResendEmailTransport, LoggingEmailTransport
    Email back-ends (real and mock).
TwilioWhatsAppTransport
    Chat-message back-end.

"""

from gitreporter.delivery.dispatcher import DeliveryDispatcher
from gitreporter.delivery.email import (
    LoggingEmailTransport,
    ResendConfig,
    ResendEmailTransport,
    render_email_html,
)
from gitreporter.delivery.errors import (
    DeliveryFailedError,
    InvalidRecipientError,
    TransportConfigError,
    TransportError,
)
from gitreporter.delivery.models import Channel, DeliveryResult, OutboundMessage
from gitreporter.delivery.recipients import validate_recipient
from gitreporter.delivery.transport import Transport
from gitreporter.delivery.whatsapp import (
    TwilioConfig,
    TwilioWhatsAppTransport,
    truncate_message,
)

__all__ = [
    "Channel",
    "DeliveryDispatcher",
    "DeliveryFailedError",
    "DeliveryResult",
    "InvalidRecipientError",
    "LoggingEmailTransport",
    "OutboundMessage",
    "ResendConfig",
    "ResendEmailTransport",
    "Transport",
    "TransportConfigError",
    "TransportError",
    "TwilioConfig",
    "TwilioWhatsAppTransport",
    "render_email_html",
    "truncate_message",
    "validate_recipient",
]
