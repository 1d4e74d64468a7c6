"""Channel-keyed dispatch of rendered reports to transports."""

from __future__ import annotations

import types
import typing as typ

from gitreporter.delivery.errors import DeliveryFailedError
from gitreporter.delivery.models import Channel, DeliveryResult
from gitreporter.delivery.recipients import validate_recipient
from gitreporter.logging import get_logger, log_info, log_warning

if typ.TYPE_CHECKING:
    from gitreporter.delivery.models import OutboundMessage
    from gitreporter.delivery.transport import Transport

logger = get_logger(__name__)


class DeliveryDispatcher:
    """Route messages to the transport registered for their channel.

    The registry is fixed at construction; adding a channel means passing
    another transport, not changing dispatch logic. Each call is a single
    attempt: retries are the caller's concern.

    Parameters
    ----------
    transports
        Mapping from channel to the transport that serves it.

    """

    def __init__(self, transports: typ.Mapping[Channel, Transport]) -> None:
        """Freeze the channel registry."""
        self._transports: typ.Mapping[Channel, Transport] = types.MappingProxyType(
            dict(transports)
        )

    @property
    def channels(self) -> frozenset[Channel]:
        """Return the channels this dispatcher can serve."""
        return frozenset(self._transports)

    async def dispatch(
        self,
        channel: Channel | str,
        recipient: str,
        message: OutboundMessage,
    ) -> DeliveryResult:
        """Validate the recipient and send ``message`` once.

        Returns
        -------
        DeliveryResult
            Outcome carrying the provider message id.

        Raises
        ------
        InvalidRecipientError
            If the recipient shape does not match the channel. No transport
            is called.
        DeliveryFailedError
            If no transport serves the channel or the transport raised.

        """
        address = validate_recipient(channel, recipient)
        resolved = Channel(channel)
        transport = self._transports.get(resolved)
        if transport is None:
            raise DeliveryFailedError.unsupported_channel(resolved)

        try:
            message_id = await transport.send(address, message)
        except Exception as exc:
            log_warning(
                logger,
                "Delivery via %s to %s failed: %s",
                resolved,
                address,
                exc,
            )
            raise DeliveryFailedError.from_exception(resolved, exc) from exc

        log_info(logger, "Delivered report via %s to %s", resolved, address)
        return DeliveryResult(
            channel=resolved, recipient=address, provider_message_id=message_id
        )
