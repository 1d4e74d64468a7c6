"""Transport port implemented by delivery back-ends.

Transports perform exactly one delivery attempt per call and raise on any
failure; normalisation into :class:`DeliveryFailedError` happens in the
dispatcher so back-ends stay oblivious to the failure taxonomy.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from gitreporter.delivery.models import OutboundMessage


@typ.runtime_checkable
class Transport(typ.Protocol):
    """Capability to send a rendered message to one recipient."""

    async def send(self, recipient: str, message: OutboundMessage) -> str | None:
        """Deliver ``message`` and return the provider's message id, if any."""
        ...
