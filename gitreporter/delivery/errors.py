"""Errors raised while delivering rendered reports."""

from __future__ import annotations

from gitreporter.errors import GitReporterError, ValidationError


class InvalidRecipientError(ValidationError):
    """Raised when a recipient does not match its channel's expected shape."""

    def __init__(self, channel: str, recipient: str, expected: str) -> None:
        """Record the channel, offending recipient and the expected shape."""
        super().__init__(
            f"Invalid recipient {recipient!r} for channel {channel}: "
            f"expected {expected}"
        )
        self.channel = channel
        self.recipient = recipient


class DeliveryFailedError(GitReporterError):
    """Raised when a transport could not deliver a message.

    Attributes
    ----------
    reason
        Normalised, human readable failure reason.

    """

    def __init__(self, reason: str, *, channel: str | None = None) -> None:
        """Initialise with the normalised failure reason."""
        super().__init__(reason)
        self.reason = reason
        self.channel = channel

    @classmethod
    def unsupported_channel(cls, channel: str) -> DeliveryFailedError:
        """Return an error for a channel with no registered transport."""
        return cls(f"no transport registered for channel {channel}", channel=channel)

    @classmethod
    def from_exception(cls, channel: str, exc: BaseException) -> DeliveryFailedError:
        """Wrap an arbitrary transport exception."""
        detail = str(exc) or type(exc).__name__
        return cls(f"{type(exc).__name__}: {detail}", channel=channel)


class TransportError(GitReporterError):
    """Raised by transports when a provider rejects a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        super().__init__(message)
        self.status_code = status_code

    @classmethod
    def http_error(cls, provider: str, status_code: int) -> TransportError:
        """Return an error for a non-2xx provider response."""
        return cls(f"{provider} HTTP {status_code}", status_code=status_code)

    @classmethod
    def empty_message(cls) -> TransportError:
        """Return an error for a message with no body."""
        return cls("message body is empty")


class TransportConfigError(GitReporterError):
    """Raised when transport credentials are missing from the environment."""

    @classmethod
    def missing(cls, env_var: str) -> TransportConfigError:
        """Return an error naming the missing environment variable."""
        return cls(f"{env_var} is required")
