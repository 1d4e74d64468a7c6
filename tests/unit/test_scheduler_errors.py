"""Unit tests for run failure classification."""

from __future__ import annotations

import pytest

from gitreporter.delivery import DeliveryFailedError, InvalidRecipientError
from gitreporter.delivery.models import Channel
from gitreporter.scheduler import StageTimeoutError, classify_failure, describe_failure
from gitreporter.schedules import FailureReason
from gitreporter.source import SourceUnavailableError


@pytest.mark.parametrize(
    ("error", "reason"),
    [
        (SourceUnavailableError.http_error(502), FailureReason.SOURCE_UNAVAILABLE),
        (
            InvalidRecipientError(Channel.EMAIL, "nope", "an email address"),
            FailureReason.INVALID_RECIPIENT,
        ),
        (DeliveryFailedError("Resend HTTP 500"), FailureReason.DELIVERY_FAILED),
        (StageTimeoutError.exceeded("delivery", 20.0), FailureReason.TIMEOUT),
        (TimeoutError(), FailureReason.TIMEOUT),
        (KeyError("template"), FailureReason.INTERNAL),
    ],
)
def test_classify_failure(error: BaseException, reason: FailureReason) -> None:
    """Every known error class maps onto its ledger reason."""
    assert classify_failure(error) is reason


def test_describe_failure_prefixes_reason() -> None:
    """The stored detail starts with the reason name."""
    error = StageTimeoutError.exceeded("commit fetch", 20.0)

    assert describe_failure(error) == "Timeout: commit fetch exceeded 20s"


def test_describe_failure_without_message() -> None:
    """Errors without a message fall back to their type name."""
    assert describe_failure(RuntimeError()) == "Internal: RuntimeError"
