"""Unit tests for scheduler wiring from environment configuration."""

from __future__ import annotations

import typing as typ

import pytest

from gitreporter.delivery import TransportConfigError
from gitreporter.delivery.email import LoggingEmailTransport, ResendEmailTransport
from gitreporter.delivery.models import Channel
from gitreporter.delivery.whatsapp import TwilioWhatsAppTransport
from gitreporter.scheduler import build_scheduler, create_transports
from gitreporter.scheduler.factory import EMAIL_MOCK_ENV_VAR, env_flag
from tests.helpers.fakes import FakeCommitSource, RecordingTransport, fast_config

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

_TRANSPORT_ENV_VARS = (
    EMAIL_MOCK_ENV_VAR,
    "GITREPORTER_RESEND_API_KEY",
    "GITREPORTER_EMAIL_FROM",
    "GITREPORTER_TWILIO_ACCOUNT_SID",
    "GITREPORTER_TWILIO_AUTH_TOKEN",
    "GITREPORTER_TWILIO_WHATSAPP_NUMBER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove transport variables inherited from the environment."""
    for name in _TRANSPORT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestEnvFlag:
    """Truthy environment flags."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("1", True), ("TRUE", True), (" yes ", True), ("0", False), ("", False)],
    )
    def test_env_flag(
        self, monkeypatch: pytest.MonkeyPatch, value: str, *, expected: bool
    ) -> None:
        """Only the usual truthy spellings enable a flag."""
        monkeypatch.setenv(EMAIL_MOCK_ENV_VAR, value)

        assert env_flag(EMAIL_MOCK_ENV_VAR) is expected


class TestCreateTransports:
    """Transport selection."""

    def test_mock_mode_logs_email(self) -> None:
        """Mock mode registers the logging transport and no chat channel."""
        transports = create_transports(email_mock=True)

        assert isinstance(transports[Channel.EMAIL], LoggingEmailTransport)
        assert Channel.CHAT_MESSAGE not in transports

    def test_mock_mode_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """``GITREPORTER_EMAIL_MOCK`` enables mock mode when not passed."""
        monkeypatch.setenv(EMAIL_MOCK_ENV_VAR, "1")

        transports = create_transports()

        assert isinstance(transports[Channel.EMAIL], LoggingEmailTransport)

    @pytest.mark.asyncio
    async def test_real_transports_from_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Configured credentials register Resend and Twilio."""
        monkeypatch.setenv("GITREPORTER_RESEND_API_KEY", "re_test")
        monkeypatch.setenv("GITREPORTER_EMAIL_FROM", "reports@example.com")
        monkeypatch.setenv("GITREPORTER_TWILIO_ACCOUNT_SID", "AC123")
        monkeypatch.setenv("GITREPORTER_TWILIO_AUTH_TOKEN", "secret")
        monkeypatch.setenv("GITREPORTER_TWILIO_WHATSAPP_NUMBER", "+14155238886")

        transports = create_transports(email_mock=False)
        try:
            assert isinstance(transports[Channel.EMAIL], ResendEmailTransport)
            assert isinstance(
                transports[Channel.CHAT_MESSAGE], TwilioWhatsAppTransport
            )
        finally:
            for transport in transports.values():
                await typ.cast("ResendEmailTransport", transport).aclose()

    def test_missing_resend_key(self) -> None:
        """Real email delivery requires Resend credentials."""
        with pytest.raises(TransportConfigError, match="GITREPORTER_RESEND_API_KEY"):
            create_transports(email_mock=False)


class TestBuildScheduler:
    """Component wiring."""

    @pytest.mark.asyncio
    async def test_components_share_collaborators(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """The service runs schedules through the wired engine."""
        config = fast_config(max_active_schedules_per_owner=3)

        components = build_scheduler(
            session_factory,
            config,
            source=FakeCommitSource(),
            transports={Channel.EMAIL: RecordingTransport()},
        )

        assert components.engine.config is config
        assert components.closables == ()
        assert await components.templates.seed_default_templates() > 0
        await components.aclose()
