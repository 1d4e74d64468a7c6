"""Unit tests for the femtologging helpers in ``gitreporter.logging``."""

from __future__ import annotations

import typing as typ

import pytest

from gitreporter.logging import (
    LOG_LEVEL_ENV_VAR,
    configure_logging,
    format_log_message,
    log_debug,
    log_error,
    log_info,
    log_warning,
    normalize_log_level,
)


class _RecordingLogger:
    """Logger double capturing ``log`` calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


class TestNormalizeLogLevel:
    """Level normalisation and invalid flagging."""

    @pytest.mark.parametrize(
        ("raw", "expected", "invalid"),
        [
            ("debug", "DEBUG", False),
            (" Warn ", "WARN", False),
            ("trace", "TRACE", False),
            (None, "INFO", True),
            ("", "INFO", True),
            ("verbose", "INFO", True),
        ],
    )
    def test_normalize(self, raw: str | None, expected: str, *, invalid: bool) -> None:
        """Known names are upper-cased; anything else falls back to INFO."""
        level, flagged = normalize_log_level(raw)

        assert level == expected, f"{raw!r} should normalise to {expected}"
        assert flagged is invalid, f"invalid flag for {raw!r} should be {invalid}"


class TestLogHelpers:
    """Formatting and level forwarding."""

    def test_percent_formatting(self) -> None:
        """Arguments are interpolated with ``%`` formatting."""
        assert format_log_message("claimed %d of %s", 2, "3") == "claimed 2 of 3"

    def test_template_without_args_is_untouched(self) -> None:
        """A template with no arguments is returned verbatim, ``%`` included."""
        assert format_log_message("100% delivered") == "100% delivered"

    @pytest.mark.parametrize(
        ("helper", "level"),
        [
            (log_debug, "DEBUG"),
            (log_info, "INFO"),
            (log_warning, "WARNING"),
            (log_error, "ERROR"),
        ],
    )
    def test_helpers_emit_their_level(
        self, helper: typ.Callable[..., None], level: str
    ) -> None:
        """Each helper logs at its own level with stack info disabled."""
        logger = _RecordingLogger()

        helper(logger, "schedule %s", "s-1")

        assert logger.calls == [(level, "schedule s-1", None, False)]

    def test_exc_info_is_forwarded(self) -> None:
        """Exception payloads reach the logger unchanged."""
        logger = _RecordingLogger()
        exc = RuntimeError("db down")

        log_error(logger, "reschedule failed: %s", exc, exc_info=exc)

        assert logger.calls == [("ERROR", "reschedule failed: db down", exc, False)]


class TestConfigureLogging:
    """femtologging configuration."""

    @pytest.fixture
    def captured(self, monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
        """Replace ``basicConfig`` with a recorder."""
        captured: dict[str, object] = {}

        def fake_basic_config(**kwargs: object) -> None:
            captured.update(kwargs)

        monkeypatch.setattr("gitreporter.logging.basicConfig", fake_basic_config)
        return captured

    def test_explicit_level(self, captured: dict[str, object]) -> None:
        """An explicit level is applied without replacing handlers."""
        assert configure_logging("debug") == ("DEBUG", False)
        assert captured == {"level": "DEBUG", "force": False}

    def test_level_from_environment(
        self, captured: dict[str, object], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The environment variable is used when no level is passed."""
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "error")

        assert configure_logging() == ("ERROR", False)
        assert captured["level"] == "ERROR"

    def test_invalid_level_falls_back(
        self, captured: dict[str, object], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Invalid levels configure INFO and report the problem."""
        monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)

        assert configure_logging("chatty", force=True) == ("INFO", True)
        assert captured == {"level": "INFO", "force": True}
