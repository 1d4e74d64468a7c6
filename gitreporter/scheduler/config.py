"""Configuration for the scheduler engine and schedule operations.

Usage
-----
Create a configuration with defaults:

>>> config = SchedulerConfig()
>>> config.execution_timeout_s
60.0

Or load from environment variables:

>>> import os
>>> os.environ["GITREPORTER_POLL_INTERVAL_S"] = "15"
>>> SchedulerConfig.from_env().poll_interval_s
15.0

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import os

from gitreporter.common.time import resolve_timezone


@dc.dataclass(frozen=True, slots=True)
class SchedulerConfig:
    """Timing, concurrency and policy settings for scheduled runs.

    Attributes
    ----------
    poll_interval_s
        Seconds between poll cycles.
    execution_timeout_s
        End-to-end budget for one run. Runs exceeding it are cancelled and
        recorded as ``Timeout`` failures.
    source_timeout_s
        Budget for the commit fetch within a run.
    dispatch_timeout_s
        Budget for the delivery call within a run.
    claim_ttl_s
        Age after which an unreleased claim may be taken over. Must exceed
        ``execution_timeout_s``.
    reschedule_max_attempts
        Attempts made to persist the next run time before raising an
        operator alert.
    reschedule_backoff_s
        Initial delay between reschedule attempts; doubles each retry.
    timezone
        IANA zone in which cron expressions and report dates are evaluated.
    default_window_hours
        Commit window for a schedule's first run.
    max_concurrent_runs
        Upper bound on runs executing at once.
    max_active_schedules_per_owner
        Active schedules a single owner may hold.

    """

    poll_interval_s: float = 30.0
    execution_timeout_s: float = 60.0
    source_timeout_s: float = 20.0
    dispatch_timeout_s: float = 20.0
    claim_ttl_s: float = 300.0
    reschedule_max_attempts: int = 5
    reschedule_backoff_s: float = 0.5
    timezone: str = "UTC"
    default_window_hours: int = 24
    max_concurrent_runs: int = 10
    max_active_schedules_per_owner: int = 10

    def __post_init__(self) -> None:
        """Reject inconsistent settings early."""
        resolve_timezone(self.timezone)
        if self.claim_ttl_s <= self.execution_timeout_s:
            msg = (
                "claim_ttl_s must exceed execution_timeout_s, got "
                f"{self.claim_ttl_s} <= {self.execution_timeout_s}"
            )
            raise ValueError(msg)

    @property
    def claim_ttl(self) -> dt.timedelta:
        """Return the claim lease duration."""
        return dt.timedelta(seconds=self.claim_ttl_s)

    @property
    def default_window(self) -> dt.timedelta:
        """Return the first-run commit window."""
        return dt.timedelta(hours=self.default_window_hours)

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            msg = f"{env_var} must be an integer, got: {raw!r}"
            raise ValueError(msg) from exc
        if value < 1:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @staticmethod
    def _parse_positive_float(env_var: str, default: float) -> float:
        """Read a positive number of seconds, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            msg = f"{env_var} must be a number, got: {raw!r}"
            raise ValueError(msg) from exc
        if value <= 0:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls) -> SchedulerConfig:
        """Create configuration from ``GITREPORTER_*`` environment variables.

        Reads ``POLL_INTERVAL_S``, ``EXECUTION_TIMEOUT_S``, ``SOURCE_TIMEOUT_S``,
        ``DISPATCH_TIMEOUT_S``, ``CLAIM_TTL_S``, ``RESCHEDULE_MAX_ATTEMPTS``,
        ``RESCHEDULE_BACKOFF_S``, ``TIMEZONE``, ``DEFAULT_WINDOW_HOURS``,
        ``MAX_CONCURRENT_RUNS`` and ``MAX_ACTIVE_SCHEDULES``, each prefixed
        with ``GITREPORTER_``.

        Raises
        ------
        ValueError
            If a numeric variable is malformed or not positive, or the time
            zone is unknown.

        """
        defaults = cls()
        timezone = os.environ.get("GITREPORTER_TIMEZONE", "").strip()
        return cls(
            poll_interval_s=cls._parse_positive_float(
                "GITREPORTER_POLL_INTERVAL_S", defaults.poll_interval_s
            ),
            execution_timeout_s=cls._parse_positive_float(
                "GITREPORTER_EXECUTION_TIMEOUT_S", defaults.execution_timeout_s
            ),
            source_timeout_s=cls._parse_positive_float(
                "GITREPORTER_SOURCE_TIMEOUT_S", defaults.source_timeout_s
            ),
            dispatch_timeout_s=cls._parse_positive_float(
                "GITREPORTER_DISPATCH_TIMEOUT_S", defaults.dispatch_timeout_s
            ),
            claim_ttl_s=cls._parse_positive_float(
                "GITREPORTER_CLAIM_TTL_S", defaults.claim_ttl_s
            ),
            reschedule_max_attempts=cls._parse_positive_int(
                "GITREPORTER_RESCHEDULE_MAX_ATTEMPTS", defaults.reschedule_max_attempts
            ),
            reschedule_backoff_s=cls._parse_positive_float(
                "GITREPORTER_RESCHEDULE_BACKOFF_S", defaults.reschedule_backoff_s
            ),
            timezone=timezone or defaults.timezone,
            default_window_hours=cls._parse_positive_int(
                "GITREPORTER_DEFAULT_WINDOW_HOURS", defaults.default_window_hours
            ),
            max_concurrent_runs=cls._parse_positive_int(
                "GITREPORTER_MAX_CONCURRENT_RUNS", defaults.max_concurrent_runs
            ),
            max_active_schedules_per_owner=cls._parse_positive_int(
                "GITREPORTER_MAX_ACTIVE_SCHEDULES",
                defaults.max_active_schedules_per_owner,
            ),
        )
