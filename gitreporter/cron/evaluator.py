"""Compute the next instant matching a cron expression.

Expressions are validated by :func:`parse_cron_expression` and then walked
forward with croniter in the configured zone. Results are always aware UTC
datetimes strictly after the reference instant.
"""

from __future__ import annotations

import datetime as dt

from croniter import CroniterBadDateError, croniter

from gitreporter.common.time import require_aware, resolve_timezone
from gitreporter.cron.errors import InvalidCronExpressionError
from gitreporter.cron.expression import CronExpression, parse_cron_expression


def next_occurrence(
    expression: CronExpression | str,
    after: dt.datetime,
    tz: str | dt.tzinfo = "UTC",
) -> dt.datetime:
    """Return the earliest instant strictly after ``after`` matching ``expression``.

    Parameters
    ----------
    expression
        A parsed :class:`CronExpression` or expression text. Text is parsed on
        every call, so hot paths should pass a parsed expression.
    after
        Timezone-aware reference instant.
    tz
        IANA zone name or tzinfo in which the fields are interpreted.

    Returns
    -------
    dt.datetime
        Matching instant in UTC.

    Raises
    ------
    InvalidCronExpressionError
        If ``expression`` is text that fails validation.
    TimezoneAwareRequiredError
        If ``after`` is naive.

    """
    parsed = (
        expression
        if isinstance(expression, CronExpression)
        else parse_cron_expression(expression)
    )
    zone = resolve_timezone(tz)
    reference = require_aware(after, "after")

    schedule = croniter(parsed.source, reference.astimezone(zone))
    try:
        resolved = schedule.get_next(dt.datetime).astimezone(dt.UTC)
        # Repeated wall-clock hours at a DST fall-back can map behind the reference.
        while resolved <= reference:
            resolved = schedule.get_next(dt.datetime).astimezone(dt.UTC)
    except CroniterBadDateError as exc:
        raise InvalidCronExpressionError.never_fires(parsed.source) from exc
    return resolved
