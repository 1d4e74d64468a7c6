"""Parsing and validation of five-field cron expressions.

Supported syntax per field is ``*``, single values, comma separated lists and
``a-b`` ranges. Steps (``*/n`` and ``a-b/n``) are accepted for the minute and
hour fields only. Day-of-week accepts ``0``-``7`` with both ``0`` and ``7``
meaning Sunday.

Examples
--------
>>> expr = parse_cron_expression("0 9 * * 1")
>>> sorted(expr.days_of_week)
[1]

"""

from __future__ import annotations

import dataclasses as dc
import re

from gitreporter.cron.errors import InvalidCronExpressionError

_NUMBER = re.compile(r"^\d+$", re.ASCII)

# Longest possible length of each month, February included in leap years.
_MAX_MONTH_DAYS = {
    1: 31,
    2: 29,
    3: 31,
    4: 30,
    5: 31,
    6: 30,
    7: 31,
    8: 31,
    9: 30,
    10: 31,
    11: 30,
    12: 31,
}


@dc.dataclass(frozen=True, slots=True)
class _FieldSpec:
    name: str
    low: int
    high: int
    allows_step: bool = False


_FIELDS: tuple[_FieldSpec, ...] = (
    _FieldSpec("minute", 0, 59, allows_step=True),
    _FieldSpec("hour", 0, 23, allows_step=True),
    _FieldSpec("day-of-month", 1, 31),
    _FieldSpec("month", 1, 12),
    _FieldSpec("day-of-week", 0, 7),
)


@dc.dataclass(frozen=True, slots=True)
class CronExpression:
    """Validated cron expression expanded into explicit value sets.

    Attributes
    ----------
    source
        Whitespace-normalised expression text.
    minutes, hours, days_of_month, months, days_of_week
        Values each field matches. Day-of-week uses ``0`` for Sunday.
    day_of_month_restricted, day_of_week_restricted
        ``False`` when the field was written as ``*``. When both are
        restricted a day matches if either field matches.

    """

    source: str
    minutes: frozenset[int]
    hours: frozenset[int]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]
    day_of_month_restricted: bool
    day_of_week_restricted: bool

    def __str__(self) -> str:
        """Return the normalised expression text."""
        return self.source


def _parse_number(expression: str, spec: _FieldSpec, token: str) -> int:
    if not _NUMBER.match(token):
        raise InvalidCronExpressionError.malformed(expression, spec.name, token)
    value = int(token)
    if not spec.low <= value <= spec.high:
        raise InvalidCronExpressionError.out_of_range(
            expression, spec.name, value, (spec.low, spec.high)
        )
    return value


def _parse_span(expression: str, spec: _FieldSpec, token: str) -> range:
    """Parse ``*``, ``a`` or ``a-b`` into an inclusive range of values."""
    if token == "*":
        return range(spec.low, spec.high + 1)
    if "-" in token:
        start_text, _, end_text = token.partition("-")
        start = _parse_number(expression, spec, start_text)
        end = _parse_number(expression, spec, end_text)
        if start > end:
            raise InvalidCronExpressionError.malformed(expression, spec.name, token)
        return range(start, end + 1)
    value = _parse_number(expression, spec, token)
    return range(value, value + 1)


def _parse_item(expression: str, spec: _FieldSpec, item: str) -> set[int]:
    if not item:
        raise InvalidCronExpressionError.malformed(expression, spec.name, item)
    if "/" not in item:
        return set(_parse_span(expression, spec, item))

    if not spec.allows_step:
        raise InvalidCronExpressionError.step_not_allowed(expression, spec.name)
    base, _, step_text = item.partition("/")
    if base != "*" and "-" not in base:
        raise InvalidCronExpressionError.malformed(expression, spec.name, item)
    if not _NUMBER.match(step_text) or int(step_text) == 0:
        raise InvalidCronExpressionError.malformed(expression, spec.name, item)
    span = _parse_span(expression, spec, base)
    return set(span[:: int(step_text)])


def _parse_field(expression: str, spec: _FieldSpec, text: str) -> frozenset[int]:
    values: set[int] = set()
    for item in text.split(","):
        values |= _parse_item(expression, spec, item)
    return frozenset(values)


def _can_fire(
    months: frozenset[int], days_of_month: frozenset[int], *, dow_restricted: bool
) -> bool:
    if dow_restricted:
        return True
    return any(
        day <= _MAX_MONTH_DAYS[month] for month in months for day in days_of_month
    )


def parse_cron_expression(text: str) -> CronExpression:
    """Parse and validate a five-field cron expression.

    Parameters
    ----------
    text
        Expression in ``minute hour day-of-month month day-of-week`` order.

    Returns
    -------
    CronExpression
        The expanded, validated expression.

    Raises
    ------
    InvalidCronExpressionError
        If the field count is wrong, a token is malformed or out of range, a
        step appears outside the minute or hour field, or no calendar date
        can ever match.

    """
    fields = text.split()
    if len(fields) != len(_FIELDS):
        raise InvalidCronExpressionError.field_count(text, len(fields))

    source = " ".join(fields)
    minutes, hours, doms, months, dows = (
        _parse_field(source, spec, field)
        for spec, field in zip(_FIELDS, fields, strict=True)
    )
    dows = frozenset(0 if day == 7 else day for day in dows)  # noqa: PLR2004
    dom_restricted = fields[2] != "*"
    dow_restricted = fields[4] != "*"

    if dom_restricted and not _can_fire(
        months, doms, dow_restricted=dow_restricted
    ):
        raise InvalidCronExpressionError.never_fires(source)

    return CronExpression(
        source=source,
        minutes=minutes,
        hours=hours,
        days_of_month=doms,
        months=months,
        days_of_week=dows,
        day_of_month_restricted=dom_restricted,
        day_of_week_restricted=dow_restricted,
    )


def validate_cron_expression(text: str) -> str:
    """Validate ``text`` and return its normalised form."""
    return parse_cron_expression(text).source
