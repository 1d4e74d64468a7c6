"""Five-field cron parsing and next-occurrence evaluation.

Public API
----------
CronExpression
    Validated expression expanded into explicit value sets.
InvalidCronExpressionError
    Validation failure raised when a schedule is written.
next_occurrence
    Pure function returning the next matching UTC instant.
parse_cron_expression
    Parse and validate expression text.

Example:
>>> import datetime as dt
>>> next_occurrence("0 9 * * 1", dt.datetime(2024, 7, 2, tzinfo=dt.UTC))
datetime.datetime(2024, 7, 8, 9, 0, tzinfo=datetime.timezone.utc)

"""

from gitreporter.cron.errors import InvalidCronExpressionError
from gitreporter.cron.evaluator import next_occurrence
from gitreporter.cron.expression import (
    CronExpression,
    parse_cron_expression,
    validate_cron_expression,
)

__all__ = [
    "CronExpression",
    "InvalidCronExpressionError",
    "next_occurrence",
    "parse_cron_expression",
    "validate_cron_expression",
]
