"""Errors raised while validating cron expressions."""

from __future__ import annotations

from gitreporter.errors import ValidationError


class InvalidCronExpressionError(ValidationError):
    """Raised when a cron expression cannot be accepted."""

    def __init__(self, expression: str, detail: str) -> None:
        """Record the offending expression alongside a human readable detail."""
        super().__init__(f"Invalid cron expression {expression!r}: {detail}")
        self.expression = expression
        self.detail = detail

    @classmethod
    def field_count(cls, expression: str, count: int) -> InvalidCronExpressionError:
        """Return an error for expressions without exactly five fields."""
        return cls(expression, f"expected 5 fields, got {count}")

    @classmethod
    def out_of_range(
        cls, expression: str, field: str, value: int, bounds: tuple[int, int]
    ) -> InvalidCronExpressionError:
        """Return an error for a value outside the field's bounds."""
        low, high = bounds
        return cls(expression, f"{field} value {value} outside {low}-{high}")

    @classmethod
    def malformed(
        cls, expression: str, field: str, token: str
    ) -> InvalidCronExpressionError:
        """Return an error for a token that is not valid cron syntax."""
        return cls(expression, f"malformed {field} token {token!r}")

    @classmethod
    def step_not_allowed(
        cls, expression: str, field: str
    ) -> InvalidCronExpressionError:
        """Return an error for step syntax outside minute and hour fields."""
        return cls(expression, f"step syntax is not supported for {field}")

    @classmethod
    def never_fires(cls, expression: str) -> InvalidCronExpressionError:
        """Return an error for expressions with no matching calendar day."""
        return cls(expression, "no calendar date satisfies the expression")
