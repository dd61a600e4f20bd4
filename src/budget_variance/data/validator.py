"""
Input validation for budget and actual lines.
"""

import logging
import math
from decimal import Decimal
from numbers import Real
from typing import Sequence

from budget_variance.config.account_types import AccountType
from budget_variance.data.models import AccountLine, ActualLine, BudgetLine
from budget_variance.exceptions import ValidationError
from budget_variance.utils.logging_config import DATA_QUALITY_LOGGER
from budget_variance.utils.periods import parse_period


class InputValidator:
    """Structural validator for analysis input."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.quality_logger = logging.getLogger(DATA_QUALITY_LOGGER)

    def validate_lines(self, budget_lines: Sequence[BudgetLine],
                       actual_lines: Sequence[ActualLine]) -> None:
        """
        Validate budget and actual lines before analysis.

        Missing accounts on either side and zero budgets are data states,
        not errors; only structural problems are rejected here.

        Args:
            budget_lines: Planned amounts
            actual_lines: Realized amounts

        Raises:
            ValidationError: If the budget is empty or a line is malformed
        """
        if not budget_lines:
            raise ValidationError("Budget lines are required", code="MISSING_BUDGET",
                                  details={"budget_lines": 0})

        self._validate_side(budget_lines, "budget")
        self._validate_side(actual_lines, "actual")

        period = budget_lines[0].period
        mismatched = [line.account_id for line in list(budget_lines) + list(actual_lines)
                      if line.period != period]
        if mismatched:
            self.quality_logger.warning(f"{len(mismatched)} lines are not in analysis period {period}: "
                                f"{mismatched[:5]}")

    def _validate_side(self, lines: Sequence[AccountLine], side: str) -> None:
        checked_periods = set()
        for position, line in enumerate(lines):
            if not isinstance(line, AccountLine):
                raise ValidationError(
                    f"{side} line {position} is a {type(line).__name__}, expected an account line",
                    details={"side": side, "position": position})

            if not isinstance(line.account_id, str) or not line.account_id.strip():
                raise ValidationError(f"{side} line {position} has no account id",
                                      details={"side": side, "position": position})

            if not isinstance(line.account_type, AccountType):
                raise ValidationError(
                    f"{side} line for account {line.account_id} has invalid account type {line.account_type!r}",
                    code="INVALID_ACCOUNT_TYPE",
                    details={"side": side, "account_id": line.account_id})

            if not self._is_finite_amount(line.amount):
                raise ValidationError(
                    f"{side} line for account {line.account_id} has invalid amount {line.amount!r}",
                    code="INVALID_AMOUNT",
                    details={"side": side, "account_id": line.account_id, "amount": line.amount})

            if line.period not in checked_periods:
                parse_period(line.period)
                checked_periods.add(line.period)

    @staticmethod
    def _is_finite_amount(amount) -> bool:
        if isinstance(amount, Decimal):
            return amount.is_finite()
        return isinstance(amount, Real) and not isinstance(amount, bool) and math.isfinite(amount)

    @staticmethod
    def invalid_options(error: Exception) -> ValidationError:
        """Wrap an option parsing failure."""
        return ValidationError(f"Invalid analysis options: {error}", details={"error": str(error)})
