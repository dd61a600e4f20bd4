"""
Variance arithmetic and severity classification for a single account.
"""

from dataclasses import dataclass
from typing import Optional

from budget_variance.config.account_types import AccountType, sign_multiplier
from budget_variance.config.settings import VarianceThresholds, DEFAULT_THRESHOLDS
from budget_variance.data.models import Direction, Severity

# |variance %| below this is on target
ON_TARGET_TOLERANCE = 0.5


@dataclass(frozen=True)
class VarianceCalculation:
    """Dollar variance, percentage variance and direction for one account."""
    variance: float
    variance_percent: float
    direction: Direction


def compute_variance(budget: float, actual: float,
                     account_type: Optional[AccountType] = None) -> VarianceCalculation:
    """
    Calculate variance between budget and actual.

    A zero budget with a non-zero actual reports +/-100% so the account is
    still flagged without dividing by zero.

    Args:
        budget: Planned amount
        actual: Realized amount
        account_type: Account classification (sign conventions are applied
            by classify_severity, not here)

    Returns:
        VarianceCalculation with variance = actual - budget
    """
    if budget == 0 and actual == 0:
        return VarianceCalculation(0.0, 0.0, Direction.ON_TARGET)

    variance = actual - budget

    if budget == 0:
        variance_percent = 100.0 if actual > 0 else -100.0
    else:
        variance_percent = (variance / abs(budget)) * 100

    if abs(variance_percent) < ON_TARGET_TOLERANCE:
        direction = Direction.ON_TARGET
    elif variance > 0:
        direction = Direction.OVER
    else:
        direction = Direction.UNDER

    return VarianceCalculation(variance, variance_percent, direction)


def classify_severity(variance_percent: float, account_type: AccountType,
                      direction: Direction,
                      thresholds: VarianceThresholds = DEFAULT_THRESHOLDS) -> Severity:
    """
    Classify a variance by severity for the given account type.

    Revenue, liability and equity shortfalls are bad; expense and asset
    overruns are bad. The variance is normalized so positive means bad
    before thresholds are applied.

    Args:
        variance_percent: Percentage variance
        account_type: Account classification
        direction: Direction from compute_variance
        thresholds: Severity cut points

    Returns:
        Severity bucket
    """
    if direction == Direction.ON_TARGET:
        return Severity.NORMAL

    normalized_variance = variance_percent * sign_multiplier(account_type)

    if normalized_variance <= thresholds.favorable:
        return Severity.FAVORABLE

    abs_variance = abs(normalized_variance)
    if abs_variance >= thresholds.critical:
        return Severity.CRITICAL
    if abs_variance >= thresholds.warning:
        return Severity.WARNING
    return Severity.NORMAL
