"""
Numeric helpers shared by the analysis modules.
"""

import math
from typing import Iterable


def safe_amount(value) -> float:
    """
    Coerce a raw amount to float.

    Missing values, blanks and NaN become 0.0; strings may carry thousands
    separators and a leading currency symbol.

    Args:
        value: Raw amount

    Returns:
        Float amount

    Raises:
        ValueError: If the value is not numeric
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        text = value.strip().replace(",", "").replace("$", "")
        if text.startswith("(") and text.endswith(")"):
            text = "-" + text[1:-1]
        if not text:
            return 0.0
        value = text
    amount = float(value)
    if math.isnan(amount):
        return 0.0
    return amount


def sum_amounts(values: Iterable[float]) -> float:
    """Sum amounts with compensated float addition."""
    return math.fsum(values)


def percent_of(part: float, whole: float) -> float:
    """Percentage of part relative to |whole|; 0 when whole is zero."""
    if whole == 0:
        return 0.0
    return (part / abs(whole)) * 100


def format_currency(amount: float) -> str:
    """Format an amount as US dollars, e.g. -1234.5 -> -$1,234.50."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
