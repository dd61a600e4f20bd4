"""
Period label parsing.

Supported labels: ``YYYY-MM`` (month), ``YYYY-QN`` (quarter), ``YYYY`` (year)
and ISO dates ``YYYY-MM-DD``. Month and quarter labels are zero-padded, so
lexicographic order matches chronological order within a label style.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date

from budget_variance.exceptions import ValidationError

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_QUARTER_RE = re.compile(r"^(\d{4})-Q([1-4])$")
_YEAR_RE = re.compile(r"^(\d{4})$")
_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


@dataclass(frozen=True)
class PeriodRange:
    """Calendar span covered by a period label."""
    label: str
    start_date: date
    end_date: date


def parse_period(label: str) -> PeriodRange:
    """
    Resolve a period label to its first and last calendar day.

    Args:
        label: Period label such as "2024-01", "2024-Q2" or "2024"

    Returns:
        PeriodRange covering the label

    Raises:
        ValidationError: If the label is not a recognised period
    """
    if not isinstance(label, str):
        raise ValidationError(f"Period must be a string, got {type(label).__name__}",
                              code="INVALID_PERIOD", details={"period": label})
    text = label.strip()

    try:
        match = _MONTH_RE.match(text)
        if match:
            year, month = int(match.group(1)), int(match.group(2))
            last_day = calendar.monthrange(year, month)[1]
            return PeriodRange(text, date(year, month, 1), date(year, month, last_day))

        match = _QUARTER_RE.match(text)
        if match:
            year, quarter = int(match.group(1)), int(match.group(2))
            start_month = (quarter - 1) * 3 + 1
            end_month = start_month + 2
            last_day = calendar.monthrange(year, end_month)[1]
            return PeriodRange(text, date(year, start_month, 1), date(year, end_month, last_day))

        match = _YEAR_RE.match(text)
        if match:
            year = int(match.group(1))
            return PeriodRange(text, date(year, 1, 1), date(year, 12, 31))

        match = _DATE_RE.match(text)
        if match:
            day = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            return PeriodRange(text, day, day)
    except ValueError:
        # month 13, Feb 30 and the like
        pass

    raise ValidationError(f"Unsupported period format: {label!r}",
                          code="INVALID_PERIOD", details={"period": label})


def is_valid_period(label: str) -> bool:
    """Check whether a label parses as a period."""
    try:
        parse_period(label)
    except ValidationError:
        return False
    return True
