"""
Trend analysis of one account's variance percentage across periods.
"""

import warnings
from typing import Optional, Sequence

import numpy as np
from scipy import stats

from budget_variance.data.models import (
    HistoricalVariance, TrendDirection, TrendPoint, VarianceTrend,
)

# |slope| below this, in percentage points per period, is stable
STABLE_SLOPE = 0.5


def calculate_trend(historical: Sequence[HistoricalVariance]) -> Optional[VarianceTrend]:
    """
    Calculate direction and volatility of variance over time.

    Periods are ordered by label; labels are zero-padded so lexicographic
    order is chronological. Direction comes from the least-squares slope of
    variance percent against period index: a falling slope is "improving"
    (mis-estimation shrinking), a rising one "declining".

    Args:
        historical: Per-period variances for a single account

    Returns:
        VarianceTrend, or None when fewer than two periods are available
    """
    if historical is None or len(historical) < 2:
        return None

    ordered = sorted(historical, key=lambda h: h.period)
    percents = np.array([h.variance_percent for h in ordered], dtype=float)
    index = np.arange(1, len(ordered) + 1, dtype=float)

    average_variance = float(np.mean(percents))
    # population standard deviation
    volatility = float(np.std(percents))

    with warnings.catch_warnings():
        # constant series trip scipy's correlation warning; slope is still 0
        warnings.simplefilter("ignore")
        regression = stats.linregress(index, percents)
    slope = float(regression.slope)

    if abs(slope) < STABLE_SLOPE:
        direction = TrendDirection.STABLE
    elif slope < 0:
        direction = TrendDirection.IMPROVING
    else:
        direction = TrendDirection.DECLINING

    return VarianceTrend(
        periods=tuple(TrendPoint(h.period, h.variance, h.variance_percent) for h in ordered),
        direction=direction,
        average_variance=average_variance,
        volatility=volatility,
        slope=slope,
    )
