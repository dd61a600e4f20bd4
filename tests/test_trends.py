"""
Unit tests for variance trend analysis.
"""

import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from budget_variance.analysis.trends import calculate_trend
from budget_variance.data.models import HistoricalVariance, TrendDirection


def history(*percents, start_month=1):
    return [
        HistoricalVariance(period=f"2024-{start_month + i:02d}", budget=1000.0,
                           actual=1000.0 + p * 10, variance=p * 10, variance_percent=p)
        for i, p in enumerate(percents)
    ]


class TestCalculateTrend:
    """Test cases for calculate_trend."""

    def test_requires_two_periods(self):
        assert calculate_trend([]) is None
        assert calculate_trend(history(5.0)) is None

    def test_rising_variance_is_declining(self):
        trend = calculate_trend(history(2.0, 6.0, 10.0, 14.0))

        assert trend.direction == TrendDirection.DECLINING
        assert trend.slope == pytest.approx(4.0)
        assert trend.average_variance == pytest.approx(8.0)

    def test_falling_variance_is_improving(self):
        trend = calculate_trend(history(14.0, 10.0, 6.0, 2.0))

        assert trend.direction == TrendDirection.IMPROVING
        assert trend.slope == pytest.approx(-4.0)

    def test_flat_variance_is_stable(self):
        trend = calculate_trend(history(5.0, 5.0, 5.0))

        assert trend.direction == TrendDirection.STABLE
        assert trend.volatility == 0
        assert trend.slope == pytest.approx(0.0)

    def test_volatility_is_population_std(self):
        trend = calculate_trend(history(2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0))

        assert trend.average_variance == pytest.approx(5.0)
        assert trend.volatility == pytest.approx(2.0)

    def test_periods_sorted_before_fitting(self):
        unordered = list(reversed(history(2.0, 6.0, 10.0)))

        trend = calculate_trend(unordered)

        assert [p.period for p in trend.periods] == ["2024-01", "2024-02", "2024-03"]
        assert trend.direction == TrendDirection.DECLINING
