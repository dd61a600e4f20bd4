"""
Unit tests for variance arithmetic and severity classification.
"""

import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from budget_variance.analysis.calculator import classify_severity, compute_variance
from budget_variance.config.account_types import AccountType
from budget_variance.config.settings import VarianceThresholds
from budget_variance.data.models import Direction, Severity


class TestComputeVariance:
    """Test cases for compute_variance."""

    def test_basic_overrun(self):
        calc = compute_variance(10000, 13000, AccountType.EXPENSE)

        assert calc.variance == 3000
        assert calc.variance_percent == pytest.approx(30.0)
        assert calc.direction == Direction.OVER

    def test_shortfall(self):
        calc = compute_variance(100000, 80000, AccountType.REVENUE)

        assert calc.variance == -20000
        assert calc.variance_percent == pytest.approx(-20.0)
        assert calc.direction == Direction.UNDER

    def test_both_zero_is_on_target(self):
        calc = compute_variance(0, 0)

        assert calc.variance == 0
        assert calc.variance_percent == 0
        assert calc.direction == Direction.ON_TARGET

    def test_zero_budget_reports_full_percent(self):
        assert compute_variance(0, 500).variance_percent == 100.0
        assert compute_variance(0, -500).variance_percent == -100.0
        assert compute_variance(0, 500).direction == Direction.OVER

    def test_negative_budget_uses_absolute_denominator(self):
        calc = compute_variance(-1000, -800)

        assert calc.variance == 200
        assert calc.variance_percent == pytest.approx(20.0)
        assert calc.direction == Direction.OVER

    def test_on_target_tolerance_boundary(self):
        assert compute_variance(10000, 10049).direction == Direction.ON_TARGET
        assert compute_variance(10000, 10051).direction == Direction.OVER
        assert compute_variance(10000, 9951).direction == Direction.ON_TARGET
        assert compute_variance(10000, 9949).direction == Direction.UNDER


class TestClassifySeverity:
    """Test cases for classify_severity."""

    @pytest.mark.parametrize("percent,account_type,direction,expected", [
        (20, AccountType.EXPENSE, Direction.OVER, Severity.CRITICAL),
        (20, AccountType.REVENUE, Direction.OVER, Severity.FAVORABLE),
        (-20, AccountType.REVENUE, Direction.UNDER, Severity.CRITICAL),
        (-20, AccountType.EXPENSE, Direction.UNDER, Severity.FAVORABLE),
        (12, AccountType.EXPENSE, Direction.OVER, Severity.WARNING),
        (-12, AccountType.LIABILITY, Direction.UNDER, Severity.WARNING),
        (3, AccountType.ASSET, Direction.OVER, Severity.NORMAL),
        (-3, AccountType.EXPENSE, Direction.UNDER, Severity.NORMAL),
        (-5, AccountType.EXPENSE, Direction.UNDER, Severity.FAVORABLE),
        (15, AccountType.ASSET, Direction.OVER, Severity.CRITICAL),
        (10, AccountType.EQUITY, Direction.OVER, Severity.FAVORABLE),
    ])
    def test_severity_table(self, percent, account_type, direction, expected):
        assert classify_severity(percent, account_type, direction) == expected

    def test_on_target_is_always_normal(self):
        assert classify_severity(0.4, AccountType.EXPENSE, Direction.ON_TARGET) == Severity.NORMAL
        assert classify_severity(-0.4, AccountType.REVENUE, Direction.ON_TARGET) == Severity.NORMAL

    def test_custom_thresholds(self):
        thresholds = VarianceThresholds(critical=25.0, warning=5.0, favorable=-2.0)

        assert classify_severity(20, AccountType.EXPENSE, Direction.OVER, thresholds) == Severity.WARNING
        assert classify_severity(30, AccountType.EXPENSE, Direction.OVER, thresholds) == Severity.CRITICAL
        assert classify_severity(-3, AccountType.EXPENSE, Direction.UNDER, thresholds) == Severity.FAVORABLE
