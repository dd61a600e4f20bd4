"""
End-to-end tests for the variance engine.
"""

import math
from decimal import Decimal

import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from budget_variance import analyze, create_engine
from budget_variance.analysis.engine import VarianceEngine
from budget_variance.config.account_types import AccountType
from budget_variance.config.settings import VarianceThresholds
from budget_variance.data.models import (
    ActualLine, AnalysisOptions, AnalysisResult, BudgetLine, Direction,
    HistoricalVariance, Severity, TrendDirection,
)
from budget_variance.exceptions import AnalysisError, ValidationError

PERIOD = "2024-03"


class TestVarianceEngine:
    """Test cases for VarianceEngine.analyze."""

    @pytest.fixture
    def engine(self):
        return VarianceEngine()

    @pytest.fixture
    def budget_lines(self):
        return [
            BudgetLine("rev", "Revenue", AccountType.REVENUE, 0, PERIOD),
            BudgetLine("sales", "Product Sales", AccountType.REVENUE, 100000, PERIOD, "4000", "rev"),
            BudgetLine("opex", "Operating Expenses", AccountType.EXPENSE, 0, PERIOD),
            BudgetLine("marketing", "Marketing", AccountType.EXPENSE, 10000, PERIOD, "6200", "opex"),
            BudgetLine("rent", "Rent", AccountType.EXPENSE, 5000, PERIOD, "6100", "opex"),
        ]

    @pytest.fixture
    def actual_lines(self):
        return [
            ActualLine("sales", "Product Sales", AccountType.REVENUE, 80000, PERIOD, "4000", "rev"),
            ActualLine("marketing", "Marketing", AccountType.EXPENSE, 13000, PERIOD, "6200", "opex"),
            ActualLine("rent", "Rent", AccountType.EXPENSE, 5000, PERIOD, "6100", "opex"),
        ]

    def test_expense_overrun_end_to_end(self, engine):
        result = engine.analyze(
            [BudgetLine("marketing", "Marketing", AccountType.EXPENSE, 10000, PERIOD)],
            [ActualLine("marketing", "Marketing", AccountType.EXPENSE, 13000, PERIOD)],
        )

        record = result.variances[0]
        assert record.severity == Severity.CRITICAL
        assert record.variance_percent == pytest.approx(30.0)
        assert record.direction == Direction.OVER
        insight = result.insights[0]
        assert "over budget" in insight.message
        assert "cost controls" in insight.recommendation
        assert insight.message in record.insights

    def test_revenue_shortfall_end_to_end(self, engine):
        result = engine.analyze(
            [BudgetLine("sales", "Sales", AccountType.REVENUE, 100000, PERIOD)],
            [ActualLine("sales", "Sales", AccountType.REVENUE, 80000, PERIOD)],
        )

        assert result.variances[0].severity == Severity.CRITICAL
        insight = result.insights[0]
        assert "below budget" in insight.message
        assert "revenue pipeline" in insight.recommendation

    def test_totals_and_summary(self, engine, budget_lines, actual_lines):
        result = engine.analyze(budget_lines, actual_lines)

        assert isinstance(result, AnalysisResult)
        assert result.period == PERIOD
        assert result.total_budget == 115000
        assert result.total_actual == 98000
        assert result.total_variance == -17000
        assert result.total_variance_percent == pytest.approx(-17000 / 115000 * 100)
        assert result.summary.total_accounts == 3
        assert result.summary.critical_count == 2
        assert result.generated_at.tzinfo is not None

    def test_hierarchy_mode(self, engine, budget_lines, actual_lines):
        result = engine.analyze(budget_lines, actual_lines, {"includeChildren": True})

        assert [r.account_id for r in result.variances] == ["rev", "opex"]
        opex = result.find("opex")
        assert math.isclose(opex.budget, 15000)
        assert math.isclose(opex.actual, 18000)
        assert opex.severity == Severity.CRITICAL
        assert result.summary.total_accounts == 5
        assert result.find("marketing").level == 1

    def test_insights_disabled(self, engine, budget_lines, actual_lines):
        result = engine.analyze(budget_lines, actual_lines, AnalysisOptions(generate_insights=False))

        assert result.insights == ()
        assert all(r.insights == () for r in result.iter_records())

    def test_empty_actuals_allowed(self, engine, budget_lines):
        result = engine.analyze(budget_lines, [])

        assert result.total_actual == 0
        assert all(r.actual == 0 for r in result.iter_records())

    def test_trends_attached(self, engine):
        history = [
            HistoricalVariance(f"2024-0{m}", 10000, 10000 + m * 500, m * 500, m * 5.0)
            for m in (1, 2)
        ]
        result = engine.analyze(
            [BudgetLine("marketing", "Marketing", AccountType.EXPENSE, 10000, PERIOD)],
            [ActualLine("marketing", "Marketing", AccountType.EXPENSE, 11200, PERIOD)],
            AnalysisOptions(include_trends=True),
            historical={"marketing": history},
        )

        record = result.variances[0]
        assert record.trend.direction == TrendDirection.DECLINING
        assert "take corrective action soon" in result.insights[0].recommendation

    def test_per_call_thresholds(self, engine):
        budget = [BudgetLine("rent", "Rent", AccountType.EXPENSE, 1000, PERIOD)]
        actual = [ActualLine("rent", "Rent", AccountType.EXPENSE, 1120, PERIOD)]

        assert engine.analyze(budget, actual).variances[0].severity == Severity.WARNING
        strict = engine.analyze(budget, actual, {"thresholds": {"critical": 11.0, "warning": 5.0}})
        assert strict.variances[0].severity == Severity.CRITICAL

    def test_engine_thresholds(self):
        engine = create_engine(thresholds=VarianceThresholds(critical=50.0, warning=40.0))

        result = engine.analyze([BudgetLine("rent", "Rent", AccountType.EXPENSE, 1000, PERIOD)],
                                [ActualLine("rent", "Rent", AccountType.EXPENSE, 1300, PERIOD)])

        assert result.variances[0].severity == Severity.NORMAL

    def test_module_level_analyze(self):
        result = analyze([BudgetLine("rent", "Rent", "expense", 1000, PERIOD)])

        assert result.variances[0].variance == -1000

    def test_aggregate_insight_same_in_flat_and_tree_mode(self, engine):
        budgets = [
            BudgetLine("rev", "Revenue", AccountType.REVENUE, 100000, PERIOD),
            BudgetLine("rev-sub", "Licensing", AccountType.REVENUE, 100, PERIOD, parent_account_id="rev"),
        ]
        actuals = [
            ActualLine("rev", "Revenue", AccountType.REVENUE, 50000, PERIOD),
            ActualLine("rev-sub", "Licensing", AccountType.REVENUE, 100, PERIOD, parent_account_id="rev"),
        ]

        def aggregate(include_children):
            result = engine.analyze(budgets, actuals, AnalysisOptions(include_children=include_children))
            return [(i.severity, i.impact, i.message) for i in result.insights
                    if i.account_id == "aggregate"]

        assert aggregate(False) == [(Severity.WARNING, 50000.0,
                                     "Net financial variance is $50,000.00 unfavorable.")]
        assert aggregate(True) == aggregate(False)

    def test_decimal_amounts(self, engine):
        budget = BudgetLine("marketing", "Marketing", AccountType.EXPENSE, Decimal("10000.00"), PERIOD)
        actual = ActualLine("marketing", "Marketing", AccountType.EXPENSE, Decimal("13000.00"), PERIOD)

        result = engine.analyze([budget], [actual])

        assert isinstance(budget.amount, float)
        assert result.variances[0].variance == pytest.approx(3000.0)
        assert result.variances[0].severity == Severity.CRITICAL

    def test_deep_account_chain(self, engine):
        depth = 1200
        budgets = [BudgetLine(f"a{i}", f"Account {i}", AccountType.EXPENSE, 10, PERIOD,
                              parent_account_id=f"a{i - 1}" if i else None) for i in range(depth)]
        actuals = [ActualLine(f"a{i}", f"Account {i}", AccountType.EXPENSE, 12, PERIOD,
                              parent_account_id=f"a{i - 1}" if i else None) for i in range(depth)]

        result = engine.analyze(budgets, actuals, AnalysisOptions(include_children=True))

        root = result.variances[0]
        assert len(result.variances) == 1
        assert root.budget == pytest.approx(10 * depth)
        assert root.variance == pytest.approx(2 * depth)
        assert result.find(f"a{depth - 1}").level == depth - 1
        assert result.summary.total_accounts == depth
        assert [r.account_id for r in root.iter_tree()][-1] == f"a{depth - 1}"


class TestEngineErrors:
    """Test cases for validation and error wrapping."""

    @pytest.fixture
    def engine(self):
        return VarianceEngine()

    def test_missing_budget(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.analyze([], [])
        assert exc_info.value.code == "MISSING_BUDGET"

    def test_invalid_period(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.analyze([BudgetLine("rent", "Rent", AccountType.EXPENSE, 1000, "March")])
        assert exc_info.value.code == "INVALID_PERIOD"

    def test_invalid_amount(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.analyze([BudgetLine("rent", "Rent", AccountType.EXPENSE, float("nan"), PERIOD)])
        assert exc_info.value.code == "INVALID_AMOUNT"

    def test_non_finite_decimal_amount(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.analyze([BudgetLine("rent", "Rent", AccountType.EXPENSE, Decimal("NaN"), PERIOD)])
        assert exc_info.value.code == "INVALID_AMOUNT"

    def test_invalid_account_type(self):
        with pytest.raises(ValidationError) as exc_info:
            BudgetLine("rent", "Rent", "overhead", 1000, PERIOD)
        assert exc_info.value.code == "INVALID_ACCOUNT_TYPE"

    def test_unknown_option(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.analyze([BudgetLine("rent", "Rent", AccountType.EXPENSE, 1000, PERIOD)],
                           options={"includeEverything": True})
        assert exc_info.value.code == "INVALID_INPUT"

    def test_inverted_thresholds_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.analyze([BudgetLine("rent", "Rent", AccountType.EXPENSE, 1000, PERIOD)],
                           options={"thresholds": {"critical": 5.0, "warning": 10.0}})

    def test_unexpected_failure_wrapped(self, engine, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine, "build_variance_tree", boom)

        with pytest.raises(AnalysisError) as exc_info:
            engine.analyze([BudgetLine("rent", "Rent", AccountType.EXPENSE, 1000, PERIOD)])
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert exc_info.value.__cause__ is exc_info.value.cause
