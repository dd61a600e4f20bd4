"""
Variance analysis engine: the public entry point that validates input,
builds the variance forest, attaches trends and insights and assembles
the analysis result.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from budget_variance.config.account_types import AccountType
from budget_variance.config.settings import Settings, VarianceThresholds, DEFAULT_THRESHOLDS
from budget_variance.data.models import (
    ActualLine, AnalysisOptions, AnalysisResult, AnalysisSummary, BudgetLine,
    Direction, HistoricalVariance, Insight, Severity, VarianceRecord, VarianceTrend, fold_tree,
)
from budget_variance.data.validator import InputValidator
from budget_variance.analysis.calculator import (
    VarianceCalculation, classify_severity, compute_variance,
)
from budget_variance.analysis.hierarchy import VarianceTree, build_variance_tree
from budget_variance.analysis.insights import InsightGenerator
from budget_variance.analysis.trends import calculate_trend
from budget_variance.exceptions import AnalysisError, VarianceEngineError
from budget_variance.utils.calculations import percent_of, sum_amounts

OptionsLike = Union[AnalysisOptions, Mapping[str, Any], None]
HistoricalData = Mapping[str, Sequence[HistoricalVariance]]


class VarianceEngine:
    """Budget-vs-actual variance analysis engine."""

    def __init__(self, thresholds: Optional[VarianceThresholds] = None,
                 settings: Optional[Settings] = None):
        """
        Args:
            thresholds: Severity cut points; overrides settings when both are given
            settings: Loaded application settings
        """
        if thresholds is None:
            thresholds = settings.thresholds if settings is not None else DEFAULT_THRESHOLDS
        thresholds.validate()
        self.thresholds = thresholds
        self.insight_generator = InsightGenerator(settings.insight_settings if settings else None)
        self.validator = InputValidator()
        self.logger = logging.getLogger(__name__)

    def compute_variance(self, budget: float, actual: float,
                         account_type: AccountType) -> VarianceCalculation:
        """Variance, percentage and direction for one account."""
        return compute_variance(budget, actual, account_type)

    def classify_severity(self, variance_percent: float, account_type: AccountType,
                          direction: Direction) -> Severity:
        """Severity using this engine's thresholds."""
        return classify_severity(variance_percent, account_type, direction, self.thresholds)

    def build_variance_tree(self, budget_lines: Sequence[BudgetLine],
                            actual_lines: Sequence[ActualLine],
                            options: OptionsLike = None) -> VarianceTree:
        """Variance forest (or flat list) for the given lines."""
        options = AnalysisOptions.from_value(options)
        return build_variance_tree(budget_lines, actual_lines, options,
                                   options.thresholds or self.thresholds)

    def generate_insights(self, records: Sequence[VarianceRecord],
                          include_normal: bool = False,
                          account_records: Optional[Sequence[VarianceRecord]] = None) -> List[Insight]:
        """Ranked insights for a forest or flat list of records."""
        return self.insight_generator.generate(records, include_normal=include_normal,
                                               account_records=account_records)

    def calculate_trend(self, historical: Sequence[HistoricalVariance]) -> Optional[VarianceTrend]:
        """Trend for one account's historical variances."""
        return calculate_trend(historical)

    def analyze(self, budget_lines: Sequence[BudgetLine],
                actual_lines: Optional[Sequence[ActualLine]] = None,
                options: OptionsLike = None,
                historical: Optional[HistoricalData] = None) -> AnalysisResult:
        """
        Perform a full variance analysis.

        Args:
            budget_lines: Planned amounts; must not be empty
            actual_lines: Realized amounts; may be empty (actuals default to 0)
            options: AnalysisOptions or a mapping of option names
            historical: Account id -> past variances, used with include_trends

        Returns:
            AnalysisResult for the period of the first budget line

        Raises:
            ValidationError: If the input is structurally invalid
            AnalysisError: If computation fails unexpectedly
        """
        try:
            options = AnalysisOptions.from_value(options)
            if options.thresholds is not None:
                options.thresholds.validate()
        except (TypeError, ValueError) as e:
            raise self.validator.invalid_options(e) from e

        actual_lines = list(actual_lines or [])
        budget_lines = list(budget_lines or [])
        self.validator.validate_lines(budget_lines, actual_lines)

        try:
            return self._analyze(budget_lines, actual_lines, options, historical)
        except VarianceEngineError:
            raise
        except Exception as e:
            self.logger.error(f"Variance analysis failed: {e}")
            raise AnalysisError("Variance analysis failed", cause=e,
                                details={"budget_lines": len(budget_lines),
                                         "actual_lines": len(actual_lines)}) from e

    def _analyze(self, budget_lines: List[BudgetLine], actual_lines: List[ActualLine],
                 options: AnalysisOptions,
                 historical: Optional[HistoricalData]) -> AnalysisResult:
        period = budget_lines[0].period
        self.logger.info(f"Starting variance analysis for {period}: "
                         f"{len(budget_lines)} budget lines, {len(actual_lines)} actual lines")

        tree = self.build_variance_tree(budget_lines, actual_lines, options)
        roots = list(tree.roots)

        if options.include_trends and historical:
            trends = self._calculate_trends(historical)
            roots = [self._annotate(root, trends=trends) for root in roots]

        insights: List[Insight] = []
        if options.generate_insights:
            insights = self.generate_insights(roots, include_normal=options.include_normal_insights,
                                              account_records=tree.account_records)
            messages: Dict[str, List[str]] = {}
            for insight in insights:
                messages.setdefault(insight.account_id, []).append(insight.message)
            roots = [self._annotate(root, messages=messages) for root in roots]

        total_budget = sum_amounts(b.amount for b in budget_lines)
        total_actual = sum_amounts(a.amount for a in actual_lines)
        total_variance = total_actual - total_budget

        summary = self._summarize(roots)
        result = AnalysisResult(
            period=period,
            total_budget=total_budget,
            total_actual=total_actual,
            total_variance=total_variance,
            total_variance_percent=percent_of(total_variance, total_budget),
            variances=tuple(roots),
            insights=tuple(insights),
            summary=summary,
            generated_at=datetime.now(timezone.utc),
            demoted_account_ids=tree.demoted_account_ids,
        )

        self.logger.info(f"Variance analysis completed for {period}: {summary.total_accounts} accounts, "
                         f"{summary.critical_count} critical, {summary.warning_count} warning, "
                         f"{len(insights)} insights")
        return result

    def _calculate_trends(self, historical: HistoricalData) -> Dict[str, VarianceTrend]:
        trends = {}
        for account_id, series in historical.items():
            trend = calculate_trend(series)
            if trend is not None:
                trends[account_id] = trend
        return trends

    def _annotate(self, record: VarianceRecord,
                  trends: Optional[Dict[str, VarianceTrend]] = None,
                  messages: Optional[Dict[str, List[str]]] = None) -> VarianceRecord:
        """Return a copy of the subtree with trends and/or insight messages attached."""
        def combine(node: VarianceRecord, children: List[VarianceRecord], depth: int) -> VarianceRecord:
            changes: Dict[str, Any] = {"children": tuple(children)}
            if trends and node.account_id in trends:
                changes["trend"] = trends[node.account_id]
            if messages and node.account_id in messages:
                changes["insights"] = tuple(messages[node.account_id])
            return replace(node, **changes)

        return fold_tree(record, lambda r: r.children, combine)

    @staticmethod
    def _summarize(roots: Sequence[VarianceRecord]) -> AnalysisSummary:
        counts = {severity: 0 for severity in Severity}
        total = 0
        for root in roots:
            for record in root.iter_tree():
                counts[record.severity] += 1
                total += 1
        return AnalysisSummary(
            critical_count=counts[Severity.CRITICAL],
            warning_count=counts[Severity.WARNING],
            favorable_count=counts[Severity.FAVORABLE],
            total_accounts=total,
        )


default_engine = VarianceEngine()


def create_engine(thresholds: Optional[VarianceThresholds] = None,
                  settings: Optional[Settings] = None) -> VarianceEngine:
    """Factory for engines with custom configuration."""
    return VarianceEngine(thresholds=thresholds, settings=settings)


def analyze(budget_lines: Sequence[BudgetLine],
            actual_lines: Optional[Sequence[ActualLine]] = None,
            options: OptionsLike = None,
            historical: Optional[HistoricalData] = None) -> AnalysisResult:
    """Run an analysis with the default engine."""
    return default_engine.analyze(budget_lines, actual_lines, options, historical)
