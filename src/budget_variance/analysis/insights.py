"""
Insight generation: turns computed variances into ranked, severity-tagged
observations with recommendations.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from budget_variance.config.account_types import AccountType
from budget_variance.data.models import (
    Confidence, Insight, Severity, TrendDirection, VarianceRecord,
)
from budget_variance.utils.calculations import format_currency, sum_amounts

logger = logging.getLogger(__name__)

AGGREGATE_ACCOUNT_ID = "aggregate"
SYSTEMIC_ACCOUNT_ID = "systematic"

SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.WARNING: 1,
    Severity.FAVORABLE: 2,
    Severity.NORMAL: 3,
}

DEFAULT_INSIGHT_SETTINGS: Dict[str, Any] = {
    "aggregate_min_impact": 1000.0,
    "aggregate_critical_impact": 50000.0,
    "systemic_critical_count": 3,
    "top_accounts": 3,
}

DECLINING_TREND_NOTE = " Trend shows worsening variance - take corrective action soon."


class InsightGenerator:
    """Generates per-account and whole-analysis insights."""

    def __init__(self, insight_settings: Optional[Dict[str, Any]] = None):
        self.config = dict(DEFAULT_INSIGHT_SETTINGS)
        if insight_settings:
            self.config.update(insight_settings)
        self.logger = logging.getLogger(__name__)

    def generate(self, records: Iterable[VarianceRecord],
                 include_normal: bool = False,
                 account_records: Optional[Iterable[VarianceRecord]] = None) -> List[Insight]:
        """
        Generate insights for a variance forest or flat list.

        Per-account insights cover every record at any depth and are ranked
        by severity then dollar impact. The aggregate and systemic insights
        look at each account's own amounts so rolled-up parents are not
        double counted; they are evaluated regardless of the per-account
        filter.

        Args:
            records: Root records (or a flat list)
            include_normal: Also describe favorable and normal records
            account_records: Each account's own record before roll-up; when
                omitted the leaves of ``records`` are used

        Returns:
            Ranked list of insights
        """
        all_records, leaves = self._flatten(records)
        if account_records is not None:
            leaves = list(account_records)

        if include_normal:
            significant = all_records
        else:
            significant = [r for r in all_records if r.severity in (Severity.CRITICAL, Severity.WARNING)]

        account_insights = [self.account_insight(r) for r in significant]
        account_insights = [i for i in account_insights if i is not None]
        account_insights.sort(key=lambda i: (SEVERITY_RANK[i.severity], -i.impact))

        insights = account_insights
        aggregate = self.aggregate_insight(leaves)
        if aggregate is not None:
            insights.append(aggregate)
        systemic = self.systemic_insight(leaves)
        if systemic is not None:
            insights.append(systemic)

        self.logger.debug(f"Generated {len(insights)} insights from {len(all_records)} records")
        return insights

    @staticmethod
    def _flatten(records: Iterable[VarianceRecord]) -> Tuple[List[VarianceRecord], List[VarianceRecord]]:
        all_records: List[VarianceRecord] = []
        for root in records:
            all_records.extend(root.iter_tree())
        leaves = [r for r in all_records if r.is_leaf]
        return all_records, leaves

    def account_insight(self, record: VarianceRecord) -> Optional[Insight]:
        """Build the insight for a single record."""
        if record.severity == Severity.NORMAL:
            return self._within_tolerance(record)

        builders = {
            AccountType.REVENUE: self._revenue_insight,
            AccountType.EXPENSE: self._expense_insight,
            AccountType.ASSET: self._asset_insight,
            AccountType.LIABILITY: self._liability_insight,
            AccountType.EQUITY: self._equity_insight,
        }
        message, recommendation, confidence = builders[record.account_type](record)

        return Insight(
            account_id=record.account_id,
            account_name=record.account_name,
            severity=record.severity,
            message=message,
            recommendation=recommendation,
            impact=abs(record.variance),
            confidence=confidence,
        )

    def _within_tolerance(self, record: VarianceRecord) -> Insight:
        return Insight(
            account_id=record.account_id,
            account_name=record.account_name,
            severity=Severity.NORMAL,
            message=(f"{record.account_name} is within tolerance "
                     f"({record.variance_percent:+.1f}% vs budget)."),
            impact=abs(record.variance),
            confidence=Confidence.LOW,
        )

    def _revenue_insight(self, record: VarianceRecord) -> Tuple[str, str, Confidence]:
        pct = abs(record.variance_percent)
        amount = format_currency(abs(record.variance))

        if record.variance < 0:
            message = f"{record.account_name} is {pct:.1f}% below budget ({amount} shortfall)."
            if record.severity == Severity.CRITICAL:
                return (message,
                        "Urgent: Review revenue pipeline, pricing strategy, and sales performance. "
                        "Consider cost reduction measures if revenue shortfall persists.",
                        Confidence.HIGH)
            return (message,
                    "Monitor closely. Review sales forecasts and identify any temporary factors "
                    "affecting revenue.",
                    Confidence.MEDIUM)

        message = f"{record.account_name} is {pct:.1f}% above budget ({amount} surplus)."
        return (message,
                "Favorable variance. Analyze contributing factors and consider if this is "
                "sustainable for future budgeting.",
                Confidence.MEDIUM)

    def _expense_insight(self, record: VarianceRecord) -> Tuple[str, str, Confidence]:
        pct = abs(record.variance_percent)
        amount = format_currency(abs(record.variance))

        if record.variance > 0:
            message = f"{record.account_name} is {pct:.1f}% over budget ({amount} overspend)."
            if record.severity == Severity.CRITICAL:
                recommendation = ("Critical overspend. Immediately review spending approvals, "
                                  "identify unauthorized expenses, and implement cost controls.")
                confidence = Confidence.HIGH
            else:
                recommendation = ("Review expense drivers and ensure proper authorization for "
                                  "additional spending.")
                confidence = Confidence.MEDIUM

            if record.trend is not None and record.trend.direction == TrendDirection.DECLINING:
                recommendation += DECLINING_TREND_NOTE
                confidence = Confidence.HIGH
            return message, recommendation, confidence

        message = f"{record.account_name} is {pct:.1f}% under budget ({amount} savings)."
        return (message,
                "Favorable variance. Verify service levels are being maintained and no critical "
                "spending was deferred.",
                Confidence.LOW)

    def _asset_insight(self, record: VarianceRecord) -> Tuple[str, str, Confidence]:
        pct = abs(record.variance_percent)
        confidence = Confidence.LOW if record.severity == Severity.FAVORABLE else Confidence.MEDIUM
        if record.variance < 0:
            return (f"{record.account_name} is {pct:.1f}% below expected levels.",
                    "Review asset utilization and potential impairment. Verify accuracy of asset values.",
                    confidence)
        return (f"{record.account_name} is {pct:.1f}% above expected levels.",
                "Review recent asset acquisitions and ensure proper capitalization policies.",
                confidence)

    def _liability_insight(self, record: VarianceRecord) -> Tuple[str, str, Confidence]:
        pct = abs(record.variance_percent)
        confidence = Confidence.LOW if record.severity == Severity.FAVORABLE else Confidence.MEDIUM
        if record.variance < 0:
            return (f"{record.account_name} is {pct:.1f}% below planned levels.",
                    "Confirm obligations were settled as scheduled and no liabilities are unrecorded.",
                    confidence)
        return (f"{record.account_name} is {pct:.1f}% above planned levels.",
                "Review new borrowings and accrued obligations against the financing plan.",
                confidence)

    def _equity_insight(self, record: VarianceRecord) -> Tuple[str, str, Confidence]:
        pct = abs(record.variance_percent)
        confidence = Confidence.LOW if record.severity == Severity.FAVORABLE else Confidence.MEDIUM
        if record.variance < 0:
            return (f"{record.account_name} is {pct:.1f}% below planned levels.",
                    "Review retained earnings, distributions and capital movements against plan.",
                    confidence)
        return (f"{record.account_name} is {pct:.1f}% above planned levels.",
                "Verify capital contributions and retained earnings movements are correctly recorded.",
                confidence)

    def aggregate_insight(self, records: List[VarianceRecord]) -> Optional[Insight]:
        """Net impact of revenue and expense variances across the analysis."""
        revenue_variance = sum_amounts(r.variance for r in records if r.account_type == AccountType.REVENUE)
        expense_variance = sum_amounts(r.variance for r in records if r.account_type == AccountType.EXPENSE)
        net_impact = revenue_variance - expense_variance

        if abs(net_impact) <= self.config["aggregate_min_impact"]:
            return None

        is_positive = net_impact > 0
        severity = (Severity.CRITICAL if abs(net_impact) > self.config["aggregate_critical_impact"]
                    else Severity.WARNING)
        if is_positive:
            recommendation = ("Strong performance. Consider reinvesting surplus or adjusting "
                              "future budgets.")
        else:
            top = self.top_variances(records, int(self.config["top_accounts"]))
            recommendation = "Negative net variance. Priority areas: " + ", ".join(top)

        return Insight(
            account_id=AGGREGATE_ACCOUNT_ID,
            account_name="Overall Financial Performance",
            severity=severity,
            message=(f"Net financial variance is {format_currency(abs(net_impact))} "
                     f"{'favorable' if is_positive else 'unfavorable'}."),
            recommendation=recommendation,
            impact=abs(net_impact),
            confidence=Confidence.HIGH,
        )

    def systemic_insight(self, records: List[VarianceRecord]) -> Optional[Insight]:
        """Flag widespread critical variances."""
        critical = [r for r in records if r.severity == Severity.CRITICAL]
        if len(critical) < self.config["systemic_critical_count"]:
            return None

        return Insight(
            account_id=SYSTEMIC_ACCOUNT_ID,
            account_name="Systematic Variance Issues",
            severity=Severity.CRITICAL,
            message=(f"{len(critical)} accounts show critical variances, suggesting systematic "
                     f"budgeting or operational issues."),
            recommendation=("Conduct comprehensive budget review. Evaluate forecasting methodology "
                            "and underlying business assumptions."),
            impact=sum_amounts(abs(r.variance) for r in critical),
            confidence=Confidence.HIGH,
        )

    @staticmethod
    def top_variances(records: List[VarianceRecord], count: int) -> List[str]:
        """Names of the accounts with the largest absolute dollar variance."""
        ranked = sorted(records, key=lambda r: abs(r.variance), reverse=True)
        return [r.account_name for r in ranked[:count]]


def generate_insights(records: Iterable[VarianceRecord], include_normal: bool = False,
                      insight_settings: Optional[Dict[str, Any]] = None,
                      account_records: Optional[Iterable[VarianceRecord]] = None) -> List[Insight]:
    """Generate insights with an ad-hoc InsightGenerator."""
    return InsightGenerator(insight_settings).generate(records, include_normal=include_normal,
                                                       account_records=account_records)
