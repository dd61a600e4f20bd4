"""
Data models for the variance analysis engine.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import (
    Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, TypeVar, Union,
)

import pandas as pd

from budget_variance.config.account_types import AccountType, coerce_account_type
from budget_variance.config.settings import VarianceThresholds
from budget_variance.exceptions import ValidationError


class Severity(Enum):
    """Qualitative variance bucket."""
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"
    FAVORABLE = "favorable"


class Direction(Enum):
    """Actual relative to budget."""
    OVER = "over"
    UNDER = "under"
    ON_TARGET = "on_target"


class TrendDirection(Enum):
    """Direction of variance magnitude across periods."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class Confidence(Enum):
    """Confidence attached to a generated insight."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


T = TypeVar("T")
R = TypeVar("R")


def fold_tree(root: T, get_children: Callable[[T], Iterable[T]],
              combine: Callable[[T, List[R], int], R]) -> R:
    """
    Fold a tree bottom-up without recursion.

    ``combine(node, folded_children, depth)`` is called once per node after
    all of its children have been folded, so arbitrarily deep account
    chains are handled with an explicit stack.

    Args:
        root: Root node
        get_children: Returns the children of a node, in order
        combine: Builds the folded value of a node from its folded children

    Returns:
        Folded value of the root
    """
    stack: List[Tuple[T, Iterator[T], List[R]]] = [(root, iter(get_children(root)), [])]
    while True:
        node, pending, folded = stack[-1]
        child = next(pending, None)
        if child is not None:
            stack.append((child, iter(get_children(child)), []))
            continue
        stack.pop()
        value = combine(node, folded, len(stack))
        if not stack:
            return value
        stack[-1][2].append(value)


@dataclass(frozen=True)
class AccountLine:
    """One account amount for one period, as supplied by a data source."""
    account_id: str
    account_name: str
    account_type: AccountType
    amount: float
    period: str
    account_code: Optional[str] = None
    parent_account_id: Optional[str] = None

    def __post_init__(self):
        # Accept plain strings from callers that build lines by hand
        if not isinstance(self.account_type, AccountType):
            try:
                account_type = coerce_account_type(self.account_type)
            except ValueError:
                raise ValidationError(
                    f"Account {self.account_id} has invalid account type {self.account_type!r}",
                    code="INVALID_ACCOUNT_TYPE",
                    details={"account_id": self.account_id, "account_type": self.account_type},
                ) from None
            object.__setattr__(self, "account_type", account_type)
        # Money often arrives as Decimal; the engine computes in float
        if isinstance(self.amount, Decimal) and self.amount.is_finite():
            object.__setattr__(self, "amount", float(self.amount))


@dataclass(frozen=True)
class BudgetLine(AccountLine):
    """Planned amount for an account and period."""


@dataclass(frozen=True)
class ActualLine(AccountLine):
    """Realized amount for an account and period."""


@dataclass(frozen=True)
class HistoricalVariance:
    """Variance of one account in one past period."""
    period: str
    budget: float
    actual: float
    variance: float
    variance_percent: float


@dataclass(frozen=True)
class TrendPoint:
    """A single period in a variance trend."""
    period: str
    variance: float
    variance_percent: float


@dataclass(frozen=True)
class VarianceTrend:
    """Direction and volatility of variance percentage across periods."""
    periods: Tuple[TrendPoint, ...]
    direction: TrendDirection
    average_variance: float
    volatility: float
    slope: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "periods": [
                {"period": p.period, "variance": p.variance, "variance_percent": p.variance_percent}
                for p in self.periods
            ],
            "direction": self.direction.value,
            "average_variance": self.average_variance,
            "volatility": self.volatility,
            "slope": self.slope,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VarianceTrend":
        return cls(
            periods=tuple(
                TrendPoint(p["period"], p["variance"], p["variance_percent"]) for p in d["periods"]
            ),
            direction=TrendDirection(d["direction"]),
            average_variance=d["average_variance"],
            volatility=d["volatility"],
            slope=d["slope"],
        )


@dataclass(frozen=True)
class VarianceRecord:
    """
    Computed budget-vs-actual comparison for one account.

    Non-leaf records carry rolled-up totals of their children and a
    variance percentage recomputed from those totals.
    """
    account_id: str
    account_name: str
    account_type: AccountType
    period: str
    budget: float
    actual: float
    variance: float
    variance_percent: float
    severity: Severity
    direction: Direction
    level: int = 0
    account_code: Optional[str] = None
    parent_account_id: Optional[str] = None
    children: Tuple["VarianceRecord", ...] = ()
    insights: Tuple[str, ...] = ()
    trend: Optional[VarianceTrend] = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def iter_tree(self) -> Iterator["VarianceRecord"]:
        """Yield this record and all descendants, depth first."""
        stack = [self]
        while stack:
            record = stack.pop()
            yield record
            stack.extend(reversed(record.children))

    def to_dict(self) -> Dict[str, Any]:
        def combine(record: "VarianceRecord", children: List[Dict[str, Any]], depth: int) -> Dict[str, Any]:
            return {
                "account_id": record.account_id,
                "account_name": record.account_name,
                "account_type": record.account_type.value,
                "period": record.period,
                "budget": record.budget,
                "actual": record.actual,
                "variance": record.variance,
                "variance_percent": record.variance_percent,
                "severity": record.severity.value,
                "direction": record.direction.value,
                "level": record.level,
                "account_code": record.account_code,
                "parent_account_id": record.parent_account_id,
                "children": children,
                "insights": list(record.insights),
                "trend": record.trend.to_dict() if record.trend else None,
            }

        return fold_tree(self, lambda r: r.children, combine)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VarianceRecord":
        def combine(item: Dict[str, Any], children: List["VarianceRecord"], depth: int) -> "VarianceRecord":
            return cls(
                account_id=item["account_id"],
                account_name=item["account_name"],
                account_type=AccountType(item["account_type"]),
                period=item["period"],
                budget=item["budget"],
                actual=item["actual"],
                variance=item["variance"],
                variance_percent=item["variance_percent"],
                severity=Severity(item["severity"]),
                direction=Direction(item["direction"]),
                level=item.get("level", 0),
                account_code=item.get("account_code"),
                parent_account_id=item.get("parent_account_id"),
                children=tuple(children),
                insights=tuple(item.get("insights", [])),
                trend=VarianceTrend.from_dict(item["trend"]) if item.get("trend") else None,
            )

        return fold_tree(d, lambda item: item.get("children", []), combine)


@dataclass(frozen=True)
class Insight:
    """Natural-language observation about one account or the whole analysis."""
    account_id: str
    account_name: str
    severity: Severity
    message: str
    impact: float
    confidence: Confidence
    recommendation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "account_name": self.account_name,
            "severity": self.severity.value,
            "message": self.message,
            "recommendation": self.recommendation,
            "impact": self.impact,
            "confidence": self.confidence.value,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Insight":
        return cls(
            account_id=d["account_id"],
            account_name=d["account_name"],
            severity=Severity(d["severity"]),
            message=d["message"],
            recommendation=d.get("recommendation"),
            impact=d["impact"],
            confidence=Confidence(d["confidence"]),
        )


@dataclass(frozen=True)
class AnalysisSummary:
    """Severity counts over every record in the variance forest."""
    critical_count: int
    warning_count: int
    favorable_count: int
    total_accounts: int


@dataclass(frozen=True)
class AnalysisResult:
    """Output of one analysis run."""
    period: str
    total_budget: float
    total_actual: float
    total_variance: float
    total_variance_percent: float
    variances: Tuple[VarianceRecord, ...]
    insights: Tuple[Insight, ...]
    summary: AnalysisSummary
    generated_at: datetime
    cache_key: Optional[str] = None
    demoted_account_ids: Tuple[str, ...] = ()

    def iter_records(self) -> Iterator[VarianceRecord]:
        """Yield every record in the forest, depth first."""
        for root in self.variances:
            yield from root.iter_tree()

    def find(self, account_id: str) -> Optional[VarianceRecord]:
        """Look up a record anywhere in the forest."""
        for record in self.iter_records():
            if record.account_id == account_id:
                return record
        return None

    def to_dataframe(self) -> pd.DataFrame:
        """Flatten the forest into one row per record."""
        rows = [
            {
                "account_id": r.account_id,
                "account_name": r.account_name,
                "account_code": r.account_code,
                "account_type": r.account_type.value,
                "level": r.level,
                "parent_account_id": r.parent_account_id,
                "budget": r.budget,
                "actual": r.actual,
                "variance": r.variance,
                "variance_percent": r.variance_percent,
                "severity": r.severity.value,
                "direction": r.direction.value,
                "trend": r.trend.direction.value if r.trend else None,
            }
            for r in self.iter_records()
        ]
        columns = ["account_id", "account_name", "account_code", "account_type", "level",
                   "parent_account_id", "budget", "actual", "variance", "variance_percent",
                   "severity", "direction", "trend"]
        return pd.DataFrame(rows, columns=columns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "total_budget": self.total_budget,
            "total_actual": self.total_actual,
            "total_variance": self.total_variance,
            "total_variance_percent": self.total_variance_percent,
            "variances": [v.to_dict() for v in self.variances],
            "insights": [i.to_dict() for i in self.insights],
            "summary": {
                "critical_count": self.summary.critical_count,
                "warning_count": self.summary.warning_count,
                "favorable_count": self.summary.favorable_count,
                "total_accounts": self.summary.total_accounts,
            },
            "generated_at": self.generated_at.isoformat(),
            "cache_key": self.cache_key,
            "demoted_account_ids": list(self.demoted_account_ids),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            period=d["period"],
            total_budget=d["total_budget"],
            total_actual=d["total_actual"],
            total_variance=d["total_variance"],
            total_variance_percent=d["total_variance_percent"],
            variances=tuple(VarianceRecord.from_dict(v) for v in d["variances"]),
            insights=tuple(Insight.from_dict(i) for i in d["insights"]),
            summary=AnalysisSummary(**d["summary"]),
            generated_at=datetime.fromisoformat(d["generated_at"]),
            cache_key=d.get("cache_key"),
            demoted_account_ids=tuple(d.get("demoted_account_ids", [])),
        )


# camelCase spellings accepted from dashboard-style option payloads
_OPTION_ALIASES = {
    "includeZeroVariances": "include_zero_variances",
    "includeChildren": "include_children",
    "generateInsights": "generate_insights",
    "includeTrends": "include_trends",
    "includeNormal": "include_normal_insights",
    "include_normal": "include_normal_insights",
}


@dataclass(frozen=True)
class AnalysisOptions:
    """Per-call analysis switches."""
    include_zero_variances: bool = False
    include_children: bool = False
    generate_insights: bool = True
    include_trends: bool = False
    include_normal_insights: bool = False
    thresholds: Optional[VarianceThresholds] = None

    @classmethod
    def from_value(cls, value: Union["AnalysisOptions", Mapping[str, Any], None]) -> "AnalysisOptions":
        """
        Build options from an AnalysisOptions, a mapping or None.

        Args:
            value: Options object, dict with snake_case or camelCase keys, or None

        Returns:
            AnalysisOptions instance

        Raises:
            ValueError: If the mapping carries an unknown key
        """
        if value is None:
            return cls()
        if isinstance(value, AnalysisOptions):
            return value

        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, item in value.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown analysis option: {key}")
            kwargs[name] = item

        thresholds = kwargs.get("thresholds")
        if thresholds is not None and not isinstance(thresholds, VarianceThresholds):
            kwargs["thresholds"] = VarianceThresholds.from_mapping(thresholds)
        return cls(**kwargs)


@dataclass(frozen=True)
class MatchResult:
    """Outcome of pairing budget lines with actual lines."""
    matched: List[Tuple[BudgetLine, ActualLine]] = field(default_factory=list)
    unmatched_budget: List[BudgetLine] = field(default_factory=list)
    unmatched_actual: List[ActualLine] = field(default_factory=list)
