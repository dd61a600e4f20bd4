"""
Budget Variance Analysis Engine

Budget-vs-actual variance arithmetic, severity classification, hierarchical
roll-up, insight generation, trend analysis and result caching.
"""

from budget_variance.analysis.calculator import classify_severity, compute_variance
from budget_variance.analysis.engine import VarianceEngine, analyze, create_engine
from budget_variance.analysis.hierarchy import build_variance_tree
from budget_variance.analysis.insights import generate_insights
from budget_variance.analysis.trends import calculate_trend
from budget_variance.cache.result_cache import CachedAnalyzer, ResultCache, cache_key
from budget_variance.config.account_types import AccountType
from budget_variance.config.settings import Settings, VarianceThresholds
from budget_variance.data.models import (
    ActualLine, AnalysisOptions, AnalysisResult, BudgetLine, Direction,
    HistoricalVariance, Insight, Severity, VarianceRecord, VarianceTrend,
)
from budget_variance.exceptions import AnalysisError, LoaderError, ValidationError, VarianceEngineError

__version__ = "1.0.0"

__all__ = [
    'AccountType', 'ActualLine', 'AnalysisError', 'AnalysisOptions', 'AnalysisResult',
    'BudgetLine', 'CachedAnalyzer', 'Direction', 'HistoricalVariance', 'Insight',
    'LoaderError', 'ResultCache', 'Settings', 'Severity', 'ValidationError',
    'VarianceEngine', 'VarianceEngineError', 'VarianceRecord', 'VarianceThresholds',
    'VarianceTrend', 'analyze', 'build_variance_tree', 'cache_key', 'calculate_trend',
    'classify_severity', 'compute_variance', 'create_engine', 'generate_insights',
]
