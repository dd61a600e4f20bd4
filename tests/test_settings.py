"""
Unit tests for configuration, periods, account types and amount helpers.
"""

from datetime import date

import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from budget_variance.config.account_types import AccountType, normalize_account_type
from budget_variance.config.settings import Settings, VarianceThresholds
from budget_variance.data.models import AnalysisOptions
from budget_variance.exceptions import ValidationError
from budget_variance.utils.calculations import format_currency, safe_amount
from budget_variance.utils.periods import is_valid_period, parse_period


class TestSettings:
    """Test cases for Settings."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for var in ("VARIANCE_CONFIG_DIR", "VARIANCE_CRITICAL_THRESHOLD", "VARIANCE_WARNING_THRESHOLD",
                    "VARIANCE_FAVORABLE_THRESHOLD", "VARIANCE_CACHE_TTL"):
            monkeypatch.delenv(var, raising=False)

    def test_project_config_loads(self):
        settings = Settings()

        assert settings.thresholds == VarianceThresholds(15.0, 10.0, -5.0)
        assert settings.cache_ttl == 3600
        assert settings.max_workers == 4

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = Settings(str(tmp_path))

        assert settings.thresholds == VarianceThresholds()
        assert settings.insight_settings["systemic_critical_count"] == 3

    def test_yaml_overrides_merge(self, tmp_path):
        (tmp_path / "engine.yaml").write_text("thresholds:\n  critical: 20\ncache:\n  ttl_seconds: 60\n")

        settings = Settings(str(tmp_path))

        assert settings.thresholds == VarianceThresholds(critical=20.0, warning=10.0, favorable=-5.0)
        assert settings.cache_ttl == 60
        assert settings.cache_cleanup_interval == 300

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VARIANCE_CRITICAL_THRESHOLD", "25")
        monkeypatch.setenv("VARIANCE_CACHE_TTL", "120")

        settings = Settings(str(tmp_path))

        assert settings.thresholds.critical == 25.0
        assert settings.cache_ttl == 120

    def test_logging_section(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("LOG_FILE", raising=False)
        (tmp_path / "engine.yaml").write_text(
            "logging:\n  level: DEBUG\n  file: logs/engine.log\n  data_quality_file: logs/quality.log\n")

        settings = Settings(str(tmp_path))

        assert settings.log_level == "DEBUG"
        assert settings.log_file == "logs/engine.log"
        assert settings.data_quality_log == "logs/quality.log"

        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        assert settings.log_level == "WARNING"

    def test_invalid_environment_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VARIANCE_WARNING_THRESHOLD", "high")

        with pytest.raises(ValueError):
            Settings(str(tmp_path))

    def test_inverted_thresholds_rejected(self, tmp_path):
        (tmp_path / "engine.yaml").write_text("thresholds:\n  critical: 5\n  warning: 10\n")

        with pytest.raises(ValueError):
            Settings(str(tmp_path))


class TestAnalysisOptions:

    def test_camel_case_aliases(self):
        options = AnalysisOptions.from_value({"includeZeroVariances": True, "includeNormal": True})

        assert options.include_zero_variances
        assert options.include_normal_insights
        assert options.generate_insights

    def test_thresholds_mapping(self):
        options = AnalysisOptions.from_value({"thresholds": {"critical": 30}})

        assert options.thresholds == VarianceThresholds(critical=30.0)


class TestPeriods:

    @pytest.mark.parametrize("label,start,end", [
        ("2024-02", date(2024, 2, 1), date(2024, 2, 29)),
        ("2024-Q3", date(2024, 7, 1), date(2024, 9, 30)),
        ("2023", date(2023, 1, 1), date(2023, 12, 31)),
        ("2024-03-15", date(2024, 3, 15), date(2024, 3, 15)),
    ])
    def test_parse_period(self, label, start, end):
        period = parse_period(label)

        assert period.start_date == start
        assert period.end_date == end

    @pytest.mark.parametrize("label", ["2024-13", "2024-Q5", "March 2024", "", "24-01"])
    def test_invalid_period(self, label):
        with pytest.raises(ValidationError) as exc_info:
            parse_period(label)
        assert exc_info.value.code == "INVALID_PERIOD"
        assert not is_valid_period(label)


class TestAccountTypes:

    @pytest.mark.parametrize("label,expected", [
        ("Income", AccountType.REVENUE),
        ("Other Income", AccountType.REVENUE),
        ("Cost of Goods Sold", AccountType.EXPENSE),
        ("Fixed Asset", AccountType.ASSET),
        ("Other Current Liabilities", AccountType.LIABILITY),
        ("Equity", AccountType.EQUITY),
        ("Bank", AccountType.EXPENSE),
        (None, AccountType.EXPENSE),
    ])
    def test_normalize_account_type(self, label, expected):
        assert normalize_account_type(label) == expected


class TestAmounts:

    @pytest.mark.parametrize("raw,expected", [
        ("1,234.50", 1234.5),
        ("$99", 99.0),
        ("(250)", -250.0),
        ("", 0.0),
        (None, 0.0),
        (float("nan"), 0.0),
        (12, 12.0),
    ])
    def test_safe_amount(self, raw, expected):
        assert safe_amount(raw) == expected

    def test_format_currency(self):
        assert format_currency(-1234.5) == "-$1,234.50"
        assert format_currency(3000) == "$3,000.00"
