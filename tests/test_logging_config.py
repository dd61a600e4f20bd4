"""
Unit tests for logging configuration and data-quality routing.
"""

import logging

import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from budget_variance.analysis.hierarchy import build_variance_tree
from budget_variance.config.account_types import AccountType
from budget_variance.data.models import AnalysisOptions, BudgetLine
from budget_variance.utils.logging_config import (
    DATA_QUALITY_LOGGER, ColoredFormatter, DataQualityFilter, setup_logging,
)

PERIOD = "2024-03"


class TestLoggingConfig:
    """Test cases for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_data_quality_file_gets_only_data_quality_records(self, tmp_path):
        path = tmp_path / "logs" / "data_quality.log"
        recorder = setup_logging("INFO", data_quality_file=str(path))

        build_variance_tree(
            [BudgetLine("rent", "Rent", AccountType.EXPENSE, 1000, PERIOD, parent_account_id="missing")],
            [], AnalysisOptions(include_children=True))
        logging.getLogger("budget_variance.analysis.engine").warning("Engine warning")

        text = path.read_text()
        assert "Account rent references unknown parent 'missing'" in text
        assert "Engine warning" not in text
        assert recorder.messages == ["Account rent references unknown parent 'missing'; treating it as a root"]

    def test_recorder_keeps_warnings_below_console_level(self):
        recorder = setup_logging("ERROR")

        build_variance_tree(
            [BudgetLine("rent", "Rent", AccountType.EXPENSE, 1000, PERIOD),
             BudgetLine("rent", "Rent", AccountType.EXPENSE, 1200, PERIOD)], [])

        assert recorder.messages == ["Duplicate budget line for account rent; keeping the last one"]

    def test_log_file_receives_all_records(self, tmp_path):
        path = tmp_path / "engine.log"
        setup_logging("INFO", log_file=str(path))

        logging.getLogger("budget_variance.analysis.engine").info("Engine started")

        assert "Engine started" in path.read_text()


class TestFormatting:
    """Test cases for formatter and filter."""

    def record(self, name):
        return logging.LogRecord(name, logging.WARNING, __file__, 1, "Duplicate line", None, None)

    def test_colored_formatter_tags_data_quality_on_a_copy(self):
        record = self.record(DATA_QUALITY_LOGGER)

        output = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "[data quality]" in output
        assert "Duplicate line" in output
        assert record.levelname == "WARNING"
        assert record.msg == "Duplicate line"

    def test_data_quality_filter(self):
        quality_filter = DataQualityFilter()

        assert quality_filter.filter(self.record(DATA_QUALITY_LOGGER))
        assert quality_filter.filter(self.record(DATA_QUALITY_LOGGER + ".loader"))
        assert not quality_filter.filter(self.record("budget_variance.analysis.hierarchy"))
