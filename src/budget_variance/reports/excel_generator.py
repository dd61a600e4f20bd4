"""
Excel and CSV export of variance analysis results.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from budget_variance.data.models import AnalysisResult
from budget_variance.reports.formatter import ExcelFormatter

VARIANCE_COLUMNS = ['Account', 'Code', 'Type', 'Level', 'Budget', 'Actual', 'Variance',
                    'Variance %', 'Severity', 'Direction']
INSIGHT_COLUMNS = ['Severity', 'Account', 'Message', 'Recommendation', 'Impact', 'Confidence']

logger = logging.getLogger(__name__)


def variance_table(result: AnalysisResult, indent: bool = False) -> pd.DataFrame:
    """
    Flatten the variance forest into the export table, parents before children.

    Args:
        result: Analysis result
        indent: Prefix account names with two spaces per hierarchy level
    """
    rows = [
        {
            'Account': ('  ' * record.level if indent else '') + record.account_name,
            'Code': record.account_code,
            'Type': record.account_type.value,
            'Level': record.level,
            'Budget': record.budget,
            'Actual': record.actual,
            'Variance': record.variance,
            'Variance %': round(record.variance_percent, 2),
            'Severity': record.severity.value,
            'Direction': record.direction.value,
        }
        for record in result.iter_records()
    ]
    return pd.DataFrame(rows, columns=VARIANCE_COLUMNS)


def export_csv(result: AnalysisResult, output_file: str) -> str:
    """
    Write the flattened variance table as CSV.

    Returns:
        Path of the written file
    """
    path = Path(output_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    variance_table(result).to_csv(path, index=False)
    logger.info(f"Exported {result.summary.total_accounts} variance rows to {path}")
    return str(path)


class ExcelGenerator:
    """Excel report generator for variance analysis results."""

    def __init__(self):
        self.formatter = ExcelFormatter()
        self.logger = logging.getLogger(__name__)

    def generate_report(self, result: AnalysisResult, output_file: str) -> str:
        """
        Write Summary, Variances and Insights sheets.

        Args:
            result: Analysis result to export
            output_file: Path of the .xlsx file to create

        Returns:
            Path of the written file
        """
        path = Path(output_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Generating variance report for {result.period}: {path}")

        summary_df = pd.DataFrame(self._summary_rows(result), columns=['Metric', 'Value'])
        variances_df = variance_table(result, indent=True)
        insights_df = pd.DataFrame(self._insight_rows(result), columns=INSIGHT_COLUMNS)

        with pd.ExcelWriter(path, engine='xlsxwriter') as writer:
            self.formatter.add_formats(writer.book)

            summary_df.to_excel(writer, sheet_name='Summary', index=False)
            sheet = writer.sheets['Summary']
            self.formatter.write_header(sheet, summary_df)
            self.formatter.adjust_column_widths(sheet, summary_df)

            variances_df.to_excel(writer, sheet_name='Variances', index=False)
            sheet = writer.sheets['Variances']
            self.formatter.write_header(sheet, variances_df)
            self.formatter.apply_variance_formatting(sheet, variances_df)
            self.formatter.adjust_column_widths(sheet, variances_df)
            sheet.freeze_panes(1, 1)

            insights_df.to_excel(writer, sheet_name='Insights', index=False)
            sheet = writer.sheets['Insights']
            self.formatter.write_header(sheet, insights_df)
            self.formatter.apply_insight_formatting(sheet, insights_df)
            self.formatter.adjust_column_widths(sheet, insights_df)

        self.logger.info(f"Report written: {len(variances_df)} variance rows, {len(insights_df)} insights")
        return str(path)

    @staticmethod
    def _summary_rows(result: AnalysisResult) -> List[List[Any]]:
        rows = [
            ['Period', result.period],
            ['Total Budget', result.total_budget],
            ['Total Actual', result.total_actual],
            ['Total Variance', result.total_variance],
            ['Total Variance %', round(result.total_variance_percent, 2)],
            ['Accounts', result.summary.total_accounts],
            ['Critical', result.summary.critical_count],
            ['Warning', result.summary.warning_count],
            ['Favorable', result.summary.favorable_count],
            ['Generated At', result.generated_at.isoformat()],
        ]
        if result.cache_key:
            rows.append(['Cache Key', result.cache_key])
        if result.demoted_account_ids:
            rows.append(['Demoted Accounts', ', '.join(result.demoted_account_ids)])
        return rows

    @staticmethod
    def _insight_rows(result: AnalysisResult) -> List[Dict[str, Any]]:
        return [
            {
                'Severity': insight.severity.value,
                'Account': insight.account_name,
                'Message': insight.message,
                'Recommendation': insight.recommendation or '',
                'Impact': insight.impact,
                'Confidence': insight.confidence.value,
            }
            for insight in result.insights
        ]
