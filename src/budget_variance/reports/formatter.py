"""
Excel formatting utilities for severity colouring and styling.
"""

import pandas as pd
import xlsxwriter


class ExcelFormatter:
    """Excel formatting utilities for variance analysis reports."""

    def __init__(self):
        self.formats = {}

    def add_formats(self, workbook: xlsxwriter.Workbook) -> None:
        """Add standard formats to workbook."""
        self.formats = {
            'header': workbook.add_format({
                'bold': True,
                'bg_color': '#4472c4',
                'font_color': 'white',
                'align': 'center',
                'valign': 'vcenter',
                'border': 1
            }),
            'critical': workbook.add_format({
                'bg_color': '#ff4d4d',
                'font_color': 'white',
                'bold': True,
                'border': 1
            }),
            'warning': workbook.add_format({
                'bg_color': '#ffff99',
                'border': 1
            }),
            'favorable': workbook.add_format({
                'bg_color': '#ccffcc',
                'border': 1
            }),
            'normal': workbook.add_format({
                'border': 1
            }),
            'percentage': workbook.add_format({
                'num_format': '0.0%',
                'border': 1
            }),
            'currency': workbook.add_format({
                'num_format': '#,##0.00',
                'border': 1
            }),
            'title': workbook.add_format({
                'bold': True,
                'font_size': 14
            }),
        }

    def severity_format(self, severity: str):
        """Cell format for a severity value ('critical', 'warning', ...)."""
        return self.formats.get(str(severity).lower(), self.formats['normal'])

    def write_header(self, worksheet, df: pd.DataFrame, row: int = 0) -> None:
        for col_num, column in enumerate(df.columns):
            worksheet.write(row, col_num, column, self.formats['header'])

    def apply_variance_formatting(self, worksheet, df: pd.DataFrame, start_row: int = 1) -> None:
        """
        Colour variance rows by severity and format money and percent columns.

        Expects the column layout produced by ExcelGenerator's variance table.
        """
        if len(df) == 0:
            return

        money_columns = {'Budget', 'Actual', 'Variance'}
        for i, row in enumerate(df.to_dict(orient='records')):
            row_num = start_row + i
            row_format = self.severity_format(row['Severity'])
            for col, column in enumerate(df.columns):
                value = row[column]
                if column in money_columns:
                    worksheet.write_number(row_num, col, value, self.formats['currency'])
                elif column == 'Variance %':
                    worksheet.write_number(row_num, col, value / 100, self.formats['percentage'])
                elif value is None or (isinstance(value, float) and pd.isna(value)):
                    worksheet.write_blank(row_num, col, None, row_format)
                else:
                    worksheet.write(row_num, col, value, row_format)

    def apply_insight_formatting(self, worksheet, df: pd.DataFrame, start_row: int = 1) -> None:
        """Colour the severity column of the insights sheet."""
        if len(df) == 0:
            return
        severity_col = list(df.columns).index('Severity')
        for i, severity in enumerate(df['Severity']):
            worksheet.write(start_row + i, severity_col, severity, self.severity_format(severity))

    def adjust_column_widths(self, worksheet, df: pd.DataFrame) -> None:
        """Adjust column widths based on content."""
        for i, column in enumerate(df.columns):
            max_length = len(str(column))
            for value in df.iloc[:, i]:
                if pd.notna(value):
                    max_length = max(max_length, len(str(value)))
            worksheet.set_column(i, i, min(max_length + 2, 60))
