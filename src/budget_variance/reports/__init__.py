"""
Report export for variance analysis results.
"""

from budget_variance.reports.excel_generator import ExcelGenerator, export_csv, variance_table
from budget_variance.reports.formatter import ExcelFormatter

__all__ = ['ExcelGenerator', 'ExcelFormatter', 'export_csv', 'variance_table']
