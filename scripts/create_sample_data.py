#!/usr/bin/env python3
"""
Create sample budget and actual files for trying the variance engine.
"""

import pandas as pd
from pathlib import Path


def create_sample_data(period: str = "2025-03") -> tuple:
    """Write sample_budget.csv and sample_actual.xlsx under data/raw."""

    accounts = {
        'Account ID': ['rev', 'rental', 'services', 'interest',
                       'opex', 'insurance', 'utilities', 'marketing', 'payroll',
                       'cash', 'borrowings'],
        'Account Name': ['Revenue', 'Rental Revenue', 'Service Revenue', 'Financial Income: Interest',
                         'Operating Expenses', 'Operating Expenses: Insurance',
                         'Operating Expenses: Utilities', 'Marketing', 'Payroll',
                         'Cash at Bank', 'LT Borrowings'],
        'Type': ['Income', 'Income', 'Income', 'Other Income',
                 'Expense', 'Expense', 'Expense', 'Expense', 'Expense',
                 'Bank Asset', 'Long Term Liability'],
        'Code': ['', '4100', '4200', '4900', '', '6100', '6200', '6300', '6400', '1100', '2500'],
        'Parent': ['', 'rev', 'rev', 'rev', '', 'opex', 'opex', 'opex', 'opex', '', ''],
    }

    budget_df = pd.DataFrame(accounts)
    budget_df['Amount'] = [0, 500000, 150000, 15000, 0, 20000, 35000, 40000, 210000, 900000, 2500000]
    budget_df['Period'] = period

    actual_df = pd.DataFrame(accounts)
    actual_df['Amount'] = [0, 520000, 118000, 14000, 0, 21000, 42500, 52000, 208000, 780000, 2550000]
    actual_df['Period'] = period

    output_dir = Path(__file__).parent.parent / "data" / "raw"
    output_dir.mkdir(parents=True, exist_ok=True)
    budget_path = output_dir / "sample_budget.csv"
    actual_path = output_dir / "sample_actual.xlsx"

    budget_df.to_csv(budget_path, index=False)
    with pd.ExcelWriter(actual_path, engine='openpyxl') as writer:
        actual_df.to_excel(writer, sheet_name='Actuals', index=False)

    print(f"Sample data created: {budget_path}, {actual_path}")
    print(f"Try: budget-variance -b {budget_path} -a {actual_path} --hierarchy -o report.xlsx")
    return str(budget_path), str(actual_path)


if __name__ == "__main__":
    create_sample_data()
