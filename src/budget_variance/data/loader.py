"""
Budget and actual line loading from CSV and Excel sources.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Type, TypeVar

import pandas as pd

from budget_variance.config.account_types import normalize_account_type
from budget_variance.data.models import AccountLine, ActualLine, BudgetLine
from budget_variance.exceptions import LoaderError
from budget_variance.utils.calculations import safe_amount
from budget_variance.utils.periods import parse_period

LineT = TypeVar("LineT", bound=AccountLine)

# Canonical column -> accepted header spellings (normalized: lower case, single underscores)
COLUMN_ALIASES: Dict[str, Tuple[str, ...]] = {
    "account_id": ("account_id", "id", "accountid", "account"),
    "account_name": ("account_name", "name", "accountname", "description"),
    "account_type": ("account_type", "type", "accounttype", "category"),
    "account_code": ("account_code", "code", "accountcode", "gl_code"),
    "amount": ("amount", "budget_amount", "actual_amount", "budget", "actual", "value"),
    "period": ("period", "month", "period_label"),
    "parent_account_id": ("parent_account_id", "parent", "parent_account", "parent_id"),
}


def slugify_account_name(name: str) -> str:
    """Derive a stable account id from an account name."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(name).lower())
    return slug.strip("-")


def _normalize_header(header: object) -> str:
    return re.sub(r"[^a-z0-9]+", "_", str(header).strip().lower()).strip("_")


def _clean_text(value) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    if not text or text.lower() in ("nan", "none"):
        return None
    # Excel turns numeric codes into floats like 4000.0
    if re.fullmatch(r"\d+\.0", text):
        text = text[:-2]
    return text


class LineLoader:
    """Loads BudgetLine / ActualLine records from tabular files."""

    def __init__(self, default_period: Optional[str] = None):
        """
        Args:
            default_period: Period assigned to rows when the source has no period column
        """
        if default_period is not None:
            parse_period(default_period)
        self.default_period = default_period
        self.logger = logging.getLogger(__name__)

    def load_budget(self, file_path: str, sheet_name: Optional[str] = None) -> List[BudgetLine]:
        """
        Load budget lines from a CSV or Excel file.

        Args:
            file_path: Path to .csv or .xlsx file
            sheet_name: Excel sheet to read (first sheet by default)

        Returns:
            List of BudgetLine
        """
        return self.lines_from_dataframe(self.read_table(file_path, sheet_name), BudgetLine, file_path)

    def load_actual(self, file_path: str, sheet_name: Optional[str] = None) -> List[ActualLine]:
        """Load actual lines from a CSV or Excel file."""
        return self.lines_from_dataframe(self.read_table(file_path, sheet_name), ActualLine, file_path)

    def read_table(self, file_path: str, sheet_name: Optional[str] = None) -> pd.DataFrame:
        """Read a CSV or Excel file into a DataFrame of strings."""
        path = Path(file_path)
        self.logger.info(f"Loading lines from {path}")

        if not path.exists():
            raise LoaderError(f"File not found: {file_path}", details={"file_path": file_path})

        try:
            if path.suffix.lower() == ".csv":
                df = pd.read_csv(path, dtype=str, keep_default_na=False)
            elif path.suffix.lower() in (".xlsx", ".xlsm"):
                df = pd.read_excel(path, sheet_name=sheet_name or 0, dtype=str, engine="openpyxl")
            else:
                raise LoaderError(f"Unsupported file type: {path.suffix}",
                                  details={"file_path": file_path})
        except LoaderError:
            raise
        except (OSError, ValueError) as e:
            raise LoaderError(f"Could not read {file_path}: {e}", details={"file_path": file_path}) from e

        self.logger.debug(f"Read {len(df)} rows x {len(df.columns)} columns from {path.name}")
        return df

    def lines_from_dataframe(self, df: pd.DataFrame, line_cls: Type[LineT],
                             source: str = "<dataframe>") -> List[LineT]:
        """
        Convert a DataFrame to account lines.

        Args:
            df: Source rows
            line_cls: BudgetLine or ActualLine
            source: Name used in log and error messages

        Returns:
            List of lines, skipping blank rows
        """
        columns = self._resolve_columns(df, source)
        lines: List[LineT] = []

        for position, row in enumerate(df.to_dict(orient="records")):
            name = _clean_text(row.get(columns["account_name"])) if "account_name" in columns else None
            account_id = _clean_text(row.get(columns["account_id"])) if "account_id" in columns else None
            if account_id is None and name is None:
                continue
            if account_id is None:
                account_id = slugify_account_name(name)

            period = _clean_text(row.get(columns["period"])) if "period" in columns else None
            period = period or self.default_period
            if period is None:
                raise LoaderError(f"{source} row {position} has no period and no default period was given",
                                  details={"source": source, "row": position})

            try:
                amount = safe_amount(row.get(columns["amount"]))
            except ValueError as e:
                raise LoaderError(f"{source} row {position} has a non-numeric amount: {e}",
                                  details={"source": source, "row": position}) from e

            lines.append(line_cls(
                account_id=account_id,
                account_name=name or account_id,
                account_type=normalize_account_type(
                    row.get(columns["account_type"]) if "account_type" in columns else None),
                amount=amount,
                period=period,
                account_code=_clean_text(row.get(columns["account_code"])) if "account_code" in columns else None,
                parent_account_id=(_clean_text(row.get(columns["parent_account_id"]))
                                   if "parent_account_id" in columns else None),
            ))

        self.logger.info(f"Loaded {len(lines)} {line_cls.__name__} records from {source}")
        return lines

    def _resolve_columns(self, df: pd.DataFrame, source: str) -> Dict[str, str]:
        """Map canonical column names to the DataFrame's actual headers."""
        normalized = {_normalize_header(col): col for col in df.columns}
        resolved: Dict[str, str] = {}
        for canonical, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                if alias in normalized:
                    resolved[canonical] = normalized[alias]
                    break

        if "amount" not in resolved:
            raise LoaderError(f"{source} has no amount column", details={"columns": list(df.columns)})
        if "account_id" not in resolved and "account_name" not in resolved:
            raise LoaderError(f"{source} needs an account id or account name column",
                              details={"columns": list(df.columns)})
        return resolved
