"""
Account type enumeration, sign conventions and free-text normalisation.
"""

from enum import Enum
from typing import Dict, List, Tuple, Union


class AccountType(Enum):
    """Financial account classification."""
    REVENUE = "revenue"
    EXPENSE = "expense"
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"


# Positive normalized variance always means "bad": revenue, liability and
# equity shortfalls flip sign, expense and asset overruns do not.
ACCOUNT_TYPE_MULTIPLIERS: Dict[AccountType, int] = {
    AccountType.REVENUE: -1,
    AccountType.EXPENSE: 1,
    AccountType.ASSET: 1,
    AccountType.LIABILITY: -1,
    AccountType.EQUITY: -1,
}

# Checked in order; first keyword hit wins
_TYPE_KEYWORDS: List[Tuple[AccountType, Tuple[str, ...]]] = [
    (AccountType.REVENUE, ("revenue", "income", "sales")),
    (AccountType.EXPENSE, ("expense", "cost", "operating", "cogs")),
    (AccountType.ASSET, ("asset",)),
    (AccountType.LIABILITY, ("liability", "liabilities")),
    (AccountType.EQUITY, ("equity",)),
]


def coerce_account_type(value: Union[str, AccountType]) -> AccountType:
    """
    Convert an exact enumeration value to AccountType.

    Args:
        value: AccountType member or its string value (case-insensitive)

    Returns:
        Matching AccountType

    Raises:
        ValueError: If value is not one of the enumeration values
    """
    if isinstance(value, AccountType):
        return value
    return AccountType(str(value).strip().lower())


def normalize_account_type(value: object) -> AccountType:
    """
    Map a provider-specific label to an AccountType by keyword.

    Labels like "Other Income" or "Cost of Goods Sold" are recognised;
    anything unrecognised defaults to expense.

    Args:
        value: Free-text account type label

    Returns:
        Best matching AccountType
    """
    if isinstance(value, AccountType):
        return value
    if value is None:
        return AccountType.EXPENSE

    label = str(value).strip().lower()
    try:
        return AccountType(label)
    except ValueError:
        pass

    for account_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in label for keyword in keywords):
            return account_type

    return AccountType.EXPENSE


def sign_multiplier(account_type: AccountType) -> int:
    """Get the severity sign multiplier for an account type."""
    return ACCOUNT_TYPE_MULTIPLIERS[account_type]
