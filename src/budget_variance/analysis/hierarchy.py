"""
Hierarchy builder: matches budget and actual lines by account and rolls
variances up through the account tree.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

from budget_variance.config.account_types import AccountType
from budget_variance.config.settings import VarianceThresholds, DEFAULT_THRESHOLDS
from budget_variance.data.models import (
    ActualLine, AnalysisOptions, BudgetLine, VarianceRecord, fold_tree,
)
from budget_variance.analysis.calculator import compute_variance, classify_severity
from budget_variance.utils.calculations import sum_amounts
from budget_variance.utils.logging_config import DATA_QUALITY_LOGGER

logger = logging.getLogger(__name__)
quality_logger = logging.getLogger(DATA_QUALITY_LOGGER)


@dataclass(frozen=True)
class VarianceTree:
    """
    Root records of a variance forest.

    Behaves like a sequence of roots. ``demoted_account_ids`` lists accounts
    that declared a parent but were promoted to roots, either because the
    parent is absent from the working set or to break a parent cycle.
    ``account_records`` holds every account's own record before roll-up,
    identical in flat and hierarchical mode.
    """
    roots: Tuple[VarianceRecord, ...]
    demoted_account_ids: Tuple[str, ...] = ()
    account_records: Tuple[VarianceRecord, ...] = ()

    def __iter__(self) -> Iterator[VarianceRecord]:
        return iter(self.roots)

    def __len__(self) -> int:
        return len(self.roots)

    def __getitem__(self, index):
        return self.roots[index]

    def iter_records(self) -> Iterator[VarianceRecord]:
        for root in self.roots:
            yield from root.iter_tree()


@dataclass(frozen=True)
class _Account:
    """Merged view of one account across the budget and actual sides."""
    account_id: str
    account_name: str
    account_type: AccountType
    account_code: Optional[str]
    parent_account_id: Optional[str]
    period: str
    budget: float
    actual: float


def _index_lines(lines: Sequence[Union[BudgetLine, ActualLine]], side: str) -> Dict[str, Union[BudgetLine, ActualLine]]:
    index: Dict[str, Union[BudgetLine, ActualLine]] = {}
    for line in lines:
        if line.account_id in index:
            quality_logger.warning(f"Duplicate {side} line for account {line.account_id}; keeping the last one")
        index[line.account_id] = line
    return index


def _merge_accounts(budget_lines: Sequence[BudgetLine],
                    actual_lines: Sequence[ActualLine]) -> List[_Account]:
    """Union the two sides by account id; a missing side contributes 0."""
    budget_map = _index_lines(budget_lines, "budget")
    actual_map = _index_lines(actual_lines, "actual")

    account_ids: List[str] = list(budget_map)
    account_ids.extend(a for a in actual_map if a not in budget_map)

    accounts = []
    for account_id in account_ids:
        budget_line = budget_map.get(account_id)
        actual_line = actual_map.get(account_id)
        # Budget side describes the account when both exist
        primary = budget_line or actual_line
        secondary = actual_line if budget_line else None

        accounts.append(_Account(
            account_id=account_id,
            account_name=primary.account_name or (secondary.account_name if secondary else "") or "Unknown",
            account_type=primary.account_type,
            account_code=primary.account_code or (secondary.account_code if secondary else None),
            parent_account_id=primary.parent_account_id or (secondary.parent_account_id if secondary else None),
            period=primary.period or (secondary.period if secondary else "") or "",
            budget=budget_line.amount if budget_line else 0.0,
            actual=actual_line.amount if actual_line else 0.0,
        ))
    return accounts


def _leaf_record(account: _Account, thresholds: VarianceThresholds) -> VarianceRecord:
    calc = compute_variance(account.budget, account.actual, account.account_type)
    severity = classify_severity(calc.variance_percent, account.account_type, calc.direction, thresholds)
    return VarianceRecord(
        account_id=account.account_id,
        account_name=account.account_name,
        account_type=account.account_type,
        period=account.period,
        budget=account.budget,
        actual=account.actual,
        variance=calc.variance,
        variance_percent=calc.variance_percent,
        severity=severity,
        direction=calc.direction,
        level=0,
        account_code=account.account_code,
        parent_account_id=account.parent_account_id,
    )


def _select_accounts(accounts: List[_Account], include_zero: bool,
                     keep_ancestors: bool) -> List[_Account]:
    """Drop zero/zero accounts unless requested; headers of kept accounts survive in tree mode."""
    if include_zero:
        return accounts

    by_id = {a.account_id: a for a in accounts}
    kept: Set[str] = {a.account_id for a in accounts if not (a.budget == 0 and a.actual == 0)}

    if keep_ancestors:
        for account_id in list(kept):
            seen: Set[str] = set()
            parent_id = by_id[account_id].parent_account_id
            while parent_id in by_id and parent_id not in seen:
                seen.add(parent_id)
                kept.add(parent_id)
                parent_id = by_id[parent_id].parent_account_id

    skipped = len(accounts) - len(kept)
    if skipped:
        logger.debug(f"Skipped {skipped} accounts with zero budget and zero actual")
    return [a for a in accounts if a.account_id in kept]


def _resolve_parents(accounts: List[_Account]) -> Tuple[Dict[str, Optional[str]], List[str]]:
    """
    Map each account to its parent within the working set.

    Returns the parent map plus the demoted account ids, in input order
    of detection.
    """
    present = {a.account_id for a in accounts}
    order_index = {a.account_id: i for i, a in enumerate(accounts)}
    parent_of: Dict[str, Optional[str]] = {}
    demoted: List[str] = []

    for account in accounts:
        parent_id = account.parent_account_id
        if not parent_id:
            parent_of[account.account_id] = None
        elif parent_id not in present or parent_id == account.account_id:
            quality_logger.warning(f"Account {account.account_id} references unknown parent "
                           f"{parent_id!r}; treating it as a root")
            parent_of[account.account_id] = None
            demoted.append(account.account_id)
        else:
            parent_of[account.account_id] = parent_id

    verified: Set[str] = set()
    for account in accounts:
        path: List[str] = []
        on_path: Set[str] = set()
        current = account.account_id
        while current is not None and current not in verified:
            if current in on_path:
                cycle = path[path.index(current):]
                breaker = min(cycle, key=order_index.__getitem__)
                quality_logger.warning(f"Parent cycle through {cycle}; treating {breaker} as a root")
                parent_of[breaker] = None
                demoted.append(breaker)
                break
            path.append(current)
            on_path.add(current)
            current = parent_of[current]
        verified.update(path)

    return parent_of, demoted


def _fold(account_id: str, leaves: Dict[str, VarianceRecord],
          children_of: Dict[str, List[str]], thresholds: VarianceThresholds) -> VarianceRecord:
    """Build the subtree rooted at account_id, children before parents."""
    return fold_tree(
        account_id,
        lambda node_id: children_of.get(node_id, []),
        lambda node_id, children, level: _roll_up(leaves[node_id], tuple(children), level, thresholds),
    )


def _roll_up(own: VarianceRecord, children: Tuple[VarianceRecord, ...], level: int,
             thresholds: VarianceThresholds) -> VarianceRecord:
    """Parent record from its own amounts plus the totals of its folded children."""
    if not children:
        return replace(own, level=level)

    budget = sum_amounts([own.budget] + [c.budget for c in children])
    actual = sum_amounts([own.actual] + [c.actual for c in children])
    variance = sum_amounts([own.variance] + [c.variance for c in children])
    calc = compute_variance(budget, actual, own.account_type)
    severity = classify_severity(calc.variance_percent, own.account_type, calc.direction, thresholds)

    return replace(
        own,
        level=level,
        budget=budget,
        actual=actual,
        variance=variance,
        variance_percent=calc.variance_percent,
        direction=calc.direction,
        severity=severity,
        children=children,
    )


def build_variance_tree(budget_lines: Sequence[BudgetLine],
                        actual_lines: Sequence[ActualLine],
                        options: Optional[AnalysisOptions] = None,
                        thresholds: VarianceThresholds = DEFAULT_THRESHOLDS) -> VarianceTree:
    """
    Build variance records from flat budget and actual lines.

    Accounts are matched by id; an account present on one side only gets 0
    on the other. With ``include_children`` each record is attached under
    its declared parent and parents carry their own amounts plus the rolled
    up totals of their children. Without it the flat leaf list is returned.

    Args:
        budget_lines: Planned amounts
        actual_lines: Realized amounts
        options: Analysis switches (zero-variance retention, hierarchy)
        thresholds: Severity cut points

    Returns:
        VarianceTree of root records
    """
    options = AnalysisOptions.from_value(options)

    accounts = _merge_accounts(budget_lines, actual_lines)
    accounts = _select_accounts(accounts, options.include_zero_variances, options.include_children)
    leaves = {a.account_id: _leaf_record(a, thresholds) for a in accounts}

    own_records = tuple(leaves[a.account_id] for a in accounts)
    if not options.include_children:
        return VarianceTree(roots=own_records, account_records=own_records)

    parent_of, demoted = _resolve_parents(accounts)
    children_of: Dict[str, List[str]] = {}
    for account in accounts:
        parent_id = parent_of[account.account_id]
        if parent_id is not None:
            children_of.setdefault(parent_id, []).append(account.account_id)

    roots = tuple(
        _fold(a.account_id, leaves, children_of, thresholds)
        for a in accounts if parent_of[a.account_id] is None
    )
    logger.debug(f"Built variance hierarchy: {len(roots)} roots from {len(accounts)} accounts")
    return VarianceTree(roots=roots, demoted_account_ids=tuple(demoted), account_records=own_records)
