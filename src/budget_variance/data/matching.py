"""
Pairing of budget lines with actual lines whose identifiers disagree.

Budget tools and accounting systems rarely share account ids, so lines are
matched by id first, then by exact name, then by name with punctuation and
whitespace removed.
"""

import logging
import re
from dataclasses import replace
from typing import List, Sequence

from budget_variance.data.models import ActualLine, BudgetLine, MatchResult

logger = logging.getLogger(__name__)


def _loose_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def match_budget_with_actuals(budget_lines: Sequence[BudgetLine],
                              actual_lines: Sequence[ActualLine]) -> MatchResult:
    """
    Match each budget line to at most one actual line.

    Args:
        budget_lines: Planned amounts
        actual_lines: Realized amounts

    Returns:
        MatchResult with matched pairs and the leftovers on each side
    """
    remaining: List[ActualLine] = list(actual_lines)
    result = MatchResult()

    strategies = (
        lambda b, a: a.account_id == b.account_id,
        lambda b, a: a.account_name.lower() == b.account_name.lower(),
        lambda b, a: _loose_name(a.account_name) == _loose_name(b.account_name),
    )

    for budget in budget_lines:
        match_index = None
        for matches in strategies:
            match_index = next((i for i, actual in enumerate(remaining) if matches(budget, actual)), None)
            if match_index is not None:
                break

        if match_index is None:
            result.unmatched_budget.append(budget)
        else:
            result.matched.append((budget, remaining.pop(match_index)))

    result.unmatched_actual.extend(remaining)
    logger.info(f"Matched {len(result.matched)} accounts; "
                f"{len(result.unmatched_budget)} budget and {len(result.unmatched_actual)} actual unmatched")
    return result


def align_actual_ids(budget_lines: Sequence[BudgetLine],
                     actual_lines: Sequence[ActualLine]) -> List[ActualLine]:
    """
    Rewrite matched actual lines to carry their budget line's account id
    and parent, so the engine can pair them by id.

    Unmatched actual lines are returned unchanged.
    """
    result = match_budget_with_actuals(budget_lines, actual_lines)
    aligned = [
        replace(actual, account_id=budget.account_id,
                parent_account_id=actual.parent_account_id or budget.parent_account_id)
        for budget, actual in result.matched
    ]
    aligned.extend(result.unmatched_actual)
    return aligned
