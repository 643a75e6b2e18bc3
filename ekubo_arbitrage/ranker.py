"""
Profit ranking of swept quotes.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from .types import Candidate, Quote

logger = logging.getLogger(__name__)


def rank_candidates(
    results: Iterable[Tuple[int, Optional[Quote]]],
    min_profit: int = 0,
    top_n: int = 1,
) -> List[Candidate]:
    """
    Rank quotes by on-paper profit (gas is not considered).

    Args:
        results: (amount, quote) pairs in ladder order; None quotes are dropped
        min_profit: Candidates must have profit strictly greater than this
        top_n: Maximum number of candidates returned (at least 1)

    Returns:
        Candidates sorted by descending profit. Ties keep their input order.
    """
    candidates = [
        Candidate.from_quote(amount, quote)
        for amount, quote in results
        if quote is not None
    ]
    profitable = [c for c in candidates if c.profit > min_profit]

    # sorted() is stable, so equal profits stay in ascending-amount order
    profitable = sorted(profitable, key=lambda c: c.profit, reverse=True)

    logger.debug(
        f"{len(candidates)} quotes, {len(profitable)} above min profit {min_profit}"
    )
    return profitable[: max(1, top_n)]
