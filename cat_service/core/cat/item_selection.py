"""
Maximum Fisher Information (MFI) item selection for Computerized Adaptive Testing.

Selects the item from an eligible pool that maximizes 3PL Fisher information
at the current ability estimate. The pool handed to ``select_next_item`` must
already exclude administered items; ``filter_eligible`` builds such a pool.

Tie-break: the first item in pool order wins among equally informative items,
so identical pools always yield the same pick.

References:
    - Lord, F. M. (1980). Applications of item response theory to practical
      testing problems. Chapter 10.
    - van der Linden, W.J. (1998). Bayesian item selection criteria for
      adaptive testing.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Collection, List, Optional, Sequence, TypeVar

from cat_service.core.cat.irt_model import fisher_information
from cat_service.core.cat.models import CalibratedItem, get_item_subject

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", bound=CalibratedItem)


@dataclass
class ItemCandidate:
    """An item with its computed Fisher information value."""

    item: Any
    information: float


def item_information(item: CalibratedItem, theta: float) -> float:
    """Fisher information of a pool item at theta."""
    return fisher_information(theta, item.discrimination, item.difficulty, item.guessing)


def rank_items(pool: Sequence[CalibratedItem], theta: float) -> List[ItemCandidate]:
    """
    Rank pool items by information at theta, most informative first.

    The sort is stable, so equally informative items keep their pool order.
    """
    candidates = [
        ItemCandidate(item=item, information=item_information(item, theta))
        for item in pool
    ]
    candidates.sort(key=lambda c: c.information, reverse=True)
    return candidates


def select_next_item(eligible_pool: Sequence[ItemT], theta: float) -> Optional[ItemT]:
    """
    Select the next item using Maximum Fisher Information.

    Args:
        eligible_pool: Items not yet administered in this session.
        theta: Current ability estimate.

    Returns:
        The item with the strictly greatest information (first one wins ties),
        or None when the pool is empty, signalling pool exhaustion.

    Raises:
        ValueError: If theta is not a finite number.
    """
    if not math.isfinite(theta):
        raise ValueError(f"theta must be a finite number, got {theta}")

    best_item: Optional[ItemT] = None
    best_info = -math.inf

    for item in eligible_pool:
        info = item_information(item, theta)
        if info > best_info:
            best_info = info
            best_item = item

    if best_item is None:
        logger.debug("Item pool exhausted: no eligible items to select")
        return None

    logger.debug(
        f"Item selection: theta={theta:.3f}, eligible={len(eligible_pool)}, "
        f"selected {best_item.id} "
        f"(a={best_item.discrimination:.2f}, b={best_item.difficulty:.2f}, "
        f"c={best_item.guessing:.2f}, info={best_info:.4f})"
    )

    return best_item


def filter_eligible(
    item_pool: Sequence[ItemT],
    administered_ids: Collection[Any],
    subject: Optional[str] = None,
) -> List[ItemT]:
    """
    Remove administered items from a pool, optionally restricting by subject.

    Args:
        item_pool: Full item pool from the question bank.
        administered_ids: Ids already given in this session.
        subject: If set, keep only items whose subject matches.

    Returns:
        Eligible items in their original pool order.
    """
    eligible = [item for item in item_pool if item.id not in administered_ids]
    if subject is not None:
        eligible = [item for item in eligible if get_item_subject(item) == subject]

    if not eligible:
        logger.debug(
            f"No eligible items remaining after filtering. "
            f"Pool size: {len(item_pool)}, administered: {len(administered_ids)}, "
            f"subject: {subject}"
        )

    return eligible
