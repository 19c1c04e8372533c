"""
Stopping rules for Computerized Adaptive Testing (CAT).

The core rule stops a session once enough items have been answered and the
ability estimate is precise enough:

    stop  iff  answered_count >= min_items  and  SE <= max_standard_error

``check_stopping_criteria`` wraps that rule for the session engine and adds the
two terminal conditions a live exam also hits: an optional exam length cap and
an exhausted item pool.

Stopping Rules (evaluated in priority order):
    1. Pool exhausted: no eligible item remains
    2. Maximum items: optional exam length cap reached
    3. Minimum items: test must continue until min_items are answered
    4. SE threshold: test stops when SE(theta) <= max_standard_error

References:
    - Weiss, D. J., & Kingsbury, G. G. (1984). Application of computerized
      adaptive testing to educational problems. Journal of Educational
      Measurement, 21(4), 361-375.
"""

import enum
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Items required before precision may end the test
MIN_ITEMS = 5

# Target precision in logits
MAX_STANDARD_ERROR = 0.35


class StopReason(str, enum.Enum):
    """Why an adaptive session ended."""

    SE_THRESHOLD = "se_threshold"
    MAX_ITEMS = "max_items"
    POOL_EXHAUSTED = "pool_exhausted"


@dataclass
class StoppingDecision:
    """
    Result of evaluating stopping criteria for a CAT session.

    Attributes:
        should_stop: Whether the test should terminate.
        reason: Primary reason for stopping (if should_stop=True), or None.
        details: Diagnostic information including:
            - se: Current standard error of theta (None when infinite)
            - num_items: Number of items answered
            - min_items: Configured minimum
            - max_standard_error: Configured SE threshold
            - min_items_met: Whether the minimum is satisfied
            - precision_met: Whether SE is at or below the threshold
            - at_max_items: Whether the optional length cap is reached
    """

    should_stop: bool
    reason: Optional[StopReason]
    details: Dict[str, Any]


def should_terminate(
    answered_count: int,
    standard_error: float,
    min_items: int = MIN_ITEMS,
    max_standard_error: float = MAX_STANDARD_ERROR,
) -> bool:
    """
    Decide whether adaptive testing should end.

    Args:
        answered_count: Number of scored responses so far.
        standard_error: Current SE; math.inf means no estimate yet.
        min_items: Items required before stopping.
        max_standard_error: Largest acceptable SE.

    Returns:
        True iff answered_count >= min_items and standard_error <= max_standard_error.

    Raises:
        ValueError: If answered_count is negative or standard_error is negative
            or NaN.
    """
    if answered_count < 0:
        raise ValueError(f"Number of items must be non-negative, got {answered_count}")
    if math.isnan(standard_error) or standard_error < 0:
        raise ValueError(
            f"Standard error must be non-negative, got {standard_error}"
        )

    return answered_count >= min_items and standard_error <= max_standard_error


def check_stopping_criteria(
    standard_error: float,
    num_items: int,
    min_items: int = MIN_ITEMS,
    max_standard_error: float = MAX_STANDARD_ERROR,
    max_items: Optional[int] = None,
    pool_exhausted: bool = False,
) -> StoppingDecision:
    """
    Evaluate all stopping criteria and determine whether the session should stop.

    Args:
        standard_error: Current SE of the ability estimate (math.inf allowed).
        num_items: Number of items answered so far.
        min_items: Items required before the SE rule may fire.
        max_standard_error: SE threshold for the precision rule.
        max_items: Optional exam length cap; None disables it.
        pool_exhausted: True when no eligible item remains.

    Returns:
        StoppingDecision with should_stop flag, reason, and diagnostic details.

    Raises:
        ValueError: If num_items or standard_error is negative.
    """
    precision_met = should_terminate(
        num_items, standard_error, min_items=0, max_standard_error=max_standard_error
    )
    at_max_items = max_items is not None and num_items >= max_items

    details: Dict[str, Any] = {
        "se": standard_error if math.isfinite(standard_error) else None,
        "num_items": num_items,
        "min_items": min_items,
        "max_standard_error": max_standard_error,
        "min_items_met": num_items >= min_items,
        "precision_met": precision_met,
        "at_max_items": at_max_items,
    }

    # Rule 1: nothing left to administer
    if pool_exhausted:
        logger.info(f"Stopping: item pool exhausted after {num_items} items")
        return StoppingDecision(
            should_stop=True, reason=StopReason.POOL_EXHAUSTED, details=details
        )

    # Rule 2: exam length cap
    if at_max_items:
        logger.info(f"Stopping: reached maximum items ({num_items}/{max_items})")
        return StoppingDecision(
            should_stop=True, reason=StopReason.MAX_ITEMS, details=details
        )

    # Rules 3 and 4: item floor and precision
    if should_terminate(num_items, standard_error, min_items, max_standard_error):
        logger.info(
            f"Stopping: SE threshold met (SE={standard_error:.4f} <= "
            f"{max_standard_error:.4f}) after {num_items} items"
        )
        return StoppingDecision(
            should_stop=True, reason=StopReason.SE_THRESHOLD, details=details
        )

    logger.debug(
        f"Continuing: SE={standard_error:.4f} (threshold={max_standard_error:.4f}), "
        f"items={num_items}/{min_items}"
    )
    return StoppingDecision(should_stop=False, reason=None, details=details)
