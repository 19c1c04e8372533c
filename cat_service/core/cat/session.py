"""
Per-attempt session state for adaptive testing.

A ``SessionState`` is an immutable snapshot. Recording an answer returns a new
snapshot with the response, re-estimated theta and SE appended; existing
history is never rewritten. One state belongs to one exam attempt and must not
be advanced by two callers at once, since each estimate starts from the
previous one.

Lifecycle:
    Initialized(theta=prior) -> [AnswerRecorded -> ReEstimated]*
        -> ItemSelected | Exhausted | Terminated
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, FrozenSet, List, Optional, Sequence, Tuple

from cat_service.core.cat.ability_estimation import (
    clamp_theta,
    compute_standard_error,
    estimate_theta,
)
from cat_service.core.cat.irt_model import fisher_information
from cat_service.core.cat.item_selection import ItemT, filter_eligible
from cat_service.core.cat.models import CalibratedItem, ItemResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionState:
    """Append-only record of one adaptive exam attempt."""

    theta: float = 0.0
    standard_error: float = math.inf  # No estimate possible yet
    responses: Tuple[ItemResponse, ...] = ()
    administered_ids: FrozenSet[Any] = frozenset()
    theta_history: Tuple[float, ...] = ()
    se_history: Tuple[float, ...] = ()
    session_id: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        n = len(self.responses)
        if len(self.theta_history) != n or len(self.se_history) != n:
            raise ValueError(
                f"History length mismatch: {n} responses, "
                f"{len(self.theta_history)} theta entries, "
                f"{len(self.se_history)} SE entries"
            )

    @classmethod
    def initial(
        cls, prior_theta: float = 0.0, session_id: Optional[str] = None
    ) -> "SessionState":
        """Create the state for a new attempt."""
        if not math.isfinite(prior_theta):
            raise ValueError(f"prior_theta must be a finite number, got {prior_theta}")
        return cls(theta=clamp_theta(prior_theta), session_id=session_id)

    @property
    def answered_count(self) -> int:
        return len(self.responses)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.responses if r.is_correct)


def record_response(
    state: SessionState,
    item: CalibratedItem,
    is_correct: bool,
) -> SessionState:
    """
    Record a scored answer and re-estimate ability.

    Args:
        state: Current session snapshot (not modified).
        item: The item that was answered.
        is_correct: Whether the answer was correct.

    Returns:
        New snapshot with the response and updated estimates appended.

    Raises:
        ValueError: If the item was already administered in this session.
    """
    if item.id in state.administered_ids:
        raise ValueError(
            f"Item {item.id!r} was already administered in this session"
        )

    responses = state.responses + (ItemResponse.from_item(item, is_correct),)
    theta = estimate_theta(responses, prior_theta=state.theta)
    se = compute_standard_error(theta, responses)

    logger.debug(
        f"Session {state.session_id}: response #{len(responses)} "
        f"(item {item.id!r}, correct={bool(is_correct)}) -> "
        f"theta={theta:.3f}, SE={se:.3f}"
    )

    return replace(
        state,
        theta=theta,
        standard_error=se,
        responses=responses,
        administered_ids=state.administered_ids | {item.id},
        theta_history=state.theta_history + (theta,),
        se_history=state.se_history + (se,),
    )


def eligible_items(
    state: SessionState,
    item_pool: Sequence[ItemT],
    subject: Optional[str] = None,
) -> List[ItemT]:
    """Items from the pool not yet administered in this session."""
    return filter_eligible(item_pool, state.administered_ids, subject=subject)


def confidence_percent(standard_error: float) -> int:
    """
    Precision as a 0-100 display percentage.

    confidence = (1 - SE / 2) * 100, clamped to [0, 100]. An infinite SE has
    zero confidence.
    """
    if math.isinf(standard_error):
        return 0
    confidence = max(0.0, min(100.0, (1.0 - standard_error / 2.0) * 100.0))
    # Half-up rounding: 98.5 displays as 99
    return int(math.floor(confidence + 0.5))


def last_item_information(state: SessionState) -> float:
    """Information of the most recently answered item at the current theta."""
    if not state.responses:
        return 0.0
    last = state.responses[-1]
    return fisher_information(
        state.theta, last.discrimination, last.difficulty, last.guessing
    )
