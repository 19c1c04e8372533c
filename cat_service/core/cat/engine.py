"""
CATSessionManager: Orchestrator for adaptive test sessions.

Drives one exam attempt through item selection, ability re-estimation and the
stopping rule. The manager holds only configuration; every call takes a
``SessionState`` snapshot and returns a new one, so a single manager can serve
any number of concurrent sessions.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from cat_service.core.cat.item_selection import ItemT, select_next_item
from cat_service.core.cat.models import CalibratedItem
from cat_service.core.cat.session import (
    SessionState,
    confidence_percent,
    eligible_items,
    last_item_information,
    record_response,
)
from cat_service.core.cat.stopping_rules import (
    StopReason,
    StoppingDecision,
    check_stopping_criteria,
)
from cat_service.core.config import settings

logger = logging.getLogger(__name__)


def _log_extra(session: SessionState, **fields: Any) -> Dict[str, Any]:
    """Structured fields picked up by the JSON log formatter."""
    extra = {
        "session_id": session.session_id,
        "theta": session.theta,
        "standard_error": session.standard_error,
        "items_administered": session.answered_count,
    }
    extra.update(fields)
    return extra


@dataclass
class CATStepResult:
    """Result after processing a single response."""

    theta_estimate: float
    theta_se: float
    confidence: int
    item_information: float
    correct_count: int
    items_administered: int
    should_stop: bool
    stop_reason: Optional[StopReason]


@dataclass
class CATResult:
    """Final session summary."""

    theta_estimate: float
    theta_se: float
    confidence: int
    correct_count: int
    items_administered: int
    theta_history: List[float]
    se_history: List[float]
    administered_item_ids: List[Any]
    stop_reason: StopReason


class CATSessionManager:
    """
    Orchestrator for Computerized Adaptive Testing sessions.

    Manages:
    - Session initialization with a prior ability
    - Next-item selection from the not-yet-administered pool
    - Response recording with ability and SE re-estimation
    - Stopping decisions (SE threshold, optional length cap, pool exhaustion)
    - Final result summary
    """

    def __init__(
        self,
        min_items: Optional[int] = None,
        max_standard_error: Optional[float] = None,
        max_items: Optional[int] = None,
        prior_theta: Optional[float] = None,
    ):
        """Initialize with explicit thresholds, falling back to settings."""
        self.min_items = min_items if min_items is not None else settings.CAT_MIN_ITEMS
        self.max_standard_error = (
            max_standard_error
            if max_standard_error is not None
            else settings.CAT_MAX_STANDARD_ERROR
        )
        self.max_items = max_items if max_items is not None else settings.CAT_MAX_ITEMS
        self.prior_theta = (
            prior_theta if prior_theta is not None else settings.CAT_PRIOR_THETA
        )

        if self.min_items < 1:
            raise ValueError(f"min_items must be >= 1, got {self.min_items}")
        if self.max_standard_error <= 0:
            raise ValueError(
                f"max_standard_error must be positive, got {self.max_standard_error}"
            )
        if self.max_items is not None and self.max_items < 1:
            raise ValueError(f"max_items must be >= 1, got {self.max_items}")

    def initialize(
        self,
        session_id: Optional[str] = None,
        prior_theta: Optional[float] = None,
    ) -> SessionState:
        """
        Create a new session with default or custom prior ability.

        Args:
            session_id: Optional key used to correlate log entries.
            prior_theta: Optional prior ability (defaults to the configured prior).

        Returns:
            SessionState with no responses and an infinite SE.
        """
        theta = prior_theta if prior_theta is not None else self.prior_theta
        session = SessionState.initial(prior_theta=theta, session_id=session_id)

        logger.info(
            f"Initialized CAT session {session_id} "
            f"with prior theta={session.theta:.3f}",
            extra=_log_extra(session),
        )
        return session

    def next_item(
        self,
        session: SessionState,
        item_pool: Sequence[ItemT],
        subject: Optional[str] = None,
    ) -> Optional[ItemT]:
        """
        Select the most informative item not yet administered.

        Returns None when the eligible pool is empty.
        """
        eligible = eligible_items(session, item_pool, subject=subject)
        return select_next_item(eligible, session.theta)

    def process_response(
        self,
        session: SessionState,
        item: CalibratedItem,
        is_correct: bool,
        remaining_pool: Optional[Sequence[CalibratedItem]] = None,
        subject: Optional[str] = None,
    ) -> Tuple[SessionState, CATStepResult]:
        """
        Record a response and evaluate the stopping rule.

        Args:
            session: Current session snapshot (not modified).
            item: The answered item.
            is_correct: Whether the answer was correct.
            remaining_pool: Optional item pool; when given, an empty eligible
                remainder stops the session with POOL_EXHAUSTED.
            subject: Subject restriction applied to remaining_pool, matching
                the one used for next_item.

        Returns:
            Tuple of (new session snapshot, step result).
        """
        updated = record_response(session, item, is_correct)

        pool_exhausted = False
        if remaining_pool is not None:
            pool_exhausted = not eligible_items(
                updated, remaining_pool, subject=subject
            )

        decision = self.should_stop(updated, pool_exhausted=pool_exhausted)

        step = CATStepResult(
            theta_estimate=updated.theta,
            theta_se=updated.standard_error,
            confidence=confidence_percent(updated.standard_error),
            item_information=last_item_information(updated),
            correct_count=updated.correct_count,
            items_administered=updated.answered_count,
            should_stop=decision.should_stop,
            stop_reason=decision.reason,
        )
        return updated, step

    def should_stop(
        self, session: SessionState, pool_exhausted: bool = False
    ) -> StoppingDecision:
        """Evaluate the configured stopping criteria for a session."""
        decision = check_stopping_criteria(
            standard_error=session.standard_error,
            num_items=session.answered_count,
            min_items=self.min_items,
            max_standard_error=self.max_standard_error,
            max_items=self.max_items,
            pool_exhausted=pool_exhausted,
        )

        if decision.should_stop:
            logger.info(
                f"Session {session.session_id}: stopping due to "
                f"{decision.reason.value} "
                f"(SE={session.standard_error:.3f}, items={session.answered_count})",
                extra=_log_extra(session, stop_reason=decision.reason.value),
            )

        return decision

    def finalize(self, session: SessionState, stop_reason: StopReason) -> CATResult:
        """
        Summarize a finished session.

        Args:
            session: The completed session.
            stop_reason: Why the session ended.

        Returns:
            CATResult with final estimates and trajectories.
        """
        result = CATResult(
            theta_estimate=session.theta,
            theta_se=session.standard_error,
            confidence=confidence_percent(session.standard_error),
            correct_count=session.correct_count,
            items_administered=session.answered_count,
            theta_history=list(session.theta_history),
            se_history=list(session.se_history),
            administered_item_ids=[r.item_id for r in session.responses],
            stop_reason=stop_reason,
        )

        logger.info(
            f"Session {session.session_id} finalized: "
            f"theta={result.theta_estimate:.3f}, SE={result.theta_se:.3f}, "
            f"items={result.items_administered}, correct={result.correct_count}, "
            f"stop_reason={stop_reason.value}",
            extra=_log_extra(session, stop_reason=stop_reason.value),
        )
        return result

