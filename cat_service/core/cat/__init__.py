"""
CAT (Computerized Adaptive Testing) core.

Pure 3PL model functions, Newton-Raphson ability estimation, maximum
information item selection and the stopping rule, plus the session state and
orchestrator that drive them for one exam attempt.
"""

from .ability_estimation import compute_standard_error, estimate_theta
from .engine import CATResult, CATSessionManager, CATStepResult
from .irt_model import (
    fisher_information,
    item_characteristic_curve,
    probability_correct,
    total_information,
)
from .item_selection import filter_eligible, rank_items, select_next_item
from .models import CalibratedItem, Item, ItemResponse
from .session import (
    SessionState,
    confidence_percent,
    eligible_items,
    last_item_information,
    record_response,
)
from .stopping_rules import (
    StopReason,
    StoppingDecision,
    check_stopping_criteria,
    should_terminate,
)

__all__ = [
    "probability_correct",
    "fisher_information",
    "total_information",
    "item_characteristic_curve",
    "estimate_theta",
    "compute_standard_error",
    "select_next_item",
    "filter_eligible",
    "rank_items",
    "should_terminate",
    "check_stopping_criteria",
    "StopReason",
    "StoppingDecision",
    "CalibratedItem",
    "Item",
    "ItemResponse",
    "SessionState",
    "record_response",
    "eligible_items",
    "confidence_percent",
    "last_item_information",
    "CATSessionManager",
    "CATStepResult",
    "CATResult",
]
