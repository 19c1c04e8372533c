"""
Adaptive testing service: one function per request/response pair.

Accepts either validated schema instances or plain JSON-like dicts. Dicts are
validated first, so malformed payloads fail with a pydantic ValidationError
before any computation runs.
"""
import logging
from typing import Any, Dict, Type, TypeVar, Union

from pydantic import BaseModel

from cat_service.core.cat.ability_estimation import (
    compute_standard_error,
    estimate_theta,
)
from cat_service.core.cat.irt_model import probability_correct
from cat_service.core.cat.item_selection import (
    filter_eligible,
    item_information,
    rank_items,
    select_next_item,
)
from cat_service.core.cat.models import ItemResponse
from cat_service.core.cat.session import confidence_percent
from cat_service.core.cat.stopping_rules import should_terminate
from cat_service.schemas.cat import (
    ItemInformationEntry,
    ItemInformationRequest,
    ItemInformationResponse,
    NextItemRequest,
    NextItemResponse,
    TerminationRequest,
    TerminationResponse,
    ThetaEstimateRequest,
    ThetaEstimateResponse,
    deserialize_standard_error,
    serialize_standard_error,
)

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)


def _validate(
    schema: Type[RequestT], payload: Union[RequestT, Dict[str, Any]]
) -> RequestT:
    if isinstance(payload, schema):
        return payload
    return schema.model_validate(payload)


def estimate(
    payload: Union[ThetaEstimateRequest, Dict[str, Any]],
) -> ThetaEstimateResponse:
    """Re-estimate ability from the full response history."""
    request = _validate(ThetaEstimateRequest, payload)

    responses = [
        ItemResponse(
            item_id=r.item_id,
            is_correct=r.correct,
            discrimination=r.discrimination,
            difficulty=r.difficulty,
            guessing=r.guessing,
        )
        for r in request.responses
    ]
    theta = estimate_theta(responses, prior_theta=request.prior_theta)
    se = compute_standard_error(theta, responses)
    logger.debug(
        f"Estimated theta={theta:.3f}, SE={se:.3f} from {len(responses)} responses"
    )

    return ThetaEstimateResponse(
        theta=theta,
        standard_error=serialize_standard_error(se),
        confidence=confidence_percent(se),
    )


def next_item(payload: Union[NextItemRequest, Dict[str, Any]]) -> NextItemResponse:
    """Select the most informative eligible item, or signal exhaustion."""
    request = _validate(NextItemRequest, payload)

    eligible = filter_eligible(
        request.item_pool, set(request.administered_ids), subject=request.subject
    )
    selected = select_next_item(eligible, request.theta)
    if selected is None:
        return NextItemResponse(item=None, information=None, done=True)

    return NextItemResponse(
        item=selected,
        information=item_information(selected, request.theta),
        done=False,
    )


def check_termination(
    payload: Union[TerminationRequest, Dict[str, Any]],
) -> TerminationResponse:
    """Apply the stopping rule; a null SE means no estimate yet."""
    request = _validate(TerminationRequest, payload)

    return TerminationResponse(
        should_terminate=should_terminate(
            request.answered_count,
            deserialize_standard_error(request.standard_error),
            min_items=request.min_items,
            max_standard_error=request.max_standard_error,
        )
    )


def rank_item_information(
    payload: Union[ItemInformationRequest, Dict[str, Any]],
) -> ItemInformationResponse:
    """Report P(correct) and information at theta for every pool item."""
    request = _validate(ItemInformationRequest, payload)

    entries = [
        ItemInformationEntry(
            id=candidate.item.id,
            probability=probability_correct(
                request.theta,
                candidate.item.discrimination,
                candidate.item.difficulty,
                candidate.item.guessing,
            ),
            information=candidate.information,
        )
        for candidate in rank_items(request.item_pool, request.theta)
    ]
    return ItemInformationResponse(theta=request.theta, items=entries)
