"""Pydantic schemas for adaptive testing request/response payloads.

Requests accept camelCase keys; responses use the same keys when dumped with
``model_dump(by_alias=True)``.
"""
import math
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cat_service.core.cat.stopping_rules import MAX_STANDARD_ERROR, MIN_ITEMS

ItemId = Union[int, str]


class ItemParameters(BaseModel):
    """Calibrated 3PL parameters of a question-bank item."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: ItemId
    discrimination: float = Field(
        ..., alias="a", gt=0, allow_inf_nan=False, description="Discrimination (a)"
    )
    difficulty: float = Field(
        ..., alias="b", allow_inf_nan=False, description="Difficulty (b)"
    )
    guessing: float = Field(
        0.0, alias="c", ge=0, lt=1, allow_inf_nan=False, description="Guessing (c)"
    )
    subject: Optional[str] = None


class ResponseRecord(BaseModel):
    """A scored answer with the item parameters captured at answer time."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    item_id: Optional[ItemId] = Field(None, alias="itemId")
    correct: bool
    discrimination: float = Field(..., alias="a", gt=0, allow_inf_nan=False)
    difficulty: float = Field(..., alias="b", allow_inf_nan=False)
    guessing: float = Field(0.0, alias="c", ge=0, lt=1, allow_inf_nan=False)


class ThetaEstimateRequest(BaseModel):
    """Request body for ability re-estimation."""

    model_config = ConfigDict(populate_by_name=True)

    responses: List[ResponseRecord]
    prior_theta: float = Field(0.0, alias="priorTheta", allow_inf_nan=False)


class ThetaEstimateResponse(BaseModel):
    """Ability estimate and its precision.

    ``standard_error`` is None while no estimate is possible (infinite SE).
    """

    theta: float
    standard_error: Optional[float] = Field(None, serialization_alias="standardError")
    confidence: int


class NextItemRequest(BaseModel):
    """Request body for next-item selection."""

    model_config = ConfigDict(populate_by_name=True)

    item_pool: List[ItemParameters] = Field(..., alias="itemPool")
    theta: float = Field(0.0, allow_inf_nan=False)
    administered_ids: List[ItemId] = Field(
        default_factory=list, alias="administeredIds"
    )
    subject: Optional[str] = None


class NextItemResponse(BaseModel):
    """Selected item, or None with done=True when the pool is exhausted."""

    item: Optional[ItemParameters] = None
    information: Optional[float] = None
    done: bool


class TerminationRequest(BaseModel):
    """Request body for the stopping rule."""

    model_config = ConfigDict(populate_by_name=True)

    answered_count: int = Field(..., alias="answeredCount", ge=0)
    standard_error: Optional[float] = Field(None, alias="standardError", ge=0)
    min_items: int = Field(MIN_ITEMS, alias="minItems", ge=1)
    max_standard_error: float = Field(
        MAX_STANDARD_ERROR, alias="maxStandardError", gt=0
    )

    @field_validator("standard_error")
    @classmethod
    def reject_nan(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and math.isnan(value):
            raise ValueError("standardError must be a number or null")
        return value


class TerminationResponse(BaseModel):
    """Stopping decision."""

    should_terminate: bool = Field(..., serialization_alias="shouldTerminate")


class ItemInformationRequest(BaseModel):
    """Request body for ranking a pool by information at theta."""

    model_config = ConfigDict(populate_by_name=True)

    item_pool: List[ItemParameters] = Field(..., alias="itemPool")
    theta: float = Field(0.0, allow_inf_nan=False)


class ItemInformationEntry(BaseModel):
    """One item's response probability and information at theta."""

    id: ItemId
    probability: float
    information: float


class ItemInformationResponse(BaseModel):
    """Pool ranked by information, most informative first."""

    theta: float
    items: List[ItemInformationEntry]


def serialize_standard_error(se: float) -> Optional[float]:
    """Map the infinite-SE sentinel to None for JSON payloads."""
    return se if math.isfinite(se) else None


def deserialize_standard_error(se: Optional[Any]) -> float:
    """Map a None payload SE back to the infinite sentinel."""
    return math.inf if se is None else float(se)
