"""
Item and response types shared by the CAT components.

Items are owned by an external question bank; the CAT core only reads their
IRT parameters. Responses copy those parameters at answer time so that
re-estimation stays correct even if the bank is later recalibrated.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class CalibratedItem(Protocol):
    """Protocol for items carrying 3PL parameters.

    Question-bank models and the ``Item`` dataclass both satisfy it.
    """

    @property
    def id(self) -> Any:
        ...

    @property
    def discrimination(self) -> float:
        ...

    @property
    def difficulty(self) -> float:
        ...

    @property
    def guessing(self) -> float:
        ...


@dataclass(frozen=True)
class Item:
    """An assessable question with calibrated 3PL parameters."""

    id: Any
    discrimination: float  # a parameter
    difficulty: float  # b parameter
    guessing: float = 0.0  # c parameter, 0 for free-response items
    subject: Optional[str] = None


@dataclass(frozen=True)
class ItemResponse:
    """Scored response paired with the item's parameters at answer time."""

    item_id: Any
    is_correct: bool
    discrimination: float
    difficulty: float
    guessing: float

    @classmethod
    def from_item(cls, item: CalibratedItem, is_correct: bool) -> "ItemResponse":
        return cls(
            item_id=item.id,
            is_correct=bool(is_correct),
            discrimination=item.discrimination,
            difficulty=item.difficulty,
            guessing=item.guessing,
        )


def get_item_subject(item: Any) -> Optional[str]:
    """
    Extract the subject string from an item, if it has one.

    Handles both plain string and str-Enum subject values.
    """
    subject = getattr(item, "subject", None)
    if subject is None:
        return None
    return subject.value if hasattr(subject, "value") else subject
