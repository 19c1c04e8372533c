"""
Services package mapping adaptive testing operations to request/response payloads.
"""

from .adaptive_service import (
    check_termination,
    estimate,
    next_item,
    rank_item_information,
)

__all__ = [
    "estimate",
    "next_item",
    "check_termination",
    "rank_item_information",
]
