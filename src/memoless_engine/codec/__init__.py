from .amounts import (
    Direction,
    compare,
    embed_and_raise,
    extract_tail,
    matches_reference,
    minimum_valid_amount,
    suggested_amount,
    to_raw_amount,
    truncate,
)

__all__ = [
    "Direction",
    "compare",
    "embed_and_raise",
    "extract_tail",
    "matches_reference",
    "minimum_valid_amount",
    "suggested_amount",
    "to_raw_amount",
    "truncate",
]
