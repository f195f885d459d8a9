"""
Reference validation: usage-stat rules and amount admissibility.

Both checks collect every failure instead of stopping at the first, so a
caller sees the full list of reasons an amount would not be honoured.
"""

from dataclasses import dataclass, field
from typing import List

from .codec.amounts import effective_reference, matches_reference, to_raw_amount
from .errors import (
    AmountMismatch,
    BelowDustThreshold,
    PreflightRejection,
    ReferenceExhausted,
    ReferenceExpired,
    ReferenceNotRegistered,
)
from .thornode.models import MemoCheck

DEFAULT_DUST_THRESHOLD = 1000


@dataclass
class AmountCheck:
    amount: str
    raw_amount: int
    reference_matches: bool
    above_dust_threshold: bool
    rejections: List[PreflightRejection] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejections


def validate_usage(usage: MemoCheck) -> List[PreflightRejection]:
    rejections: List[PreflightRejection] = []
    if usage.available:
        rejections.append(
            ReferenceNotRegistered("Reference ID is not registered yet - available for registration")
        )
    if usage.usage_count >= usage.max_use:
        rejections.append(
            ReferenceExhausted(
                f"Reference ID has reached maximum usage ({usage.usage_count}/{usage.max_use})"
            )
        )
    if usage.expiry_block == 0:
        rejections.append(ReferenceExpired("Reference ID has no valid expiry time"))
    return rejections


def validate_amount(amount: str, reference_id: str, decimals: int, dust_threshold: int) -> AmountCheck:
    """Check an exact, caller-supplied amount.

    `dust_threshold` is in the chain's raw 1e8 unit; the amount must be
    strictly above it. Raises MalformedAmount if the amount does not parse.
    """
    raw = to_raw_amount(amount)
    matches = matches_reference(amount, decimals, reference_id)
    above_dust = raw > dust_threshold

    rejections: List[PreflightRejection] = []
    if not matches:
        expected = effective_reference(reference_id, decimals)
        rejections.append(
            AmountMismatch(
                f"Amount validation failed. The last {len(expected)} digits of the "
                f"decimal places must be {expected}"
            )
        )
    if not above_dust:
        rejections.append(BelowDustThreshold("Amount is below dust threshold"))
    return AmountCheck(
        amount=amount,
        raw_amount=raw,
        reference_matches=matches,
        above_dust_threshold=above_dust,
        rejections=rejections,
    )
