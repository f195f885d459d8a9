"""Amount helpers for clients choosing what to send: nearest valid amounts and formatting."""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List

from loguru import logger

from .assets import DEFAULT_DECIMALS, AssetRegistry
from .codec.amounts import (
    Direction,
    effective_reference,
    embed_and_raise,
    is_positive,
    split_amount,
    to_decimal,
)
from .errors import ChainQueryFailed, MalformedAmount

_CENT = Decimal("0.01")


@dataclass
class AmountSuggestions:
    valid_amount_rounded_up: str
    valid_amount_rounded_down: str
    rounded_up_difference_usd: str
    rounded_down_difference_usd: str
    decimals: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid_amount_rounded_up": self.valid_amount_rounded_up,
            "valid_amount_rounded_down": self.valid_amount_rounded_down,
            "rounded_up_difference_usd": self.rounded_up_difference_usd,
            "rounded_down_difference_usd": self.rounded_down_difference_usd,
        }


@dataclass
class FormattedAmount:
    input: str
    amount: str
    warnings: List[str] = field(default_factory=list)


def _usd(delta: Decimal, price: Decimal) -> str:
    return str((delta * price).quantize(_CENT, rounding=ROUND_HALF_UP))


async def suggest_amounts(registry: AssetRegistry, asset: str, reference: str, requested_amount: str) -> AmountSuggestions:
    decimals, price = DEFAULT_DECIMALS, Decimal(0)
    try:
        info = await registry.find(asset)
    except ChainQueryFailed as e:
        logger.warning(f"[Suggest] asset data unavailable for {asset}, using defaults: {e}")
        info = None
    if info is not None:
        decimals, price = info.decimals, info.price_usd

    up = embed_and_raise(requested_amount, reference, decimals, Direction.UP)
    down = embed_and_raise(requested_amount, reference, decimals, Direction.DOWN)
    requested = to_decimal(requested_amount)
    logger.info(f"[Suggest] {asset} ref={reference} requested={requested_amount} up={up} down={down}")
    return AmountSuggestions(
        valid_amount_rounded_up=up,
        valid_amount_rounded_down=down,
        rounded_up_difference_usd=_usd(to_decimal(up) - requested, price),
        rounded_down_difference_usd=_usd(requested - to_decimal(down), price),
        decimals=decimals,
    )


def format_amount(user_input: str, reference: str, decimals: int) -> FormattedAmount:
    """Append the reference to what the user typed, keeping as many of their decimals as fit.

    Extra user decimals are dropped (with a warning), never rounded. Raises
    MalformedAmount for non-positive input or when nothing but the reference
    would remain.
    """
    text = (user_input or "").strip()
    try:
        integer, fraction = split_amount(text)
    except MalformedAmount:
        raise MalformedAmount("Amount must be a valid positive number") from None
    if not is_positive(text):
        raise MalformedAmount("Amount must be a valid positive number")

    reference = effective_reference(reference, decimals)
    max_user_decimals = max(0, decimals - len(reference))
    warnings = []
    if len(fraction) > max_user_decimals:
        fraction = fraction[:max_user_decimals]
        warnings.append(f"Amount truncated to {max_user_decimals} decimals to fit reference ID")

    if integer == "0" and fraction.strip("0") == "":
        raise MalformedAmount(
            "Amount is too small - the base amount (excluding reference ID) must be greater than 0"
        )
    final = f"{integer}.{fraction.ljust(max_user_decimals, '0')}{reference}"
    return FormattedAmount(input=text, amount=final, warnings=warnings)
