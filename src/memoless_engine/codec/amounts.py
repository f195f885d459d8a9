"""
Fixed-point amount codec.

A reference ID is carried in the low-order fractional digits of a transfer
amount. Everything here works on ASCII digit strings: truncation, tail
extraction, comparison and the carry/borrow arithmetic used to build valid
amounts. Nothing is ever converted to a binary float, since 18-decimal assets
exceed float64 precision at ordinary amounts.
"""

import re
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from ..errors import MalformedAmount

THORCHAIN_RAW_DECIMALS = 8

_AMOUNT_RE = re.compile(r"^([0-9]*)(?:\.([0-9]*))?$")


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


# ── Parsing ─────────────────────────────────────────────────────


def split_amount(amount) -> Tuple[str, str]:
    """Split an amount into (integer digits, fractional digits).

    The integer part loses redundant leading zeros ("007.5" -> ("7", "5"));
    the fractional part is returned exactly as written. Raises MalformedAmount
    for anything that is not a non-negative fixed-point decimal.
    """
    if amount is None:
        raise MalformedAmount("Amount is required")
    text = str(amount).strip()
    match = _AMOUNT_RE.match(text)
    if not match or not (match.group(1) or match.group(2)):
        raise MalformedAmount(f"Amount '{text}' is not a valid decimal number")
    integer, fraction = match.group(1), match.group(2) or ""
    return integer.lstrip("0") or "0", fraction


def _check_reference(reference_id: str) -> str:
    if not reference_id or not (reference_id.isascii() and reference_id.isdigit()):
        raise MalformedAmount(f"Reference '{reference_id}' must be a non-empty string of digits")
    return reference_id


def _check_decimals(decimals: int) -> int:
    if decimals < 0:
        raise MalformedAmount(f"Decimal precision must be non-negative, got {decimals}")
    return decimals


def _join(integer: str, fraction: str) -> str:
    integer = integer.lstrip("0") or "0"
    return f"{integer}.{fraction}" if fraction else integer


def effective_reference(reference_id: str, decimals: int) -> str:
    """The part of a reference an asset's precision can actually carry."""
    return _check_reference(reference_id)[:decimals]


# ── Truncation / tails ──────────────────────────────────────────


def truncate(amount, decimals: int) -> str:
    """Keep at most `decimals` fractional digits, never rounding; pad short ones."""
    _check_decimals(decimals)
    integer, fraction = split_amount(amount)
    return _join(integer, fraction[:decimals].ljust(decimals, "0"))


def extract_tail(amount, decimals: int, reference_length: int) -> str:
    """Last `reference_length` fractional digits once truncated/padded to `decimals`."""
    _check_decimals(decimals)
    _, fraction = split_amount(amount)
    fraction = fraction[:decimals].ljust(decimals, "0")
    if reference_length <= 0:
        return ""
    return fraction[-reference_length:] if reference_length <= decimals else fraction


def matches_reference(amount, decimals: int, reference_id: str) -> bool:
    """The one acceptance predicate: does the amount decode to this reference?"""
    expected = effective_reference(reference_id, decimals)
    if not expected:
        return False
    return extract_tail(amount, decimals, len(expected)) == expected


# ── Comparison ──────────────────────────────────────────────────


def compare(a, b) -> int:
    """Digit-wise three-way comparison of two non-negative decimals (-1, 0, 1)."""
    a_int, a_frac = split_amount(a)
    b_int, b_frac = split_amount(b)
    if len(a_int) != len(b_int):
        return -1 if len(a_int) < len(b_int) else 1
    width = max(len(a_frac), len(b_frac))
    left = a_int + a_frac.ljust(width, "0")
    right = b_int + b_frac.ljust(width, "0")
    if left == right:
        return 0
    return -1 if left < right else 1


def is_positive(amount) -> bool:
    integer, fraction = split_amount(amount)
    return integer != "0" or fraction.strip("0") != ""


# ── Carry / borrow ──────────────────────────────────────────────


def increment_digits(digits: str) -> str:
    """Add one to a digit string, carrying leftward ("0999" -> "1000", "99" -> "100")."""
    out = list(digits)
    i = len(out) - 1
    while i >= 0:
        if out[i] == "9":
            out[i] = "0"
            i -= 1
            continue
        out[i] = chr(ord(out[i]) + 1)
        return "".join(out)
    return "1" + "".join(out)


def decrement_digits(digits: str) -> Optional[str]:
    """Subtract one with borrow, keeping width; None when the value is already zero."""
    if digits.strip("0") == "":
        return None
    out = list(digits)
    i = len(out) - 1
    while out[i] == "0":
        out[i] = "9"
        i -= 1
    out[i] = chr(ord(out[i]) - 1)
    return "".join(out)


# ── Reference embedding ─────────────────────────────────────────


def minimum_valid_amount(reference_id: str, decimals: int) -> str:
    """Smallest amount carrying the reference behind a non-zero digit.

    With room to spare the digit right before the reference block is "1" and
    everything above it is zero: reference "00008" at 8 decimals gives
    0.00100008. When the reference fills (or overflows) the precision, the
    reference is cut to `decimals` digits and the "1" moves to the units place.
    """
    _check_decimals(decimals)
    reference_id = _check_reference(reference_id)
    if len(reference_id) >= decimals:
        return _join("1", reference_id[:decimals])
    padding = decimals - len(reference_id) - 1
    return _join("0", "0" * padding + "1" + reference_id)


def _embed(prefix_digits: str, prefix_width: int, reference: str) -> str:
    # prefix_digits holds integer digits followed by `prefix_width` fraction digits
    if prefix_width:
        integer, fraction_head = prefix_digits[:-prefix_width], prefix_digits[-prefix_width:]
    else:
        integer, fraction_head = prefix_digits, ""
    return _join(integer or "0", fraction_head + reference)


def embed_and_raise(desired_amount, reference_id: str, decimals: int, direction=Direction.UP) -> str:
    """Nearest amount carrying the reference, above (UP) or at/below (DOWN) the desired one.

    The desired amount is truncated to the asset precision, its last
    len(reference) fractional digits are replaced by the reference, and the
    digit immediately before the reference block is stepped by one (carrying
    or borrowing through the fraction and into the integer part) until the
    candidate lands on the requested side. Going below zero on the way down
    clamps to minimum_valid_amount.
    """
    direction = Direction(direction)
    _check_decimals(decimals)
    if decimals == 0:
        raise MalformedAmount("Asset has no decimal places to carry a reference")
    reference = effective_reference(reference_id, decimals)
    target = truncate(desired_amount, decimals)

    integer, fraction = split_amount(target)
    prefix_width = decimals - len(reference)
    prefix = integer + fraction[:prefix_width]
    candidate = _embed(prefix, prefix_width, reference)

    # each step moves the candidate by 10^-(len(reference)), so two steps always suffice
    for _ in range(4):
        if direction is Direction.UP:
            if compare(candidate, target) > 0:
                return candidate
            prefix = increment_digits(prefix)
        else:
            if compare(candidate, target) <= 0:
                return candidate
            lowered = decrement_digits(prefix)
            if lowered is None:
                return minimum_valid_amount(reference_id, decimals)
            prefix = lowered
        candidate = _embed(prefix, prefix_width, reference)
    raise RuntimeError(f"embedding {reference} into {target} did not converge")


def suggested_amount(requested_amount, reference_id: str, decimals: int) -> str:
    """Amount to suggest at registration time: raise above the request, never below the minimum."""
    minimum = minimum_valid_amount(reference_id, decimals)
    if compare(requested_amount, minimum) < 0:
        return minimum
    return embed_and_raise(requested_amount, reference_id, decimals, Direction.UP)


# ── Unit conversion ─────────────────────────────────────────────


def to_raw_amount(amount, places: int = THORCHAIN_RAW_DECIMALS) -> int:
    """Fixed-unit integer form (1e8 by default, as thornode expects), truncating."""
    integer, fraction = split_amount(amount)
    return int(integer + fraction[:places].ljust(places, "0"))


def from_raw_amount(raw, places: int = THORCHAIN_RAW_DECIMALS) -> str:
    digits = str(int(raw))
    if places == 0:
        return digits
    digits = digits.rjust(places + 1, "0")
    return _join(digits[:-places], digits[-places:].rstrip("0"))


def to_decimal(amount) -> Decimal:
    integer, fraction = split_amount(amount)
    return Decimal(_join(integer, fraction))
