"""
THORChain memo parsing and affiliate rewriting.

Memos are colon-delimited; the first token selects the kind. Only swap and
add-liquidity memos carry affiliate slots:

    swap: ACTION:ASSET:DEST_ADDR:LIMIT:AFFILIATES:FEES[:...]
    add:  ACTION:ASSET:PAIRED_ADDR:AFFILIATES:FEES[:...]

Affiliates and fees are "/"-joined lists paired by position. Rewrites append,
never overwrite, and touch nothing but those two slots.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from loguru import logger

from ..errors import InvalidAffiliateInput, UnsupportedMemoKind

MAX_AFFILIATE_FEE_BP = 10000


class MemoKind(str, Enum):
    SWAP = "swap"
    ADD = "add"
    WITHDRAW = "withdraw"
    DONATE = "donate"
    BOND = "bond"
    UNBOND = "unbond"
    LEAVE = "leave"
    RESERVE = "reserve"
    REFUND = "refund"
    NOOP = "noop"
    UNKNOWN = "unknown"


# slot positions (affiliate, fee) per kind that supports injection
_AFFILIATE_SLOTS = {
    MemoKind.SWAP: (4, 5),
    MemoKind.ADD: (3, 4),
}

_NAMED_PREFIXES = (
    ("donate", MemoKind.DONATE),
    ("bond", MemoKind.BOND),
    ("unbond", MemoKind.UNBOND),
    ("leave", MemoKind.LEAVE),
    ("reserve", MemoKind.RESERVE),
    ("refund", MemoKind.REFUND),
    ("noop", MemoKind.NOOP),
)


@dataclass
class ParsedMemo:
    kind: MemoKind
    original: str
    action: str
    target_asset: str = ""
    target_address: str = ""
    limit: str = ""
    affiliates: List[str] = field(default_factory=list)
    fees: List[str] = field(default_factory=list)
    extra: List[str] = field(default_factory=list)

    @property
    def has_affiliate(self) -> bool:
        return bool(self.affiliates or self.fees)


@dataclass
class MemoRewrite:
    memo: str
    modified: bool
    changes: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def classify(action: str) -> MemoKind:
    lowered = action.lower()
    if action == "=" or lowered in ("s", "swap"):
        return MemoKind.SWAP
    if action == "+" or lowered.startswith("add"):
        return MemoKind.ADD
    if action == "-" or lowered.startswith("withdraw"):
        return MemoKind.WITHDRAW
    for prefix, kind in _NAMED_PREFIXES:
        if lowered.startswith(prefix):
            return kind
    return MemoKind.UNKNOWN


def _split_list(slot: str) -> List[str]:
    return slot.split("/") if slot else []


def parse_memo(memo: str) -> ParsedMemo:
    trimmed = (memo or "").strip()
    if not trimmed:
        return ParsedMemo(kind=MemoKind.UNKNOWN, original=memo or "", action="")

    parts = trimmed.split(":")
    action = parts[0]
    kind = classify(action)

    def at(i: int) -> str:
        return parts[i] if i < len(parts) else ""

    parsed = ParsedMemo(kind=kind, original=memo, action=action)
    if kind is MemoKind.SWAP:
        parsed.target_asset, parsed.target_address, parsed.limit = at(1), at(2), at(3)
        parsed.affiliates, parsed.fees = _split_list(at(4)), _split_list(at(5))
        parsed.extra = parts[6:]
    elif kind is MemoKind.ADD:
        parsed.target_asset, parsed.target_address = at(1), at(2)
        parsed.affiliates, parsed.fees = _split_list(at(3)), _split_list(at(4))
        parsed.extra = parts[5:]
    elif kind is MemoKind.WITHDRAW:
        # -:POOL:BASIS_POINTS:ASSET_ADDR
        parsed.target_asset, parsed.limit, parsed.target_address = at(1), at(2), at(3)
        parsed.extra = parts[4:]
    else:
        parsed.extra = parts[1:]
    return parsed


def _validate_affiliate(address: str, fee_bp) -> Tuple[str, str]:
    address = (address or "").strip()
    if not address:
        raise InvalidAffiliateInput("Affiliate address cannot be empty")
    fee = str(fee_bp).strip()
    if not (fee.isascii() and fee.isdigit()) or int(fee) > MAX_AFFILIATE_FEE_BP:
        raise InvalidAffiliateInput(
            f"Invalid affiliate fee: {fee_bp}. Must be 0-{MAX_AFFILIATE_FEE_BP} basis points"
        )
    return address, str(int(fee))


def _padded_fields(memo: str, width: int) -> List[str]:
    fields = memo.strip().split(":")
    while len(fields) < width:
        fields.append("")
    return fields


def inject_affiliate(memo: str, affiliate: str, fee_bp="5") -> MemoRewrite:
    """Append an affiliate/fee pair to a swap or add memo.

    Raises UnsupportedMemoKind for other kinds and InvalidAffiliateInput for
    an empty address, an out-of-range fee, or an existing affiliate list whose
    fee list is not paired one-to-one with it.
    """
    parsed = parse_memo(memo)
    slots = _AFFILIATE_SLOTS.get(parsed.kind)
    if slots is None:
        raise UnsupportedMemoKind(f"Memo type '{parsed.kind.value}' does not support affiliate fees")

    affiliate, fee = _validate_affiliate(affiliate, fee_bp)
    aff_slot, fee_slot = slots
    fields = _padded_fields(memo, fee_slot + 1)

    affiliates, fees = _split_list(fields[aff_slot]), _split_list(fields[fee_slot])
    if len(affiliates) != len(fees):
        raise InvalidAffiliateInput(
            f"Existing affiliates ({fields[aff_slot] or '-'}) and fees ({fields[fee_slot] or '-'}) are not paired"
        )

    changes = []
    if affiliates:
        changes.append(f"Appended affiliate: {fields[aff_slot]} -> {fields[aff_slot]}/{affiliate}")
        changes.append(f"Appended affiliate fee: {fields[fee_slot]} -> {fields[fee_slot]}/{fee} BP")
    else:
        changes.append(f"Added affiliate: {affiliate}")
        changes.append(f"Added affiliate fee: {fee} BP")

    fields[aff_slot] = "/".join(affiliates + [affiliate])
    fields[fee_slot] = "/".join(fees + [fee])
    return MemoRewrite(memo=":".join(fields), modified=True, changes=changes)


def try_inject_affiliate(memo: str, affiliate: str, fee_bp="5") -> MemoRewrite:
    """Non-raising inject_affiliate: failures come back as errors on the unmodified memo."""
    try:
        return inject_affiliate(memo, affiliate, fee_bp)
    except (UnsupportedMemoKind, InvalidAffiliateInput) as e:
        logger.debug(f"[MemoParser] Affiliate injection skipped: {e.message}")
        return MemoRewrite(memo=memo, modified=False, errors=[e.message])


# ── User-input helpers ──────────────────────────────────────────


def has_affiliate_info(memo: str) -> bool:
    return parse_memo(memo).has_affiliate


def extract_user_input(memo: str) -> str:
    """The caller-owned prefix of a swap/add memo, without affiliate slots."""
    parsed = parse_memo(memo)
    if parsed.kind is MemoKind.SWAP:
        return ":".join([parsed.action, parsed.target_asset, parsed.target_address, parsed.limit])
    if parsed.kind is MemoKind.ADD:
        return ":".join([parsed.action, parsed.target_asset, parsed.target_address])
    return memo


def replace_user_input(original_memo: str, new_user_input: str) -> str:
    """Swap in new caller fields while keeping the original memo's affiliate slots."""
    original = parse_memo(original_memo)
    new = parse_memo(new_user_input)
    if original.kind is not new.kind or original.kind not in _AFFILIATE_SLOTS:
        return new_user_input

    head = [new.action, new.target_asset, new.target_address]
    if new.kind is MemoKind.SWAP:
        head.append(new.limit)
    parts = head + ["/".join(original.affiliates), "/".join(original.fees)] + original.extra
    return ":".join(parts)
