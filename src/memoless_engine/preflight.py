"""
Preflight evaluator.

Read-only pass run before a user sends funds: re-read the reference's usage
on chain (probing with the minimum valid amount, which always decodes to the
reference), then check the caller's exact amount against the reference tail
and the chain's dust threshold. Usage failures short-circuit the amount
checks; within each stage every failure is reported.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

from loguru import logger

from .assets import AssetRegistry, split_asset
from .codec.amounts import minimum_valid_amount, split_amount, to_raw_amount
from .errors import (
    ChainQueryFailed,
    InvalidRequest,
    PersistenceDisabled,
    PreflightRejected,
    RegistrationNotFound,
)
from .storage.base import RegistrationStatus, RegistrationStore
from .thornode.client import ThornodeClient
from .thornode.models import InboundAddress
from .validation import DEFAULT_DUST_THRESHOLD, validate_amount, validate_usage

BLOCK_TIME_SECONDS = 6

_URI_SCHEMES = {
    "BTC": "bitcoin",
    "LTC": "litecoin",
    "BCH": "bitcoincash",
    "DOGE": "dogecoin",
    "GAIA": "cosmos",
    "AVAX": "avalanche",
    "TRON": "tron",
    "XRP": "xrp",
}

# EVM chains: (chain id suffix, query parameter)
_EVM_SCHEMES = {
    "ETH": "",
    "BSC": "@56",
    "BASE": "@8453",
}


def payment_uri(chain: str, address: str, amount: str) -> str:
    """Wallet payment URI for a deposit; unknown chains get the bare amount."""
    if chain in _EVM_SCHEMES:
        return f"ethereum:{address}{_EVM_SCHEMES[chain]}?value={amount}"
    scheme = _URI_SCHEMES.get(chain)
    if scheme is None:
        return amount
    return f"{scheme}:{address}?amount={amount}"


def time_remaining(current_block: int, expiry_block: int) -> str:
    if expiry_block == 0:
        return "N/A"
    blocks = expiry_block - current_block
    if blocks <= 0:
        return "Expired"
    minutes = blocks * BLOCK_TIME_SECONDS // 60
    if minutes >= 60:
        return f"{minutes // 60}h"
    if minutes >= 1:
        return f"{minutes}m"
    return "<1m"


@dataclass
class ExpiryEstimate:
    time_remaining: str
    current_block: int = 0
    blocks_remaining: int = 0

    @property
    def seconds_remaining(self) -> int:
        return self.blocks_remaining * BLOCK_TIME_SECONDS


@dataclass
class PreflightReport:
    asset: str
    reference: str
    decimals: int
    amount: str
    raw_amount: int
    current_uses: int
    max_uses: int
    memo: str
    expiry: ExpiryEstimate
    chain: str
    dust_threshold: int
    inbound_address: Optional[str] = None
    qr_code: Optional[str] = None

    def to_data(self) -> Dict[str, Any]:
        return {
            "current_uses": self.current_uses,
            "max_uses": self.max_uses,
            "memo": self.memo,
            "inbound_address": self.inbound_address,
            "chain": self.chain,
            "dust_threshold": self.dust_threshold,
            "qr_code": self.qr_code,
            "time_remaining": self.expiry.time_remaining,
            "blocks_remaining": self.expiry.blocks_remaining,
            "seconds_remaining": self.expiry.seconds_remaining,
            "raw_amount": str(self.raw_amount),
        }


class PreflightEvaluator:
    def __init__(self, assets: AssetRegistry, thornode: ThornodeClient, store: RegistrationStore):
        self._assets = assets
        self._thornode = thornode
        self._store = store

    async def evaluate(
        self,
        amount: str,
        internal_api_id: Optional[str] = None,
        asset: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> PreflightReport:
        if not amount:
            raise InvalidRequest("Amount is required", code="MISSING_AMOUNT")
        split_amount(amount)
        asset, reference = await self._resolve_target(internal_api_id, asset, reference)

        decimals = await self._assets.resolve_decimals(asset)
        probe = minimum_valid_amount(reference, decimals)
        usage = await self._thornode.memo_check(asset, to_raw_amount(probe))
        expiry = await self._estimate_expiry(usage.expiry_block)
        logger.info(
            f"[Preflight] {asset} ref={reference} decimals={decimals} probe={probe} "
            f"uses={usage.usage_count}/{usage.max_use} expires_at={usage.expires_at or '-'}"
        )

        counters = {
            "current_uses": usage.usage_count,
            "max_uses": usage.max_use,
            "time_remaining": expiry.time_remaining,
            "blocks_remaining": expiry.blocks_remaining,
            "seconds_remaining": expiry.seconds_remaining,
        }
        rejections = validate_usage(usage)
        if rejections:
            logger.info(f"[Preflight] usage rejected: {[r.message for r in rejections]}")
            raise PreflightRejected(rejections, details=counters)

        chain, _ = split_asset(asset)
        inbound = await self._inbound(chain)
        dust_threshold = inbound.dust_threshold if inbound is not None else DEFAULT_DUST_THRESHOLD

        check = validate_amount(amount, reference, decimals, dust_threshold)
        if not check.ok:
            logger.info(f"[Preflight] amount {amount} rejected: {[r.message for r in check.rejections]}")
            raise PreflightRejected(check.rejections, details=counters)

        report = PreflightReport(
            asset=asset,
            reference=reference,
            decimals=decimals,
            amount=amount,
            raw_amount=check.raw_amount,
            current_uses=usage.usage_count,
            max_uses=usage.max_use,
            memo=usage.memo,
            expiry=expiry,
            chain=chain,
            dust_threshold=dust_threshold,
        )
        if inbound is not None and inbound.address:
            report.inbound_address = inbound.address
            report.qr_code = payment_uri(chain, inbound.address, amount)
        logger.info(f"[Preflight] passed {asset} ref={reference} amount={amount}")
        return report

    async def _resolve_target(self, internal_api_id, asset, reference):
        # asset + reference wins: no store round-trip
        if asset and reference:
            return asset, reference
        if not internal_api_id:
            raise InvalidRequest("Either internal_api_id OR both asset and reference are required")
        if not self._store.enabled:
            raise PersistenceDisabled(
                "Database is disabled. Cannot lookup registrations by internal_api_id. "
                "Please use \"asset\" and \"reference\" parameters instead for preflight checks."
            )
        record = await asyncio.to_thread(self._store.get, internal_api_id)
        if record is None or record.status != RegistrationStatus.CONFIRMED or not record.reference_id:
            raise RegistrationNotFound("Registration not found or not confirmed")
        return record.asset, record.reference_id

    async def _inbound(self, chain: str) -> Optional[InboundAddress]:
        try:
            return await self._thornode.inbound_address_for(chain)
        except ChainQueryFailed as e:
            logger.warning(
                f"[Preflight] inbound lookup for {chain} failed, dust threshold {DEFAULT_DUST_THRESHOLD}: {e}"
            )
            return None

    async def _estimate_expiry(self, expiry_block: int) -> ExpiryEstimate:
        if expiry_block == 0:
            return ExpiryEstimate(time_remaining="N/A")
        try:
            current = await self._thornode.last_block()
        except ChainQueryFailed as e:
            logger.warning(f"[Preflight] current block unavailable: {e}")
            return ExpiryEstimate(time_remaining="Unknown")
        return ExpiryEstimate(
            time_remaining=time_remaining(current, expiry_block),
            current_block=current,
            blocks_remaining=expiry_block - current,
        )
