"""
Asset registry: registration-eligible assets derived from the pool listing.

Eligible: pool status Available, native (non-token) assets, any chain but THOR.
Listings are cached briefly; decimals lookups always go to the chain.
"""

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from loguru import logger

from .errors import AssetNotFound
from .thornode.client import ThornodeClient
from .thornode.models import PoolInfo

DEFAULT_DECIMALS = 8
_E8 = Decimal(100_000_000)


@dataclass(frozen=True)
class AssetInfo:
    asset: str
    chain: str
    symbol: str
    decimals: int
    price_usd: Decimal
    balance_rune: Decimal
    status: str
    is_token: bool = False

    def to_dict(self) -> dict:
        return {
            "asset": self.asset,
            "chain": self.chain,
            "decimals": self.decimals,
            "price_usd": str(self.price_usd),
            "balance_rune": str(self.balance_rune),
            "status": self.status,
            "is_token": self.is_token,
        }


def split_asset(asset: str):
    chain, _, symbol = asset.partition(".")
    return chain, symbol


def is_token(asset: str) -> bool:
    # CHAIN.SYMBOL-CONTRACT
    _, symbol = split_asset(asset)
    return "-" in symbol


def is_valid_asset_format(asset: str) -> bool:
    chain, symbol = split_asset(asset or "")
    return bool(chain) and bool(symbol) and "." not in symbol


def _to_asset_info(pool: PoolInfo) -> AssetInfo:
    chain, symbol = split_asset(pool.asset)
    return AssetInfo(
        asset=pool.asset,
        chain=chain,
        symbol=symbol,
        decimals=pool.effective_decimals,
        price_usd=Decimal(pool.asset_tor_price) / _E8,
        balance_rune=Decimal(pool.balance_rune) / _E8,
        status=pool.status,
        is_token=False,
    )


class AssetRegistry:
    def __init__(self, thornode: ThornodeClient, cache_ttl: float = 60.0, clock=time.monotonic):
        self._thornode = thornode
        self._cache_ttl = cache_ttl
        self._clock = clock
        self._cached: Optional[List[AssetInfo]] = None
        self._cached_at = 0.0

    async def _fetch(self) -> List[AssetInfo]:
        pools = await self._thornode.pools()
        eligible = [
            _to_asset_info(p)
            for p in pools
            if p.status == "Available" and not is_token(p.asset) and not p.asset.startswith("THOR.")
        ]
        eligible.sort(key=lambda a: a.balance_rune, reverse=True)
        logger.debug(f"[Assets] {len(eligible)} eligible of {len(pools)} pools")
        return eligible

    async def list_assets(self, fresh: bool = False) -> List[AssetInfo]:
        now = self._clock()
        if not fresh and self._cached is not None and now - self._cached_at < self._cache_ttl:
            return self._cached
        assets = await self._fetch()
        self._cached, self._cached_at = assets, now
        return assets

    async def find(self, asset: str, fresh: bool = False) -> Optional[AssetInfo]:
        for info in await self.list_assets(fresh=fresh):
            if info.asset == asset:
                return info
        return None

    async def get_asset(self, asset: str) -> AssetInfo:
        info = await self.find(asset)
        if info is None:
            raise AssetNotFound(f"Asset {asset} not found or not supported")
        return info

    async def resolve_decimals(self, asset: str) -> int:
        """Current precision for an asset, never from cache; 8 when the pool is unknown."""
        info = await self.find(asset, fresh=True)
        if info is None:
            logger.warning(f"[Assets] {asset} not found in pools, defaulting to {DEFAULT_DECIMALS} decimals")
            return DEFAULT_DECIMALS
        return info.decimals

