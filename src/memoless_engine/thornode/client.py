"""
Read-only thornode REST client.

GET /thorchain/pools                         — pool listing (decimals, price, depth)
GET /thorchain/inbound_addresses             — vault addresses + dust thresholds
GET /thorchain/memo/{tx}                     — reference bound to a registration tx
GET /thorchain/memo/check/{asset}/{raw}      — usage of the reference an amount decodes to
GET /thorchain/lastblock/THORCHAIN           — current height
GET /thorchain/mimir/key/MEMOLESSTXNCOST     — registration cost (1e8 RUNE)
GET /thorchain/network                       — native tx fee
GET /cosmos/bank/v1beta1/balances/{address}  — RUNE balance
"""

from typing import Any, List, Optional

import httpx
from loguru import logger

from ..errors import ChainQueryFailed
from .models import InboundAddress, MemoCheck, MemoReference, NetworkInfo, PoolInfo


class ThornodeClient:
    def __init__(
        self,
        base_url: str,
        client_id: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json", "x-client-id": client_id},
            transport=transport,
        )
        logger.info(f"[Thornode] client ready ({self.base_url}, x-client-id={client_id})")

    async def close(self):
        await self._client.aclose()

    async def _get(self, path: str) -> Any:
        try:
            resp = await self._client.get(path)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(f"[Thornode] GET {path} -> HTTP {exc.response.status_code}")
            raise ChainQueryFailed(
                f"Thornode request failed: {path}",
                details={"path": path, "status": exc.response.status_code},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"[Thornode] GET {path} failed: {exc}")
            raise ChainQueryFailed(
                f"Thornode request failed: {path}",
                details={"path": path, "error": str(exc)},
            ) from exc

    # ── Pools / vaults ───────────────────────────────────────────

    async def pools(self) -> List[PoolInfo]:
        data = await self._get("/thorchain/pools")
        return [PoolInfo.model_validate(p) for p in (data or [])]

    async def inbound_addresses(self) -> List[InboundAddress]:
        data = await self._get("/thorchain/inbound_addresses")
        return [InboundAddress.model_validate(a) for a in (data or [])]

    async def inbound_address_for(self, chain: str) -> InboundAddress:
        for inbound in await self.inbound_addresses():
            if inbound.chain == chain:
                return inbound
        raise ChainQueryFailed(f"No inbound address found for chain: {chain}", details={"chain": chain})

    # ── Memo references ──────────────────────────────────────────

    async def memo_reference(self, tx_hash: str) -> MemoReference:
        data = await self._get(f"/thorchain/memo/{tx_hash}")
        return MemoReference.model_validate(data or {})

    async def memo_check(self, asset: str, raw_amount: int) -> MemoCheck:
        data = await self._get(f"/thorchain/memo/check/{asset}/{raw_amount}")
        return MemoCheck.model_validate(data or {})

    # ── Chain state ──────────────────────────────────────────────

    async def last_block(self) -> int:
        data = await self._get("/thorchain/lastblock/THORCHAIN")
        try:
            return int(data[0]["thorchain"])
        except (IndexError, KeyError, TypeError, ValueError) as exc:
            raise ChainQueryFailed("Unexpected lastblock response", details={"body": data}) from exc

    async def memoless_tx_cost(self) -> int:
        """Registration cost in 1e8 RUNE units."""
        data = await self._get("/thorchain/mimir/key/MEMOLESSTXNCOST")
        try:
            return int(data)
        except (TypeError, ValueError) as exc:
            raise ChainQueryFailed(
                "Invalid memoless transaction cost value received from mimir",
                details={"body": data},
            ) from exc

    async def network(self) -> NetworkInfo:
        data = await self._get("/thorchain/network")
        return NetworkInfo.model_validate(data or {})

    async def rune_balance(self, address: str) -> int:
        """RUNE balance of an address in 1e8 units (0 when it holds none)."""
        data = await self._get(f"/cosmos/bank/v1beta1/balances/{address}")
        for coin in (data or {}).get("balances", []):
            if coin.get("denom") == "rune":
                return int(coin.get("amount") or 0)
        return 0
