"""Hot wallet: the registering address and what its balance still pays for."""

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from loguru import logger

from .errors import ChainQueryFailed
from .thornode.client import ThornodeClient

_E8 = Decimal(100_000_000)
DEFAULT_NETWORK_FEE = Decimal("0.02")


@dataclass(frozen=True)
class RegistrationCost:
    memoless_tx_cost: Decimal
    network_fee: Decimal

    @property
    def total(self) -> Decimal:
        return self.memoless_tx_cost + self.network_fee


def registrations_remaining(balance: Decimal, cost: RegistrationCost) -> int:
    if cost.total <= 0:
        return 0
    remaining = (balance / cost.total).to_integral_value(rounding=ROUND_FLOOR)
    return max(0, int(remaining))


class HotWallet:
    def __init__(self, address: str, thornode: ThornodeClient):
        self.address = address
        self._thornode = thornode

    def is_ready(self) -> bool:
        return bool(self.address)

    async def balance(self) -> Decimal:
        """RUNE balance in whole units."""
        raw = await self._thornode.rune_balance(self.address)
        return Decimal(raw) / _E8

    async def registration_cost(self) -> RegistrationCost:
        cost = Decimal(await self._thornode.memoless_tx_cost()) / _E8
        try:
            info = await self._thornode.network()
            fee = Decimal(info.native_tx_fee_rune) / _E8 if info.native_tx_fee_rune else DEFAULT_NETWORK_FEE
        except ChainQueryFailed as e:
            logger.warning(f"[Wallet] network fee lookup failed, assuming {DEFAULT_NETWORK_FEE}: {e}")
            fee = DEFAULT_NETWORK_FEE
        return RegistrationCost(memoless_tx_cost=cost, network_fee=fee)
