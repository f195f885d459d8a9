"""
Broadcaster: the on-chain write collaborator.

Signing and wire encoding live outside this service. The orchestrator only
needs "submit a zero-value MsgDeposit with this memo and tell me the hash";
SignerServiceBroadcaster does that by calling a signer sidecar over HTTP.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
from loguru import logger

from .errors import BroadcastFailed, SequenceConflict

SEQUENCE_MISMATCH_MARKER = "account sequence mismatch"


def registration_memo(asset: str, memo: str) -> str:
    """The memo written on chain to register `memo` for `asset`."""
    return f"REFERENCE:{asset}:{memo}"


@dataclass
class BroadcastResult:
    tx_hash: str
    code: int = 0
    raw_log: str = ""


def check_broadcast_result(result: BroadcastResult) -> BroadcastResult:
    """Turn a non-zero result code into the matching BroadcastFailed subtype."""
    if result.code == 0 and result.tx_hash:
        return result
    raw_log = result.raw_log or "empty transaction hash"
    if SEQUENCE_MISMATCH_MARKER in raw_log.lower():
        raise SequenceConflict(f"Registration failed: {raw_log}", details={"code": result.code})
    raise BroadcastFailed(f"Registration failed: {raw_log}", details={"code": result.code})


class Broadcaster(ABC):
    """Submits deposit messages from the hot wallet.

    Implementations must raise SequenceConflict when the chain rejects the
    account sequence, and BroadcastFailed for any other rejection.
    """

    @abstractmethod
    async def broadcast_deposit(self, memo: str) -> BroadcastResult:
        ...

    async def close(self):
        pass


class SignerServiceBroadcaster(Broadcaster):
    def __init__(
        self,
        signer_url: str,
        chain_id: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.signer_url = signer_url.rstrip("/")
        self.chain_id = chain_id
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self):
        await self._client.aclose()

    async def broadcast_deposit(self, memo: str) -> BroadcastResult:
        if not self.signer_url:
            raise BroadcastFailed("No signer configured (SIGNER_URL is empty)")
        payload = {"asset": "THOR.RUNE", "amount": "0", "memo": memo, "chain_id": self.chain_id}
        try:
            resp = await self._client.post(f"{self.signer_url}/broadcast/deposit", json=payload)
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"[Broadcast] signer unreachable: {exc}")
            raise BroadcastFailed(f"Failed to register memo: {exc}") from exc

        if not isinstance(body, dict) or (resp.status_code >= 400 and "code" not in body):
            raise BroadcastFailed(
                f"Failed to register memo: signer returned HTTP {resp.status_code}",
                details={"body": body},
            )

        result = BroadcastResult(
            tx_hash=str(body.get("transactionHash") or body.get("tx_hash") or ""),
            code=int(body.get("code") or 0),
            raw_log=str(body.get("rawLog") or body.get("raw_log") or ""),
        )
        logger.info(f"[Broadcast] code={result.code} tx={result.tx_hash or '-'}")
        return check_broadcast_result(result)
