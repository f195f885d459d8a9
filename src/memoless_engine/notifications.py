"""
Webhook notifications (Discord embeds, Slack blocks).

Three messages: registration succeeded, registration failed, hot wallet
running low. Delivery problems are logged and reported per channel as
AdvisoryResult values; nothing here raises to the caller.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from .advisory import AdvisoryResult

COLOR_MAINNET = 0x00FF00
COLOR_STAGENET = 0xFFA500
COLOR_FAILURE = 0xFF0000
COLOR_LOW_BALANCE = 0xFF8C00

FAILED_TO_SUBMIT = "Transaction failed to submit"


@dataclass
class RegistrationNotice:
    registration_id: str
    tx_hash: str
    asset: str
    memo: str
    reference_id: str
    network: str
    hot_wallet_address: str
    timestamp: str
    rune_balance: Optional[str] = None
    registrations_remaining: Optional[int] = None


@dataclass
class FailureNotice:
    asset: str
    memo: str
    error: str
    network: str
    hot_wallet_address: str
    timestamp: str
    tx_hash: str = FAILED_TO_SUBMIT
    error_details: Optional[str] = None
    rune_balance: Optional[str] = None
    registrations_remaining: Optional[int] = None


@dataclass
class LowBalanceNotice:
    network: str
    hot_wallet_address: str
    rune_balance: str
    registrations_remaining: int
    memoless_tx_cost: Decimal
    network_fee: Decimal
    threshold: int
    timestamp: str

    @property
    def cost_per_registration(self) -> Decimal:
        return self.memoless_tx_cost + self.network_fee


def _field(name: str, value: Any, inline: bool = True) -> Dict[str, Any]:
    return {"name": name, "value": str(value), "inline": inline}


def _slack_fields(pairs) -> Dict[str, Any]:
    return {"type": "section", "fields": [{"type": "mrkdwn", "text": f"*{k}:*\n{v}"} for k, v in pairs]}


def _wallet_pairs(rune_balance, registrations_remaining):
    pairs = []
    if rune_balance is not None:
        pairs.append(("RUNE Balance", f"{rune_balance} RUNE"))
    if registrations_remaining is not None:
        pairs.append(("Registrations Remaining", registrations_remaining))
    return pairs


# ── Discord ─────────────────────────────────────────────────────


def discord_registration(n: RegistrationNotice) -> Dict[str, Any]:
    fields = [
        _field("Asset", n.asset),
        _field("Reference ID", n.reference_id),
        _field("Network", n.network.upper()),
    ]
    fields += [_field(k, v) for k, v in _wallet_pairs(n.rune_balance, n.registrations_remaining)]
    fields += [
        _field("Hot Wallet", n.hot_wallet_address, inline=False),
        _field("Transaction Hash", n.tx_hash, inline=False),
        _field("Memo", f"`{n.memo}`", inline=False),
    ]
    return {
        "embeds": [{
            "title": "New Memoless Registration",
            "description": f"A new memoless transaction has been registered on {n.network}",
            "color": COLOR_MAINNET if n.network == "mainnet" else COLOR_STAGENET,
            "fields": fields,
            "timestamp": n.timestamp,
            "footer": {"text": f"Registration ID: {n.registration_id}"},
        }]
    }


def discord_failure(n: FailureNotice) -> Dict[str, Any]:
    fields = [_field("Asset", n.asset), _field("Network", n.network.upper())]
    fields += [_field(k, v) for k, v in _wallet_pairs(n.rune_balance, n.registrations_remaining)]
    fields += [
        _field("Hot Wallet", n.hot_wallet_address, inline=False),
        _field("Transaction Hash", n.tx_hash, inline=False),
        _field("Intended Memo", f"`{n.memo}`", inline=False),
        _field("Error", n.error, inline=False),
    ]
    if n.error_details:
        fields.append(_field("Error Details", f"```{n.error_details[:1000]}```", inline=False))
    return {
        "embeds": [{
            "title": "Registration Failed",
            "description": f"A memoless registration attempt failed on {n.network}",
            "color": COLOR_FAILURE,
            "fields": fields,
            "timestamp": n.timestamp,
        }]
    }


def discord_low_balance(n: LowBalanceNotice) -> Dict[str, Any]:
    return {
        "embeds": [{
            "title": "Low Hot Wallet Balance",
            "description": (
                f"Only {n.registrations_remaining} registrations remaining on {n.network} "
                f"(alert threshold {n.threshold})"
            ),
            "color": COLOR_LOW_BALANCE,
            "fields": [
                _field("RUNE Balance", f"{n.rune_balance} RUNE"),
                _field("Registrations Remaining", n.registrations_remaining),
                _field("Cost per Registration", f"{n.cost_per_registration} RUNE"),
                _field("Memoless TX Cost", f"{n.memoless_tx_cost} RUNE"),
                _field("Network Fee", f"{n.network_fee} RUNE"),
                _field("Hot Wallet", n.hot_wallet_address, inline=False),
            ],
            "timestamp": n.timestamp,
        }]
    }


# ── Slack ───────────────────────────────────────────────────────


def slack_registration(n: RegistrationNotice) -> Dict[str, Any]:
    blocks = [
        {"type": "header", "text": {"type": "plain_text", "text": "New Memoless Registration"}},
        _slack_fields(
            [("Asset", n.asset), ("Reference ID", n.reference_id), ("Network", n.network.upper())]
            + _wallet_pairs(n.rune_balance, n.registrations_remaining)
        ),
        _slack_fields([("Hot Wallet", n.hot_wallet_address), ("TX Hash", n.tx_hash)]),
        {"type": "section", "text": {"type": "mrkdwn", "text": f"*Memo:*\n`{n.memo}`"}},
        {"type": "context", "elements": [
            {"type": "mrkdwn", "text": f"Registration ID: {n.registration_id} | {n.timestamp}"}
        ]},
    ]
    return {"blocks": blocks}


def slack_failure(n: FailureNotice) -> Dict[str, Any]:
    blocks = [
        {"type": "header", "text": {"type": "plain_text", "text": "Registration Failed"}},
        _slack_fields(
            [("Asset", n.asset), ("Network", n.network.upper())]
            + _wallet_pairs(n.rune_balance, n.registrations_remaining)
        ),
        _slack_fields([("Hot Wallet", n.hot_wallet_address), ("TX Hash", n.tx_hash)]),
        {"type": "section", "text": {"type": "mrkdwn", "text": f"*Intended Memo:*\n`{n.memo}`"}},
        {"type": "section", "text": {"type": "mrkdwn", "text": f"*Error:*\n{n.error}"}},
    ]
    if n.error_details:
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": f"```{n.error_details[:1000]}```"}})
    blocks.append({"type": "context", "elements": [{"type": "mrkdwn", "text": n.timestamp}]})
    return {"blocks": blocks}


def slack_low_balance(n: LowBalanceNotice) -> Dict[str, Any]:
    return {
        "blocks": [
            {"type": "header", "text": {"type": "plain_text", "text": "Low Hot Wallet Balance"}},
            _slack_fields([
                ("RUNE Balance", f"{n.rune_balance} RUNE"),
                ("Registrations Remaining", n.registrations_remaining),
                ("Cost per Registration", f"{n.cost_per_registration} RUNE"),
                ("Threshold", n.threshold),
            ]),
            _slack_fields([("Hot Wallet", n.hot_wallet_address), ("Network", n.network.upper())]),
            {"type": "context", "elements": [{"type": "mrkdwn", "text": n.timestamp}]},
        ]
    }


# ── Delivery ────────────────────────────────────────────────────


class Notifier:
    def __init__(
        self,
        discord_webhook: Optional[str] = None,
        slack_webhook: Optional[str] = None,
        low_balance_threshold: int = 25,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.discord_webhook = discord_webhook or None
        self.slack_webhook = slack_webhook or None
        self.low_balance_threshold = low_balance_threshold
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        logger.info(
            f"[Notify] discord={'on' if self.discord_webhook else 'off'} "
            f"slack={'on' if self.slack_webhook else 'off'}"
        )

    @property
    def enabled(self) -> bool:
        return bool(self.discord_webhook or self.slack_webhook)

    def should_send_low_balance_alert(self, registrations_remaining: int) -> bool:
        return registrations_remaining <= self.low_balance_threshold

    async def close(self):
        await self._client.aclose()

    async def _post(self, channel: str, url: str, body: Dict[str, Any]) -> AdvisoryResult:
        try:
            resp = await self._client.post(url, json=body)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"[Notify] {channel} delivery failed: {e}")
            return AdvisoryResult(name=channel, ok=False, error=str(e))
        return AdvisoryResult(name=channel, ok=True)

    async def _fan_out(self, discord_body, slack_body) -> List[AdvisoryResult]:
        sends = []
        if self.discord_webhook:
            sends.append(self._post("discord", self.discord_webhook, discord_body))
        if self.slack_webhook:
            sends.append(self._post("slack", self.slack_webhook, slack_body))
        if not sends:
            return []
        return list(await asyncio.gather(*sends))

    async def send_registration(self, notice: RegistrationNotice) -> List[AdvisoryResult]:
        return await self._fan_out(discord_registration(notice), slack_registration(notice))

    async def send_failure(self, notice: FailureNotice) -> List[AdvisoryResult]:
        return await self._fan_out(discord_failure(notice), slack_failure(notice))

    async def send_low_balance(self, notice: LowBalanceNotice) -> List[AdvisoryResult]:
        return await self._fan_out(discord_low_balance(notice), slack_low_balance(notice))
