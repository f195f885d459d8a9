"""
Registration orchestrator.

    received -> decimals lookup started -> inputs checked -> balance advisory
    -> affiliate rewrite -> pending row -> broadcast -> reference read-back
    -> amounts computed -> confirmed row -> notifications (background)

Broadcast precedes read-back precedes persistence precedes notification.
Broadcast and read-back failures are terminal for the attempt and leave the
row `failed`; balance checks, affiliate rewriting and notifications never
change the outcome. Identical (asset, memo) requests are not deduplicated:
every call is a new registration.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from loguru import logger

from .advisory import run_advisory, spawn_advisory
from .assets import DEFAULT_DECIMALS, AssetRegistry, is_valid_asset_format
from .broadcast import Broadcaster, registration_memo
from .codec.amounts import minimum_valid_amount, split_amount, suggested_amount
from .config import MemolessConfig, Sleep
from .errors import (
    BroadcastFailed,
    ChainQueryFailed,
    ConfirmationUnavailable,
    InvalidRequest,
    SequenceConflict,
    UnsupportedAsset,
)
from .memo.parser import try_inject_affiliate
from .notifications import FailureNotice, LowBalanceNotice, Notifier, RegistrationNotice
from .storage.base import RegistrationStore
from .thornode.client import ThornodeClient
from .thornode.models import MemoReference
from .wallet import HotWallet, RegistrationCost, registrations_remaining

BROADCAST_FAILED_MESSAGE = "Failed to submit transaction to THORChain"
CONFIRMATION_FAILED_MESSAGE = "Failed to retrieve memo reference after transaction"


@dataclass
class RegistrationOutcome:
    internal_api_id: str
    asset: str
    memo: str
    reference: str
    height: str
    registration_hash: str
    registered_by: str
    tx_hash: str
    decimals: int
    minimum_amount_to_send: str
    suggested_in_asset_amount: Optional[str] = None

    @property
    def reference_length(self) -> int:
        return len(self.reference)

    def to_response(self) -> Dict[str, Any]:
        body = {
            "success": True,
            "internal_api_id": self.internal_api_id,
            "asset": self.asset,
            "memo": self.memo,
            "reference": self.reference,
            "reference_length": self.reference_length,
            "height": self.height,
            "registration_hash": self.registration_hash,
            "registered_by": self.registered_by,
            "txHash": self.tx_hash,
            "decimals": self.decimals,
            "minimum_amount_to_send": self.minimum_amount_to_send,
        }
        if self.suggested_in_asset_amount is not None:
            body["suggested_in_asset_amount"] = self.suggested_in_asset_amount
        return body


@dataclass
class WalletSnapshot:
    rune_balance: Optional[str] = None
    registrations_remaining: Optional[int] = None
    cost: Optional[RegistrationCost] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RegistrationOrchestrator:
    def __init__(
        self,
        config: MemolessConfig,
        assets: AssetRegistry,
        thornode: ThornodeClient,
        broadcaster: Broadcaster,
        store: RegistrationStore,
        wallet: HotWallet,
        notifier: Notifier,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self._assets = assets
        self._thornode = thornode
        self._broadcaster = broadcaster
        self._store = store
        self._wallet = wallet
        self._notifier = notifier
        self._sleep = sleep

    # ── Entry point ──────────────────────────────────────────────

    async def register(self, asset: str, memo: str, requested_amount: Optional[str] = None) -> RegistrationOutcome:
        logger.info(f"[Registration] start asset={asset} memo={memo}")
        decimals_task = asyncio.ensure_future(self._resolve_decimals(asset))
        try:
            return await self._register(asset, memo, requested_amount, decimals_task)
        finally:
            if not decimals_task.done():
                decimals_task.cancel()

    async def _register(self, asset, memo, requested_amount, decimals_task) -> RegistrationOutcome:
        await self._check_inputs(asset, memo, requested_amount)
        await run_advisory("balance-check", self._check_balance())

        submitted_memo = self._apply_affiliate(memo)
        registration_id = await asyncio.to_thread(self._store.create_pending, asset, memo, submitted_memo)

        tx_hash = await self._broadcast(registration_id, asset, memo, submitted_memo)
        await asyncio.to_thread(self._store.attach_tx_hash, registration_id, tx_hash)

        reference = await self._confirm(registration_id, asset, memo, tx_hash)

        decimals = await decimals_task
        minimum = minimum_valid_amount(reference.reference, decimals)
        suggested = None
        if requested_amount:
            suggested = suggested_amount(requested_amount, reference.reference, decimals)

        await asyncio.to_thread(
            self._store.mark_confirmed,
            registration_id,
            reference.reference,
            reference.height,
            reference.registration_hash,
            reference.registered_by,
        )
        logger.info(
            f"[Registration] confirmed id={registration_id} reference={reference.reference} "
            f"decimals={decimals} minimum={minimum}"
        )

        if self._notifier.enabled:
            spawn_advisory(
                "registration-notice",
                self._notify_success(registration_id, tx_hash, asset, memo, reference.reference),
            )

        return RegistrationOutcome(
            internal_api_id=registration_id,
            asset=reference.asset or asset,
            memo=reference.memo or submitted_memo,
            reference=reference.reference,
            height=reference.height,
            registration_hash=reference.registration_hash,
            registered_by=reference.registered_by,
            tx_hash=tx_hash,
            decimals=decimals,
            minimum_amount_to_send=minimum,
            suggested_in_asset_amount=suggested,
        )

    # ── Preconditions ────────────────────────────────────────────

    async def _resolve_decimals(self, asset: str) -> int:
        try:
            return await self._assets.resolve_decimals(asset)
        except ChainQueryFailed as e:
            logger.warning(f"[Registration] decimals lookup for {asset} failed, using {DEFAULT_DECIMALS}: {e}")
            return DEFAULT_DECIMALS

    async def _check_inputs(self, asset: str, memo: str, requested_amount: Optional[str]):
        if not asset or memo is None:
            raise InvalidRequest("Asset and memo are required parameters")
        if not is_valid_asset_format(asset):
            raise InvalidRequest(
                "Asset must be in format CHAIN.SYMBOL (e.g., BTC.BTC, ETH.ETH)",
                code="INVALID_ASSET_FORMAT",
            )
        if not memo.strip():
            raise InvalidRequest("Memo cannot be empty", code="EMPTY_MEMO")
        if requested_amount:
            split_amount(requested_amount)

        available = await self._assets.list_assets()
        if not any(a.asset == asset for a in available):
            raise UnsupportedAsset(
                f"Asset '{asset}' is not available for memoless registration",
                details={
                    "provided_asset": asset,
                    "supported_assets": [a.asset for a in available[:5]],
                    "total_supported_assets": len(available),
                    "suggestion": "Use GET /api/v1/assets to see all available assets",
                },
            )

    async def _check_balance(self) -> Decimal:
        balance = await self._wallet.balance()
        if balance < Decimal(self.config.minimum_operating_balance):
            logger.warning(
                f"[Registration] hot wallet {self._wallet.address} low on RUNE "
                f"({balance} RUNE), proceeding anyway"
            )
        return balance

    def _apply_affiliate(self, memo: str) -> str:
        if not self.config.inject_affiliate:
            return memo
        if not self.config.affiliate_name:
            logger.warning("[Registration] AFFILIATE_THORNAME not configured, skipping affiliate injection")
            return memo
        rewrite = try_inject_affiliate(memo, self.config.affiliate_name, self.config.affiliate_fee_bp)
        if not rewrite.modified:
            logger.info(f"[Registration] memo left unchanged: {'; '.join(rewrite.errors)}")
            return memo
        logger.info(f"[Registration] affiliate injected: {' | '.join(rewrite.changes)}")
        return rewrite.memo

    # ── Broadcast ────────────────────────────────────────────────

    async def _broadcast(self, registration_id: str, asset: str, memo: str, submitted_memo: str) -> str:
        deposit_memo = registration_memo(asset, submitted_memo)
        try:
            try:
                result = await self._broadcaster.broadcast_deposit(deposit_memo)
            except SequenceConflict as e:
                logger.warning(
                    f"[Registration] sequence conflict, retrying once in {self.config.sequence_retry_delay}s: {e}"
                )
                await self._sleep(self.config.sequence_retry_delay)
                result = await self._broadcaster.broadcast_deposit(deposit_memo)
        except BroadcastFailed as e:
            logger.error(f"[Registration] broadcast failed for {registration_id}: {e}")
            await self._record_failure(registration_id, f"{BROADCAST_FAILED_MESSAGE}: {e.message}")
            self._spawn_failure_notice(asset, memo, BROADCAST_FAILED_MESSAGE, e.message)
            raise
        logger.info(f"[Registration] broadcast ok id={registration_id} tx={result.tx_hash}")
        return result.tx_hash

    # ── Reference read-back ──────────────────────────────────────

    async def _confirm(self, registration_id: str, asset: str, memo: str, tx_hash: str) -> MemoReference:
        policy = self.config.confirmation_retry
        last_error = "no attempts made"
        for attempt in range(1, policy.max_attempts + 1):
            await self._sleep(policy.delay_for(attempt))
            try:
                reference = await self._thornode.memo_reference(tx_hash)
            except ChainQueryFailed as e:
                last_error = e.message
            else:
                if reference.reference and reference.height and reference.registered_by:
                    logger.info(f"[Registration] reference {reference.reference} found on attempt {attempt}")
                    return reference
                last_error = "Reference ID not found in response"
            logger.warning(f"[Registration] read-back attempt {attempt}/{policy.max_attempts} for {tx_hash}: {last_error}")

        details = f"Failed to retrieve memo reference after {policy.max_attempts} attempts: {last_error}"
        logger.error(f"[Registration] {details}")
        await self._record_failure(registration_id, f"{CONFIRMATION_FAILED_MESSAGE}: {details}")
        self._spawn_failure_notice(asset, memo, CONFIRMATION_FAILED_MESSAGE, details, tx_hash=tx_hash)
        raise ConfirmationUnavailable(
            f"Registration successful but failed to retrieve memo details: {details}",
            tx_hash=tx_hash,
        )

    async def _record_failure(self, registration_id: str, error: str):
        outcome = await run_advisory(
            "record-failure", asyncio.to_thread(self._store.mark_failed, registration_id, error)
        )
        if not outcome.ok:
            logger.error(f"[Registration] could not mark {registration_id} failed: {outcome.error}")

    # ── Notifications ────────────────────────────────────────────

    async def wallet_snapshot(self) -> WalletSnapshot:
        balance = await run_advisory("wallet-balance", self._wallet.balance())
        if not balance.ok:
            return WalletSnapshot()
        cost = await run_advisory("registration-cost", self._wallet.registration_cost())
        remaining = registrations_remaining(balance.value, cost.value) if cost.ok else 0
        return WalletSnapshot(
            rune_balance=str(balance.value.quantize(Decimal("0.01"))),
            registrations_remaining=remaining,
            cost=cost.value if cost.ok else None,
        )

    def _spawn_failure_notice(self, asset, memo, error, details, tx_hash=None):
        if self._notifier.enabled:
            spawn_advisory("failure-notice", self._notify_failure(asset, memo, error, details, tx_hash))

    async def _notify_failure(self, asset, memo, error, details, tx_hash=None):
        snapshot = await self.wallet_snapshot()
        notice = FailureNotice(
            asset=asset,
            memo=memo,
            error=error,
            error_details=details,
            network=self.config.network,
            hot_wallet_address=self._wallet.address,
            timestamp=_now(),
            rune_balance=snapshot.rune_balance,
            registrations_remaining=snapshot.registrations_remaining,
        )
        if tx_hash:
            notice.tx_hash = tx_hash
        return await self._notifier.send_failure(notice)

    async def _notify_success(self, registration_id, tx_hash, asset, memo, reference_id):
        snapshot = await self.wallet_snapshot()
        results = await self._notifier.send_registration(
            RegistrationNotice(
                registration_id=registration_id,
                tx_hash=tx_hash,
                asset=asset,
                memo=memo,
                reference_id=reference_id,
                network=self.config.network,
                hot_wallet_address=self._wallet.address,
                timestamp=_now(),
                rune_balance=snapshot.rune_balance,
                registrations_remaining=snapshot.registrations_remaining,
            )
        )
        remaining = snapshot.registrations_remaining
        if remaining is not None and snapshot.cost and self._notifier.should_send_low_balance_alert(remaining):
            logger.warning(f"[Registration] low balance: {remaining} registrations remaining")
            results += await self._notifier.send_low_balance(
                LowBalanceNotice(
                    network=self.config.network,
                    hot_wallet_address=self._wallet.address,
                    rune_balance=snapshot.rune_balance or "0",
                    registrations_remaining=remaining,
                    memoless_tx_cost=snapshot.cost.memoless_tx_cost,
                    network_fee=snapshot.cost.network_fee,
                    threshold=self._notifier.low_balance_threshold,
                    timestamp=_now(),
                )
            )
        return results
