"""Registration state machine: broadcast, read-back, persistence, notifications."""

import unittest

from memoless_engine.advisory import drain_advisories, reset_advisories_for_testing
from memoless_engine.assets import AssetRegistry
from memoless_engine.broadcast import BroadcastResult
from memoless_engine.errors import (
    BroadcastFailed,
    ConfirmationUnavailable,
    InvalidRequest,
    SequenceConflict,
    UnsupportedAsset,
)
from memoless_engine.notifications import Notifier
from memoless_engine.orchestrator import RegistrationOrchestrator
from memoless_engine.storage import RegistrationStatus, SqliteRegistrationStore
from memoless_engine.thornode.client import ThornodeClient
from memoless_engine.wallet import HotWallet

from .fakes import (
    TX_HASH,
    WALLET,
    FakeThornode,
    RecordingSleep,
    ScriptedBroadcaster,
    WebhookRecorder,
    make_config,
    memo_reference,
    pool,
)

MEMO = "=:BTC.BTC:bc1quser"


class _TrackingStore(SqliteRegistrationStore):
    def __init__(self):
        super().__init__(":memory:")
        self.created = []

    def create_pending(self, asset, memo, submitted_memo=None):
        registration_id = super().create_pending(asset, memo, submitted_memo)
        self.created.append(registration_id)
        return registration_id


class OrchestratorTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.chain = FakeThornode()
        self.chain.memo_responses = [memo_reference()]
        self.thornode = ThornodeClient("http://thornode.test", "test-client", transport=self.chain.transport())
        self.store = _TrackingStore()
        self.webhooks = WebhookRecorder()
        self.notifier = Notifier(
            discord_webhook="http://discord.test/hook",
            low_balance_threshold=25,
            transport=self.webhooks.transport(),
        )
        self.sleep = RecordingSleep()
        self.broadcaster = ScriptedBroadcaster()

    async def asyncTearDown(self):
        await drain_advisories(timeout=1)
        reset_advisories_for_testing()
        await self.notifier.close()
        await self.thornode.close()
        self.store.close()

    def build(self, **config_overrides) -> RegistrationOrchestrator:
        return RegistrationOrchestrator(
            config=make_config(**config_overrides),
            assets=AssetRegistry(self.thornode),
            thornode=self.thornode,
            broadcaster=self.broadcaster,
            store=self.store,
            wallet=HotWallet(WALLET, self.thornode),
            notifier=self.notifier,
            sleep=self.sleep,
        )

    def only_record(self):
        self.assertEqual(len(self.store.created), 1)
        return self.store.get(self.store.created[0])


class TestHappyPath(OrchestratorTestCase):
    async def test_registration_confirms_and_persists(self):
        outcome = await self.build().register("BTC.BTC", MEMO, "0.5")

        self.assertEqual(outcome.reference, "00008")
        self.assertEqual(outcome.reference_length, 5)
        self.assertEqual(outcome.decimals, 8)
        self.assertEqual(outcome.minimum_amount_to_send, "0.00100008")
        self.assertEqual(outcome.suggested_in_asset_amount, "0.50000008")
        self.assertEqual(outcome.tx_hash, TX_HASH)
        self.assertEqual(self.broadcaster.memos, [f"REFERENCE:BTC.BTC:{MEMO}"])
        self.assertEqual(self.sleep.delays, [6.0])

        record = self.only_record()
        self.assertEqual(record.status, RegistrationStatus.CONFIRMED)
        self.assertEqual(record.reference_id, "00008")
        self.assertEqual(record.height, "12345")
        self.assertEqual(record.registered_by, WALLET)
        self.assertEqual(record.tx_hash, TX_HASH)

    async def test_response_shape(self):
        body = (await self.build().register("BTC.BTC", MEMO)).to_response()
        self.assertEqual(body["txHash"], TX_HASH)
        self.assertEqual(body["internal_api_id"], self.store.created[0])
        self.assertNotIn("suggested_in_asset_amount", body)

    async def test_eighteen_decimal_asset_minimum(self):
        self.chain.memo_responses = [memo_reference(asset="ETH.ETH")]
        outcome = await self.build().register("ETH.ETH", "=:ETH.ETH:0xuser")
        self.assertEqual(outcome.decimals, 18)
        self.assertEqual(outcome.minimum_amount_to_send, "0.000000000000100008")

    async def test_pool_without_decimals_defaults_to_eight(self):
        self.chain.pools = [pool("GAIA.ATOM", decimals=None)]
        self.chain.memo_responses = [memo_reference(asset="GAIA.ATOM")]
        outcome = await self.build().register("GAIA.ATOM", "=:GAIA.ATOM:cosmos1user")
        self.assertEqual(outcome.decimals, 8)

    async def test_success_notification_sent(self):
        await self.build().register("BTC.BTC", MEMO)
        await drain_advisories(timeout=1)
        self.assertEqual(len(self.webhooks.posts), 1)
        embed = self.webhooks.posts[0]["body"]["embeds"][0]
        self.assertEqual(embed["title"], "New Memoless Registration")
        self.assertEqual(embed["color"], 0xFFA500)


class TestReadBack(OrchestratorTestCase):
    async def test_retries_with_backoff_until_reference_appears(self):
        self.chain.memo_responses = [404, {"reference": "", "height": ""}, memo_reference()]
        outcome = await self.build().register("BTC.BTC", MEMO)
        self.assertEqual(outcome.reference, "00008")
        self.assertEqual(self.sleep.delays, [6.0, 12.0, 24.0])

    async def test_exhausted_retries_fail_the_registration(self):
        self.chain.memo_responses = [500]
        with self.assertRaises(ConfirmationUnavailable) as ctx:
            await self.build().register("BTC.BTC", MEMO)

        self.assertEqual(ctx.exception.tx_hash, TX_HASH)
        self.assertEqual(ctx.exception.details["tx_hash"], TX_HASH)
        self.assertEqual(self.sleep.delays, [6.0, 12.0, 24.0])
        record = self.only_record()
        self.assertEqual(record.status, RegistrationStatus.FAILED)
        self.assertIsNone(record.reference_id)
        self.assertIn("3 attempts", record.error)

        await drain_advisories(timeout=1)
        embed = self.webhooks.posts[0]["body"]["embeds"][0]
        self.assertEqual(embed["title"], "Registration Failed")
        tx_field = next(f for f in embed["fields"] if f["name"] == "Transaction Hash")
        self.assertEqual(tx_field["value"], TX_HASH)


class TestBroadcast(OrchestratorTestCase):
    async def test_rejected_broadcast_never_reads_back(self):
        self.broadcaster.script = [BroadcastResult(tx_hash="", code=5, raw_log="insufficient funds")]
        with self.assertRaises(BroadcastFailed):
            await self.build().register("BTC.BTC", MEMO)

        self.assertFalse(any(p.startswith("/thorchain/memo/") for p in self.chain.paths()))
        self.assertEqual(self.sleep.delays, [])
        record = self.only_record()
        self.assertEqual(record.status, RegistrationStatus.FAILED)
        self.assertIsNone(record.tx_hash)

        await drain_advisories(timeout=1)
        embed = self.webhooks.posts[0]["body"]["embeds"][0]
        tx_field = next(f for f in embed["fields"] if f["name"] == "Transaction Hash")
        self.assertEqual(tx_field["value"], "Transaction failed to submit")

    async def test_sequence_conflict_retried_once(self):
        self.broadcaster.script = [
            SequenceConflict("Registration failed: account sequence mismatch"),
            BroadcastResult(tx_hash=TX_HASH),
        ]
        outcome = await self.build().register("BTC.BTC", MEMO)
        self.assertEqual(outcome.tx_hash, TX_HASH)
        self.assertEqual(len(self.broadcaster.memos), 2)
        self.assertEqual(self.sleep.delays[0], 2.0)

    async def test_second_sequence_conflict_is_terminal(self):
        self.broadcaster.script = [SequenceConflict("Registration failed: account sequence mismatch")]
        with self.assertRaises(SequenceConflict):
            await self.build().register("BTC.BTC", MEMO)
        self.assertEqual(len(self.broadcaster.memos), 2)
        self.assertEqual(self.only_record().status, RegistrationStatus.FAILED)


class TestInputs(OrchestratorTestCase):
    async def test_ineligible_asset_rejected_before_anything_is_written(self):
        with self.assertRaises(UnsupportedAsset) as ctx:
            await self.build().register("DOGE.DOGE", "=:DOGE.DOGE:Duser")
        self.assertEqual(ctx.exception.details["supported_assets"], ["BTC.BTC", "ETH.ETH", "GAIA.ATOM"])
        self.assertEqual(self.store.created, [])
        self.assertEqual(self.broadcaster.memos, [])

    async def test_bad_asset_format(self):
        with self.assertRaises(InvalidRequest) as ctx:
            await self.build().register("BTCBTC", MEMO)
        self.assertEqual(ctx.exception.code, "INVALID_ASSET_FORMAT")

    async def test_missing_memo(self):
        with self.assertRaises(InvalidRequest):
            await self.build().register("BTC.BTC", None)


class TestAdvisories(OrchestratorTestCase):
    async def test_affiliate_injected_into_swap(self):
        orchestrator = self.build(inject_affiliate=True, affiliate_name="-", affiliate_fee_bp="5")
        await orchestrator.register("BTC.BTC", MEMO)
        self.assertEqual(self.broadcaster.memos, [f"REFERENCE:BTC.BTC:{MEMO}::-:5"])
        record = self.only_record()
        self.assertEqual(record.memo, MEMO)
        self.assertEqual(record.submitted_memo, f"{MEMO}::-:5")

    async def test_affiliate_skipped_for_withdraw(self):
        orchestrator = self.build(inject_affiliate=True, affiliate_name="-", affiliate_fee_bp="5")
        await orchestrator.register("BTC.BTC", "-:BTC.BTC:10000")
        self.assertEqual(self.broadcaster.memos, ["REFERENCE:BTC.BTC:-:BTC.BTC:10000"])

    async def test_balance_lookup_failure_does_not_block(self):
        self.chain.fail_paths = ["/cosmos/"]
        outcome = await self.build().register("BTC.BTC", MEMO)
        self.assertEqual(outcome.reference, "00008")

    async def test_webhook_failure_does_not_change_outcome(self):
        self.webhooks.status = 500
        outcome = await self.build().register("BTC.BTC", MEMO)
        await drain_advisories(timeout=1)
        self.assertEqual(outcome.reference, "00008")
        self.assertEqual(self.only_record().status, RegistrationStatus.CONFIRMED)

    async def test_low_balance_alert(self):
        # 2 RUNE / (0.1 + 0.02) per registration -> 16 left
        self.chain.balance = 2 * 10**8
        await self.build().register("BTC.BTC", MEMO)
        await drain_advisories(timeout=1)
        titles = [p["body"]["embeds"][0]["title"] for p in self.webhooks.posts]
        self.assertEqual(titles, ["New Memoless Registration", "Low Hot Wallet Balance"])

    async def test_wallet_snapshot(self):
        snapshot = await self.build().wallet_snapshot()
        self.assertEqual(snapshot.rune_balance, "50.00")
        self.assertEqual(snapshot.registrations_remaining, 416)
