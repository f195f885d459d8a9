"""Preflight evaluation against live usage stats."""

import unittest

import pytest

from memoless_engine.assets import AssetRegistry
from memoless_engine.errors import (
    ChainQueryFailed,
    InvalidRequest,
    MalformedAmount,
    PersistenceDisabled,
    PreflightRejected,
    RegistrationNotFound,
)
from memoless_engine.preflight import PreflightEvaluator, payment_uri, time_remaining
from memoless_engine.storage import DisabledRegistrationStore, SqliteRegistrationStore
from memoless_engine.thornode.client import ThornodeClient

from .fakes import FakeThornode, WALLET, TX_HASH


class TestPaymentUri:
    @pytest.mark.parametrize(
        "chain,expected",
        [
            ("BTC", "bitcoin:addr?amount=0.1"),
            ("DOGE", "dogecoin:addr?amount=0.1"),
            ("GAIA", "cosmos:addr?amount=0.1"),
            ("ETH", "ethereum:addr?value=0.1"),
            ("BSC", "ethereum:addr@56?value=0.1"),
            ("BASE", "ethereum:addr@8453?value=0.1"),
            ("SOL", "0.1"),
        ],
    )
    def test_schemes(self, chain, expected):
        assert payment_uri(chain, "addr", "0.1") == expected


class TestTimeRemaining:
    def test_no_expiry(self):
        assert time_remaining(100, 0) == "N/A"

    def test_expired(self):
        assert time_remaining(100, 100) == "Expired"
        assert time_remaining(100, 50) == "Expired"

    def test_hours_minutes_seconds(self):
        assert time_remaining(0, 600) == "1h"
        assert time_remaining(0, 599) == "59m"
        assert time_remaining(0, 10) == "1m"
        assert time_remaining(0, 9) == "<1m"


class PreflightTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.chain = FakeThornode()
        self.thornode = ThornodeClient("http://thornode.test", "test-client", transport=self.chain.transport())
        self.store = SqliteRegistrationStore(":memory:")

    async def asyncTearDown(self):
        await self.thornode.close()
        self.store.close()

    def evaluator(self, store=None) -> PreflightEvaluator:
        return PreflightEvaluator(AssetRegistry(self.thornode), self.thornode, store or self.store)


class TestEvaluate(PreflightTestCase):
    async def test_passing_amount(self):
        report = await self.evaluator().evaluate("0.00100008", asset="BTC.BTC", reference="00008")

        data = report.to_data()
        self.assertEqual(data["current_uses"], 1)
        self.assertEqual(data["max_uses"], 3)
        self.assertEqual(data["inbound_address"], "bc1qvault")
        self.assertEqual(data["qr_code"], "bitcoin:bc1qvault?amount=0.00100008")
        self.assertEqual(data["blocks_remaining"], 600)
        self.assertEqual(data["seconds_remaining"], 3600)
        self.assertEqual(data["time_remaining"], "1h")
        self.assertEqual(data["dust_threshold"], 10000)
        self.assertEqual(data["raw_amount"], "100008")

    async def test_probe_uses_minimum_valid_amount(self):
        await self.evaluator().evaluate("0.00100008", asset="BTC.BTC", reference="00008")
        self.assertIn("/thorchain/memo/check/BTC.BTC/100008", self.chain.paths())

    async def test_usage_failures_short_circuit_amount_checks(self):
        self.chain.memo_check.update(usage_count="3", expires_at="0")
        with self.assertRaises(PreflightRejected) as ctx:
            # the amount is also wrong; only usage problems are reported
            await self.evaluator().evaluate("0.00010008", asset="BTC.BTC", reference="00008")
        self.assertEqual(ctx.exception.details["reasons"], ["ReferenceExhausted", "ReferenceExpired"])
        self.assertEqual(ctx.exception.message, "Reference ID has reached maximum usage (3/3)")
        self.assertEqual(ctx.exception.details["time_remaining"], "N/A")
        self.assertNotIn("/thorchain/inbound_addresses", self.chain.paths())

    async def test_unregistered_reference(self):
        self.chain.memo_check.update(available=True)
        with self.assertRaises(PreflightRejected) as ctx:
            await self.evaluator().evaluate("0.00100008", asset="BTC.BTC", reference="00008")
        self.assertEqual(ctx.exception.details["reasons"], ["ReferenceNotRegistered"])

    async def test_amount_failures_are_listed(self):
        # BTC dust threshold is 10000 raw
        with self.assertRaises(PreflightRejected) as ctx:
            await self.evaluator().evaluate("0.00000009", asset="BTC.BTC", reference="00008")
        self.assertEqual(ctx.exception.details["reasons"], ["AmountMismatch", "BelowDustThreshold"])
        self.assertEqual(len(ctx.exception.details["errors"]), 2)
        self.assertEqual(ctx.exception.code, "PREFLIGHT_FAILED")

    async def test_inbound_failure_falls_back_to_default_dust(self):
        self.chain.fail_paths = ["/thorchain/inbound_addresses"]
        report = await self.evaluator().evaluate("0.00100008", asset="BTC.BTC", reference="00008")
        self.assertEqual(report.dust_threshold, 1000)
        self.assertIsNone(report.inbound_address)
        self.assertIsNone(report.qr_code)

    async def test_block_height_failure_reports_unknown(self):
        self.chain.fail_paths = ["/thorchain/lastblock"]
        report = await self.evaluator().evaluate("0.00100008", asset="BTC.BTC", reference="00008")
        self.assertEqual(report.expiry.time_remaining, "Unknown")
        self.assertEqual(report.expiry.blocks_remaining, 0)

    async def test_usage_query_failure_propagates(self):
        self.chain.fail_paths = ["/thorchain/memo/check/"]
        with self.assertRaises(ChainQueryFailed) as ctx:
            await self.evaluator().evaluate("0.00100008", asset="BTC.BTC", reference="00008")
        self.assertEqual(ctx.exception.code, "CHAIN_UNAVAILABLE")

    async def test_amount_is_required_and_parsed(self):
        with self.assertRaises(InvalidRequest):
            await self.evaluator().evaluate("", asset="BTC.BTC", reference="00008")
        with self.assertRaises(MalformedAmount):
            await self.evaluator().evaluate("1,5", asset="BTC.BTC", reference="00008")


class TestLookupById(PreflightTestCase):
    def confirmed_registration(self) -> str:
        registration_id = self.store.create_pending("BTC.BTC", "=:BTC.BTC:bc1quser")
        self.store.attach_tx_hash(registration_id, TX_HASH)
        self.store.mark_confirmed(registration_id, "00008", "12345", TX_HASH, WALLET)
        return registration_id

    async def test_lookup_by_registration_id(self):
        report = await self.evaluator().evaluate("0.00100008", internal_api_id=self.confirmed_registration())
        self.assertEqual(report.asset, "BTC.BTC")
        self.assertEqual(report.reference, "00008")

    async def test_asset_and_reference_take_priority(self):
        report = await self.evaluator(DisabledRegistrationStore()).evaluate(
            "0.00100008", internal_api_id="ignored", asset="BTC.BTC", reference="00008"
        )
        self.assertEqual(report.reference, "00008")

    async def test_pending_registration_not_usable(self):
        registration_id = self.store.create_pending("BTC.BTC", "=:BTC.BTC:bc1quser")
        with self.assertRaises(RegistrationNotFound):
            await self.evaluator().evaluate("0.00100008", internal_api_id=registration_id)

    async def test_unknown_registration(self):
        with self.assertRaises(RegistrationNotFound):
            await self.evaluator().evaluate("0.00100008", internal_api_id="nope")

    async def test_lookup_needs_persistence(self):
        with self.assertRaises(PersistenceDisabled):
            await self.evaluator(DisabledRegistrationStore()).evaluate("0.00100008", internal_api_id="abc")

    async def test_target_required(self):
        with self.assertRaises(InvalidRequest):
            await self.evaluator().evaluate("0.00100008", asset="BTC.BTC")
