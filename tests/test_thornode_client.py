"""Thornode REST client over a mock transport."""

import unittest
from decimal import Decimal

import httpx

from memoless_engine.assets import AssetRegistry
from memoless_engine.errors import AssetNotFound, ChainQueryFailed
from memoless_engine.thornode.client import ThornodeClient
from memoless_engine.wallet import HotWallet, RegistrationCost, registrations_remaining

from .fakes import WALLET, FakeThornode, memo_reference


class ThornodeTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.chain = FakeThornode()
        self.client = ThornodeClient("http://thornode.test/", "memoless-api-xyz9", transport=self.chain.transport())

    async def asyncTearDown(self):
        await self.client.close()


class TestClient(ThornodeTestCase):
    async def test_client_id_header(self):
        await self.client.pools()
        self.assertEqual(self.chain.requests[0].headers["x-client-id"], "memoless-api-xyz9")

    async def test_pools_parse_raw_integers(self):
        pools = {p.asset: p for p in await self.client.pools()}
        self.assertEqual(pools["ETH.ETH"].effective_decimals, 18)
        self.assertEqual(pools["BTC.BTC"].asset_tor_price, 60_000 * 10**8)

    async def test_memo_reference(self):
        self.chain.memo_responses = [memo_reference()]
        reference = await self.client.memo_reference("ABC")
        self.assertEqual(reference.reference, "00008")
        self.assertEqual(reference.height, "12345")

    async def test_http_errors_become_chain_query_failures(self):
        with self.assertRaises(ChainQueryFailed) as ctx:
            await self.client.memo_reference("ABC")
        self.assertEqual(ctx.exception.details["status"], 404)

    async def test_transport_errors_become_chain_query_failures(self):
        def boom(request):
            raise httpx.ConnectError("refused", request=request)

        client = ThornodeClient("http://thornode.test", "id", transport=httpx.MockTransport(boom))
        try:
            with self.assertRaises(ChainQueryFailed):
                await client.last_block()
        finally:
            await client.close()

    async def test_chain_state(self):
        self.assertEqual(await self.client.last_block(), 400)
        self.assertEqual(await self.client.memoless_tx_cost(), 10_000_000)
        self.assertEqual((await self.client.network()).native_tx_fee_rune, 2_000_000)
        self.assertEqual(await self.client.rune_balance(WALLET), 50 * 10**8)

    async def test_inbound_address_for_unknown_chain(self):
        self.assertEqual((await self.client.inbound_address_for("BTC")).dust_threshold, 10000)
        with self.assertRaises(ChainQueryFailed):
            await self.client.inbound_address_for("SOL")


class TestAssetRegistry(ThornodeTestCase):
    async def test_only_available_native_assets_sorted_by_depth(self):
        registry = AssetRegistry(self.client)
        assets = await registry.list_assets()
        self.assertEqual([a.asset for a in assets], ["BTC.BTC", "ETH.ETH", "GAIA.ATOM"])
        self.assertEqual(assets[0].price_usd, Decimal(60_000))

    async def test_listing_is_cached(self):
        now = [0.0]
        registry = AssetRegistry(self.client, cache_ttl=60, clock=lambda: now[0])
        await registry.list_assets()
        await registry.list_assets()
        now[0] = 61.0
        await registry.list_assets()
        self.assertEqual(self.chain.paths().count("/thorchain/pools"), 2)

    async def test_decimals_always_fresh(self):
        registry = AssetRegistry(self.client)
        await registry.list_assets()
        self.chain.pools[0]["decimals"] = 10
        self.assertEqual(await registry.resolve_decimals("BTC.BTC"), 10)
        self.assertEqual(await registry.resolve_decimals("XRP.XRP"), 8)

    async def test_get_asset_unknown(self):
        with self.assertRaises(AssetNotFound):
            await AssetRegistry(self.client).get_asset("ETH.USDC-0XA0B8")


class TestWallet(ThornodeTestCase):
    async def test_registration_cost(self):
        cost = await HotWallet(WALLET, self.client).registration_cost()
        self.assertEqual(cost.total, Decimal("0.12"))

    async def test_network_fee_falls_back(self):
        self.chain.fail_paths = ["/thorchain/network"]
        cost = await HotWallet(WALLET, self.client).registration_cost()
        self.assertEqual(cost.network_fee, Decimal("0.02"))

    def test_registrations_remaining(self):
        cost = RegistrationCost(Decimal("0.1"), Decimal("0.02"))
        self.assertEqual(registrations_remaining(Decimal("50"), cost), 416)
        self.assertEqual(registrations_remaining(Decimal("0.11"), cost), 0)
        self.assertEqual(registrations_remaining(Decimal("5"), RegistrationCost(Decimal(0), Decimal(0))), 0)
