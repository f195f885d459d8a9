"""Amount suggestions and reference formatting."""

import unittest

import pytest

from memoless_engine.assets import AssetRegistry
from memoless_engine.codec.amounts import matches_reference
from memoless_engine.errors import MalformedAmount
from memoless_engine.suggestions import format_amount, suggest_amounts
from memoless_engine.thornode.client import ThornodeClient

from .fakes import FakeThornode


class TestFormatAmount:
    def test_pads_and_appends_reference(self):
        result = format_amount("1.5", "00008", 8)
        assert result.amount == "1.50000008"
        assert result.warnings == []

    def test_truncates_extra_user_decimals(self):
        result = format_amount("1.23456789", "00008", 8)
        assert result.amount == "1.23400008"
        assert result.warnings == ["Amount truncated to 3 decimals to fit reference ID"]

    def test_whole_number_input(self):
        assert format_amount("2", "123", 6).amount == "2.000123"

    @pytest.mark.parametrize("bad", ["0", "0.000", "-1", "abc", ""])
    def test_rejects_non_positive(self, bad):
        with pytest.raises(MalformedAmount):
            format_amount(bad, "00008", 8)

    def test_rejects_when_only_reference_remains(self):
        # 0.00001 loses every significant digit to the reference
        with pytest.raises(MalformedAmount, match="too small"):
            format_amount("0.00001", "00008", 8)

    def test_result_always_carries_reference(self):
        for amount in ("1", "0.5", "12.3456789", "0.001"):
            assert matches_reference(format_amount(amount, "00008", 8).amount, 8, "00008")


class TestSuggestAmounts(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.chain = FakeThornode()
        self.client = ThornodeClient("http://thornode.test", "id", transport=self.chain.transport())

    async def asyncTearDown(self):
        await self.client.close()

    async def test_suggestions_with_usd_differences(self):
        # BTC at 60000 USD: 0.00000008 up rounds to nothing, 0.00099992 down is 59.9952
        result = await suggest_amounts(AssetRegistry(self.client), "BTC.BTC", "00008", "0.5")
        self.assertEqual(result.valid_amount_rounded_up, "0.50000008")
        self.assertEqual(result.valid_amount_rounded_down, "0.49900008")
        self.assertEqual(result.rounded_up_difference_usd, "0.00")
        self.assertEqual(result.rounded_down_difference_usd, "60.00")

    async def test_unknown_asset_uses_defaults(self):
        result = await suggest_amounts(AssetRegistry(self.client), "XRP.XRP", "00008", "1")
        self.assertEqual(result.decimals, 8)
        self.assertEqual(result.rounded_up_difference_usd, "0.00")

    async def test_chain_failure_uses_defaults(self):
        self.chain.fail_paths = ["/thorchain/pools"]
        result = await suggest_amounts(AssetRegistry(self.client), "BTC.BTC", "00008", "1")
        self.assertEqual(result.valid_amount_rounded_up, "1.00000008")
