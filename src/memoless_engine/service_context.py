"""
ServiceContext: the process-wide set of collaborators behind the API.

Built once from a MemolessConfig; owns the HTTP clients and the store, and
closes them on shutdown after outstanding advisories have drained.
"""

import asyncio
from typing import Optional

from loguru import logger

from .advisory import drain_advisories
from .assets import AssetRegistry
from .broadcast import Broadcaster, SignerServiceBroadcaster
from .config import MemolessConfig
from .notifications import Notifier
from .orchestrator import RegistrationOrchestrator
from .preflight import PreflightEvaluator
from .storage import RegistrationStore, create_store
from .thornode.client import ThornodeClient
from .wallet import HotWallet


class ServiceContext:
    """Holds every service the routes need."""

    _default: Optional["ServiceContext"] = None

    @classmethod
    def get_default_context(cls) -> Optional["ServiceContext"]:
        return cls._default

    @classmethod
    def set_default_context(cls, ctx: Optional["ServiceContext"]) -> None:
        cls._default = ctx

    def __init__(
        self,
        config: MemolessConfig,
        thornode: ThornodeClient,
        broadcaster: Broadcaster,
        store: RegistrationStore,
        notifier: Notifier,
    ):
        self.config = config
        self.thornode = thornode
        self.broadcaster = broadcaster
        self.store = store
        self.notifier = notifier
        self.assets = AssetRegistry(thornode, cache_ttl=config.asset_cache_ttl)
        self.wallet = HotWallet(config.wallet_address, thornode)
        self.orchestrator = RegistrationOrchestrator(
            config=config,
            assets=self.assets,
            thornode=thornode,
            broadcaster=broadcaster,
            store=store,
            wallet=self.wallet,
            notifier=notifier,
        )
        self.preflight = PreflightEvaluator(self.assets, thornode, store)

    @classmethod
    def load_from_config(cls, config: MemolessConfig) -> "ServiceContext":
        thornode = ThornodeClient(config.thornode_url, config.client_id, timeout=config.http_timeout)
        broadcaster = SignerServiceBroadcaster(config.signer_url, config.chain_id)
        store = create_store(config.database_url)
        notifier = Notifier(
            discord_webhook=config.discord_webhook if config.discord_active else None,
            slack_webhook=config.slack_webhook if config.slack_active else None,
            low_balance_threshold=config.low_balance_threshold,
            timeout=config.http_timeout,
        )
        if not config.wallet_address:
            logger.warning("[Context] HOT_WALLET_ADDRESS not set, balance checks will fail")
        if not config.signer_url:
            logger.warning("[Context] SIGNER_URL not set, registrations cannot be broadcast")
        logger.info(f"[Context] services ready (network={config.network}, store={store.engine})")
        return cls(config, thornode, broadcaster, store, notifier)

    async def close(self, drain_timeout: float = 10.0):
        await drain_advisories(timeout=drain_timeout)
        await self.notifier.close()
        await self.broadcaster.close()
        await self.thornode.close()
        await asyncio.to_thread(self.store.close)
        logger.info("[Context] services closed")
