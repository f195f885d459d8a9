"""
Memoless service configuration: environment-driven, immutable, built once.

`get_memoless_config()` is the process-wide accessor used at startup; business
logic receives the resulting object explicitly and never reads os.environ.
"""

import os
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple

from loguru import logger

_memoless_config = None

_TRUE_VALUES = ("true", "1", "yes")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in _TRUE_VALUES


# ── Network presets ─────────────────────────────────────────────


@dataclass(frozen=True)
class NetworkPreset:
    name: str
    thornode_url: str
    rpc_url: str
    chain_id: str
    address_prefix: str
    explorer_url: str


NETWORK_PRESETS = {
    "mainnet": NetworkPreset(
        name="mainnet",
        thornode_url="https://thornode.ninerealms.com",
        rpc_url="https://rpc.ninerealms.com",
        chain_id="thorchain-mainnet-v1",
        address_prefix="thor",
        explorer_url="https://thorchain.net/tx/",
    ),
    "stagenet": NetworkPreset(
        name="stagenet",
        thornode_url="https://stagenet-thornode.ninerealms.com",
        rpc_url="https://stagenet-rpc.ninerealms.com:443",
        chain_id="thorchain-stagenet-v2",
        address_prefix="sthor",
        explorer_url="https://stagenet.thorchain.net/tx/",
    ),
}


# ── Retry policy ────────────────────────────────────────────────


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff: attempt N waits base * multiplier^(N-1) first."""

    max_attempts: int = 5
    base_delay: float = 6.0
    multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        if attempt < 1:
            raise ValueError("attempt numbers start at 1")
        return self.base_delay * (self.multiplier ** (attempt - 1))

    def delays(self) -> Tuple[float, ...]:
        return tuple(self.delay_for(n) for n in range(1, self.max_attempts + 1))


Sleep = Callable[[float], Awaitable[None]]


# ── Service configuration ───────────────────────────────────────


@dataclass(frozen=True)
class MemolessConfig:
    network: str = "stagenet"
    thornode_url: str = NETWORK_PRESETS["stagenet"].thornode_url
    rpc_url: str = NETWORK_PRESETS["stagenet"].rpc_url
    chain_id: str = NETWORK_PRESETS["stagenet"].chain_id
    address_prefix: str = NETWORK_PRESETS["stagenet"].address_prefix
    explorer_url: str = NETWORK_PRESETS["stagenet"].explorer_url

    wallet_address: str = ""
    signer_url: str = ""
    client_name: str = "memoless-api"
    http_timeout: float = 10.0

    # affiliate injection
    inject_affiliate: bool = False
    affiliate_name: str = ""
    affiliate_fee_bp: str = "5"

    # persistence: "" disables it, "sqlite:" prefix selects the embedded engine
    database_url: str = ""

    # webhooks
    discord_webhook: str = ""
    slack_webhook: str = ""
    discord_enabled: bool = False
    slack_enabled: bool = False
    low_balance_threshold: int = 25

    # HTTP surface
    cors_origins: Tuple[str, ...] = ("http://localhost:3000",)
    rate_limit: str = "100/15minutes"
    asset_cache_ttl: float = 60.0

    confirmation_retry: RetryPolicy = field(default_factory=RetryPolicy)
    sequence_retry_delay: float = 2.0
    minimum_operating_balance: str = "0.02"

    @classmethod
    def from_env(cls) -> "MemolessConfig":
        network = os.environ.get("THORCHAIN_NETWORK", "stagenet").strip().lower()
        if network not in NETWORK_PRESETS:
            logger.warning(f"[Config] Unknown THORCHAIN_NETWORK={network!r}, falling back to stagenet")
            network = "stagenet"
        preset = NETWORK_PRESETS[network]

        cors_env = os.environ.get("CORS_ORIGINS", "")
        if cors_env:
            cors_origins = tuple(o.strip() for o in cors_env.split(",") if o.strip())
        else:
            cors_origins = ("http://localhost:3000", "http://127.0.0.1:3000")

        config = cls(
            network=network,
            thornode_url=os.environ.get("THORNODE_URL", preset.thornode_url).rstrip("/"),
            rpc_url=os.environ.get("THORCHAIN_RPC_URL", preset.rpc_url),
            chain_id=os.environ.get("THORCHAIN_CHAIN_ID", preset.chain_id),
            address_prefix=preset.address_prefix,
            explorer_url=preset.explorer_url,
            wallet_address=os.environ.get("HOT_WALLET_ADDRESS", "").strip(),
            signer_url=os.environ.get("SIGNER_URL", "").strip(),
            client_name=os.environ.get("API_CLIENT_NAME", "memoless-api").strip() or "memoless-api",
            http_timeout=float(os.environ.get("HTTP_TIMEOUT", "10")),
            inject_affiliate=_env_bool("INJECT_AFFILIATE_IN_SWAPS"),
            affiliate_name=os.environ.get("AFFILIATE_THORNAME", "").strip(),
            affiliate_fee_bp=os.environ.get("AFFILIATE_FEE_BP", "5").strip() or "5",
            database_url=os.environ.get("DATABASE_URL", "").strip(),
            discord_webhook=os.environ.get("DISCORD_WEBHOOK", "").strip(),
            slack_webhook=os.environ.get("SLACK_WEBHOOK", "").strip(),
            discord_enabled=_env_bool("ENABLE_DISCORD_WEBHOOK"),
            slack_enabled=_env_bool("ENABLE_SLACK_WEBHOOK"),
            low_balance_threshold=int(os.environ.get("LOW_BALANCE_ALERT_THRESHOLD", "25")),
            cors_origins=cors_origins,
            rate_limit=os.environ.get("RATE_LIMIT", "100/15minutes"),
            asset_cache_ttl=float(os.environ.get("ASSET_CACHE_TTL", "60")),
            confirmation_retry=RetryPolicy(
                max_attempts=int(os.environ.get("CONFIRM_MAX_ATTEMPTS", "5")),
                base_delay=float(os.environ.get("CONFIRM_BASE_DELAY_SEC", "6")),
                multiplier=float(os.environ.get("CONFIRM_BACKOFF_MULTIPLIER", "2")),
            ),
        )

        logger.info(
            f"[Config] network={config.network} thornode={config.thornode_url} "
            f"persistence={'on' if config.database_url else 'off'} "
            f"affiliate={'on' if config.affiliate_injection_active else 'off'}"
        )
        return config

    @property
    def affiliate_injection_active(self) -> bool:
        return self.inject_affiliate and bool(self.affiliate_name)

    @property
    def client_id(self) -> str:
        """Value of the x-client-id header sent to thornode."""
        if len(self.wallet_address) >= 4:
            return f"{self.client_name}-{self.wallet_address[-4:].lower()}"
        return self.client_name

    @property
    def discord_active(self) -> bool:
        return self.discord_enabled and bool(self.discord_webhook)

    @property
    def slack_active(self) -> bool:
        return self.slack_enabled and bool(self.slack_webhook)

    def tracking_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}{tx_hash}"


def get_memoless_config() -> MemolessConfig:
    """Process-wide configuration singleton."""
    global _memoless_config
    if _memoless_config is None:
        _memoless_config = MemolessConfig.from_env()
    return _memoless_config


def reset_memoless_config_for_testing(config: Optional[MemolessConfig] = None):
    """Test helper: drop (or replace) the singleton so env changes are re-read."""
    global _memoless_config
    _memoless_config = config
