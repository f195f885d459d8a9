"""Typed views of the thornode REST responses the service reads."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _ThornodeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PoolInfo(_ThornodeModel):
    asset: str
    status: str = ""
    decimals: Optional[int] = None
    decimal: Optional[int] = None
    balance_rune: int = 0
    balance_asset: int = 0
    asset_tor_price: int = 0

    @field_validator("balance_rune", "balance_asset", "asset_tor_price", mode="before")
    @classmethod
    def _raw_int(cls, v):
        if v in (None, ""):
            return 0
        return int(v)

    @field_validator("decimals", "decimal", mode="before")
    @classmethod
    def _optional_int(cls, v):
        if v in (None, "", 0, "0"):
            return None
        return int(v)

    @property
    def effective_decimals(self) -> int:
        return self.decimals or self.decimal or 8


class InboundAddress(_ThornodeModel):
    chain: str
    address: str = ""
    dust_threshold: int = 0
    halted: bool = False

    @field_validator("dust_threshold", mode="before")
    @classmethod
    def _raw_int(cls, v):
        if v in (None, ""):
            return 0
        return int(v)


class MemoReference(_ThornodeModel):
    asset: str = ""
    memo: str = ""
    reference: str = ""
    height: str = ""
    registration_hash: str = ""
    registered_by: str = ""

    @field_validator("height", "reference", mode="before")
    @classmethod
    def _as_text(cls, v):
        return "" if v is None else str(v)


class MemoCheck(_ThornodeModel):
    reference: str = ""
    available: bool = False
    can_register: bool = False
    memo: str = ""
    usage_count: int = 0
    max_use: int = 3
    expires_at: str = ""

    @field_validator("usage_count", mode="before")
    @classmethod
    def _count(cls, v):
        if v in (None, ""):
            return 0
        return int(v)

    # thornode omits max_use for references it has never seen
    @field_validator("max_use", mode="before")
    @classmethod
    def _max_use(cls, v):
        if v in (None, ""):
            return 3
        return int(v)

    @field_validator("expires_at", "reference", "memo", mode="before")
    @classmethod
    def _as_text(cls, v):
        return "" if v is None else str(v)

    @property
    def expiry_block(self) -> int:
        return int(self.expires_at) if self.expires_at.isascii() and self.expires_at.isdigit() else 0


class NetworkInfo(_ThornodeModel):
    native_tx_fee_rune: int = Field(default=0)

    @field_validator("native_tx_fee_rune", mode="before")
    @classmethod
    def _raw_int(cls, v):
        if v in (None, ""):
            return 0
        return int(v)
