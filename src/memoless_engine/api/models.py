"""Request bodies accepted by the memoless API."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

# amounts are accepted as JSON strings or numbers and kept as text
AmountInput = Optional[str]


def _amount_text(v):
    # JSON numbers arrive as int/float; everything downstream works on digit strings
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, bool):
        raise ValueError("amount must be a decimal string")
    return format(Decimal(repr(v)), "f") if isinstance(v, float) else str(v)


class _ApiRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class RegisterRequest(_ApiRequest):
    asset: Optional[str] = None
    memo: Optional[str] = None
    requested_in_asset_amount: AmountInput = None

    @field_validator("requested_in_asset_amount", mode="before")
    @classmethod
    def _amount(cls, v):
        return _amount_text(v)


class PreflightRequest(_ApiRequest):
    internal_api_id: Optional[str] = None
    asset: Optional[str] = None
    reference: Optional[str] = None
    amount: AmountInput = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v):
        return _amount_text(v)


class TrackTransactionRequest(_ApiRequest):
    txHash: Optional[str] = None


class SuggestAmountRequest(_ApiRequest):
    asset: Optional[str] = None
    reference: Optional[str] = None
    requested_amount: AmountInput = None

    @field_validator("requested_amount", mode="before")
    @classmethod
    def _amount(cls, v):
        return _amount_text(v)


class FormatAmountRequest(_ApiRequest):
    amount: AmountInput = None
    reference: Optional[str] = None
    decimals: Optional[int] = None
    asset: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v):
        return _amount_text(v)
