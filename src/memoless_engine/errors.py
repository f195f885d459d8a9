"""
Memoless error taxonomy.

Every failure that can reach an API caller is a MemolessError carrying a stable
machine-readable code, an HTTP status and a human-readable message.
"""

from typing import Any, Dict, List, Optional


class MemolessError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"success": False, "error": error}


# ── Request / input ─────────────────────────────────────────────


class InvalidRequest(MemolessError):
    code = "MISSING_PARAMETERS"
    status_code = 400


class UnsupportedAsset(MemolessError):
    code = "UNSUPPORTED_ASSET"
    status_code = 400


class AssetNotFound(MemolessError):
    code = "ASSET_NOT_FOUND"
    status_code = 404


class MalformedAmount(MemolessError):
    code = "MALFORMED_AMOUNT"
    status_code = 400


# ── Memo transformation ─────────────────────────────────────────


class UnsupportedMemoKind(MemolessError):
    code = "UNSUPPORTED_MEMO_KIND"
    status_code = 400


class InvalidAffiliateInput(MemolessError):
    code = "INVALID_AFFILIATE_INPUT"
    status_code = 400


# ── Preflight rejections ────────────────────────────────────────


class PreflightRejection(MemolessError):
    code = "PREFLIGHT_FAILED"
    status_code = 400


class ReferenceNotRegistered(PreflightRejection):
    pass


class ReferenceExhausted(PreflightRejection):
    pass


class ReferenceExpired(PreflightRejection):
    pass


class AmountMismatch(PreflightRejection):
    pass


class BelowDustThreshold(PreflightRejection):
    pass


class PreflightRejected(PreflightRejection):
    """All rejections of one preflight pass, in the order they were found."""

    def __init__(self, reasons: List[PreflightRejection], details: Optional[Dict[str, Any]] = None):
        if not reasons:
            raise ValueError("PreflightRejected needs at least one reason")
        merged = dict(details or {})
        merged["errors"] = [r.message for r in reasons]
        merged["reasons"] = [type(r).__name__ for r in reasons]
        super().__init__(reasons[0].message, details=merged)
        self.reasons = reasons


# ── Chain / broadcast ───────────────────────────────────────────


class ChainQueryFailed(MemolessError):
    code = "CHAIN_UNAVAILABLE"
    status_code = 502


class BroadcastFailed(MemolessError):
    code = "REGISTRATION_FAILED"
    status_code = 502


class SequenceConflict(BroadcastFailed):
    pass


class ConfirmationUnavailable(MemolessError):
    code = "REGISTRATION_FAILED"
    status_code = 502

    def __init__(self, message: str, *, tx_hash: str, **kwargs):
        details = dict(kwargs.pop("details", None) or {})
        details.setdefault("tx_hash", tx_hash)
        super().__init__(message, details=details, **kwargs)
        self.tx_hash = tx_hash


# ── Persistence ─────────────────────────────────────────────────


class RegistrationNotFound(MemolessError):
    code = "REGISTRATION_NOT_FOUND"
    status_code = 404


class PersistenceDisabled(MemolessError):
    code = "REGISTRATION_NOT_FOUND"
    status_code = 404


class InvalidStateTransition(MemolessError):
    code = "INTERNAL_ERROR"
    status_code = 500
