"""
Registration API routes.

POST /api/v1/register             — register a memo, returns its reference (201)
GET  /api/v1/register/{id}        — stored registration status
POST /api/v1/preflight            — check an amount before sending funds
POST /api/v1/track-transaction    — explorer link for a transaction hash
POST /api/v1/suggest-amount       — nearest valid amounts above/below a request
POST /api/v1/format-amount        — append a reference to a typed amount
"""

import asyncio
import re

from fastapi import APIRouter, Request
from loguru import logger

from ..errors import InvalidRequest, RegistrationNotFound
from ..service_context import ServiceContext
from ..suggestions import format_amount, suggest_amounts
from .models import (
    FormatAmountRequest,
    PreflightRequest,
    RegisterRequest,
    SuggestAmountRequest,
    TrackTransactionRequest,
)
from .rate_limit import limiter

_HEX_RE = re.compile(r"^[0-9a-fA-F]{32,}$")


def create_registration_router(ctx: ServiceContext) -> APIRouter:
    router = APIRouter(prefix="/api/v1", tags=["registration"])
    rate = ctx.config.rate_limit

    @router.post("/register", status_code=201)
    @limiter.limit(rate)
    async def register(request: Request, body: RegisterRequest):
        outcome = await ctx.orchestrator.register(body.asset, body.memo, body.requested_in_asset_amount)
        return outcome.to_response()

    @router.get("/register/{registration_id}")
    @limiter.limit(rate)
    async def registration_status(request: Request, registration_id: str):
        record = await asyncio.to_thread(ctx.store.get, registration_id)
        if record is None:
            raise RegistrationNotFound(f"Registration {registration_id} not found")
        registration = {
            "registrationId": record.id,
            "status": record.status.value,
            "txHash": record.tx_hash,
            "asset": record.asset,
            "memo": record.memo,
            "createdAt": record.to_dict()["created_at"],
        }
        if record.reference_id:
            registration.update(
                referenceId=record.reference_id,
                height=record.height,
                registrationHash=record.registration_hash,
                registeredBy=record.registered_by,
            )
        if record.error:
            registration["error"] = record.error
        return {"success": True, "registration": registration}

    @router.post("/preflight")
    @limiter.limit(rate)
    async def preflight(request: Request, body: PreflightRequest):
        report = await ctx.preflight.evaluate(
            body.amount,
            internal_api_id=body.internal_api_id,
            asset=body.asset,
            reference=body.reference,
        )
        return {
            "success": True,
            "message": "Preflight check passed - proceed with transaction",
            "data": report.to_data(),
        }

    @router.post("/track-transaction")
    @limiter.limit(rate)
    async def track_transaction(request: Request, body: TrackTransactionRequest):
        tx_hash = body.txHash or ""
        if not tx_hash:
            raise InvalidRequest("Transaction hash is required", code="MISSING_TX_HASH")
        clean = tx_hash[2:] if tx_hash.startswith("0x") else tx_hash
        if not _HEX_RE.match(clean):
            raise InvalidRequest(
                "Transaction hash must be a valid hexadecimal string (minimum 32 characters)",
                code="INVALID_TX_HASH",
            )
        return {
            "success": True,
            "tracking": {
                "isValid": True,
                "cleanTxHash": clean,
                "trackingUrl": ctx.config.tracking_url(clean),
                "network": ctx.config.network,
            },
        }

    @router.post("/suggest-amount")
    @limiter.limit(rate)
    async def suggest_amount(request: Request, body: SuggestAmountRequest):
        if not body.asset or not body.reference or not body.requested_amount:
            raise InvalidRequest("asset, reference and requested_amount are required")
        suggestions = await suggest_amounts(ctx.assets, body.asset, body.reference, body.requested_amount)
        return {"success": True, "data": suggestions.to_dict()}

    @router.post("/format-amount")
    @limiter.limit(rate)
    async def format_amount_route(request: Request, body: FormatAmountRequest):
        if not body.amount or not body.reference:
            raise InvalidRequest("amount and reference are required")
        decimals = body.decimals
        if decimals is None:
            if not body.asset:
                raise InvalidRequest("Either decimals or asset is required")
            decimals = await ctx.assets.resolve_decimals(body.asset)
        formatted = format_amount(body.amount, body.reference, decimals)
        logger.debug(f"[API] formatted {formatted.input} -> {formatted.amount}")
        return {
            "success": True,
            "data": {
                "input": formatted.input,
                "amount": formatted.amount,
                "decimals": decimals,
                "warnings": formatted.warnings,
            },
        }

    return router
