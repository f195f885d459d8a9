"""
Service status routes.

GET /        — banner with version, network and endpoint map
GET /health  — wallet, thornode and store status
"""

import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger

from .. import __version__
from ..errors import ChainQueryFailed
from ..service_context import ServiceContext
from .rate_limit import limiter


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_health_router(ctx: ServiceContext) -> APIRouter:
    router = APIRouter(tags=["health"])
    rate = ctx.config.rate_limit

    async def _thornode_status():
        try:
            await ctx.thornode.network()
        except ChainQueryFailed as e:
            return {"connected": False, "status": "unreachable", "error": e.message}
        return {"connected": True, "status": "ok"}

    @router.get("/health")
    @limiter.limit(rate)
    async def health(request: Request):
        try:
            wallet_ready = ctx.wallet.is_ready()
            thornode = await _thornode_status()
            store = await asyncio.to_thread(ctx.store.status)
            return {
                "status": "healthy",
                "timestamp": _now(),
                "wallet": {
                    "address": ctx.wallet.address if wallet_ready else "not initialized",
                    "ready": wallet_ready,
                    "network": ctx.config.network,
                },
                "thorchain": thornode,
                "database": {
                    "enabled": store.enabled,
                    "type": store.engine,
                    "connected": store.connected,
                    "note": store.note,
                },
            }
        except Exception as e:
            logger.error(f"[Health] status report failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "error": str(e), "timestamp": _now()},
            )

    @router.get("/")
    @limiter.limit(rate)
    async def root(request: Request):
        return {
            "name": "THORChain Memoless Registration API",
            "version": __version__,
            "network": ctx.config.network,
            "endpoints": {
                "health": "/health",
                "assets": "/api/v1/assets",
                "register": "/api/v1/register",
                "preflight": "/api/v1/preflight",
                "track_transaction": "/api/v1/track-transaction",
                "suggest_amount": "/api/v1/suggest-amount",
                "format_amount": "/api/v1/format-amount",
                "documentation": "/docs",
                "openapi": "/openapi.json",
            },
        }

    return router
