"""
Asset API routes (read-through pool registry).

GET /api/v1/assets          — assets eligible for memoless registration
GET /api/v1/assets/{asset}  — one eligible asset
"""

from fastapi import APIRouter, Request

from ..errors import AssetNotFound, ChainQueryFailed
from ..service_context import ServiceContext
from .rate_limit import limiter


def create_asset_router(ctx: ServiceContext) -> APIRouter:
    router = APIRouter(prefix="/api/v1", tags=["assets"])
    rate = ctx.config.rate_limit

    async def _eligible():
        try:
            return await ctx.assets.list_assets()
        except ChainQueryFailed as e:
            raise ChainQueryFailed(
                "Failed to fetch valid assets", code="FETCH_ASSETS_FAILED", details={"reason": e.message}
            ) from e

    @router.get("/assets")
    @limiter.limit(rate)
    async def list_assets(request: Request):
        assets = await _eligible()
        return {"success": True, "assets": [a.to_dict() for a in assets]}

    @router.get("/assets/{asset}")
    @limiter.limit(rate)
    async def get_asset(request: Request, asset: str):
        assets = await _eligible()
        for info in assets:
            if info.asset == asset:
                return {"success": True, "asset": info.to_dict()}
        raise AssetNotFound(
            f"Asset {asset} not found or not supported",
            details={"supported_assets": [a.asset for a in assets]},
        )

    return router
