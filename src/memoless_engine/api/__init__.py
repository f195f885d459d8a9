from fastapi import APIRouter

from ..service_context import ServiceContext
from .asset_routes import create_asset_router
from .errors import install_error_handlers
from .health_routes import create_health_router
from .rate_limit import limiter
from .registration_routes import create_registration_router


def create_routes(ctx: ServiceContext) -> APIRouter:
    router = APIRouter()
    router.include_router(create_health_router(ctx))
    router.include_router(create_asset_router(ctx))
    router.include_router(create_registration_router(ctx))
    return router


__all__ = ["create_routes", "install_error_handlers", "limiter"]
