from typing import Optional

from fastapi import FastAPI
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware

from . import __version__
from .api import create_routes, install_error_handlers, limiter
from .config import MemolessConfig, get_memoless_config
from .service_context import ServiceContext


def create_app(config: Optional[MemolessConfig] = None, ctx: Optional[ServiceContext] = None) -> FastAPI:
    """Build the API app; pass `ctx` to supply prebuilt (e.g. fake) collaborators."""
    if ctx is None:
        ctx = ServiceContext.load_from_config(config or get_memoless_config())
    ServiceContext.set_default_context(ctx)

    app = FastAPI(title="THORChain Memoless Registration API", version=__version__)

    # rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    install_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(ctx.config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_routes(ctx))
    app.state.ctx = ctx

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            f"[Server] memoless API v{__version__} on {ctx.config.network} "
            f"(thornode={ctx.config.thornode_url}, rate={ctx.config.rate_limit})"
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        await ctx.close()
        if ServiceContext.get_default_context() is ctx:
            ServiceContext.set_default_context(None)

    return app
