"""
FastAPI application exposing the catalog and statistics as JSON.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from api.routers import clues, constructors, leaderboard, persons, puzzles, rounds, search
from config import get_api_prefix
from services.render_cache import CacheNamespace, RenderCache

ROUTERS = [rounds, persons, puzzles, clues, constructors, search, leaderboard]


def create_app(render_cache=None, cache_namespace=None):
    """
    Build the application.

    Args:
        render_cache: RenderCache to use (a new one with the configured TTL by default)
        cache_namespace: Starting CacheNamespace (version 1 by default)
    """
    app = FastAPI(title="KEALOA Stats", version="1.0.0")
    app.state.render_cache = render_cache or RenderCache()
    app.state.cache_namespace = cache_namespace or CacheNamespace(1)

    prefix = get_api_prefix()
    for module in ROUTERS:
        app.include_router(module.router, prefix=prefix)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.post(f"{prefix}/cache/flush", tags=["cache"], summary="Start a new render cache namespace")
    async def flush_cache(request: Request):
        request.app.state.cache_namespace = request.app.state.render_cache.flush(request.app.state.cache_namespace)
        return {"version": request.app.state.cache_namespace.version}

    return app
