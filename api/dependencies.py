from fastapi import HTTPException, Request

from database.db_session import get_session  # noqa: F401  re-exported for routers


def get_render_cache(request: Request):
    return request.app.state.render_cache


def get_cache_namespace(request: Request):
    return request.app.state.cache_namespace


def not_found(entity):
    return HTTPException(status_code=404, detail=f"{entity} not found.")


async def cached(request: Request, name, renderer):
    """Render through the application's cache under its current namespace"""
    cache = get_render_cache(request)
    return await cache.get_cached_or_render(get_cache_namespace(request), name, renderer)
