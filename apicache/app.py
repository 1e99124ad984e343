"""FastAPI application for the caching proxy.

Wiring only: the lifespan selects the cache backend and opens the upstream
client, and a catch-all route hands every request to CachingProxy.
"""
from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apicache.cache import CacheEntry, CacheManager
from apicache.config import Config, get_config
from apicache.handler import CachingProxy
from apicache.upstream import UpstreamClient
from apicache.utils.logger import configure_level, log_info

PROXIED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


def raw_path(request: Request) -> str:
    """Request path as sent by the client, percent-escapes intact."""
    raw = request.scope.get("raw_path")
    if not raw:
        return request.url.path
    return raw.split(b"?", 1)[0].decode("latin-1")


def entry_response(entry: CacheEntry) -> Response:
    """Render a cache entry as the HTTP reply."""
    if entry.data is None:
        return Response(status_code=entry.status)
    return JSONResponse(content=entry.data, status_code=entry.status)


def create_app(config: Optional[Config] = None,
               cache_manager: Optional[CacheManager] = None,
               upstream: Optional[UpstreamClient] = None) -> FastAPI:
    """Build the proxy application. Collaborators may be injected for tests."""
    config = config or get_config()
    cache_manager = cache_manager or CacheManager.from_config(config)
    upstream = upstream or UpstreamClient(config)
    proxy = CachingProxy(
        cache_manager,
        upstream,
        ttl_seconds=config.cache_ttl_seconds,
        strip_params=config.get_strip_params(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_level(config.log_level)
        await cache_manager.initialize()
        try:
            async with upstream:
                log_info("Proxy ready", upstream=config.upstream_base_url,
                         backend=cache_manager.backend.name)
                yield
        finally:
            await cache_manager.shutdown()

    app = FastAPI(title="api-cache-proxy", lifespan=lifespan)
    app.state.proxy = proxy
    app.state.cache_manager = cache_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.api_route("/{path:path}", methods=PROXIED_METHODS)
    async def forward(request: Request, path: str) -> Response:
        entry = await proxy.handle(request.method, raw_path(request), request.url.query)
        return entry_response(entry)

    return app
