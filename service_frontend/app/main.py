"""
Frontend service: tunnel routing, asset proxy, generic proxy and static pages.
"""

import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import httpx
from fastapi import Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import FrontendException

from .adapters.upstream_fetcher import RouteMapping, UpstreamFetcher
from .caching.asset_cache import AssetCache
from .domain.access_middleware import AccessMiddleware
from .domain.pages import PageCatalog
from .proxy.asset_proxy import AssetProxyHandler
from .proxy.generic_proxy import GenericProxyHandler
from .proxy.paths import raw_request_path
from .routing.dual_protocol import DualProtocolRouter
from .routing.tunnel import TunnelServer, build_tunnel

GENERIC_PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class FrontendService(BaseService):
    """Frontend service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        tunnel: Optional[TunnelServer] = None,
        routes: Optional[RouteMapping] = None,
        upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.tunnel = tunnel
        super().__init__("frontend", config)

        self.asset_cache = AssetCache(
            self.config.cache_ttl_seconds,
            self.config.cache_max_entries,
            clock=clock,
            metrics=self.metrics,
        )
        self.routes = routes or RouteMapping()
        self.fetcher = UpstreamFetcher(
            self.config.upstream_timeout_seconds,
            transport=upstream_transport,
            metrics=self.metrics,
        )
        self.asset_proxy = AssetProxyHandler(self.asset_cache, self.fetcher, self.routes)
        self.generic_proxy = GenericProxyHandler(self.fetcher)
        self.pages = PageCatalog(self.config.static_dir)

        self._setup_frontend_routes()
        self._mount_static()

        # Expose service instance via app state for introspection/testing
        self.app.state.frontend_service = self

    def _setup_middleware(self):
        """Access gate innermost, request context around it, router outermost."""
        self.access = AccessMiddleware(
            self.config.users,
            challenge=self.config.challenge,
            access_keys=self.config.access_keys,
            permissions_policy=self.config.permissions_policy,
        )
        self.app.middleware("http")(self.access.dispatch)

        super()._setup_middleware()

        if self.tunnel is None:
            self.tunnel = build_tunnel(self.config)
        self.app.add_middleware(DualProtocolRouter, tunnel=self.tunnel, metrics=self.metrics)

    def _setup_frontend_routes(self):
        """Set up page, proxy and key-check routes."""

        for path, filename in self.pages.routes:
            self.app.add_api_route(
                path,
                self._page_endpoint(filename),
                methods=["GET"],
                include_in_schema=False,
            )

        @self.app.get("/e/{asset_path:path}", include_in_schema=False)
        async def asset_proxy(request: Request, asset_path: str):
            """Cached proxy for the fixed upstream asset hosts."""
            response = await self.asset_proxy.handle(raw_request_path(request))
            if response is None:
                return self.pages.not_found()
            return response

        @self.app.api_route("/a/{target:path}", methods=GENERIC_PROXY_METHODS, include_in_schema=False)
        async def generic_proxy(request: Request, target: str):
            """Pass-through proxy to the URL encoded in the path."""
            return await self.generic_proxy.handle(request)

        @self.app.get("/fq", include_in_schema=False)
        async def validate_key(request: Request, key: Optional[str] = None):
            """Iframe access key check."""
            status_code, message = self.access.validate_key(key)
            response = Response(content=message, status_code=status_code, media_type="text/plain")
            origin = request.headers.get("Origin")
            if origin:
                response.headers["Access-Control-Allow-Origin"] = origin
                response.headers["Vary"] = "Origin"
            return response

        @self.app.exception_handler(StarletteHTTPException)
        async def not_found_handler(request: Request, exc: StarletteHTTPException):
            """Render the 404 page for anything the pipeline could not serve."""
            if exc.status_code == 404:
                return self.pages.not_found()
            return await http_exception_handler(request, exc)

    def _page_endpoint(self, filename: str):
        async def serve_page():
            return self.pages.serve(filename)

        return serve_page

    def _mount_static(self):
        """Default static serving from the content root; must be registered last."""
        static_dir = Path(self.config.static_dir)
        if not static_dir.is_dir():
            self.logger.warning("Static directory missing; static serving disabled", static_dir=str(static_dir))
            return
        self.app.mount("/", StaticFiles(directory=static_dir), name="static")

    async def _render_error(self, request: Request, exc: FrontendException) -> Response:
        return self.pages.server_error()

    async def _render_internal_error(self, request: Request) -> Response:
        return self.pages.server_error()

    async def _on_shutdown(self) -> None:
        await self.fetcher.close()

    async def _check_dependencies(self) -> Dict[str, Any]:
        return {
            "asset_cache": self.asset_cache.stats(),
            "asset_routes": len(self.routes),
            "tunnel": type(self.tunnel).__name__,
        }


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = FrontendService(config, **kwargs)
    return service.app


def main():
    service = FrontendService()
    service.run()


if __name__ == "__main__":
    main()
