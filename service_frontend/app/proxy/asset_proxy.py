"""
Cached pass-through proxy for the fixed family of ``/e/<n>/`` asset paths.
"""

from typing import Optional

from fastapi import Response

from shared.logging import get_logger
from shared.errors import UpstreamUnavailableError

from ..adapters.upstream_fetcher import RouteMapping, UpstreamFetcher
from ..caching.asset_cache import AssetCache
from .content_types import resolve_content_type


class AssetProxyHandler:
    """Serves assets from the cache, fetching and caching them on a miss.

    ``handle`` returns None to decline the request (no matching prefix or
    upstream failure); the caller moves on to the next pipeline stage.
    """

    def __init__(self, cache: AssetCache, fetcher: UpstreamFetcher, routes: RouteMapping):
        self.cache = cache
        self.fetcher = fetcher
        self.routes = routes
        self.logger = get_logger("frontend.asset_proxy")

    async def handle(self, path: str) -> Optional[Response]:
        try:
            entry = self.cache.lookup(path)
            if entry is not None:
                self.logger.info("Cache hit", path=path)
                return self._asset_response(entry.payload, entry.content_type)

            target = self.routes.resolve(path)
            if target is None:
                self.logger.debug("No asset route for path", path=path)
                return None

            try:
                asset = await self.fetcher.fetch_asset(target)
            except UpstreamUnavailableError as e:
                self.logger.warning(
                    "Failed to fetch asset",
                    path=path,
                    url=target,
                    error=e.message,
                    upstream_status=e.upstream_status,
                )
                return None

            content_type = resolve_content_type(target)
            self.cache.insert(path, asset.payload, content_type)
            return self._asset_response(asset.payload, content_type)

        except Exception as e:
            self.logger.error("Error fetching asset", path=path, error=str(e), exc_info=True)
            return Response(
                content="Error fetching the asset",
                status_code=500,
                headers={"Content-Type": "text/html"},
            )

    @staticmethod
    def _asset_response(payload: bytes, content_type: str) -> Response:
        # Exact content type, no charset appended.
        return Response(content=payload, status_code=200, headers={"Content-Type": content_type})
