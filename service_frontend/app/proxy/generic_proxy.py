"""
Uncached pass-through proxy for caller-specified targets (``/a/<encoded-url>``).
"""

from typing import Dict
from urllib.parse import unquote, urlsplit

from fastapi import Request, Response

from shared.logging import get_logger
from shared.errors import InvalidTargetError, UpstreamUnavailableError

from ..adapters.upstream_fetcher import UpstreamFetcher, UpstreamRequest
from .content_types import resolve_content_type
from .paths import raw_request_path

GENERIC_PROXY_PREFIX = "/a/"

# Recomputed by the HTTP client or meaningful for one hop only. The client
# negotiates its own Accept-Encoding so upstream bodies arrive decoded.
EXCLUDED_REQUEST_HEADERS = {
    "host",
    "content-length",
    "accept-encoding",
    "connection",
    "keep-alive",
    "proxy-connection",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}


def decode_target(raw_path: str, query_string: str) -> str:
    """Decode the URL embedded after ``/a/`` and reattach the original query.

    Raises InvalidTargetError unless the result is an absolute http(s) URL.
    """
    if not raw_path.startswith(GENERIC_PROXY_PREFIX):
        raise InvalidTargetError("Not a proxy path", details={"path": raw_path})

    encoded = raw_path[len(GENERIC_PROXY_PREFIX):]
    try:
        decoded = unquote(encoded, errors="strict")
    except UnicodeDecodeError as e:
        raise InvalidTargetError("Malformed proxy target encoding", details={"error": str(e)})

    parts = urlsplit(decoded)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidTargetError("Proxy target must be an absolute http(s) URL", details={"target": decoded})

    if query_string:
        return f"{decoded}?{query_string}"
    return decoded


def forwarded_headers(request: Request) -> Dict[str, str]:
    headers = {}
    for key, value in request.headers.items():
        if key.lower() not in EXCLUDED_REQUEST_HEADERS:
            headers[key] = value
    return headers


class GenericProxyHandler:
    """Forwards method, headers and body to the decoded target URL."""

    def __init__(self, fetcher: UpstreamFetcher):
        self.fetcher = fetcher
        self.logger = get_logger("frontend.generic_proxy")

    async def handle(self, request: Request) -> Response:
        try:
            query_string = request.scope.get("query_string", b"").decode("latin-1")
            target = decode_target(raw_request_path(request), query_string)
            self.logger.info("Proxying request", url=target, method=request.method)

            body = await request.body()
            upstream_request = UpstreamRequest(
                url=target,
                method=request.method,
                headers=forwarded_headers(request),
                body=body,
            )

            try:
                upstream_response = await self.fetcher.forward(upstream_request)
            except UpstreamUnavailableError as e:
                self.logger.error("Proxy upstream unreachable", url=target, error=e.message)
                return self._proxy_error(e.status_code)

            if not upstream_response.is_success:
                self.logger.error(
                    "Proxy fetch failed",
                    url=target,
                    upstream_status=upstream_response.status_code,
                )
                return self._proxy_error(upstream_response.status_code)

            return Response(
                content=upstream_response.content,
                status_code=200,
                headers={"Content-Type": resolve_content_type(target)},
            )

        except InvalidTargetError:
            raise
        except Exception as e:
            self.logger.error("Proxy error", error=str(e), exc_info=True)
            return self._proxy_error(500)

    @staticmethod
    def _proxy_error(status_code: int) -> Response:
        return Response(content="Proxy Error", status_code=status_code, media_type="text/plain")
