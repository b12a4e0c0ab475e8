"""
Upstream fetcher for the asset and generic proxies.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence, Tuple, TYPE_CHECKING

import httpx

from shared.logging import get_logger
from shared.errors import UpstreamUnavailableError

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_ASSET_ROUTES: Tuple[Tuple[str, str], ...] = (
    ("/e/1/", "https://raw.githubusercontent.com/qrs/x/fixy/"),
    ("/e/2/", "https://raw.githubusercontent.com/3v1/V5-Assets/main/"),
    ("/e/3/", "https://raw.githubusercontent.com/3v1/V5-Retro/master/"),
)

DEFAULT_TIMEOUT_SECONDS = 30.0


class RouteMapping:
    """Ordered ``(prefix, base_url)`` table; the first matching prefix wins."""

    def __init__(self, routes: Iterable[Tuple[str, str]] = DEFAULT_ASSET_ROUTES):
        self._routes: Tuple[Tuple[str, str], ...] = tuple((prefix, base) for prefix, base in routes)

    @property
    def routes(self) -> Sequence[Tuple[str, str]]:
        return self._routes

    def resolve(self, path: str) -> Optional[str]:
        """Map an inbound path to its upstream URL, or None if no prefix matches.

        The remainder after the prefix is appended verbatim.
        """
        for prefix, base_url in self._routes:
            if path.startswith(prefix):
                return base_url + path[len(prefix):]
        return None

    def __len__(self) -> int:
        return len(self._routes)


@dataclass
class UpstreamRequest:
    """One forwarded request."""

    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


@dataclass(frozen=True)
class FetchedAsset:
    """A successfully fetched upstream asset."""

    url: str
    payload: bytes
    status_code: int


class UpstreamFetcher:
    """Issues upstream requests through one pooled ``httpx.AsyncClient``."""

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics
        self.logger = get_logger("frontend.upstream_fetcher")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Create the shared client on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds, connect=min(10.0, self.timeout_seconds)),
                follow_redirects=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close pooled connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_asset(self, url: str) -> FetchedAsset:
        """GET ``url`` with no forwarded headers and buffer the body.

        Raises UpstreamUnavailableError on transport failure or non-2xx status.
        """
        self.logger.info("Fetching asset", url=url)
        start = time.perf_counter()
        try:
            response = await self._get_client().get(url)
        except httpx.TimeoutException as e:
            self._record("asset", "timeout", start)
            raise UpstreamUnavailableError(url, f"Upstream timed out: {e}", timed_out=True)
        except httpx.HTTPError as e:
            self._record("asset", "error", start)
            raise UpstreamUnavailableError(url, f"Upstream request failed: {e}")

        if not response.is_success:
            self._record("asset", "rejected", start)
            raise UpstreamUnavailableError(
                url,
                f"Upstream answered {response.status_code}",
                status_code=response.status_code,
            )

        self._record("asset", "ok", start)
        return FetchedAsset(
            url=url,
            payload=response.content,
            status_code=response.status_code,
        )

    async def forward(self, upstream_request: UpstreamRequest) -> httpx.Response:
        """Send a pass-through request and return the buffered response.

        Non-2xx responses are returned as-is; only transport failures raise
        UpstreamUnavailableError.
        """
        self.logger.info("Forwarding request", url=upstream_request.url, method=upstream_request.method)
        start = time.perf_counter()
        try:
            response = await self._get_client().request(
                upstream_request.method,
                upstream_request.url,
                headers=upstream_request.headers,
                content=upstream_request.body or None,
            )
        except httpx.TimeoutException as e:
            self._record("generic", "timeout", start)
            raise UpstreamUnavailableError(upstream_request.url, f"Upstream timed out: {e}", timed_out=True)
        except httpx.HTTPError as e:
            self._record("generic", "error", start)
            raise UpstreamUnavailableError(upstream_request.url, f"Upstream request failed: {e}")

        self._record("generic", "ok" if response.is_success else "rejected", start)
        return response

    def _record(self, kind: str, outcome: str, start: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("upstream_fetches_total", kind=kind, outcome=outcome)
        self.metrics.observe_histogram("upstream_fetch_duration_seconds", time.perf_counter() - start, kind=kind)
