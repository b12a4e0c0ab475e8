"""
Dual-protocol router: decides, per connection, between the tunnel and the app.
"""

from typing import Optional, TYPE_CHECKING

from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocketClose

from shared.logging import get_logger

from .tunnel import TunnelServer

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class DualProtocolRouter:
    """ASGI middleware placed in front of the whole request pipeline.

    Plain requests and WebSocket upgrades the tunnel claims are handed to
    it untouched. Declined plain requests continue into the application;
    declined upgrades are closed before accept, since the pipeline has no
    WebSocket endpoints.
    """

    def __init__(self, app: ASGIApp, tunnel: TunnelServer, metrics: Optional["MetricsCollector"] = None):
        self.app = app
        self.tunnel = tunnel
        self.metrics = metrics
        self.logger = get_logger("frontend.router")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        scope_type = scope["type"]
        if scope_type not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")

        if self._should_route(scope):
            self._record(scope_type, "tunnel")
            try:
                if scope_type == "http":
                    self.logger.debug("Routing tunnel request", path=path)
                    await self.tunnel.route_request(scope, receive, send)
                else:
                    self.logger.info("Routing tunnel upgrade", path=path)
                    await self.tunnel.route_upgrade(scope, receive, send)
            except Exception as e:
                # Re-raise so the server tears the connection down.
                self.logger.error("Tunnel connection failed", path=path, error=str(e))
                raise
            return

        if scope_type == "websocket":
            self._record(scope_type, "rejected")
            self.logger.info("Rejecting upgrade not claimed by tunnel", path=path)
            await WebSocketClose()(scope, receive, send)
            return

        self._record(scope_type, "pipeline")
        await self.app(scope, receive, send)

    def _should_route(self, scope: Scope) -> bool:
        try:
            return bool(self.tunnel.should_route(scope))
        except Exception as e:
            self.logger.error("Tunnel routing predicate failed", path=scope.get("path"), error=str(e))
            return False

    def _record(self, scope_type: str, target: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("tunnel_routing_total", scope_type=scope_type, target=target)
