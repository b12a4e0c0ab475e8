"""
Boundary to the tunneling sub-server.

The tunnel relays arbitrary HTTP/WebSocket traffic for the client-side
remote-browsing layer. Its protocol lives outside this service; the
frontend only asks it whether it wants a connection and, if so, hands the
connection over.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocketClose
from uvicorn.importer import ImportFromStringError, import_from_string

from shared.logging import get_logger
from shared.errors import TunnelConfigurationError

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.config import BaseConfig


class TunnelServer(ABC):
    """Routing predicate plus the two hand-off entry points."""

    @abstractmethod
    def should_route(self, scope: Scope) -> bool:
        """Return True when the tunnel owns this connection.

        Must only inspect the scope (path, headers); the request body stays
        unread so either branch can consume it.
        """

    @abstractmethod
    async def route_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Serve a plain HTTP request."""

    @abstractmethod
    async def route_upgrade(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Serve a WebSocket upgrade, including closing it."""


class DisabledTunnel(TunnelServer):
    """No tunnel configured: never claims a connection."""

    def should_route(self, scope: Scope) -> bool:
        return False

    async def route_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        await PlainTextResponse("Tunnel disabled", status_code=404)(scope, receive, send)

    async def route_upgrade(self, scope: Scope, receive: Receive, send: Send) -> None:
        await WebSocketClose()(scope, receive, send)


class MountedTunnel(TunnelServer):
    """Claims every connection under ``prefix`` and delegates it to an ASGI app."""

    def __init__(self, prefix: str, app: ASGIApp):
        if not prefix.startswith("/"):
            prefix = "/" + prefix
        if not prefix.endswith("/"):
            prefix = prefix + "/"
        self.prefix = prefix
        self.app = app
        self.logger = get_logger("frontend.tunnel")

    def should_route(self, scope: Scope) -> bool:
        return scope.get("path", "").startswith(self.prefix)

    async def route_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.app(scope, receive, send)

    async def route_upgrade(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.app(scope, receive, send)


def build_tunnel(config: "BaseConfig") -> TunnelServer:
    """Build the tunnel from ``tunnel_app`` (``module:attribute``) and ``tunnel_prefix``."""
    logger = get_logger("frontend.tunnel")
    if not config.tunnel_app:
        logger.info("No tunnel application configured; tunnel disabled")
        return DisabledTunnel()

    try:
        app = import_from_string(config.tunnel_app)
    except ImportFromStringError as e:
        raise TunnelConfigurationError(
            f"Could not load tunnel application {config.tunnel_app!r}",
            details={"error": str(e)},
        )

    logger.info("Tunnel mounted", prefix=config.tunnel_prefix, app=config.tunnel_app)
    return MountedTunnel(config.tunnel_prefix, app)
