"""
Unit tests for the Frontend dual-protocol router and tunnel boundary.
"""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from service_frontend.app.routing.dual_protocol import DualProtocolRouter
from service_frontend.app.routing.tunnel import DisabledTunnel, MountedTunnel, TunnelServer, build_tunnel
from shared.errors import TunnelConfigurationError
from shared.metrics import MetricsCollector


class RecordingApp:
    """ASGI app that records the scopes it receives."""

    def __init__(self):
        self.scopes = []

    async def __call__(self, scope, receive, send):
        self.scopes.append(scope)
        if scope["type"] == "http":
            await send({"type": "http.response.start", "status": 200, "headers": []})
            await send({"type": "http.response.body", "body": b"app"})


class RecordingTunnel(TunnelServer):
    """Tunnel that claims every path under /fq/ and records hand-offs."""

    def __init__(self, raise_in_predicate=False, raise_in_route=None):
        self.raise_in_predicate = raise_in_predicate
        self.raise_in_route = raise_in_route
        self.requests = []
        self.upgrades = []

    def should_route(self, scope):
        if self.raise_in_predicate:
            raise RuntimeError("predicate exploded")
        return scope["path"].startswith("/fq/")

    async def route_request(self, scope, receive, send):
        if self.raise_in_route:
            raise self.raise_in_route
        self.requests.append(scope["path"])
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"tunnel"})

    async def route_upgrade(self, scope, receive, send):
        self.upgrades.append(scope["path"])
        await send({"type": "websocket.accept"})
        await send({"type": "websocket.close", "code": 1000})


def make_scope(scope_type: str, path: str):
    return {"type": scope_type, "path": path, "headers": [], "query_string": b""}


async def call(router, scope):
    sent = []
    messages = [{"type": "http.request", "body": b"", "more_body": False}]
    if scope["type"] == "websocket":
        messages = [{"type": "websocket.connect"}]

    async def receive():
        return messages.pop(0) if messages else {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    await router(scope, receive, send)
    return sent


class TestDualProtocolRouter:
    """Test cases for DualProtocolRouter."""

    @pytest.fixture
    def app(self):
        return RecordingApp()

    @pytest.fixture
    def tunnel(self):
        return RecordingTunnel()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("frontend")

    @pytest.fixture
    def router(self, app, tunnel, metrics):
        return DualProtocolRouter(app, tunnel, metrics=metrics)

    @pytest.mark.asyncio
    async def test_claimed_request_goes_to_tunnel_only(self, router, app, tunnel):
        sent = await call(router, make_scope("http", "/fq/v3/"))

        assert tunnel.requests == ["/fq/v3/"]
        assert app.scopes == []
        assert sent[-1]["body"] == b"tunnel"

    @pytest.mark.asyncio
    async def test_declined_request_goes_to_app(self, router, app, tunnel):
        sent = await call(router, make_scope("http", "/e/1/a.js"))

        assert tunnel.requests == []
        assert [s["path"] for s in app.scopes] == ["/e/1/a.js"]
        assert sent[-1]["body"] == b"app"

    @pytest.mark.asyncio
    async def test_claimed_upgrade_goes_to_tunnel(self, router, app, tunnel):
        sent = await call(router, make_scope("websocket", "/fq/v3/ws"))

        assert tunnel.upgrades == ["/fq/v3/ws"]
        assert app.scopes == []
        assert sent[0]["type"] == "websocket.accept"

    @pytest.mark.asyncio
    async def test_declined_upgrade_is_closed_without_reaching_app(self, router, app, tunnel):
        sent = await call(router, make_scope("websocket", "/socket"))

        assert app.scopes == []
        assert tunnel.upgrades == []
        assert sent == [{"type": "websocket.close", "code": 1000, "reason": ""}]

    @pytest.mark.asyncio
    async def test_lifespan_passes_through(self, router, app):
        await router({"type": "lifespan"}, None, None)
        assert app.scopes == [{"type": "lifespan"}]

    @pytest.mark.asyncio
    async def test_failing_predicate_treated_as_decline(self, app):
        router = DualProtocolRouter(app, RecordingTunnel(raise_in_predicate=True))

        sent = await call(router, make_scope("http", "/fq/v3/"))

        assert len(app.scopes) == 1
        assert sent[-1]["body"] == b"app"

    @pytest.mark.asyncio
    async def test_tunnel_transport_error_propagates(self, app):
        router = DualProtocolRouter(app, RecordingTunnel(raise_in_route=ConnectionResetError("peer gone")))

        with pytest.raises(ConnectionResetError):
            await call(router, make_scope("http", "/fq/v3/"))
        assert app.scopes == []

    @pytest.mark.asyncio
    async def test_routing_decisions_recorded(self, router, metrics):
        await call(router, make_scope("http", "/fq/v3/"))
        await call(router, make_scope("http", "/"))
        await call(router, make_scope("websocket", "/ws"))

        registry = metrics.registry
        assert registry.get_sample_value("tunnel_routing_total", {"scope_type": "http", "target": "tunnel"}) == 1
        assert registry.get_sample_value("tunnel_routing_total", {"scope_type": "http", "target": "pipeline"}) == 1
        assert registry.get_sample_value("tunnel_routing_total", {"scope_type": "websocket", "target": "rejected"}) == 1


class TestTunnels:
    """Test cases for tunnel implementations and build_tunnel."""

    def test_disabled_tunnel_never_routes(self):
        assert DisabledTunnel().should_route(make_scope("http", "/fq/anything")) is False

    def test_mounted_tunnel_normalizes_prefix(self):
        tunnel = MountedTunnel("fq", RecordingApp())
        assert tunnel.prefix == "/fq/"
        assert tunnel.should_route(make_scope("http", "/fq/v3/")) is True
        assert tunnel.should_route(make_scope("http", "/fq")) is False
        assert tunnel.should_route(make_scope("websocket", "/fqx/")) is False

    @pytest.mark.asyncio
    async def test_mounted_tunnel_delegates_to_app(self):
        app = RecordingApp()
        tunnel = MountedTunnel("/fq/", app)

        sent = []

        async def send(message):
            sent.append(message)

        await tunnel.route_request(make_scope("http", "/fq/v3/"), None, send)

        assert [s["path"] for s in app.scopes] == ["/fq/v3/"]
        assert sent[-1]["body"] == b"app"

    def test_build_tunnel_disabled_without_app(self):
        config = SimpleNamespace(tunnel_app=None, tunnel_prefix="/fq/")
        assert isinstance(build_tunnel(config), DisabledTunnel)

    def test_build_tunnel_loads_configured_app(self):
        app = RecordingApp()
        config = SimpleNamespace(tunnel_app="bare.server:app", tunnel_prefix="/bare/")

        with patch("service_frontend.app.routing.tunnel.import_from_string", return_value=app) as mock_import:
            tunnel = build_tunnel(config)

        mock_import.assert_called_once_with("bare.server:app")
        assert isinstance(tunnel, MountedTunnel)
        assert tunnel.app is app
        assert tunnel.prefix == "/bare/"

    @pytest.mark.parametrize("import_string", ["no_colon_here", "definitely_missing_tunnel_module:app"])
    def test_build_tunnel_bad_import_string(self, import_string):
        config = SimpleNamespace(tunnel_app=import_string, tunnel_prefix="/fq/")

        with pytest.raises(TunnelConfigurationError):
            build_tunnel(config)
