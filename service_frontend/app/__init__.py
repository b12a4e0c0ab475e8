"""
Edge Frontend service package.

The frontend multiplexes one listening socket between:
- the tunneling sub-server (WebSocket/HTTP relay for remote browsing)
- a cached asset proxy for a fixed set of upstream content hosts
- a generic pass-through proxy for caller-specified URLs
- static pages behind access gating

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.routing: Dual-protocol router and the tunnel boundary.
- app.adapters: Upstream HTTP fetcher and asset route table.
- app.caching: In-memory asset cache.
- app.proxy: Asset and generic proxy handlers, content types.
- app.domain: Access middleware and static page catalog.
"""
