"""
Adapters package for the Frontend service.

Contains the HTTP client wrapper used for upstream fetches. The adapter
encapsulates:

- The ordered asset route table
- Timeouts and connection pooling
- Mapping transport failures to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .upstream_fetcher import (
    DEFAULT_ASSET_ROUTES,
    FetchedAsset,
    RouteMapping,
    UpstreamFetcher,
    UpstreamRequest,
)

__all__ = [
    "DEFAULT_ASSET_ROUTES",
    "FetchedAsset",
    "RouteMapping",
    "UpstreamFetcher",
    "UpstreamRequest",
]
