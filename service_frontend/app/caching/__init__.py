"""
Frontend caching package.

Holds the in-memory asset cache used by the asset proxy. State is
process-scoped and lost on restart.
"""

from .asset_cache import AssetCache, CacheEntry

__all__ = ["AssetCache", "CacheEntry"]
