"""
Proxy handlers for the Frontend service.
"""

from .asset_proxy import AssetProxyHandler
from .generic_proxy import GenericProxyHandler
from .content_types import resolve_content_type

__all__ = ["AssetProxyHandler", "GenericProxyHandler", "resolve_content_type"]
