"""
Domain utilities for the Frontend service.

Includes the access gating middleware and the static page catalog, which
do not belong to the proxy or routing layers.
"""

from .access_middleware import AccessMiddleware
from .pages import PageCatalog

__all__ = [
    "AccessMiddleware",
    "PageCatalog",
]
