"""
Content-type resolution for proxied assets.
"""

import mimetypes
import posixpath
from urllib.parse import urlsplit

GENERIC_BINARY = "application/octet-stream"

# Extensions whose type must not be taken from the generic mimetypes table.
CONTENT_TYPE_OVERRIDES = {
    ".unityweb": GENERIC_BINARY,
}


def extension_of(url: str) -> str:
    """Lower-cased extension of the last path segment of ``url``, e.g. ``.js``."""
    path = urlsplit(url).path
    return posixpath.splitext(path)[1].lower()


def resolve_content_type(url: str) -> str:
    """Pick a content type from the file extension of ``url``.

    Upstream response headers are not consulted.
    """
    ext = extension_of(url)
    if ext in CONTENT_TYPE_OVERRIDES:
        return CONTENT_TYPE_OVERRIDES[ext]

    if not ext:
        return GENERIC_BINARY

    content_type, _ = mimetypes.guess_type(f"file{ext}", strict=False)
    return content_type or GENERIC_BINARY
