"""
Request path helpers shared by the proxy handlers.
"""

from fastapi import Request


def raw_request_path(request: Request) -> str:
    """The request path exactly as sent by the client, still percent-encoded."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        # Some servers include the query string in raw_path.
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return request.scope["path"]
