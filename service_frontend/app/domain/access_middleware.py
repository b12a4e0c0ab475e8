"""
Access gating for the Frontend pipeline.
"""

import base64
import binascii
import secrets
from typing import Dict, Iterable, Optional, Tuple

from fastapi import Request, Response
from fastapi.security.utils import get_authorization_scheme_param

from shared.logging import bind_user, get_logger

EXEMPT_PATHS = frozenset({"/health", "/metrics"})


class AccessMiddleware:
    """Basic-auth challenge, response policy headers and iframe key checks."""

    def __init__(
        self,
        users: Optional[Dict[str, str]] = None,
        *,
        challenge: bool = False,
        access_keys: Iterable[str] = (),
        permissions_policy: Optional[str] = None,
        realm: str = "frontend",
    ):
        self.users = dict(users or {})
        self.challenge = challenge
        self.access_keys = frozenset(access_keys)
        self.permissions_policy = permissions_policy
        self.realm = realm
        self.logger = get_logger("frontend.access_middleware")

        if self.challenge:
            self.logger.info("Password protection enabled", users=len(self.users))

    async def dispatch(self, request: Request, call_next):
        """HTTP middleware entry point."""
        if self.challenge and request.url.path not in EXEMPT_PATHS:
            user = self.authenticate(request)
            if user is None:
                return self._challenge_response()
            bind_user(user)

        response = await call_next(request)
        if self.permissions_policy:
            response.headers["Permissions-Policy"] = self.permissions_policy
        return response

    def authenticate(self, request: Request) -> Optional[str]:
        """Return the user name for valid Basic credentials, else None."""
        scheme, param = get_authorization_scheme_param(request.headers.get("Authorization"))
        if scheme.lower() != "basic" or not param:
            return None

        try:
            decoded = base64.b64decode(param, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            self.logger.warning("Malformed basic credentials")
            return None

        username, separator, password = decoded.partition(":")
        if not separator:
            return None

        expected = self.users.get(username)
        if expected is None or not secrets.compare_digest(password.encode(), expected.encode()):
            self.logger.warning("Basic authentication failed", user=username)
            return None

        return username

    def validate_key(self, key: Optional[str]) -> Tuple[int, str]:
        """Check an iframe access key; returns (status_code, message)."""
        if not key:
            self.logger.info("No key provided")
            return 403, "Access Denied: No Key Provided"

        if key not in self.access_keys:
            self.logger.info("Invalid key attempt", key=key)
            return 403, "Access Denied: Invalid Key"

        return 200, "Iframe Request Successful!"

    def _challenge_response(self) -> Response:
        return Response(
            content="Unauthorized",
            status_code=401,
            media_type="text/plain",
            headers={"WWW-Authenticate": f'Basic realm="{self.realm}"'},
        )
