"""HTTP Basic Auth gate applied to every route, static files included."""
from __future__ import annotations

import base64
import binascii
import secrets

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse

logger = structlog.get_logger()


def parse_basic_credentials(header: str) -> tuple[str, str] | None:
    """Return (username, password) from an Authorization header, or None."""
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class BasicAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, username: str, password: str, realm: str = "Authorization Required"):
        super().__init__(app)
        self.username = username
        self.password = password
        self.realm = realm

    def _authorized(self, request: Request) -> bool:
        creds = parse_basic_credentials(request.headers.get("Authorization", ""))
        if creds is None:
            return False
        user_ok = secrets.compare_digest(creds[0].encode(), self.username.encode())
        pass_ok = secrets.compare_digest(creds[1].encode(), self.password.encode())
        return user_ok and pass_ok

    async def dispatch(self, request: Request, call_next):
        if not self._authorized(request):
            logger.info("basic_auth_rejected", path=request.url.path)
            return PlainTextResponse(
                "Unauthorized",
                status_code=401,
                headers={"WWW-Authenticate": f'Basic realm="{self.realm}"'},
            )
        return await call_next(request)
