"""HTTP Basic authentication gate for the REST API."""

import base64
import binascii
import hmac

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from sysinfo_server.encoding import error
from sysinfo_server.errors import AuthError
from sysinfo_server.logs import get_logger

REALM = "API Access"
CHALLENGE = f'Basic realm="{REALM}"'
BASIC_PREFIX = "Basic "

logger = get_logger("auth")


def verify_basic_auth(header: str | None, expected_credentials: str) -> None:
    """
    Check an Authorization header against "username:password".

    Structural problems (missing header, other scheme, bad base64, non-UTF-8)
    short-circuit. The credential itself is compared in constant time.

    Raises:
        AuthError: If the header does not carry the expected credentials.
    """
    if header is None:
        raise AuthError("missing credentials")
    if not header.startswith(BASIC_PREFIX):
        raise AuthError("unsupported authorization scheme")
    try:
        decoded = base64.b64decode(header[len(BASIC_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AuthError("malformed credentials") from exc
    try:
        credentials = decoded.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise AuthError("malformed credentials") from exc

    if not hmac.compare_digest(credentials.encode("utf-8"), expected_credentials.encode("utf-8")):
        raise AuthError("invalid credentials")


def challenge_response() -> Response:
    """401 envelope carrying the WWW-Authenticate challenge."""
    return JSONResponse(
        error(AuthError.status_code, "Unauthorized"),
        status_code=AuthError.status_code,
        headers={"WWW-Authenticate": CHALLENGE},
    )


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Rejects unauthenticated requests to every path except the open ones."""

    def __init__(self, app, expected_credentials: str, open_paths: frozenset[str] = frozenset()) -> None:
        super().__init__(app)
        self._expected = expected_credentials
        self._open_paths = open_paths

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self._open_paths:
            return await call_next(request)
        try:
            verify_basic_auth(request.headers.get("authorization"), self._expected)
        except AuthError as exc:
            logger.info("auth_rejected", path=request.url.path, reason=str(exc))
            return challenge_response()
        return await call_next(request)
