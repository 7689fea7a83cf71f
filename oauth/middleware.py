"""OAuth middleware for the MCP endpoint.

Validates Bearer tokens against the token store. Tokens are opaque and live
only in memory, so a restart invalidates every token issued before it.
"""

import logging
from typing import Optional, Sequence

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from logging_config import mask_secret
from oauth.client_quirks import CLIENT_QUIRKS, ClientQuirk, resource_metadata_param
from oauth.errors import InvalidOrExpiredToken, MissingAuthHeader
from oauth.models import AuthContext
from oauth.stores import TokenStore
from sessions import jsonrpc

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        return None
    return token


class BearerGate:
    """Resolves a bearer token to an ``AuthContext`` or raises a 401 error."""

    def __init__(
        self,
        tokens: TokenStore,
        *,
        realm: str,
        metadata_url: str,
        quirks: Sequence[ClientQuirk] = CLIENT_QUIRKS,
    ):
        self.tokens = tokens
        self.realm = realm
        self.metadata_url = metadata_url
        self.quirks = quirks

    def authenticate(self, authorization: Optional[str]) -> AuthContext:
        """Validate the header value.

        Raises:
            MissingAuthHeader: no header, or not a well-formed Bearer header.
            InvalidOrExpiredToken: the token is unknown or has expired.
        """
        token = parse_bearer(authorization)
        if token is None:
            raise MissingAuthHeader()
        record = self.tokens.get_token(token)
        if record is None:
            logger.info(f"[AUTH] Unknown or expired token {mask_secret(token)}")
            raise InvalidOrExpiredToken()
        return AuthContext.from_token(record)

    def challenge(
        self,
        exc: MissingAuthHeader,
        user_agent: Optional[str] = None,
        client_name: Optional[str] = None,
    ) -> str:
        """Build the ``WWW-Authenticate`` value for a rejected request."""
        parts = [f'realm="{self.realm}"']
        if exc.challenge_error:
            parts.append(f'error="{exc.challenge_error}"')
            parts.append(f'error_description="{exc.description}"')
        param = resource_metadata_param(user_agent, client_name, self.quirks)
        parts.append(f'{param}="{self.metadata_url}"')
        return "Bearer " + ", ".join(parts)


class MCPOAuthMiddleware(BaseHTTPMiddleware):
    """Middleware to validate OAuth Bearer tokens for the Streamable HTTP MCP endpoint."""

    def __init__(self, app, gate: BearerGate):
        super().__init__(app)
        self.gate = gate

    async def dispatch(self, request: Request, call_next):
        try:
            request.state.auth = self.gate.authenticate(request.headers.get("Authorization"))
        except MissingAuthHeader as exc:
            return await self._reject(request, exc)
        return await call_next(request)

    async def _reject(self, request: Request, exc: MissingAuthHeader) -> JSONResponse:
        # The body is only read on this path; it is never forwarded.
        message = jsonrpc.parse_body(await request.body()) if request.method == "POST" else None
        user_agent = request.headers.get("User-Agent")
        client_name = jsonrpc.client_name(message)

        logger.info(
            f"[AUTH] Request rejected ({exc.error}): {exc.description} "
            f"(user-agent={user_agent!r}, client={client_name!r})"
        )
        return JSONResponse(
            jsonrpc.error_envelope(jsonrpc.UNAUTHORIZED, exc.description, jsonrpc.request_id(message)),
            status_code=exc.status_code,
            headers={
                "WWW-Authenticate": self.gate.challenge(exc, user_agent, client_name),
                **NO_CACHE_HEADERS,
            },
        )
