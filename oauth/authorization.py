"""Authorization endpoint logic: consent request -> decision -> code.

States of a single authorization round-trip::

    REQUESTED --(approve)--> APPROVED --> CODE_ISSUED
    REQUESTED --(deny)-----> DENIED

``GET /authorize`` only validates and renders consent (REQUESTED). The
``POST /authorize`` decision either denies (no code is ever created) or
approves, which mints a PKCE-bound code for the demo user and redirects back
to the client.

The handlers in ``oauth.endpoints`` stay thin and delegate here.
"""

import enum
import logging
import secrets
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from logging_config import mask_secret
from oauth.clock import Clock, default_clock
from oauth.errors import AccessDenied, InvalidRequest, UnsupportedResponseType
from oauth.models import SUPPORTED_CHALLENGE_METHOD, AuthorizationCode, is_valid_redirect_uri
from oauth.stores import ClientStore, TokenStore

logger = logging.getLogger(__name__)

# Echoed back verbatim when the client sends no state
DEFAULT_STATE = "default"
DEFAULT_SCOPE = ""


class ConsentState(str, enum.Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    DENIED = "denied"
    CODE_ISSUED = "code_issued"


@dataclass(frozen=True)
class AuthorizationRequest:
    """Validated parameters of an authorization request."""

    client_id: str
    redirect_uri: str
    code_challenge: str
    code_challenge_method: str
    state: str = DEFAULT_STATE
    scope: str = DEFAULT_SCOPE

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "AuthorizationRequest":
        """Build a request from query or form parameters.

        Raises:
            UnsupportedResponseType: ``response_type`` given and not ``code``.
            InvalidRequest: a required parameter is missing or malformed.
        """
        response_type = params.get("response_type")
        if response_type and response_type != "code":
            raise UnsupportedResponseType(f"response_type {response_type!r} is not supported")

        missing = [
            name
            for name in ("client_id", "redirect_uri", "code_challenge", "code_challenge_method")
            if not params.get(name)
        ]
        if missing:
            raise InvalidRequest(f"Missing required parameter(s): {', '.join(missing)}")

        if params["code_challenge_method"] != SUPPORTED_CHALLENGE_METHOD:
            raise InvalidRequest("code_challenge_method must be S256")
        if not is_valid_redirect_uri(params["redirect_uri"]):
            raise InvalidRequest("redirect_uri must be an absolute URI without a fragment")

        return cls(
            client_id=params["client_id"],
            redirect_uri=params["redirect_uri"],
            code_challenge=params["code_challenge"],
            code_challenge_method=params["code_challenge_method"],
            state=params.get("state") or DEFAULT_STATE,
            scope=params.get("scope") or DEFAULT_SCOPE,
        )


@dataclass(frozen=True)
class AuthorizationOutcome:
    """Result of a consent decision: where to send the browser next."""

    state: ConsentState
    redirect_url: str
    code: Optional[AuthorizationCode] = None


def append_query(uri: str, params: dict) -> str:
    """Add ``params`` to ``uri``, keeping any query it already has."""
    parts = urlsplit(uri)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class AuthorizationService:
    """Turns an authorization request plus a user decision into a code."""

    def __init__(
        self,
        tokens: TokenStore,
        clients: ClientStore,
        *,
        user_id: str,
        code_ttl: int = 600,
        strict_redirect_uris: bool = False,
        clock: Clock = default_clock,
    ):
        self.tokens = tokens
        self.clients = clients
        self.user_id = user_id
        self.code_ttl = code_ttl
        self.strict_redirect_uris = strict_redirect_uris
        self._clock = clock

    def begin(self, params: Mapping[str, str]) -> AuthorizationRequest:
        """Validate an incoming request (state REQUESTED)."""
        request = AuthorizationRequest.from_params(params)
        self._check_redirect(request)
        logger.info(f"[AUTHORIZE] Consent requested by client: {request.client_id}")
        return request

    def _check_redirect(self, request: AuthorizationRequest) -> None:
        # Any redirect URI is accepted unless STRICT_REDIRECT_URIS is set
        if not self.strict_redirect_uris:
            return
        client = self.clients.get(request.client_id)
        if client is None:
            raise InvalidRequest("Unknown client_id")
        if not client.accepts_redirect(request.redirect_uri):
            raise InvalidRequest("redirect_uri is not registered for this client")

    def decide(self, request: AuthorizationRequest, approved: bool) -> AuthorizationOutcome:
        """Apply the user's decision.

        Denial never creates a code. Approval stores a fresh single-use code
        bound to the request's PKCE challenge.
        """
        if not approved:
            logger.info(f"[AUTHORIZE] Consent denied for client: {request.client_id}")
            redirect_url = append_query(
                request.redirect_uri,
                {**AccessDenied().to_payload(), "state": request.state},
            )
            return AuthorizationOutcome(state=ConsentState.DENIED, redirect_url=redirect_url)

        now = self._clock()
        code = AuthorizationCode(
            code=secrets.token_urlsafe(32),
            client_id=request.client_id,
            user_id=self.user_id,
            redirect_uri=request.redirect_uri,
            scope=request.scope,
            code_challenge=request.code_challenge,
            code_challenge_method=request.code_challenge_method,
            issued_at=now,
            expires_at=now + self.code_ttl,
        )
        self.tokens.put_code(code)
        logger.info(
            f"[AUTHORIZE] Code {mask_secret(code.code)} issued to client {request.client_id} "
            f"for user {self.user_id}"
        )

        redirect_url = append_query(request.redirect_uri, {"code": code.code, "state": request.state})
        return AuthorizationOutcome(state=ConsentState.CODE_ISSUED, redirect_url=redirect_url, code=code)
