"""Token endpoint logic: authorization code / refresh token -> access token.

No client secret is checked. PKCE stands in for client authentication, as
it does for any public client.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Mapping, Optional

from logging_config import mask_secret
from oauth import pkce
from oauth.clock import Clock, default_clock
from oauth.errors import InvalidGrant, InvalidRequest, UnsupportedGrantType
from oauth.models import AccessToken, RefreshToken
from oauth.stores import TokenStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenResponse:
    access_token: str
    expires_in: int
    scope: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"

    def to_payload(self) -> dict:
        payload = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "scope": self.scope,
        }
        if self.refresh_token:
            payload["refresh_token"] = self.refresh_token
        return payload


class TokenExchangeService:
    """Issues access tokens for the ``authorization_code`` and ``refresh_token`` grants."""

    def __init__(
        self,
        tokens: TokenStore,
        *,
        access_token_ttl: int = 3600,
        refresh_token_ttl: int = 30 * 24 * 60 * 60,
        clock: Clock = default_clock,
    ):
        self.tokens = tokens
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl
        self._clock = clock

    def handle(self, params: Mapping[str, Optional[str]]) -> TokenResponse:
        """Dispatch a token request on its ``grant_type``."""
        grant_type = params.get("grant_type")
        if not grant_type:
            raise InvalidRequest("Missing grant_type")

        if grant_type == "authorization_code":
            if not params.get("code"):
                raise InvalidRequest("Missing code")
            return self.exchange_code(
                code=params["code"],
                redirect_uri=params.get("redirect_uri"),
                code_verifier=params.get("code_verifier"),
                client_id=params.get("client_id"),
            )

        if grant_type == "refresh_token":
            if not params.get("refresh_token"):
                raise InvalidRequest("Missing refresh_token")
            return self.refresh(
                refresh_token=params["refresh_token"],
                client_id=params.get("client_id"),
            )

        raise UnsupportedGrantType(f"grant_type {grant_type!r} is not supported")

    def exchange_code(
        self,
        *,
        code: str,
        redirect_uri: Optional[str],
        code_verifier: Optional[str],
        client_id: Optional[str] = None,
    ) -> TokenResponse:
        """Exchange an authorization code for tokens.

        The code is consumed before any other check, so a failed attempt
        (wrong redirect, wrong verifier) also burns it.

        Raises:
            InvalidGrant: unknown, expired or already used code; redirect URI,
                client or PKCE mismatch.
        """
        auth_code = self.tokens.take_code(code)
        if auth_code is None:
            logger.info(f"[TOKEN] Rejected code {mask_secret(code)}: unknown, used or expired")
            raise InvalidGrant("Authorization code is invalid, expired or already used")

        if redirect_uri != auth_code.redirect_uri:
            logger.info(f"[TOKEN] Rejected code {mask_secret(code)}: redirect_uri mismatch")
            raise InvalidGrant("redirect_uri does not match the authorization request")

        if client_id and client_id != auth_code.client_id:
            logger.info(f"[TOKEN] Rejected code {mask_secret(code)}: client_id mismatch")
            raise InvalidGrant("Authorization code was issued to another client")

        if not pkce.verify(auth_code.code_challenge_method, auth_code.code_challenge, code_verifier):
            logger.info(f"[TOKEN] Rejected code {mask_secret(code)}: PKCE verification failed")
            raise InvalidGrant("PKCE verification failed")

        return self._issue(auth_code.client_id, auth_code.user_id, auth_code.scope)

    def refresh(self, *, refresh_token: str, client_id: Optional[str] = None) -> TokenResponse:
        """Trade a refresh token (single use) for a new token pair."""
        record = self.tokens.take_refresh_token(refresh_token)
        if record is None:
            raise InvalidGrant("Refresh token is invalid, expired or already used")
        if client_id and client_id != record.client_id:
            raise InvalidGrant("Refresh token was issued to another client")
        return self._issue(record.client_id, record.user_id, record.scope)

    def _issue(self, client_id: str, user_id: str, scope: str) -> TokenResponse:
        now = self._clock()
        access = AccessToken(
            token=secrets.token_urlsafe(32),
            client_id=client_id,
            user_id=user_id,
            scope=scope,
            issued_at=now,
            expires_at=now + self.access_token_ttl,
        )
        refresh = RefreshToken(
            token=secrets.token_urlsafe(32),
            client_id=client_id,
            user_id=user_id,
            scope=scope,
            issued_at=now,
            expires_at=now + self.refresh_token_ttl,
        )
        self.tokens.put_token(access)
        self.tokens.put_refresh_token(refresh)
        logger.info(
            f"[TOKEN] Access token {mask_secret(access.token)} created for user {user_id} "
            f"(client {client_id})"
        )
        return TokenResponse(
            access_token=access.token,
            expires_in=self.access_token_ttl,
            scope=scope,
            refresh_token=refresh.token,
        )
