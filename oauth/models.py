"""Typed, immutable records used by the OAuth layer.

Every record validates its required fields at construction time, so a
half-filled client or token can never reach a store.
"""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

from oauth.clock import default_clock

SUPPORTED_CHALLENGE_METHOD = "S256"


def _require(record: str, **values) -> None:
    for name, value in values.items():
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{record}.{name} is required")


def _check_expiry(record: str, issued_at: float, expires_at: float) -> None:
    if expires_at <= issued_at:
        raise ValueError(f"{record}.expires_at must be after issued_at")


def is_valid_redirect_uri(uri: str) -> bool:
    """Absolute URI without a fragment (custom schemes allowed for native apps)."""
    if not isinstance(uri, str) or not uri:
        return False
    parts = urlsplit(uri)
    if not parts.scheme or parts.fragment:
        return False
    if parts.scheme in ("http", "https"):
        return bool(parts.netloc)
    return bool(parts.netloc or parts.path)


@dataclass(frozen=True, slots=True)
class Client:
    """A registered (or pre-seeded) public OAuth client."""

    client_id: str
    redirect_uris: tuple[str, ...]
    client_name: Optional[str] = None
    grant_types: tuple[str, ...] = ("authorization_code",)
    issued_at: int = field(default_factory=lambda: int(default_clock()))

    def __post_init__(self):
        _require("Client", client_id=self.client_id)
        if not isinstance(self.redirect_uris, tuple) or not self.redirect_uris:
            raise ValueError("Client.redirect_uris must be a non-empty tuple")
        for uri in self.redirect_uris:
            if not is_valid_redirect_uri(uri):
                raise ValueError(f"Client.redirect_uris contains an invalid URI: {uri!r}")
        if self.client_name is not None and not isinstance(self.client_name, str):
            raise ValueError("Client.client_name must be a string")

    def accepts_redirect(self, redirect_uri: str) -> bool:
        return redirect_uri in self.redirect_uris


@dataclass(frozen=True, slots=True)
class AuthorizationCode:
    """Short-lived, single-use code bound to a PKCE challenge."""

    code: str
    client_id: str
    user_id: str
    redirect_uri: str
    scope: str
    code_challenge: str
    code_challenge_method: str
    issued_at: float
    expires_at: float

    def __post_init__(self):
        _require(
            "AuthorizationCode",
            code=self.code,
            client_id=self.client_id,
            user_id=self.user_id,
            redirect_uri=self.redirect_uri,
            code_challenge=self.code_challenge,
        )
        if self.code_challenge_method != SUPPORTED_CHALLENGE_METHOD:
            raise ValueError("AuthorizationCode.code_challenge_method must be S256")
        _check_expiry("AuthorizationCode", self.issued_at, self.expires_at)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True, slots=True)
class AccessToken:
    """Opaque bearer token checked on every session-endpoint call."""

    token: str
    client_id: str
    user_id: str
    scope: str
    issued_at: float
    expires_at: float

    def __post_init__(self):
        _require("AccessToken", token=self.token, client_id=self.client_id, user_id=self.user_id)
        _check_expiry("AccessToken", self.issued_at, self.expires_at)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def expires_in(self, now: float) -> int:
        return max(0, int(self.expires_at - now))


@dataclass(frozen=True, slots=True)
class RefreshToken:
    token: str
    client_id: str
    user_id: str
    scope: str
    issued_at: float
    expires_at: float

    def __post_init__(self):
        _require("RefreshToken", token=self.token, client_id=self.client_id, user_id=self.user_id)
        _check_expiry("RefreshToken", self.issued_at, self.expires_at)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Identity resolved by the bearer gate, attached to ``request.state.auth``."""

    user_id: str
    client_id: str
    scope: str

    @classmethod
    def from_token(cls, token: AccessToken) -> "AuthContext":
        return cls(user_id=token.user_id, client_id=token.client_id, scope=token.scope)
