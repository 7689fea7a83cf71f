"""Unit tests for the OAuth record types."""

from __future__ import annotations

import dataclasses

import pytest

from oauth.models import AccessToken, AuthContext, AuthorizationCode, Client, is_valid_redirect_uri


def _code(**overrides) -> AuthorizationCode:
    values = dict(
        code="c1",
        client_id="client",
        user_id="user",
        redirect_uri="http://localhost/cb",
        scope="",
        code_challenge="challenge",
        code_challenge_method="S256",
        issued_at=100.0,
        expires_at=700.0,
    )
    values.update(overrides)
    return AuthorizationCode(**values)


@pytest.mark.parametrize(
    "uri, valid",
    [
        ("http://localhost:3000/callback", True),
        ("https://example.com/cb?x=1", True),
        ("vscode://callback", True),
        ("com.example.app:/oauth", True),
        ("https://example.com/cb#frag", False),
        ("/relative/path", False),
        ("http:///no-host", False),
        ("", False),
        (None, False),
    ],
)
def test_redirect_uri_validation(uri, valid) -> None:
    assert is_valid_redirect_uri(uri) is valid


def test_client_requires_redirect_uris() -> None:
    with pytest.raises(ValueError):
        Client(client_id="c", redirect_uris=())
    with pytest.raises(ValueError):
        Client(client_id="c", redirect_uris=("not a uri",))
    with pytest.raises(ValueError):
        Client(client_id="", redirect_uris=("http://localhost/cb",))


def test_client_is_immutable() -> None:
    client = Client(client_id="c", redirect_uris=("http://localhost/cb",))
    with pytest.raises(dataclasses.FrozenInstanceError):
        client.client_id = "other"
    assert client.accepts_redirect("http://localhost/cb")
    assert not client.accepts_redirect("http://localhost/other")


def test_code_rejects_missing_fields_and_other_methods() -> None:
    with pytest.raises(ValueError):
        _code(code="")
    with pytest.raises(ValueError):
        _code(code_challenge=" ")
    with pytest.raises(ValueError):
        _code(code_challenge_method="plain")
    with pytest.raises(ValueError):
        _code(expires_at=100.0)


def test_code_expires_at_boundary() -> None:
    code = _code()
    assert code.is_expired(699.9) is False
    assert code.is_expired(700.0) is True


def test_access_token_expiry_and_context() -> None:
    token = AccessToken(
        token="t", client_id="client", user_id="user", scope="s", issued_at=0.0, expires_at=3600.0
    )
    assert token.expires_in(600.0) == 3000
    assert token.expires_in(4000.0) == 0
    assert AuthContext.from_token(token) == AuthContext(user_id="user", client_id="client", scope="s")
