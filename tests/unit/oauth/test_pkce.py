"""Unit tests for the PKCE helpers."""

from __future__ import annotations

import pytest

from oauth import pkce

# RFC 7636 Appendix B
RFC_VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
RFC_CHALLENGE = "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_s256_matches_rfc_vector() -> None:
    assert pkce.code_challenge_s256(RFC_VERIFIER) == RFC_CHALLENGE


def test_verify_accepts_matching_verifier() -> None:
    assert pkce.verify("S256", RFC_CHALLENGE, RFC_VERIFIER) is True


def test_verify_accepts_generated_pairs() -> None:
    for _ in range(20):
        verifier = pkce.generate_code_verifier()
        assert pkce.verify("S256", pkce.code_challenge_s256(verifier), verifier)


@pytest.mark.parametrize(
    "method, challenge, verifier",
    [
        ("S256", RFC_CHALLENGE, RFC_VERIFIER + "x"),
        ("S256", RFC_CHALLENGE, None),
        ("S256", RFC_CHALLENGE, ""),
        ("S256", None, RFC_VERIFIER),
        ("plain", RFC_VERIFIER, RFC_VERIFIER),
        (None, RFC_CHALLENGE, RFC_VERIFIER),
        ("S256", RFC_CHALLENGE, "vérifier-with-non-ascii-characters-xxxxxxxxxxxxxx"),
    ],
)
def test_verify_fails_closed(method, challenge, verifier) -> None:
    assert pkce.verify(method, challenge, verifier) is False


def test_generated_verifier_uses_unreserved_alphabet() -> None:
    verifier = pkce.generate_code_verifier(128)
    assert len(verifier) == 128
    assert set(verifier) <= set(pkce._ALLOWED_CHARS)


@pytest.mark.parametrize("length", [42, 129])
def test_generate_verifier_rejects_bad_length(length: int) -> None:
    with pytest.raises(ValueError):
        pkce.generate_code_verifier(length)
