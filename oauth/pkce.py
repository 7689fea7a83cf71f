"""PKCE (Proof Key for Code Exchange, RFC 7636) helpers.

Only the S256 transformation is supported. Anything else fails closed.
Verifiers and challenges are never logged.
"""

import base64
import hashlib
import hmac
import secrets
from typing import Optional

from oauth.models import SUPPORTED_CHALLENGE_METHOD

# RFC 7636 §4.1: 43-128 characters from the unreserved set.
_VERIFIER_LEN = 64
_ALLOWED_CHARS = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    "-._~"
)


def generate_code_verifier(length: int = _VERIFIER_LEN) -> str:
    """Generate a high-entropy code verifier of 43-128 characters."""
    if not 43 <= length <= 128:
        raise ValueError("code verifier length must be 43-128 characters")
    return "".join(secrets.choice(_ALLOWED_CHARS) for _ in range(length))


def code_challenge_s256(verifier: str) -> str:
    """Base64url-encoded SHA-256 of ``verifier`` without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def verify(method: Optional[str], challenge: Optional[str], verifier: Optional[str]) -> bool:
    """Check a presented ``verifier`` against a stored challenge.

    Args:
        method: The stored ``code_challenge_method``; only ``S256`` passes.
        challenge: The stored ``code_challenge``.
        verifier: The ``code_verifier`` sent to the token endpoint.

    Returns:
        True only when the S256 transform of ``verifier`` equals ``challenge``.
    """
    if method != SUPPORTED_CHALLENGE_METHOD or not challenge or not verifier:
        return False
    try:
        expected = code_challenge_s256(verifier)
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(expected.encode("ascii"), challenge.encode("utf-8"))
