"""Exception types raised by the OAuth and session layers.

Only lightweight, data-carrying exceptions live here so that HTTP handlers
can turn them into responses without knowing where they came from.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for every error surfaced to an HTTP caller."""

    error: str = "server_error"
    status_code: int = 500

    def __init__(self, description: Optional[str] = None):
        super().__init__(description or self.error)
        self.description = description

    def to_payload(self) -> dict:
        """Return an OAuth-style JSON payload (never contains secrets)."""
        payload = {"error": self.error}
        if self.description:
            payload["error_description"] = self.description
        return payload


# ============== Authorization server errors ==============

class InvalidRequest(GatewayError):
    """A required parameter is missing or malformed."""

    error = "invalid_request"
    status_code = 400


class InvalidGrant(GatewayError):
    """Bad, expired or reused code/refresh token, redirect or PKCE mismatch."""

    error = "invalid_grant"
    status_code = 400


class UnsupportedGrantType(GatewayError):
    error = "unsupported_grant_type"
    status_code = 400


class UnsupportedResponseType(GatewayError):
    error = "unsupported_response_type"
    status_code = 400


class InvalidClientMetadata(GatewayError):
    """Dynamic client registration payload was rejected."""

    error = "invalid_client_metadata"
    status_code = 400


class AccessDenied(GatewayError):
    """The resource owner declined consent."""

    error = "access_denied"
    status_code = 302


# ============== Bearer gate errors ==============

class MissingAuthHeader(GatewayError):
    """No usable ``Authorization: Bearer`` header on the request.

    RFC 6750 §3.1: a request without credentials gets a challenge with no
    ``error`` attribute, so ``challenge_error`` is empty here.
    """

    error = "unauthorized"
    status_code = 401
    challenge_error: Optional[str] = None

    def __init__(self, description: Optional[str] = None):
        super().__init__(description or "Missing Authorization header")


class InvalidOrExpiredToken(MissingAuthHeader):
    error = "invalid_token"
    challenge_error = "invalid_token"

    def __init__(self, description: Optional[str] = None):
        super().__init__(description or "Invalid or expired access token")


# ============== Session errors ==============

class UnknownOrMissingSession(GatewayError):
    error = "invalid_session"
    status_code = 400

    def __init__(self, description: Optional[str] = None, request_id=None):
        super().__init__(description or "Bad Request: No valid session ID provided")
        self.request_id = request_id


class InternalFault(GatewayError):
    """Unexpected failure; reported to callers without internals."""

    error = "server_error"
    status_code = 500

    def to_payload(self) -> dict:
        return {"error": self.error, "error_description": "Internal Server Error"}
